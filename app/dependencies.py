from app.clients import HttpAdapter
from app.services import PokemonService, SeedService
from app.store import PokemonStore
from fastapi import Depends

_pokemon_store = None
_http_adapter = None

def get_pokemon_store() -> PokemonStore:
    global _pokemon_store
    if _pokemon_store is None:
        _pokemon_store = PokemonStore()
    return _pokemon_store

def get_http_adapter() -> HttpAdapter:
    global _http_adapter
    if _http_adapter is None:
        _http_adapter = HttpAdapter()
    return _http_adapter

def get_pokemon_service(
    store: PokemonStore = Depends(get_pokemon_store),
) -> PokemonService:
    return PokemonService(store=store)

def get_seed_service(
    store: PokemonStore = Depends(get_pokemon_store),
    http: HttpAdapter = Depends(get_http_adapter),
) -> SeedService:
    return SeedService(store=store, http=http)

async def close_dependencies():
    """Close the shared store and HTTP client, if they were ever created."""
    global _pokemon_store, _http_adapter
    if _pokemon_store is not None:
        await _pokemon_store.close()
        _pokemon_store = None
    if _http_adapter is not None:
        await _http_adapter.close()
        _http_adapter = None
