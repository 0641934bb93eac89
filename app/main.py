from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Depends, Query, Response, status, HTTPException
from app import config
from app.dependencies import get_pokemon_service, get_seed_service, close_dependencies
from app.logging_config import setup_logging
from app.models import CreatePokemon, PaginationParams, Pokemon, UpdatePokemon
from app.services import PokemonService, SeedService
from app.store import is_valid_id


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)
    yield
    await close_dependencies()


app = FastAPI(
    title="Pokedex Catalog API",
    description="CRUD catalog of Pokemon with a one-shot seed from PokeAPI.",
    lifespan=lifespan,
)

@app.post(
    "/pokemon",
    response_model=Pokemon,
    status_code=status.HTTP_201_CREATED,
    summary="Creates a Pokemon",
)
async def create_pokemon(
    payload: CreatePokemon,
    service: PokemonService = Depends(get_pokemon_service),
):
    # Duplicates (400) and store failures (500) are raised by the service as HTTPExceptions
    return await service.create(payload)


@app.get(
    "/pokemon",
    response_model=list[Pokemon],
    response_model_exclude_none=True,
    summary="Lists Pokemon ordered by catalog number",
)
async def list_pokemon(
    limit: int = Query(default=config.DEFAULT_PAGE_LIMIT, ge=1),
    offset: int = Query(default=0, ge=0),
    service: PokemonService = Depends(get_pokemon_service),
):
    return await service.find_all(PaginationParams(limit=limit, offset=offset))


@app.get(
    "/pokemon/{term}",
    response_model=Pokemon,
    summary="Finds a Pokemon by catalog number, id or name",
)
async def get_pokemon(
    term: str,
    service: PokemonService = Depends(get_pokemon_service),
):
    return await service.find_one(term)


@app.patch(
    "/pokemon/{term}",
    response_model=Pokemon,
    summary="Updates a Pokemon found by catalog number, id or name",
)
async def update_pokemon(
    term: str,
    payload: UpdatePokemon,
    service: PokemonService = Depends(get_pokemon_service),
):
    return await service.update(term, payload)


@app.delete(
    "/pokemon/{pokemon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deletes a Pokemon by id",
)
async def delete_pokemon(
    pokemon_id: str,
    service: PokemonService = Depends(get_pokemon_service),
):
    if not is_valid_id(pokemon_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{pokemon_id} is not a valid id",
        )
    await service.remove(pokemon_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get(
    "/seed",
    summary="Replaces the catalog with the first Pokemon from PokeAPI",
)
async def execute_seed(
    service: SeedService = Depends(get_seed_service),
):
    try:
        return await service.execute_seed()
    except httpx.HTTPError as e:
        # The wipe already happened; the caller only learns the source was unavailable
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Seed source unavailable: {str(e)}",
        )
