"""Service layer: Pokemon CRUD and catalog seeding."""
from .pokemon_service import PokemonService
from .seed_service import SeedService

__all__ = [
    'PokemonService',
    'SeedService',
]
