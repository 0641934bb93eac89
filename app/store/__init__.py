"""Document store for Pokemon records."""
from .errors import StoreError, DuplicateKeyError, BulkWriteError
from .pokemon_store import PokemonStore, is_valid_id, new_object_id, ASCENDING, DESCENDING

__all__ = [
    'PokemonStore',
    'is_valid_id',
    'new_object_id',
    'ASCENDING',
    'DESCENDING',
    'StoreError',
    'DuplicateKeyError',
    'BulkWriteError',
]
