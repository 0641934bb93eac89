import logging
import math
from typing import Optional

from redis.exceptions import RedisError

from app.exceptions import DuplicateEntityError, InternalStoreError, NotFoundError
from app.models import CreatePokemon, PaginationParams, Pokemon, UpdatePokemon
from app.store import PokemonStore, DuplicateKeyError, StoreError, is_valid_id

logger = logging.getLogger(__name__)


def _parse_catalog_number(search_term: str) -> Optional[int]:
    """Returns the term as an integer catalog number when the whole term is numeric."""
    try:
        number = float(search_term)
    except ValueError:
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


class PokemonService:
    def __init__(self, store: PokemonStore):
        self._store = store

    async def create(self, create_pokemon: CreatePokemon) -> Pokemon:
        data = create_pokemon.model_dump()
        data["name"] = data["name"].lower()

        try:
            document = await self._store.insert_one(data)
        except DuplicateKeyError as e:
            raise DuplicateEntityError(e.key_value)
        except (StoreError, RedisError):
            logger.exception(f"Failed to create pokemon {data}")
            raise InternalStoreError("create")

        logger.info(f"Created pokemon #{document['no']} {document['name']}")
        return Pokemon.model_validate(document)

    async def find_all(self, pagination: PaginationParams) -> list[Pokemon]:
        documents = await self._store.find(
            skip=pagination.offset,
            limit=pagination.limit,
            projection={"__v": 0},
        )
        return [Pokemon.model_validate(document) for document in documents]

    async def find_one(self, search_term: str) -> Pokemon:
        """
        Resolves a Pokemon by catalog number, then by store id, then by name.
        The first lookup that finds something wins.
        """
        document = None

        # By no
        number = _parse_catalog_number(search_term)
        if number is not None:
            document = await self._store.find_one({"no": number})

        # By store id
        if document is None and is_valid_id(search_term):
            document = await self._store.find_by_id(search_term)

        # By name
        if document is None:
            document = await self._store.find_one({"name": search_term.lower().strip()})

        if document is None:
            raise NotFoundError(f'Pokemon with id, name or no "{search_term}" not found')
        return Pokemon.model_validate(document)

    async def update(self, search_term: str, update_pokemon: UpdatePokemon) -> Pokemon:
        pokemon = await self.find_one(search_term)

        patch = update_pokemon.model_dump(exclude_unset=True, exclude_none=True)
        if not patch:
            return pokemon
        if "name" in patch:
            patch["name"] = patch["name"].lower()

        try:
            await self._store.update_one(pokemon.id, patch)
        except DuplicateKeyError as e:
            raise DuplicateEntityError(e.key_value)
        except (StoreError, RedisError):
            logger.exception(f"Failed to update pokemon {pokemon.id} with {patch}")
            raise InternalStoreError("update")

        # Prior state merged with the patch
        return pokemon.model_copy(update=patch)

    async def remove(self, pokemon_id: str) -> None:
        deleted_count = await self._store.delete_one({"_id": pokemon_id})
        if deleted_count == 0:
            raise NotFoundError(f'Pokemon with id "{pokemon_id}" not found')
