import logging

from app import config
from app.clients import HttpAdapter
from app.models import PokeAPIListResponse
from app.store import PokemonStore, BulkWriteError

logger = logging.getLogger(__name__)


def catalog_number_from_url(url: str) -> int:
    """Extracts the catalog number from a PokeAPI resource URL (.../pokemon/25/)."""
    segments = url.split("/")
    return int(segments[-2])


class SeedService:
    """
    Replaces the whole Pokemon collection with the PokeAPI catalog.

    Existing records are deleted before the catalog is fetched,
    so a failed fetch leaves the collection empty.
    """

    def __init__(self, store: PokemonStore, http: HttpAdapter, seed_url: str = None):
        self._store = store
        self._http = http
        self._seed_url = seed_url or config.SEED_URL

    async def execute_seed(self) -> str:
        deleted_count = await self._store.delete_many({})
        logger.info(f"Seed: removed {deleted_count} pokemon")

        data = await self._http.get(self._seed_url)
        catalog = PokeAPIListResponse.model_validate(data)

        pokemon_to_insert = [
            {"name": result.name.lower(), "no": catalog_number_from_url(result.url)}
            for result in catalog.results
        ]
        logger.info(f"Seed: fetched {len(pokemon_to_insert)} pokemon from {self._seed_url}")

        # Best effort: whatever the bulk insert managed to write stays in place
        try:
            await self._store.insert_many(pokemon_to_insert, ordered=False)
        except BulkWriteError as e:
            logger.warning(f"Seed: {len(e.write_errors)} pokemon not inserted: {e.write_errors}")

        return "Seed executed"
