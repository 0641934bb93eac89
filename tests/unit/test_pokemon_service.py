import pytest
from unittest.mock import AsyncMock
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis
from redis.asyncio.client import Pipeline
from redis.exceptions import ConnectionError as RedisConnectionError
from app.services.pokemon_service import PokemonService
from app.models import CreatePokemon, PaginationParams, Pokemon, UpdatePokemon
from app.exceptions import DuplicateEntityError, InternalStoreError, NotFoundError
from app.store import PokemonStore, new_object_id


@pytest.fixture
def store():
    """Provides a PokemonStore backed by a fresh fake Redis server."""
    store = PokemonStore()
    store.redis = FakeRedis(server=FakeServer(), decode_responses=True)
    return store

@pytest.fixture
def pokemon_service(store):
    return PokemonService(store=store)


# --- CREATE ---

@pytest.mark.asyncio
async def test_create_lowercases_name(pokemon_service):
    result = await pokemon_service.create(CreatePokemon(name="PikaChu", no=25))

    assert isinstance(result, Pokemon)
    assert result.name == "pikachu"
    assert result.no == 25
    assert result.id

@pytest.mark.asyncio
async def test_create_duplicate_no_raises_duplicate_entity(pokemon_service, store):
    await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    with pytest.raises(DuplicateEntityError) as excinfo:
        await pokemon_service.create(CreatePokemon(name="raichu", no=25))

    assert excinfo.value.status_code == 400
    assert '"no": 25' in excinfo.value.detail
    assert await store.count() == 1

@pytest.mark.asyncio
async def test_create_duplicate_name_is_case_insensitive(pokemon_service, store):
    await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    with pytest.raises(DuplicateEntityError) as excinfo:
        await pokemon_service.create(CreatePokemon(name="PIKACHU", no=26))

    assert excinfo.value.key_value == {"name": "pikachu"}
    assert await store.count() == 1

@pytest.mark.asyncio
async def test_create_store_failure_raises_opaque_internal_error():
    """Anything other than a duplicate is hidden behind a 500 that points at the logs."""
    store = AsyncMock()
    store.insert_one.side_effect = RedisConnectionError("redis is down at 10.0.0.3")
    service = PokemonService(store=store)

    with pytest.raises(InternalStoreError) as excinfo:
        await service.create(CreatePokemon(name="pikachu", no=25))

    assert excinfo.value.status_code == 500
    assert "Check server logs" in excinfo.value.detail
    assert "10.0.0.3" not in excinfo.value.detail

@pytest.mark.asyncio
async def test_create_after_failed_write_is_not_a_duplicate(pokemon_service, store, monkeypatch):
    """A create that failed mid-write must not block the same create later."""
    original_execute = Pipeline.execute

    async def failing_execute(self, raise_on_error=True):
        if self.is_transaction and self.explicit_transaction:
            raise RedisConnectionError("Connection reset by peer")
        return await original_execute(self, raise_on_error)

    monkeypatch.setattr(Pipeline, "execute", failing_execute)
    with pytest.raises(InternalStoreError):
        await pokemon_service.create(CreatePokemon(name="pikachu", no=25))
    monkeypatch.setattr(Pipeline, "execute", original_execute)

    await store.delete_many({})
    result = await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    assert result.name == "pikachu"
    assert await store.count() == 1


# --- LIST ---

@pytest.mark.asyncio
async def test_find_all_paginates_sorted_by_no_without_version(pokemon_service, store):
    await store.insert_many([{"name": f"pokemon-{no}", "no": no} for no in range(151, 0, -1)])

    result = await pokemon_service.find_all(PaginationParams(limit=10, offset=0))

    assert [pokemon.no for pokemon in result] == list(range(1, 11))
    assert all(pokemon.version is None for pokemon in result)

@pytest.mark.asyncio
async def test_find_all_offset(pokemon_service, store):
    await store.insert_many([{"name": f"pokemon-{no}", "no": no} for no in range(1, 21)])

    result = await pokemon_service.find_all(PaginationParams(limit=5, offset=15))

    assert [pokemon.no for pokemon in result] == [16, 17, 18, 19, 20]

def test_pagination_defaults():
    pagination = PaginationParams()
    assert pagination.limit == 10
    assert pagination.offset == 0


# --- FIND ONE ---

@pytest.mark.asyncio
async def test_find_one_by_no_wins_over_name(pokemon_service):
    await pokemon_service.create(CreatePokemon(name="25", no=3))
    pikachu = await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    result = await pokemon_service.find_one("25")

    assert result.id == pikachu.id

@pytest.mark.asyncio
async def test_find_one_numeric_term_falls_back_to_name(pokemon_service):
    created = await pokemon_service.create(CreatePokemon(name="151", no=1))

    result = await pokemon_service.find_one("151")

    assert result.id == created.id

@pytest.mark.asyncio
async def test_find_one_by_store_id(pokemon_service):
    created = await pokemon_service.create(CreatePokemon(name="mew", no=151))

    result = await pokemon_service.find_one(created.id)

    assert result == created

@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["pikachu", "PIKACHU", " pikachu "])
async def test_find_one_by_name_ignores_case_and_whitespace(pokemon_service, term):
    created = await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    result = await pokemon_service.find_one(term)

    assert result.id == created.id

@pytest.mark.asyncio
async def test_find_one_not_found(pokemon_service):
    with pytest.raises(NotFoundError) as excinfo:
        await pokemon_service.find_one("doesnotexist")

    assert excinfo.value.status_code == 404
    assert '"doesnotexist"' in excinfo.value.detail

@pytest.mark.asyncio
async def test_find_one_stops_at_first_match():
    """Once the catalog number lookup hits, id and name lookups are skipped."""
    store = AsyncMock()
    store.find_one.return_value = {"_id": new_object_id(), "name": "pikachu", "no": 25, "__v": 0}
    service = PokemonService(store=store)

    await service.find_one("25")

    store.find_one.assert_called_once_with({"no": 25})
    store.find_by_id.assert_not_called()


# --- UPDATE ---

@pytest.mark.asyncio
async def test_update_returns_merged_record(pokemon_service):
    created = await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    result = await pokemon_service.update("pikachu", UpdatePokemon(name="RAICHU"))

    assert result.id == created.id
    assert result.name == "raichu"
    assert result.no == 25
    stored = await pokemon_service.find_one("raichu")
    assert stored.id == created.id

@pytest.mark.asyncio
async def test_update_with_empty_patch_returns_record_unchanged(pokemon_service, store):
    created = await pokemon_service.create(CreatePokemon(name="pikachu", no=25))

    result = await pokemon_service.update("25", UpdatePokemon())

    assert result == created
    assert (await store.find_by_id(created.id))["__v"] == 0

@pytest.mark.asyncio
async def test_update_duplicate_raises_duplicate_entity(pokemon_service):
    await pokemon_service.create(CreatePokemon(name="pikachu", no=25))
    await pokemon_service.create(CreatePokemon(name="raichu", no=26))

    with pytest.raises(DuplicateEntityError) as excinfo:
        await pokemon_service.update("raichu", UpdatePokemon(name="Pikachu"))

    assert excinfo.value.key_value == {"name": "pikachu"}

@pytest.mark.asyncio
async def test_update_unknown_term_raises_not_found(pokemon_service):
    with pytest.raises(NotFoundError):
        await pokemon_service.update("missingno", UpdatePokemon(no=1))

@pytest.mark.asyncio
async def test_update_store_failure_raises_internal_error():
    store = AsyncMock()
    store.find_one.return_value = {"_id": new_object_id(), "name": "pikachu", "no": 25, "__v": 0}
    store.update_one.side_effect = RedisConnectionError("connection reset")
    service = PokemonService(store=store)

    with pytest.raises(InternalStoreError) as excinfo:
        await service.update("25", UpdatePokemon(no=26))

    assert "Can't update pokemon" in excinfo.value.detail


# --- REMOVE ---

@pytest.mark.asyncio
async def test_remove_deletes_exactly_one(pokemon_service, store):
    created = await pokemon_service.create(CreatePokemon(name="pikachu", no=25))
    await pokemon_service.create(CreatePokemon(name="raichu", no=26))

    await pokemon_service.remove(created.id)

    assert await store.count() == 1
    with pytest.raises(NotFoundError):
        await pokemon_service.find_one(created.id)

@pytest.mark.asyncio
async def test_remove_unknown_id_raises_not_found(pokemon_service, store):
    await pokemon_service.create(CreatePokemon(name="pikachu", no=25))
    missing_id = new_object_id()

    with pytest.raises(NotFoundError) as excinfo:
        await pokemon_service.remove(missing_id)

    assert missing_id in excinfo.value.detail
    assert await store.count() == 1
