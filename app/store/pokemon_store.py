import re
import secrets
import time
from typing import Optional

import redis.asyncio as aioredis

from app import config
from app.store.errors import DuplicateKeyError, BulkWriteError

ASCENDING = 1
DESCENDING = -1

_OBJECT_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")


def new_object_id() -> str:
    """Generates a 24 hex character identifier: 4-byte timestamp + 8 random bytes."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def is_valid_id(value: str) -> bool:
    return isinstance(value, str) and _OBJECT_ID_PATTERN.fullmatch(value) is not None


class PokemonStore:
    """
    Document collection of Pokemon records kept in Redis.

    Layout:
      pokemon:doc:<id>   hash with the record fields (name, no, __v)
      pokemon:idx:name   unique index, name -> id
      pokemon:idx:no     unique index, no -> id
      pokemon:order      sorted set of ids scored by `no`
    """
    KEY_PREFIX = "pokemon"
    UNIQUE_FIELDS = ("name", "no")
    INT_FIELDS = ("no", "__v")

    def __init__(self, redis_url: str = None):
        if redis_url is None:
            redis_url = config.REDIS_URL
        self.redis = aioredis.from_url(redis_url, decode_responses=True)

    # --- Key helpers ---

    def _doc_key(self, doc_id: str) -> str:
        return f"{self.KEY_PREFIX}:doc:{doc_id}"

    def _index_key(self, field: str) -> str:
        return f"{self.KEY_PREFIX}:idx:{field}"

    @property
    def _order_key(self) -> str:
        return f"{self.KEY_PREFIX}:order"

    # --- Encoding ---

    @staticmethod
    def _encode(document: dict) -> dict:
        return {key: str(value) for key, value in document.items() if key != "_id"}

    def _decode(self, doc_id: str, raw: dict) -> dict:
        document = {"_id": doc_id}
        for key, value in raw.items():
            document[key] = int(value) if key in self.INT_FIELDS else value
        return document

    @staticmethod
    def _project(document: dict, projection: Optional[dict]) -> dict:
        # Only exclusion projections are supported, e.g. {"__v": 0}
        if not projection:
            return document
        return {key: value for key, value in document.items() if projection.get(key, 1)}

    @staticmethod
    def _matches(document: dict, filter: dict) -> bool:
        return all(document.get(key) == value for key, value in filter.items())

    # --- Unique index handling ---

    def _watched_keys(self) -> list[str]:
        # Keys modified by every write
        return [*(self._index_key(field) for field in self.UNIQUE_FIELDS), self._order_key]

    async def _check_unique(self, pipe, doc_id: Optional[str], values: dict, pending: dict = None) -> None:
        """Raises DuplicateKeyError if a unique value is owned by another document or staged in this batch."""
        for field in self.UNIQUE_FIELDS:
            if field not in values:
                continue
            value = values[field]
            owner = await pipe.hget(self._index_key(field), str(value))
            if (owner is not None and owner != doc_id) or (pending and str(value) in pending[field]):
                raise DuplicateKeyError({field: value})

    def _queue_insert(self, pipe, stored: dict) -> None:
        doc_id = stored["_id"]
        pipe.hset(self._doc_key(doc_id), mapping=self._encode(stored))
        for field in self.UNIQUE_FIELDS:
            pipe.hset(self._index_key(field), str(stored[field]), doc_id)
        pipe.zadd(self._order_key, {doc_id: stored["no"]})

    def _queue_remove(self, pipe, document: dict) -> None:
        doc_id = document["_id"]
        for field in self.UNIQUE_FIELDS:
            pipe.hdel(self._index_key(field), str(document[field]))
        pipe.zrem(self._order_key, doc_id)
        pipe.delete(self._doc_key(doc_id))

    # --- Reads ---

    async def _load(self, doc_ids: list) -> list[dict]:
        if not doc_ids:
            return []
        async with self.redis.pipeline(transaction=False) as pipe:
            for doc_id in doc_ids:
                pipe.hgetall(self._doc_key(doc_id))
            raws = await pipe.execute()
        return [self._decode(doc_id, raw) for doc_id, raw in zip(doc_ids, raws) if raw]

    async def _candidate_ids(self, filter: dict) -> list:
        """Narrows the search using the id or a unique index when the filter allows it."""
        if "_id" in filter:
            return [filter["_id"]]
        for field in self.UNIQUE_FIELDS:
            if field in filter:
                doc_id = await self.redis.hget(self._index_key(field), str(filter[field]))
                return [doc_id] if doc_id else []
        return await self.redis.zrange(self._order_key, 0, -1)

    async def _find_matching(self, filter: dict) -> list[dict]:
        documents = await self._load(await self._candidate_ids(filter))
        return [document for document in documents if self._matches(document, filter)]

    async def find(
        self,
        filter: Optional[dict] = None,
        *,
        sort: int = ASCENDING,
        skip: int = 0,
        limit: int = 0,
        projection: Optional[dict] = None,
    ) -> list[dict]:
        """Returns documents matching `filter`, ordered by `no`. A limit of 0 means no limit."""
        descending = sort == DESCENDING
        if not filter:
            end = skip + limit - 1 if limit else -1
            doc_ids = await self.redis.zrange(self._order_key, skip, end, desc=descending)
            documents = await self._load(doc_ids)
        else:
            documents = sorted(
                await self._find_matching(filter),
                key=lambda document: document["no"],
                reverse=descending,
            )
            documents = documents[skip:skip + limit] if limit else documents[skip:]
        return [self._project(document, projection) for document in documents]

    async def find_by_id(self, doc_id: str) -> Optional[dict]:
        raw = await self.redis.hgetall(self._doc_key(doc_id))
        return self._decode(doc_id, raw) if raw else None

    async def find_one(self, filter: dict) -> Optional[dict]:
        documents = await self._find_matching(filter)
        return documents[0] if documents else None

    async def count(self) -> int:
        return await self.redis.zcard(self._order_key)

    # --- Writes ---
    # Each write is one WATCH/MULTI/EXEC transaction: either the document and its
    # index entries all change, or none do.

    async def insert_one(self, document: dict) -> dict:
        """Inserts a document and returns it with its generated `_id` and `__v`."""
        stored = {"_id": new_object_id(), **document, "__v": 0}

        async def write(pipe):
            await self._check_unique(pipe, stored["_id"], document)
            pipe.multi()
            self._queue_insert(pipe, stored)

        await self.redis.transaction(write, *self._watched_keys())
        return stored

    async def insert_many(self, documents: list[dict], ordered: bool = True) -> list[str]:
        """
        Inserts all documents in a single transaction. Documents that collide with stored
        records or with earlier documents of the batch are reported in a BulkWriteError;
        the others are still written. Ordered inserts stop at the first failure.
        """
        staged = []
        write_errors = []

        async def write(pipe):
            staged.clear()
            write_errors.clear()
            pending = {field: set() for field in self.UNIQUE_FIELDS}
            for index, document in enumerate(documents):
                try:
                    await self._check_unique(pipe, None, document, pending)
                except DuplicateKeyError as e:
                    write_errors.append({"index": index, "code": e.code, "keyValue": e.key_value})
                    if ordered:
                        break
                    continue
                for field in self.UNIQUE_FIELDS:
                    pending[field].add(str(document[field]))
                staged.append({"_id": new_object_id(), **document, "__v": 0})

            pipe.multi()
            for stored in staged:
                self._queue_insert(pipe, stored)

        await self.redis.transaction(write, *self._watched_keys())

        inserted_ids = [stored["_id"] for stored in staged]
        if write_errors:
            raise BulkWriteError(inserted_ids, write_errors)
        return inserted_ids

    async def update_one(self, doc_id: str, patch: dict) -> int:
        """Applies `patch` to the document with `doc_id`. Returns the matched count."""
        doc_key = self._doc_key(doc_id)

        async def write(pipe):
            raw = await pipe.hgetall(doc_key)
            if not raw:
                return 0
            if not patch:
                return 1
            current = self._decode(doc_id, raw)

            changed = {
                field: patch[field]
                for field in self.UNIQUE_FIELDS
                if field in patch and patch[field] != current[field]
            }
            await self._check_unique(pipe, doc_id, changed)

            pipe.multi()
            for field, value in changed.items():
                pipe.hdel(self._index_key(field), str(current[field]))
                pipe.hset(self._index_key(field), str(value), doc_id)
            pipe.hset(doc_key, mapping=self._encode(patch))
            pipe.hincrby(doc_key, "__v", 1)
            if "no" in changed:
                pipe.zadd(self._order_key, {doc_id: changed["no"]})
            return 1

        return await self.redis.transaction(
            write, doc_key, *self._watched_keys(), value_from_callable=True
        )

    async def delete_one(self, filter: dict) -> int:
        async def write(pipe):
            document = await self.find_one(filter)
            if document is None:
                return 0
            pipe.multi()
            self._queue_remove(pipe, document)
            return 1

        return await self.redis.transaction(write, *self._watched_keys(), value_from_callable=True)

    async def delete_many(self, filter: Optional[dict] = None) -> int:
        async def write(pipe):
            if filter:
                documents = await self._find_matching(filter)
                pipe.multi()
                for document in documents:
                    self._queue_remove(pipe, document)
                return len(documents)

            # Wipe: drop every document along with the index and ordering keys
            doc_ids = await pipe.zrange(self._order_key, 0, -1)
            pipe.multi()
            for doc_id in doc_ids:
                pipe.delete(self._doc_key(doc_id))
            pipe.delete(*self._watched_keys())
            return len(doc_ids)

        return await self.redis.transaction(write, *self._watched_keys(), value_from_callable=True)

    async def close(self) -> None:
        """Close Redis connection (call on app shutdown)."""
        await self.redis.aclose()
