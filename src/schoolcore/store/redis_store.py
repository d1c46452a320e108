"""Redis-backed entity and grant stores.

Key layout (``{p}`` is ``CoreConfig.key_prefix``):

    {p}:block:{label}:{id}          JSON document of the block
    {p}:label:{label}               set of block keys with that label
    {p}:rel:{source_key}:{name}     sorted set member_key → score
    {p}:rels:{source_key}           set of relation names owned by source
    {p}:grants:{user_id}            hash layer_id → action

Creation uses WATCH + MULTI so the block and its label index land
together or not at all; updates are WATCH-guarded read-merge-write;
relation changes of one call go out in a single MULTI/EXEC.

Connection and timeout failures surface as ``StoreUnavailableError``;
nothing here retries them.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, WatchError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..exceptions import StorageError, StoreUnavailableError
from ..permissions.actions import Action, parse_action
from ..permissions.grants import DirectGrant, GrantStore
from .base import EntityStore
from .models import AlreadyExists, Block, Member, NotFound, RelationChanges, filter_by_label, label_of

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "schoolcore"


class _RedisBacked:
    """Shared client handling and error translation."""

    def __init__(self, client: aioredis.Redis, prefix: str = DEFAULT_PREFIX) -> None:
        self._r = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = DEFAULT_PREFIX):
        return cls(aioredis.from_url(url, decode_responses=True), prefix=prefix)

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis unavailable during %s: %s", operation, e)
            raise StoreUnavailableError(f"Redis unavailable during {operation}", operation=operation) from e
        except WatchError:
            raise
        except RedisError as e:
            logger.error("Redis error during %s: %s", operation, e)
            raise StorageError(f"Redis error during {operation}: {e}", operation=operation) from e

    async def close(self) -> None:
        await self._r.aclose()


class RedisEntityStore(_RedisBacked, EntityStore):
    """Entity store over a shared Redis instance."""

    def _block_key(self, key: str) -> str:
        return f"{self._prefix}:block:{key}"

    def _label_key(self, label: str) -> str:
        return f"{self._prefix}:label:{label}"

    def _rel_key(self, key: str, relation: str) -> str:
        return f"{self._prefix}:rel:{key}:{relation}"

    def _rels_key(self, key: str) -> str:
        return f"{self._prefix}:rels:{key}"

    # ── Blocks ──────────────────────────────────────────

    async def get_block(self, key: str) -> Optional[Block]:
        async with self._guard("get_block"):
            raw = await self._r.get(self._block_key(key))
        return Block.model_validate_json(raw) if raw else None

    async def add_block(self, block: Block) -> Block | AlreadyExists:
        bkey = self._block_key(block.key)
        async with self._guard("add_block"):
            async with self._r.pipeline(transaction=True) as pipe:
                await pipe.watch(bkey)
                if await pipe.exists(bkey):
                    await pipe.unwatch()
                    return AlreadyExists(block.key)
                pipe.multi()
                pipe.set(bkey, block.model_dump_json())
                pipe.sadd(self._label_key(block.label), block.key)
                try:
                    await pipe.execute()
                except WatchError:
                    # someone else wrote the key between WATCH and EXEC
                    return AlreadyExists(block.key)
        logger.debug("Added block %s", block.key)
        return block

    async def update_block(
        self,
        key: str,
        attributes: Mapping[str, Any],
        updated_by: Optional[str] = None,
    ) -> Block | NotFound:
        bkey = self._block_key(key)
        async with self._guard("update_block"):
            while True:
                async with self._r.pipeline(transaction=True) as pipe:
                    await pipe.watch(bkey)
                    raw = await pipe.get(bkey)
                    if not raw:
                        await pipe.unwatch()
                        return NotFound(key)
                    updated = Block.model_validate_json(raw).merged(attributes, updated_by)
                    pipe.multi()
                    pipe.set(bkey, updated.model_dump_json())
                    try:
                        await pipe.execute()
                    except WatchError:
                        logger.debug("Concurrent write on %s, re-reading", key)
                        continue
                return updated

    async def delete_block(self, key: str) -> None:
        async with self._guard("delete_block"):
            async with self._r.pipeline(transaction=True) as pipe:
                pipe.delete(self._block_key(key))
                pipe.srem(self._label_key(label_of(key)), key)
                await pipe.execute()

    async def list_blocks(self, label: str) -> list[Block]:
        async with self._guard("list_blocks"):
            keys = sorted(await self._r.smembers(self._label_key(label)))
            if not keys:
                return []
            raws = await self._r.mget([self._block_key(k) for k in keys])
        return [Block.model_validate_json(raw) for raw in raws if raw]

    # ── Relations ───────────────────────────────────────

    async def update_relations(
        self,
        key: str,
        add: Optional[Mapping[str, Iterable[Member]]] = None,
        remove: Optional[Mapping[str, Iterable[Member]]] = None,
        set: Optional[Mapping[str, Iterable[Member]]] = None,
    ) -> None:
        changes = RelationChanges.build(add=add, remove=remove, set=set)
        if changes.is_empty():
            return
        rels_key = self._rels_key(key)
        async with self._guard("update_relations"):
            async with self._r.pipeline(transaction=True) as pipe:
                for name, members in changes.set.items():
                    pipe.delete(self._rel_key(key, name))
                    if members:
                        pipe.zadd(self._rel_key(key, name), members)
                        pipe.sadd(rels_key, name)
                    else:
                        pipe.srem(rels_key, name)
                for name, members in changes.add.items():
                    if members:
                        pipe.zadd(self._rel_key(key, name), members)
                        pipe.sadd(rels_key, name)
                for name, keys in changes.remove.items():
                    if keys:
                        pipe.zrem(self._rel_key(key, name), *keys)
                await pipe.execute()

    async def nav_relation(self, key: str, relation: str, label: Optional[str] = None) -> dict[str, int]:
        async with self._guard("nav_relation"):
            pairs = await self._r.zrange(self._rel_key(key, relation), 0, -1, withscores=True)
        return filter_by_label({member: int(score) for member, score in pairs}, label)

    async def delete_relations(self, key: str) -> None:
        rels_key = self._rels_key(key)
        async with self._guard("delete_relations"):
            names = await self._r.smembers(rels_key)
            async with self._r.pipeline(transaction=True) as pipe:
                for name in names:
                    pipe.delete(self._rel_key(key, name))
                pipe.delete(rels_key)
                await pipe.execute()

    async def relation_names(self, key: str) -> list[str]:
        async with self._guard("relation_names"):
            names = await self._r.smembers(self._rels_key(key))
            if not names:
                return []
            async with self._r.pipeline(transaction=False) as pipe:
                ordered = sorted(names)
                for name in ordered:
                    pipe.zcard(self._rel_key(key, name))
                sizes = await pipe.execute()
        return [name for name, size in zip(ordered, sizes) if size]


class RedisGrantStore(_RedisBacked, GrantStore):
    """Direct grants as one hash per user."""

    def _grants_key(self, user_id: str) -> str:
        return f"{self._prefix}:grants:{user_id}"

    async def get(self, user_id: str, layer_id: str) -> Optional[Action]:
        async with self._guard("get_grant"):
            raw = await self._r.hget(self._grants_key(user_id), layer_id)
        return parse_action(raw) if raw else None

    async def put(self, grant: DirectGrant) -> None:
        async with self._guard("put_grant"):
            await self._r.hset(self._grants_key(grant.user_id), grant.layer_id, grant.action.value)

    async def list_for_user(self, user_id: str) -> list[DirectGrant]:
        async with self._guard("list_grants"):
            raw = await self._r.hgetall(self._grants_key(user_id))
        grants = []
        for layer_id, value in sorted(raw.items()):
            action = parse_action(value)
            if action is None:
                logger.warning("Ignoring unknown action %r in grants of %s", value, user_id)
                continue
            grants.append(DirectGrant(user_id=user_id, layer_id=layer_id, action=action))
        return grants


__all__ = [
    "RedisEntityStore",
    "RedisGrantStore",
]
