"""Redis-specific tests: key layout, grants and error translation."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.asyncio.client import Pipeline
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from schoolcore.exceptions import StorageError, StoreUnavailableError
from schoolcore.permissions import Action, AuthorizationEngine, DirectGrant, Layers, Roles
from schoolcore.store import AlreadyExists, Block, RedisEntityStore, RedisGrantStore


class TestKeyLayout:
    """Tests for the persisted key layout."""

    @pytest.mark.asyncio
    async def test_block_keys(self, redis_client) -> None:
        store = RedisEntityStore(redis_client, prefix="sc")
        await store.add_block(Block(id="7", label="school", attributes={"name": "Northside"}))

        raw = await redis_client.get("sc:block:school:7")
        assert json.loads(raw)["attributes"] == {"name": "Northside"}
        assert await redis_client.smembers("sc:label:school") == {"school:7"}

    @pytest.mark.asyncio
    async def test_relation_keys(self, redis_client) -> None:
        store = RedisEntityStore(redis_client, prefix="sc")
        await store.update_relations("school:7", add={"_students": ["student:9~2"]})

        assert await redis_client.zscore("sc:rel:school:7:_students", "student:9") == 2
        assert await redis_client.smembers("sc:rels:school:7") == {"_students"}

    @pytest.mark.asyncio
    async def test_delete_relations_removes_keys(self, redis_client) -> None:
        store = RedisEntityStore(redis_client, prefix="sc")
        await store.update_relations("school:7", add={"_students": ["student:9"], "_admins": ["user:1"]})
        await store.delete_relations("school:7")
        assert await redis_client.keys("sc:rel*") == []

    @pytest.mark.asyncio
    async def test_prefixes_isolate(self, redis_client) -> None:
        first = RedisEntityStore(redis_client, prefix="a")
        second = RedisEntityStore(redis_client, prefix="b")
        await first.add_block(Block(id="7", label="school"))
        assert await second.get_block("school:7") is None


class TestWatchedWrites:
    """Tests for writes that lose the race between WATCH and EXEC."""

    @pytest.mark.asyncio
    async def test_add_block_loses_race(self, redis_client) -> None:
        store = RedisEntityStore(redis_client, prefix="sc")
        rival = Block(id="7", label="school", attributes={"name": "Southside"})
        execute = Pipeline.execute

        async def execute_after_rival(pipe, *args, **kwargs):
            await redis_client.set("sc:block:school:7", rival.model_dump_json())
            return await execute(pipe, *args, **kwargs)

        with patch.object(Pipeline, "execute", execute_after_rival):
            result = await store.add_block(Block(id="7", label="school", attributes={"name": "Northside"}))

        assert isinstance(result, AlreadyExists)
        assert (await store.get_block("school:7")).attributes == {"name": "Southside"}
        assert await redis_client.smembers("sc:label:school") == set()

    @pytest.mark.asyncio
    async def test_update_block_retries_after_rival_write(self, redis_client) -> None:
        store = RedisEntityStore(redis_client, prefix="sc")
        await store.add_block(Block(id="7", label="school", attributes={"name": "Northside"}))
        execute = Pipeline.execute
        calls = []

        async def execute_with_rival(pipe, *args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                current = Block.model_validate_json(await redis_client.get("sc:block:school:7"))
                rival = current.merged({"phone": "555-0199"}, updated_by="u2")
                await redis_client.set("sc:block:school:7", rival.model_dump_json())
            return await execute(pipe, *args, **kwargs)

        with patch.object(Pipeline, "execute", execute_with_rival):
            updated = await store.update_block("school:7", {"name": "Northside High"}, updated_by="u1")

        assert len(calls) == 2
        assert updated.attributes == {"name": "Northside High", "phone": "555-0199"}
        assert (await store.get_block("school:7")) == updated


class TestRedisGrantStore:
    """Tests for direct grants in Redis."""

    @pytest.mark.asyncio
    async def test_hash_per_user(self, redis_client) -> None:
        grants = RedisGrantStore(redis_client, prefix="sc")
        await grants.put(DirectGrant("u1", Layers.school("7"), Action.UPDATE))
        assert await redis_client.hgetall("sc:grants:u1") == {"board.school.7": "update"}
        assert await grants.get("u1", Layers.school("7")) is Action.UPDATE
        assert await grants.get("u1", Layers.school("8")) is None

    @pytest.mark.asyncio
    async def test_unknown_stored_action_ignored(self, redis_client) -> None:
        grants = RedisGrantStore(redis_client, prefix="sc")
        await redis_client.hset("sc:grants:u1", mapping={"board.school.7": "write", "board.school": "read"})
        assert await grants.list_for_user("u1") == [DirectGrant("u1", "board.school", Action.READ)]

    @pytest.mark.asyncio
    async def test_engine_over_redis_grants(self, redis_client) -> None:
        engine = AuthorizationEngine(grants=RedisGrantStore(redis_client))
        await engine.add_direct_grant("u1", Layers.school("7"), Action.UPDATE)
        assert await engine.is_granted(Roles.SCHOOL_ADMIN, Layers.school("7"), Action.UPDATE, user_id="u1")


class TestGrantStoreContract:
    """Grant store behavior shared by both backends."""

    @pytest.mark.asyncio
    async def test_put_replaces(self, grant_store) -> None:
        await grant_store.put(DirectGrant("u1", "board.school", Action.UPDATE))
        await grant_store.put(DirectGrant("u1", "board.school", Action.READ))
        assert await grant_store.get("u1", "board.school") is Action.READ
        assert await grant_store.list_for_user("u1") == [DirectGrant("u1", "board.school", Action.READ)]

    @pytest.mark.asyncio
    async def test_missing(self, grant_store) -> None:
        assert await grant_store.get("nobody", "board") is None
        assert await grant_store.list_for_user("nobody") == []


class TestErrorTranslation:
    """Transport faults become StoreUnavailableError; nothing is retried."""

    @staticmethod
    def _broken_client(error: Exception) -> MagicMock:
        client = MagicMock()
        client.get = AsyncMock(side_effect=error)
        client.hget = AsyncMock(side_effect=error)
        client.smembers = AsyncMock(side_effect=error)
        return client

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        client = self._broken_client(RedisConnectionError("refused"))
        store = RedisEntityStore(client)
        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.get_block("school:7")
        assert exc_info.value.details["operation"] == "get_block"
        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_error(self) -> None:
        store = RedisEntityStore(self._broken_client(RedisTimeoutError("slow")))
        with pytest.raises(StoreUnavailableError):
            await store.list_blocks("school")

    @pytest.mark.asyncio
    async def test_grant_lookup_unavailable(self) -> None:
        grants = RedisGrantStore(self._broken_client(RedisConnectionError("refused")))
        engine = AuthorizationEngine(grants=grants)
        with pytest.raises(StoreUnavailableError):
            await engine.is_granted(Roles.USER, Layers.BOARD, Action.READ, user_id="u1")

    @pytest.mark.asyncio
    async def test_other_redis_errors(self) -> None:
        """Non-transport errors are StorageError but not StoreUnavailableError."""
        store = RedisEntityStore(self._broken_client(ResponseError("WRONGTYPE")))
        with pytest.raises(StorageError) as exc_info:
            await store.get_block("school:7")
        assert not isinstance(exc_info.value, StoreUnavailableError)

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = MagicMock()
        client.aclose = AsyncMock()
        await RedisEntityStore(client).close()
        client.aclose.assert_awaited_once()
