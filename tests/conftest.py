"""Shared fixtures: every store test runs against both backends."""

from __future__ import annotations

import fakeredis
import pytest

from schoolcore.permissions import MemoryGrantStore
from schoolcore.store import EntityStore, MemoryEntityStore, RedisEntityStore, RedisGrantStore


def fake_redis_client() -> fakeredis.FakeAsyncRedis:
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_client() -> fakeredis.FakeAsyncRedis:
    return fake_redis_client()


@pytest.fixture(params=["memory", "redis"])
def store(request: pytest.FixtureRequest) -> EntityStore:
    if request.param == "redis":
        return RedisEntityStore(fake_redis_client(), prefix="test")
    return MemoryEntityStore()


@pytest.fixture(params=["memory", "redis"])
def grant_store(request: pytest.FixtureRequest):
    if request.param == "redis":
        return RedisGrantStore(fake_redis_client(), prefix="test")
    return MemoryGrantStore()
