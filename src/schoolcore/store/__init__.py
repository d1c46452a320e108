"""Entity/relation store for schoolcore.

Provides:
- ``EntityStore`` — async block and relation contract
- ``MemoryEntityStore`` / ``RedisEntityStore`` — backends
- ``RedisGrantStore`` — direct grants in Redis
- cascade helpers for caller-driven cleanup
- ``create_store()`` / ``create_grant_store()`` — backend selection from CoreConfig
"""

from __future__ import annotations

from typing import Optional

from ..config import CoreConfig, StoreBackend, load_config_from_env
from ..exceptions import ConfigurationError
from ..permissions.grants import GrantStore, MemoryGrantStore
from .base import EntityStore
from .cascade import delete_block_cascade, detach, has_members
from .memory import MemoryEntityStore
from .models import (
    AlreadyExists,
    Block,
    NotFound,
    RelationChanges,
    StoreMiss,
    block_key,
    label_of,
    parse_member,
)
from .redis_store import RedisEntityStore, RedisGrantStore


def _redis_url(config: CoreConfig) -> str:
    if not config.redis_url:
        raise ConfigurationError("STORE_BACKEND=redis requires REDIS_URL")
    return config.redis_url


def create_store(config: Optional[CoreConfig] = None) -> EntityStore:
    """Build the entity store selected by ``config.store_backend``."""
    config = config or load_config_from_env()
    if config.store_backend == StoreBackend.REDIS:
        return RedisEntityStore.from_url(_redis_url(config), prefix=config.key_prefix)
    return MemoryEntityStore()


def create_grant_store(config: Optional[CoreConfig] = None) -> GrantStore:
    """Build the direct grant store selected by ``config.store_backend``."""
    config = config or load_config_from_env()
    if config.store_backend == StoreBackend.REDIS:
        return RedisGrantStore.from_url(_redis_url(config), prefix=config.key_prefix)
    return MemoryGrantStore()


__all__ = [
    "AlreadyExists",
    "Block",
    "EntityStore",
    "MemoryEntityStore",
    "NotFound",
    "RedisEntityStore",
    "RedisGrantStore",
    "RelationChanges",
    "StoreMiss",
    "block_key",
    "create_grant_store",
    "create_store",
    "delete_block_cascade",
    "detach",
    "has_members",
    "label_of",
    "parse_member",
]
