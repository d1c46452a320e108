"""Shared plumbing for domain managers.

Managers are the consumers of the core: authorize with the engine, then
read or write the store. They raise ``PermissionDeniedError``,
``NotFoundError`` and ``ConflictError`` subclasses; mapping those to a
transport is left to whatever sits in front of them.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from uuid import uuid4

from ..exceptions import PermissionDeniedError
from ..permissions.actions import Action
from ..permissions.constants import Category, Relations, Roles
from ..permissions.engine import AuthorizationEngine
from ..store.base import EntityStore
from ..store.models import Block, NotFound, block_key

logger = logging.getLogger(__name__)

USER_LABEL = "user"
SCHOOL_LABEL = "school"
CLASSROOM_LABEL = "classroom"
STUDENT_LABEL = "student"


def new_id() -> str:
    return str(uuid4())


def provided(values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values so partial updates only touch what was passed."""
    return {k: v for k, v in values.items() if v is not None}


class BaseManager:
    """Authorization + storage helpers shared by every manager."""

    label: str = ""

    def __init__(self, engine: AuthorizationEngine, store: EntityStore) -> None:
        self.engine = engine
        self.store = store

    def key(self, entity_id: str) -> str:
        return block_key(self.label, entity_id)

    async def _get_actor(self, actor_id: str) -> Block:
        """The calling user's block. Unknown callers are denied, not 404'd."""
        actor = await self.store.get_block(block_key(USER_LABEL, actor_id))
        if actor is None:
            raise PermissionDeniedError("Unknown user", user_id=actor_id)
        return actor

    async def _get_or_raise(self, key: str) -> Block:
        block = await self.store.get_block(key)
        if block is None:
            raise NotFound(key).error()
        return block

    async def _school_category(self, actor: Block, school_id: str) -> str:
        """Category of ``actor`` for resources inside ``school_id``.

        Superadmins are ``superAdmin`` everywhere; members of the school's
        ``_admins`` relation are ``admin`` for that school only.
        """
        if actor.attributes.get("role") == Roles.SUPER_ADMIN:
            return Category.SUPER_ADMIN
        admins = await self.store.nav_relation(block_key(SCHOOL_LABEL, school_id), Relations.ADMINS)
        if actor.key in admins:
            return Category.ADMIN
        return Category.ANYONE

    async def _require(
        self,
        actor: Block,
        layer_id: str,
        action: Action,
        category: Optional[str] = None,
    ) -> None:
        await self.engine.require(
            actor.attributes.get("role"),
            layer_id,
            action,
            user_id=actor.id,
            category=category,
        )

    async def _blocks(self, keys) -> list[Block]:
        """Fetch ``keys`` in order, skipping dangling references."""
        blocks = []
        for key in keys:
            block = await self.store.get_block(key)
            if block is None:
                logger.warning("Dangling relation member %s", key)
                continue
            blocks.append(block)
        return blocks


__all__ = [
    "BaseManager",
    "CLASSROOM_LABEL",
    "SCHOOL_LABEL",
    "STUDENT_LABEL",
    "USER_LABEL",
    "new_id",
    "provided",
]
