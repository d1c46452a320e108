"""Schools and their administrators."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..exceptions import MembersRemainError
from ..permissions.actions import Action
from ..permissions.constants import Layers, Relations
from ..store.cascade import delete_block_cascade, has_members
from ..store.models import Block, block_key
from .base import SCHOOL_LABEL, USER_LABEL, BaseManager, new_id, provided

logger = logging.getLogger(__name__)


class SchoolManager(BaseManager):
    label = SCHOOL_LABEL

    async def create_school(
        self,
        actor_id: str,
        name: str,
        school_id: Optional[str] = None,
        **attributes: Any,
    ) -> Block:
        """Create a school. Only roles allowed ``create`` on ``board.school`` may.

        Raises:
            PermissionDeniedError: the actor may not create schools.
            AlreadyExistsError: ``school_id`` is taken.
        """
        actor = await self._get_actor(actor_id)
        await self._require(actor, Layers.SCHOOL, Action.CREATE)
        block = Block(
            id=school_id or new_id(),
            label=self.label,
            attributes={"name": name, **provided(attributes)},
            created_by=actor_id,
        )
        result = await self.store.add_block(block)
        if not result:
            raise result.error()
        logger.info("School %s created by %s", block.id, actor_id)
        return result

    async def get_school(self, actor_id: str, school_id: str) -> Block:
        actor = await self._get_actor(actor_id)
        await self._require(
            actor, Layers.school(school_id), Action.READ, category=await self._school_category(actor, school_id)
        )
        return await self._get_or_raise(self.key(school_id))

    async def list_schools(self, actor_id: str) -> list[Block]:
        actor = await self._get_actor(actor_id)
        await self._require(actor, Layers.SCHOOL, Action.READ)
        return await self.store.list_blocks(self.label)

    async def update_school(self, actor_id: str, school_id: str, **attributes: Any) -> Block:
        """Merge ``attributes`` into the school.

        School admins hold a direct ``update`` grant on their own school;
        the tree alone only lets them read it.
        """
        actor = await self._get_actor(actor_id)
        await self._require(
            actor, Layers.school(school_id), Action.UPDATE, category=await self._school_category(actor, school_id)
        )
        result = await self.store.update_block(self.key(school_id), provided(attributes), updated_by=actor_id)
        if not result:
            raise result.error()
        return result

    async def delete_school(self, actor_id: str, school_id: str) -> None:
        """Delete an empty school.

        Raises:
            MembersRemainError: the school still has classrooms or students.
        """
        actor = await self._get_actor(actor_id)
        await self._require(
            actor, Layers.school(school_id), Action.DELETE, category=await self._school_category(actor, school_id)
        )
        key = self.key(school_id)
        await self._get_or_raise(key)
        if await has_members(self.store, key, (Relations.CLASSROOMS, Relations.STUDENTS)):
            raise MembersRemainError(f"School {school_id} still has classrooms or students", key=key)
        await delete_block_cascade(self.store, key)

    # ── Administrators ──────────────────────────────────

    async def assign_school_admin(self, actor_id: str, school_id: str, admin_id: str) -> Block:
        """Make ``admin_id`` an administrator of ``school_id``.

        Adds the user to the school's ``_admins`` relation and stores a
        direct ``update`` grant on ``board.school.<school_id>``.

        Returns:
            The admin's user block.
        """
        actor = await self._get_actor(actor_id)
        layer_id = Layers.school(school_id)
        await self._require(actor, layer_id, Action.CONFIG, category=await self._school_category(actor, school_id))
        key = self.key(school_id)
        await self._get_or_raise(key)
        admin = await self._get_or_raise(block_key(USER_LABEL, admin_id))
        await self.store.update_relations(key, add={Relations.ADMINS: [admin.key]})
        await self.engine.add_direct_grant(admin_id, layer_id, Action.UPDATE)
        logger.info("User %s assigned admin of school %s by %s", admin_id, school_id, actor_id)
        return admin

    async def list_school_admins(self, actor_id: str, school_id: str) -> list[Block]:
        actor = await self._get_actor(actor_id)
        await self._require(
            actor, Layers.school(school_id), Action.READ, category=await self._school_category(actor, school_id)
        )
        key = self.key(school_id)
        await self._get_or_raise(key)
        return await self._blocks(await self.store.nav_relation(key, Relations.ADMINS, label=USER_LABEL))


__all__ = ["SchoolManager"]
