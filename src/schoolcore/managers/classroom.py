"""Classrooms within a school."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..exceptions import ConflictError, MembersRemainError, NotFoundError
from ..permissions.actions import Action
from ..permissions.constants import Layers, Relations
from ..store.cascade import delete_block_cascade
from ..store.models import Block, block_key
from .base import CLASSROOM_LABEL, SCHOOL_LABEL, BaseManager, new_id, provided

logger = logging.getLogger(__name__)


class ClassroomManager(BaseManager):
    label = CLASSROOM_LABEL

    async def _get_classroom(self, classroom_id: str) -> Block:
        return await self._get_or_raise(self.key(classroom_id))

    async def create_classroom(
        self,
        actor_id: str,
        school_id: str,
        name: str,
        classroom_id: Optional[str] = None,
        **attributes: Any,
    ) -> Block:
        """Create a classroom and link it under ``school._classrooms``."""
        actor = await self._get_actor(actor_id)
        school_key = block_key(SCHOOL_LABEL, school_id)
        await self._get_or_raise(school_key)
        # creating a classroom is a write inside the school instance
        await self._require(
            actor, Layers.school(school_id), Action.CREATE, category=await self._school_category(actor, school_id)
        )
        block = Block(
            id=classroom_id or new_id(),
            label=self.label,
            attributes={"name": name, "school_id": school_id, "resources": [], **provided(attributes)},
            created_by=actor_id,
        )
        result = await self.store.add_block(block)
        if not result:
            raise result.error()
        await self.store.update_relations(school_key, add={Relations.CLASSROOMS: [block.key]})
        logger.info("Classroom %s created in school %s by %s", block.id, school_id, actor_id)
        return result

    async def get_classroom(self, actor_id: str, classroom_id: str) -> Block:
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        await self._authorize(actor, classroom, Action.READ)
        return classroom

    async def update_classroom(self, actor_id: str, classroom_id: str, **attributes: Any) -> Block:
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        await self._authorize(actor, classroom, Action.UPDATE)
        # moving between schools goes through delete + create
        changes = {k: v for k, v in provided(attributes).items() if k != "school_id"}
        result = await self.store.update_block(classroom.key, changes, updated_by=actor_id)
        if not result:
            raise result.error()
        return result

    async def delete_classroom(self, actor_id: str, classroom_id: str) -> None:
        """Delete a classroom with no students.

        The store would happily delete it; refusing is this method's job.

        Raises:
            MembersRemainError: students are still enrolled.
        """
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        await self._authorize(actor, classroom, Action.DELETE)
        if await self.store.nav_relation(classroom.key, Relations.STUDENTS):
            raise MembersRemainError(f"Classroom {classroom_id} still has students", key=classroom.key)
        school_key = block_key(SCHOOL_LABEL, classroom.attributes["school_id"])
        await delete_block_cascade(self.store, classroom.key, inbound=[(school_key, Relations.CLASSROOMS)])

    async def list_school_classrooms(self, actor_id: str, school_id: str) -> list[Block]:
        actor = await self._get_actor(actor_id)
        school_key = block_key(SCHOOL_LABEL, school_id)
        await self._get_or_raise(school_key)
        await self._require(
            actor, Layers.school(school_id), Action.READ, category=await self._school_category(actor, school_id)
        )
        members = await self.store.nav_relation(school_key, Relations.CLASSROOMS, label=self.label)
        return await self._blocks(members)

    # ── Resources ───────────────────────────────────────

    async def add_resource(self, actor_id: str, classroom_id: str, resource: str) -> Block:
        """Append ``resource`` to the classroom's resource list.

        Raises:
            ConflictError: The classroom already lists ``resource``.
        """
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        await self._authorize(actor, classroom, Action.UPDATE)
        resources = list(classroom.attributes.get("resources", []))
        if resource in resources:
            raise ConflictError(f"Resource {resource!r} already in classroom {classroom_id}", key=classroom.key)
        resources.append(resource)
        return await self._set_resources(classroom, resources, actor_id)

    async def remove_resource(self, actor_id: str, classroom_id: str, resource: str) -> Block:
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        await self._authorize(actor, classroom, Action.UPDATE)
        resources = list(classroom.attributes.get("resources", []))
        if resource not in resources:
            raise NotFoundError(f"Resource {resource!r} not in classroom {classroom_id}", key=classroom.key)
        resources.remove(resource)
        return await self._set_resources(classroom, resources, actor_id)

    async def _set_resources(self, classroom: Block, resources: list, actor_id: str) -> Block:
        result = await self.store.update_block(classroom.key, {"resources": resources}, updated_by=actor_id)
        if not result:
            raise result.error()
        return result

    async def _authorize(self, actor: Block, classroom: Block, action: Action) -> None:
        school_id = classroom.attributes["school_id"]
        await self._require(
            actor,
            Layers.classroom(classroom.id),
            action,
            category=await self._school_category(actor, school_id),
        )


__all__ = ["ClassroomManager"]
