"""Students, enrolled in one classroom of one school.

A student is linked from both ``classroom._students`` and
``school._students``; every write here keeps the two in step.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..exceptions import ConflictError
from ..permissions.actions import Action
from ..permissions.constants import Layers, Relations
from ..store.cascade import delete_block_cascade, detach
from ..store.models import Block, block_key
from .base import CLASSROOM_LABEL, SCHOOL_LABEL, STUDENT_LABEL, BaseManager, new_id, provided

logger = logging.getLogger(__name__)


class StudentManager(BaseManager):
    label = STUDENT_LABEL

    async def _get_classroom(self, classroom_id: str) -> Block:
        return await self._get_or_raise(block_key(CLASSROOM_LABEL, classroom_id))

    async def create_student(
        self,
        actor_id: str,
        classroom_id: str,
        name: str,
        student_id: Optional[str] = None,
        **attributes: Any,
    ) -> Block:
        """Enroll a new student in ``classroom_id`` (and its school)."""
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        school_id = classroom.attributes["school_id"]
        await self._require(
            actor, Layers.school(school_id), Action.CREATE, category=await self._school_category(actor, school_id)
        )
        block = Block(
            id=student_id or new_id(),
            label=self.label,
            attributes={
                "name": name,
                "school_id": school_id,
                "classroom_id": classroom_id,
                **provided(attributes),
            },
            created_by=actor_id,
        )
        result = await self.store.add_block(block)
        if not result:
            raise result.error()
        await self.store.update_relations(classroom.key, add={Relations.STUDENTS: [block.key]})
        await self.store.update_relations(
            block_key(SCHOOL_LABEL, school_id), add={Relations.STUDENTS: [block.key]}
        )
        logger.info("Student %s enrolled in classroom %s by %s", block.id, classroom_id, actor_id)
        return result

    async def get_student(self, actor_id: str, student_id: str) -> Block:
        actor = await self._get_actor(actor_id)
        student = await self._get_or_raise(self.key(student_id))
        await self._authorize(actor, student, Action.READ)
        return student

    async def update_student(self, actor_id: str, student_id: str, **attributes: Any) -> Block:
        actor = await self._get_actor(actor_id)
        student = await self._get_or_raise(self.key(student_id))
        await self._authorize(actor, student, Action.UPDATE)
        # enrollment changes go through transfer_student
        changes = {k: v for k, v in provided(attributes).items() if k not in ("school_id", "classroom_id")}
        result = await self.store.update_block(student.key, changes, updated_by=actor_id)
        if not result:
            raise result.error()
        return result

    async def delete_student(self, actor_id: str, student_id: str) -> None:
        actor = await self._get_actor(actor_id)
        student = await self._get_or_raise(self.key(student_id))
        await self._authorize(actor, student, Action.DELETE)
        await delete_block_cascade(self.store, student.key, inbound=self._enrollment(student))

    async def transfer_student(self, actor_id: str, student_id: str, classroom_id: str) -> Block:
        """Move a student to another classroom of the same school.

        Raises:
            ConflictError: the target classroom belongs to another school.
        """
        actor = await self._get_actor(actor_id)
        student = await self._get_or_raise(self.key(student_id))
        await self._authorize(actor, student, Action.UPDATE)
        target = await self._get_classroom(classroom_id)
        school_id = student.attributes["school_id"]
        if target.attributes["school_id"] != school_id:
            raise ConflictError(
                f"Classroom {classroom_id} is not in school {school_id}",
                key=target.key,
            )
        await self._require(
            actor,
            Layers.classroom(classroom_id),
            Action.UPDATE,
            category=await self._school_category(actor, school_id),
        )
        current = block_key(CLASSROOM_LABEL, student.attributes["classroom_id"])
        if current != target.key:
            await detach(self.store, student.key, [(current, Relations.STUDENTS)])
            await self.store.update_relations(target.key, add={Relations.STUDENTS: [student.key]})
        result = await self.store.update_block(student.key, {"classroom_id": classroom_id}, updated_by=actor_id)
        if not result:
            raise result.error()
        logger.info("Student %s moved to classroom %s by %s", student_id, classroom_id, actor_id)
        return result

    async def list_classroom_students(self, actor_id: str, classroom_id: str) -> list[Block]:
        actor = await self._get_actor(actor_id)
        classroom = await self._get_classroom(classroom_id)
        school_id = classroom.attributes["school_id"]
        await self._require(
            actor,
            Layers.classroom(classroom_id),
            Action.READ,
            category=await self._school_category(actor, school_id),
        )
        return await self._blocks(await self.store.nav_relation(classroom.key, Relations.STUDENTS, label=self.label))

    async def list_school_students(self, actor_id: str, school_id: str) -> list[Block]:
        actor = await self._get_actor(actor_id)
        school_key = block_key(SCHOOL_LABEL, school_id)
        await self._get_or_raise(school_key)
        await self._require(
            actor, Layers.school(school_id), Action.READ, category=await self._school_category(actor, school_id)
        )
        return await self._blocks(await self.store.nav_relation(school_key, Relations.STUDENTS, label=self.label))

    @staticmethod
    def _enrollment(student: Block) -> list[tuple[str, str]]:
        return [
            (block_key(CLASSROOM_LABEL, student.attributes["classroom_id"]), Relations.STUDENTS),
            (block_key(SCHOOL_LABEL, student.attributes["school_id"]), Relations.STUDENTS),
        ]

    async def _authorize(self, actor: Block, student: Block, action: Action) -> None:
        school_id = student.attributes["school_id"]
        await self._require(
            actor,
            Layers.student(student.id),
            action,
            category=await self._school_category(actor, school_id),
        )


__all__ = ["StudentManager"]
