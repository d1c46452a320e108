"""User accounts.

Registration is unauthenticated: ``create_user`` takes no actor. Token
issuing and password hashing happen outside the core, so only already
hashed credentials should ever reach ``attributes``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..permissions.actions import Action
from ..permissions.constants import Category, Layers, Relations, Roles
from ..store.cascade import delete_block_cascade
from ..store.models import Block
from .base import SCHOOL_LABEL, USER_LABEL, BaseManager, provided

logger = logging.getLogger(__name__)


class UserManager(BaseManager):
    label = USER_LABEL

    async def create_user(
        self,
        user_id: str,
        username: str,
        email: str,
        role: str = Roles.USER,
        **attributes: Any,
    ) -> Block:
        """Register a user and apply the baseline grants of ``role``.

        Raises:
            AlreadyExistsError: ``user_id`` is taken.
        """
        block = Block(
            id=user_id,
            label=self.label,
            attributes={"username": username, "email": email, "role": role, **provided(attributes)},
            created_by=user_id,
        )
        result = await self.store.add_block(block)
        if not result:
            raise result.error()
        await self.engine.grant_role_baseline(user_id, role)
        logger.info("Created user %s with role %s", user_id, role)
        return result

    async def get_user(self, actor_id: str, user_id: str) -> Block:
        actor = await self._get_actor(actor_id)
        await self._require(actor, Layers.user(user_id), Action.READ, category=self._category(actor, user_id))
        return await self._get_or_raise(self.key(user_id))

    async def list_users(self, actor_id: str) -> list[Block]:
        actor = await self._get_actor(actor_id)
        await self._require(actor, Layers.USER, Action.READ)
        return await self.store.list_blocks(self.label)

    async def update_user(
        self,
        actor_id: str,
        user_id: str,
        role: Optional[str] = None,
        **attributes: Any,
    ) -> Block:
        """Update profile attributes; changing ``role`` needs ``config`` on the user.

        A role change applies the new role's baseline grants. Grants from
        the previous role stay in place.
        """
        actor = await self._get_actor(actor_id)
        layer_id = Layers.user(user_id)
        await self._get_or_raise(self.key(user_id))
        if role is not None:
            # the role table, never ownership: nobody promotes themselves
            await self._require(actor, layer_id, Action.CONFIG)
        changes = provided(attributes)
        if changes or role is None:
            await self._require(actor, layer_id, Action.UPDATE, category=self._category(actor, user_id))
        if role is not None:
            changes["role"] = role
        result = await self.store.update_block(self.key(user_id), changes, updated_by=actor_id)
        if not result:
            raise result.error()
        if role is not None:
            await self.engine.grant_role_baseline(user_id, role)
            logger.info("User %s role set to %s by %s", user_id, role, actor_id)
        return result

    async def delete_user(self, actor_id: str, user_id: str) -> None:
        """Delete a user and drop them from every school's admin list.

        Only roles the ``board.user`` table allows may delete; users cannot
        delete their own account.
        """
        actor = await self._get_actor(actor_id)
        # role table only: owning an account does not allow deleting it
        await self._require(actor, Layers.user(user_id), Action.DELETE)
        key = self.key(user_id)
        await self._get_or_raise(key)
        schools = await self.store.list_blocks(SCHOOL_LABEL)
        inbound = []
        for school in schools:
            if key in await self.store.nav_relation(school.key, Relations.ADMINS):
                inbound.append((school.key, Relations.ADMINS))
        await delete_block_cascade(self.store, key, inbound=inbound)

    @staticmethod
    def _category(actor: Block, user_id: str) -> Optional[str]:
        if actor.id == user_id:
            return Category.OWNER
        return None


__all__ = ["UserManager"]
