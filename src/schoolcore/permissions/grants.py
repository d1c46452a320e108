"""Direct grants: per-user, per-layer overrides of the static tree.

A direct grant ``(user_id, layer_id, action)`` lets one user perform
``action`` (or anything ranked below it) at exactly ``layer_id``. Grants
live in their own key space, apart from the static tree, and are written
only by managers. They never expire; writing the same
``(user_id, layer_id)`` again replaces the stored action.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .actions import Action


@dataclass(frozen=True)
class DirectGrant:
    """One stored override."""

    user_id: str
    layer_id: str
    action: Action


class GrantStore(ABC):
    """Persistence for direct grants, keyed by ``(user_id, layer_id)``."""

    @abstractmethod
    async def get(self, user_id: str, layer_id: str) -> Optional[Action]:
        raise NotImplementedError

    @abstractmethod
    async def put(self, grant: DirectGrant) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[DirectGrant]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryGrantStore(GrantStore):
    """In-process grant store."""

    def __init__(self) -> None:
        self._grants: dict[str, dict[str, Action]] = {}

    async def get(self, user_id: str, layer_id: str) -> Optional[Action]:
        return self._grants.get(user_id, {}).get(layer_id)

    async def put(self, grant: DirectGrant) -> None:
        self._grants.setdefault(grant.user_id, {})[grant.layer_id] = grant.action

    async def list_for_user(self, user_id: str) -> list[DirectGrant]:
        return [
            DirectGrant(user_id=user_id, layer_id=layer_id, action=action)
            for layer_id, action in sorted(self._grants.get(user_id, {}).items())
        ]


__all__ = [
    "DirectGrant",
    "GrantStore",
    "MemoryGrantStore",
]
