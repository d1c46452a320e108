"""Entity store contract.

Blocks are nodes keyed by ``label:id``; relations are named, scored edge
sets keyed by ``(source_key, relation_name)``. The store does not enforce
referential integrity: removing a block leaves inbound edges in other
blocks' relations until the caller cleans them up (see ``cascade``).

Misses are typed results (``NotFound`` / ``AlreadyExists``); transport
failures raise ``StoreUnavailableError`` and are never retried here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional

from .models import AlreadyExists, Block, Member, NotFound


class EntityStore(ABC):
    """Async block and relation persistence."""

    # ── Blocks ──────────────────────────────────────────

    @abstractmethod
    async def get_block(self, key: str) -> Optional[Block]:
        """Return the block stored under ``key``, or ``None``."""
        raise NotImplementedError

    @abstractmethod
    async def add_block(self, block: Block) -> Block | AlreadyExists:
        """Create ``block`` in a single atomic write; ``AlreadyExists`` if the key is taken."""
        raise NotImplementedError

    @abstractmethod
    async def update_block(
        self,
        key: str,
        attributes: Mapping[str, Any],
        updated_by: Optional[str] = None,
    ) -> Block | NotFound:
        """Merge ``attributes`` into the stored block; untouched attributes survive."""
        raise NotImplementedError

    @abstractmethod
    async def delete_block(self, key: str) -> None:
        """Remove the block. Deleting an absent block is not an error."""
        raise NotImplementedError

    @abstractmethod
    async def list_blocks(self, label: str) -> list[Block]:
        """All blocks with ``label``, ordered by key."""
        raise NotImplementedError

    # ── Relations ───────────────────────────────────────

    @abstractmethod
    async def update_relations(
        self,
        key: str,
        add: Optional[Mapping[str, Iterable[Member]]] = None,
        remove: Optional[Mapping[str, Iterable[Member]]] = None,
        set: Optional[Mapping[str, Iterable[Member]]] = None,
    ) -> None:
        """Apply relation changes of one source atomically.

        ``set`` replaces a named relation, ``add`` unions members into it
        and ``remove`` subtracts members by key. Applied in that order.
        """
        raise NotImplementedError

    @abstractmethod
    async def nav_relation(self, key: str, relation: str, label: Optional[str] = None) -> dict[str, int]:
        """Members of ``relation`` as ``{member_key: score}``, optionally only those with ``label``."""
        raise NotImplementedError

    @abstractmethod
    async def delete_relations(self, key: str) -> None:
        """Drop every relation owned by ``key``. Inbound edges are left alone."""
        raise NotImplementedError

    @abstractmethod
    async def relation_names(self, key: str) -> list[str]:
        """Names of the non-empty relations owned by ``key``."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


__all__ = ["EntityStore"]
