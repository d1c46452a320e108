"""In-process entity store.

Every method runs to completion without awaiting mid-mutation, so each
call is atomic for other coroutines on the same event loop. Not shared
across processes.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from .base import EntityStore
from .models import AlreadyExists, Block, Member, NotFound, RelationChanges, filter_by_label, label_of

logger = logging.getLogger(__name__)


class MemoryEntityStore(EntityStore):
    """Dictionary-backed store for tests and single-process tools."""

    def __init__(self) -> None:
        self._blocks: dict[str, Block] = {}
        self._relations: dict[str, dict[str, dict[str, int]]] = {}

    async def get_block(self, key: str) -> Optional[Block]:
        block = self._blocks.get(key)
        return block.model_copy(deep=True) if block is not None else None

    async def add_block(self, block: Block) -> Block | AlreadyExists:
        if block.key in self._blocks:
            return AlreadyExists(block.key)
        self._blocks[block.key] = block.model_copy(deep=True)
        logger.debug("Added block %s", block.key)
        return block.model_copy(deep=True)

    async def update_block(
        self,
        key: str,
        attributes: Mapping[str, Any],
        updated_by: Optional[str] = None,
    ) -> Block | NotFound:
        current = self._blocks.get(key)
        if current is None:
            return NotFound(key)
        updated = current.merged(attributes, updated_by)
        self._blocks[key] = updated
        return updated.model_copy(deep=True)

    async def delete_block(self, key: str) -> None:
        if self._blocks.pop(key, None) is not None:
            logger.debug("Deleted block %s", key)

    async def list_blocks(self, label: str) -> list[Block]:
        return [
            self._blocks[key].model_copy(deep=True)
            for key in sorted(self._blocks)
            if label_of(key) == label
        ]

    async def update_relations(
        self,
        key: str,
        add: Optional[Mapping[str, Iterable[Member]]] = None,
        remove: Optional[Mapping[str, Iterable[Member]]] = None,
        set: Optional[Mapping[str, Iterable[Member]]] = None,
    ) -> None:
        changes = RelationChanges.build(add=add, remove=remove, set=set)
        if changes.is_empty():
            return
        relations = self._relations.setdefault(key, {})
        for name, members in changes.set.items():
            relations[name] = dict(members)
        for name, members in changes.add.items():
            relations.setdefault(name, {}).update(members)
        for name, keys in changes.remove.items():
            current = relations.get(name)
            if current is None:
                continue
            for member_key in keys:
                current.pop(member_key, None)
        for name in [n for n, members in relations.items() if not members]:
            del relations[name]
        if not relations:
            del self._relations[key]

    async def nav_relation(self, key: str, relation: str, label: Optional[str] = None) -> dict[str, int]:
        return filter_by_label(self._relations.get(key, {}).get(relation, {}), label)

    async def delete_relations(self, key: str) -> None:
        self._relations.pop(key, None)

    async def relation_names(self, key: str) -> list[str]:
        return sorted(self._relations.get(key, {}))


__all__ = ["MemoryEntityStore"]
