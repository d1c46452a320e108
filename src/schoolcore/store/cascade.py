"""Explicit cascade steps for block deletion.

The store only offers primitives; which inbound edges to drop when a
block goes away is the caller's policy. Managers spell it out::

    await delete_block_cascade(
        store,
        "student:9",
        inbound=[("classroom:42", "_students"), ("school:7", "_students")],
    )

Each step is a separate store call. A failure halfway leaves the steps
already applied in place.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .base import EntityStore

logger = logging.getLogger(__name__)

Edge = tuple[str, str]  # (source_key, relation_name)


async def detach(store: EntityStore, member_key: str, inbound: Iterable[Edge]) -> None:
    """Remove ``member_key`` from each ``(source_key, relation)`` listed."""
    by_source: dict[str, list[str]] = {}
    for source_key, relation in inbound:
        by_source.setdefault(source_key, []).append(relation)
    for source_key, relations in by_source.items():
        await store.update_relations(source_key, remove={name: [member_key] for name in relations})


async def has_members(store: EntityStore, key: str, relations: Iterable[str]) -> bool:
    """True if any of ``relations`` owned by ``key`` is non-empty."""
    for relation in relations:
        if await store.nav_relation(key, relation):
            return True
    return False


async def delete_block_cascade(store: EntityStore, key: str, inbound: Iterable[Edge] = ()) -> None:
    """Detach ``key`` from ``inbound`` edges, drop its own relations, then the block."""
    inbound = list(inbound)
    await detach(store, key, inbound)
    await store.delete_relations(key)
    await store.delete_block(key)
    logger.info("Deleted %s (detached from %d relations)", key, len(inbound))


__all__ = [
    "Edge",
    "delete_block_cascade",
    "detach",
    "has_members",
]
