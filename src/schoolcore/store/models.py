"""Data models for the entity/relation store.

These are Pydantic models plus the typed results the store returns
instead of raising on a miss.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..exceptions import AlreadyExistsError, NotFoundError, SchoolCoreError

# "classroom:42", "classroom:42~3" or ("classroom:42", 3)
Member = Union[str, tuple[str, int]]

DEFAULT_SCORE = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def block_key(label: str, block_id: str) -> str:
    return f"{label}:{block_id}"


def label_of(key: str) -> str:
    """Label part of a ``label:id`` key; empty when the key has none."""
    label, sep, _ = key.partition(":")
    return label if sep else ""


class Block(BaseModel):
    """A stored domain entity, identified by ``label:id``."""

    id: str
    label: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v:
            raise ValueError("Block id must not be empty")
        return v

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if not v or ":" in v:
            raise ValueError("Block label must be non-empty and contain no ':'")
        return v

    @property
    def key(self) -> str:
        return block_key(self.label, self.id)

    def merged(self, attributes: Mapping[str, Any], updated_by: Optional[str] = None) -> "Block":
        """Copy with ``attributes`` merged over the current ones and update stamps set."""
        return self.model_copy(
            update={
                "attributes": {**self.attributes, **attributes},
                "updated_at": _utcnow(),
                "updated_by": updated_by if updated_by is not None else self.updated_by,
            },
            deep=True,
        )


# ── Typed misses ────────────────────────────────────────


@dataclass(frozen=True)
class StoreMiss(ABC):
    """Falsy result for an expected-but-absent (or duplicate) entity.

    Lets callers branch with ``if not result`` and, where they want an
    exception, ``raise result.error()``.
    """

    key: str
    code: ClassVar[str] = "STORE_MISS"

    def __bool__(self) -> bool:
        return False

    @abstractmethod
    def error(self) -> SchoolCoreError:
        """The matching ``SchoolCoreError``, for callers that raise."""


@dataclass(frozen=True)
class NotFound(StoreMiss):
    code: ClassVar[str] = "NOT_FOUND"

    def error(self) -> NotFoundError:
        return NotFoundError(f"{self.key} not found", key=self.key)


@dataclass(frozen=True)
class AlreadyExists(StoreMiss):
    code: ClassVar[str] = "ALREADY_EXISTS"

    def error(self) -> AlreadyExistsError:
        return AlreadyExistsError(f"{self.key} already exists", key=self.key)


# ── Relation changes ────────────────────────────────────


def parse_member(member: Member) -> tuple[str, int]:
    """Split a member spec into ``(key, score)``; score defaults to 1.

    Example::

        >>> parse_member("student:9~2")
        ('student:9', 2)
        >>> parse_member("student:9")
        ('student:9', 1)
    """
    if isinstance(member, tuple):
        key, score = member
        return str(key), int(score)
    key, sep, raw_score = member.rpartition("~")
    if sep and key and raw_score.lstrip("-").isdigit():
        return key, int(raw_score)
    return member, DEFAULT_SCORE


def _scored(members: Iterable[Member]) -> dict[str, int]:
    return dict(parse_member(m) for m in members)


@dataclass
class RelationChanges:
    """Normalized ``add`` / ``remove`` / ``set`` payload of one update call.

    Applied in the order set, add, remove.
    """

    set: dict[str, dict[str, int]] = field(default_factory=dict)
    add: dict[str, dict[str, int]] = field(default_factory=dict)
    remove: dict[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        add: Optional[Mapping[str, Iterable[Member]]] = None,
        remove: Optional[Mapping[str, Iterable[Member]]] = None,
        set: Optional[Mapping[str, Iterable[Member]]] = None,
    ) -> "RelationChanges":
        return cls(
            set={name: _scored(members) for name, members in (set or {}).items()},
            add={name: _scored(members) for name, members in (add or {}).items()},
            # score is ignored on removal
            remove={name: frozenset(parse_member(m)[0] for m in members) for name, members in (remove or {}).items()},
        )

    def is_empty(self) -> bool:
        return not (self.set or self.add or self.remove)


def filter_by_label(members: Mapping[str, int], label: Optional[str]) -> dict[str, int]:
    if not label:
        return dict(members)
    return {key: score for key, score in members.items() if label_of(key) == label}


__all__ = [
    "AlreadyExists",
    "Block",
    "DEFAULT_SCORE",
    "Member",
    "NotFound",
    "RelationChanges",
    "StoreMiss",
    "block_key",
    "filter_by_label",
    "label_of",
    "parse_member",
]
