"""Action lattice.

Actions are totally ordered by an integer rank. The rank is only a
thresholding device for rule comparison: it does not measure risk and is
not used for audit severity or UI ordering.

    blocked < none < read < create < audit < config < delete < update
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Action(str, Enum):
    """Permission action. The string value is the configuration name."""

    BLOCKED = "blocked"
    NONE = "none"
    READ = "read"
    CREATE = "create"
    AUDIT = "audit"
    CONFIG = "config"
    DELETE = "delete"
    UPDATE = "update"


ACTION_RANKS: dict[Action, int] = {
    Action.BLOCKED: -1,
    Action.NONE: 1,
    Action.READ: 2,
    Action.CREATE: 3,
    Action.AUDIT: 4,
    Action.CONFIG: 5,
    Action.DELETE: 6,
    Action.UPDATE: 7,
}


def rank(action: Action) -> int:
    """Integer rank of an action. ``blocked`` ranks below everything."""
    return ACTION_RANKS[Action(action)]


def at_least(actual: Action, required: Action) -> bool:
    """True when ``actual`` is ranked at or above ``required``."""
    return rank(actual) >= rank(required)


def parse_action(value: object) -> Optional[Action]:
    """Resolve an action name or member; ``None`` for anything unknown.

    Never raises, so callers on the decision path can treat a bad
    action as a denial.
    """
    if isinstance(value, Action):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Action(value.strip().lower())
    except ValueError:
        return None


__all__ = [
    "ACTION_RANKS",
    "Action",
    "at_least",
    "parse_action",
    "rank",
]
