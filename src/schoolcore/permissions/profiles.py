"""Built-in layer tree, role → category tables and role baseline grants.

Provides:
- ``DEFAULT_LAYERS`` — the static protected-resource tree.
- ``ROLE_CATEGORIES`` — explicit role → category table per layer family.
- ``ROLE_BASELINE_GRANTS`` — direct grants applied when a user gets a role.
- ``category_for_role()`` — total lookup over ``ROLE_CATEGORIES``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .actions import Action
from .constants import Category, Layers, Roles

# ── Layer Tree ──────────────────────────────────────────
# Keys starting with "_" are variants, other keys are child layers.

DEFAULT_LAYERS: dict[str, Any] = {
    "board": {
        # all boards are public by default
        "_default": {"anyone": "read", "owner": "audit"},
        "_public": {"anyone": "create", "owner": "audit"},
        "_private": {"anyone": "none"},
        "_store": {"anyone": "read"},
        "school": {
            "_default": {"admin": "read", "superAdmin": "update"},
            "_public": {"anyone": "none"},
            "_private": {"inherit": True},
            "_store": {"inherit": True},
            "class": {
                "_default": {"admin": "update", "superAdmin": "read"},
                "_public": {"inherit": True},
                "_private": {"inherit": True},
                "_store": {"inherit": True},
                "student": {
                    "_default": {"admin": "update", "superAdmin": "none"},
                    "_public": {"inherit": True},
                    "_private": {"inherit": True},
                    "_store": {"inherit": True},
                },
            },
        },
        "user": {
            "_default": {"owner": "update", "superAdmin": "update"},
            "_public": {"inherit": True},
            "_private": {"inherit": True},
            "_store": {"inherit": True},
        },
    },
}


# ── Role → Category ─────────────────────────────────────
# Keyed by layer family; "" is the fallback for every layer. The longest
# family that prefixes the layer id wins. Roles missing from the chosen
# table have no category and are denied.

ROLE_CATEGORIES: dict[str, dict[str, str]] = {
    "": {
        Roles.SUPER_ADMIN: Category.SUPER_ADMIN,
        Roles.SCHOOL_ADMIN: Category.ADMIN,
        Roles.USER: Category.ANYONE,
    },
    Layers.USER: {
        Roles.SUPER_ADMIN: Category.SUPER_ADMIN,
        Roles.SCHOOL_ADMIN: Category.ANYONE,
        Roles.USER: Category.ANYONE,
    },
}


def _family_matches(family: str, layer_id: str) -> bool:
    return not family or layer_id == family or layer_id.startswith(family + ".")


def category_for_role(
    role: Optional[str],
    layer_id: str,
    table: Mapping[str, Mapping[str, str]] = ROLE_CATEGORIES,
) -> Optional[str]:
    """Map a role to a category for the family ``layer_id`` belongs to.

    Example::

        >>> category_for_role("schoolAdmin", "board.school.7")
        'admin'
        >>> category_for_role("schoolAdmin", "board.user.u1")
        'anyone'
        >>> category_for_role("janitor", "board.school") is None
        True
    """
    if not role or not isinstance(layer_id, str):
        return None
    families = [f for f in table if _family_matches(f, layer_id)]
    if not families:
        return None
    return table[max(families, key=len)].get(role)


# ── Role Baseline Grants ────────────────────────────────
# Applied once when a user is created with (or assigned) a role.

ROLE_BASELINE_GRANTS: dict[str, tuple[tuple[str, Action], ...]] = {
    Roles.SCHOOL_ADMIN: (
        (Layers.SCHOOL, Action.READ),
        (Layers.CLASSROOM, Action.UPDATE),
        (Layers.STUDENT, Action.UPDATE),
    ),
    Roles.SUPER_ADMIN: (
        (Layers.SCHOOL, Action.UPDATE),
        (Layers.CLASSROOM, Action.CONFIG),
        (Layers.STUDENT, Action.CONFIG),
        (Layers.USER, Action.CONFIG),
    ),
}


__all__ = [
    "DEFAULT_LAYERS",
    "ROLE_BASELINE_GRANTS",
    "ROLE_CATEGORIES",
    "category_for_role",
]
