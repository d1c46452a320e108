"""Hierarchical authorization for schoolcore.

Defines:
- Action lattice: ranked actions and threshold comparison
- LayerTree: static protected-resource tree with inheriting rule sets
- Role → category tables and role baseline grants
- Direct grants: per-user, per-layer overrides
- AuthorizationEngine: the ``is_granted`` decision
"""

from .actions import ACTION_RANKS, Action, at_least, parse_action, rank
from .constants import Category, Layers, Relations, Roles, Variant
from .engine import AuthorizationEngine
from .grants import DirectGrant, GrantStore, MemoryGrantStore
from .layers import LayerNode, LayerTree, RuleSet, split_layer_id
from .profiles import (
    DEFAULT_LAYERS,
    ROLE_BASELINE_GRANTS,
    ROLE_CATEGORIES,
    category_for_role,
)

__all__ = [
    "ACTION_RANKS",
    "DEFAULT_LAYERS",
    "ROLE_BASELINE_GRANTS",
    "ROLE_CATEGORIES",
    "Action",
    "AuthorizationEngine",
    "Category",
    "DirectGrant",
    "GrantStore",
    "LayerNode",
    "LayerTree",
    "Layers",
    "MemoryGrantStore",
    "Relations",
    "Roles",
    "RuleSet",
    "Variant",
    "at_least",
    "category_for_role",
    "parse_action",
    "rank",
    "split_layer_id",
]
