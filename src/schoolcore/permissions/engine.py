"""Authorization engine.

Combines the layer tree, the action lattice and per-user direct grants
into a single decision::

    engine = AuthorizationEngine(LayerTree.from_mapping(DEFAULT_LAYERS))
    await engine.is_granted(role="schoolAdmin", layer_id="board.school.7", action="read")

Decision procedure:
1. An unknown requested action or a malformed layer id is denied.
2. A direct grant for exactly ``(user_id, layer_id)`` ranked at least the
   requested action grants immediately, without consulting the tree.
3. The caller's role is mapped to a category through an explicit table
   (or the caller passes the category, e.g. ``owner``). No category → deny.
4. The tree yields the strongest action the category may perform; grant
   iff it ranks at least the requested action. ``blocked`` always denies.

Denial is a return value. The only exception that escapes ``is_granted``
is ``StoreUnavailableError`` from the grant lookup.
"""

from __future__ import annotations

from typing import Mapping, Optional

from ..exceptions import InvalidGrantError, PermissionDeniedError
from ..logging import get_access_logger
from .actions import Action, at_least, parse_action
from .constants import Variant
from .grants import DirectGrant, GrantStore, MemoryGrantStore
from .layers import LayerTree, split_layer_id
from .profiles import DEFAULT_LAYERS, ROLE_BASELINE_GRANTS, ROLE_CATEGORIES, category_for_role

logger = get_access_logger(__name__)


class AuthorizationEngine:
    """Role-agnostic access decisions over a static layer tree.

    Args:
        tree: Layer tree; built from ``DEFAULT_LAYERS`` when omitted.
        grants: Direct grant store; in-memory when omitted.
        role_categories: Role → category table per layer family.
        baseline_grants: Direct grants applied per role by ``grant_role_baseline``.
    """

    def __init__(
        self,
        tree: Optional[LayerTree] = None,
        grants: Optional[GrantStore] = None,
        role_categories: Mapping[str, Mapping[str, str]] = ROLE_CATEGORIES,
        baseline_grants: Mapping[str, tuple[tuple[str, Action], ...]] = ROLE_BASELINE_GRANTS,
    ) -> None:
        self.tree = tree or LayerTree.from_mapping(DEFAULT_LAYERS)
        self.grants = grants or MemoryGrantStore()
        self.role_categories = role_categories
        self.baseline_grants = baseline_grants

    def category_for(self, role: Optional[str], layer_id: str) -> Optional[str]:
        return category_for_role(role, layer_id, self.role_categories)

    async def is_granted(
        self,
        role: Optional[str],
        layer_id: str,
        action: Action | str,
        user_id: Optional[str] = None,
        category: Optional[str] = None,
        variant: str = Variant.DEFAULT,
    ) -> bool:
        """Decide whether the caller may perform ``action`` at ``layer_id``.

        Args:
            role: Caller's role (e.g. ``"schoolAdmin"``), mapped to a category.
            layer_id: Dot-path of the resource (e.g. ``"board.school.7"``).
            action: Requested action name or ``Action``.
            user_id: Caller id; enables direct grant lookup.
            category: Explicit category, bypassing the role table
                (e.g. ``"owner"`` for the creator of the instance).
            variant: Rule-set variant; ``default`` when unspecified.

        Returns:
            True if granted. Never raises for unknown roles, layers or actions.
        """
        requested = parse_action(action)
        if requested is None or split_layer_id(layer_id) is None:
            logger.debug("Denied malformed request action=%r", action, user_id=user_id, layer_id=layer_id)
            return False

        if user_id:
            granted = await self.grants.get(user_id, layer_id)
            if granted is not None and granted is not Action.BLOCKED and at_least(granted, requested):
                logger.debug(
                    "Granted %s via direct grant (%s)", requested.value, granted.value,
                    user_id=user_id, layer_id=layer_id,
                )
                return True

        resolved_category = category or self.category_for(role, layer_id)
        if resolved_category is None:
            logger.debug("Denied %s: no category for role %r", requested.value, role,
                         user_id=user_id, layer_id=layer_id)
            return False

        required = self.tree.resolve_rule(layer_id, resolved_category, variant or Variant.DEFAULT)
        allowed = required is not Action.BLOCKED and at_least(required, requested)
        logger.debug(
            "%s %s for %s (rule=%s)",
            "Granted" if allowed else "Denied",
            requested.value,
            resolved_category,
            required.value,
            user_id=user_id,
            layer_id=layer_id,
        )
        return allowed

    async def require(
        self,
        role: Optional[str],
        layer_id: str,
        action: Action | str,
        user_id: Optional[str] = None,
        category: Optional[str] = None,
        variant: str = Variant.DEFAULT,
    ) -> None:
        """Like ``is_granted`` but raises ``PermissionDeniedError`` on denial."""
        if not await self.is_granted(role, layer_id, action, user_id=user_id, category=category, variant=variant):
            raise PermissionDeniedError(
                f"Permission denied: {action} at {layer_id}",
                layer_id=layer_id,
                action=str(getattr(action, "value", action)),
                user_id=user_id,
            )

    # ── Direct grants ───────────────────────────────────

    async def add_direct_grant(self, user_id: str, layer_id: str, action: Action | str) -> DirectGrant:
        """Store an override letting ``user_id`` perform ``action`` at ``layer_id``.

        Raises:
            InvalidGrantError: empty user id, malformed layer id or unknown action.
        """
        parsed = parse_action(action)
        if not user_id or split_layer_id(layer_id) is None or parsed is None:
            raise InvalidGrantError(
                f"Invalid direct grant ({user_id!r}, {layer_id!r}, {action!r})",
                user_id=user_id,
                layer_id=layer_id,
            )
        grant = DirectGrant(user_id=user_id, layer_id=layer_id, action=parsed)
        await self.grants.put(grant)
        logger.info("Direct grant %s", parsed.value, user_id=user_id, layer_id=layer_id)
        return grant

    async def get_direct_grant(self, user_id: str, layer_id: str) -> Optional[Action]:
        return await self.grants.get(user_id, layer_id)

    async def list_direct_grants(self, user_id: str) -> list[DirectGrant]:
        return await self.grants.list_for_user(user_id)

    async def grant_role_baseline(self, user_id: str, role: Optional[str]) -> list[DirectGrant]:
        """Apply the baseline grants of ``role``. Roles without a baseline are a no-op.

        Grants from a previous role are left in place.
        """
        applied = []
        for layer_id, action in self.baseline_grants.get(role or "", ()):
            applied.append(await self.add_direct_grant(user_id, layer_id, action))
        return applied


__all__ = ["AuthorizationEngine"]
