"""Tests for AuthorizationEngine decisions and direct grants."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from schoolcore.exceptions import InvalidGrantError, PermissionDeniedError, StoreUnavailableError
from schoolcore.permissions import (
    Action,
    AuthorizationEngine,
    Category,
    DirectGrant,
    Layers,
    LayerTree,
    MemoryGrantStore,
    Roles,
    category_for_role,
)

SCENARIO_LAYERS = {
    "board": {
        "school": {
            "_default": {"adminCan": "read"},
            "class": {
                "_default": {"adminCan": "update", "inherit": False},
            },
        },
    },
}


@pytest.fixture
def engine() -> AuthorizationEngine:
    return AuthorizationEngine()


class TestCategoryMapping:
    """Tests for the role → category table."""

    def test_global_table(self) -> None:
        assert category_for_role(Roles.SCHOOL_ADMIN, Layers.school("7")) == Category.ADMIN
        assert category_for_role(Roles.SUPER_ADMIN, Layers.STUDENT) == Category.SUPER_ADMIN
        assert category_for_role(Roles.USER, Layers.BOARD) == Category.ANYONE

    def test_longest_family_wins(self) -> None:
        """School admins are plain viewers of user accounts."""
        assert category_for_role(Roles.SCHOOL_ADMIN, Layers.user("u1")) == Category.ANYONE
        assert category_for_role(Roles.SCHOOL_ADMIN, Layers.USER) == Category.ANYONE

    def test_family_match_is_segment_aware(self) -> None:
        """``board.username`` is not in the ``board.user`` family."""
        assert category_for_role(Roles.SCHOOL_ADMIN, "board.username") == Category.ADMIN

    def test_unknown_role(self) -> None:
        assert category_for_role("janitor", Layers.SCHOOL) is None
        assert category_for_role(None, Layers.SCHOOL) is None


class TestIsGranted:
    """Tests for is_granted against the tree."""

    @pytest.mark.asyncio
    async def test_admin_scenario(self) -> None:
        """admin may update a classroom (7 >= 7) but only read a school."""
        engine = AuthorizationEngine(LayerTree.from_mapping(SCENARIO_LAYERS))
        assert await engine.is_granted(None, "board.school.class.42", "update", category=Category.ADMIN)
        assert not await engine.is_granted(None, "board.school.7", "update", category=Category.ADMIN)
        assert await engine.is_granted(None, "board.school.7", "read", category=Category.ADMIN)

    @pytest.mark.asyncio
    async def test_role_mapped_through_table(self, engine: AuthorizationEngine) -> None:
        assert await engine.is_granted(Roles.SCHOOL_ADMIN, Layers.classroom("42"), Action.UPDATE)
        assert not await engine.is_granted(Roles.SCHOOL_ADMIN, Layers.school("7"), Action.UPDATE)

    @pytest.mark.asyncio
    async def test_lower_actions_allowed(self, engine: AuthorizationEngine) -> None:
        """A rule allows every action ranked at or below it."""
        for action in (Action.NONE, Action.READ, Action.CREATE, Action.AUDIT, Action.CONFIG, Action.DELETE):
            assert await engine.is_granted(Roles.SCHOOL_ADMIN, Layers.classroom("42"), action)

    @pytest.mark.asyncio
    async def test_blocked_denies_every_action(self, engine: AuthorizationEngine) -> None:
        """No rule anywhere → blocked → deny, even for ``none``."""
        for action in Action:
            assert not await engine.is_granted(Roles.USER, Layers.school("7"), action)

    @pytest.mark.asyncio
    async def test_unknown_role_denied(self, engine: AuthorizationEngine) -> None:
        assert not await engine.is_granted("janitor", Layers.BOARD, Action.READ)
        assert not await engine.is_granted(None, Layers.BOARD, Action.READ)

    @pytest.mark.asyncio
    async def test_unknown_action_denied(self, engine: AuthorizationEngine) -> None:
        assert not await engine.is_granted(Roles.SUPER_ADMIN, Layers.SCHOOL, "write")

    @pytest.mark.asyncio
    async def test_malformed_layer_denied(self, engine: AuthorizationEngine) -> None:
        assert not await engine.is_granted(Roles.SUPER_ADMIN, "board..school", Action.READ)
        assert not await engine.is_granted(Roles.SUPER_ADMIN, "", Action.READ)

    @pytest.mark.asyncio
    async def test_unknown_layer_denied(self, engine: AuthorizationEngine) -> None:
        assert not await engine.is_granted(Roles.SUPER_ADMIN, "library.shelf", Action.READ)

    @pytest.mark.asyncio
    async def test_explicit_category_overrides_role(self, engine: AuthorizationEngine) -> None:
        """Owners of a user account may update it whatever their role maps to."""
        assert not await engine.is_granted(Roles.USER, Layers.user("u1"), Action.UPDATE)
        assert await engine.is_granted(Roles.USER, Layers.user("u1"), Action.UPDATE, category=Category.OWNER)

    @pytest.mark.asyncio
    async def test_variant_selects_rule_set(self, engine: AuthorizationEngine) -> None:
        assert await engine.is_granted(Roles.USER, Layers.BOARD, Action.CREATE, variant="public")
        assert not await engine.is_granted(Roles.USER, Layers.BOARD, Action.CREATE)

    @pytest.mark.asyncio
    async def test_grant_store_failure_propagates(self) -> None:
        grants = MemoryGrantStore()
        grants.get = AsyncMock(side_effect=StoreUnavailableError("down"))  # type: ignore[method-assign]
        engine = AuthorizationEngine(grants=grants)
        with pytest.raises(StoreUnavailableError):
            await engine.is_granted(Roles.USER, Layers.BOARD, Action.READ, user_id="u1")


class TestDirectGrants:
    """Tests for per-user overrides."""

    @pytest.mark.asyncio
    async def test_grant_overrides_tree(self, engine: AuthorizationEngine) -> None:
        """A direct update grant beats the tree's read-only admin rule."""
        layer_id = Layers.school("7")
        assert not await engine.is_granted(Roles.SCHOOL_ADMIN, layer_id, Action.UPDATE, user_id="u1")
        await engine.add_direct_grant("u1", layer_id, Action.UPDATE)
        assert await engine.is_granted(Roles.SCHOOL_ADMIN, layer_id, Action.UPDATE, user_id="u1")

    @pytest.mark.asyncio
    async def test_grant_ignores_role(self, engine: AuthorizationEngine) -> None:
        """Even a role with no category passes on a direct grant."""
        await engine.add_direct_grant("u1", "library.shelf", "read")
        assert await engine.is_granted("janitor", "library.shelf", Action.READ, user_id="u1")
        assert await engine.is_granted("janitor", "library.shelf", Action.NONE, user_id="u1")
        assert not await engine.is_granted("janitor", "library.shelf", Action.CREATE, user_id="u1")

    @pytest.mark.asyncio
    async def test_grant_is_exact_layer_only(self, engine: AuthorizationEngine) -> None:
        await engine.add_direct_grant("u1", Layers.school("7"), Action.UPDATE)
        assert not await engine.is_granted(Roles.USER, Layers.school("8"), Action.UPDATE, user_id="u1")
        assert not await engine.is_granted(Roles.USER, Layers.classroom("7"), Action.UPDATE, user_id="u1")

    @pytest.mark.asyncio
    async def test_grant_is_per_user(self, engine: AuthorizationEngine) -> None:
        await engine.add_direct_grant("u1", Layers.school("7"), Action.UPDATE)
        assert not await engine.is_granted(Roles.USER, Layers.school("7"), Action.UPDATE, user_id="u2")
        assert not await engine.is_granted(Roles.USER, Layers.school("7"), Action.UPDATE)

    @pytest.mark.asyncio
    async def test_blocked_grant_never_grants(self, engine: AuthorizationEngine) -> None:
        await engine.add_direct_grant("u1", "library.shelf", Action.BLOCKED)
        assert not await engine.is_granted(None, "library.shelf", Action.BLOCKED, user_id="u1")

    @pytest.mark.asyncio
    async def test_later_grant_replaces_earlier(self, engine: AuthorizationEngine) -> None:
        await engine.add_direct_grant("u1", Layers.school("7"), Action.UPDATE)
        await engine.add_direct_grant("u1", Layers.school("7"), Action.READ)
        assert await engine.get_direct_grant("u1", Layers.school("7")) is Action.READ
        assert not await engine.is_granted(Roles.USER, Layers.school("7"), Action.UPDATE, user_id="u1")

    @pytest.mark.asyncio
    async def test_list_direct_grants(self, engine: AuthorizationEngine) -> None:
        await engine.add_direct_grant("u1", Layers.school("7"), Action.UPDATE)
        await engine.add_direct_grant("u1", Layers.SCHOOL, Action.READ)
        grants = await engine.list_direct_grants("u1")
        assert grants == [
            DirectGrant("u1", Layers.SCHOOL, Action.READ),
            DirectGrant("u1", Layers.school("7"), Action.UPDATE),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("user_id", "layer_id", "action"),
        [("", "board.school", "read"), ("u1", "board..school", "read"), ("u1", "board.school", "write")],
    )
    async def test_invalid_grant_rejected(
        self, engine: AuthorizationEngine, user_id: str, layer_id: str, action: str
    ) -> None:
        with pytest.raises(InvalidGrantError):
            await engine.add_direct_grant(user_id, layer_id, action)
        assert await engine.list_direct_grants(user_id) == []


class TestRoleBaseline:
    """Tests for role baseline grants."""

    @pytest.mark.asyncio
    async def test_superadmin_baseline(self, engine: AuthorizationEngine) -> None:
        applied = await engine.grant_role_baseline("root", Roles.SUPER_ADMIN)
        assert {g.layer_id for g in applied} == {Layers.SCHOOL, Layers.CLASSROOM, Layers.STUDENT, Layers.USER}
        assert await engine.get_direct_grant("root", Layers.CLASSROOM) is Action.CONFIG

    @pytest.mark.asyncio
    async def test_role_without_baseline(self, engine: AuthorizationEngine) -> None:
        assert await engine.grant_role_baseline("u1", Roles.USER) == []
        assert await engine.grant_role_baseline("u1", None) == []
        assert await engine.list_direct_grants("u1") == []


class TestRequire:
    """Tests for require()."""

    @pytest.mark.asyncio
    async def test_granted_returns_none(self, engine: AuthorizationEngine) -> None:
        assert await engine.require(Roles.SUPER_ADMIN, Layers.SCHOOL, Action.CREATE) is None

    @pytest.mark.asyncio
    async def test_denied_raises(self, engine: AuthorizationEngine) -> None:
        with pytest.raises(PermissionDeniedError) as exc_info:
            await engine.require(Roles.USER, Layers.school("7"), Action.READ, user_id="u1")
        assert exc_info.value.code == "PERMISSION_DENIED"
        assert exc_info.value.details["layer_id"] == "board.school.7"
        assert exc_info.value.details["action"] == "read"
