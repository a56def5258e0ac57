"""Tests for the pure role predicates."""

import pytest

from core.constants import Role
from core.roles import (
    can_modify,
    has_all_roles,
    has_any_role,
    has_role,
    is_admin,
    is_buyer,
    is_developer,
)


@pytest.mark.unit
class TestHasRole:

    def test_held_role(self):
        assert has_role(["BUYER", "DEVELOPER"], Role.DEVELOPER) is True

    def test_missing_role(self):
        assert has_role(["BUYER"], Role.ADMIN) is False

    def test_empty_roles(self):
        assert has_role([], Role.BUYER) is False

    def test_enum_and_string_are_interchangeable(self):
        assert has_role([Role.ADMIN], "ADMIN") is True
        assert has_role(["ADMIN"], Role.ADMIN) is True

    def test_duplicates_are_harmless(self):
        assert has_role(["BUYER", "BUYER"], Role.BUYER) is True


@pytest.mark.unit
class TestAnyAndAll:

    def test_any_matches_one(self):
        assert has_any_role(["BUYER"], [Role.ADMIN, Role.BUYER]) is True

    def test_any_matches_none(self):
        assert has_any_role(["BUYER"], [Role.ADMIN, Role.DEVELOPER]) is False

    def test_all_requires_every_role(self):
        assert has_all_roles(["BUYER", "DEVELOPER"], [Role.BUYER, Role.DEVELOPER]) is True
        assert has_all_roles(["BUYER"], [Role.BUYER, Role.DEVELOPER]) is False

    def test_empty_required_set_is_asymmetric(self):
        """No requirement: 'any' never matches, 'all' always does."""
        assert has_any_role(["ADMIN", "BUYER"], []) is False
        assert has_all_roles([], []) is True
        assert has_all_roles(["BUYER"], []) is True

    def test_generators_are_accepted(self):
        assert has_any_role((r for r in ["DEVELOPER"]), (r for r in [Role.DEVELOPER])) is True


@pytest.mark.unit
class TestRoleShortcuts:

    @pytest.mark.parametrize(
        "roles,admin,developer,buyer",
        [
            (["ADMIN"], True, False, False),
            (["DEVELOPER", "BUYER"], False, True, True),
            (["BUYER"], False, False, True),
            ([], False, False, False),
        ],
    )
    def test_shortcuts(self, roles, admin, developer, buyer):
        assert is_admin(roles) is admin
        assert is_developer(roles) is developer
        assert is_buyer(roles) is buyer


@pytest.mark.unit
class TestCanModify:

    def test_owner_may_modify(self):
        assert can_modify("u1", "u1", ["BUYER"]) is True

    def test_non_owner_may_not(self):
        assert can_modify("u1", "u2", ["BUYER", "DEVELOPER"]) is False

    def test_admin_may_modify_anything(self):
        assert can_modify("u1", "u2", ["ADMIN"]) is True

    def test_missing_owner_only_admin(self):
        assert can_modify(None, "u2", ["BUYER"]) is False
        assert can_modify(None, "u2", ["ADMIN"]) is True
