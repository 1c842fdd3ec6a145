"""
Comprehensive tests for rolegraph.engine (permission resolution)

Tests cover:
- Superuser bypass
- Protected resources
- Direct ownership and permissions
- Owner and permission fixpoints through role membership, including cycles
- Direct-permission check (unauthorized_actions)
- assert_authorized error contents
- Permission explanation/diagnostics
"""

import logging
from unittest.mock import patch

import pytest

from rolegraph.config import RBACSettings
from rolegraph.engine import (
    assert_authorized,
    authorized,
    expand_permissions,
    expand_roles,
    explain_permission,
    fixpoint,
    is_direct_owner,
    missing_actions,
    owners_fixpoint,
    permissions_fixpoint,
    unauthorized_actions,
)
from rolegraph.errors import NotFound, Unauthorized
from rolegraph.storage import MemoryStore
from rolegraph.types import PermissionKind, Resource

READ = PermissionKind.READ


def with_members(store, role, *members):
    rid = ("roles", role)
    current = store.get_resource(rid)
    return store.put_resource(
        Resource(rid, current.owners, current.members | set(members), current.permissions)
    )


def with_grant(store, rid, role, *kinds):
    current = store.get_resource(rid)
    return store.put_resource(
        current.with_permissions(role, current.permissions_for(role) | set(kinds))
    )


# ========== Bypass and Protection Tests ==========

class TestBypassAndProtection:
    """Tests for the superuser bypass and protected resources"""

    def test_superuser_allowed_everything(self, store):
        for action in PermissionKind:
            assert authorized(store, ["a"], action, "superuser")
            assert authorized(store, [], action, "superuser")

    def test_superuser_needs_no_role_record(self, store):
        assert store.get_resource(("roles", "superuser")) is None
        assert authorized(store, ["a"], READ, "superuser")

    def test_no_superuser_configured(self, memory_store):
        store = MemoryStore(
            [memory_store.get_resource(i) for i in memory_store.list_resource_ids()],
            superuser_id=None,
        )
        with pytest.raises(NotFound):
            authorized(store, ["a"], READ, "superuser")

    @pytest.mark.parametrize("rid", [[], ["roles"], ["roles", "admin"]])
    def test_protected_delete_denied_for_owner(self, store, rid):
        assert store.get_resource(tuple(rid)).owners == {"admin"}
        assert not authorized(store, rid, PermissionKind.DELETE, "admin")

    def test_admin_default_access_on_root(self, store):
        assert authorized(store, [], PermissionKind.CREATE, "admin")
        assert authorized(store, [], PermissionKind.READ, "admin")
        assert authorized(store, [], PermissionKind.UPDATE, "admin")

    def test_alice_has_no_default_access(self, store):
        for action in PermissionKind:
            assert not authorized(store, [], action, "alice")


# ========== Direct Resolution Tests ==========

class TestDirectResolution:
    """Tests for direct ownership and permissions"""

    def test_owner_allowed_everything(self, store):
        for action in PermissionKind:
            assert authorized(store, ["a"], action, "admin")

    def test_direct_permission(self, store):
        store = with_grant(store, ("a",), "alice", READ)
        assert authorized(store, ["a"], "read", "alice")
        assert not authorized(store, ["a"], "update", "alice")
        assert not authorized(store, ["b"], "read", "alice")

    def test_unknown_actor_is_not_found(self, store):
        with pytest.raises(NotFound) as exc_info:
            authorized(store, ["a"], READ, "chuck")
        assert exc_info.value.kind == "role"
        assert exc_info.value.id == ("roles", "chuck")

    def test_unknown_resource_is_not_found(self, store):
        with pytest.raises(NotFound) as exc_info:
            authorized(store, ["c"], READ, "alice")
        assert exc_info.value.kind == "resource"
        assert exc_info.value.id == ("c",)

    def test_is_direct_owner(self, store):
        assert is_direct_owner(store, ["a"], "admin")
        assert is_direct_owner(store, ["a"], "superuser")
        assert not is_direct_owner(store, ["a"], "alice")


# ========== Fixpoint Tests ==========

class TestFixpoints:
    """Tests for transitive ownership and permissions"""

    def test_fixpoint_stops_when_stable(self):
        assert fixpoint(lambda x: x if x >= 10 else x + 1, 1) == 10

    def test_fixpoint_logs_rounds(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="rolegraph.engine"):
            fixpoint(lambda x: min(x + 1, 3), 1)
        assert "Fixpoint reached after 3 round(s)" in caplog.text

    def test_expand_permissions_one_round(self, store):
        store = with_members(store, "alice", "bob")
        assert expand_permissions(store, {"alice": frozenset({READ})}) == {
            "alice": {READ},
            "bob": {READ},
        }

    def test_expand_roles_one_round(self, store):
        store = with_members(store, "admin", "alice")
        assert expand_roles(store, {"admin"}) == {"admin", "alice"}

    def test_permissions_are_transitive(self, store):
        store = with_grant(store, ("a",), "alice", READ)
        store = with_members(store, "alice", "bob")
        store = with_members(store, "bob", "carol")

        assert permissions_fixpoint(store, ["a"]) == {
            "alice": {READ},
            "bob": {READ},
            "carol": {READ},
        }
        assert authorized(store, ["a"], READ, "bob")
        assert authorized(store, ["a"], READ, "carol")
        assert not authorized(store, ["a"], PermissionKind.UPDATE, "carol")

    def test_ownership_is_transitive(self, store):
        store = store.put_resource(Resource(("a",), owners=frozenset({"admin", "alice"})))
        store = with_members(store, "alice", "bob")
        store = with_members(store, "bob", "carol")

        assert owners_fixpoint(store, ["a"]) == {"admin", "alice", "bob", "carol"}
        for action in PermissionKind:
            assert authorized(store, ["a"], action, "carol")

    def test_permission_sets_merge_per_member(self, store):
        store = with_grant(store, ("a",), "alice", READ)
        store = with_grant(store, ("a",), "bob", PermissionKind.UPDATE)
        store = with_members(store, "alice", "carol")
        store = with_members(store, "bob", "carol")

        assert permissions_fixpoint(store, ["a"])["carol"] == {READ, PermissionKind.UPDATE}

    def test_membership_cycle_terminates(self, store):
        store = with_grant(store, ("a",), "alice", READ)
        store = with_members(store, "alice", "bob")
        store = with_members(store, "bob", "carol")
        store = with_members(store, "carol", "alice")

        assert permissions_fixpoint(store, ["a"]) == {
            "alice": {READ},
            "bob": {READ},
            "carol": {READ},
        }
        assert owners_fixpoint(store, ["b"]) == {"admin"}

    def test_self_membership_terminates(self, store):
        store = with_members(store, "admin", "admin")
        assert owners_fixpoint(store, ["a"]) == {"admin"}

    def test_membership_does_not_flow_upwards(self, store):
        store = with_grant(store, ("a",), "bob", READ)
        store = with_members(store, "alice", "bob")
        assert not authorized(store, ["a"], READ, "alice")

    def test_member_of_missing_role_ignored(self, store):
        store = with_grant(store, ("a",), "ghost", READ)
        assert permissions_fixpoint(store, ["a"]) == {"ghost": {READ}}


# ========== Direct Check Tests ==========

class TestUnauthorizedActions:
    """Tests for the non-transitive direct-permission check"""

    def test_direct_permissions_only(self, store):
        store = with_grant(store, ("a",), "alice", READ)
        store = with_members(store, "alice", "bob")

        assert unauthorized_actions(store, ["a"], {READ, PermissionKind.UPDATE}, "alice") == {
            PermissionKind.UPDATE
        }
        # bob inherits read, but has no direct entry
        assert unauthorized_actions(store, ["a"], {READ}, "bob") == {READ}
        assert missing_actions(store, ["a"], {READ}, "bob") == frozenset()

    def test_ownership_not_consulted(self, store):
        assert unauthorized_actions(store, ["a"], "read", "admin") == {READ}

    def test_superuser_missing_nothing(self, store):
        assert unauthorized_actions(store, ["a"], set(PermissionKind), "superuser") == frozenset()

    def test_unknown_actor(self, store):
        with pytest.raises(NotFound):
            unauthorized_actions(store, ["a"], {READ}, "chuck")


class TestAssertAuthorized:
    """Tests for assert_authorized"""

    def test_passes_silently(self, store):
        assert assert_authorized(store, ["a"], {READ, PermissionKind.UPDATE}, "admin") is None

    def test_lists_missing_actions(self, store):
        store = with_grant(store, ("a",), "alice", READ)
        with pytest.raises(Unauthorized) as exc_info:
            assert_authorized(store, ["a"], ["read", "update", "delete"], "alice")

        err = exc_info.value
        assert err.actor == "alice"
        assert err.actions == {PermissionKind.UPDATE, PermissionKind.DELETE}
        assert err.resource == ("a",)
        assert err.to_dict()["details"]["actions"] == ["delete", "update"]


# ========== Diagnostics Tests ==========

class TestExplainPermission:
    """Tests for explain_permission"""

    @pytest.fixture
    def explain_settings(self):
        with patch("rolegraph.engine.get_settings", return_value=RBACSettings(explain_enabled=True)):
            yield

    def test_disabled_by_default(self, store):
        assert "error" in explain_permission(store, ["a"], READ, "admin")

    def test_direct_owner(self, store, explain_settings):
        result = explain_permission(store, ["a"], READ, "admin")
        assert result["decision"] == "allow"
        assert result["reason"] == "Direct owner"

    def test_inherited_permission(self, store, explain_settings):
        store = with_grant(store, ("a",), "alice", READ)
        store = with_members(store, "alice", "bob")

        result = explain_permission(store, ["a"], READ, "bob")
        assert result["decision"] == "allow"
        assert result["reason"] == "Permission inherited through role membership"
        assert result["effective_permissions"] == ["read"]

    def test_denied(self, store, explain_settings):
        result = explain_permission(store, ["a"], READ, "alice")
        assert result["decision"] == "deny"
        assert result["reason"] == "No ownership or permission grant"

    def test_protected(self, store, explain_settings):
        result = explain_permission(store, [], PermissionKind.DELETE, "admin")
        assert result["decision"] == "deny"
        assert result["reason"] == "Protected resource cannot be deleted"

    def test_superuser(self, store, explain_settings):
        result = explain_permission(store, ["a"], PermissionKind.DELETE, "superuser")
        assert result == {
            "decision": "allow",
            "resource": ["a"],
            "action": "delete",
            "actor": "superuser",
            "reason": "Superuser bypass",
        }
