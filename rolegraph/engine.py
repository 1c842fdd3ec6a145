"""
Core Permission Engine

Pure authorization functions evaluated against a Store snapshot. Nothing in
this module writes to the store.

Resolution for authorized(store, resource, action, actor):
1. Superuser: always allowed
2. Protected resource and action is delete: always denied
3. Actor role must exist (NotFound otherwise)
4. Resource must exist (NotFound otherwise)
5. Allowed if the actor is in the owners fixpoint of the resource
6. Otherwise allowed if the permissions fixpoint grants the action

Both fixpoints only ever add elements, and the universe is bounded by the
number of roles, so iteration stops on the first round that adds nothing.
Cycles in the membership graph stop contributing once everything reachable
has been included.
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, TypeVar

from .config import get_settings
from .errors import NotFound, Unauthorized
from .hierarchy import protected_ids, resource_id, role_resource_id
from .storage import Store
from .types import PermissionKind, Resource, ResourceId, RoleId

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fixpoint(fn: Callable[[T], T], value: T) -> T:
    """Apply fn until the result stops changing"""
    rounds = 0
    while True:
        rounds += 1
        next_value = fn(value)
        if next_value == value:
            logger.debug(f"Fixpoint reached after {rounds} round(s)")
            return value
        value = next_value


def is_superuser(store: Store, as_id: Optional[str]) -> bool:
    return store.superuser_id is not None and as_id == store.superuser_id


def get_role(store: Store, as_id: str) -> Resource:
    """
    Return the role record for as_id

    Raises:
        NotFound: with kind "role" and the role's resource id
    """
    rid = role_resource_id(as_id)
    role = store.get_resource(rid)
    if role is None:
        raise NotFound("role", rid)
    return role


def get_resource(store: Store, rid: ResourceId) -> Resource:
    resource = store.get_resource(rid)
    if resource is None:
        raise NotFound("resource", rid)
    return resource


def role_members(store: Store, role_id: str) -> FrozenSet[RoleId]:
    """Direct members of role_id (empty for unknown roles)"""
    role = store.get_resource(role_resource_id(role_id))
    if role is None:
        return frozenset()
    return role.members


def expand_roles(store: Store, role_ids: Iterable[str]) -> FrozenSet[RoleId]:
    """One expansion round: role_ids plus the direct members of each"""
    expanded = set(role_ids)
    for role_id in list(expanded):
        expanded |= role_members(store, role_id)
    return frozenset(expanded)


def expand_permissions(
    store: Store,
    permissions: Mapping[str, FrozenSet[PermissionKind]],
) -> Dict[RoleId, FrozenSet[PermissionKind]]:
    """One expansion round: every member of a role receives that role's set"""
    expanded: Dict[RoleId, FrozenSet[PermissionKind]] = dict(permissions)
    for role_id, kinds in permissions.items():
        for member in role_members(store, role_id):
            expanded[member] = expanded.get(member, frozenset()) | kinds
    return expanded


def owners_fixpoint(store: Store, rid: ResourceId) -> FrozenSet[RoleId]:
    """Direct owners of rid plus every role reachable through membership"""
    resource = get_resource(store, resource_id(rid))
    return fixpoint(lambda owners: expand_roles(store, owners), frozenset(resource.owners))


def permissions_fixpoint(store: Store, rid: ResourceId) -> Dict[RoleId, FrozenSet[PermissionKind]]:
    """Explicit permissions on rid propagated down the membership graph"""
    resource = get_resource(store, resource_id(rid))
    return fixpoint(lambda perms: expand_permissions(store, perms), dict(resource.permissions))


def is_direct_owner(store: Store, rid: ResourceId, as_id: str) -> bool:
    """True for the superuser or a role listed in rid's own owners"""
    if is_superuser(store, as_id):
        return True
    get_role(store, as_id)
    return as_id in get_resource(store, resource_id(rid)).owners


def authorized(store: Store, rid: ResourceId, action, as_id: str) -> bool:
    """
    Check whether as_id may perform action on rid

    Args:
        store: Snapshot to evaluate against
        rid: Resource id
        action: PermissionKind (or its string value)
        as_id: Acting role name

    Returns:
        True if allowed, False otherwise

    Raises:
        NotFound: if the actor role or the resource doesn't exist
    """
    rid = resource_id(rid)
    action = PermissionKind(action)

    if is_superuser(store, as_id):
        logger.debug(f"Superuser bypass: {as_id} allowed {action.value} on {list(rid)}")
        return True

    if action == PermissionKind.DELETE and rid in protected_ids(store.admin_role):
        logger.debug(f"Protected resource: delete on {list(rid)} denied for {as_id}")
        return False

    get_role(store, as_id)
    get_resource(store, rid)

    if as_id in owners_fixpoint(store, rid):
        return True

    granted = action in permissions_fixpoint(store, rid).get(as_id, frozenset())
    if not granted:
        logger.debug(f"Denied: {as_id} lacks {action.value} on {list(rid)}")
    return granted


def _as_actions(actions) -> FrozenSet[PermissionKind]:
    if isinstance(actions, (str, PermissionKind)):
        actions = [actions]
    return frozenset(PermissionKind(a) for a in actions)


def missing_actions(store: Store, rid: ResourceId, actions, as_id: str) -> FrozenSet[PermissionKind]:
    """Subset of actions that authorized() denies"""
    return frozenset(
        action for action in _as_actions(actions)
        if not authorized(store, rid, action, as_id)
    )


def unauthorized_actions(store: Store, rid: ResourceId, actions, as_id: str) -> FrozenSet[PermissionKind]:
    """
    Subset of actions not covered by as_id's direct permissions on rid

    Ownership and membership are not consulted. The superuser is never
    missing anything.

    Raises:
        NotFound: if the actor role or the resource doesn't exist
    """
    rid = resource_id(rid)
    actions = _as_actions(actions)
    if is_superuser(store, as_id):
        return frozenset()

    get_role(store, as_id)
    resource = get_resource(store, rid)
    return actions - resource.permissions_for(as_id)


def assert_authorized(store: Store, rid: ResourceId, actions, as_id: str) -> None:
    """
    Return iff as_id may perform every action in actions on rid

    Raises:
        Unauthorized: listing the denied actions
        NotFound: if the actor role or the resource doesn't exist
    """
    rid = resource_id(rid)
    missing = missing_actions(store, rid, actions, as_id)
    if missing:
        raise Unauthorized(as_id, missing, rid)


def explain_permission(store: Store, rid: ResourceId, action, as_id: str) -> Dict[str, Any]:
    """
    Explain why a permission was granted or denied

    Only enabled when ROLEGRAPH_EXPLAIN_ENABLED=1.

    Returns:
        Dict with decision, reason and the resolved owner/permission data
    """
    if not get_settings().explain_enabled:
        return {
            "error": "Diagnostics disabled. Set ROLEGRAPH_EXPLAIN_ENABLED=1 to enable."
        }

    rid = resource_id(rid)
    action = PermissionKind(action)
    decision = authorized(store, rid, action, as_id)

    explanation: Dict[str, Any] = {
        "decision": "allow" if decision else "deny",
        "resource": list(rid),
        "action": action.value,
        "actor": as_id,
    }

    if is_superuser(store, as_id):
        explanation["reason"] = "Superuser bypass"
        return explanation

    if action == PermissionKind.DELETE and rid in protected_ids(store.admin_role):
        explanation["reason"] = "Protected resource cannot be deleted"
        return explanation

    resource = get_resource(store, rid)
    owners = owners_fixpoint(store, rid)
    effective = permissions_fixpoint(store, rid).get(as_id, frozenset())
    explanation["owners"] = sorted(owners)
    explanation["effective_permissions"] = sorted(k.value for k in effective)

    if as_id in resource.owners:
        explanation["reason"] = "Direct owner"
    elif as_id in owners:
        explanation["reason"] = "Owner through role membership"
    elif action in resource.permissions_for(as_id):
        explanation["reason"] = "Direct permission grant"
    elif action in effective:
        explanation["reason"] = "Permission inherited through role membership"
    else:
        explanation["reason"] = "No ownership or permission grant"

    return explanation
