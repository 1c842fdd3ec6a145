"""
Resource Hierarchy

Reserved identifiers, legal permission sets per resource class and helpers
for validating and navigating resource ids.
"""

from typing import Iterable, Optional, FrozenSet

from .errors import InvalidResourceId, InvalidPermission
from .types import PermissionKind, ResourceId


ROOT_ID: ResourceId = ()
ROLES_SEGMENT = "roles"
ROLES_ID: ResourceId = (ROLES_SEGMENT,)
DEFAULT_ADMIN_ROLE = "admin"

# Plain resources: CRUD
RESOURCE_PERMISSIONS: FrozenSet[PermissionKind] = frozenset({
    PermissionKind.CREATE,
    PermissionKind.READ,
    PermissionKind.UPDATE,
    PermissionKind.DELETE,
})

# Roles have no children, so no create; grant allows re-granting the role
ROLE_PERMISSIONS: FrozenSet[PermissionKind] = frozenset({
    PermissionKind.READ,
    PermissionKind.UPDATE,
    PermissionKind.DELETE,
    PermissionKind.GRANT,
})


def resource_id(value) -> ResourceId:
    """
    Validate and normalise a resource id

    Accepts any list or tuple of non-empty strings. Under the roles
    namespace only ("roles",) and ("roles", name) are valid.

    Raises:
        InvalidResourceId: if value is not a well-formed id
    """
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise InvalidResourceId(value)

    for segment in value:
        if not isinstance(segment, str) or not segment:
            raise InvalidResourceId(value)

    rid = tuple(value)
    if rid and rid[0] == ROLES_SEGMENT and len(rid) > 2:
        raise InvalidResourceId(value)
    return rid


def role_resource_id(name: str) -> ResourceId:
    """Resource id of the role called name"""
    if not isinstance(name, str) or not name:
        raise InvalidResourceId([ROLES_SEGMENT, name])
    return (ROLES_SEGMENT, name)


def is_role_id(rid: ResourceId) -> bool:
    return len(rid) == 2 and rid[0] == ROLES_SEGMENT


def role_name(rid: ResourceId) -> Optional[str]:
    return rid[1] if is_role_id(rid) else None


def parent_id(rid: ResourceId) -> Optional[ResourceId]:
    """Parent of rid, or None for the root"""
    if not rid:
        return None
    return rid[:-1]


def protected_ids(admin_role: str = DEFAULT_ADMIN_ROLE) -> FrozenSet[ResourceId]:
    """Ids that can never be deleted"""
    return frozenset({ROOT_ID, ROLES_ID, role_resource_id(admin_role)})


def legal_permissions(rid: ResourceId) -> FrozenSet[PermissionKind]:
    return ROLE_PERMISSIONS if is_role_id(rid) else RESOURCE_PERMISSIONS


def permission_set(rid: ResourceId, kinds: Iterable) -> FrozenSet[PermissionKind]:
    """
    Coerce kinds into PermissionKind members legal on rid

    Raises:
        InvalidPermission: if any kind is unknown or illegal for rid's class
    """
    legal = legal_permissions(rid)
    if isinstance(kinds, (str, PermissionKind)):
        kinds = [kinds]

    requested = list(kinds)
    result = set()
    for kind in requested:
        try:
            result.add(PermissionKind(kind))
        except ValueError:
            raise InvalidPermission(requested, legal)

    if not result <= legal:
        raise InvalidPermission(requested, legal)
    return frozenset(result)
