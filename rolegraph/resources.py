"""
Resource and role management

Create, read and delete operations. Each one validates its arguments,
checks existence, authorizes against the current snapshot and only then
touches the store. Functions return the store to use from then on.
"""

import logging
from typing import FrozenSet

from .engine import assert_authorized, get_resource, get_role, is_superuser
from .errors import AlreadyExists, IllegalOperation, Unauthorized
from .hierarchy import (
    ROLES_ID,
    is_role_id,
    parent_id,
    protected_ids,
    resource_id,
    role_name,
    role_resource_id,
)
from .storage import Store
from .types import PermissionKind, Resource, ResourceId, RoleId

logger = logging.getLogger(__name__)


def _assert_actor(store: Store, as_id: str) -> None:
    if not is_superuser(store, as_id):
        get_role(store, as_id)


def create_resource(store: Store, rid, as_id: str) -> Store:
    """
    Create rid owned by as_id

    Requires create on the parent of rid.

    Raises:
        InvalidResourceId, NotFound, Unauthorized, AlreadyExists
    """
    rid = resource_id(rid)
    _assert_actor(store, as_id)

    parent = parent_id(rid)
    if parent is None:
        raise AlreadyExists(rid)

    get_resource(store, parent)
    assert_authorized(store, parent, PermissionKind.CREATE, as_id)
    if store.get_resource(rid) is not None:
        raise AlreadyExists(rid)

    logger.info(f"{as_id} created {list(rid)}")
    return store.put_resource(Resource(rid, owners=frozenset({RoleId(as_id)})))


def read_resource(store: Store, rid, as_id: str) -> Resource:
    """Return rid if as_id has read on it"""
    rid = resource_id(rid)
    assert_authorized(store, rid, PermissionKind.READ, as_id)
    return get_resource(store, rid)


def _children(store: Store, rid: ResourceId):
    return [
        other for other in store.list_resource_ids()
        if len(other) > len(rid) and other[:len(rid)] == rid
    ]


def _strip_role(store: Store, name: str) -> Store:
    """Remove every reference to role name from the other resources"""
    rid = role_resource_id(name)
    sole_owned = [
        other.id
        for other in (store.get_resource(i) for i in store.list_resource_ids())
        if other is not None and other.id != rid and other.owners == {name}
    ]
    if sole_owned:
        raise IllegalOperation(
            rid, f"role is the last owner of {[list(i) for i in sorted(sole_owned)]}"
        )

    for other_id in store.list_resource_ids():
        other = store.get_resource(other_id)
        if other is not None and other_id != rid and other.references(name):
            store = store.put_resource(other.without_role(name))
    return store


def delete_resource(store: Store, rid, as_id: str) -> Store:
    """
    Delete rid

    Protected resources can never be deleted, not even by the superuser.
    Deleting a role also removes it from every other resource's owners,
    members and permissions.

    Raises:
        NotFound, Unauthorized, IllegalOperation
    """
    rid = resource_id(rid)
    _assert_actor(store, as_id)

    if rid in protected_ids(store.admin_role):
        raise Unauthorized(as_id, {PermissionKind.DELETE}, rid)

    get_resource(store, rid)
    assert_authorized(store, rid, PermissionKind.DELETE, as_id)

    children = _children(store, rid)
    if children:
        raise IllegalOperation(rid, f"resource has {len(children)} child resource(s)")

    if is_role_id(rid):
        store = _strip_role(store, role_name(rid))

    logger.info(f"{as_id} deleted {list(rid)}")
    return store.delete_resource(rid)


def create_role(store: Store, name: str, as_id: str) -> Store:
    """Create role name; requires create on ("roles",)"""
    return create_resource(store, role_resource_id(name), as_id)


def read_role(store: Store, name: str, as_id: str) -> Resource:
    return read_resource(store, role_resource_id(name), as_id)


def delete_role(store: Store, name: str, as_id: str) -> Store:
    return delete_resource(store, role_resource_id(name), as_id)


def list_roles(store: Store, as_id: str) -> FrozenSet[RoleId]:
    """Names of every role; requires read on ("roles",)"""
    assert_authorized(store, ROLES_ID, PermissionKind.READ, as_id)
    return frozenset(store.list_role_ids())
