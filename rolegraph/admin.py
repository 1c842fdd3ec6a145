"""
Permission administration

Grant and revoke permissions, transfer ownership and manage role
membership. Every function runs its existence and authorization checks
against the snapshot it was given before writing anything, and returns the
store to use from then on.

Guards:
- grant_permissions: the actor must itself hold every granted permission,
  plus update (plain resources) or grant (roles)
- revoke_permissions: update on the resource
- grant/revoke_ownership: the actor must be a direct owner
- grant/revoke_membership: update on the role
"""

import logging
from dataclasses import replace
from typing import Iterable

from .engine import (
    assert_authorized,
    get_resource,
    get_role,
    is_direct_owner,
    is_superuser,
)
from .errors import IllegalOperation, Unauthorized
from .hierarchy import is_role_id, permission_set, resource_id, role_resource_id
from .storage import Store
from .types import PermissionKind, RoleId

logger = logging.getLogger(__name__)

OWNERSHIP_ACTION = "ownership"


def _assert_role(store: Store, role_id: str) -> None:
    """Actor and target roles must exist; the superuser needs no record"""
    if not is_superuser(store, role_id):
        get_role(store, role_id)


def _guard_permission_change(store: Store, on_id, permissions, target_id: str, as_id: str):
    rid = resource_id(on_id)
    kinds = permission_set(rid, permissions)
    _assert_role(store, as_id)
    resource = get_resource(store, rid)
    _assert_role(store, target_id)
    return rid, kinds, resource


def grant_permissions(
    store: Store,
    on_id,
    permissions: Iterable,
    to_id: str,
    as_id: str,
) -> Store:
    """
    Grant permissions on on_id to role to_id

    Raises:
        InvalidPermission: permissions outside the legal set for on_id
        NotFound: actor, resource or target role missing (checked in that order)
        Unauthorized: actor lacks a granted permission or update/grant
    """
    rid, kinds, resource = _guard_permission_change(store, on_id, permissions, to_id, as_id)

    required = PermissionKind.GRANT if is_role_id(rid) else PermissionKind.UPDATE
    assert_authorized(store, rid, kinds | {required}, as_id)

    if is_superuser(store, to_id):
        return store

    updated = resource.with_permissions(to_id, resource.permissions_for(to_id) | kinds)
    logger.info(f"{as_id} granted {sorted(k.value for k in kinds)} on {list(rid)} to {to_id}")
    return store.put_resource(updated)


def revoke_permissions(
    store: Store,
    on_id,
    permissions: Iterable,
    from_id: str,
    as_id: str,
) -> Store:
    """
    Revoke permissions on on_id from role from_id

    Raises:
        InvalidPermission, NotFound, Unauthorized (update on on_id)
    """
    rid, kinds, resource = _guard_permission_change(store, on_id, permissions, from_id, as_id)
    assert_authorized(store, rid, PermissionKind.UPDATE, as_id)

    if is_superuser(store, from_id):
        return store

    updated = resource.with_permissions(from_id, resource.permissions_for(from_id) - kinds)
    logger.info(f"{as_id} revoked {sorted(k.value for k in kinds)} on {list(rid)} from {from_id}")
    return store.put_resource(updated)


def grant_role_permissions(store: Store, on_role: str, permissions, to_id: str, as_id: str) -> Store:
    return grant_permissions(store, role_resource_id(on_role), permissions, to_id, as_id)


def revoke_role_permissions(store: Store, on_role: str, permissions, from_id: str, as_id: str) -> Store:
    return revoke_permissions(store, role_resource_id(on_role), permissions, from_id, as_id)


def _guard_ownership_change(store: Store, rid, target_id: str, as_id: str):
    rid = resource_id(rid)
    _assert_role(store, as_id)
    resource = get_resource(store, rid)
    get_role(store, target_id)

    # update permission is not enough; ownership only passes between owners
    if not is_direct_owner(store, rid, as_id):
        raise Unauthorized(as_id, {OWNERSHIP_ACTION}, rid)
    return rid, resource


def grant_ownership(store: Store, rid, to_id: str, as_id: str) -> Store:
    """
    Add to_id to the owners of rid

    Raises:
        NotFound, Unauthorized (actor is not a direct owner)
    """
    rid, resource = _guard_ownership_change(store, rid, to_id, as_id)
    if to_id in resource.owners:
        return store

    logger.info(f"{as_id} granted ownership of {list(rid)} to {to_id}")
    return store.put_resource(
        replace(resource, owners=resource.owners | {RoleId(to_id)})
    )


def revoke_ownership(store: Store, rid, from_id: str, as_id: str) -> Store:
    """
    Remove from_id from the owners of rid

    Raises:
        NotFound, Unauthorized (actor is not a direct owner),
        IllegalOperation (from_id is the last owner)
    """
    rid, resource = _guard_ownership_change(store, rid, from_id, as_id)
    if from_id not in resource.owners:
        return store

    owners = resource.owners - {from_id}
    if not owners:
        raise IllegalOperation(rid, f"{from_id} is the last owner")

    logger.info(f"{as_id} revoked ownership of {list(rid)} from {from_id}")
    return store.put_resource(replace(resource, owners=owners))


def _guard_membership_change(store: Store, role: str, member_id: str, as_id: str):
    rid = role_resource_id(role)
    _assert_role(store, as_id)
    role_record = get_role(store, role)
    get_role(store, member_id)
    assert_authorized(store, rid, PermissionKind.UPDATE, as_id)
    return rid, role_record


def grant_membership(store: Store, role: str, to_id: str, as_id: str) -> Store:
    """
    Make to_id a member of role, so to_id inherits role's ownership and permissions

    Raises:
        NotFound, Unauthorized (update on the role)
    """
    rid, role_record = _guard_membership_change(store, role, to_id, as_id)
    if to_id in role_record.members:
        return store

    logger.info(f"{as_id} added {to_id} to role {role}")
    return store.put_resource(
        replace(role_record, members=role_record.members | {RoleId(to_id)})
    )


def revoke_membership(store: Store, role: str, from_id: str, as_id: str) -> Store:
    """Remove from_id from the members of role"""
    rid, role_record = _guard_membership_change(store, role, from_id, as_id)
    if from_id not in role_record.members:
        return store

    logger.info(f"{as_id} removed {from_id} from role {role}")
    return store.put_resource(
        replace(role_record, members=role_record.members - {from_id})
    )
