"""
rolegraph

Embeddable role-based access control core. Resources form a hierarchy,
roles are resources under the reserved "roles" namespace, and ownership and
permissions propagate through role membership.

This package provides:
- Permission engine with transitive ownership/permission resolution
- Resource and role management guarded by the engine
- Permission, ownership and membership administration
- In-memory and SQLite stores

Public API:
- Types: PermissionKind, Resource, ResourceId, RoleId
- Engine: authorized, assert_authorized, unauthorized_actions, explain_permission
- Resources: create/read/delete_resource, create/read/delete_role, list_roles
- Admin: grant/revoke_permissions, grant/revoke_ownership, grant/revoke_membership
- Storage: Store, MemoryStore, SQLiteStore
- Bootstrap: init_store
"""

from .types import PermissionKind, Resource, ResourceId, RoleId
from .errors import (
    RBACError,
    NotFound,
    AlreadyExists,
    Unauthorized,
    InvalidResourceId,
    InvalidPermission,
    IllegalOperation,
)
from .hierarchy import (
    ROOT_ID,
    ROLES_ID,
    RESOURCE_PERMISSIONS,
    ROLE_PERMISSIONS,
    resource_id,
    role_resource_id,
)
from .storage import Store, MemoryStore, SQLiteStore
from .engine import (
    authorized,
    assert_authorized,
    missing_actions,
    unauthorized_actions,
    owners_fixpoint,
    permissions_fixpoint,
    explain_permission,
)
from .resources import (
    create_resource,
    read_resource,
    delete_resource,
    create_role,
    read_role,
    delete_role,
    list_roles,
)
from .admin import (
    grant_permissions,
    revoke_permissions,
    grant_role_permissions,
    revoke_role_permissions,
    grant_ownership,
    revoke_ownership,
    grant_membership,
    revoke_membership,
)
from .bootstrap import init_store

__all__ = [
    # Types
    "PermissionKind",
    "Resource",
    "ResourceId",
    "RoleId",
    # Errors
    "RBACError",
    "NotFound",
    "AlreadyExists",
    "Unauthorized",
    "InvalidResourceId",
    "InvalidPermission",
    "IllegalOperation",
    # Hierarchy
    "ROOT_ID",
    "ROLES_ID",
    "RESOURCE_PERMISSIONS",
    "ROLE_PERMISSIONS",
    "resource_id",
    "role_resource_id",
    # Storage
    "Store",
    "MemoryStore",
    "SQLiteStore",
    # Engine
    "authorized",
    "assert_authorized",
    "missing_actions",
    "unauthorized_actions",
    "owners_fixpoint",
    "permissions_fixpoint",
    "explain_permission",
    # Resources
    "create_resource",
    "read_resource",
    "delete_resource",
    "create_role",
    "read_role",
    "delete_role",
    "list_roles",
    # Admin
    "grant_permissions",
    "revoke_permissions",
    "grant_role_permissions",
    "revoke_role_permissions",
    "grant_ownership",
    "revoke_ownership",
    "grant_membership",
    "revoke_membership",
    # Bootstrap
    "init_store",
]
