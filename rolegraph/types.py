"""
Permission Types

Core type definitions for the role graph: permission kinds, identifiers and
the resource record shared by plain resources and roles.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, NewType, Tuple, FrozenSet


class PermissionKind(str, Enum):
    """Actions that can be granted on a resource"""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    GRANT = "grant"


# Ordered path segments; () is the root
ResourceId = Tuple[str, ...]

# Role name; the role itself lives at ("roles", name)
RoleId = NewType("RoleId", str)


@dataclass(frozen=True)
class Resource:
    """
    A node in the resource namespace

    Roles are resources whose id is ("roles", name). Records are never
    mutated in place; use dataclasses.replace() or the with_* helpers.

    Attributes:
        id: Resource identifier
        owners: Roles allowed every action on this resource
        members: For roles, the roles inheriting this role's rights
        permissions: Explicit grants, role -> set of permission kinds
    """
    id: ResourceId
    owners: FrozenSet[RoleId] = frozenset()
    members: FrozenSet[RoleId] = frozenset()
    permissions: Mapping[RoleId, FrozenSet[PermissionKind]] = field(default_factory=dict)

    def permissions_for(self, role_id: str) -> FrozenSet[PermissionKind]:
        return self.permissions.get(role_id, frozenset())

    def with_permissions(self, role_id: str, kinds) -> "Resource":
        """Return a copy with permissions[role_id] replaced (dropped when empty)"""
        permissions = dict(self.permissions)
        kinds = frozenset(kinds)
        if kinds:
            permissions[role_id] = kinds
        else:
            permissions.pop(role_id, None)
        return Resource(self.id, self.owners, self.members, permissions)

    def without_role(self, role_id: str) -> "Resource":
        """Return a copy with every reference to role_id removed"""
        permissions = {k: v for k, v in self.permissions.items() if k != role_id}
        return Resource(
            self.id,
            self.owners - {role_id},
            self.members - {role_id},
            permissions,
        )

    def references(self, role_id: str) -> bool:
        return (
            role_id in self.owners
            or role_id in self.members
            or role_id in self.permissions
        )
