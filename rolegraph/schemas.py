"""
Resource-related Pydantic models.

Serialisable view of a Resource, used by SQLiteStore for its rows and by
embedders that need to ship records over their own transport.
"""

from typing import Dict, List

from pydantic import BaseModel

from .types import PermissionKind, Resource, RoleId


class ResourceRecord(BaseModel):
    """Resource record"""
    id: List[str]
    owners: List[str] = []
    members: List[str] = []
    permissions: Dict[str, List[PermissionKind]] = {}

    @classmethod
    def from_resource(cls, resource: Resource) -> "ResourceRecord":
        return cls(
            id=list(resource.id),
            owners=sorted(resource.owners),
            members=sorted(resource.members),
            permissions={
                role: sorted(kinds, key=lambda k: k.value)
                for role, kinds in resource.permissions.items()
            },
        )

    def to_resource(self) -> Resource:
        return Resource(
            id=tuple(self.id),
            owners=frozenset(RoleId(o) for o in self.owners),
            members=frozenset(RoleId(m) for m in self.members),
            permissions={
                RoleId(role): frozenset(kinds)
                for role, kinds in self.permissions.items()
                if kinds
            },
        )
