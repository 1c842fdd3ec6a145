"""
Custom exceptions for rolegraph.

Every failure is a typed exception carrying a stable error code and a
details dict, so embedders can map them onto their own transport.
"""

from typing import Any, Dict, Iterable, Optional


def _format_id(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value


def _sorted_kinds(kinds: Iterable) -> list:
    return sorted(getattr(k, "value", k) for k in kinds)


class RBACError(Exception):
    """Base exception for all rolegraph errors."""

    def __init__(
        self,
        message: str,
        code: str = "RBAC_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFound(RBACError):
    """Raised when a referenced role or resource doesn't exist."""

    def __init__(self, kind: str, id):
        self.kind = kind
        self.id = id
        super().__init__(
            message=f"{kind} {_format_id(id)} doesn't exist",
            code="NOT_FOUND",
            details={"kind": kind, "id": _format_id(id)}
        )


class AlreadyExists(RBACError):
    """Raised when creating a resource that is already present."""

    def __init__(self, id):
        self.id = id
        super().__init__(
            message=f"resource {_format_id(id)} already exists",
            code="ALREADY_EXISTS",
            details={"id": _format_id(id)}
        )


class Unauthorized(RBACError):
    """Raised when an actor lacks the permissions an operation needs."""

    def __init__(self, actor: str, actions: Iterable, resource):
        self.actor = actor
        self.actions = frozenset(actions)
        self.resource = resource
        super().__init__(
            message=(
                f"{actor} does not have permission "
                f"{_sorted_kinds(self.actions)} on {_format_id(resource)}"
            ),
            code="UNAUTHORIZED",
            details={
                "actor": actor,
                "actions": _sorted_kinds(self.actions),
                "resource": _format_id(resource),
            }
        )


class InvalidResourceId(RBACError):
    """Raised when an id is not a sequence of non-empty strings."""

    def __init__(self, id):
        self.id = id
        super().__init__(
            message=f"invalid resource id: {id!r}",
            code="INVALID_RESOURCE_ID",
            details={"id": repr(id)}
        )


class InvalidPermission(RBACError):
    """Raised when requested permissions are outside the legal set."""

    def __init__(self, requested: Iterable, legal: Iterable):
        self.requested = list(requested)
        self.legal = frozenset(legal)
        super().__init__(
            message=(
                f"illegal permissions {[getattr(k, 'value', k) for k in self.requested]}, "
                f"legal permissions are {_sorted_kinds(self.legal)}"
            ),
            code="INVALID_PERMISSION",
            details={
                "requested": [str(getattr(k, "value", k)) for k in self.requested],
                "legal": _sorted_kinds(self.legal),
            }
        )


class IllegalOperation(RBACError):
    """Raised when a mutation would break a structural invariant."""

    def __init__(self, resource, reason: str):
        self.resource = resource
        self.reason = reason
        super().__init__(
            message=f"illegal operation on {_format_id(resource)}: {reason}",
            code="ILLEGAL_OPERATION",
            details={"resource": _format_id(resource), "reason": reason}
        )
