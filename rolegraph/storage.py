"""
Resource Storage

The Store contract consumed by the resolver and managers, plus two
implementations: an immutable in-memory snapshot and a SQLite-backed store.

Mutators return the store the caller should use from then on. MemoryStore
returns a new snapshot and leaves the receiver untouched; SQLiteStore writes
through and returns itself.
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from .config import get_settings
from .hierarchy import is_role_id, role_name
from .schemas import ResourceRecord
from .types import Resource, ResourceId, RoleId

logger = logging.getLogger(__name__)

_FROM_SETTINGS = object()


def _default_superuser(superuser_id) -> Optional[str]:
    if superuser_id is _FROM_SETTINGS:
        return get_settings().superuser_id
    return superuser_id


def _default_admin_role(admin_role: Optional[str]) -> str:
    return admin_role or get_settings().admin_role


class Store(ABC):
    """Key-value access to Resource records by id"""

    @property
    @abstractmethod
    def superuser_id(self) -> Optional[RoleId]:
        """Actor that bypasses every check, or None"""

    @property
    @abstractmethod
    def admin_role(self) -> RoleId:
        """Administrative role whose record can never be deleted"""

    @abstractmethod
    def with_admin_role(self, admin_role: str) -> "Store":
        """Return the store with admin_role as its administrative role"""

    @abstractmethod
    def get_resource(self, id: ResourceId) -> Optional[Resource]:
        """Return the resource with id, or None"""

    @abstractmethod
    def put_resource(self, resource: Resource) -> "Store":
        """Insert or overwrite resource by id"""

    @abstractmethod
    def delete_resource(self, id: ResourceId) -> "Store":
        """Remove the resource with id (no-op when absent)"""

    @abstractmethod
    def list_resource_ids(self) -> FrozenSet[ResourceId]:
        """Ids of every stored resource"""

    def list_role_ids(self) -> FrozenSet[RoleId]:
        """Names of every stored role"""
        return frozenset(
            RoleId(role_name(rid)) for rid in self.list_resource_ids() if is_role_id(rid)
        )

    def put_resources(self, resources: Iterable[Resource]) -> "Store":
        store = self
        for resource in resources:
            store = store.put_resource(resource)
        return store


class MemoryStore(Store):
    """
    Immutable in-memory snapshot

    Args:
        resources: Initial records
        superuser_id: Superuser actor; defaults to RBACSettings.superuser_id
        admin_role: Administrative role; defaults to RBACSettings.admin_role
    """

    def __init__(
        self,
        resources: Optional[Iterable[Resource]] = None,
        superuser_id=_FROM_SETTINGS,
        admin_role: Optional[str] = None,
    ):
        self._resources: Dict[ResourceId, Resource] = {
            r.id: r for r in (resources or ())
        }
        self._superuser_id = _default_superuser(superuser_id)
        self._admin_role = _default_admin_role(admin_role)

    def _derive(self, resources: Mapping[ResourceId, Resource], admin_role: str) -> "MemoryStore":
        store = MemoryStore(superuser_id=self._superuser_id, admin_role=admin_role)
        store._resources = dict(resources)
        return store

    @property
    def superuser_id(self) -> Optional[RoleId]:
        return self._superuser_id

    @property
    def admin_role(self) -> RoleId:
        return RoleId(self._admin_role)

    def with_admin_role(self, admin_role: str) -> "MemoryStore":
        return self._derive(self._resources, admin_role)

    def get_resource(self, id: ResourceId) -> Optional[Resource]:
        return self._resources.get(tuple(id))

    def put_resource(self, resource: Resource) -> "MemoryStore":
        resources = dict(self._resources)
        resources[resource.id] = resource
        return self._derive(resources, self._admin_role)

    def delete_resource(self, id: ResourceId) -> "MemoryStore":
        resources = dict(self._resources)
        resources.pop(tuple(id), None)
        return self._derive(resources, self._admin_role)

    def list_resource_ids(self) -> FrozenSet[ResourceId]:
        return frozenset(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        return (
            f"MemoryStore({len(self._resources)} resources, "
            f"superuser={self._superuser_id!r}, admin={self._admin_role!r})"
        )


def get_db_connection(db_path: Path) -> sqlite3.Connection:
    """
    Get connection to the resource database with row factory and optimized settings.

    Args:
        db_path: Database file

    Returns:
        SQLite connection with row factory
    """
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row

    # Enable WAL mode for better concurrent access
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA temp_store=MEMORY")

    return conn


class SQLiteStore(Store):
    """
    SQLite-backed store, one JSON row per resource

    Writes go straight to the database; every mutator returns self.

    Args:
        db_path: Database file; defaults to RBACSettings.db_path
        superuser_id: Superuser actor; defaults to RBACSettings.superuser_id
        admin_role: Administrative role; defaults to RBACSettings.admin_role
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        superuser_id=_FROM_SETTINGS,
        admin_role: Optional[str] = None,
    ):
        if db_path is None:
            db_path = get_settings().db_path
        if db_path is None:
            raise ValueError("SQLiteStore needs a db_path (or ROLEGRAPH_DB_PATH)")

        self.db_path = Path(db_path)
        self._superuser_id = _default_superuser(superuser_id)
        self._admin_role = _default_admin_role(admin_role)
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        return get_db_connection(self.db_path)

    def _init_schema(self) -> None:
        conn = self._get_connection()
        try:
            with conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS resources (
                        resource_key TEXT PRIMARY KEY,
                        is_role INTEGER NOT NULL DEFAULT 0,
                        record TEXT NOT NULL
                    )
                """)
        finally:
            conn.close()
        logger.debug(f"Resource schema ready at {self.db_path}")

    @staticmethod
    def _key(id: ResourceId) -> str:
        return json.dumps(list(id))

    @property
    def superuser_id(self) -> Optional[RoleId]:
        return self._superuser_id

    @property
    def admin_role(self) -> RoleId:
        return RoleId(self._admin_role)

    def with_admin_role(self, admin_role: str) -> "SQLiteStore":
        self._admin_role = admin_role
        return self

    def get_resource(self, id: ResourceId) -> Optional[Resource]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT record FROM resources WHERE resource_key = ?",
                (self._key(id),)
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        return ResourceRecord.model_validate_json(row["record"]).to_resource()

    def put_resource(self, resource: Resource) -> "SQLiteStore":
        record = ResourceRecord.from_resource(resource).model_dump_json()
        conn = self._get_connection()
        try:
            with conn:
                conn.execute("""
                    INSERT INTO resources (resource_key, is_role, record)
                    VALUES (?, ?, ?)
                    ON CONFLICT(resource_key) DO UPDATE SET record = excluded.record
                """, (self._key(resource.id), int(is_role_id(resource.id)), record))
        finally:
            conn.close()
        return self

    def delete_resource(self, id: ResourceId) -> "SQLiteStore":
        conn = self._get_connection()
        try:
            with conn:
                conn.execute("DELETE FROM resources WHERE resource_key = ?", (self._key(id),))
        finally:
            conn.close()
        return self

    def list_resource_ids(self) -> FrozenSet[ResourceId]:
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT resource_key FROM resources").fetchall()
        finally:
            conn.close()
        return frozenset(tuple(json.loads(row["resource_key"])) for row in rows)

    def list_role_ids(self) -> FrozenSet[RoleId]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT resource_key FROM resources WHERE is_role = 1"
            ).fetchall()
        finally:
            conn.close()
        return frozenset(RoleId(json.loads(row["resource_key"])[1]) for row in rows)

    def __repr__(self) -> str:
        return (
            f"SQLiteStore({str(self.db_path)!r}, "
            f"superuser={self._superuser_id!r}, admin={self._admin_role!r})"
        )
