"""
Shared pytest fixtures for rolegraph tests.

Provides:
- Settings cache reset between tests
- Seeded in-memory store (admin, alice, bob, carol, ["a"], ["b"])
- The same seed on a temporary SQLite database
"""

import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from rolegraph.bootstrap import init_store
from rolegraph.config import get_settings
from rolegraph.storage import MemoryStore, SQLiteStore, Store
from rolegraph.types import Resource


SUPERUSER = "superuser"
ADMIN = "admin"


def seed(store: Store) -> Store:
    """Root resources plus alice, bob, carol, ["a"] and ["b"], all owned by admin"""
    store = init_store(store, ADMIN)
    owners = frozenset({ADMIN})
    return store.put_resources([
        Resource(("roles", "alice"), owners=owners),
        Resource(("roles", "bob"), owners=owners),
        Resource(("roles", "carol"), owners=owners),
        Resource(("a",), owners=owners),
        Resource(("b",), owners=owners),
    ])


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch) -> Generator[None, None, None]:
    """Isolate tests from ROLEGRAPH_* variables and the cached settings"""
    for var in ("SUPERUSER_ID", "ADMIN_ROLE", "EXPLAIN_ENABLED", "LOG_LEVEL", "DB_PATH"):
        monkeypatch.delenv(f"ROLEGRAPH_{var}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Temporary database file, removed with its WAL files afterwards"""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "rbac.db"


@pytest.fixture
def memory_store() -> Store:
    return seed(MemoryStore(superuser_id=SUPERUSER))


@pytest.fixture
def sqlite_store(temp_db_path: Path) -> Store:
    return seed(SQLiteStore(temp_db_path, superuser_id=SUPERUSER))


@pytest.fixture(params=["memory", "sqlite"])
def store(request) -> Store:
    """Seeded store, once per backend"""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sqlite_store")
