"""
Store seeding

Every operation assumes the root, ("roles",) and the administrative role
exist. init_store() creates whichever of them are missing, each owned by
the administrative role.
"""

import logging
from typing import Optional

from .hierarchy import ROLES_ID, ROOT_ID, role_resource_id
from .storage import Store
from .types import Resource, RoleId

logger = logging.getLogger(__name__)


def init_store(store: Store, admin_id: Optional[str] = None) -> Store:
    """
    Seed the root resources

    Args:
        store: Store to seed
        admin_id: Administrative role name (default: store.admin_role).
            A different name becomes the store's admin role, so its record
            is protected from deletion.

    Returns:
        The seeded store; existing records are left untouched
    """
    if admin_id and admin_id != store.admin_role:
        store = store.with_admin_role(admin_id)
    admin_id = store.admin_role
    owners = frozenset({RoleId(admin_id)})

    for rid in (ROOT_ID, ROLES_ID, role_resource_id(admin_id)):
        if store.get_resource(rid) is None:
            store = store.put_resource(Resource(rid, owners=owners))
            logger.info(f"Seeded {list(rid)} owned by {admin_id}")

    return store
