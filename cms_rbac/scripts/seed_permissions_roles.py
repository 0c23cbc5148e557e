"""
Seed Permissions and Roles Script
This script populates the permissions and roles tables using the config.
Can be run manually (python -m cms_rbac.scripts.seed_permissions_roles) or at application startup.
"""

import sys
import logging
from typing import Dict, Optional

from supabase import Client

from cms_rbac.config.permissions_config import get_permission_matrix
from cms_rbac.config.settings import settings
from cms_rbac.database.supabase_client import create_supabase
from cms_rbac.modules.assignments.service import AssignmentService
from cms_rbac.modules.permissions.service import PermissionCatalog
from cms_rbac.modules.roles.service import RoleService

logger = logging.getLogger(__name__)


def seed_permissions(supabase: Client) -> int:
    """Seed the full resource x action catalog. Returns permissions created."""
    logger.info("Seeding permissions...")
    return PermissionCatalog(supabase).seed_permissions()


def seed_roles(supabase: Client, super_admin_role_key: Optional[str] = None) -> Dict[str, int]:
    """
    Create system and default roles and give them their configured permissions.

    System roles are re-synced on every run. Default roles only receive their
    permissions when first created so later admin edits survive re-seeding.
    The super-admin role is keyed by super_admin_role_key (settings by default).
    """
    logger.info("Seeding roles...")
    roles = RoleService(supabase)
    assignments = AssignmentService(supabase, roles=roles)

    created_count = 0
    linked_count = 0
    for role_config in get_permission_matrix(super_admin_role_key=super_admin_role_key)["roles"]:
        role, created = roles.ensure_role(
            role_config["key"],
            role_config["title"],
            role_config["description"],
            is_system=role_config["is_system"]
        )
        if created:
            created_count += 1
        if not (created or role.is_system) or not role_config["permissions"]:
            continue
        added, removed = assignments.set_role_permissions(role.id, role_config["permissions"])
        linked_count += added
        logger.debug(f"Role {role.key}: {added} permission(s) added, {removed} removed")

    logger.info(f"Roles seeded: {created_count} created, {linked_count} permission links added")
    return {"created": created_count, "linked": linked_count}


def run_seed(supabase: Client, super_admin_role_key: Optional[str] = None) -> Dict[str, int]:
    # Roles reference permissions, so the catalog goes first
    perm_count = seed_permissions(supabase)
    role_counts = seed_roles(supabase, super_admin_role_key)
    return {"permissions": perm_count, "roles": role_counts["created"], "links": role_counts["linked"]}


def main():
    """Main function to seed permissions and roles"""
    logging.basicConfig(level=logging.INFO)
    try:
        supabase = create_supabase(settings, service_role=True)

        logger.info("Starting permissions and roles seeding...")
        totals = run_seed(supabase)

        logger.info("Seeding completed successfully!")
        logger.info(
            f"Total: {totals['permissions']} permissions created, {totals['roles']} roles created, "
            f"{totals['links']} permission links added"
        )
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
