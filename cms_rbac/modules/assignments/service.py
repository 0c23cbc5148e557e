import logging
from typing import Iterable, List, Sequence, Tuple

from supabase import Client

from cms_rbac.core.exceptions import NotFoundError, ValidationError
from cms_rbac.core.ids import parse_uuid
from cms_rbac.modules.permissions.service import PermissionCatalog
from cms_rbac.modules.roles.service import RoleService

logger = logging.getLogger(__name__)


def _user_uuid(user_id: str) -> str:
    canonical = parse_uuid(user_id)
    if canonical is None:
        raise ValidationError("Invalid user id")
    return canonical


class AssignmentService:
    """
    Maintains the role_permissions and user_roles junctions.

    Inserts rely on the (role_id, permission_id) and (user_id, role_id) unique
    constraints: pairs that already exist, including ones written concurrently
    by another caller, are skipped by the database and not counted.
    """

    def __init__(self, supabase: Client, catalog: PermissionCatalog = None, roles: RoleService = None):
        self.supabase = supabase
        self.catalog = catalog or PermissionCatalog(supabase)
        self.roles = roles or RoleService(supabase)

    def _insert_links(self, table: str, rows: List[dict], on_conflict: str) -> int:
        """Unordered bulk insert; duplicates are skipped. Returns rows actually inserted."""
        if not rows:
            return 0
        result = self.supabase.table(table)\
            .upsert(rows, on_conflict=on_conflict, ignore_duplicates=True)\
            .execute()
        return len(result.data or [])

    def assign_permissions_to_role(self, role_id: str, permission_keys: Sequence[str]) -> int:
        """
        Link permissions to a role.

        Unknown keys are dropped; already linked permissions are skipped.

        Returns:
            Number of newly created links

        Raises:
            NotFoundError: role does not exist, or none of the keys resolve
        """
        role = self.roles.get_role(role_id)
        permissions = self.catalog.find_by_keys(permission_keys)
        if not permissions:
            raise NotFoundError("No valid permissions found")

        inserted = self._insert_links(
            "role_permissions",
            [{"role_id": role.id, "permission_id": p.id} for p in permissions],
            on_conflict="role_id,permission_id"
        )
        logger.info(
            f"Assigned {inserted} permission(s) to role '{role.key}', "
            f"skipped {len(permissions) - inserted} already assigned"
        )
        return inserted

    def assign_roles_to_user(self, user_id: str, role_keys: Sequence[str]) -> int:
        """
        Give a user roles. Unknown keys are dropped; roles the user already holds are skipped.

        Raises:
            ValidationError: user_id is not a uuid
            NotFoundError: none of the keys resolve to a role
        """
        user_id = _user_uuid(user_id)
        roles = self.roles.find_by_keys(role_keys)
        if not roles:
            raise NotFoundError("No valid roles found")

        inserted = self._insert_links(
            "user_roles",
            [{"user_id": user_id, "role_id": r.id} for r in roles],
            on_conflict="user_id,role_id"
        )
        logger.info(f"Assigned {inserted} role(s) to user {user_id}, skipped {len(roles) - inserted}")
        return inserted

    def remove_permissions_from_role(self, role_id: str, permission_keys: Iterable[str]) -> int:
        """Unlink permissions from a role. Returns the number of links removed (0 is not an error)."""
        role_id = parse_uuid(role_id)
        if role_id is None:
            return 0
        permission_ids = [p.id for p in self.catalog.find_by_keys(permission_keys)]
        if not permission_ids:
            return 0
        result = self.supabase.table("role_permissions")\
            .delete()\
            .eq("role_id", role_id)\
            .in_("permission_id", permission_ids)\
            .execute()
        removed = len(result.data or [])
        logger.info(f"Removed {removed} permission(s) from role {role_id}")
        return removed

    def remove_roles_from_user(self, user_id: str, role_keys: Iterable[str]) -> int:
        """Take roles away from a user. Returns the number of assignments removed."""
        user_id = _user_uuid(user_id)
        role_ids = [r.id for r in self.roles.find_by_keys(role_keys)]
        if not role_ids:
            return 0
        result = self.supabase.table("user_roles")\
            .delete()\
            .eq("user_id", user_id)\
            .in_("role_id", role_ids)\
            .execute()
        removed = len(result.data or [])
        logger.info(f"Removed {removed} role(s) from user {user_id}")
        return removed

    def set_role_permissions(self, role_id: str, permission_keys: Iterable[str]) -> Tuple[int, int]:
        """
        Make a role's permissions exactly the resolved keys.

        An empty list clears the role; a non-empty list in which no key
        resolves raises NotFoundError and leaves the role untouched.

        Returns:
            (added, removed)
        """
        permission_keys = list(permission_keys)
        role = self.roles.get_role(role_id)
        wanted = {p.id for p in self.catalog.find_by_keys(permission_keys)}
        if permission_keys and not wanted:
            raise NotFoundError("No valid permissions found")

        current_result = self.supabase.table("role_permissions")\
            .select("permission_id")\
            .eq("role_id", role.id)\
            .execute()
        current = {row["permission_id"] for row in current_result.data or []}

        added = self._insert_links(
            "role_permissions",
            [{"role_id": role.id, "permission_id": pid} for pid in sorted(wanted - current)],
            on_conflict="role_id,permission_id"
        )

        removed = 0
        stale = current - wanted
        if stale:
            result = self.supabase.table("role_permissions")\
                .delete()\
                .eq("role_id", role.id)\
                .in_("permission_id", sorted(stale))\
                .execute()
            removed = len(result.data or [])

        if added or removed:
            logger.info(f"Synced role '{role.key}': {added} added, {removed} removed")
        return added, removed
