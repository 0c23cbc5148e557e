from typing import List, Optional, Set

from supabase import Client

from cms_rbac.core.ids import parse_uuid
from cms_rbac.modules.permissions.models import Action, Resource
from cms_rbac.modules.permissions.schemas import PermissionInfo
from cms_rbac.modules.roles.schemas import RoleResponse


def _to_info(row: dict) -> PermissionInfo:
    return PermissionInfo(key=row["key"], resource=row["resource"], action=row["action"])


class PermissionResolver:
    """
    Computes effective permissions by joining user_roles -> role_permissions -> permissions.

    Nothing is cached: every answer is derived from the current junction rows.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_role_ids(self, user_id: str) -> List[str]:
        user_id = parse_uuid(user_id)
        if user_id is None:
            return []
        result = self.supabase.table("user_roles")\
            .select("role_id")\
            .eq("user_id", user_id)\
            .execute()
        return sorted({row["role_id"] for row in result.data or []})

    def get_user_roles(self, user_id: str) -> List[RoleResponse]:
        role_ids = self.get_user_role_ids(user_id)
        if not role_ids:
            return []
        result = self.supabase.table("roles")\
            .select("*")\
            .in_("id", role_ids)\
            .order("title")\
            .execute()
        return [RoleResponse(**row) for row in result.data or []]

    def _permission_ids_for_roles(self, role_ids: List[str]) -> List[str]:
        if not role_ids:
            return []
        result = self.supabase.table("role_permissions")\
            .select("permission_id")\
            .in_("role_id", role_ids)\
            .execute()
        return sorted({row["permission_id"] for row in result.data or []})

    def find_user_permissions(
        self,
        user_id: str,
        resource: Optional[Resource] = None,
        action: Optional[Action] = None,
        limit: Optional[int] = None
    ) -> Set[PermissionInfo]:
        """
        Effective permissions for a user, optionally filtered by resource/action
        in the query itself. Each permission appears once however many of the
        user's roles grant it.
        """
        permission_ids = self._permission_ids_for_roles(self.get_user_role_ids(user_id))
        if not permission_ids:
            return set()

        query = self.supabase.table("permissions")\
            .select("id, key, resource, action")\
            .in_("id", permission_ids)
        if resource is not None:
            query = query.eq("resource", Resource(resource).value)
        if action is not None:
            query = query.eq("action", Action(action).value)
        if limit is not None:
            query = query.limit(limit)
        result = query.execute()

        by_id = {row["id"]: row for row in result.data or []}
        return {_to_info(row) for row in by_id.values()}

    def get_user_permissions(self, user_id: str) -> Set[PermissionInfo]:
        """Deduplicated effective permission set; empty for a user without roles"""
        return self.find_user_permissions(user_id)

    def get_role_permissions(self, role_id: str) -> Set[PermissionInfo]:
        """Permissions linked directly to one role"""
        role_id = parse_uuid(role_id)
        if role_id is None:
            return set()
        permission_ids = self._permission_ids_for_roles([role_id])
        if not permission_ids:
            return set()
        result = self.supabase.table("permissions")\
            .select("id, key, resource, action")\
            .in_("id", permission_ids)\
            .execute()
        return {_to_info(row) for row in result.data or []}

    def has_any_role_permission(self, user_id: str) -> bool:
        """True if at least one of the user's roles links at least one permission"""
        role_ids = self.get_user_role_ids(user_id)
        if not role_ids:
            return False
        result = self.supabase.table("role_permissions")\
            .select("role_id")\
            .in_("role_id", role_ids)\
            .limit(1)\
            .execute()
        return bool(result.data)
