import logging
from typing import Iterable, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from cms_rbac.config.permissions_config import SYSTEM_RESOURCES, default_description
from cms_rbac.config.settings import settings
from cms_rbac.core.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError, is_unique_violation
)
from cms_rbac.core.ids import parse_uuid
from cms_rbac.modules.permissions.models import (
    Action, Resource, normalize_permission_key, permission_key
)
from cms_rbac.modules.permissions.schemas import (
    PermissionResponse, PermissionSchemaResponse
)

logger = logging.getLogger(__name__)


class PermissionCatalog:
    """The managed set of (resource, action) permissions."""

    def __init__(self, supabase: Client, super_admin_role_key: Optional[str] = None):
        self.supabase = supabase
        self.super_admin_role_key = super_admin_role_key or settings.super_admin_role_key

    def list_permissions(self, resource: Optional[Resource] = None) -> List[PermissionResponse]:
        """All known permissions, ordered by resource then action"""
        query = self.supabase.table("permissions").select("*")
        if resource is not None:
            query = query.eq("resource", Resource(resource).value)
        result = query.order("resource").order("action").execute()
        return [PermissionResponse(**row) for row in result.data or []]

    def find_by_keys(self, keys: Iterable[str]) -> List[PermissionResponse]:
        """
        Permissions for the given keys. Keys that name no existing permission
        are dropped silently so bulk operations can be best-effort.
        """
        normalized = {k for k in (normalize_permission_key(key) for key in keys) if k}
        if not normalized:
            return []
        result = self.supabase.table("permissions")\
            .select("*")\
            .in_("key", sorted(normalized))\
            .execute()
        return [PermissionResponse(**row) for row in result.data or []]

    def get_permission(self, permission_id: str) -> PermissionResponse:
        permission_id = parse_uuid(permission_id)
        if permission_id is None:
            raise NotFoundError("Permission not found")
        result = self.supabase.table("permissions")\
            .select("*")\
            .eq("id", permission_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFoundError("Permission not found")
        return PermissionResponse(**result.data[0])

    def permission_schema(self) -> PermissionSchemaResponse:
        return PermissionSchemaResponse(resources=list(Resource), actions=list(Action))

    def create_permission(
        self,
        resource: str,
        action: str,
        description: Optional[str] = None
    ) -> PermissionResponse:
        """
        Create a permission and grant it to the super-admin role in one transaction.

        Raises:
            ValidationError: resource or action outside the closed set
            ConflictError: the (resource, action) pair already exists
            NotFoundError: the super-admin role has not been seeded
        """
        resource_value = (resource or "").strip().lower()
        action_value = (action or "").strip().lower()
        try:
            resource_enum = Resource(resource_value)
        except ValueError:
            raise ValidationError(
                f"Invalid resource. Must be one of: {', '.join(r.value for r in Resource)}"
            )
        try:
            action_enum = Action(action_value)
        except ValueError:
            raise ValidationError(
                f"Invalid action. Must be one of: {', '.join(a.value for a in Action)}"
            )

        key = permission_key(resource_enum, action_enum)
        existing = self.supabase.table("permissions")\
            .select("id")\
            .eq("key", key)\
            .limit(1)\
            .execute()
        if existing.data:
            raise ConflictError(
                "Permission with this resource and action already exists", fields=("key",)
            )

        super_admin = self.supabase.table("roles")\
            .select("id, is_system")\
            .eq("key", self.super_admin_role_key)\
            .limit(1)\
            .execute()
        if not super_admin.data:
            logger.error(f"Role '{self.super_admin_role_key}' not found while creating permission {key}")
            raise NotFoundError(
                "Super admin role is missing. Seed roles before creating permissions."
            )
        if not super_admin.data[0].get("is_system"):
            logger.warning(f"Role '{self.super_admin_role_key}' is not marked as a system role")

        try:
            result = self.supabase.rpc("create_permission_with_grant", {
                "p_resource": resource_enum.value,
                "p_action": action_enum.value,
                "p_key": key,
                "p_description": description or default_description(resource_enum.value, action_enum.value),
                "p_is_system": resource_enum.value in SYSTEM_RESOURCES,
                "p_grant_role_id": super_admin.data[0]["id"]
            }).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise ConflictError(
                    "Permission with this resource and action already exists", fields=("key",)
                )
            raise

        row = result.data[0] if isinstance(result.data, list) else result.data
        logger.info(f"Created permission {key} and granted it to '{self.super_admin_role_key}'")
        return PermissionResponse(**row)

    def update_description(self, permission_id: str, description: Optional[str]) -> PermissionResponse:
        """Only the description is mutable; resource and action define the permission."""
        permission_id = parse_uuid(permission_id)
        if permission_id is None:
            raise NotFoundError("Permission not found")
        result = self.supabase.table("permissions")\
            .update({"description": description})\
            .eq("id", permission_id)\
            .execute()
        if not result.data:
            raise NotFoundError("Permission not found")
        return PermissionResponse(**result.data[0])

    def delete_permission(self, permission_id: str) -> int:
        """Delete a permission with its role links. Returns the number of links removed."""
        permission = self.get_permission(permission_id)
        if permission.is_system:
            raise ForbiddenError(
                "System permissions cannot be deleted. This permission is required for core functionality."
            )
        result = self.supabase.rpc(
            "delete_permission_cascade", {"target_permission_id": permission.id}
        ).execute()
        removed = int((result.data or {}).get("deleted_role_permissions", 0))
        logger.info(f"Deleted permission {permission.key}; removed {removed} role assignment(s)")
        return removed

    def seed_permissions(
        self,
        resources: Optional[Iterable[Resource]] = None,
        actions: Optional[Iterable[Action]] = None
    ) -> int:
        """
        Create one permission per (resource, action) pair. Pairs that already
        exist are left untouched. Returns the number of permissions created.
        """
        resources = [Resource(r) for r in resources] if resources is not None else list(Resource)
        actions = [Action(a) for a in actions] if actions is not None else list(Action)
        rows = [
            {
                "key": permission_key(resource, action),
                "resource": resource.value,
                "action": action.value,
                "description": default_description(resource.value, action.value),
                "is_system": resource.value in SYSTEM_RESOURCES
            }
            for resource in resources
            for action in actions
        ]
        if not rows:
            return 0

        result = self.supabase.table("permissions")\
            .upsert(rows, on_conflict="resource,action", ignore_duplicates=True)\
            .execute()
        created = len(result.data or [])
        if created:
            logger.info(f"Permissions seeded: {created} created")
        else:
            logger.info("Permissions already exist")
        return created
