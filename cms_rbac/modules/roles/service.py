import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from postgrest.exceptions import APIError
from supabase import Client

from cms_rbac.core.exceptions import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError, is_unique_violation
)
from cms_rbac.core.ids import parse_uuid
from cms_rbac.modules.roles.keys import derive_key
from cms_rbac.modules.roles.models import MIN_TITLE_LENGTH
from cms_rbac.modules.roles.schemas import RoleResponse

logger = logging.getLogger(__name__)


def _clean_title(title: Optional[str]) -> str:
    cleaned = title.strip() if isinstance(title, str) else ""
    if len(cleaned) < MIN_TITLE_LENGTH:
        raise ValidationError(
            f"A valid role title is required (at least {MIN_TITLE_LENGTH} characters)"
        )
    return cleaned


def _conflict(fields: Tuple[str, ...]) -> ConflictError:
    if fields == ("title", "key"):
        return ConflictError("A role with this title and key already exists", fields=fields)
    if fields == ("key",):
        return ConflictError("A role with this key already exists", fields=fields)
    return ConflictError("A role with this title already exists", fields=("title",))


class RoleService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _collisions(self, title: str, key: Optional[str], exclude_id: Optional[str] = None) -> Tuple[str, ...]:
        """Which unique columns a role with this title/key would collide on"""
        fields = []
        checks = [("title", title)]
        if key is not None:
            checks.append(("key", key))
        for column, value in checks:
            query = self.supabase.table("roles").select("id").eq(column, value)
            if exclude_id is not None:
                query = query.neq("id", exclude_id)
            if query.limit(1).execute().data:
                fields.append(column)
        return tuple(fields)

    def create_role(self, title: str, description: Optional[str] = None) -> RoleResponse:
        """
        Create a user-defined role. The key is derived from the title.

        Raises:
            ValidationError: title shorter than two characters, or no alphanumeric content
            ConflictError: title and/or derived key already taken
        """
        cleaned = _clean_title(title)
        key = derive_key(cleaned)

        collisions = self._collisions(cleaned, key)
        if collisions:
            raise _conflict(collisions)

        try:
            result = self.supabase.table("roles").insert({
                "title": cleaned,
                "key": key,
                "description": description,
                "is_system": False
            }).execute()
        except APIError as e:
            if not is_unique_violation(e):
                raise
            # Lost a race against a concurrent create
            raise _conflict(self._collisions(cleaned, key) or ("title", "key"))

        role = RoleResponse(**result.data[0])
        logger.info(f"Created role '{role.title}' ({role.key})")
        return role

    def get_role(self, role_id: str) -> RoleResponse:
        """A malformed id names no role, so it is reported as not found."""
        role_id = parse_uuid(role_id)
        if role_id is None:
            raise NotFoundError("Role not found")
        result = self.supabase.table("roles")\
            .select("*")\
            .eq("id", role_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFoundError("Role not found")
        return RoleResponse(**result.data[0])

    def get_role_by_key(self, key: str) -> Optional[RoleResponse]:
        result = self.supabase.table("roles")\
            .select("*")\
            .eq("key", key)\
            .limit(1)\
            .execute()
        return RoleResponse(**result.data[0]) if result.data else None

    def find_by_keys(self, keys: Iterable[str]) -> List[RoleResponse]:
        """Roles for the given keys; unknown keys are dropped"""
        normalized = {k.strip().lower() for k in keys if isinstance(k, str) and k.strip()}
        if not normalized:
            return []
        result = self.supabase.table("roles")\
            .select("*")\
            .in_("key", sorted(normalized))\
            .execute()
        return [RoleResponse(**row) for row in result.data or []]

    def list_roles(self, limit: int = 100, offset: int = 0) -> List[RoleResponse]:
        result = self.supabase.table("roles")\
            .select("*")\
            .order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [RoleResponse(**row) for row in result.data or []]

    def update_role(
        self,
        role_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None
    ) -> RoleResponse:
        """Update title and/or description. The key stays as derived at creation."""
        role = self.get_role(role_id)
        if role.is_system:
            raise ForbiddenError("System roles cannot be modified.")

        update_data = {}
        if title is not None:
            cleaned = _clean_title(title)
            if cleaned != role.title:
                if self._collisions(cleaned, None, exclude_id=role.id):
                    raise _conflict(("title",))
                update_data["title"] = cleaned
        if description is not None:
            update_data["description"] = description
        if not update_data:
            return role

        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("roles")\
                .update(update_data)\
                .eq("id", role.id)\
                .execute()
        except APIError as e:
            if is_unique_violation(e):
                raise _conflict(("title",))
            raise

        if not result.data:
            raise NotFoundError("Role not found")
        return RoleResponse(**result.data[0])

    def delete_role(self, role_id: str) -> Tuple[int, int]:
        """
        Delete a role together with its permission links and user assignments.
        The cascade runs inside one database transaction.

        Returns:
            (deleted_role_permissions, deleted_user_roles)
        """
        role = self.get_role(role_id)
        if role.is_system:
            raise ForbiddenError(
                "System roles cannot be deleted. This role is required for core functionality."
            )

        result = self.supabase.rpc("delete_role_cascade", {"target_role_id": role.id}).execute()
        counts = result.data or {}
        deleted_permissions = int(counts.get("deleted_role_permissions", 0))
        deleted_user_roles = int(counts.get("deleted_user_roles", 0))
        logger.info(
            f"Deleted role '{role.key}': removed {deleted_user_roles} user assignment(s) "
            f"and {deleted_permissions} permission(s)"
        )
        return deleted_permissions, deleted_user_roles

    def ensure_role(
        self,
        key: str,
        title: str,
        description: Optional[str] = None,
        is_system: bool = False
    ) -> Tuple[RoleResponse, bool]:
        """
        Idempotently create a seeded role. An existing role keeps its title and
        description but has its is_system flag brought in line.

        Returns:
            (role, created)
        """
        result = self.supabase.table("roles")\
            .upsert([{
                "key": key,
                "title": title,
                "description": description,
                "is_system": is_system
            }], on_conflict="key", ignore_duplicates=True)\
            .execute()
        if result.data:
            logger.info(f"Created {'system' if is_system else 'default'} role: {title}")
            return RoleResponse(**result.data[0]), True

        role = self.get_role_by_key(key)
        if role is None:
            raise NotFoundError(f"Role '{key}' could not be created")
        if role.is_system != is_system:
            updated = self.supabase.table("roles")\
                .update({"is_system": is_system})\
                .eq("id", role.id)\
                .execute()
            role = RoleResponse(**updated.data[0])
            logger.info(f"Updated system flag for: {role.title}")
        return role, False
