from fastapi import APIRouter, Depends
from typing import List, Dict

from cms_rbac.core.dependencies import (
    get_assignment_service, get_permission_resolver, get_role_service, require_permission
)
from cms_rbac.modules.access.resolver import PermissionResolver
from cms_rbac.modules.assignments.schemas import (
    BulkPermissionAssign, BulkPermissionAssignResponse,
    BulkPermissionRemoveResponse, BulkPermissionUpdateResponse
)
from cms_rbac.modules.assignments.service import AssignmentService
from cms_rbac.modules.permissions.models import Action, Resource
from cms_rbac.modules.permissions.schemas import PermissionInfo
from cms_rbac.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, RoleWithPermissionsResponse, RoleDeleteResponse
)
from cms_rbac.modules.roles.service import RoleService

router = APIRouter(prefix="/roles", tags=["roles"])


def _sorted(permissions) -> List[PermissionInfo]:
    return sorted(permissions, key=lambda p: p.key)


@router.post("", response_model=RoleResponse, status_code=201)
async def create_role(
    role_data: RoleCreate,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.CREATE)),
    service: RoleService = Depends(get_role_service)
):
    """Create a new role"""
    return service.create_role(role_data.title, role_data.description)


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.READ)),
    service: RoleService = Depends(get_role_service)
):
    return service.list_roles(limit=limit, offset=offset)


@router.get("/{role_id}", response_model=RoleWithPermissionsResponse)
async def get_role(
    role_id: str,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.READ)),
    service: RoleService = Depends(get_role_service),
    resolver: PermissionResolver = Depends(get_permission_resolver)
):
    """Get role with all associated permissions"""
    role = service.get_role(role_id)
    return RoleWithPermissionsResponse(
        **role.model_dump(),
        permissions=_sorted(resolver.get_role_permissions(role.id))
    )


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_data: RoleUpdate,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.UPDATE)),
    service: RoleService = Depends(get_role_service)
):
    return service.update_role(role_id, title=role_data.title, description=role_data.description)


@router.delete("/{role_id}", response_model=RoleDeleteResponse)
async def delete_role(
    role_id: str,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.DELETE)),
    service: RoleService = Depends(get_role_service)
):
    """Delete role along with its permission links and user assignments"""
    deleted_permissions, deleted_user_roles = service.delete_role(role_id)
    return RoleDeleteResponse(
        role_id=role_id,
        deleted_role_permissions=deleted_permissions,
        deleted_user_roles=deleted_user_roles,
        message=(
            f"Role deleted successfully. Removed {deleted_user_roles} user assignment(s) "
            f"and {deleted_permissions} permission(s)."
        )
    )


# Role-permission endpoints
@router.get("/{role_id}/permissions", response_model=List[PermissionInfo])
async def get_role_permissions(
    role_id: str,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.READ)),
    service: RoleService = Depends(get_role_service),
    resolver: PermissionResolver = Depends(get_permission_resolver)
):
    role = service.get_role(role_id)
    return _sorted(resolver.get_role_permissions(role.id))


@router.post("/{role_id}/permissions", response_model=BulkPermissionAssignResponse)
async def assign_permissions(
    role_id: str,
    assign_data: BulkPermissionAssign,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.UPDATE)),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Bulk assign permissions to a role; already assigned ones are skipped"""
    assigned = service.assign_permissions_to_role(role_id, assign_data.permission_keys)
    return BulkPermissionAssignResponse(
        role_id=role_id,
        assigned_count=assigned,
        message=f"Assigned {assigned} permissions"
    )


@router.put("/{role_id}/permissions", response_model=BulkPermissionUpdateResponse)
async def replace_permissions(
    role_id: str,
    assign_data: BulkPermissionAssign,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.UPDATE)),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Replace all permissions of a role"""
    added, removed = service.set_role_permissions(role_id, assign_data.permission_keys)
    return BulkPermissionUpdateResponse(
        role_id=role_id,
        added_count=added,
        removed_count=removed,
        message=f"Updated role: {added} added, {removed} removed"
    )


@router.post("/{role_id}/permissions/remove", response_model=BulkPermissionRemoveResponse)
async def remove_permissions(
    role_id: str,
    remove_data: BulkPermissionAssign,
    user_data: Dict = Depends(require_permission(Resource.ROLES, Action.UPDATE)),
    service: AssignmentService = Depends(get_assignment_service)
):
    removed = service.remove_permissions_from_role(role_id, remove_data.permission_keys)
    return BulkPermissionRemoveResponse(
        role_id=role_id,
        removed_count=removed,
        message=f"Removed {removed} permissions"
    )
