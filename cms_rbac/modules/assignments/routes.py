from fastapi import APIRouter, Depends
from typing import List, Dict

from cms_rbac.core.dependencies import (
    get_assignment_service, get_permission_resolver, require_permission
)
from cms_rbac.modules.access.resolver import PermissionResolver
from cms_rbac.modules.assignments.schemas import (
    BulkRoleAssign, BulkRoleAssignResponse, BulkRoleRemoveResponse
)
from cms_rbac.modules.assignments.service import AssignmentService
from cms_rbac.modules.permissions.models import Action, Resource
from cms_rbac.modules.roles.schemas import RoleResponse

router = APIRouter(prefix="/users", tags=["user-roles"])


@router.get("/{user_id}/roles", response_model=List[RoleResponse])
async def get_user_roles(
    user_id: str,
    user_data: Dict = Depends(require_permission(Resource.USERS, Action.READ)),
    resolver: PermissionResolver = Depends(get_permission_resolver)
):
    return resolver.get_user_roles(user_id)


@router.post("/{user_id}/roles", response_model=BulkRoleAssignResponse)
async def assign_roles(
    user_id: str,
    assign_data: BulkRoleAssign,
    user_data: Dict = Depends(require_permission(Resource.USERS, Action.UPDATE)),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Bulk assign roles to a user; roles already held are skipped"""
    assigned = service.assign_roles_to_user(user_id, assign_data.role_keys)
    return BulkRoleAssignResponse(
        user_id=user_id,
        assigned_count=assigned,
        message=f"Assigned {assigned} roles"
    )


@router.post("/{user_id}/roles/remove", response_model=BulkRoleRemoveResponse)
async def remove_roles(
    user_id: str,
    remove_data: BulkRoleAssign,
    user_data: Dict = Depends(require_permission(Resource.USERS, Action.UPDATE)),
    service: AssignmentService = Depends(get_assignment_service)
):
    removed = service.remove_roles_from_user(user_id, remove_data.role_keys)
    return BulkRoleRemoveResponse(
        user_id=user_id,
        removed_count=removed,
        message=f"Removed {removed} roles"
    )
