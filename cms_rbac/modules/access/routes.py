from fastapi import APIRouter, Depends
from typing import Dict

from cms_rbac.core.dependencies import (
    get_authorization_guard, get_current_user_id, get_permission_resolver, require_permission
)
from cms_rbac.modules.access.guard import AuthorizationGuard
from cms_rbac.modules.access.resolver import PermissionResolver
from cms_rbac.modules.access.schemas import (
    DashboardAccessResponse, MyPermissionsResponse, UserPermissionsResponse
)
from cms_rbac.modules.permissions.models import Action, Resource

router = APIRouter(tags=["access"])


@router.get("/users/{user_id}/permissions", response_model=UserPermissionsResponse)
async def get_user_permissions(
    user_id: str,
    user_data: Dict = Depends(require_permission(Resource.USERS, Action.READ)),
    resolver: PermissionResolver = Depends(get_permission_resolver)
):
    """Effective permissions of a user across all their roles"""
    permissions = sorted(resolver.get_user_permissions(user_id), key=lambda p: p.key)
    return UserPermissionsResponse(user_id=user_id, permissions=permissions)


@router.get("/me/permissions", response_model=MyPermissionsResponse)
async def get_my_permissions(
    current_user: Dict = Depends(get_current_user_id),
    guard: AuthorizationGuard = Depends(get_authorization_guard)
):
    """Current user and their permission keys (for frontend UI)"""
    return MyPermissionsResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        permissions=guard.get_user_permission_keys(current_user["id"])
    )


@router.get("/me/dashboard-access", response_model=DashboardAccessResponse)
async def get_my_dashboard_access(
    current_user: Dict = Depends(get_current_user_id),
    guard: AuthorizationGuard = Depends(get_authorization_guard)
):
    return DashboardAccessResponse(has_access=guard.has_dashboard_access(current_user["id"]))
