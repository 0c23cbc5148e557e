"""
Core dependencies for route protection and service wiring
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client
from typing import Dict
import logging

from cms_rbac.config.settings import settings
from cms_rbac.core.exceptions import ForbiddenError
from cms_rbac.database.supabase_client import get_supabase
from cms_rbac.modules.access.guard import AuthorizationGuard
from cms_rbac.modules.access.resolver import PermissionResolver
from cms_rbac.modules.assignments.service import AssignmentService
from cms_rbac.modules.auth.service import AuthService
from cms_rbac.modules.permissions.models import Action, Resource
from cms_rbac.modules.permissions.service import PermissionCatalog
from cms_rbac.modules.roles.service import RoleService

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(credentials.credentials)


def get_permission_catalog(supabase: Client = Depends(get_supabase)) -> PermissionCatalog:
    return PermissionCatalog(supabase, super_admin_role_key=settings.super_admin_role_key)


def get_role_service(supabase: Client = Depends(get_supabase)) -> RoleService:
    return RoleService(supabase)


def get_assignment_service(
    supabase: Client = Depends(get_supabase),
    catalog: PermissionCatalog = Depends(get_permission_catalog),
    roles: RoleService = Depends(get_role_service)
) -> AssignmentService:
    return AssignmentService(supabase, catalog=catalog, roles=roles)


def get_permission_resolver(supabase: Client = Depends(get_supabase)) -> PermissionResolver:
    return PermissionResolver(supabase)


def get_authorization_guard(
    resolver: PermissionResolver = Depends(get_permission_resolver)
) -> AuthorizationGuard:
    return AuthorizationGuard(resolver)


def require_permission(resource: Resource, action: Action):
    """Factory function to create permission check dependency"""
    resource, action = Resource(resource), Action(action)

    def check_permission(
        user_data: Dict = Depends(get_current_user_id),
        guard: AuthorizationGuard = Depends(get_authorization_guard)
    ) -> Dict:
        """Dependency to check if user has required permission"""
        if not guard.has_permission(user_data["id"], resource, action):
            logger.info(f"Denied {resource.value}.{action.value} to user {user_data['id']}")
            raise ForbiddenError(
                f"Insufficient permissions. Required: {resource.value}.{action.value}"
            )
        return user_data
    return check_permission


def require_dashboard_access(
    user_data: Dict = Depends(get_current_user_id),
    guard: AuthorizationGuard = Depends(get_authorization_guard)
) -> Dict:
    """Any role with at least one permission opens the dashboard"""
    if not guard.has_dashboard_access(user_data["id"]):
        raise ForbiddenError("Dashboard access requires at least one permission")
    return user_data
