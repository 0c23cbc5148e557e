"""
Authorization predicates.

Every check fails closed: if the store cannot be read the answer is False,
and the failure is logged instead of raised.
"""

import logging
from typing import List

from cms_rbac.modules.access.resolver import PermissionResolver
from cms_rbac.modules.permissions.models import Action, Resource

logger = logging.getLogger(__name__)


class AuthorizationGuard:
    def __init__(self, resolver: PermissionResolver):
        self.resolver = resolver

    def has_permission(self, user_id: str, resource: Resource, action: Action) -> bool:
        try:
            resource, action = Resource(resource), Action(action)
        except ValueError:
            logger.warning(f"Permission check for unknown pair {resource!r}/{action!r}; denying")
            return False
        try:
            matches = self.resolver.find_user_permissions(user_id, resource=resource, action=action, limit=1)
            return any(p.resource == resource and p.action == action for p in matches)
        except Exception as e:
            logger.error(f"Error checking permission {resource.value}.{action.value} for user {user_id}: {e}")
            return False

    def has_any_permission_for_resource(self, user_id: str, resource: Resource) -> bool:
        try:
            resource = Resource(resource)
        except ValueError:
            logger.warning(f"Resource check for unknown resource {resource!r}; denying")
            return False
        try:
            matches = self.resolver.find_user_permissions(user_id, resource=resource, limit=1)
            return any(p.resource == resource for p in matches)
        except Exception as e:
            logger.error(f"Error checking resource permission {resource.value} for user {user_id}: {e}")
            return False

    def has_dashboard_access(self, user_id: str) -> bool:
        try:
            return self.resolver.has_any_role_permission(user_id)
        except Exception as e:
            logger.error(f"Error checking dashboard access for user {user_id}: {e}")
            return False

    def get_user_permission_keys(self, user_id: str) -> List[str]:
        """Sorted permission keys for quick checks in the UI; [] on error"""
        try:
            return sorted(p.key for p in self.resolver.get_user_permissions(user_id))
        except Exception as e:
            logger.error(f"Error getting user permissions for {user_id}: {e}")
            return []
