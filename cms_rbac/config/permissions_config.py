"""
Permissions and Roles Configuration
This config defines the permission catalog and the roles that ship with the CMS.
Used by the seed script (and optional startup seeding) to populate/update roles and permissions.
"""

from cms_rbac.config.settings import settings
from cms_rbac.modules.permissions.models import permission_key

# Closed set of resources and actions. A permission exists for every pair.
RESOURCES = ["users", "roles", "permissions", "posts", "dashboard"]
ACTIONS = ["create", "read", "update", "delete"]

# Permissions on these resources guard the RBAC layer itself and are protected
SYSTEM_RESOURCES = ["users", "roles", "permissions", "dashboard"]

# Readable descriptions for specific permissions; everything else gets "<ACTION> <resource>"
PERMISSION_DESCRIPTIONS = {
    "dashboard.read": "Access the admin dashboard",
    "posts.create": "Write new posts",
    "posts.read": "Read posts, including drafts",
    "posts.update": "Edit existing posts",
    "posts.delete": "Delete posts",
}

# Holds every permission in the catalog. Its key comes from settings.super_admin_role_key
SUPER_ADMIN_ROLE = {
    "title": "Super Admin",
    "description": "Full system access with all permissions",
}

# Other roles required for core functionality; cannot be edited or deleted
SYSTEM_ROLES = [
    {
        "key": "user",
        "title": "User",
        "description": "Basic user with limited permissions",
    },
]

# Roles created on first seed; admins may edit or delete them afterwards
DEFAULT_ROLES = [
    {
        "key": "author",
        "title": "Author",
        "description": "Can create and manage their own content",
    },
]

ROLE_PERMISSIONS = {
    "user": ["users.read"],
    "author": ["dashboard.read", "posts.create", "posts.read", "posts.update", "users.read"],
}


def default_description(resource: str, action: str) -> str:
    return PERMISSION_DESCRIPTIONS.get(
        permission_key(resource, action),
        f"{action.upper()} {resource}"
    )


def get_permission_matrix(resources=None, actions=None, super_admin_role_key=None):
    """
    Returns every permission row and every seeded role with its permission keys.
    Format: {
        "permissions": [
            {"key": "posts.create", "resource": "posts", "action": "create",
             "description": "...", "is_system": False},
            ...
        ],
        "roles": [
            {"key": "super_admin", "title": "Super Admin", "description": "...",
             "is_system": True, "permissions": ["dashboard.create", ...]},
            ...
        ]
    }
    """
    resources = list(resources) if resources is not None else RESOURCES
    actions = list(actions) if actions is not None else ACTIONS

    permissions = []
    for resource in resources:
        for action in actions:
            permissions.append({
                "key": permission_key(resource, action),
                "resource": resource,
                "action": action,
                "description": default_description(resource, action),
                "is_system": resource in SYSTEM_RESOURCES
            })

    all_keys = sorted(p["key"] for p in permissions)
    roles = [{
        "key": super_admin_role_key or settings.super_admin_role_key,
        **SUPER_ADMIN_ROLE,
        "is_system": True,
        "permissions": all_keys
    }]
    for role_config, is_system in (
        [(r, True) for r in SYSTEM_ROLES] + [(r, False) for r in DEFAULT_ROLES]
    ):
        keys = sorted(k for k in ROLE_PERMISSIONS.get(role_config["key"], []) if k in all_keys)
        roles.append({
            **role_config,
            "is_system": is_system,
            "permissions": keys
        })

    return {
        "permissions": permissions,
        "roles": roles
    }
