# Supabase table: permissions
# DDL lives in cms_rbac/database/schema.sql; operations go through the Supabase SDK in service.py

"""
Expected Supabase table structure:

permissions:
- id: uuid (primary key)
- key: text (not null, unique) - always "<resource>.<action>", e.g. "posts.create"
- resource: text (not null) - one of Resource
- action: text (not null) - one of Action
- description: text (nullable)
- is_system: boolean (default false) - protected from deletion
- created_at: timestamp (default: now())
- unique constraint on (resource, action)
"""

from enum import Enum
from typing import Optional


class Resource(str, Enum):
    USERS = "users"
    ROLES = "roles"
    PERMISSIONS = "permissions"
    POSTS = "posts"
    DASHBOARD = "dashboard"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


KEY_SEPARATOR = "."


def permission_key(resource: Resource, action: Action) -> str:
    return f"{Resource(resource).value}{KEY_SEPARATOR}{Action(action).value}"


def normalize_permission_key(raw: str) -> Optional[str]:
    """
    Canonical form of a permission key, or None when it cannot name a permission.

    Accepts "posts.create", " Posts.Create " and the legacy "posts:create".
    """
    if not isinstance(raw, str):
        return None
    candidate = raw.strip().lower().replace(":", KEY_SEPARATOR)
    resource, sep, action = candidate.partition(KEY_SEPARATOR)
    if not sep:
        return None
    try:
        return permission_key(Resource(resource), Action(action))
    except ValueError:
        return None
