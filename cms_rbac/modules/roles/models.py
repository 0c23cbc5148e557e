# Supabase table: roles
# DDL lives in cms_rbac/database/schema.sql; operations go through the Supabase SDK in service.py

"""
Expected Supabase table structure:

roles:
- id: uuid (primary key)
- title: text (not null, unique) - human label, e.g. "Content Manager"
- key: text (not null, unique) - slug derived from the title, e.g. "content_manager"
- description: text (nullable)
- is_system: boolean (default false) - system roles cannot be updated or deleted
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Deleting a role goes through the delete_role_cascade() database function so
its role_permissions and user_roles rows disappear in the same transaction.
"""

MIN_TITLE_LENGTH = 2
