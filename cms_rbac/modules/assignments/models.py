# Supabase tables: role_permissions, user_roles
# DDL lives in cms_rbac/database/schema.sql; operations go through the Supabase SDK in service.py

"""
Expected Supabase table structure:

role_permissions:
- id: uuid (primary key)
- role_id: uuid (foreign key to roles.id, not null)
- permission_id: uuid (foreign key to permissions.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (role_id, permission_id)

user_roles:
- id: uuid (primary key)
- user_id: uuid (auth.users id, not null) - opaque to this service
- role_id: uuid (foreign key to roles.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (user_id, role_id)
"""
