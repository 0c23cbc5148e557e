"""
Pytest configuration and fixtures for the RBAC tests.
"""
import os
import pytest

# Keep the application from picking up a developer's .env values
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_KEY", "")
os.environ["RATE_LIMIT"] = "20/minute"

from fake_supabase import FakeSupabase  # noqa: E402

from cms_rbac.modules.access.guard import AuthorizationGuard  # noqa: E402
from cms_rbac.modules.access.resolver import PermissionResolver  # noqa: E402
from cms_rbac.modules.assignments.service import AssignmentService  # noqa: E402
from cms_rbac.modules.permissions.service import PermissionCatalog  # noqa: E402
from cms_rbac.modules.roles.service import RoleService  # noqa: E402
from cms_rbac.scripts.seed_permissions_roles import run_seed  # noqa: E402


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def catalog(supabase) -> PermissionCatalog:
    return PermissionCatalog(supabase)


@pytest.fixture
def roles(supabase) -> RoleService:
    return RoleService(supabase)


@pytest.fixture
def assignments(supabase, catalog, roles) -> AssignmentService:
    return AssignmentService(supabase, catalog=catalog, roles=roles)


@pytest.fixture
def resolver(supabase) -> PermissionResolver:
    return PermissionResolver(supabase)


@pytest.fixture
def guard(resolver) -> AuthorizationGuard:
    return AuthorizationGuard(resolver)


@pytest.fixture
def seeded(supabase) -> FakeSupabase:
    """Full catalog plus the configured system and default roles"""
    run_seed(supabase)
    return supabase


@pytest.fixture
def editor(catalog, roles):
    """An 'Editor' role over a posts-only catalog"""
    catalog.seed_permissions(resources=["posts"])
    return roles.create_role("Editor", "Edits posts")
