import pytest
from fake_supabase import uid
from fastapi.testclient import TestClient

from cms_rbac.config.settings import settings
from cms_rbac.core.dependencies import get_current_user_id
from cms_rbac.database.supabase_client import get_supabase
from cms_rbac.main import app, limiter
from cms_rbac.modules.assignments.service import AssignmentService
from cms_rbac.modules.auth.service import clear_auth_cache

API = "/api/v1"
ADMIN = uid("admin-1")


@pytest.fixture(autouse=True)
def fresh_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def current_user():
    return {"id": ADMIN, "email": "admin@example.com"}


@pytest.fixture
def client(seeded, current_user):
    AssignmentService(seeded).assign_roles_to_user(ADMIN, ["super_admin"])
    app.dependency_overrides[get_supabase] = lambda: seeded
    app.dependency_overrides[get_current_user_id] = lambda: current_user
    yield TestClient(app)
    app.dependency_overrides.clear()


def _as(current_user, name):
    current_user["id"] = uid(name)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_role_lifecycle(client):
    response = client.post(f"{API}/roles", json={"title": "Content Manager!", "description": "CMS"})
    assert response.status_code == 201
    role = response.json()
    assert role["key"] == "content_manager"

    response = client.post(
        f"{API}/roles/{role['id']}/permissions",
        json={"permission_keys": ["posts.create", "posts.read", "bogus.key"]}
    )
    assert response.status_code == 200
    assert response.json()["assigned_count"] == 2

    response = client.get(f"{API}/roles/{role['id']}")
    assert [p["key"] for p in response.json()["permissions"]] == ["posts.create", "posts.read"]

    response = client.put(f"{API}/roles/{role['id']}", json={"description": "Runs the CMS"})
    assert response.json()["description"] == "Runs the CMS"

    response = client.delete(f"{API}/roles/{role['id']}")
    assert response.status_code == 200
    assert response.json()["deleted_role_permissions"] == 2

    assert client.get(f"{API}/roles/{role['id']}").status_code == 404


def test_create_role_errors(client):
    assert client.post(f"{API}/roles", json={"title": "x"}).status_code == 400
    response = client.post(f"{API}/roles", json={"title": "Author"})
    assert response.status_code == 409
    assert "title and key" in response.json()["detail"]


def test_system_role_is_protected(client, seeded):
    super_admin = next(r for r in seeded.tables["roles"] if r["key"] == "super_admin")
    assert client.delete(f"{API}/roles/{super_admin['id']}").status_code == 403
    assert client.put(f"{API}/roles/{super_admin['id']}", json={"title": "Root"}).status_code == 403


def test_assign_with_no_valid_permissions(client, seeded):
    author = next(r for r in seeded.tables["roles"] if r["key"] == "author")
    response = client.post(f"{API}/roles/{author['id']}/permissions", json={"permission_keys": ["bogus.key"]})
    assert response.status_code == 404
    assert response.json()["detail"] == "No valid permissions found"


def test_replace_and_remove_role_permissions(client, seeded):
    author = next(r for r in seeded.tables["roles"] if r["key"] == "author")
    response = client.put(
        f"{API}/roles/{author['id']}/permissions",
        json={"permission_keys": ["posts.read", "posts.delete"]}
    )
    assert response.json()["added_count"] == 1
    assert response.json()["removed_count"] == 4

    response = client.post(
        f"{API}/roles/{author['id']}/permissions/remove",
        json={"permission_keys": ["posts.delete"]}
    )
    assert response.json()["removed_count"] == 1
    keys = [p["key"] for p in client.get(f"{API}/roles/{author['id']}/permissions").json()]
    assert keys == ["posts.read"]


def test_user_roles_and_effective_permissions(client):
    user = uid("user-7")
    response = client.post(f"{API}/users/{user}/roles", json={"role_keys": ["author", "user"]})
    assert response.json()["assigned_count"] == 2
    response = client.post(f"{API}/users/{user}/roles", json={"role_keys": ["author"]})
    assert response.json()["assigned_count"] == 0

    roles = client.get(f"{API}/users/{user}/roles").json()
    assert {r["key"] for r in roles} == {"author", "user"}

    permissions = client.get(f"{API}/users/{user}/permissions").json()["permissions"]
    keys = [p["key"] for p in permissions]
    assert keys.count("users.read") == 1

    response = client.post(f"{API}/users/{user}/roles/remove", json={"role_keys": ["author"]})
    assert response.json()["removed_count"] == 1


def test_permission_endpoints(client):
    permissions = client.get(f"{API}/permissions", params={"resource": "posts"}).json()
    assert len(permissions) == 4

    schema = client.get(f"{API}/permissions/schema").json()
    assert "dashboard" in schema["resources"]

    assert client.post(f"{API}/permissions", json={"resource": "posts", "action": "read"}).status_code == 409
    assert client.post(f"{API}/permissions", json={"resource": "comments", "action": "read"}).status_code == 400

    post_delete = next(p for p in permissions if p["key"] == "posts.delete")
    response = client.delete(f"{API}/permissions/{post_delete['id']}")
    assert response.status_code == 200
    assert response.json()["deleted_role_permissions"] == 1

    response = client.post(f"{API}/permissions/seed", json={})
    assert response.json()["created_count"] == 1

    roles_read = next(p for p in client.get(f"{API}/permissions").json() if p["key"] == "roles.read")
    assert client.delete(f"{API}/permissions/{roles_read['id']}").status_code == 403

    response = client.put(f"{API}/permissions/{roles_read['id']}", json={"description": "See roles"})
    assert response.json()["description"] == "See roles"


def test_me_endpoints(client, current_user):
    me = client.get(f"{API}/me/permissions").json()
    assert me["id"] == ADMIN
    assert "roles.delete" in me["permissions"]
    assert client.get(f"{API}/me/dashboard-access").json() == {"has_access": True}

    _as(current_user, "stranger")
    assert client.get(f"{API}/me/permissions").json()["permissions"] == []
    assert client.get(f"{API}/me/dashboard-access").json() == {"has_access": False}


def test_missing_permission_is_forbidden(client, current_user):
    client.post(f"{API}/users/{uid('reader')}/roles", json={"role_keys": ["user"]})
    _as(current_user, "reader")

    assert client.get(f"{API}/users/{uid('reader')}/roles").status_code == 200
    response = client.post(f"{API}/roles", json={"title": "Sneaky"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions. Required: roles.create"


def test_guard_fails_closed_over_http(client, seeded):
    seeded.fail_on("user_roles")
    assert client.get(f"{API}/roles").status_code == 403


def test_requires_bearer_token(seeded):
    app.dependency_overrides[get_supabase] = lambda: seeded
    try:
        response = TestClient(app).get(f"{API}/roles")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code in (401, 403)


def test_bearer_token_resolves_through_auth(seeded):
    clear_auth_cache()
    seeded.auth.tokens["reader-token"] = (uid("reader"), "reader@example.com")
    AssignmentService(seeded).assign_roles_to_user(uid("reader"), ["user"])
    app.dependency_overrides[get_supabase] = lambda: seeded
    try:
        client = TestClient(app)
        headers = {"Authorization": "Bearer reader-token"}
        me = client.get(f"{API}/me/permissions", headers=headers).json()
        denied = client.get(f"{API}/roles", headers=headers)
        forged = client.get(f"{API}/me/permissions", headers={"Authorization": "Bearer forged"})
    finally:
        app.dependency_overrides.clear()
        clear_auth_cache()

    assert me == {"id": uid("reader"), "email": "reader@example.com", "permissions": ["users.read"]}
    assert denied.status_code == 403
    assert forged.status_code == 401


def test_ready_reflects_store_state(seeded):
    client = TestClient(app)
    app.state.supabase = None
    assert client.get("/ready").status_code == 503

    app.state.supabase = seeded
    try:
        assert client.get("/ready").json() == {"status": "ready"}
        seeded.fail_on("roles")
        response = client.get("/ready")
    finally:
        app.state.supabase = None
    assert response.status_code == 503
    assert response.json()["reason"] == "store unreachable"


def test_malformed_ids_are_client_errors(client):
    assert client.get(f"{API}/roles/not-a-uuid").status_code == 404
    assert client.delete(f"{API}/roles/not-a-uuid").status_code == 404
    assert client.get(f"{API}/permissions/not-a-uuid").status_code == 404
    assert client.put(f"{API}/permissions/not-a-uuid", json={"description": "x"}).status_code == 404

    response = client.post(f"{API}/users/not-a-uuid/roles", json={"role_keys": ["user"]})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid user id"
    assert client.get(f"{API}/users/not-a-uuid/roles").json() == []


def test_replace_with_only_unknown_keys_keeps_role_intact(client, seeded):
    super_admin = next(r for r in seeded.tables["roles"] if r["key"] == "super_admin")
    url = f"{API}/roles/{super_admin['id']}/permissions"

    response = client.put(url, json={"permission_keys": ["posts.craete"]})

    assert response.status_code == 404
    assert len(client.get(url).json()) == 20


def test_rate_limit_applies_per_route(client):
    allowed = int(settings.rate_limit.split("/")[0])
    statuses = [client.get(f"{API}/permissions/schema").status_code for _ in range(allowed + 1)]

    assert statuses[:allowed] == [200] * allowed
    assert statuses[-1] == 429
    assert client.get(f"{API}/me/permissions").status_code == 200
    assert client.get("/health").status_code == 200
