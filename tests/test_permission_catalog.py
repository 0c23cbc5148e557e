import uuid

import pytest

from cms_rbac.config import permissions_config
from cms_rbac.config.permissions_config import ACTIONS, RESOURCES, get_permission_matrix
from cms_rbac.config.settings import settings
from cms_rbac.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from cms_rbac.modules.permissions.models import Action, Resource, normalize_permission_key, permission_key
from cms_rbac.modules.permissions.service import PermissionCatalog


def test_seed_cross_product_is_idempotent(catalog, supabase):
    created = catalog.seed_permissions(resources=["posts", "users"], actions=["create", "read"])
    assert created == 4

    again = catalog.seed_permissions(resources=["posts", "users"], actions=["create", "read"])
    assert again == 0
    assert sorted(p.key for p in catalog.list_permissions()) == [
        "posts.create", "posts.read", "users.create", "users.read"
    ]


def test_seed_only_adds_missing_pairs(catalog):
    catalog.seed_permissions(resources=["posts"], actions=["read"])
    assert catalog.seed_permissions(resources=["posts"]) == 3
    assert len(catalog.list_permissions()) == 4


def test_seed_marks_system_resources(catalog):
    catalog.seed_permissions()
    by_key = {p.key: p for p in catalog.list_permissions()}
    assert len(by_key) == len(Resource) * len(Action)
    assert by_key["roles.delete"].is_system is True
    assert by_key["posts.delete"].is_system is False
    assert by_key["posts.create"].description == "Write new posts"
    assert by_key["users.update"].description == "UPDATE users"


def test_list_permissions_filters_by_resource(catalog):
    catalog.seed_permissions()
    posts = catalog.list_permissions(resource=Resource.POSTS)
    assert {p.key for p in posts} == {"posts.create", "posts.read", "posts.update", "posts.delete"}


def test_find_by_keys_drops_unknown_keys(catalog):
    catalog.seed_permissions(resources=["posts"])
    found = catalog.find_by_keys(["posts.create", "bogus.key", "posts.publish", ""])
    assert [p.key for p in found] == ["posts.create"]


def test_find_by_keys_normalizes_legacy_separator(catalog):
    catalog.seed_permissions(resources=["posts"])
    found = catalog.find_by_keys(["posts:read", " POSTS.Update "])
    assert sorted(p.key for p in found) == ["posts.read", "posts.update"]


def test_find_by_keys_empty(catalog):
    assert catalog.find_by_keys([]) == []


@pytest.mark.parametrize("raw,expected", [
    ("posts.create", "posts.create"),
    ("posts:create", "posts.create"),
    ("Dashboard.Read", "dashboard.read"),
    ("posts", None),
    ("posts.publish", None),
    ("comments.read", None),
    (None, None),
])
def test_normalize_permission_key(raw, expected):
    assert normalize_permission_key(raw) == expected


def test_get_permission_not_found(catalog):
    with pytest.raises(NotFoundError):
        catalog.get_permission("missing")


def test_create_permission_grants_super_admin(seeded, catalog, resolver):
    super_admin = next(r for r in seeded.tables["roles"] if r["key"] == "super_admin")
    perm_id = next(p["id"] for p in seeded.tables["permissions"] if p["key"] == "posts.delete")
    catalog.delete_permission(perm_id)

    created = catalog.create_permission(" Posts ", "DELETE")

    assert created.key == "posts.delete"
    assert created.description == "Delete posts"
    assert created.is_system is False
    assert "posts.delete" in {p.key for p in resolver.get_role_permissions(super_admin["id"])}


def test_create_permission_conflict(seeded, catalog):
    with pytest.raises(ConflictError):
        catalog.create_permission("posts", "read")


@pytest.mark.parametrize("resource,action", [("comments", "read"), ("posts", "publish"), ("", "read")])
def test_create_permission_rejects_values_outside_closed_set(seeded, catalog, resource, action):
    with pytest.raises(ValidationError):
        catalog.create_permission(resource, action)


def test_create_permission_requires_super_admin(catalog):
    with pytest.raises(NotFoundError):
        catalog.create_permission("posts", "read", "Read posts")
    assert catalog.list_permissions() == []


def test_update_description(catalog):
    catalog.seed_permissions(resources=["posts"], actions=["read"])
    permission = catalog.list_permissions()[0]
    updated = catalog.update_description(permission.id, "Read every post")
    assert updated.description == "Read every post"
    assert updated.key == "posts.read"


def test_update_description_not_found(catalog):
    with pytest.raises(NotFoundError):
        catalog.update_description("missing", "x")
    with pytest.raises(NotFoundError):
        catalog.update_description(str(uuid.uuid4()), "x")


def test_delete_permission_not_found(catalog):
    with pytest.raises(NotFoundError):
        catalog.delete_permission("missing")


def test_delete_permission_cascades_role_links(catalog, roles, assignments, supabase):
    catalog.seed_permissions(resources=["posts"])
    first = roles.create_role("Editor")
    second = roles.create_role("Reviewer")
    assignments.assign_permissions_to_role(first.id, ["posts.update", "posts.read"])
    assignments.assign_permissions_to_role(second.id, ["posts.update"])
    target = catalog.find_by_keys(["posts.update"])[0]

    assert catalog.delete_permission(target.id) == 2
    assert not [r for r in supabase.tables["role_permissions"] if r["permission_id"] == target.id]
    assert catalog.find_by_keys(["posts.update"]) == []
    assert len(supabase.tables["role_permissions"]) == 1


def test_delete_system_permission_forbidden(catalog):
    catalog.seed_permissions(resources=["roles"], actions=["delete"])
    permission = catalog.list_permissions()[0]
    with pytest.raises(ForbiddenError):
        catalog.delete_permission(permission.id)
    assert catalog.get_permission(permission.id).key == "roles.delete"


def test_permission_schema(catalog):
    schema = catalog.permission_schema()
    assert [r.value for r in schema.resources] == RESOURCES
    assert [a.value for a in schema.actions] == ACTIONS


def test_config_matches_enums():
    assert RESOURCES == [r.value for r in Resource]
    assert ACTIONS == [a.value for a in Action]


def test_permission_matrix_roles():
    matrix = get_permission_matrix()
    roles = {r["key"]: r for r in matrix["roles"]}
    assert len(matrix["permissions"]) == len(RESOURCES) * len(ACTIONS)
    assert roles["super_admin"]["is_system"] is True
    assert len(roles["super_admin"]["permissions"]) == len(matrix["permissions"])
    assert roles["user"]["permissions"] == ["users.read"]
    assert roles["author"]["is_system"] is False


def test_permission_matrix_uses_configured_super_admin_key():
    matrix = get_permission_matrix(super_admin_role_key="site_owner")
    keys = [r["key"] for r in matrix["roles"]]
    assert keys[0] == "site_owner"
    assert "super_admin" not in keys
    assert matrix["roles"][0]["permissions"] == sorted(p["key"] for p in matrix["permissions"])


def test_catalog_defaults_to_configured_super_admin_key(supabase):
    assert PermissionCatalog(supabase).super_admin_role_key == settings.super_admin_role_key
    assert permissions_config.permission_key is permission_key
