from fastapi import APIRouter, Depends
from typing import List, Optional, Dict

from cms_rbac.core.dependencies import get_permission_catalog, require_permission
from cms_rbac.modules.permissions.models import Action, Resource
from cms_rbac.modules.permissions.schemas import (
    PermissionCreate, PermissionUpdate, PermissionResponse, PermissionSchemaResponse,
    PermissionDeleteResponse, PermissionSeedRequest, PermissionSeedResponse
)
from cms_rbac.modules.permissions.service import PermissionCatalog

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    resource: Optional[Resource] = None,
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.READ)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    """List the permission catalog, optionally for one resource"""
    return catalog.list_permissions(resource=resource)


@router.get("/schema", response_model=PermissionSchemaResponse)
async def get_permission_schema(
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.READ)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    """Resources and actions a permission can be built from"""
    return catalog.permission_schema()


@router.post("", response_model=PermissionResponse, status_code=201)
async def create_permission(
    permission_data: PermissionCreate,
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.CREATE)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    """Create a permission; it is granted to the super admin role automatically"""
    return catalog.create_permission(
        permission_data.resource, permission_data.action, permission_data.description
    )


@router.post("/seed", response_model=PermissionSeedResponse)
async def seed_permissions(
    seed_data: PermissionSeedRequest,
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.CREATE)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    """Create any missing permission of the resource x action grid"""
    created = catalog.seed_permissions(resources=seed_data.resources, actions=seed_data.actions)
    return PermissionSeedResponse(
        created_count=created,
        message=f"Created {created} permissions" if created else "Permissions already exist"
    )


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: str,
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.READ)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    return catalog.get_permission(permission_id)


@router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: str,
    permission_data: PermissionUpdate,
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.UPDATE)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    """Update a permission's description"""
    return catalog.update_description(permission_id, permission_data.description)


@router.delete("/{permission_id}", response_model=PermissionDeleteResponse)
async def delete_permission(
    permission_id: str,
    user_data: Dict = Depends(require_permission(Resource.PERMISSIONS, Action.DELETE)),
    catalog: PermissionCatalog = Depends(get_permission_catalog)
):
    """Delete a permission and remove it from every role"""
    removed = catalog.delete_permission(permission_id)
    return PermissionDeleteResponse(permission_id=permission_id, deleted_role_permissions=removed)
