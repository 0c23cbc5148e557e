from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from cms_rbac.modules.permissions.models import Resource, Action


class PermissionCreate(BaseModel):
    resource: str
    action: str
    description: Optional[str] = None


class PermissionUpdate(BaseModel):
    description: Optional[str] = None


class PermissionResponse(BaseModel):
    id: str
    key: str
    resource: Resource
    action: Action
    description: Optional[str] = None
    is_system: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PermissionInfo(BaseModel):
    """The resolver's view of a permission. Hashable so results can be returned as sets."""
    key: str
    resource: Resource
    action: Action

    class Config:
        frozen = True


class PermissionSchemaResponse(BaseModel):
    resources: List[Resource]
    actions: List[Action]


class PermissionDeleteResponse(BaseModel):
    permission_id: str
    deleted_role_permissions: int


class PermissionSeedRequest(BaseModel):
    resources: Optional[List[Resource]] = None
    actions: Optional[List[Action]] = None


class PermissionSeedResponse(BaseModel):
    created_count: int
    message: str
