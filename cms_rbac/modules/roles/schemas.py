from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from cms_rbac.modules.permissions.schemas import PermissionInfo


class RoleCreate(BaseModel):
    title: str
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class RoleResponse(BaseModel):
    id: str
    title: str
    key: str
    description: Optional[str] = None
    is_system: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleWithPermissionsResponse(RoleResponse):
    permissions: List[PermissionInfo]


class RoleDeleteResponse(BaseModel):
    role_id: str
    deleted_role_permissions: int
    deleted_user_roles: int
    message: str
