from pydantic import BaseModel
from typing import List, Optional

from cms_rbac.modules.permissions.schemas import PermissionInfo


class UserPermissionsResponse(BaseModel):
    user_id: str
    permissions: List[PermissionInfo]


class MyPermissionsResponse(BaseModel):
    id: str
    email: Optional[str] = None
    permissions: List[str]


class DashboardAccessResponse(BaseModel):
    has_access: bool
