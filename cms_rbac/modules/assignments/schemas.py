from pydantic import BaseModel
from typing import List


class BulkPermissionAssign(BaseModel):
    permission_keys: List[str]


class BulkPermissionAssignResponse(BaseModel):
    role_id: str
    assigned_count: int
    message: str


class BulkPermissionRemoveResponse(BaseModel):
    role_id: str
    removed_count: int
    message: str


class BulkPermissionUpdateResponse(BaseModel):
    role_id: str
    added_count: int
    removed_count: int
    message: str


class BulkRoleAssign(BaseModel):
    role_keys: List[str]


class BulkRoleAssignResponse(BaseModel):
    user_id: str
    assigned_count: int
    message: str


class BulkRoleRemoveResponse(BaseModel):
    user_id: str
    removed_count: int
    message: str
