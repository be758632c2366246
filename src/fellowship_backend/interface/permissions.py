from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from fellowship_backend.interface.base import CamelModel

class PermissionScope(str, Enum):
    global_ = "global"
    regional = "regional"
    university = "university"
    smallgroup = "smallgroup"
    alumni_group = "alumni_group"
    personal = "personal"

class PermissionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Unique permission name, e.g. member:read")
    description: Optional[str] = None
    resource: str = Field(min_length=1, max_length=100)
    action: str = Field(min_length=1, max_length=50)
    scope: PermissionScope = Field(PermissionScope.global_, validate_default=True, description="Breadth the permission applies at")
    is_active: bool = True

    model_config = ConfigDict(use_enum_values=True)

class PermissionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    resource: Optional[str] = Field(None, min_length=1, max_length=100)
    action: Optional[str] = Field(None, min_length=1, max_length=50)
    scope: Optional[PermissionScope] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True)

class PermissionGet(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    resource: str
    action: str
    scope: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PermissionQuery(BaseModel):
    resource: Optional[str] = None
    action: Optional[str] = None
    scope: Optional[PermissionScope] = None
    is_active: Optional[bool] = None

class GroupedPermissionQuery(BaseModel):
    role_id: Optional[int] = None
    scope: Optional[PermissionScope] = None
    is_active: Optional[bool] = None

class GroupedPermissionItem(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    resource: str
    action: str
    scope: str
    is_active: bool
    is_assigned: bool

class PermissionGroup(CamelModel):
    resource: str
    display_name: str
    permissions: list[GroupedPermissionItem]
