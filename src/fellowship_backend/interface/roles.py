from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from fellowship_backend.interface.base import CamelModel, EntityInterface
from fellowship_backend.model.role import Role

class RoleLevel(str, Enum):
    System = "System"
    National = "National"
    Regional = "Regional"
    Campus = "Campus"
    SmallGroup = "SmallGroup"
    GraduateNetwork = "GraduateNetwork"
    Department = "Department"

class RoleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Unique role name")
    description: Optional[str] = None
    level: RoleLevel
    is_active: bool = True
    is_system: bool = False

    model_config = ConfigDict(use_enum_values=True)

class RoleUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    level: Optional[RoleLevel] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True)

class RolePermissionSummary(CamelModel):
    id: int
    name: str
    resource: str
    action: str

class RoleGet(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    level: str
    is_active: bool
    is_system: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_count: Optional[int] = None
    permissions: Optional[list[RolePermissionSummary]] = None

class RoleQuery(BaseModel):
    level: Optional[RoleLevel] = None
    is_active: Optional[bool] = None
    include_user_count: bool = False
    include_permissions: bool = False

class RoleInterface(EntityInterface):
    create = RoleCreate
    get = RoleGet
    list = RoleGet
    update = RoleUpdate
    query = RoleQuery
    endpoint = "roles"
    model = Role
    resource = "role"
