from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from fellowship_backend.interface.base import CamelModel
from fellowship_backend.interface.permissions import PermissionGet

class RolePermissionCreate(CamelModel):
    role_id: int
    permission_id: int
    granted_by: Optional[int] = None

class RolePermissionGet(CamelModel):
    id: int
    role_id: int
    permission_id: int
    granted_by: Optional[int] = None
    granted_at: datetime
    permission: Optional[PermissionGet] = None

class RolePermissionQuery(BaseModel):
    role_id: Optional[int] = None
    permission_id: Optional[int] = None

class RolePermissionDelete(BaseModel):
    role_id: int
    permission_id: int

class DesiredPermission(CamelModel):
    permission_id: int
    is_assigned: bool

class BulkReconcileRequest(CamelModel):
    role_id: int
    permissions: list[DesiredPermission]
    granted_by: Optional[int] = None

class BulkAssignRequest(CamelModel):
    role_id: int
    permission_ids: list[int] = Field(min_length=1)
    granted_by: Optional[int] = None

class ReconcileCounts(CamelModel):
    added: int
    removed: int
    unchanged: int
