from abc import ABC
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

class ListQuery(BaseModel):
    skip: Optional[int] = 0
    limit: Optional[int] = 100

class CamelModel(BaseModel):
    """Request/response body with camelCase wire names; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

ACTIONS = {
    "create":  "create",
    "get":     "read",
    "list":    "read",
    "update":  "update",
    "delete":  "delete",
}

class EntityInterface(ABC):
    create: BaseModel = None
    get: BaseModel = None
    list: BaseModel = None
    update: BaseModel = None
    query: BaseModel = None
    search: Any = None
    endpoint: str = None
    model: Any = None

    # resource name used by the permission catalog
    resource: str = None

    cache_ttl: int = 15

    # pre_write(db, values, db_item=None) -> values, runs before create/update is persisted
    pre_write: Any = None
    # pre_delete(db, db_item), runs before a row is removed
    pre_delete: Any = None
    post_create: Any = None
    post_update: Any = None

    def claim_values(self) -> List[tuple[str,str]]:
        claims = []
        for action in dict.fromkeys(ACTIONS.values()):
            claims.append((self.resource, action))
        return claims

class BaseEntityGet(CamelModel):
    id: int = Field(description="Unique identifier")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Update timestamp")

class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    count: Optional[int] = None
