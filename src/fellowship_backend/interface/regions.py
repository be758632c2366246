from typing import Optional
from pydantic import Field
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.model.hierarchy import Region
from fellowship_backend.permissions.cascade import ensure_no_dependents

class RegionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Region name")

class RegionGet(BaseEntityGet):
    name: str = Field(description="Region name")

class RegionList(RegionGet):
    pass

class RegionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)

class RegionQuery(ListQuery):
    id: Optional[int] = None
    name: Optional[str] = None

def region_search(db: Session, query, params: Optional[RegionQuery]):
    if params.id != None:
        query = query.filter(Region.id == params.id)
    if params.name != None:
        query = query.filter(Region.name.ilike(f"%{params.name}%"))
    return query.order_by(Region.name, Region.id)

class RegionInterface(EntityInterface):
    create = RegionCreate
    get = RegionGet
    list = RegionList
    update = RegionUpdate
    query = RegionQuery
    search = region_search
    endpoint = "regions"
    model = Region
    resource = "region"
    pre_delete = ensure_no_dependents
