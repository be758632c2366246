from typing import Optional
from pydantic import Field
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.model.hierarchy import AlumniSmallGroup
from fellowship_backend.permissions.cascade import complete_chain, ensure_no_dependents

class AlumniSmallGroupCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Alumni small group name")
    region_id: int = Field(description="Region the group belongs to")

class AlumniSmallGroupGet(BaseEntityGet):
    name: str
    region_id: int

class AlumniSmallGroupList(AlumniSmallGroupGet):
    pass

class AlumniSmallGroupUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    region_id: Optional[int] = None

class AlumniSmallGroupQuery(ListQuery):
    id: Optional[int] = None
    name: Optional[str] = None
    region_id: Optional[int] = None

def alumni_small_group_search(db: Session, query, params: Optional[AlumniSmallGroupQuery]):
    if params.id != None:
        query = query.filter(AlumniSmallGroup.id == params.id)
    if params.name != None:
        query = query.filter(AlumniSmallGroup.name.ilike(f"%{params.name}%"))
    if params.region_id != None:
        query = query.filter(AlumniSmallGroup.region_id == params.region_id)
    return query.order_by(AlumniSmallGroup.name, AlumniSmallGroup.id)

class AlumniSmallGroupInterface(EntityInterface):
    create = AlumniSmallGroupCreate
    get = AlumniSmallGroupGet
    list = AlumniSmallGroupList
    update = AlumniSmallGroupUpdate
    query = AlumniSmallGroupQuery
    search = alumni_small_group_search
    endpoint = "alumni-small-groups"
    model = AlumniSmallGroup
    resource = "alumni"
    pre_write = complete_chain
    pre_delete = ensure_no_dependents
