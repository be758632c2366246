from typing import Optional
from pydantic import Field
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.model.hierarchy import SmallGroup
from fellowship_backend.permissions.cascade import complete_chain, ensure_no_dependents

class SmallGroupCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Small group name")
    university_id: int = Field(description="University the group meets at")
    region_id: Optional[int] = Field(None, description="Derived from the university when omitted")

class SmallGroupGet(BaseEntityGet):
    name: str
    university_id: int
    region_id: int

class SmallGroupList(SmallGroupGet):
    pass

class SmallGroupUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    university_id: Optional[int] = None
    region_id: Optional[int] = None

class SmallGroupQuery(ListQuery):
    id: Optional[int] = None
    name: Optional[str] = None
    university_id: Optional[int] = None
    region_id: Optional[int] = None

def small_group_search(db: Session, query, params: Optional[SmallGroupQuery]):
    if params.id != None:
        query = query.filter(SmallGroup.id == params.id)
    if params.name != None:
        query = query.filter(SmallGroup.name.ilike(f"%{params.name}%"))
    if params.university_id != None:
        query = query.filter(SmallGroup.university_id == params.university_id)
    if params.region_id != None:
        query = query.filter(SmallGroup.region_id == params.region_id)
    return query.order_by(SmallGroup.name, SmallGroup.id)

class SmallGroupInterface(EntityInterface):
    create = SmallGroupCreate
    get = SmallGroupGet
    list = SmallGroupList
    update = SmallGroupUpdate
    query = SmallGroupQuery
    search = small_group_search
    endpoint = "small-groups"
    model = SmallGroup
    resource = "smallgroup"
    pre_write = complete_chain
    pre_delete = ensure_no_dependents
