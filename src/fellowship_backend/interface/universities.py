from typing import Optional
from pydantic import Field
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.model.hierarchy import University
from fellowship_backend.permissions.cascade import complete_chain, ensure_no_dependents

class UniversityCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="University name")
    region_id: int = Field(description="Region the university belongs to")

class UniversityGet(BaseEntityGet):
    name: str = Field(description="University name")
    region_id: int = Field(description="Region id")

class UniversityList(UniversityGet):
    pass

class UniversityUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    region_id: Optional[int] = None

class UniversityQuery(ListQuery):
    id: Optional[int] = None
    name: Optional[str] = None
    region_id: Optional[int] = None

def university_search(db: Session, query, params: Optional[UniversityQuery]):
    if params.id != None:
        query = query.filter(University.id == params.id)
    if params.name != None:
        query = query.filter(University.name.ilike(f"%{params.name}%"))
    if params.region_id != None:
        query = query.filter(University.region_id == params.region_id)
    return query.order_by(University.name, University.id)

class UniversityInterface(EntityInterface):
    create = UniversityCreate
    get = UniversityGet
    list = UniversityList
    update = UniversityUpdate
    query = UniversityQuery
    search = university_search
    endpoint = "universities"
    model = University
    resource = "university"
    pre_write = complete_chain
    pre_delete = ensure_no_dependents
