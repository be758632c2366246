from datetime import date
from enum import Enum
from typing import Optional
from pydantic import ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.model.member import Member
from fellowship_backend.permissions.cascade import complete_chain

class MemberType(str, Enum):
    student = "student"
    graduate = "graduate"
    staff = "staff"
    volunteer = "volunteer"
    alumni = "alumni"

class MemberStatus(str, Enum):
    active = "active"
    pre_graduate = "pre_graduate"
    graduate = "graduate"
    alumni = "alumni"
    inactive = "inactive"

class Gender(str, Enum):
    male = "male"
    female = "female"

class MemberCreate(CamelModel):
    firstname: str = Field(min_length=1, max_length=255, description="First name")
    secondname: str = Field(min_length=1, max_length=255, description="Second name")
    gender: Optional[Gender] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    type: MemberType
    status: MemberStatus = Field(MemberStatus.active, validate_default=True)
    faculty: Optional[str] = Field(None, max_length=255)
    graduation_date: Optional[date] = None
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

    @field_validator('gender', 'type', 'status', mode='before')
    @classmethod
    def normalize_choices(cls, v):
        if v == "":
            return None
        return v.lower() if isinstance(v, str) else v

    model_config = ConfigDict(use_enum_values=True)

class MemberGet(BaseEntityGet):
    firstname: str
    secondname: str
    gender: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    type: str
    status: str
    faculty: Optional[str] = None
    graduation_date: Optional[date] = None
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

class MemberList(MemberGet):
    pass

class MemberUpdate(CamelModel):
    firstname: Optional[str] = Field(None, min_length=1, max_length=255)
    secondname: Optional[str] = Field(None, min_length=1, max_length=255)
    gender: Optional[Gender] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    type: Optional[MemberType] = None
    status: Optional[MemberStatus] = None
    faculty: Optional[str] = Field(None, max_length=255)
    graduation_date: Optional[date] = None
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

    @field_validator('gender', 'type', 'status', mode='before')
    @classmethod
    def normalize_choices(cls, v):
        if v == "":
            return None
        return v.lower() if isinstance(v, str) else v

    model_config = ConfigDict(use_enum_values=True)

class MemberQuery(ListQuery):
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None
    type: Optional[MemberType] = None
    status: Optional[MemberStatus] = None

def member_search(db: Session, query, params: Optional[MemberQuery]):
    if params.region_id != None:
        query = query.filter(Member.region_id == params.region_id)
    if params.university_id != None:
        query = query.filter(Member.university_id == params.university_id)
    if params.small_group_id != None:
        query = query.filter(Member.small_group_id == params.small_group_id)
    if params.alumni_group_id != None:
        query = query.filter(Member.alumni_group_id == params.alumni_group_id)
    if params.type != None:
        query = query.filter(Member.type == params.type.value)
    if params.status != None:
        query = query.filter(Member.status == params.status.value)
    return query.order_by(Member.created_at.desc(), Member.id.desc())

class MemberInterface(EntityInterface):
    create = MemberCreate
    get = MemberGet
    list = MemberList
    update = MemberUpdate
    query = MemberQuery
    search = member_search
    endpoint = "members"
    model = Member
    resource = "member"
    pre_write = complete_chain
