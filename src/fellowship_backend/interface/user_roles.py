from datetime import datetime
from typing import Optional
from pydantic import model_validator
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import CamelModel, EntityInterface, ListQuery
from fellowship_backend.interface.scopes import ScopeLevel
from fellowship_backend.model.role import UserRole

# the one entity id each scope level stores
SCOPE_ENTITY_KEY = {
    ScopeLevel.superadmin: None,
    ScopeLevel.national: None,
    ScopeLevel.region: "region_id",
    ScopeLevel.university: "university_id",
    ScopeLevel.smallgroup: "small_group_id",
    ScopeLevel.alumnismallgroup: "alumni_group_id",
}

class UserRoleAssign(CamelModel):
    user_id: int
    scope: ScopeLevel
    role_id: Optional[int] = None
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

    @model_validator(mode='after')
    def validate_scope_entity(self):
        key = SCOPE_ENTITY_KEY[self.scope]
        if key is not None and getattr(self, key) is None:
            raise ValueError(f"{key} is required for scope {self.scope.value}")
        return self

class UserRoleGet(CamelModel):
    id: int
    user_id: int
    scope: str
    role_id: Optional[int] = None
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None
    assigned_at: datetime

class UserRoleQuery(ListQuery):
    user_id: Optional[int] = None
    scope: Optional[ScopeLevel] = None
    role_id: Optional[int] = None

def user_role_search(db: Session, query, params: Optional[UserRoleQuery]):
    if params.user_id != None:
        query = query.filter(UserRole.user_id == params.user_id)
    if params.scope != None:
        query = query.filter(UserRole.scope == params.scope.value)
    if params.role_id != None:
        query = query.filter(UserRole.role_id == params.role_id)
    return query.order_by(UserRole.assigned_at.desc(), UserRole.id.desc())

class UserRoleInterface(EntityInterface):
    get = UserRoleGet
    list = UserRoleGet
    query = UserRoleQuery
    search = user_role_search
    endpoint = "user-roles"
    model = UserRole
    resource = "user"
