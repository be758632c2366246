from typing import Optional
from pydantic import EmailStr, Field, field_validator
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.interface.tokens import encrypt_api_key
from fellowship_backend.model.auth import User

class UserCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(description="Login email, unique")
    password: str = Field(min_length=6, max_length=255, description="Plain password, stored encrypted")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty or only whitespace')
        return v.strip()

class UserGet(BaseEntityGet):
    name: str
    email: str

class UserList(UserGet):
    pass

class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=255)

class UserQuery(ListQuery):
    id: Optional[int] = None
    email: Optional[str] = None
    name: Optional[str] = None

def user_search(db: Session, query, params: Optional[UserQuery]):
    if params.id != None:
        query = query.filter(User.id == params.id)
    if params.email != None:
        query = query.filter(User.email == params.email)
    if params.name != None:
        query = query.filter(User.name.ilike(f"%{params.name}%"))
    return query.order_by(User.name, User.id)

def encrypt_password(db: Session, values: dict, db_item=None) -> dict:
    if values.get("password") is not None:
        values = {**values, "password": encrypt_api_key(values["password"])}
    return values

class UserInterface(EntityInterface):
    create = UserCreate
    get = UserGet
    list = UserList
    update = UserUpdate
    query = UserQuery
    search = user_search
    endpoint = "users"
    model = User
    resource = "user"
    pre_write = encrypt_password
