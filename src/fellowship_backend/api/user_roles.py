from typing import Annotated
from aiocache import BaseCache
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from fellowship_backend.api.crud import list_db
from fellowship_backend.database import get_db
from fellowship_backend.interface.scopes import EntityChain
from fellowship_backend.interface.user_roles import UserRoleAssign, UserRoleGet, UserRoleInterface, UserRoleQuery
from fellowship_backend.model.role import UserRole
from fellowship_backend.permissions.assignments import assign_scope, get_assignment, remove_scope
from fellowship_backend.permissions.auth import get_current_principal, invalidate_principal
from fellowship_backend.permissions.core import check_permissions, check_write
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.redis_cache import get_redis_client

user_roles_router = APIRouter()


@user_roles_router.get("", response_model=list[UserRoleGet])
async def list_user_roles(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    params: UserRoleQuery = Depends(),
    db: Session = Depends(get_db),
):
    """List scope assignments, newest first"""

    list_result, total = await list_db(principal, db, params, UserRoleInterface)
    response.headers["X-Total-Count"] = str(total)

    return list_result


@user_roles_router.get("/users/{user_id}", response_model=UserRoleGet)
async def get_user_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    user_id: int,
    db: Session = Depends(get_db),
):
    check_permissions(principal, UserRole, "get", db)

    return UserRoleGet.model_validate(get_assignment(db, user_id))


@user_roles_router.put("", response_model=UserRoleGet)
async def assign_user_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: UserRoleAssign,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    """Assign a scope to a user, replacing the user's current assignment"""
    check_write(principal, UserRole, "update", EntityChain())

    assignment = assign_scope(db, entity, assigned_by_superadmin=principal.is_superadmin)

    await invalidate_principal(cache, entity.user_id)

    return UserRoleGet.model_validate(assignment)


@user_roles_router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    user_id: int,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    check_write(principal, UserRole, "delete", EntityChain())

    remove_scope(db, user_id, removed_by_superadmin=principal.is_superadmin)

    await invalidate_principal(cache, user_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
