from typing import Annotated
from aiocache import BaseCache
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fellowship_backend.database import get_db
from fellowship_backend.interface.base import ApiResponse
from fellowship_backend.interface.roles import RoleCreate, RoleGet, RolePermissionSummary, RoleQuery, RoleUpdate
from fellowship_backend.interface.scopes import EntityChain
from fellowship_backend.model.role import Permission, Role, RolePermission
from fellowship_backend.permissions import bindings
from fellowship_backend.permissions.auth import get_current_principal, invalidate_all_principals
from fellowship_backend.permissions.core import check_permissions, check_write
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.redis_cache import get_redis_client

roles_router = APIRouter()


def _role_permissions(db: Session, role_ids: list[int]) -> dict[int, list[RolePermissionSummary]]:
    rows = (
        db.query(RolePermission.role_id, Permission)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(RolePermission.role_id.in_(role_ids))
        .order_by(Permission.resource.asc(), Permission.action.asc(), Permission.id.asc())
        .all()
    )
    result: dict[int, list[RolePermissionSummary]] = {}
    for role_id, permission in rows:
        result.setdefault(role_id, []).append(RolePermissionSummary.model_validate(permission))
    return result


@roles_router.get("", response_model=ApiResponse[list[RoleGet]])
async def list_roles(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: RoleQuery = Depends(),
    db: Session = Depends(get_db),
):
    """List roles ordered by level, then name"""
    check_permissions(principal, Role, "list", db)

    roles = bindings.list_roles(db, params.level.value if params.level else None, params.is_active)
    role_ids = [role.id for role in roles]

    counts = bindings.user_counts(db, role_ids) if params.include_user_count else {}
    permissions = _role_permissions(db, role_ids) if params.include_permissions and role_ids else {}

    data = []
    for role in roles:
        item = RoleGet.model_validate(role)
        if params.include_user_count:
            item.user_count = counts.get(role.id, 0)
        if params.include_permissions:
            item.permissions = permissions.get(role.id, [])
        data.append(item)

    return ApiResponse(data=data, count=len(data))


@roles_router.get("/{role_id}", response_model=ApiResponse[RoleGet])
async def get_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    role_id: int,
    db: Session = Depends(get_db),
):
    check_permissions(principal, Role, "get", db)

    role = bindings.get_role(db, role_id)
    item = RoleGet.model_validate(role)
    item.user_count = bindings.user_counts(db, [role.id]).get(role.id, 0)
    item.permissions = _role_permissions(db, [role.id]).get(role.id, [])

    return ApiResponse(data=item)


@roles_router.post("", response_model=ApiResponse[RoleGet], status_code=status.HTTP_201_CREATED)
async def create_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: RoleCreate,
    db: Session = Depends(get_db),
):
    check_write(principal, Role, "create", EntityChain())

    role = bindings.create_role(db, entity.model_dump())

    return ApiResponse(data=RoleGet.model_validate(role), message="Role created successfully")


async def _update_role(principal: Principal, role_id: int, entity: RoleUpdate, cache: BaseCache, db: Session):
    check_write(principal, Role, "update", EntityChain())

    role = bindings.update_role(db, role_id, entity.model_dump(exclude_unset=True))

    # activating or deactivating a role changes the policy of its holders
    await invalidate_all_principals(cache)

    return ApiResponse(data=RoleGet.model_validate(role), message="Role updated successfully")


@roles_router.patch("/{role_id}", response_model=ApiResponse[RoleGet])
async def patch_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    role_id: int,
    entity: RoleUpdate,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    return await _update_role(principal, role_id, entity, cache, db)


@roles_router.put("/{role_id}", response_model=ApiResponse[RoleGet])
async def put_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    role_id: int,
    entity: RoleUpdate,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    return await _update_role(principal, role_id, entity, cache, db)


@roles_router.delete("/{role_id}", response_model=ApiResponse[None])
async def delete_role(
    principal: Annotated[Principal, Depends(get_current_principal)],
    role_id: int,
    db: Session = Depends(get_db),
):
    """Delete a role; refused for system roles and roles still referenced"""
    check_write(principal, Role, "delete", EntityChain())

    bindings.delete_role(db, role_id)

    return ApiResponse(message="Role deleted successfully")
