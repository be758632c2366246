from typing import Annotated
from aiocache import BaseCache
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fellowship_backend.database import get_db
from fellowship_backend.interface.base import ApiResponse
from fellowship_backend.interface.permissions import (
    GroupedPermissionQuery,
    PermissionCreate,
    PermissionGet,
    PermissionGroup,
    PermissionQuery,
    PermissionUpdate,
)
from fellowship_backend.interface.scopes import EntityChain
from fellowship_backend.model.role import Permission
from fellowship_backend.permissions import bindings, catalog
from fellowship_backend.permissions.auth import get_current_principal, invalidate_all_principals
from fellowship_backend.permissions.core import check_permissions, check_write
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.redis_cache import get_redis_client

permissions_router = APIRouter()


@permissions_router.get("", response_model=ApiResponse[list[PermissionGet]])
async def list_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: PermissionQuery = Depends(),
    db: Session = Depends(get_db),
):
    """List the permission catalog ordered by resource, then action"""
    check_permissions(principal, Permission, "list", db)

    permissions = catalog.list_permissions(
        db,
        resource=params.resource,
        action=params.action,
        scope=params.scope.value if params.scope else None,
        is_active=params.is_active,
    )
    data = [PermissionGet.model_validate(permission) for permission in permissions]

    return ApiResponse(data=data, count=len(data))


@permissions_router.get("/grouped", response_model=ApiResponse[list[PermissionGroup]])
async def list_grouped_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: GroupedPermissionQuery = Depends(),
    db: Session = Depends(get_db),
):
    """Permissions grouped by resource; ``isAssigned`` refers to ``role_id`` when given"""
    check_permissions(principal, Permission, "list", db)

    if params.role_id is not None:
        bindings.get_role(db, params.role_id)

    groups = catalog.grouped_permissions(
        db,
        role_id=params.role_id,
        scope=params.scope.value if params.scope else None,
        is_active=params.is_active,
    )
    data = [PermissionGroup.model_validate(group) for group in groups]

    return ApiResponse(data=data, count=len(data))


@permissions_router.get("/{permission_id}", response_model=ApiResponse[PermissionGet])
async def get_permission(
    principal: Annotated[Principal, Depends(get_current_principal)],
    permission_id: int,
    db: Session = Depends(get_db),
):
    check_permissions(principal, Permission, "get", db)

    return ApiResponse(data=PermissionGet.model_validate(catalog.get_permission(db, permission_id)))


@permissions_router.post("", response_model=ApiResponse[PermissionGet], status_code=status.HTTP_201_CREATED)
async def create_permission(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: PermissionCreate,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    check_write(principal, Permission, "create", EntityChain())

    permission = bindings.create_permission(db, entity.model_dump())

    # a first permission for a resource switches that resource to policy enforcement
    await invalidate_all_principals(cache)

    return ApiResponse(data=PermissionGet.model_validate(permission), message="Permission created successfully")


@permissions_router.patch("/{permission_id}", response_model=ApiResponse[PermissionGet])
async def update_permission(
    principal: Annotated[Principal, Depends(get_current_principal)],
    permission_id: int,
    entity: PermissionUpdate,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    check_write(principal, Permission, "update", EntityChain())

    permission = bindings.update_permission(db, permission_id, entity.model_dump(exclude_unset=True))

    await invalidate_all_principals(cache)

    return ApiResponse(data=PermissionGet.model_validate(permission), message="Permission updated successfully")


@permissions_router.delete("/{permission_id}", response_model=ApiResponse[None])
async def delete_permission(
    principal: Annotated[Principal, Depends(get_current_principal)],
    permission_id: int,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    check_write(principal, Permission, "delete", EntityChain())

    bindings.delete_permission(db, permission_id)

    await invalidate_all_principals(cache)

    return ApiResponse(message="Permission deleted successfully")
