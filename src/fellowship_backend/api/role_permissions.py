from typing import Annotated
from aiocache import BaseCache
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fellowship_backend.database import get_db
from fellowship_backend.interface.base import ApiResponse
from fellowship_backend.interface.role_permissions import (
    BulkAssignRequest,
    BulkReconcileRequest,
    ReconcileCounts,
    RolePermissionCreate,
    RolePermissionDelete,
    RolePermissionGet,
    RolePermissionQuery,
)
from fellowship_backend.interface.scopes import EntityChain
from fellowship_backend.model.role import RolePermission
from fellowship_backend.permissions import bindings
from fellowship_backend.permissions.auth import get_current_principal, invalidate_all_principals
from fellowship_backend.permissions.core import check_permissions, check_write
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.redis_cache import get_redis_client

role_permissions_router = APIRouter()


def _granted_by(principal: Principal, granted_by):
    return granted_by if granted_by is not None else principal.user_id


@role_permissions_router.get("", response_model=ApiResponse[list[RolePermissionGet]])
async def list_role_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: RolePermissionQuery = Depends(),
    db: Session = Depends(get_db),
):
    """Bindings of a role or of a permission, newest grant first"""
    check_permissions(principal, RolePermission, "list", db)

    items = bindings.list_bindings(db, role_id=params.role_id, permission_id=params.permission_id)
    data = [RolePermissionGet.model_validate(item) for item in items]

    return ApiResponse(data=data, count=len(data))


@role_permissions_router.post("", response_model=ApiResponse[RolePermissionGet], status_code=status.HTTP_201_CREATED)
async def assign_permission(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: RolePermissionCreate,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    check_write(principal, RolePermission, "create", EntityChain())

    binding = bindings.assign(db, entity.role_id, entity.permission_id, _granted_by(principal, entity.granted_by))

    await invalidate_all_principals(cache)

    return ApiResponse(data=RolePermissionGet.model_validate(binding), message="Permission assigned to role successfully")


@role_permissions_router.delete("", response_model=ApiResponse[None])
async def unassign_permission(
    principal: Annotated[Principal, Depends(get_current_principal)],
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    params: RolePermissionDelete = Depends(),
    db: Session = Depends(get_db),
):
    check_write(principal, RolePermission, "delete", EntityChain())

    bindings.unassign(db, params.role_id, params.permission_id)

    await invalidate_all_principals(cache)

    return ApiResponse(message="Permission removed from role successfully")


async def _reconcile(principal: Principal, entity: BulkReconcileRequest, cache: BaseCache, db: Session):
    check_write(principal, RolePermission, "update", EntityChain())

    desired = [
        bindings.DesiredBinding(permission_id=item.permission_id, is_assigned=item.is_assigned)
        for item in entity.permissions
    ]
    result = bindings.bulk_reconcile(db, entity.role_id, desired, _granted_by(principal, entity.granted_by))

    await invalidate_all_principals(cache)

    return ApiResponse(
        data=ReconcileCounts(**result.model_dump()),
        message=f"Successfully updated permissions: {result.added} added, {result.removed} removed, {result.unchanged} unchanged",
    )


@role_permissions_router.put("", response_model=ApiResponse[ReconcileCounts])
async def reconcile_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: BulkReconcileRequest,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    """Make a role's permissions match the desired set in one transaction"""
    return await _reconcile(principal, entity, cache, db)


@role_permissions_router.put("/bulk-update", response_model=ApiResponse[ReconcileCounts])
async def bulk_update_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: BulkReconcileRequest,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    return await _reconcile(principal, entity, cache, db)


@role_permissions_router.post("/bulk-assign", response_model=ApiResponse[list[RolePermissionGet]], status_code=status.HTTP_201_CREATED)
async def bulk_assign_permissions(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: BulkAssignRequest,
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
):
    """Add the given permissions to a role, keeping the ones it already has"""
    check_write(principal, RolePermission, "create", EntityChain())

    items = bindings.bulk_assign(db, entity.role_id, entity.permission_ids, _granted_by(principal, entity.granted_by))

    await invalidate_all_principals(cache)

    data = [RolePermissionGet.model_validate(item) for item in items]
    return ApiResponse(data=data, count=len(data), message=f"{len(data)} permissions assigned to role")
