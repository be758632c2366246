"""
Role administration and role-permission bindings.

Bindings are unique per ``(role_id, permission_id)``; the database constraint
decides concurrent assigns. ``bulk_reconcile`` diffs a desired set against the
stored one inside a single transaction.
"""

import logging
from typing import Iterable, Optional
from pydantic import BaseModel
from sqlalchemy import exc, func
from sqlalchemy.orm import Session

from fellowship_backend.api.exceptions import (
    AlreadyAssigned,
    AssignmentNotFound,
    BadRequestException,
    DuplicateName,
    ForbiddenException,
    HasActiveAssignments,
    PermissionNotFound,
    ReconcileTransactionError,
    RoleNotFound,
)
from fellowship_backend.model.role import Permission, Role, RolePermission, UserRole
from fellowship_backend.permissions.catalog import get_permission

logger = logging.getLogger(__name__)


class DesiredBinding(BaseModel):
    permission_id: int
    is_assigned: bool


class ReconcileResult(BaseModel):
    added: int = 0
    removed: int = 0
    unchanged: int = 0


def get_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise RoleNotFound()
    return role


def _find_binding(db: Session, role_id: int, permission_id: int) -> Optional[RolePermission]:
    return (
        db.query(RolePermission)
        .filter(RolePermission.role_id == role_id, RolePermission.permission_id == permission_id)
        .first()
    )


def assign(db: Session, role_id: int, permission_id: int, granted_by: Optional[int] = None) -> RolePermission:
    get_role(db, role_id)
    get_permission(db, permission_id)

    if _find_binding(db, role_id, permission_id) is not None:
        raise AlreadyAssigned()

    binding = RolePermission(role_id=role_id, permission_id=permission_id, granted_by=granted_by)
    db.add(binding)
    try:
        db.commit()
    except exc.IntegrityError:
        # lost a race against a concurrent assign of the same pair
        db.rollback()
        raise AlreadyAssigned()

    db.refresh(binding)
    logger.info(f"Assigned permission {permission_id} to role {role_id}")
    return binding


def unassign(db: Session, role_id: int, permission_id: int):
    binding = _find_binding(db, role_id, permission_id)
    if binding is None:
        raise AssignmentNotFound()

    db.delete(binding)
    db.commit()
    logger.info(f"Removed permission {permission_id} from role {role_id}")


def _check_permissions_exist(db: Session, permission_ids: set[int]):
    if not permission_ids:
        return
    found = db.query(func.count(Permission.id)).filter(Permission.id.in_(permission_ids)).scalar()
    if found != len(permission_ids):
        raise PermissionNotFound(detail="One or more permissions not found")


def bulk_reconcile(
    db: Session,
    role_id: int,
    desired: Iterable[DesiredBinding],
    granted_by: Optional[int] = None,
) -> ReconcileResult:
    """Make the role's bindings match ``desired``.

    All changes are committed together or not at all. The role row is locked
    for the duration so concurrent reconciliations of one role serialize.
    """
    desired = list(desired)
    permission_ids = [entry.permission_id for entry in desired]
    if len(permission_ids) != len(set(permission_ids)):
        raise BadRequestException(detail="Each permission may appear only once")

    role = db.query(Role).filter(Role.id == role_id).with_for_update().first()
    if role is None:
        db.rollback()
        raise RoleNotFound()

    try:
        _check_permissions_exist(db, set(permission_ids))
    except PermissionNotFound:
        db.rollback()
        raise

    result = ReconcileResult()
    try:
        existing = {
            binding.permission_id: binding
            for binding in db.query(RolePermission).filter(RolePermission.role_id == role_id).all()
        }

        for entry in desired:
            binding = existing.get(entry.permission_id)
            if entry.is_assigned and binding is None:
                db.add(RolePermission(role_id=role_id, permission_id=entry.permission_id, granted_by=granted_by))
                result.added += 1
            elif not entry.is_assigned and binding is not None:
                db.delete(binding)
                result.removed += 1
            else:
                result.unchanged += 1

        db.commit()
    except exc.SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Reconciling permissions of role {role_id} failed, rolled back: {e}")
        raise ReconcileTransactionError()

    logger.info(
        f"Reconciled role {role_id}: {result.added} added, {result.removed} removed, {result.unchanged} unchanged"
    )
    return result


def bulk_assign(
    db: Session,
    role_id: int,
    permission_ids: Iterable[int],
    granted_by: Optional[int] = None,
) -> list[RolePermission]:
    """Add the missing bindings of ``permission_ids`` and leave the rest alone."""
    ids = list(dict.fromkeys(permission_ids))
    result = bulk_reconcile(
        db, role_id, [DesiredBinding(permission_id=pid, is_assigned=True) for pid in ids], granted_by
    )
    logger.debug(f"Bulk assign on role {role_id} added {result.added}")
    return (
        db.query(RolePermission)
        .filter(RolePermission.role_id == role_id, RolePermission.permission_id.in_(ids))
        .order_by(RolePermission.permission_id)
        .all()
    )


def list_bindings(db: Session, role_id: Optional[int] = None, permission_id: Optional[int] = None) -> list[RolePermission]:
    if role_id is None and permission_id is None:
        raise BadRequestException(detail="Either roleId or permissionId is required")

    query = db.query(RolePermission)
    if role_id is not None:
        query = query.filter(RolePermission.role_id == role_id)
    if permission_id is not None:
        query = query.filter(RolePermission.permission_id == permission_id)
    return query.order_by(RolePermission.granted_at.desc(), RolePermission.id.desc()).all()


# Roles

def list_roles(db: Session, level: Optional[str] = None, is_active: Optional[bool] = None) -> list[Role]:
    query = db.query(Role)
    if level is not None:
        query = query.filter(Role.level == level)
    if is_active is not None:
        query = query.filter(Role.is_active == is_active)
    return query.order_by(Role.level.asc(), Role.name.asc(), Role.id.asc()).all()


def user_counts(db: Session, role_ids: list[int]) -> dict[int, int]:
    if not role_ids:
        return {}
    rows = (
        db.query(UserRole.role_id, func.count(UserRole.id))
        .filter(UserRole.role_id.in_(role_ids))
        .group_by(UserRole.role_id)
        .all()
    )
    return {role_id: count for role_id, count in rows}


def _save_named(db: Session, item, message: str):
    try:
        db.commit()
    except exc.IntegrityError:
        db.rollback()
        raise DuplicateName(detail=message)
    db.refresh(item)
    return item


def create_role(db: Session, values: dict) -> Role:
    if db.query(Role).filter(Role.name == values["name"]).first() is not None:
        raise DuplicateName(detail="Role name already exists")
    role = Role(**values)
    db.add(role)
    return _save_named(db, role, "Role name already exists")


def update_role(db: Session, role_id: int, values: dict) -> Role:
    role = get_role(db, role_id)
    name = values.get("name")
    if name is not None and name != role.name:
        if db.query(Role).filter(Role.name == name).first() is not None:
            raise DuplicateName(detail="Role name already exists")
    for key, value in values.items():
        setattr(role, key, value)
    return _save_named(db, role, "Role name already exists")


def delete_role(db: Session, role_id: int):
    role = get_role(db, role_id)

    if role.is_system:
        raise ForbiddenException(detail="System roles cannot be deleted")

    bindings = db.query(RolePermission).filter(RolePermission.role_id == role_id).count()
    users = db.query(UserRole).filter(UserRole.role_id == role_id).count()
    if bindings or users:
        raise HasActiveAssignments(
            detail=f"Cannot delete role with active assignments ({bindings} permissions, {users} users)"
        )

    db.delete(role)
    db.commit()
    logger.info(f"Deleted role {role_id}")


# Permissions

def create_permission(db: Session, values: dict) -> Permission:
    if db.query(Permission).filter(Permission.name == values["name"]).first() is not None:
        raise DuplicateName(detail="Permission name already exists")
    permission = Permission(**values)
    db.add(permission)
    return _save_named(db, permission, "Permission name already exists")


def update_permission(db: Session, permission_id: int, values: dict) -> Permission:
    permission = get_permission(db, permission_id)
    name = values.get("name")
    if name is not None and name != permission.name:
        if db.query(Permission).filter(Permission.name == name).first() is not None:
            raise DuplicateName(detail="Permission name already exists")
    for key, value in values.items():
        setattr(permission, key, value)
    return _save_named(db, permission, "Permission name already exists")


def delete_permission(db: Session, permission_id: int):
    permission = get_permission(db, permission_id)

    bindings = db.query(RolePermission).filter(RolePermission.permission_id == permission_id).count()
    if bindings:
        raise HasActiveAssignments(detail="Cannot delete permission with active role assignments")

    name = permission.name
    db.delete(permission)
    db.commit()
    logger.info(f"Deleted permission {permission_id} ({name})")
