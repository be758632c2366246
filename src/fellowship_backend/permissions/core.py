"""
Permission handler registration and principal construction.
"""

import logging
from typing import Any, Optional
from sqlalchemy.orm import Session

from fellowship_backend.interface.scopes import EntityChain, PermissionPolicy
from fellowship_backend.permissions.catalog import catalog_resources
from fellowship_backend.permissions.handlers import permission_registry
from fellowship_backend.permissions.handlers_impl import (
    AdminPermissionHandler,
    HierarchyPermissionHandler,
    ScopedEntityPermissionHandler,
    UserPermissionHandler,
)
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.permissions.resolver import latest_assignment, resolve_assignment
from fellowship_backend.api.exceptions import NoScopeAssigned

from fellowship_backend.model.auth import User
from fellowship_backend.model.hierarchy import AlumniSmallGroup, Region, SmallGroup, University
from fellowship_backend.model.member import Event, Member
from fellowship_backend.model.role import Permission, Role, RolePermission, UserRole

logger = logging.getLogger(__name__)


def initialize_permission_handlers():
    """Initialize and register all permission handlers"""

    # Organization hierarchy
    permission_registry.register(Region, HierarchyPermissionHandler(Region, "region"))
    permission_registry.register(University, HierarchyPermissionHandler(University, "university"))
    permission_registry.register(SmallGroup, HierarchyPermissionHandler(SmallGroup, "smallgroup"))
    permission_registry.register(AlumniSmallGroup, HierarchyPermissionHandler(AlumniSmallGroup, "alumni"))

    # Scoped records
    permission_registry.register(Member, ScopedEntityPermissionHandler(Member, "member"))
    permission_registry.register(Event, ScopedEntityPermissionHandler(Event, "event"))

    # Administration
    permission_registry.register(User, UserPermissionHandler(User, "user"))
    permission_registry.register(UserRole, AdminPermissionHandler(UserRole, "user"))
    permission_registry.register(Role, AdminPermissionHandler(Role, "role"))
    permission_registry.register(Permission, AdminPermissionHandler(Permission, "role"))
    permission_registry.register(RolePermission, AdminPermissionHandler(RolePermission, "role"))


def check_permissions(principal: Principal, entity: Any, action: str, db: Session):
    """
    Main entry point for permission checking.
    Uses the registry pattern to delegate to appropriate handlers.
    """
    return permission_registry.check_permissions(principal, entity, action, db)


def check_write(principal: Principal, entity: Any, action: str, chain: EntityChain):
    return permission_registry.check_write(principal, entity, action, chain)


def check_action(principal: Principal, entity: Any, action: str):
    return permission_registry.check_action(principal, entity, action)


def check_stored(principal: Principal, entity: Any, action: str, db_item: Any):
    return permission_registry.check_stored(principal, entity, action, db_item)


def load_policy(db: Session, role_id: Optional[int]) -> PermissionPolicy:
    """Fine-grained grants of a named role."""
    if role_id is None:
        return PermissionPolicy()

    role = db.get(Role, role_id)
    granted = (
        db.query(Permission.resource, Permission.action)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role_id, Permission.is_active == True)
        .all()
    )

    return PermissionPolicy(
        role_id=role_id,
        role_active=bool(role is not None and role.is_active),
        catalog_resources=catalog_resources(db),
        granted={(resource, action) for resource, action in granted},
    )


def build_principal(user_id: int, db: Session) -> Principal:
    assignment = latest_assignment(user_id, db)
    if assignment is None:
        logger.info(f"User {user_id} has no scope assignment")
        raise NoScopeAssigned()

    scope = resolve_assignment(assignment, db)

    return Principal(
        user_id=user_id,
        scope=scope,
        role_id=assignment.role_id,
        policy=load_policy(db, assignment.role_id),
    )


initialize_permission_handlers()
