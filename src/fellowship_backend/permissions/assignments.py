"""
Scope assignments (UserRole rows).

A user holds exactly one assignment. Assigning again supersedes the stored
row in place. Only the entity id of the assigned level is stored; ancestor
ids sent by a cascading form are accepted when they agree with the chain.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import exc
from sqlalchemy.orm import Session

from fellowship_backend.api.exceptions import BadRequestException, NotFoundException, PermissionDenied
from fellowship_backend.interface.scopes import EntityChain, ScopeLevel
from fellowship_backend.interface.user_roles import SCOPE_ENTITY_KEY, UserRoleAssign
from fellowship_backend.model.auth import User
from fellowship_backend.model.role import Role, UserRole
from fellowship_backend.permissions.cascade import ANCESTORS, CHAIN_KEYS, derive_chain

logger = logging.getLogger(__name__)


def _stored_entity(payload: UserRoleAssign) -> dict[str, Optional[int]]:
    key = SCOPE_ENTITY_KEY[payload.scope]
    allowed = {key, *ANCESTORS[key]} if key is not None else set()

    extra = [k for k in CHAIN_KEYS if getattr(payload, k) is not None and k not in allowed]
    if extra:
        raise BadRequestException(
            detail=f"Scope {payload.scope.value} does not take {', '.join(extra)}"
        )

    if key is None:
        return dict.fromkeys(CHAIN_KEYS)

    return {k: (getattr(payload, k) if k == key else None) for k in CHAIN_KEYS}


def assign_scope(db: Session, payload: UserRoleAssign, assigned_by_superadmin: bool = False) -> UserRole:
    if payload.scope == ScopeLevel.superadmin and not assigned_by_superadmin:
        raise PermissionDenied(detail="Only superadmins can assign the superadmin scope")

    if db.get(User, payload.user_id) is None:
        raise BadRequestException(detail="User not found")

    if payload.role_id is not None and db.get(Role, payload.role_id) is None:
        raise BadRequestException(detail="Role not found")

    stored = _stored_entity(payload)
    if SCOPE_ENTITY_KEY[payload.scope] is not None:
        # unknown ids and disagreeing ancestors are rejected here
        derive_chain(db, EntityChain(**{k: getattr(payload, k) for k in CHAIN_KEYS}))

    assignment = db.query(UserRole).filter(UserRole.user_id == payload.user_id).first()
    if assignment is not None and assignment.scope == ScopeLevel.superadmin.value and not assigned_by_superadmin:
        raise PermissionDenied(detail="Only superadmins can change a superadmin's scope")
    if assignment is None:
        assignment = UserRole(user_id=payload.user_id)
        db.add(assignment)

    assignment.scope = payload.scope.value
    assignment.role_id = payload.role_id
    for k, value in stored.items():
        setattr(assignment, k, value)
    assignment.assigned_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except exc.IntegrityError as e:
        db.rollback()
        logger.warning(f"Scope assignment for user {payload.user_id} rejected: {e.orig}")
        raise BadRequestException(detail="Scope assignment violates data integrity constraints")

    db.refresh(assignment)
    logger.info(f"Assigned scope {payload.scope.value} to user {payload.user_id}")
    return assignment


def get_assignment(db: Session, user_id: int) -> UserRole:
    assignment = db.query(UserRole).filter(UserRole.user_id == user_id).first()
    if assignment is None:
        raise NotFoundException(detail=f"User {user_id} has no scope assignment")
    return assignment


def remove_scope(db: Session, user_id: int, removed_by_superadmin: bool = False):
    assignment = get_assignment(db, user_id)
    if assignment.scope == ScopeLevel.superadmin.value and not removed_by_superadmin:
        raise PermissionDenied(detail="Only superadmins can remove a superadmin's scope")
    db.delete(assignment)
    db.commit()
    logger.info(f"Removed scope assignment of user {user_id}")
