"""Permission catalog: listing, grouping and lookups of Permission rows."""

from typing import Optional
from sqlalchemy.orm import Session

from fellowship_backend.api.exceptions import PermissionNotFound
from fellowship_backend.model.role import Permission, RolePermission

CATEGORY_NAMES = {
    "user": "User Management",
    "role": "Role Management",
    "content": "Content Management",
    "financial": "Financial Management",
    "report": "Reports & Analytics",
    "system": "System Administration",
    "member": "Member Management",
    "event": "Event Management",
    "training": "Training Management",
    "attendance": "Attendance Management",
    "smallgroup": "Small Group Management",
    "university": "University Management",
    "region": "Region Management",
    "alumni": "Alumni Management",
    "designation": "Designation Management",
    "contribution": "Contribution Management",
    "budget": "Budget Management",
    "audit": "Audit Management",
    "backup": "Backup Management",
    "settings": "Settings Management",
}


def category_name(resource: str) -> str:
    return CATEGORY_NAMES.get(resource, f"{resource[:1].upper()}{resource[1:]} Management")


def canonical_order(query):
    return query.order_by(Permission.resource.asc(), Permission.action.asc(), Permission.id.asc())


def list_permissions(
    db: Session,
    resource: Optional[str] = None,
    action: Optional[str] = None,
    scope: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> list[Permission]:
    query = db.query(Permission)
    if resource is not None:
        query = query.filter(Permission.resource == resource)
    if action is not None:
        query = query.filter(Permission.action == action)
    if scope is not None:
        query = query.filter(Permission.scope == scope)
    if is_active is not None:
        query = query.filter(Permission.is_active == is_active)
    return canonical_order(query).all()


def get_permission(db: Session, permission_id: int) -> Permission:
    permission = db.get(Permission, permission_id)
    if permission is None:
        raise PermissionNotFound()
    return permission


def catalog_resources(db: Session) -> set[str]:
    """Resources that have at least one Permission row, active or not."""
    return {row.resource for row in db.query(Permission.resource).distinct().all()}


def assigned_permission_ids(db: Session, role_id: int) -> set[int]:
    return {
        row.permission_id
        for row in db.query(RolePermission.permission_id).filter(RolePermission.role_id == role_id).all()
    }


def grouped_permissions(
    db: Session,
    role_id: Optional[int] = None,
    scope: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> list[dict]:
    """Permissions grouped by resource, each flagged with its assignment to ``role_id``."""
    permissions = list_permissions(db, scope=scope, is_active=is_active)
    assigned = assigned_permission_ids(db, role_id) if role_id is not None else set()

    groups: dict[str, dict] = {}
    for permission in permissions:
        group = groups.setdefault(permission.resource, {
            "resource": permission.resource,
            "display_name": category_name(permission.resource),
            "permissions": [],
        })
        group["permissions"].append({
            "id": permission.id,
            "name": permission.name,
            "description": permission.description,
            "resource": permission.resource,
            "action": permission.action,
            "scope": permission.scope,
            "is_active": permission.is_active,
            "is_assigned": permission.id in assigned,
        })

    return list(groups.values())
