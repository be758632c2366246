"""
Default permission catalog and system roles.

Every resource exposed through an entity interface gets one permission per
CRUD action, named ``resource:action``. One system role per role level is
bound to its default permissions. Running the setup again only adds what is
missing. Bindings an administrator changed on a system role are kept
unless a reset is requested.
"""

import logging
from typing import Generator, List, Set, Tuple
from sqlalchemy.orm import Session

from fellowship_backend.interface import get_all_dtos
from fellowship_backend.model.role import Permission, Role
from fellowship_backend.permissions.bindings import DesiredBinding, bulk_assign, bulk_reconcile

logger = logging.getLogger(__name__)

CRUD = ("create", "read", "update", "delete")

# breadth a permission of a resource applies at
RESOURCE_SCOPES = {
    "region": "regional",
    "university": "university",
    "smallgroup": "smallgroup",
    "alumni": "alumni_group",
}

READ_HIERARCHY = [("region", "read"), ("university", "read"), ("smallgroup", "read")]
MANAGE_RECORDS = [(resource, action) for resource in ("member", "event") for action in CRUD]


def get_all_claim_values() -> Generator[Tuple[str, str], None, None]:
    """(resource, action) pairs of all registered entity interfaces"""
    seen = set()
    for dto_class in get_all_dtos():
        if dto_class.resource is None:
            continue
        for claim in dto_class().claim_values():
            if claim not in seen:
                seen.add(claim)
                yield claim


def claims_regional_coordinator() -> List[Tuple[str, str]]:
    claims = [("region", "read")]
    for resource in ("university", "smallgroup", "alumni"):
        claims.extend((resource, action) for action in CRUD)
    claims.extend(MANAGE_RECORDS)
    return claims


def claims_campus_leader() -> List[Tuple[str, str]]:
    claims = [("region", "read"), ("university", "read"), ("university", "update")]
    claims.extend(("smallgroup", action) for action in CRUD)
    claims.extend(MANAGE_RECORDS)
    return claims


def claims_small_group_leader() -> List[Tuple[str, str]]:
    return READ_HIERARCHY + [("smallgroup", "update")] + MANAGE_RECORDS


def claims_graduate_network_leader() -> List[Tuple[str, str]]:
    return READ_HIERARCHY + [("alumni", "read"), ("alumni", "update")] + MANAGE_RECORDS


def system_roles() -> List[dict]:
    all_claims = list(get_all_claim_values())
    return [
        {"name": "Super Administrator", "level": "System", "description": "Full access to every resource", "claims": all_claims},
        {"name": "National Administrator", "level": "National", "description": "Administers the whole fellowship", "claims": all_claims},
        {"name": "Regional Coordinator", "level": "Regional", "description": "Manages the campuses and groups of a region", "claims": claims_regional_coordinator()},
        {"name": "Campus Leader", "level": "Campus", "description": "Manages the small groups of a university", "claims": claims_campus_leader()},
        {"name": "Small Group Leader", "level": "SmallGroup", "description": "Manages the members of a small group", "claims": claims_small_group_leader()},
        {"name": "Graduate Network Leader", "level": "GraduateNetwork", "description": "Manages an alumni small group", "claims": claims_graduate_network_leader()},
    ]


def ensure_permission_catalog(db: Session) -> Tuple[dict[Tuple[str, str], Permission], Set[Tuple[str, str]]]:
    """Create the missing ``resource:action`` permissions.

    Returns the catalog by pair and the pairs created by this call.
    """
    existing = {(p.resource, p.action): p for p in db.query(Permission).all()}

    created = set()
    for resource, action in get_all_claim_values():
        if (resource, action) in existing:
            continue
        permission = Permission(
            name=f"{resource}:{action}",
            description=f"{action.capitalize()} {resource}",
            resource=resource,
            action=action,
            scope=RESOURCE_SCOPES.get(resource, "global"),
        )
        db.add(permission)
        existing[(resource, action)] = permission
        created.add((resource, action))

    db.commit()
    logger.info(f"Permission catalog ready, {len(created)} permissions created")
    return existing, created


def ensure_system_roles(db: Session, reset: bool = False) -> List[Role]:
    """Create the missing system roles and their default bindings.

    Bindings of an existing role are only ever added, for default claims
    whose permission was created by this call. With ``reset`` every system
    role is reconciled to exactly its default bindings.
    """
    catalog, created = ensure_permission_catalog(db)

    roles = []
    for definition in system_roles():
        role = db.query(Role).filter(Role.name == definition["name"]).first()
        is_new = role is None
        if is_new:
            role = Role(
                name=definition["name"],
                description=definition["description"],
                level=definition["level"],
                is_system=True,
            )
            db.add(role)
            db.commit()
            db.refresh(role)
            logger.info(f"Created system role {role.name}")

        claims = [claim for claim in definition["claims"] if claim in catalog]

        if is_new or reset:
            granted = {catalog[claim].id for claim in claims}
            desired = [DesiredBinding(permission_id=permission.id, is_assigned=permission.id in granted) for permission in catalog.values()]
            result = bulk_reconcile(db, role.id, desired)
            logger.debug(f"Default bindings of {role.name}: {result.added} added, {result.removed} removed")
        else:
            missing = [catalog[claim].id for claim in claims if claim in created]
            if missing:
                bulk_assign(db, role.id, missing)
                logger.info(f"Bound {len(missing)} new permissions to {role.name}")

        roles.append(role)

    return roles
