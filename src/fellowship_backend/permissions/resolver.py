import logging
from sqlalchemy.orm import Session

from fellowship_backend.api.exceptions import NoScopeAssigned, ScopeEntityNotFound
from fellowship_backend.interface.scopes import (
    AlumniGroupRef,
    AlumniSmallGroupScope,
    NationalScope,
    RegionRef,
    RegionScope,
    ScopeContext,
    ScopeLevel,
    SmallGroupRef,
    SmallGroupScope,
    SuperadminScope,
    UniversityRef,
    UniversityScope,
)
from fellowship_backend.model.hierarchy import AlumniSmallGroup, Region, SmallGroup, University
from fellowship_backend.model.role import UserRole

logger = logging.getLogger(__name__)


def latest_assignment(user_id: int, db: Session) -> UserRole | None:
    # user_role.user_id is unique; the ordering only matters for rows that
    # predate the constraint
    return (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id)
        .order_by(UserRole.assigned_at.desc(), UserRole.id.desc())
        .first()
    )


def _load(db: Session, entity, entity_id, user_id: int):
    if entity_id is None:
        logger.warning(f"Scope assignment of user {user_id} has no {entity.__tablename__} id")
        raise ScopeEntityNotFound(detail=f"{entity.__tablename__.replace('_', ' ').capitalize()} of the scope assignment is not set")
    row = db.get(entity, entity_id)
    if row is None:
        logger.warning(f"Scope assignment of user {user_id} references missing {entity.__tablename__} {entity_id}")
        raise ScopeEntityNotFound(detail=f"{entity.__tablename__.replace('_', ' ').capitalize()} {entity_id} not found")
    return row


def _region_ref(db: Session, region_id, user_id: int) -> RegionRef:
    region = _load(db, Region, region_id, user_id)
    return RegionRef(id=region.id, name=region.name)


def _university_ref(db: Session, university_id, user_id: int) -> UniversityRef:
    university = _load(db, University, university_id, user_id)
    return UniversityRef(id=university.id, name=university.name, region_id=university.region_id)


def resolve_assignment(assignment: UserRole, db: Session) -> ScopeContext:
    """Dereference the entity chain of a scope assignment."""
    user_id = assignment.user_id

    match ScopeLevel(assignment.scope):
        case ScopeLevel.superadmin:
            return SuperadminScope()

        case ScopeLevel.national:
            return NationalScope()

        case ScopeLevel.region:
            return RegionScope(region=_region_ref(db, assignment.region_id, user_id))

        case ScopeLevel.university:
            university = _university_ref(db, assignment.university_id, user_id)
            return UniversityScope(
                university=university,
                region=_region_ref(db, university.region_id, user_id),
            )

        case ScopeLevel.smallgroup:
            small_group = _load(db, SmallGroup, assignment.small_group_id, user_id)
            university = _university_ref(db, small_group.university_id, user_id)
            if small_group.region_id != university.region_id:
                logger.error(
                    f"Small group {small_group.id} caches region {small_group.region_id} "
                    f"but its university is in region {university.region_id}"
                )
                raise ScopeEntityNotFound(detail=f"Small group {small_group.id} has an inconsistent region")
            return SmallGroupScope(
                small_group=SmallGroupRef(
                    id=small_group.id,
                    name=small_group.name,
                    university_id=small_group.university_id,
                    region_id=small_group.region_id,
                ),
                university=university,
                region=_region_ref(db, university.region_id, user_id),
            )

        case ScopeLevel.alumnismallgroup:
            alumni_group = _load(db, AlumniSmallGroup, assignment.alumni_group_id, user_id)
            return AlumniSmallGroupScope(
                alumni_group=AlumniGroupRef(id=alumni_group.id, name=alumni_group.name, region_id=alumni_group.region_id),
                region=_region_ref(db, alumni_group.region_id, user_id),
            )


def resolve_scope(user_id: int, db: Session) -> ScopeContext:
    """Resolve the scope of a user.

    Raises NoScopeAssigned when the user has no assignment and
    ScopeEntityNotFound when the assigned entity chain cannot be
    dereferenced. Neither case falls back to a broader scope.
    """
    assignment = latest_assignment(user_id, db)

    if assignment is None:
        raise NoScopeAssigned()

    return resolve_assignment(assignment, db)
