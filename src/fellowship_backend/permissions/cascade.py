"""
Cascading entity selection over the region -> university -> small group
hierarchy (and the region -> alumni small group track).

Option sets are computed by direct foreign key equality only. Every write
that carries parent ids goes through ``derive_chain`` so that the cached
``region_id`` columns always agree with their parents.
"""

import logging
from typing import Any, Optional, assert_never
from sqlalchemy.orm import Session

from fellowship_backend.api.exceptions import BadRequestException, ConflictException
from fellowship_backend.interface.scopes import (
    AlumniSmallGroupScope,
    EntityChain,
    NationalScope,
    RegionScope,
    ScopeContext,
    Selection,
    SmallGroupScope,
    SuperadminScope,
    UniversityScope,
)
from fellowship_backend.model.hierarchy import AlumniSmallGroup, Region, SmallGroup, University
from fellowship_backend.model.member import Event, Member
from fellowship_backend.model.role import UserRole

logger = logging.getLogger(__name__)

CHAIN_KEYS = ("region_id", "university_id", "small_group_id", "alumni_group_id")

# ids that are implied by a more specific selection
ANCESTORS = {
    "region_id": (),
    "university_id": ("region_id",),
    "small_group_id": ("university_id", "region_id"),
    "alumni_group_id": ("region_id",),
}

# children cleared when a selection changes
DEPENDENTS = {
    "region_id": ("university_id", "small_group_id", "alumni_group_id"),
    "university_id": ("small_group_id",),
    "small_group_id": (),
    "alumni_group_id": (),
}


def universities_for(db: Session, region_id: Optional[int]) -> list[University]:
    if region_id is None:
        return []
    return (
        db.query(University)
        .filter(University.region_id == region_id)
        .order_by(University.name, University.id)
        .all()
    )


def small_groups_for(db: Session, university_id: Optional[int]) -> list[SmallGroup]:
    if university_id is None:
        return []
    return (
        db.query(SmallGroup)
        .filter(SmallGroup.university_id == university_id)
        .order_by(SmallGroup.name, SmallGroup.id)
        .all()
    )


def alumni_groups_for(db: Session, region_id: Optional[int]) -> list[AlumniSmallGroup]:
    if region_id is None:
        return []
    return (
        db.query(AlumniSmallGroup)
        .filter(AlumniSmallGroup.region_id == region_id)
        .order_by(AlumniSmallGroup.name, AlumniSmallGroup.id)
        .all()
    )


def _option_ids(db: Session, key: str, selection: Selection) -> set[int]:
    if key == "university_id":
        return {u.id for u in universities_for(db, selection.region_id)}
    if key == "small_group_id":
        return {g.id for g in small_groups_for(db, selection.university_id)}
    if key == "alumni_group_id":
        return {g.id for g in alumni_groups_for(db, selection.region_id)}
    return {r.id for r in db.query(Region.id).all()}


def normalize_selection(db: Session, current: Selection) -> Selection:
    """Clear every field of ``current`` that is not an option under its own parents."""
    selection = current.model_copy()
    # CHAIN_KEYS runs top-down, so a cleared parent clears its children too
    for key in CHAIN_KEYS:
        chosen = getattr(selection, key)
        if chosen is not None and chosen not in _option_ids(db, key, selection):
            setattr(selection, key, None)
    return selection


def cascade_selection(db: Session, current: Selection, changes: dict[str, Optional[int]]) -> Selection:
    """Apply parent changes to a selection.

    The client supplied ``current`` is normalized first. A dependent
    selection survives a parent change only if it is still part of the option
    set filtered by the new parent. Dependents named in ``changes``
    themselves are not cleared but must belong to their parent.
    """
    unknown = set(changes) - set(CHAIN_KEYS)
    if unknown:
        raise BadRequestException(detail=f"Unknown selection fields: {', '.join(sorted(unknown))}")

    values = normalize_selection(db, current).model_dump()
    values.update(changes)
    selection = Selection(**values)

    for key in CHAIN_KEYS:
        if key not in changes:
            continue
        for child in DEPENDENTS[key]:
            if child in changes:
                continue
            child_id = getattr(selection, child)
            if child_id is not None and child_id not in _option_ids(db, child, selection):
                setattr(selection, child, None)

    # explicitly chosen children must belong to their parents
    for key in CHAIN_KEYS:
        chosen = getattr(selection, key)
        if key in changes and chosen is not None and chosen not in _option_ids(db, key, selection):
            raise BadRequestException(detail=f"{key} {chosen} is not a valid option for the selected parent")

    return selection


def pin_selection(ctx: ScopeContext, selection: Selection) -> Selection:
    """Overwrite the fields locked by a caller's scope with the scope's own ids."""
    pinned = selection.model_copy()

    match ctx:
        case SuperadminScope() | NationalScope():
            return pinned
        case RegionScope(region=region):
            locked = {"region_id": region.id}
        case UniversityScope(university=university, region=region):
            locked = {"region_id": region.id, "university_id": university.id}
        case SmallGroupScope(small_group=small_group, university=university, region=region):
            locked = {"region_id": region.id, "university_id": university.id, "small_group_id": small_group.id}
        case AlumniSmallGroupScope(alumni_group=alumni_group, region=region):
            locked = {"region_id": region.id, "alumni_group_id": alumni_group.id}
        case _:
            assert_never(ctx)

    for key, value in locked.items():
        if getattr(pinned, key) != value:
            # a locked parent changes, so dependents are re-validated by clearing
            for child in DEPENDENTS[key]:
                if child not in locked:
                    setattr(pinned, child, None)
        setattr(pinned, key, value)

    return pinned


def _agree(chain: dict[str, Optional[int]], key: str, value: int, source: str):
    if chain.get(key) is not None and chain[key] != value:
        raise BadRequestException(detail=f"{key} {chain[key]} does not match the {source}")
    chain[key] = value


def derive_chain(db: Session, chain: EntityChain) -> EntityChain:
    """Complete the ancestors of the given ids and check that they agree."""
    values = chain.model_dump()

    if values["small_group_id"] is not None:
        small_group = db.get(SmallGroup, values["small_group_id"])
        if small_group is None:
            raise BadRequestException(detail="Small group not found")
        _agree(values, "university_id", small_group.university_id, "small group's university")
        _agree(values, "region_id", small_group.region_id, "small group's region")

    if values["university_id"] is not None:
        university = db.get(University, values["university_id"])
        if university is None:
            raise BadRequestException(detail="University not found")
        _agree(values, "region_id", university.region_id, "university's region")

    if values["alumni_group_id"] is not None:
        alumni_group = db.get(AlumniSmallGroup, values["alumni_group_id"])
        if alumni_group is None:
            raise BadRequestException(detail="Alumni small group not found")
        _agree(values, "region_id", alumni_group.region_id, "alumni small group's region")

    if values["region_id"] is not None and db.get(Region, values["region_id"]) is None:
        raise BadRequestException(detail="Region not found")

    return EntityChain(**values)


def chain_of(entity: Any, values: dict) -> EntityChain:
    """Parent chain of a record given its column values.

    Hierarchy rows contribute their own id under their scope key, so a
    University row yields ``{university_id: id, region_id: ...}``.
    """
    data = {key: values.get(key) for key in CHAIN_KEYS}
    scope_key = getattr(entity, "scope_key", None)
    if scope_key is not None:
        data[scope_key] = values.get("id")
    return EntityChain(**data)


def row_values(db_item: Any) -> dict:
    return {key: getattr(db_item, key, None) for key in ("id",) + CHAIN_KEYS}


def complete_chain(db: Session, values: dict, db_item: Any = None) -> dict:
    """pre_write hook: derive the parent chain of a create or update payload."""
    chain = row_values(db_item) if db_item is not None else dict.fromkeys(CHAIN_KEYS)
    chain.pop("id", None)

    for key in CHAIN_KEYS:
        if key not in values:
            continue
        for ancestor in ANCESTORS[key]:
            if ancestor not in values:
                chain[ancestor] = None
    chain.update({key: values[key] for key in CHAIN_KEYS if key in values})

    derived = derive_chain(db, EntityChain(**chain))

    if db_item is not None and getattr(type(db_item), "scope_key", None) is not None:
        moved = [key for key in CHAIN_KEYS if hasattr(db_item, key) and getattr(db_item, key) != getattr(derived, key)]
        if moved:
            ensure_no_dependents(db, db_item, "move")

    completed = dict(values)
    for key, value in derived.model_dump().items():
        if key in values or value is not None:
            completed[key] = value
    return completed


def ensure_no_dependents(db: Session, db_item: Any, verb: str = "delete"):
    """pre_delete hook for hierarchy rows: refuse while anything references them."""
    entity = type(db_item)
    key = entity.scope_key

    for dependent in (University, SmallGroup, AlumniSmallGroup, Member, Event, UserRole):
        column = getattr(dependent, key, None)
        if column is None:
            continue
        if db.query(dependent).filter(column == db_item.id).count() > 0:
            label = entity.__tablename__.replace("_", " ")
            logger.info(f"Refusing to {verb} {label} {db_item.id}: referenced by {dependent.__tablename__}")
            raise ConflictException(
                detail=f"Cannot {verb} {label} while {dependent.__tablename__.replace('_', ' ')} records reference it"
            )
