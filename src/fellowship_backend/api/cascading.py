from typing import Annotated, Any, Type
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fellowship_backend.database import get_db
from fellowship_backend.interface.alumni_small_groups import AlumniSmallGroupList
from fellowship_backend.interface.cascading import (
    AlumniGroupOptionsQuery,
    SelectionChange,
    SelectionOptions,
    SmallGroupOptionsQuery,
    UniversityOptionsQuery,
)
from fellowship_backend.interface.small_groups import SmallGroupList
from fellowship_backend.interface.universities import UniversityList
from fellowship_backend.model.hierarchy import AlumniSmallGroup, SmallGroup, University
from fellowship_backend.permissions.auth import get_current_principal
from fellowship_backend.permissions.cascade import (
    alumni_groups_for,
    cascade_selection,
    pin_selection,
    small_groups_for,
    universities_for,
)
from fellowship_backend.permissions.core import check_permissions
from fellowship_backend.permissions.principal import Principal

cascading_router = APIRouter()


def _visible_options(principal: Principal, entity: Type[Any], items: list, db: Session) -> list:
    """Drop options outside the caller's visible part of the hierarchy"""
    if not items:
        return []
    visible = check_permissions(principal, entity, "list", db).with_entities(entity.id).all()
    visible_ids = {row.id for row in visible}
    return [item for item in items if item.id in visible_ids]


@cascading_router.get("/universities", response_model=list[UniversityList])
async def university_options(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: UniversityOptionsQuery = Depends(),
    db: Session = Depends(get_db),
):
    return _visible_options(principal, University, universities_for(db, params.region_id), db)


@cascading_router.get("/small-groups", response_model=list[SmallGroupList])
async def small_group_options(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: SmallGroupOptionsQuery = Depends(),
    db: Session = Depends(get_db),
):
    return _visible_options(principal, SmallGroup, small_groups_for(db, params.university_id), db)


@cascading_router.get("/alumni-small-groups", response_model=list[AlumniSmallGroupList])
async def alumni_small_group_options(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: AlumniGroupOptionsQuery = Depends(),
    db: Session = Depends(get_db),
):
    return _visible_options(principal, AlumniSmallGroup, alumni_groups_for(db, params.region_id), db)


@cascading_router.post("/selection", response_model=SelectionOptions)
async def change_selection(
    principal: Annotated[Principal, Depends(get_current_principal)],
    entity: SelectionChange,
    db: Session = Depends(get_db),
):
    """Apply a form field change, clear stale dependents and return the next option sets.

    Fields locked by the caller's scope keep the scope's own ids.
    """
    current = pin_selection(principal.scope, entity.current)
    selection = pin_selection(principal.scope, cascade_selection(db, current, entity.changes))

    return SelectionOptions(
        selection=selection,
        universities=_visible_options(principal, University, universities_for(db, selection.region_id), db),
        small_groups=_visible_options(principal, SmallGroup, small_groups_for(db, selection.university_id), db),
        alumni_small_groups=_visible_options(principal, AlumniSmallGroup, alumni_groups_for(db, selection.region_id), db),
    )
