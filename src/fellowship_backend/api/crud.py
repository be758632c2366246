import logging
from enum import Enum
from typing import Any
from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy import exc
from fellowship_backend.api.exceptions import BadRequestException, ConflictException, NotFoundException, InternalServerException
from fellowship_backend.permissions.cascade import chain_of, row_values
from fellowship_backend.permissions.core import check_action, check_permissions, check_stored, check_write
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.interface.base import EntityInterface, ListQuery

logger = logging.getLogger(__name__)

def integrity_error_to_http(e: exc.IntegrityError, table: str) -> HTTPException:
    """Unique violations are conflicts, everything else (foreign key, not null, check) is a validation error."""
    error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
    first_line = error_msg.split('\n')[0]

    if 'UniqueViolation' in error_msg or 'unique' in error_msg.lower():
        return ConflictException(detail=f"A {table.replace('_', ' ')} with these values already exists")

    if 'DETAIL:' in error_msg:
        detail_part = error_msg.split('DETAIL:')[1].split('\n')[0].strip()
        return BadRequestException(detail=f"{first_line}. {detail_part}")

    return BadRequestException(detail=first_line)

async def create_db(principal: Principal, db: Session, entity: BaseModel, interface: EntityInterface):

    db_type = interface.model

    values = entity.model_dump(exclude_unset=True)

    if interface.pre_write != None:
        values = interface.pre_write(db, values)

    check_write(principal, db_type, "create", chain_of(db_type, values))

    try:
        db_item = db_type(**values)

        db.add(db_item)
        db.commit()
        db.refresh(db_item)

        response = interface.get.model_validate(db_item, from_attributes=True)

        if interface.post_create != None:
            interface.post_create(db_item, db)

        return response
    except exc.IntegrityError as e:
        db.rollback()
        raise integrity_error_to_http(e, db_type.__tablename__)

async def get_id_db(principal: Principal, db: Session, id: int, interface: EntityInterface, action: str = "get"):

    db_type = interface.model

    query = check_permissions(principal, db_type, action, db)

    item = query.filter(db_type.id == id).first()

    if item == None:
        raise NotFoundException(detail=f"{db_type.__name__} with id [{id}] not found")

    return interface.get.model_validate(item, from_attributes=True)

async def list_db(principal: Principal, db: Session, params: ListQuery, interface: EntityInterface):

    db_type = interface.model
    query_func = interface.search

    query = check_permissions(principal, db_type, "list", db)

    query = query_func(db, query, params)

    total = query.order_by(None).count()

    if params.limit != None:
        query = query.limit(params.limit)
    if params.skip != None:
        query = query.offset(params.skip)

    query_result = [interface.list.model_validate(entity, from_attributes=True) for entity in query.all()]

    return query_result, total

def update_db(principal: Principal, db: Session, id: int, entity: Any, interface: EntityInterface):

    db_type = interface.model

    check_action(principal, db_type, "update")

    # loaded unfiltered: a row outside the scope is a scope violation, not a missing row
    db_item = db.query(db_type).filter(db_type.id == id).first()

    if db_item == None:
        raise NotFoundException(detail=f"{db_type.__name__} with id [{id}] not found")

    if isinstance(entity, BaseModel):
        entity = entity.model_dump(exclude_unset=True)

    # the stored row and the row after the update must both be in scope
    check_stored(principal, db_type, "update", db_item)
    current = row_values(db_item)

    if interface.pre_write != None:
        entity = interface.pre_write(db, entity, db_item)

    check_write(principal, db_type, "update", chain_of(db_type, {**current, **entity}))

    try:
        for key, attr in entity.items():
            if isinstance(attr, Enum):
                attr = attr.value
            setattr(db_item, key, attr)

        db.commit()
        db.refresh(db_item)

        response = interface.get.model_validate(db_item, from_attributes=True)

        if interface.post_update != None:
            interface.post_update(db_item, db)

        return response

    except exc.IntegrityError as e:
        db.rollback()
        raise integrity_error_to_http(e, db_type.__tablename__)

def delete_db(principal: Principal, db: Session, id: int, interface: EntityInterface):

    db_type = interface.model

    check_action(principal, db_type, "delete")

    entity = db.query(db_type).filter(db_type.id == id).first()

    if not entity:
        raise NotFoundException(detail=f"{db_type.__name__} not found")

    check_stored(principal, db_type, "delete", entity)

    if interface.pre_delete != None:
        interface.pre_delete(db, entity)

    try:
        db.delete(entity)
        db.commit()
    except exc.IntegrityError as e:
        db.rollback()
        logger.warning(f"Delete of {db_type.__tablename__} {id} blocked: {e.orig}")
        raise ConflictException(
            detail=f"Cannot delete this {db_type.__tablename__.replace('_', ' ')} because other records depend on it. Please remove all references to this item first."
        )
    except exc.SQLAlchemyError as e:
        db.rollback()
        logger.error(f"SQLAlchemyError in delete_db: {e}")
        raise InternalServerException(detail="An unexpected database error occurred while deleting.")
