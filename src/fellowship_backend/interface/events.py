from enum import Enum
from typing import Optional
from pydantic import ConfigDict, Field
from sqlalchemy.orm import Session
from fellowship_backend.interface.base import BaseEntityGet, CamelModel, EntityInterface, ListQuery
from fellowship_backend.model.member import Event
from fellowship_backend.permissions.cascade import complete_chain

class EventType(str, Enum):
    bible_study = "bible_study"
    discipleship = "discipleship"
    evangelism = "evangelism"
    cell_meeting = "cell_meeting"
    alumni_meeting = "alumni_meeting"
    other = "other"

class EventCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Event name")
    type: EventType
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

    model_config = ConfigDict(use_enum_values=True)

class EventGet(BaseEntityGet):
    name: str
    type: str
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

class EventList(EventGet):
    pass

class EventUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[EventType] = None
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

    model_config = ConfigDict(use_enum_values=True)

class EventQuery(ListQuery):
    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None
    type: Optional[EventType] = None

def event_search(db: Session, query, params: Optional[EventQuery]):
    if params.region_id != None:
        query = query.filter(Event.region_id == params.region_id)
    if params.university_id != None:
        query = query.filter(Event.university_id == params.university_id)
    if params.small_group_id != None:
        query = query.filter(Event.small_group_id == params.small_group_id)
    if params.alumni_group_id != None:
        query = query.filter(Event.alumni_group_id == params.alumni_group_id)
    if params.type != None:
        query = query.filter(Event.type == params.type.value)
    return query.order_by(Event.created_at.desc(), Event.id.desc())

class EventInterface(EntityInterface):
    create = EventCreate
    get = EventGet
    list = EventList
    update = EventUpdate
    query = EventQuery
    search = event_search
    endpoint = "events"
    model = Event
    resource = "event"
    pre_write = complete_chain
