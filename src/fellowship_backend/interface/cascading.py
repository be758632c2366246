from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from fellowship_backend.interface.alumni_small_groups import AlumniSmallGroupList
from fellowship_backend.interface.base import CamelModel
from fellowship_backend.interface.scopes import Selection
from fellowship_backend.interface.small_groups import SmallGroupList
from fellowship_backend.interface.universities import UniversityList

class UniversityOptionsQuery(BaseModel):
    region_id: Optional[int] = None

class SmallGroupOptionsQuery(BaseModel):
    university_id: Optional[int] = None

class AlumniGroupOptionsQuery(BaseModel):
    region_id: Optional[int] = None

class SelectionChange(CamelModel):
    current: Selection = Field(default_factory=Selection)
    changes: dict[str, Optional[int]] = Field(default_factory=dict, description="Fields changed by the user, e.g. {regionId: 3}")

    @field_validator("changes", mode="before")
    @classmethod
    def snake_case_keys(cls, value: Any):
        if not isinstance(value, dict):
            return value
        names = {to_camel(name): name for name in Selection.model_fields}
        return {names.get(key, key): item for key, item in value.items()}

class SelectionOptions(CamelModel):
    selection: Selection
    universities: list[UniversityList] = []
    small_groups: list[SmallGroupList] = []
    alumni_small_groups: list[AlumniSmallGroupList] = []
