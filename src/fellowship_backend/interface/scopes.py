from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter
from fellowship_backend.interface.base import CamelModel

class ScopeLevel(str, Enum):
    superadmin = "superadmin"
    national = "national"
    region = "region"
    university = "university"
    smallgroup = "smallgroup"
    alumnismallgroup = "alumnismallgroup"

UNRESTRICTED_LEVELS = (ScopeLevel.superadmin, ScopeLevel.national)

class RegionRef(CamelModel):
    id: int
    name: str

class UniversityRef(CamelModel):
    id: int
    name: str
    region_id: int

class SmallGroupRef(CamelModel):
    id: int
    name: str
    university_id: int
    region_id: int

class AlumniGroupRef(CamelModel):
    id: int
    name: str
    region_id: int

# One variant per scope level. A variant only carries the entities that apply
# at its level, so "not applicable" fields are absent rather than null.

class SuperadminScope(CamelModel):
    scope: Literal["superadmin"] = "superadmin"

class NationalScope(CamelModel):
    scope: Literal["national"] = "national"

class RegionScope(CamelModel):
    scope: Literal["region"] = "region"
    region: RegionRef

class UniversityScope(CamelModel):
    scope: Literal["university"] = "university"
    university: UniversityRef
    region: RegionRef

class SmallGroupScope(CamelModel):
    scope: Literal["smallgroup"] = "smallgroup"
    small_group: SmallGroupRef
    university: UniversityRef
    region: RegionRef

class AlumniSmallGroupScope(CamelModel):
    scope: Literal["alumnismallgroup"] = "alumnismallgroup"
    alumni_group: AlumniGroupRef
    region: RegionRef

ScopeContext = Annotated[
    Union[SuperadminScope, NationalScope, RegionScope, UniversityScope, SmallGroupScope, AlumniSmallGroupScope],
    Field(discriminator="scope"),
]

scope_context_adapter = TypeAdapter(ScopeContext)

def is_unrestricted(ctx: ScopeContext) -> bool:
    return ctx.scope in UNRESTRICTED_LEVELS

class EntityFilter(CamelModel):
    """Id constraints derived from a scope. An empty filter means unrestricted."""

    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

    def as_dict(self) -> dict[str, int]:
        return {key: value for key, value in self.model_dump().items() if value is not None}

    @property
    def is_unrestricted(self) -> bool:
        return not self.as_dict()

class EntityChain(CamelModel):
    """Parent-chain ids of a record that is read or written."""

    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

class Selection(CamelModel):
    """Cascading form selection, top-down."""

    region_id: Optional[int] = None
    university_id: Optional[int] = None
    small_group_id: Optional[int] = None
    alumni_group_id: Optional[int] = None

class PolicyOutcome(str, Enum):
    NO_POLICY_DEFINED = "no_policy_defined"
    POLICY_MATCHED = "policy_matched"
    POLICY_NOT_MATCHED = "policy_not_matched"

class AccessDecision(CamelModel):
    allowed: bool
    entity_filter: Optional[EntityFilter] = None
    outcome: PolicyOutcome

class PermissionPolicy(BaseModel):
    """Fine-grained grants of the caller's named role, loaded once per principal."""

    role_id: Optional[int] = None
    role_active: bool = False
    # resources that have at least one Permission row in the catalog
    catalog_resources: set[str] = Field(default_factory=set)
    # (resource, action) pairs bound to the role through active permissions
    granted: set[tuple[str, str]] = Field(default_factory=set)

    def defines(self, resource: str) -> bool:
        return self.role_id is not None and resource in self.catalog_resources

    def grants(self, resource: str, action: str) -> bool:
        return self.role_active and (resource, action) in self.granted

class CurrentScope(CamelModel):
    user_id: int
    role_id: Optional[int] = None
    scope: ScopeContext

class AuthorizeQuery(BaseModel):
    resource: str
    action: str
