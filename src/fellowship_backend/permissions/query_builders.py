from typing import Any, Type, assert_never
from sqlalchemy import false
from sqlalchemy.orm import Query

from fellowship_backend.interface.scopes import (
    AlumniSmallGroupScope,
    EntityFilter,
    NationalScope,
    RegionScope,
    ScopeContext,
    SmallGroupScope,
    SuperadminScope,
    UniversityScope,
)
from fellowship_backend.model.hierarchy import AlumniSmallGroup, Region, SmallGroup, University


class ScopeFilterQueryBuilder:
    """Applies an EntityFilter to queries over scope-gated tables"""

    @classmethod
    def column_for(cls, entity: Type[Any], key: str):
        """Column of ``entity`` constrained by filter key ``key``.

        Hierarchy tables are matched on their own id for their own key.
        """
        if getattr(entity, "scope_key", None) == key:
            return entity.id
        return getattr(entity, key, None)

    @classmethod
    def apply(cls, query: Query, entity: Type[Any], entity_filter: EntityFilter) -> Query:
        for key, value in entity_filter.as_dict().items():
            column = cls.column_for(entity, key)
            if column is None:
                # the table has no such axis, nothing falls inside the scope
                return query.filter(false())
            query = query.filter(column == value)
        return query


class HierarchyQueryBuilder:
    """Read visibility of hierarchy rows: the caller's own chain and everything below it"""

    @classmethod
    def visibility(cls, entity: Type[Any], ctx: ScopeContext):
        """Filter clause for ``entity`` or None when every row is visible"""
        match ctx:
            case SuperadminScope() | NationalScope():
                return None
            case RegionScope(region=region):
                clauses = {
                    Region: Region.id == region.id,
                    University: University.region_id == region.id,
                    SmallGroup: SmallGroup.region_id == region.id,
                    AlumniSmallGroup: AlumniSmallGroup.region_id == region.id,
                }
            case UniversityScope(university=university, region=region):
                clauses = {
                    Region: Region.id == region.id,
                    University: University.id == university.id,
                    SmallGroup: SmallGroup.university_id == university.id,
                }
            case SmallGroupScope(small_group=small_group, university=university, region=region):
                clauses = {
                    Region: Region.id == region.id,
                    University: University.id == university.id,
                    SmallGroup: SmallGroup.id == small_group.id,
                }
            case AlumniSmallGroupScope(alumni_group=alumni_group, region=region):
                # alumni leaders pick campuses of their region when registering members
                clauses = {
                    Region: Region.id == region.id,
                    University: University.region_id == region.id,
                    SmallGroup: SmallGroup.region_id == region.id,
                    AlumniSmallGroup: AlumniSmallGroup.id == alumni_group.id,
                }
            case _:
                assert_never(ctx)

        return clauses.get(entity, false())

    @classmethod
    def visible(cls, query: Query, entity: Type[Any], ctx: ScopeContext) -> Query:
        clause = cls.visibility(entity, ctx)
        if clause is None:
            return query
        return query.filter(clause)
