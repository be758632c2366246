"""
Access gate tests.

``authorize`` is pure, so these tests build scope contexts and policies by
hand and never touch the database.
"""

import pytest

from fellowship_backend.api.exceptions import PermissionDenied, ScopeViolation
from fellowship_backend.interface.scopes import (
    AlumniGroupRef,
    AlumniSmallGroupScope,
    EntityChain,
    EntityFilter,
    NationalScope,
    PermissionPolicy,
    PolicyOutcome,
    RegionRef,
    RegionScope,
    SmallGroupRef,
    SmallGroupScope,
    SuperadminScope,
    UniversityRef,
    UniversityScope,
    scope_context_adapter,
)
from fellowship_backend.permissions.gate import authorize, enforce_write, ensure_allowed, scope_filter

REGION = RegionRef(id=1, name="North")
UNIVERSITY = UniversityRef(id=7, name="Uni North", region_id=1)
SMALL_GROUP = SmallGroupRef(id=12, name="Group A", university_id=7, region_id=1)
ALUMNI_GROUP = AlumniGroupRef(id=4, name="Alumni North", region_id=1)

UNIVERSITY_SCOPE = UniversityScope(university=UNIVERSITY, region=REGION)


def policy(*grants, catalog=("member", "event"), active=True, role_id=3):
    return PermissionPolicy(role_id=role_id, role_active=active, catalog_resources=set(catalog), granted=set(grants))


@pytest.mark.unit
class TestScopeFilter:
    """One filter per scope level"""

    @pytest.mark.parametrize("ctx, expected", [
        (SuperadminScope(), {}),
        (NationalScope(), {}),
        (RegionScope(region=REGION), {"region_id": 1}),
        (UNIVERSITY_SCOPE, {"university_id": 7}),
        (SmallGroupScope(small_group=SMALL_GROUP, university=UNIVERSITY, region=REGION), {"small_group_id": 12}),
        (AlumniSmallGroupScope(alumni_group=ALUMNI_GROUP, region=REGION), {"alumni_group_id": 4}),
    ])
    def test_filter_per_scope(self, ctx, expected):
        assert scope_filter(ctx).as_dict() == expected

    def test_unrestricted_scopes_have_empty_filter(self):
        assert scope_filter(NationalScope()).is_unrestricted
        assert not scope_filter(RegionScope(region=REGION)).is_unrestricted

    def test_scope_context_parses_by_discriminator(self):
        ctx = scope_context_adapter.validate_python({
            "scope": "university",
            "university": {"id": 7, "name": "Uni North", "regionId": 1},
            "region": {"id": 1, "name": "North"},
        })
        assert isinstance(ctx, UniversityScope)
        assert ctx.university.region_id == 1


@pytest.mark.unit
class TestAuthorize:

    def test_university_filter_is_not_widened_by_global_permission(self):
        # a global-breadth permission for member:read is bound to the caller's role
        decision = authorize(UNIVERSITY_SCOPE, "member", "read", policy(("member", "read")))

        assert decision.allowed
        assert decision.outcome == PolicyOutcome.POLICY_MATCHED
        assert decision.entity_filter == EntityFilter(university_id=7)
        assert not decision.entity_filter.is_unrestricted

    def test_without_role_scope_alone_decides(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "delete", None)

        assert decision.allowed
        assert decision.outcome == PolicyOutcome.NO_POLICY_DEFINED
        assert decision.entity_filter.as_dict() == {"university_id": 7}

    def test_resource_without_catalog_entries_is_scope_only(self):
        decision = authorize(UNIVERSITY_SCOPE, "smallgroup", "update", policy(catalog=("member",)))

        assert decision.allowed
        assert decision.outcome == PolicyOutcome.NO_POLICY_DEFINED

    def test_missing_binding_denies(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "delete", policy(("member", "read")))

        assert not decision.allowed
        assert decision.outcome == PolicyOutcome.POLICY_NOT_MATCHED
        assert decision.entity_filter is None

    def test_inactive_role_denies(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "read", policy(("member", "read"), active=False))

        assert not decision.allowed
        assert decision.outcome == PolicyOutcome.POLICY_NOT_MATCHED

    def test_national_caller_is_held_to_its_role(self):
        decision = authorize(NationalScope(), "event", "create", policy(("event", "read")))

        assert not decision.allowed

    def test_superadmin_bypasses_role_permissions(self):
        decision = authorize(SuperadminScope(), "member", "delete", policy(("member", "read")))

        assert decision.allowed
        assert decision.entity_filter.is_unrestricted
        assert decision.outcome == PolicyOutcome.NO_POLICY_DEFINED

    def test_ensure_allowed_raises_permission_denied(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "delete", policy(("member", "read")))

        with pytest.raises(PermissionDenied) as e:
            ensure_allowed(decision, "member", "delete")
        assert e.value.status_code == 403
        assert e.value.code == "PERMISSION_DENIED"

    def test_ensure_allowed_returns_filter(self):
        decision = authorize(RegionScope(region=REGION), "member", "read")

        assert ensure_allowed(decision, "member", "read").as_dict() == {"region_id": 1}


@pytest.mark.unit
class TestEnforceWrite:

    def test_write_inside_scope(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "create")

        enforce_write(decision, EntityChain(region_id=1, university_id=7, small_group_id=12))

    def test_write_into_other_university(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "create")

        with pytest.raises(ScopeViolation) as e:
            enforce_write(decision, EntityChain(region_id=1, university_id=8))
        assert e.value.status_code == 403
        assert e.value.code == "SCOPE_VIOLATION"

    def test_missing_chain_id_is_a_violation(self):
        decision = authorize(RegionScope(region=REGION), "member", "create")

        with pytest.raises(ScopeViolation):
            enforce_write(decision, EntityChain())

    def test_unrestricted_scope_writes_anywhere(self):
        decision = authorize(NationalScope(), "member", "create")

        enforce_write(decision, EntityChain(region_id=99))

    def test_denied_decision_raises_permission_denied(self):
        decision = authorize(UNIVERSITY_SCOPE, "member", "create", policy(("member", "read")))

        with pytest.raises(PermissionDenied):
            enforce_write(decision, EntityChain(university_id=7))
