"""
Access gate.

``authorize`` turns a caller's scope into an entity filter and applies the
fine-grained permission layer on top of it. It is a pure function: the
caller's scope and role policy are passed in explicitly.

The fine-grained layer can only deny. It never changes the entity filter, so
a broad permission bound to a narrowly scoped caller still yields the narrow
filter.
"""

from typing import Optional, assert_never

from fellowship_backend.api.exceptions import PermissionDenied, ScopeViolation
from fellowship_backend.interface.scopes import (
    AccessDecision,
    AlumniSmallGroupScope,
    EntityChain,
    EntityFilter,
    NationalScope,
    PermissionPolicy,
    PolicyOutcome,
    RegionScope,
    ScopeContext,
    SmallGroupScope,
    SuperadminScope,
    UniversityScope,
)


def scope_filter(ctx: ScopeContext) -> EntityFilter:
    match ctx:
        case SuperadminScope() | NationalScope():
            return EntityFilter()
        case RegionScope(region=region):
            return EntityFilter(region_id=region.id)
        case UniversityScope(university=university):
            return EntityFilter(university_id=university.id)
        case SmallGroupScope(small_group=small_group):
            return EntityFilter(small_group_id=small_group.id)
        case AlumniSmallGroupScope(alumni_group=alumni_group):
            return EntityFilter(alumni_group_id=alumni_group.id)
        case _:
            assert_never(ctx)


def evaluate_policy(policy: Optional[PermissionPolicy], resource: str, action: str) -> PolicyOutcome:
    if policy is None or not policy.defines(resource):
        return PolicyOutcome.NO_POLICY_DEFINED
    if policy.grants(resource, action):
        return PolicyOutcome.POLICY_MATCHED
    return PolicyOutcome.POLICY_NOT_MATCHED


def authorize(ctx: ScopeContext, resource: str, action: str, policy: Optional[PermissionPolicy] = None) -> AccessDecision:
    entity_filter = scope_filter(ctx)

    # superadmins are not subject to role permissions
    if isinstance(ctx, SuperadminScope):
        return AccessDecision(allowed=True, entity_filter=entity_filter, outcome=PolicyOutcome.NO_POLICY_DEFINED)

    outcome = evaluate_policy(policy, resource, action)

    if outcome == PolicyOutcome.POLICY_NOT_MATCHED:
        return AccessDecision(allowed=False, entity_filter=None, outcome=outcome)

    return AccessDecision(allowed=True, entity_filter=entity_filter, outcome=outcome)


def ensure_allowed(decision: AccessDecision, resource: str, action: str) -> EntityFilter:
    if not decision.allowed:
        raise PermissionDenied(detail=f"Permission denied: {resource}:{action}")
    return decision.entity_filter


def enforce_write(decision: AccessDecision, chain: EntityChain):
    """Reject a write whose parent chain falls outside the decision's filter.

    A chain id that is missing counts as a mismatch.
    """
    if not decision.allowed:
        raise PermissionDenied()

    target = chain.model_dump()
    for key, value in decision.entity_filter.as_dict().items():
        if target.get(key) != value:
            raise ScopeViolation(detail=f"Target {key} {target.get(key)} is outside of your scope ({key} {value})")
