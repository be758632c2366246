import hashlib
from typing import Optional
from pydantic import BaseModel, Field

from fellowship_backend.interface.scopes import (
    AccessDecision,
    PermissionPolicy,
    ScopeContext,
    ScopeLevel,
    is_unrestricted,
)
from fellowship_backend.permissions.gate import authorize


class Principal(BaseModel):
    """Authenticated caller: scope context plus the policy of its named role."""

    user_id: int
    scope: ScopeContext
    role_id: Optional[int] = None
    policy: PermissionPolicy = Field(default_factory=PermissionPolicy)

    @property
    def is_superadmin(self) -> bool:
        return self.scope.scope == ScopeLevel.superadmin

    @property
    def is_admin(self) -> bool:
        """Superadmin and national callers administer users, roles and permissions."""
        return is_unrestricted(self.scope)

    def authorize(self, resource: str, action: str) -> AccessDecision:
        return authorize(self.scope, resource, action, self.policy)

    def permitted(self, resource: str, action: str) -> bool:
        return self.authorize(resource, action).allowed

    def fingerprint(self) -> str:
        """Stable digest of everything that shapes what this caller may see."""
        raw = self.model_dump_json(include={"scope", "role_id"}) + "|" + ",".join(
            sorted(f"{resource}:{action}" for resource, action in self.policy.granted)
        ) + "|" + ",".join(sorted(self.policy.catalog_resources)) + f"|{self.policy.role_active}"
        return hashlib.sha256(raw.encode()).hexdigest()[:16]
