"""
Scoped access control for the fellowship backend.

- resolver: user id -> ScopeContext
- gate: ScopeContext + role policy -> AccessDecision / ScopeViolation
- cascade: hierarchy option sets and parent-chain derivation
- catalog / bindings: permissions, roles and role-permission bindings
- handlers, handlers_impl, query_builders, core: per-entity query narrowing
- auth: FastAPI dependencies producing the request Principal
"""
