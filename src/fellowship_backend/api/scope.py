from typing import Annotated
from fastapi import APIRouter, Depends

from fellowship_backend.interface.scopes import AccessDecision, AuthorizeQuery, CurrentScope
from fellowship_backend.permissions.auth import get_current_principal
from fellowship_backend.permissions.principal import Principal

scope_router = APIRouter()


@scope_router.get("/me", response_model=CurrentScope)
async def get_current_scope(principal: Annotated[Principal, Depends(get_current_principal)]):
    """Scope of the caller, used by forms to pre-populate and lock entity fields"""
    return CurrentScope(user_id=principal.user_id, role_id=principal.role_id, scope=principal.scope)


@scope_router.get("/me/authorize", response_model=AccessDecision)
async def authorize_current(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: AuthorizeQuery = Depends(),
):
    """Access decision of the caller for one resource/action pair"""
    return principal.authorize(params.resource, params.action)
