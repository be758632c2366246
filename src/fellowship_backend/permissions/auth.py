"""
Authentication dependencies.

HTTP Basic credentials are checked against the keycove-encrypted password of
the user. The authenticated user id is then turned into a Principal (scope
context plus role policy), which is cached for ``AUTH_CACHE_TTL`` seconds.
"""

import logging
from typing import Annotated, Optional
from aiocache import BaseCache
from cryptography.fernet import InvalidToken
from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from fellowship_backend.api.exceptions import BasicAuthException, UnauthorizedException
from fellowship_backend.database import get_db
from fellowship_backend.interface.tokens import decrypt_api_key
from fellowship_backend.model.auth import User
from fellowship_backend.permissions.core import build_principal
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.redis_cache import get_redis_client
from fellowship_backend.settings import settings

logger = logging.getLogger(__name__)

PRINCIPAL_NAMESPACE = "principal:"

_basic = HTTPBasic(auto_error=False)


class AuthenticationService:
    """Service for checking user credentials"""

    @staticmethod
    def authenticate_basic(username: str, password: str, db: Session) -> int:
        user = db.query(User.id, User.password).filter(User.email == username).first()

        if user is None or user.password is None:
            raise BasicAuthException()

        try:
            stored = decrypt_api_key(user.password)
        except InvalidToken:
            logger.error(f"Stored password of user {user.id} cannot be decrypted with the configured TOKEN_SECRET")
            raise BasicAuthException()

        if password != stored:
            raise BasicAuthException()

        return user.id


def get_authenticated_user_id(
    credentials: Annotated[Optional[HTTPBasicCredentials], Depends(_basic)],
    db: Session = Depends(get_db),
) -> int:
    if credentials is None:
        raise UnauthorizedException("Not authenticated", headers={"WWW-Authenticate": "Basic"})

    return AuthenticationService.authenticate_basic(credentials.username, credentials.password, db)


async def get_current_principal(
    user_id: Annotated[int, Depends(get_authenticated_user_id)],
    cache: Annotated[BaseCache, Depends(get_redis_client)],
    db: Session = Depends(get_db),
) -> Principal:
    cached = await cache.get(str(user_id), namespace=PRINCIPAL_NAMESPACE)
    if cached:
        return Principal.model_validate_json(cached)

    principal = build_principal(user_id, db)

    await cache.set(str(user_id), principal.model_dump_json(), ttl=settings.AUTH_CACHE_TTL, namespace=PRINCIPAL_NAMESPACE)

    return principal


async def invalidate_principal(cache: BaseCache, user_id: int):
    await cache.delete(str(user_id), namespace=PRINCIPAL_NAMESPACE)


async def invalidate_all_principals(cache: BaseCache):
    """Role permissions changed: every cached principal may carry a stale policy."""
    await cache.clear(namespace=PRINCIPAL_NAMESPACE)
