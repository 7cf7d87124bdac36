from collections.abc import Awaitable, Callable
from functools import lru_cache
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shared.auth.config import AuthSettings
from shared.constants import MODERATION_ROLES, Role
from shared.models.user import CurrentUser

http_bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_auth_settings() -> AuthSettings:
    return AuthSettings()


def _user_from_token(token: str, settings: AuthSettings) -> CurrentUser:
    """Verify signature, issuer, audience and expiry, then map claims to a user.

    Raises JWTError for a bad token, ValueError for missing or malformed claims.
    """
    claims = jwt.decode(
        token,
        settings.secret.get_secret_value(),
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        audience=settings.audience,
        options={"leeway": settings.leeway_seconds},
    )
    subject = claims.get("sub")
    if not subject:
        raise ValueError("Token has no subject")
    return CurrentUser(
        id=UUID(subject),
        email=claims.get("email") or "",
        roles=Role.from_claims(claims.get(settings.roles_claim) or []),
    )


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: AuthSettings = Depends(get_auth_settings),
) -> CurrentUser | None:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return _user_from_token(credentials.credentials, settings)
    except (JWTError, ValueError):
        return None


async def get_current_user_required(
    user: CurrentUser | None = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*allowed: Role, detail: str) -> Callable[..., Awaitable[CurrentUser]]:
    """Dependency factory: authenticated caller holding at least one of ``allowed``."""

    async def _check(user: CurrentUser = Depends(get_current_user_required)) -> CurrentUser:
        if not user.has_any_role(*allowed):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return _check


# Ban / feature / recategorize shared content
require_moderator = require_roles(*MODERATION_ROLES, detail="Moderator privileges required")
