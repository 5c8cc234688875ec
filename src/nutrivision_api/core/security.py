"""JWT verification for HTTP requests and WebSocket handshakes."""

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field

from nutrivision_api.core.config import Settings, get_settings
from nutrivision_api.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class UserPayload(BaseModel):
    """Identity carried by an access token."""

    model_config = ConfigDict(populate_by_name=True)

    uuid: str = Field(..., min_length=1, description="Opaque, stable user identity")
    email: str | None = None
    user_name: str | None = Field(None, alias="userName")


def create_access_token(
    user: UserPayload,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign an access token for a user.

    Args:
        user: Identity to embed in the token
        settings: Application settings (uses default if not provided)
        expires_delta: Token lifetime (defaults to settings.jwt_expires_minutes)

    Returns:
        Encoded JWT string
    """
    settings = settings or get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expires_minutes)
    )
    claims = {
        "uuid": user.uuid,
        "email": user.email,
        "userName": user.user_name or "defaultUserName",
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str | None, settings: Settings | None = None) -> UserPayload:
    """
    Verify a token and return the identity it carries.

    Raises:
        AuthenticationError: If the token is missing, invalid, expired,
            or carries no user identity
    """
    if not token:
        raise AuthenticationError("Authentication required")

    settings = settings or get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        raise AuthenticationError("Token expired") from e
    except JWTError as e:
        logger.warning(f"JWT verification error: {e}")
        raise AuthenticationError("Invalid token") from e

    if not claims.get("uuid"):
        raise AuthenticationError("Invalid token")

    return UserPayload.model_validate(claims)


def extract_bearer(header_value: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header value."""
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
