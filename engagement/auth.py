"""
Bearer token handling

Login and registration live elsewhere; this module only turns a bearer
token into a user id. The token's ``sub`` claim carries the user id.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt

from engagement.config import settings
from engagement.exceptions import AuthenticationError, InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

# auto_error=False so anonymous requests reach endpoints that accept them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_user_id(token: str) -> int:
    """
    Decode a bearer token and return the user id it was issued for.

    Raises:
        TokenExpiredError: If the token has expired
        InvalidTokenError: If the token is malformed or its subject is not a user id
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        logger.warning("Token expired")
        raise TokenExpiredError()
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {str(e)}")
        raise InvalidTokenError()

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        logger.warning("Token 'sub' claim is not a user id")
        raise InvalidTokenError("Token does not identify a user")
    if user_id <= 0:
        raise InvalidTokenError("Token does not identify a user")
    return user_id


async def get_optional_user_id(token: str | None = Depends(oauth2_scheme)) -> int | None:
    """The authenticated user id, or None for anonymous requests."""
    if not token:
        return None
    return decode_user_id(token)


async def require_user_id(user_id: int | None = Depends(get_optional_user_id)) -> int:
    """The authenticated user id; rejects anonymous requests with 401."""
    if user_id is None:
        raise AuthenticationError()
    return user_id
