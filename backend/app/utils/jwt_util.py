"""JWT issuing and verification for user sessions.

Access tokens carry the user id in an ``id`` claim. Refresh tokens carry no
user claim; they are bound to a user by the session cache entry keyed by the
user id, which holds the most recently issued refresh token.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple, Union

import jwt
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_EXPIRES = timedelta(minutes=int(os.getenv("JWT_ACCESS_EXPIRES_MINUTES", "60")))
REFRESH_EXPIRES = timedelta(days=int(os.getenv("JWT_REFRESH_EXPIRES_DAYS", "14")))


class TokenStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


# Outcome of a token reissue decision
@dataclass(frozen=True)
class Reissue:
    access_token: str


@dataclass(frozen=True)
class Unauthorized:
    pass


@dataclass(frozen=True)
class Unnecessary:
    pass


TokenReissue = Union[Reissue, Unauthorized, Unnecessary]


def _encode(claims: dict, expires_in: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**claims, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def sign_access_token(user_id: int) -> str:
    return _encode({"id": user_id}, ACCESS_EXPIRES)


def sign_refresh_token() -> str:
    # jti keeps two refresh tokens issued within the same second distinct
    return _encode({"jti": uuid.uuid4().hex}, REFRESH_EXPIRES)


def sign_tokens(cache, user_id: int) -> TokenPair:
    """Issue an access/refresh pair and record the refresh token in the cache."""
    access_token = sign_access_token(user_id)
    refresh_token = sign_refresh_token()
    cache.set(str(user_id), refresh_token, ex=int(REFRESH_EXPIRES.total_seconds()))
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


def verify(token: str) -> Tuple[TokenStatus, Optional[dict]]:
    """Decode a token, returning its status and (when valid) its claims."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return TokenStatus.EXPIRED, None
    except jwt.InvalidTokenError:
        return TokenStatus.INVALID, None
    return TokenStatus.VALID, payload


def refresh_verify(cache, token: str, user_id: int) -> bool:
    """True when the refresh token is valid and is the one cached for user_id."""
    status, _ = verify(token)
    if status != TokenStatus.VALID:
        return False
    return cache.get(str(user_id)) == token


def resign_access_token(cache, access_token: str, refresh_token: str) -> TokenReissue:
    """Decide whether a new access token should be issued.

    - Access token still valid -> Unnecessary
    - Access token unreadable, or refresh token invalid/expired/not the
      cached one -> Unauthorized
    - Access token expired and refresh token good -> Reissue
    """
    try:
        claims = jwt.decode(
            access_token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except jwt.InvalidTokenError:
        return Unauthorized()

    user_id = claims.get("id")
    if user_id is None:
        return Unauthorized()

    status, _ = verify(access_token)
    if status == TokenStatus.VALID:
        return Unnecessary()

    if not refresh_verify(cache, refresh_token, user_id):
        logger.info(f"Refresh token rejected for user {user_id}")
        return Unauthorized()

    return Reissue(access_token=sign_access_token(user_id))
