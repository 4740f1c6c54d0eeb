"""Access-token authentication for protected user routes."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.utils import status_code
from app.utils.jwt_util import TokenStatus, verify
from app.utils.response import Message


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Return the token from "Bearer <token>" (or a bare token), else None."""
    if not authorization or not authorization.strip():
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    if len(parts) == 1:
        return parts[0]
    return None


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the live user the access token was issued to, or raise 401."""
    token = extract_bearer(authorization)
    if not token:
        raise HTTPException(status_code.UNAUTHORIZED, Message.EMPTY_TOKEN)

    token_status, claims = verify(token)
    if token_status == TokenStatus.EXPIRED:
        raise HTTPException(status_code.UNAUTHORIZED, Message.EXPIRED_TOKEN)
    if token_status == TokenStatus.INVALID or "id" not in claims:
        raise HTTPException(status_code.UNAUTHORIZED, Message.INVALID_TOKEN)

    user = session.get(User, claims["id"])
    if not user or user.is_deleted:
        raise HTTPException(status_code.UNAUTHORIZED, Message.INVALID_USER)
    return user
