"""User account routes.

Thin controllers: validate the request, call app.services.user_service and
send its (status_code, body) pair back as JSON.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from app.cache import get_cache
from app.database import get_session
from app.models.user import User
from app.services import user_service
from app.utils import status_code
from app.utils.auth import extract_bearer, get_current_user
from app.utils.password import MAX_PASSWORD_BYTES, is_hashable

router = APIRouter(prefix="/users", tags=["users"])


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        if not v or not v.strip():
            raise ValueError("email is required")
        return v.strip()


def _check_password(v):
    if not is_hashable(v):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


class SignUpRequest(LoginRequest):
    nickname: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError("password is required")
        return _check_password(v)

    @field_validator("nickname")
    @classmethod
    def validate_nickname(cls, v):
        if not v or not v.strip():
            raise ValueError("nickname is required")
        return v.strip()


class UserUpdate(BaseModel):
    nickname: Optional[str] = None
    mbti: Optional[str] = None
    password: Optional[str] = None

    @field_validator("mbti")
    @classmethod
    def validate_mbti(cls, v):
        if v is None:
            return v
        v = v.strip().upper()
        if len(v) != 4:
            raise ValueError("mbti must be 4 letters")
        return v

    @field_validator("nickname")
    @classmethod
    def validate_nickname(cls, v):
        if v is None:
            return v
        if not v.strip():
            raise ValueError("nickname must not be blank")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if v is None:
            return v
        return _check_password(v)


def _send(result) -> Response:
    code, body = result
    if code == status_code.NO_CONTENT:
        return Response(status_code=code)
    return JSONResponse(status_code=code, content=body)


@router.post("/login")
def login(
    data: LoginRequest,
    session: Session = Depends(get_session),
    cache=Depends(get_cache),
):
    """Exchange email/password for an access/refresh token pair"""
    return _send(user_service.login(session, cache, data.email, data.password))


@router.post("/signup")
def sign_up(
    data: SignUpRequest,
    session: Session = Depends(get_session),
    cache=Depends(get_cache),
):
    """Create an account and log it in"""
    return _send(user_service.sign_up(session, cache, data.email, data.password, data.nickname))


@router.post("/logout")
def logout(user: User = Depends(get_current_user), cache=Depends(get_cache)):
    return _send(user_service.logout(cache, user.id))


@router.post("/token")
def resign_token(
    authorization: Optional[str] = Header(default=None),
    refresh: Optional[str] = Header(default=None),
    cache=Depends(get_cache),
):
    """Reissue an expired access token.

    Expects the expired access token in ``Authorization`` and the refresh
    token in ``Refresh``.
    """
    access_token = extract_bearer(authorization) or ""
    refresh_token = extract_bearer(refresh) or ""
    return _send(user_service.resign_token(cache, access_token, refresh_token))


@router.get("/me")
def get_me(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return _send(user_service.get_user(session, user.id))


@router.get("/{user_id}")
def get_user(
    user_id: int,
    _: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return _send(user_service.get_user(session, user_id))


@router.patch("/me")
def edit_me(
    data: UserUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Update nickname, mbti and/or password; unchanged fields are ignored"""
    return _send(
        user_service.edit_user(
            session,
            user,
            new_nickname=data.nickname,
            new_mbti=data.mbti,
            new_password=data.password,
        )
    )


@router.delete("/me")
def delete_me(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    cache=Depends(get_cache),
):
    return _send(user_service.delete_user(session, cache, user))
