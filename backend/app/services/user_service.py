"""User account service.

Login, signup, logout, token reissue and profile read/update/delete.
Each operation returns ``(status_code, body)`` built with
``app.utils.response`` and never raises for store failures: those are
logged, rolled back and reported as a generic error body.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.user import User
from app.utils import status_code
from app.utils.jwt_util import Reissue, Unauthorized, Unnecessary, resign_access_token, sign_tokens
from app.utils.password import hash_password, is_hashable, verify_password
from app.utils.response import Message, err_response, response, token_response, user_response

logger = logging.getLogger(__name__)

ServiceResult = Tuple[int, dict]


def _find_live_user(session: Session, **criteria) -> Optional[User]:
    """First non-deleted user matching every field=value in criteria."""
    stmt = select(User).where(User.deleted_at.is_(None))  # type: ignore
    for field, value in criteria.items():
        stmt = stmt.where(getattr(User, field) == value)
    return session.exec(stmt).first()


def _exists_any(session: Session, **criteria) -> bool:
    """Whether any row, soft-deleted or not, holds the given unique value."""
    stmt = select(User.id)
    for field, value in criteria.items():
        stmt = stmt.where(getattr(User, field) == value)
    return session.exec(stmt).first() is not None


def login(session: Session, cache, email: str, password: str) -> ServiceResult:
    try:
        user = _find_live_user(session, email=email)

        if not user or not verify_password(password, user.password):
            return (
                status_code.BAD_REQUEST,
                err_response(status_code.BAD_REQUEST, Message.INVALID_USER_INFO),
            )

        tokens = sign_tokens(cache, user.id)
        logger.info(f"User {user.id} logged in")
        return (
            status_code.OK,
            response(
                status_code.OK,
                Message.SUCCESS,
                token_response(tokens.access_token, tokens.refresh_token),
            ),
        )
    except (SQLAlchemyError, redis.RedisError) as e:
        logger.error(f"login service error: {e}")
        return (
            status_code.INTERNAL_SERVER_ERROR,
            err_response(status_code.INTERNAL_SERVER_ERROR, Message.INTERNAL_SERVER_ERROR),
        )


def sign_up(session: Session, cache, email: str, password: str, nickname: str) -> ServiceResult:
    if not is_hashable(password):
        return status_code.BAD_REQUEST, err_response(status_code.BAD_REQUEST, Message.BAD_REQUEST)

    try:
        if _exists_any(session, email=email):
            return (
                status_code.BAD_REQUEST,
                err_response(status_code.BAD_REQUEST, Message.ALREADY_EXIST_EMAIL),
            )

        if _exists_any(session, nickname=nickname):
            return (
                status_code.BAD_REQUEST,
                err_response(status_code.BAD_REQUEST, Message.ALREADY_EXIST_NICKNAME),
            )

        user = User(email=email, password=hash_password(password), nickname=nickname)
        session.add(user)
        session.commit()
        session.refresh(user)

        tokens = sign_tokens(cache, user.id)
        logger.info(f"User {user.id} signed up")
        return (
            status_code.OK,
            response(
                status_code.OK,
                Message.SUCCESS,
                token_response(tokens.access_token, tokens.refresh_token),
            ),
        )
    except (SQLAlchemyError, redis.RedisError) as e:
        session.rollback()
        logger.error(f"signUp service error: {e}")
        return (
            status_code.INTERNAL_SERVER_ERROR,
            err_response(status_code.INTERNAL_SERVER_ERROR, Message.INTERNAL_SERVER_ERROR),
        )


def logout(cache, user_id: int) -> ServiceResult:
    """Drop the user's session entry. Succeeds whether or not one existed."""
    try:
        cache.delete(str(user_id))
    except redis.RedisError as e:
        logger.warning(f"Failed to clear session for user {user_id}: {e}")

    return status_code.OK, response(status_code.OK, Message.SUCCESS)


def resign_token(cache, access_token: str, refresh_token: str) -> ServiceResult:
    try:
        result = resign_access_token(cache, access_token, refresh_token)
    except redis.RedisError as e:
        logger.error(f"resignToken service error: {e}")
        return (
            status_code.INTERNAL_SERVER_ERROR,
            err_response(status_code.INTERNAL_SERVER_ERROR, Message.INTERNAL_SERVER_ERROR),
        )

    if isinstance(result, Reissue):
        return (
            status_code.OK,
            response(
                status_code.OK,
                Message.SUCCESS,
                token_response(result.access_token, refresh_token),
            ),
        )
    if isinstance(result, Unauthorized):
        return (
            status_code.UNAUTHORIZED,
            err_response(status_code.UNAUTHORIZED, Message.FORBIDDEN),
        )
    if isinstance(result, Unnecessary):
        return (
            status_code.BAD_REQUEST,
            err_response(status_code.BAD_REQUEST, Message.REFRESH_TOKEN_UNNECESSARY),
        )
    raise TypeError(f"Unhandled token reissue result: {result!r}")


def get_user(session: Session, user_id: int) -> ServiceResult:
    try:
        user = _find_live_user(session, id=user_id)
    except SQLAlchemyError as e:
        logger.error(f"getUser service error: {e}")
        return status_code.DB_ERROR, err_response(status_code.DB_ERROR, Message.DB_ERROR)

    if user:
        return status_code.OK, response(status_code.OK, Message.SUCCESS, user_response(user))
    return status_code.NO_CONTENT, err_response(status_code.NO_CONTENT, Message.NULL_VALUE)


def edit_user(
    session: Session,
    user: User,
    new_nickname: Optional[str] = None,
    new_mbti: Optional[str] = None,
    new_password: Optional[str] = None,
) -> ServiceResult:
    """Apply every provided field that differs from the stored value.

    Returns 400 when nothing would change. A new password counts as unchanged
    when it already matches the stored hash.
    """
    candidates = {
        "nickname": new_nickname,
        "mbti": new_mbti,
        "password": new_password,
    }
    changed = {}

    for field, value in candidates.items():
        if not value:
            continue
        if field == "password":
            if not is_hashable(value):
                return (
                    status_code.BAD_REQUEST,
                    err_response(status_code.BAD_REQUEST, Message.BAD_REQUEST),
                )
            if verify_password(value, user.password):
                continue
            changed[field] = hash_password(value)
        elif getattr(user, field) != value:
            changed[field] = value

    if not changed:
        return status_code.BAD_REQUEST, err_response(status_code.BAD_REQUEST, Message.BAD_REQUEST)

    try:
        if "nickname" in changed and _exists_any(session, nickname=changed["nickname"]):
            return (
                status_code.BAD_REQUEST,
                err_response(status_code.BAD_REQUEST, Message.ALREADY_EXIST_NICKNAME),
            )

        for field, value in changed.items():
            setattr(user, field, value)
        user.updated_at = datetime.now(timezone.utc)
        session.add(user)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"editUser service error: {e}")
        return status_code.DB_ERROR, err_response(status_code.DB_ERROR, Message.DB_ERROR)

    return status_code.OK, response(status_code.OK, Message.SUCCESS)


def delete_user(session: Session, cache, user: User) -> ServiceResult:
    """Soft-delete the user by primary key and drop their session entry.

    The row stays in the table.
    """
    try:
        user.deleted_at = datetime.now(timezone.utc)
        session.add(user)
        session.commit()
        session.refresh(user)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"deleteUser service error: {e}")
        return status_code.DB_ERROR, err_response(status_code.DB_ERROR, Message.DB_ERROR)

    try:
        cache.delete(str(user.id))
    except redis.RedisError as e:
        logger.warning(f"Failed to clear session for deleted user {user.id}: {e}")

    logger.info(f"User {user.id} deleted")
    return (
        status_code.OK,
        response(status_code.OK, Message.SUCCESS, {"deleted": user_response(user)}),
    )
