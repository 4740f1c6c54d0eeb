"""Response envelope shared by the service layer and the routers.

Every service operation returns ``(status_code, body)`` where body is one of:

    {"status": 200, "success": True, "message": "...", "data": {...}}
    {"status": 400, "success": False, "message": "..."}
"""

from typing import Any, Optional


class Message:
    """Human-readable messages used in response bodies."""

    SUCCESS = "Success"
    BAD_REQUEST = "Bad request"
    NULL_VALUE = "Required value is missing"
    INVALID_USER_INFO = "Invalid email or password"
    ALREADY_EXIST_EMAIL = "Email already exists"
    ALREADY_EXIST_NICKNAME = "Nickname already exists"
    FORBIDDEN = "Forbidden"
    REFRESH_TOKEN_UNNECESSARY = "Access token is still valid; refresh is not needed"
    EMPTY_TOKEN = "Token is missing"
    EXPIRED_TOKEN = "Token has expired"
    INVALID_TOKEN = "Token is invalid"
    INVALID_USER = "User does not exist"
    INTERNAL_SERVER_ERROR = "Internal server error"
    DB_ERROR = "Database error"


def response(status: int, message: str, data: Optional[Any] = None) -> dict:
    body = {"status": status, "success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body


def err_response(status: int, message: str) -> dict:
    return {"status": status, "success": False, "message": message}


def token_response(access_token: str, refresh_token: str) -> dict:
    """Payload returned by login, signup and token reissue."""
    return {"accessToken": access_token, "refreshToken": refresh_token}


def user_response(user) -> dict:
    """Public view of a user row (the password hash is never exposed)."""
    return {
        "id": user.id,
        "email": user.email,
        "nickname": user.nickname,
        "mbti": user.mbti,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
        "deletedAt": user.deleted_at.isoformat() if user.deleted_at else None,
    }
