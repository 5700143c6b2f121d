"""Acting-user resolution for write requests"""
from typing import Optional

from fastapi import Header, HTTPException

NOT_AUTHENTICATED_MESSAGE = "User not authenticated."


class MissingIdentityError(Exception):
    """Raised when a request carries no usable user identity"""


def resolve_acting_user(explicit_user_id: Optional[str]) -> str:
    """
    Return the identity the caller passed in, or raise MissingIdentityError.

    The caller already holds a live session and passes its user id
    explicitly. Nothing here looks up an ambient "current user".
    """
    if not isinstance(explicit_user_id, str) or not explicit_user_id.strip():
        raise MissingIdentityError(NOT_AUTHENTICATED_MESSAGE)
    return explicit_user_id.strip()


def require_acting_user(x_user_id: Optional[str] = Header(None)) -> str:
    """FastAPI dependency: resolve the X-User-Id header or answer 401"""
    try:
        return resolve_acting_user(x_user_id)
    except MissingIdentityError as e:
        raise HTTPException(status_code=401, detail=str(e))
