"""
Caller identity supplied by the upstream auth layer

Authentication happens before requests reach this service; the gateway
forwards the authenticated user id in the ``X-User-Id`` header.
"""
from fastapi import Header
from typing import Optional
from uuid import UUID
import logging

from app.utils.errors import ErrorMessages, raise_unauthorized

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def _parse_user_id(raw: Optional[str]) -> Optional[UUID]:
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        logger.warning(f"Rejected malformed {USER_ID_HEADER} header")
        raise_unauthorized(ErrorMessages.IDENTITY_INVALID)


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> UUID:
    """Dependency for routes that require an authenticated caller"""
    user_id = _parse_user_id(x_user_id)
    if user_id is None:
        raise_unauthorized(ErrorMessages.IDENTITY_REQUIRED)
    return user_id


async def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[UUID]:
    """Dependency for routes that also accept anonymous callers"""
    return _parse_user_id(x_user_id)
