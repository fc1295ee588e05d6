"""
Road Report Engine - Caller Identity
Identity is issued by the external auth provider and arrives as an opaque
string; the engine stores and compares it but never interprets it.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from .config import INTERNAL_API_KEY


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None),
) -> Optional[str]:
    """
    Dependency returning the caller's identity, or None for anonymous callers.
    """
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def require_user_id(
    user_id: Optional[str] = Depends(get_current_user_id),
) -> str:
    """
    Dependency requiring an identified caller.
    Use this on routes that act on behalf of a user.
    """
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User identity required",
        )
    return user_id


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler and admin endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True
