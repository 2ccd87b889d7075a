"""
Session check shared by every route.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from .config import settings
from .helpers import bind_request_context

ANONYMOUS_USER = "anonymous"


@dataclass
class Session:
    user_id: str
    token: Optional[str] = None


async def require_session(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> Session:
    """Validate the Bearer token and identify the caller."""
    token = None
    if not settings.SKIP_AUTH_TOKEN:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Unauthorized")

        token = authorization[7:]
        if token != settings.AUTH_TOKEN:
            raise HTTPException(status_code=401, detail="Unauthorized")

    user_id = (x_user_id or "").strip() or ANONYMOUS_USER
    bind_request_context(user_id=user_id)
    return Session(user_id=user_id, token=token)
