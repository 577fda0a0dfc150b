"""
Admin authentication: static shared secret in a Bearer header
"""
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from app.core.config import settings


async def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """Reject the call unless the header is exactly `Bearer <ADMIN_API_SECRET>`"""
    secret = settings.ADMIN_API_SECRET
    if not secret or not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not secrets.compare_digest(authorization.encode(), f"Bearer {secret}".encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
