"""
Out-of-band configuration endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, Field

from app.api.deps import get_token_manager
from app.core.database import get_db
from app.core.security import require_admin
from app.services.token_manager import TokenManager
from app.services.token_store import REFRESH_TOKEN_KEY, upsert_config_value

router = APIRouter(dependencies=[Depends(require_admin)])


class RefreshTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


@router.post("/refresh-token")
async def seed_refresh_token(
    request: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
    token_manager: TokenManager = Depends(get_token_manager),
):
    """
    Seed or replace the Kommo refresh token

    Needed once at install and again whenever the stored token is lost or revoked.
    """
    await upsert_config_value(db, REFRESH_TOKEN_KEY, request.token.strip())
    token_manager.invalidate()
    return {"status": "saved", "key": REFRESH_TOKEN_KEY}
