"""
Request log endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import math
import uuid

from app.core.database import get_db
from app.core.security import require_admin
from app.services import audit_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
async def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_db)
):
    logs, total = await audit_service.list_logs(db, page=page, limit=limit)
    return {
        "logs": [log.to_dict() for log in logs],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


@router.get("/{log_id}")
async def get_log(log_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    request_log = await audit_service.get_log(db, log_id)
    if not request_log:
        raise HTTPException(status_code=404, detail="Log not found")
    return request_log.to_dict()
