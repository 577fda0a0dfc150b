"""
Request audit log service
"""
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime
import logging
import uuid

from app.core.errors import InvalidStateTransition
from app.models.request_log import RequestLog, RequestState

logger = logging.getLogger(__name__)


async def create_pending(db: AsyncSession, source_id: uuid.UUID, raw_input: Any) -> RequestLog:
    """Insert and commit a pending log row before any downstream call"""
    request_log = RequestLog(
        source_id=source_id,
        state=RequestState.PENDING,
        raw_input=raw_input,
    )
    db.add(request_log)
    await db.commit()
    await db.refresh(request_log)
    return request_log


async def mark_success(db: AsyncSession, request_log: RequestLog, response: Dict[str, Any]) -> RequestLog:
    return await _finish(db, request_log, RequestState.SUCCESS, response)


async def mark_failure(db: AsyncSession, request_log: RequestLog, error: Dict[str, Any]) -> RequestLog:
    return await _finish(db, request_log, RequestState.FAILURE, error)


async def _finish(
    db: AsyncSession,
    request_log: RequestLog,
    state: RequestState,
    payload: Dict[str, Any]
) -> RequestLog:
    if request_log.state != RequestState.PENDING:
        raise InvalidStateTransition(
            f"Request log {request_log.id} is already {request_log.state.value}"
        )
    request_log.state = state
    request_log.response = payload
    request_log.updated_at = datetime.utcnow()
    await db.commit()
    logger.info("request_log.finished", extra={"log_id": str(request_log.id), "state": state.value})
    return request_log


async def get_log(db: AsyncSession, log_id: uuid.UUID) -> Optional[RequestLog]:
    return await db.get(RequestLog, log_id)


async def list_logs(db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[RequestLog], int]:
    """Newest first"""
    total = await db.scalar(select(func.count()).select_from(RequestLog))
    result = await db.execute(
        select(RequestLog)
        .order_by(RequestLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0
