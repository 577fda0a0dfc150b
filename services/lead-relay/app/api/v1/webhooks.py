"""
Inbound webhooks: one endpoint per configured source
"""
from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any

from app.api.deps import get_dispatcher, get_lead_sink
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.services.ingest_service import IngestOrchestrator
from app.services.kommo_client import KommoLeadSink
from app.services.sinks import BestEffortDispatcher

router = APIRouter()


@router.post("/{source_name}")
async def receive_lead(
    source_name: str,
    payload: Any = Body(...),
    db: AsyncSession = Depends(get_db),
    lead_sink: KommoLeadSink = Depends(get_lead_sink),
    dispatcher: BestEffortDispatcher = Depends(get_dispatcher),
):
    """
    Accept an arbitrary JSON payload for a named source

    201 {message, logId, leadId} | 404 | 400 {error, logId} | 500 {error, details, logId}
    """
    orchestrator = IngestOrchestrator(db, lead_sink, dispatcher, sentinel_tag=settings.KOMMO_SENTINEL_TAG)
    try:
        outcome = await orchestrator.handle(source_name, payload)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)

    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
