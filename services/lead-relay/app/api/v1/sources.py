"""
Source administration endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import uuid

from app.core.database import get_db
from app.core.security import require_admin
from app.models.source import Source
from app.services import source_service
from app.services.source_service import DuplicateSourceError

router = APIRouter(dependencies=[Depends(require_admin)])


class SourceCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    type: Optional[str] = None
    feed_url: Optional[str] = Field(None, alias="feedUrl")


class SourceUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    feed_url: Optional[str] = Field(None, alias="feedUrl")


def serialize_source(source: Source) -> dict:
    return {
        "id": str(source.id),
        "name": source.name,
        "type": source.type,
        "feedUrl": source.feed_url,
        "createdAt": source.created_at.isoformat() if source.created_at else None,
    }


@router.get("")
async def list_sources(db: AsyncSession = Depends(get_db)):
    sources = await source_service.list_sources(db)
    return [serialize_source(source) for source in sources]


@router.post("", status_code=201)
async def create_source(request: SourceCreateRequest, db: AsyncSession = Depends(get_db)):
    try:
        source = await source_service.create_source(db, request.name.strip(), request.type, request.feed_url)
    except DuplicateSourceError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return serialize_source(source)


@router.patch("/{source_id}")
async def update_source(
    source_id: uuid.UUID,
    request: SourceUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    """Only feedUrl can change once a source exists"""
    source = await source_service.get_source(db, source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    source = await source_service.update_feed_url(db, source, request.feed_url)
    return serialize_source(source)
