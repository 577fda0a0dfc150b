"""
Mapping rule administration endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
import uuid

from app.core.database import get_db
from app.core.security import require_admin
from app.models.mapping import FieldMappingRule, TargetKind
from app.services import source_service
from app.services.payload_mapper import MappingRule

router = APIRouter(dependencies=[Depends(require_admin)])


class MappingRuleIn(BaseModel):
    source_field_path: str = Field(..., min_length=1)
    target_kind: TargetKind
    target_code: Optional[str] = None

    @model_validator(mode="after")
    def check_target_code(self):
        if self.target_kind.needs_code and not (self.target_code or "").strip():
            raise ValueError(f"target_code is required for {self.target_kind.value}")
        return self


class MappingReplaceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_id: uuid.UUID = Field(..., alias="sourceId")
    mappings: List[MappingRuleIn]


def serialize_rule(rule: FieldMappingRule) -> dict:
    return {
        "id": str(rule.id),
        "sourceId": str(rule.source_id),
        "position": rule.position,
        "source_field_path": rule.source_field_path,
        "target_kind": TargetKind(rule.target_kind).value,
        "target_code": rule.target_code,
    }


@router.get("/{source_id}")
async def get_mappings(source_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    if not await source_service.get_source(db, source_id):
        raise HTTPException(status_code=404, detail="Source not found")
    rules = await source_service.list_mapping_rules(db, source_id)
    return [serialize_rule(rule) for rule in rules]


@router.post("")
async def replace_mappings(request: MappingReplaceRequest, db: AsyncSession = Depends(get_db)):
    """Replace the whole rule set of a source atomically"""
    if not await source_service.get_source(db, request.source_id):
        raise HTTPException(status_code=404, detail="Source not found")

    rules = [
        MappingRule(
            source_field_path=item.source_field_path.strip(),
            target_kind=item.target_kind,
            target_code=item.target_code.strip() if item.target_code else None,
        )
        for item in request.mappings
    ]
    saved = await source_service.replace_mapping_rules(db, request.source_id, rules)
    return {
        "sourceId": str(request.source_id),
        "count": len(saved),
        "mappings": [serialize_rule(rule) for rule in saved],
    }
