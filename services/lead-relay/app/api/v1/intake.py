"""
Form intake: the legacy fixed-shape lead endpoint
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ConfigDict
from typing import Optional

from app.api.deps import get_dispatcher, get_lead_sink
from app.core.config import settings
from app.core.database import get_db
from app.models.lead import Lead
from app.models.mapping import TargetKind
from app.services.kommo_client import KommoLeadSink
from app.services.payload_mapper import MappingRule, build_payload
from app.services.sinks import BestEffortDispatcher

router = APIRouter()

LEGACY_FORM_SOURCE = "submit-lead"
LEGACY_LEAD_NAME_KEY = "lead_name"

LEGACY_FORM_RULES = [
    MappingRule(LEGACY_LEAD_NAME_KEY, TargetKind.LEAD_NAME),
    MappingRule("nome", TargetKind.CONTACT_FIRST_NAME),
    MappingRule("email", TargetKind.CONTACT_CUSTOM_FIELD, "EMAIL"),
    MappingRule("telefone", TargetKind.CONTACT_CUSTOM_FIELD, "PHONE"),
    MappingRule("origem", TargetKind.TAG),
]


class LeadForm(BaseModel):
    # Unknown fields are kept so form_data holds the whole submission
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    nome: Optional[str] = None
    email: Optional[str] = None
    telefone: Optional[str] = None
    origem: Optional[str] = None


@router.post("/submit-lead", status_code=201)
async def submit_lead(
    form: LeadForm,
    db: AsyncSession = Depends(get_db),
    lead_sink: KommoLeadSink = Depends(get_lead_sink),
    dispatcher: BestEffortDispatcher = Depends(get_dispatcher),
):
    """
    Store a form lead and forward it to Kommo in the background

    Only `nome` and `email` are checked. The Kommo lead is named
    "Lead de <nome> - <email>".
    """
    if not form.nome or not form.email:
        raise HTTPException(status_code=400, detail="nome and email are required")

    form_data = form.model_dump(exclude_unset=True)
    lead = Lead(
        name=form.nome,
        email=form.email,
        phone=form.telefone or None,
        origin=form.origem or None,
        form_data=form_data,
    )
    db.add(lead)
    await db.commit()
    await db.refresh(lead)

    inbound = {**form_data, LEGACY_LEAD_NAME_KEY: f"Lead de {form.nome} - {form.email}"}
    payload = build_payload(LEGACY_FORM_SOURCE, inbound, LEGACY_FORM_RULES, sentinel_tag=settings.KOMMO_SENTINEL_TAG)
    dispatcher.spawn("kommo", lead_sink.create_lead(payload), log_id=str(lead.id))

    return {"message": "Lead received", "leadId": str(lead.id)}
