"""
Inbound lead orchestration

Flow per request:
1. Resolve the source by name (unknown source -> NotFoundError, nothing logged)
2. Insert a pending request log and commit it
3. Load the source's mapping rules (none or unusable -> failure, 400)
4. Build the Kommo payload and create the lead (error -> failure, 500)
5. Hand the raw payload to the best-effort sinks, mark the log success, 201
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConfigurationError, NotFoundError, RelayError
from app.services import audit_service, source_service
from app.services.kommo_client import KommoLeadSink
from app.services.payload_mapper import DEFAULT_SENTINEL_TAG, build_payload
from app.services.sinks import BestEffortDispatcher, SinkEvent

logger = logging.getLogger(__name__)


class IngestStage(str, enum.Enum):
    RECEIVED = "received"
    SOURCE_RESOLVED = "source_resolved"
    LOGGED = "logged"
    MAPPED = "mapped"
    CRM_SUBMITTED = "crm_submitted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class IngestOutcome:
    status_code: int
    body: Dict[str, Any]
    stage: IngestStage
    log_id: Optional[str] = None


class IngestOrchestrator:
    def __init__(
        self,
        db: AsyncSession,
        lead_sink: KommoLeadSink,
        dispatcher: BestEffortDispatcher,
        sentinel_tag: str = DEFAULT_SENTINEL_TAG,
    ):
        self.db = db
        self.lead_sink = lead_sink
        self.dispatcher = dispatcher
        self.sentinel_tag = sentinel_tag

    async def handle(self, source_name: str, inbound: Any) -> IngestOutcome:
        """
        Run one inbound request to a terminal state.

        Raises NotFoundError for an unknown source; every other outcome is
        returned as an IngestOutcome with the log id for correlation.
        """
        stage = IngestStage.RECEIVED
        source = await source_service.get_source_by_name(self.db, source_name)
        if source is None:
            logger.warning("ingest.unknown_source", extra={"source": source_name})
            raise NotFoundError(f"Source '{source_name}' not found")
        stage = IngestStage.SOURCE_RESOLVED

        request_log = await audit_service.create_pending(self.db, source.id, inbound)
        log_id = str(request_log.id)
        stage = IngestStage.LOGGED
        log_extra = {"source": source_name, "log_id": log_id}
        logger.info("ingest.received", extra=log_extra)

        rules = await source_service.load_rules(self.db, source.id)
        if not rules:
            error = ConfigurationError(f"No mapping rules configured for source '{source_name}'")
            await audit_service.mark_failure(self.db, request_log, error.to_dict())
            logger.warning("ingest.no_rules", extra={**log_extra, "stage": stage.value})
            return IngestOutcome(
                status_code=400,
                body={"error": error.message, "logId": log_id},
                stage=IngestStage.FAILED,
                log_id=log_id,
            )

        try:
            payload = build_payload(source_name, inbound, rules, sentinel_tag=self.sentinel_tag)
            stage = IngestStage.MAPPED
            created = await self.lead_sink.create_lead(payload)
            stage = IngestStage.CRM_SUBMITTED
        except Exception as exc:
            error = exc.to_dict() if isinstance(exc, RelayError) else {"error": str(exc), "type": type(exc).__name__}
            await audit_service.mark_failure(self.db, request_log, error)
            logger.error(
                "ingest.failed",
                exc_info=not isinstance(exc, RelayError),
                extra={**log_extra, "stage": stage.value, "error": error["error"]},
            )
            if isinstance(exc, ConfigurationError):
                return IngestOutcome(
                    status_code=400,
                    body={"error": error["error"], "logId": log_id},
                    stage=IngestStage.FAILED,
                    log_id=log_id,
                )
            details = {key: value for key, value in error.items() if key != "error"}
            return IngestOutcome(
                status_code=500,
                body={"error": error["error"], "details": details, "logId": log_id},
                stage=IngestStage.FAILED,
                log_id=log_id,
            )

        # Secondary sinks get the raw payload, never the CRM-shaped one
        self.dispatcher.dispatch(SinkEvent(source_name=source_name, payload=inbound, log_id=log_id))

        lead_id = created.get("id") if isinstance(created, dict) else None
        await audit_service.mark_success(
            self.db,
            request_log,
            {"leadId": lead_id, "response": created, "payload": payload.to_request()},
        )
        logger.info("ingest.succeeded", extra=log_extra)
        return IngestOutcome(
            status_code=201,
            body={"message": "Lead received", "logId": log_id, "leadId": lead_id},
            stage=IngestStage.SUCCEEDED,
            log_id=log_id,
        )
