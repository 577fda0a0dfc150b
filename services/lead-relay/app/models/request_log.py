"""
Request audit log model
"""
from sqlalchemy import Column, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID, JSONB
from datetime import datetime
import uuid
import enum
from app.core.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class RequestState(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class RequestLog(Base):
    __tablename__ = "request_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_id = Column(UUID(as_uuid=True), ForeignKey("sources.id"), nullable=False, index=True)
    state = Column(
        SQLEnum(RequestState, name="requeststate", values_callable=lambda states: [s.value for s in states]),
        nullable=False,
        default=RequestState.PENDING,
        index=True,
    )
    raw_input = Column(JSONType, nullable=True)
    response = Column(JSONType, nullable=True)  # CRM response on success, structured error on failure
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "sourceId": str(self.source_id),
            "state": self.state.value,
            "rawInput": self.raw_input,
            "response": self.response,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
