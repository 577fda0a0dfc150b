"""
Field mapping rule model
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from app.core.database import Base


class TargetKind(str, enum.Enum):
    LEAD_NAME = "lead_name"
    CONTACT_FIRST_NAME = "contact_first_name"
    CONTACT_CUSTOM_FIELD = "contact_custom_field"
    LEAD_CUSTOM_FIELD = "lead_custom_field"
    TAG = "tag"

    @property
    def needs_code(self) -> bool:
        return self in (TargetKind.CONTACT_CUSTOM_FIELD, TargetKind.LEAD_CUSTOM_FIELD)


class FieldMappingRule(Base):
    __tablename__ = "field_mapping_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_id = Column(UUID(as_uuid=True), ForeignKey("sources.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # Input order; later rules win ties
    source_field_path = Column(String, nullable=False)
    target_kind = Column(
        SQLEnum(TargetKind, name="targetkind", values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
    )
    target_code = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    source = relationship("Source", back_populates="mapping_rules")
