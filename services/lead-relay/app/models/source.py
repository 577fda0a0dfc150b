"""
Inbound source model
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from app.core.database import Base


class Source(Base):
    __tablename__ = "sources"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    type = Column(String, nullable=False, default="webhook")
    feed_url = Column(String, nullable=True)  # The only mutable attribute
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    mapping_rules = relationship(
        "FieldMappingRule",
        back_populates="source",
        order_by="FieldMappingRule.position",
        cascade="all, delete-orphan",
    )
