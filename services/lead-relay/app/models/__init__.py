"""
SQLAlchemy models
"""
from app.models.source import Source
from app.models.mapping import FieldMappingRule, TargetKind
from app.models.request_log import RequestLog, RequestState
from app.models.config_entry import ConfigEntry
from app.models.lead import Lead

__all__ = [
    "Source",
    "FieldMappingRule",
    "TargetKind",
    "RequestLog",
    "RequestState",
    "ConfigEntry",
    "Lead",
]
