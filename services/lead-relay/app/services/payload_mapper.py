"""
Payload mapper: inbound JSON + per-source mapping rules -> Kommo complex-lead payload

The mapper is a pure function. Rules run in input order, so when two rules
target the same single-valued slot the later one wins. Values that resolve to
anything falsy (missing, None, "", 0, False, empty containers) are skipped and
never overwrite or add anything.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.errors import ConfigurationError
from app.models.mapping import TargetKind
from app.services.resolver import resolve_path

DEFAULT_SENTINEL_TAG = "lead-relay"


@dataclass(frozen=True)
class MappingRule:
    """One transformation directive, detached from the database row"""
    source_field_path: str
    target_kind: TargetKind
    target_code: Optional[str] = None

    @classmethod
    def from_model(cls, rule) -> "MappingRule":
        return cls(
            source_field_path=rule.source_field_path,
            target_kind=TargetKind(rule.target_kind),
            target_code=rule.target_code,
        )


class FieldValue(BaseModel):
    value: Any


class CustomFieldValue(BaseModel):
    field_id: Optional[int] = None
    field_code: Optional[str] = None
    values: List[FieldValue]

    @model_validator(mode="after")
    def check_identifier(self):
        if (self.field_id is None) == (self.field_code is None):
            raise ValueError("custom field needs exactly one of field_id or field_code")
        return self


class Tag(BaseModel):
    name: str


class Contact(BaseModel):
    first_name: Optional[str] = None
    custom_fields_values: Optional[List[CustomFieldValue]] = None


class Embedded(BaseModel):
    contacts: Optional[List[Contact]] = None
    tags: Optional[List[Tag]] = None


class CrmLeadPayload(BaseModel):
    """A single lead for POST /api/v4/leads/complex"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    custom_fields_values: Optional[List[CustomFieldValue]] = None
    embedded: Optional[Embedded] = Field(default=None, alias="_embedded")

    def to_request(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def tag_names(self) -> List[str]:
        if not self.embedded or not self.embedded.tags:
            return []
        return [tag.name for tag in self.embedded.tags]


def build_payload(
    source_name: str,
    inbound: Any,
    rules: Iterable[MappingRule],
    sentinel_tag: str = DEFAULT_SENTINEL_TAG,
) -> CrmLeadPayload:
    lead_name: Optional[str] = None
    first_name: Optional[str] = None
    lead_fields: List[CustomFieldValue] = []
    contact_fields: List[CustomFieldValue] = []
    tags: List[Tag] = []

    for rule in rules:
        value = resolve_path(inbound, rule.source_field_path)
        if not value:
            continue

        kind = TargetKind(rule.target_kind)
        if kind is TargetKind.LEAD_NAME:
            lead_name = _as_text(value)
        elif kind is TargetKind.CONTACT_FIRST_NAME:
            first_name = _as_text(value)
        elif kind is TargetKind.CONTACT_CUSTOM_FIELD:
            contact_fields.append(_custom_field(rule, value))
        elif kind is TargetKind.LEAD_CUSTOM_FIELD:
            lead_fields.append(_custom_field(rule, value))
        elif kind is TargetKind.TAG:
            _add_tag(tags, _as_text(value))
        else:
            raise ConfigurationError(f"Unsupported target kind: {kind}")

    if not lead_name:
        lead_name = f"Lead from source: {source_name}"
    if not first_name:
        first_name = lead_name

    contact = Contact(first_name=first_name, custom_fields_values=contact_fields or None)
    _add_tag(tags, sentinel_tag)

    contacts = [contact] if (contact.first_name or contact.custom_fields_values) else []
    embedded = None
    if contacts or tags:
        embedded = Embedded(contacts=contacts or None, tags=tags or None)

    return CrmLeadPayload(
        name=lead_name,
        custom_fields_values=lead_fields or None,
        embedded=embedded,
    )


def _custom_field(rule: MappingRule, value: Any) -> CustomFieldValue:
    code = (rule.target_code or "").strip()
    if not code:
        raise ConfigurationError(f"Rule for '{rule.source_field_path}' has no target_code")
    field_value = FieldValue(value=_as_scalar(value))
    if code.isascii() and code.isdigit():
        return CustomFieldValue(field_id=int(code), values=[field_value])
    return CustomFieldValue(field_code=code, values=[field_value])


def _add_tag(tags: List[Tag], name: str) -> None:
    if name and all(tag.name != name for tag in tags):
        tags.append(Tag(name=name))


def _as_scalar(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, ensure_ascii=False)
    return value


def _as_text(value: Any) -> str:
    scalar = _as_scalar(value)
    return scalar if isinstance(scalar, str) else str(scalar)
