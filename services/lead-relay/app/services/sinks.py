"""
Best-effort sinks

Secondary destinations for raw inbound payloads (Notion workspace database,
Meta Conversions API). They run as detached tasks: failures are logged on the
`app.sinks.failures` logger and never reach the caller. Nothing is retried.
"""
import asyncio
import hashlib
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set

import httpx

from app.core.errors import BestEffortSinkError
from app.services.resolver import find_first_value
from app.services.token_manager import response_body

logger = logging.getLogger(__name__)
failure_logger = logging.getLogger("app.sinks.failures")

NOTION_PAGES_URL = "https://api.notion.com/v1/pages"
NOTION_TEXT_LIMIT = 2000

EMAIL_KEYS = ("email", "e-mail", "mail", "email_address")
PHONE_KEYS = ("phone", "telefone", "tel", "phone_number", "mobile", "celular", "whatsapp")


@dataclass(frozen=True)
class SinkEvent:
    source_name: str
    payload: Any
    log_id: Optional[str] = None


class BestEffortSink:
    """A downstream integration whose failure must never affect the primary response"""

    name = "sink"

    async def send(self, event: SinkEvent) -> None:
        raise NotImplementedError


class BestEffortDispatcher:
    """Fire-and-forget runner for best-effort sinks"""

    def __init__(self, sinks: Iterable[BestEffortSink] = ()):
        self.sinks: List[BestEffortSink] = list(sinks)
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, event: SinkEvent) -> None:
        for sink in self.sinks:
            self.spawn(sink.name, sink.send(event), log_id=event.log_id)

    def spawn(self, name: str, work: Awaitable[Any], log_id: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(self._run(name, work, log_id))
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every outstanding task (shutdown, tests)"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run(self, name: str, work: Awaitable[Any], log_id: Optional[str]) -> None:
        try:
            await work
        except Exception as exc:
            failure_logger.warning(
                "sink.failed",
                exc_info=True,
                extra={"sink": name, "log_id": log_id, "error": str(exc)},
            )
        else:
            logger.info("sink.delivered", extra={"sink": name, "log_id": log_id})


class NotionSink(BestEffortSink):
    """Inserts one page per inbound request into a Notion database"""

    name = "notion"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        database_id: str,
        api_version: str = "2022-06-28",
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.database_id = database_id
        self.api_version = api_version

    def build_page(self, event: SinkEvent) -> Dict[str, Any]:
        title = f"{event.source_name} #{event.log_id}" if event.log_id else event.source_name
        payload_text = json.dumps(event.payload, ensure_ascii=False, default=str)
        return {
            "parent": {"database_id": self.database_id},
            "properties": {
                "Name": {"title": [{"text": {"content": title}}]},
                "Source": {"rich_text": [{"text": {"content": event.source_name}}]},
                "Payload": {"rich_text": [{"text": {"content": payload_text[:NOTION_TEXT_LIMIT]}}]},
            },
        }

    async def send(self, event: SinkEvent) -> None:
        response = await self.http_client.post(
            NOTION_PAGES_URL,
            json=self.build_page(event),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Notion-Version": self.api_version,
            },
        )
        if response.is_error:
            raise BestEffortSinkError(self.name, response.status_code, response_body(response))


class MetaConversionSink(BestEffortSink):
    """Reports each inbound lead as a `Lead` event to the Meta Conversions API"""

    name = "meta_capi"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        pixel_id: str,
        access_token: str,
        api_version: str = "v18.0",
        test_event_code: Optional[str] = None,
    ):
        self.http_client = http_client
        self.pixel_id = pixel_id
        self.access_token = access_token
        self.events_url = f"https://graph.facebook.com/{api_version}/{pixel_id}/events"
        self.test_event_code = test_event_code

    def build_event(self, event: SinkEvent, event_time: Optional[int] = None) -> Dict[str, Any]:
        user_data: Dict[str, List[str]] = {}
        email = find_first_value(event.payload, EMAIL_KEYS)
        if email:
            user_data["em"] = [sha256_hex(str(email).strip().lower())]
        phone = find_first_value(event.payload, PHONE_KEYS)
        if phone:
            digits = re.sub(r"\D", "", str(phone))
            if digits:
                user_data["ph"] = [sha256_hex(digits)]

        body: Dict[str, Any] = {
            "data": [
                {
                    "event_name": "Lead",
                    "event_time": event_time if event_time is not None else int(time.time()),
                    "event_id": event.log_id,
                    "action_source": "website",
                    "user_data": user_data,
                    "custom_data": {"lead_source": event.source_name},
                }
            ]
        }
        if self.test_event_code:
            body["test_event_code"] = self.test_event_code
        return body

    async def send(self, event: SinkEvent) -> None:
        response = await self.http_client.post(
            self.events_url,
            params={"access_token": self.access_token},
            json=self.build_event(event),
        )
        if response.is_error:
            raise BestEffortSinkError(self.name, response.status_code, response_body(response))


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
