"""
Tests for best-effort sinks
"""
import json

import httpx
import pytest

from app.core.errors import BestEffortSinkError
from app.services.sinks import (
    BestEffortDispatcher,
    BestEffortSink,
    MetaConversionSink,
    NotionSink,
    SinkEvent,
    sha256_hex,
)


class RecordingSink(BestEffortSink):
    name = "recording"

    def __init__(self):
        self.events = []

    async def send(self, event):
        self.events.append(event)


class ExplodingSink(BestEffortSink):
    name = "exploding"

    async def send(self, event):
        raise BestEffortSinkError(self.name, 503, "unavailable")


@pytest.mark.asyncio
async def test_dispatcher_isolates_failures(caplog):
    recording = RecordingSink()
    dispatcher = BestEffortDispatcher([ExplodingSink(), recording])
    event = SinkEvent(source_name="landing-a", payload={"email": "a@x.com"}, log_id="log-1")

    dispatcher.dispatch(event)
    await dispatcher.drain()

    assert recording.events == [event]
    assert dispatcher.pending == 0
    failures = [r for r in caplog.records if r.name == "app.sinks.failures"]
    assert len(failures) == 1
    assert failures[0].sink == "exploding"
    assert failures[0].log_id == "log-1"


@pytest.mark.asyncio
async def test_spawn_swallows_arbitrary_errors():
    dispatcher = BestEffortDispatcher()

    async def boom():
        raise RuntimeError("flaky endpoint")

    task = dispatcher.spawn("adhoc", boom())
    await dispatcher.drain()

    assert task.done()
    assert task.exception() is None


@pytest.mark.asyncio
async def test_notion_sink_posts_page(http_client, remote):
    sink = NotionSink(http_client, api_key="secret_abc", database_id="db-123")
    payload = {"body": {"name": "Ana", "email": "a@x.com"}}

    await sink.send(SinkEvent(source_name="landing-a", payload=payload, log_id="log-9"))

    request = remote.sink_requests[0]
    assert request.url == "https://api.notion.com/v1/pages"
    assert request.headers["Authorization"] == "Bearer secret_abc"
    assert request.headers["Notion-Version"] == "2022-06-28"
    body = json.loads(request.content)
    assert body["parent"] == {"database_id": "db-123"}
    assert body["properties"]["Name"]["title"][0]["text"]["content"] == "landing-a #log-9"
    assert json.loads(body["properties"]["Payload"]["rich_text"][0]["text"]["content"]) == payload


def test_notion_payload_text_is_truncated(http_client):
    sink = NotionSink(http_client, api_key="k", database_id="d")
    page = sink.build_page(SinkEvent(source_name="s", payload={"blob": "x" * 5000}))
    assert len(page["properties"]["Payload"]["rich_text"][0]["text"]["content"]) == 2000


@pytest.mark.asyncio
async def test_notion_error_raises_sink_error(http_client, remote):
    remote.sink_status = 400
    sink = NotionSink(http_client, api_key="k", database_id="d")
    with pytest.raises(BestEffortSinkError) as exc_info:
        await sink.send(SinkEvent(source_name="s", payload={}))
    assert exc_info.value.status_code == 400


def test_meta_event_hashes_normalised_contact_data(http_client):
    sink = MetaConversionSink(http_client, pixel_id="px1", access_token="tok", test_event_code="TEST123")
    event = SinkEvent(
        source_name="landing-a",
        payload={"body": {"Email": "  Ana@X.com ", "telefone": "+55 (11) 99999-0000"}},
        log_id="log-7",
    )

    body = sink.build_event(event, event_time=1700000000)

    data = body["data"][0]
    assert data["event_name"] == "Lead"
    assert data["event_time"] == 1700000000
    assert data["event_id"] == "log-7"
    assert data["action_source"] == "website"
    assert data["user_data"]["em"] == [sha256_hex("ana@x.com")]
    assert data["user_data"]["ph"] == [sha256_hex("5511999990000")]
    assert body["test_event_code"] == "TEST123"


@pytest.mark.asyncio
async def test_meta_sink_posts_to_pixel_endpoint(http_client, remote):
    sink = MetaConversionSink(http_client, pixel_id="px1", access_token="tok")
    await sink.send(SinkEvent(source_name="landing-a", payload={"email": "a@x.com"}, log_id="l"))

    request = remote.sink_requests[0]
    assert request.url.path == "/v18.0/px1/events"
    assert request.url.params["access_token"] == "tok"
    assert "test_event_code" not in json.loads(request.content)
