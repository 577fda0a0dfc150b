"""
Tests for the Kommo lead sink
"""
import httpx
import pytest

from app.core.errors import AuthError, UpstreamError
from app.models.mapping import TargetKind
from app.services.kommo_client import KommoLeadSink
from app.services.payload_mapper import MappingRule, build_payload

KOMMO_BASE_URL = "https://relay-test.kommo.com"


def make_payload():
    return build_payload("landing-a", {"name": "Ana"}, [MappingRule("name", TargetKind.LEAD_NAME)])


@pytest.mark.asyncio
async def test_create_lead_posts_single_element_batch(lead_sink, remote, seeded_token):
    created = await lead_sink.create_lead(make_payload())

    assert created["id"] == 4242
    assert len(remote.lead_requests) == 1
    sent = remote.lead_requests[0]
    assert sent["authorization"] == "Bearer access-1"
    assert isinstance(sent["json"], list) and len(sent["json"]) == 1
    assert sent["json"][0]["name"] == "Ana"


@pytest.mark.asyncio
async def test_unauthorized_invalidates_cached_token(lead_sink, token_manager, remote, seeded_token):
    remote.lead_status = 401
    remote.lead_body = {"title": "Unauthorized", "status": 401}

    with pytest.raises(UpstreamError) as exc_info:
        await lead_sink.create_lead(make_payload())
    assert exc_info.value.status_code == 401
    assert not token_manager.is_warm

    remote.lead_status = 200
    remote.lead_body = [{"id": 1}]
    await lead_sink.create_lead(make_payload())

    assert len(remote.token_requests) == 2
    assert remote.lead_requests[-1]["authorization"] == "Bearer access-2"


@pytest.mark.asyncio
async def test_rejected_payload_body_is_kept_verbatim(lead_sink, token_manager, remote, seeded_token):
    remote.lead_status = 400
    remote.lead_body = {
        "title": "Bad Request",
        "validation-errors": [{"request_id": "0", "errors": [{"code": "NotSupportedChoice", "path": "custom_fields_values.0.field_id"}]}],
    }

    with pytest.raises(UpstreamError) as exc_info:
        await lead_sink.create_lead(make_payload())

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == remote.lead_body
    assert token_manager.is_warm


@pytest.mark.asyncio
async def test_auth_failure_propagates(lead_sink, remote):
    with pytest.raises(AuthError):
        await lead_sink.create_lead(make_payload())
    assert remote.lead_requests == []


@pytest.mark.asyncio
async def test_network_fault_is_an_upstream_error(token_manager, seeded_token):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth2/access_token":
            return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "expires_in": 86400})
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        token_manager.http_client = client
        sink = KommoLeadSink(token_manager, client, KOMMO_BASE_URL)
        with pytest.raises(UpstreamError) as exc_info:
            await sink.create_lead(make_payload())

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_empty_response_list_is_an_upstream_error(lead_sink, remote, seeded_token):
    remote.lead_body = []
    with pytest.raises(UpstreamError):
        await lead_sink.create_lead(make_payload())
