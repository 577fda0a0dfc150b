"""
Process-wide collaborators, exposed as FastAPI dependencies
"""
from typing import List, Optional

import httpx

from app.core.config import settings
from app.core.database import async_session_factory
from app.services.kommo_client import KommoLeadSink
from app.services.sinks import BestEffortDispatcher, BestEffortSink, MetaConversionSink, NotionSink
from app.services.token_manager import TokenManager
from app.services.token_store import TokenStore

_http_client: Optional[httpx.AsyncClient] = None
_token_manager: Optional[TokenManager] = None
_lead_sink: Optional[KommoLeadSink] = None
_dispatcher: Optional[BestEffortDispatcher] = None


def get_http_client() -> httpx.AsyncClient:
    """Shared HTTP client for every outbound call"""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    return _http_client


def get_token_manager() -> TokenManager:
    global _token_manager
    if _token_manager is None:
        _token_manager = TokenManager(
            store=TokenStore(async_session_factory),
            http_client=get_http_client(),
            base_url=settings.kommo_base_url,
            client_id=settings.KOMMO_CLIENT_ID,
            client_secret=settings.KOMMO_CLIENT_SECRET,
            safety_margin=settings.KOMMO_TOKEN_SAFETY_MARGIN_SECONDS,
        )
    return _token_manager


def get_lead_sink() -> KommoLeadSink:
    global _lead_sink
    if _lead_sink is None:
        _lead_sink = KommoLeadSink(get_token_manager(), get_http_client(), settings.kommo_base_url)
    return _lead_sink


def build_sinks(http_client: httpx.AsyncClient) -> List[BestEffortSink]:
    """Only configured sinks are registered"""
    sinks: List[BestEffortSink] = []
    if settings.notion_configured:
        sinks.append(NotionSink(
            http_client,
            api_key=settings.NOTION_API_KEY,
            database_id=settings.NOTION_DATABASE_ID,
            api_version=settings.NOTION_API_VERSION,
        ))
    if settings.meta_configured:
        sinks.append(MetaConversionSink(
            http_client,
            pixel_id=settings.META_PIXEL_ID,
            access_token=settings.META_ACCESS_TOKEN,
            api_version=settings.META_API_VERSION,
            test_event_code=settings.META_TEST_EVENT_CODE or None,
        ))
    return sinks


def get_dispatcher() -> BestEffortDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = BestEffortDispatcher(build_sinks(get_http_client()))
    return _dispatcher


async def shutdown() -> None:
    """Drain detached sink work and close the HTTP client"""
    global _http_client, _token_manager, _lead_sink, _dispatcher
    if _dispatcher is not None:
        await _dispatcher.drain()
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = _token_manager = _lead_sink = _dispatcher = None
