"""
Tests for request audit logging
"""
import pytest

from app.core.errors import InvalidStateTransition
from app.models.request_log import RequestState
from app.services import audit_service, source_service


@pytest.mark.asyncio
async def test_pending_log_is_committed_with_raw_input(db, session_factory):
    source = await source_service.create_source(db, "landing-a")
    request_log = await audit_service.create_pending(db, source.id, {"body": {"name": "Ana"}})

    async with session_factory() as other:
        stored = await audit_service.get_log(other, request_log.id)
    assert stored is not None
    assert stored.state == RequestState.PENDING
    assert stored.raw_input == {"body": {"name": "Ana"}}


@pytest.mark.asyncio
async def test_log_transitions_once(db):
    source = await source_service.create_source(db, "landing-a")
    request_log = await audit_service.create_pending(db, source.id, {})

    await audit_service.mark_success(db, request_log, {"leadId": 1})
    assert request_log.state == RequestState.SUCCESS
    assert request_log.updated_at is not None

    with pytest.raises(InvalidStateTransition):
        await audit_service.mark_failure(db, request_log, {"error": "late"})
    assert request_log.state == RequestState.SUCCESS


@pytest.mark.asyncio
async def test_list_logs_paginates_newest_first(db):
    source = await source_service.create_source(db, "landing-a")
    created = [await audit_service.create_pending(db, source.id, {"n": i}) for i in range(5)]

    page_one, total = await audit_service.list_logs(db, page=1, limit=2)
    page_three, _ = await audit_service.list_logs(db, page=3, limit=2)

    assert total == 5
    assert len(page_one) == 2
    assert len(page_three) == 1
    ids = {log.id for log in page_one} | {log.id for log in page_three}
    assert ids <= {log.id for log in created}
