# This project was developed with assistance from AI tools.
"""Tests for the audit service: hash chain writes, verification and queries."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from db import AuditEvent

from src.services.audit import (
    _compute_hash,
    get_policy_events,
    verify_audit_chain,
    write_audit_event,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_audit_session(prev_event=None):
    """Build a mock session that supports advisory lock + latest-event query."""
    mock_session = AsyncMock()
    # execute is called twice: advisory lock, then latest-event query
    lock_result = MagicMock()
    query_result = MagicMock()
    query_result.scalar_one_or_none.return_value = prev_event
    mock_session.execute = AsyncMock(side_effect=[lock_result, query_result])
    mock_session.add = MagicMock()
    return mock_session


def _listing_session(events: list) -> AsyncMock:
    mock_session = AsyncMock()
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = events
    mock_session.execute = AsyncMock(return_value=mock_result)
    return mock_session


def _event(event_id: int, prev_hash: str, data: dict | None = None) -> AuditEvent:
    return AuditEvent(
        id=event_id,
        timestamp=datetime(2026, 5, 1, 12, event_id, tzinfo=UTC),
        event_type="actor_submitted",
        event_data=data,
        prev_hash=prev_hash,
    )


def _chain(count: int) -> list[AuditEvent]:
    events = []
    for event_id in range(1, count + 1):
        if events:
            prev = events[-1]
            prev_hash = _compute_hash(prev.id, str(prev.timestamp), prev.event_data)
        else:
            prev_hash = "genesis"
        events.append(_event(event_id, prev_hash, {"actor_id": event_id}))
    return events


# ---------------------------------------------------------------------------
# write_audit_event
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_write_audit_event_creates_row():
    """write_audit_event adds an AuditEvent linked to the genesis hash."""
    mock_session = _mock_audit_session(prev_event=None)

    await write_audit_event(
        mock_session,
        event_type="actor_force_submitted",
        user_id="staff-1",
        user_role="staff",
        policy_id=7,
        actor_id=70,
        event_data={"bypassed_fields": ["curp"]},
    )

    mock_session.add.assert_called_once()
    mock_session.flush.assert_awaited_once()

    added_obj = mock_session.add.call_args[0][0]
    assert added_obj.event_type == "actor_force_submitted"
    assert added_obj.user_id == "staff-1"
    assert added_obj.user_role == "staff"
    assert added_obj.policy_id == 7
    assert added_obj.actor_id == 70
    assert added_obj.event_data["bypassed_fields"] == ["curp"]
    assert added_obj.prev_hash == "genesis"


@pytest.mark.asyncio
async def test_write_audit_event_without_event_data():
    """event_data is optional and stored as None."""
    mock_session = _mock_audit_session(prev_event=None)

    await write_audit_event(mock_session, event_type="policy_created")

    added_obj = mock_session.add.call_args[0][0]
    assert added_obj.event_data is None
    assert added_obj.prev_hash == "genesis"


@pytest.mark.asyncio
async def test_write_audit_event_chains_from_previous():
    """prev_hash is computed from the previous event when one exists."""
    prev = MagicMock()
    prev.id = 42
    prev.timestamp = "2026-01-15T10:00:00+00:00"
    prev.event_data = {"actor_id": 3}
    mock_session = _mock_audit_session(prev_event=prev)

    await write_audit_event(mock_session, event_type="actor_submitted", user_id="actor:tenant:3")

    added_obj = mock_session.add.call_args[0][0]
    assert added_obj.prev_hash == _compute_hash(42, "2026-01-15T10:00:00+00:00", {"actor_id": 3})


def test_hash_ignores_key_order():
    assert _compute_hash(1, "t", {"a": 1, "b": 2}) == _compute_hash(1, "t", {"b": 2, "a": 1})
    assert _compute_hash(1, "t", {"a": 1}) != _compute_hash(2, "t", {"a": 1})


# ---------------------------------------------------------------------------
# verify_audit_chain
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_verify_empty_chain():
    assert await verify_audit_chain(_listing_session([])) == {"status": "OK", "events_checked": 0}


@pytest.mark.asyncio
async def test_verify_intact_chain():
    result = await verify_audit_chain(_listing_session(_chain(3)))
    assert result == {"status": "OK", "events_checked": 3}


@pytest.mark.asyncio
async def test_verify_detects_edited_event():
    events = _chain(3)
    events[1].event_data = {"actor_id": 999}
    result = await verify_audit_chain(_listing_session(events))
    assert result == {"status": "TAMPERED", "first_break_id": 3, "events_checked": 3}


@pytest.mark.asyncio
async def test_verify_detects_broken_genesis():
    events = _chain(2)
    events[0].prev_hash = "not-genesis"
    result = await verify_audit_chain(_listing_session(events))
    assert result["status"] == "TAMPERED"
    assert result["first_break_id"] == 1


# ---------------------------------------------------------------------------
# get_policy_events
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_policy_events_returns_rows():
    events = _chain(2)
    mock_session = _listing_session(events)

    assert await get_policy_events(mock_session, 7) == events
    mock_session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_policy_events_filters_by_type():
    mock_session = _listing_session([])

    await get_policy_events(mock_session, 7, event_type="actor_force_submitted")

    stmt = mock_session.execute.call_args[0][0]
    compiled = str(stmt.compile(compile_kwargs={"literal_binds": True}))
    assert "audit_events.policy_id = 7" in compiled
    assert "audit_events.event_type = 'actor_force_submitted'" in compiled
