# This project was developed with assistance from AI tools.
"""Audit event service.

Appends audit trail entries linked by a SHA-256 hash chain for tamper
evidence. A PostgreSQL advisory lock serializes the hash computation. Every
state change that weakens or bypasses validation (forced submissions,
best-effort reference failures) lands here so it can be queried later.
"""

import hashlib
import json
import logging

from db import AuditEvent
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Fixed advisory lock key for audit trail serialization.
# Only audit event inserts are serialized; other DB operations are unaffected.
AUDIT_LOCK_KEY = 900_001


def _compute_hash(event_id: int, timestamp: str, event_data: dict | None) -> str:
    """Compute SHA-256 hash of an audit event's key fields."""
    payload = f"{event_id}|{timestamp}|{json.dumps(event_data, sort_keys=True, default=str)}"
    return hashlib.sha256(payload.encode()).hexdigest()


async def write_audit_event(
    session: AsyncSession,
    *,
    event_type: str,
    user_id: str | None = None,
    user_role: str | None = None,
    policy_id: int | None = None,
    actor_id: int | None = None,
    event_data: dict | None = None,
) -> AuditEvent:
    """Write a single audit event with hash chain linkage.

    Acquires a PostgreSQL advisory lock to serialize hash computation,
    then computes prev_hash from the most recent event. The event joins the
    caller's transaction and commits or rolls back with it.

    Args:
        session: Database session.
        event_type: Event category (e.g. 'actor_submitted', 'policy_cancelled').
        user_id: User (or actor principal) who triggered the event.
        user_role: Role at the time of the event.
        policy_id: Related policy, if any.
        actor_id: Related actor, if any.
        event_data: JSON-serializable event payload. Never field values
            such as CURP or bank data, only ids and field names.

    Returns:
        The created AuditEvent row (with prev_hash set).
    """
    # Released automatically when the transaction commits or rolls back.
    await session.execute(text(f"SELECT pg_advisory_xact_lock({AUDIT_LOCK_KEY})"))

    latest_stmt = select(AuditEvent).order_by(AuditEvent.id.desc()).limit(1)
    result = await session.execute(latest_stmt)
    prev_event = result.scalar_one_or_none()

    if prev_event is not None:
        prev_hash = _compute_hash(prev_event.id, str(prev_event.timestamp), prev_event.event_data)
    else:
        prev_hash = "genesis"

    audit = AuditEvent(
        event_type=event_type,
        user_id=user_id,
        user_role=user_role,
        policy_id=policy_id,
        actor_id=actor_id,
        event_data=event_data,
        prev_hash=prev_hash,
    )
    session.add(audit)
    await session.flush()
    logger.debug("Audit event %s written (policy=%s, actor=%s)", event_type, policy_id, actor_id)
    return audit


async def verify_audit_chain(session: AsyncSession) -> dict:
    """Verify the integrity of the audit event hash chain.

    Walks all events in ID order, recomputes each expected prev_hash,
    and compares against the stored value.

    Returns:
        {"status": "OK", "events_checked": N} on success, or
        {"status": "TAMPERED", "first_break_id": id, "events_checked": N}
        if a mismatch is found.
    """
    stmt = select(AuditEvent).order_by(AuditEvent.id.asc())
    result = await session.execute(stmt)
    events = list(result.scalars().all())

    if not events:
        return {"status": "OK", "events_checked": 0}

    for i, event in enumerate(events):
        if i == 0:
            expected = "genesis"
        else:
            prev = events[i - 1]
            expected = _compute_hash(prev.id, str(prev.timestamp), prev.event_data)

        if event.prev_hash != expected:
            return {
                "status": "TAMPERED",
                "first_break_id": event.id,
                "events_checked": i + 1,
            }

    return {"status": "OK", "events_checked": len(events)}


async def get_policy_events(
    session: AsyncSession,
    policy_id: int,
    *,
    event_type: str | None = None,
) -> list[AuditEvent]:
    """Return a policy's audit events in chronological order.

    Args:
        event_type: Only return events of this type (e.g. 'actor_force_submitted').
    """
    stmt = select(AuditEvent).where(AuditEvent.policy_id == policy_id)
    if event_type is not None:
        stmt = stmt.where(AuditEvent.event_type == event_type)
    stmt = stmt.order_by(AuditEvent.timestamp.asc(), AuditEvent.id.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())
