# This project was developed with assistance from AI tools.
"""Schema integrity tests after alembic upgrade head."""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

pytestmark = pytest.mark.integration


async def test_all_public_tables_exist(db_session):
    result = await db_session.execute(
        text("SELECT tablename FROM pg_tables WHERE schemaname = 'public' ORDER BY tablename")
    )
    tables = {row[0] for row in result.fetchall()}
    expected = {
        "policies",
        "actors",
        "personal_references",
        "commercial_references",
        "actor_documents",
        "actor_history",
        "audit_events",
    }
    missing = expected - tables
    assert not missing, f"Missing tables: {missing}"


async def test_audit_triggers_installed(db_session):
    result = await db_session.execute(
        text("SELECT tgname FROM pg_trigger WHERE tgrelid = 'audit_events'::regclass AND NOT tgisinternal")
    )
    assert {row[0] for row in result.fetchall()} == {"audit_events_no_update", "audit_events_no_delete"}


async def test_policy_number_unique(db_session):
    from db import Policy
    from db.enums import GuarantorType, PolicyStatus

    for _ in range(2):
        db_session.add(
            Policy(
                policy_number="POL-20260101-DUP",
                status=PolicyStatus.DRAFT,
                guarantor_type=GuarantorType.NONE,
                managed_by="broker",
                created_by="broker",
            )
        )
    with pytest.raises(IntegrityError):
        await db_session.flush()
