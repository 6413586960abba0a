# This project was developed with assistance from AI tools.
"""Actor portal saves, reference replacement and document upload against
real PostgreSQL and MinIO."""

import httpx
import pytest
import pytest_asyncio
from db import PersonalReference, Tenant
from sqlalchemy import func, select, text

from src.core.config import settings
from src.schemas.policy import PolicyCreate
from src.services import policy as policy_service
from src.services.audit import get_policy_events, verify_audit_chain

from ..functional.personas import broker

pytestmark = pytest.mark.integration

REF = {"first_name": "Eva", "paternal_last_name": "Rios", "phone": "5511112222", "relationship": "friend"}


@pytest_asyncio.fixture
async def tenant(db_session) -> Tenant:
    policy = await policy_service.create_policy(
        db_session,
        broker(),
        PolicyCreate.model_validate(
            {
                "guarantor_type": "NONE",
                "tenant": {"first_name": "Maria", "paternal_last_name": "Gonzalez"},
                "landlords": [{"first_name": "Jorge"}],
            }
        ),
    )
    return next(actor for actor in policy.actors if isinstance(actor, Tenant))


async def _reference_count(db_session, actor_id: int) -> int:
    stmt = select(func.count(PersonalReference.id)).where(PersonalReference.actor_id == actor_id)
    return (await db_session.execute(stmt)).scalar()


async def test_portal_view_by_token(client_factory, tenant):
    client = await client_factory(None)
    resp = await client.get(f"/api/actors/tenant/token/{tenant.access_token}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["can_edit"]
    assert [tab["id"] for tab in body["tabs"]] == ["personal", "employment", "rental", "references", "documents"]
    await client.aclose()


async def test_tab_save_persists_and_audits(client_factory, db_session, tenant):
    client = await client_factory(None)
    resp = await client.patch(
        f"/api/actors/tenant/{tenant.access_token}",
        json={
            "tab_name": "employment",
            "data": {
                "employment_status": "EMPLOYED",
                "occupation": "Chef",
                "employer_name": "Fonda Roma",
                "monthly_income": "25000",
            },
        },
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["tabs_completed"] == ["employment"]
    assert (await verify_audit_chain(db_session))["status"] == "OK"
    await client.aclose()


async def test_references_replaced_not_appended(client_factory, db_session, tenant):
    client = await client_factory(None)
    url = f"/api/actors/tenant/{tenant.access_token}"
    first = await client.patch(url, json={"tab_name": "references", "personal_references": [REF, REF]})
    assert first.status_code == 200, first.text
    assert await _reference_count(db_session, tenant.id) == 2

    second = await client.patch(url, json={"tab_name": "references", "personal_references": [REF]})
    assert second.status_code == 200
    assert await _reference_count(db_session, tenant.id) == 1
    await client.aclose()


async def _reject_reference_inserts(db_session) -> None:
    """Make every personal reference insert fail; rolled back with the test transaction."""
    await db_session.execute(
        text(
            "CREATE FUNCTION reject_reference_insert() RETURNS trigger AS $$ "
            "BEGIN RAISE EXCEPTION 'references unavailable'; END; $$ LANGUAGE plpgsql"
        )
    )
    await db_session.execute(
        text(
            "CREATE TRIGGER reject_reference_insert BEFORE INSERT ON personal_references "
            "FOR EACH ROW EXECUTE FUNCTION reject_reference_insert()"
        )
    )


async def test_reference_failure_best_effort_keeps_tab_save(client_factory, db_session, tenant, monkeypatch):
    monkeypatch.setattr(settings, "REFERENCE_FAILURE_MODE", "best-effort")
    client = await client_factory(None)
    url = f"/api/actors/tenant/{tenant.access_token}"
    first = await client.patch(url, json={"tab_name": "references", "personal_references": [REF, REF]})
    assert first.status_code == 200, first.text

    await _reject_reference_inserts(db_session)
    resp = await client.patch(url, json={"tab_name": "references", "personal_references": [REF]})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["reference_error"] == f"Reference replacement failed for actor {tenant.id}"
    assert len(body["actor"]["personal_references"]) == 2
    assert await _reference_count(db_session, tenant.id) == 2
    events = await get_policy_events(db_session, tenant.policy_id, event_type="reference_write_failed")
    assert len(events) == 1
    await client.aclose()


async def test_reference_failure_strict_rolls_back(client_factory, db_session, tenant, monkeypatch):
    monkeypatch.setattr(settings, "REFERENCE_FAILURE_MODE", "strict")
    await _reject_reference_inserts(db_session)
    client = await client_factory(None)
    resp = await client.patch(
        f"/api/actors/tenant/{tenant.access_token}",
        json={"tab_name": "references", "personal_references": [REF]},
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == "An unexpected error occurred."
    assert await _reference_count(db_session, tenant.id) == 0
    await client.aclose()


async def test_invalid_tab_data_is_problem_details(client_factory, tenant):
    client = await client_factory(None)
    resp = await client.patch(
        f"/api/actors/tenant/{tenant.access_token}",
        json={"tab_name": "personal", "data": {"curp": "NOT-A-CURP"}},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == 400
    assert [issue["path"] for issue in body["errors"]] == ["curp"]
    await client.aclose()


async def test_document_upload_round_trip(client_factory, tenant):
    client = await client_factory(None)
    base = f"/api/actors/tenant/{tenant.access_token}/documents"
    content = b"%PDF-1.4 test identification"

    created = await client.post(
        f"{base}/upload-url",
        json={
            "category": "IDENTIFICATION",
            "file_name": "ine.pdf",
            "content_type": "application/pdf",
            "file_size": len(content),
        },
    )
    assert created.status_code == 201, created.text
    upload = created.json()

    # Unconfirmed until the object exists.
    early = await client.post(f"{base}/{upload['document_id']}/confirm")
    assert early.status_code == 409

    async with httpx.AsyncClient() as storage:
        put = await storage.put(upload["upload_url"], content=content, headers={"Content-Type": "application/pdf"})
        assert put.status_code == 200

    confirmed = await client.post(f"{base}/{upload['document_id']}/confirm")
    assert confirmed.status_code == 200
    assert confirmed.json()["upload_status"] == "complete"

    listing = (await client.get(base)).json()
    assert "IDENTIFICATION" not in listing["missing"]

    download = (await client.get(f"{base}/{upload['document_id']}/download-url")).json()
    async with httpx.AsyncClient() as storage:
        fetched = await storage.get(download["download_url"])
    assert fetched.content == content
    await client.aclose()
