# This project was developed with assistance from AI tools.
"""Tests for actor persistence helpers."""

import pytest
from db import Landlord
from db.enums import ActorType, EntityType, Nationality
from sqlalchemy.exc import OperationalError

from src.core.errors import ActorValidationError, SecondaryWriteFailure
from src.schemas.actor import CoOwnerIn
from src.services.actors import (
    actor_display_name,
    apply_fields,
    build_actor_response,
    get_actor,
    get_landlords_by_token,
    mark_tab_completed,
    record_from_actor,
    replace_references,
    save_co_owners,
)

from .factories import VALID_CURP, add_personal_references, make_actor, make_session

OWNER = {
    "first_name": "Jorge",
    "paternal_last_name": "Salinas",
    "curp": VALID_CURP,
    "email": "jorge@example.com",
    "phone": "5587654321",
}


# ---------------------------------------------------------------------------
# Field application
# ---------------------------------------------------------------------------


def test_apply_fields_returns_sorted_names():
    actor = make_actor()
    assert apply_fields(actor, {"occupation": "Chef", "curp": VALID_CURP}) == ["curp", "occupation"]
    assert actor.occupation == "Chef"


def test_apply_fields_refuses_lifecycle_columns():
    actor = make_actor()
    with pytest.raises(ActorValidationError) as exc_info:
        apply_fields(actor, {"information_complete": True, "access_token": "x", "first_name": "Eva"})
    assert [issue.path for issue in exc_info.value.issues] == ["access_token", "information_complete"]
    assert actor.first_name == "Ana"
    assert not actor.information_complete


def test_mark_tab_completed_reassigns_list():
    actor = make_actor(tabs_completed=["personal"])
    before = actor.tabs_completed
    assert mark_tab_completed(actor, "employment") == ["personal", "employment"]
    assert actor.tabs_completed is not before
    assert mark_tab_completed(actor, "personal") == ["personal", "employment"]


def test_record_includes_references_and_overrides():
    actor = make_actor()
    add_personal_references(actor, 2)
    record = record_from_actor(actor, {"occupation": "Chef"})
    assert record["first_name"] == "Ana"
    assert record["occupation"] == "Chef"
    assert [ref["first_name"] for ref in record["personal_references"]] == ["Ref0", "Ref1"]
    assert record["commercial_references"] == []


# ---------------------------------------------------------------------------
# Display and serialization
# ---------------------------------------------------------------------------


def test_display_name_joins_all_name_parts():
    actor = make_actor(middle_name="Luisa", maternal_last_name="Gomez")
    assert actor_display_name(actor) == "Ana Luisa Perez Gomez"


def test_display_name_of_company():
    actor = make_actor(entity_type=EntityType.COMPANY, company_name="Acme SA de CV")
    assert actor_display_name(actor) == "Acme SA de CV"


def test_response_hides_portal_link_by_default():
    response = build_actor_response(make_actor())
    assert response.portal_url is None
    assert response.token_expiry is None
    assert "access_token" not in response.fields
    assert "entity_type" not in response.fields
    assert response.fields["first_name"] == "Ana"


def test_response_for_staff_includes_portal_link():
    response = build_actor_response(make_actor(ActorType.JOINT_OBLIGOR), include_portal_url=True)
    assert response.portal_url.endswith(f"/actor/joint-obligor/{'ab' * 32}")
    assert response.token_expiry is not None


def test_company_response_has_no_nationality():
    actor = make_actor(entity_type=EntityType.COMPANY, company_name="Acme", nationality=Nationality.FOREIGN)
    assert build_actor_response(actor).nationality is None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_actor_filters_by_type_and_id():
    tenant = make_actor(id=42)
    session = make_session(single=tenant)
    assert await get_actor(session, ActorType.TENANT, 42) is tenant
    sql = str(session.execute.await_args.args[0])
    assert "actors.actor_type" in sql
    assert "actors.id =" in sql


@pytest.mark.asyncio
async def test_landlords_by_token():
    primary = make_actor(ActorType.LANDLORD, id=10, is_primary=True)
    co_owner = make_actor(ActorType.LANDLORD, id=11)
    session = make_session(actors=[primary, co_owner], single=primary)
    assert await get_landlords_by_token(session, "ab" * 32) == [primary, co_owner]


@pytest.mark.asyncio
async def test_landlords_by_unknown_token():
    assert await get_landlords_by_token(make_session(), "cd" * 32) is None


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_replace_references_swaps_the_set():
    actor = make_actor()
    add_personal_references(actor, 2)
    session = make_session()
    await replace_references(
        session,
        actor,
        personal=[{"first_name": "Eva", "paternal_last_name": "Rios", "phone": "5511112222", "relationship": "friend"}],
    )
    assert [ref.first_name for ref in actor.personal_references] == ["Eva"]
    session.begin_nested.assert_called_once()


@pytest.mark.asyncio
async def test_replace_references_nothing_sent():
    session = make_session()
    await replace_references(session, make_actor())
    session.begin_nested.assert_not_called()


@pytest.mark.asyncio
async def test_replace_references_failure_is_secondary():
    session = make_session()
    session.begin_nested.side_effect = OperationalError("INSERT", {}, Exception("deadlock"))
    with pytest.raises(SecondaryWriteFailure):
        await replace_references(session, make_actor(), personal=[])


@pytest.mark.asyncio
async def test_replace_references_failure_reloads_the_actor():
    """A rolled-back savepoint expires the actor; it is reloaded before the error is raised."""
    actor = make_actor()
    session = make_session()
    session.flush.side_effect = OperationalError("INSERT", {}, Exception("trigger"))
    reference = {"first_name": "Eva", "paternal_last_name": "Rios", "phone": "5511112222", "relationship": "friend"}
    with pytest.raises(SecondaryWriteFailure, match="actor 10"):
        await replace_references(session, actor, personal=[reference])
    refreshed = [call.args[1:] for call in session.refresh.await_args_list]
    assert refreshed == [(), (["personal_references", "commercial_references", "documents"],)]


# ---------------------------------------------------------------------------
# Co-owners
# ---------------------------------------------------------------------------


def _landlords():
    primary = make_actor(ActorType.LANDLORD, id=10, is_primary=True)
    co_owner = make_actor(ActorType.LANDLORD, id=11)
    return primary, co_owner


@pytest.mark.asyncio
async def test_save_co_owners_updates_creates_and_removes():
    primary, co_owner = _landlords()
    session = make_session(actors=[primary, co_owner])
    saved = await save_co_owners(
        session,
        primary,
        [CoOwnerIn(id=10, data=OWNER), CoOwnerIn(data={**OWNER, "first_name": "Lucia"})],
    )
    assert saved[0] is primary
    assert primary.first_name == "Jorge"
    assert isinstance(saved[1], Landlord)
    assert saved[1].first_name == "Lucia"
    assert saved[1].tabs_completed == ["owner-info"]
    assert saved[1].access_token is not None
    session.delete.assert_awaited_once_with(co_owner)
    assert primary.is_primary


@pytest.mark.asyncio
async def test_save_co_owners_moves_primary_flag():
    primary, co_owner = _landlords()
    session = make_session(actors=[primary, co_owner])
    await save_co_owners(session, primary, [CoOwnerIn(id=10, data=OWNER), CoOwnerIn(id=11, is_primary=True, data=OWNER)])
    assert co_owner.is_primary
    assert not primary.is_primary


@pytest.mark.asyncio
async def test_save_co_owners_single_primary():
    primary, co_owner = _landlords()
    with pytest.raises(ActorValidationError, match="Only one landlord can be primary"):
        await save_co_owners(
            make_session(actors=[primary, co_owner]),
            primary,
            [CoOwnerIn(id=10, is_primary=True, data=OWNER), CoOwnerIn(id=11, is_primary=True, data=OWNER)],
        )


@pytest.mark.asyncio
async def test_save_co_owners_unknown_id():
    primary, co_owner = _landlords()
    with pytest.raises(ActorValidationError) as exc_info:
        await save_co_owners(make_session(actors=[primary, co_owner]), primary, [CoOwnerIn(id=99, data=OWNER)])
    assert exc_info.value.issues[0].path == "landlords.0.id"


@pytest.mark.asyncio
async def test_save_co_owners_issue_paths_are_indexed():
    primary, co_owner = _landlords()
    with pytest.raises(ActorValidationError) as exc_info:
        await save_co_owners(
            make_session(actors=[primary, co_owner]),
            primary,
            [CoOwnerIn(id=10, data=OWNER), CoOwnerIn(id=11, data={**OWNER, "curp": "bad"})],
        )
    assert [issue.path for issue in exc_info.value.issues] == ["landlords.1.curp"]


@pytest.mark.asyncio
async def test_save_co_owners_skip_validation_keeps_raw_values():
    primary, co_owner = _landlords()
    saved = await save_co_owners(
        make_session(actors=[primary, co_owner]),
        primary,
        [CoOwnerIn(id=10, data={"curp": "PENDING"})],
        skip_validation=True,
    )
    assert saved[0].curp == "PENDING"
