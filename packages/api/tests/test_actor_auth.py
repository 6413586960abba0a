# This project was developed with assistance from AI tools.
"""Tests for token and session resolution of actor routes."""

from datetime import UTC, datetime, timedelta

import pytest
from db.enums import ActorType, UserRole

from src.core.errors import ActorAuthError
from src.middleware.actor_auth import resolve_actor_auth, resolve_session, resolve_token

from .factories import make_actor, make_session, make_user

TOKEN = "ab" * 32


@pytest.mark.asyncio
async def test_valid_token_resolves_editable_actor():
    actor = make_actor()
    access = await resolve_token(make_session(single=actor), ActorType.TENANT, TOKEN)
    assert access.actor is actor
    assert access.auth.auth_type == "token"
    assert access.auth.can_edit
    assert not access.auth.skip_validation_allowed
    assert access.auth.performed_by == "actor:tenant:10"


@pytest.mark.asyncio
async def test_completed_actor_token_is_read_only():
    actor = make_actor(information_complete=True)
    access = await resolve_token(make_session(single=actor), ActorType.TENANT, TOKEN)
    assert not access.auth.can_edit


@pytest.mark.asyncio
async def test_malformed_token_never_queries():
    session = make_session()
    with pytest.raises(ActorAuthError) as exc_info:
        await resolve_token(session, ActorType.TENANT, "not-a-token")
    assert exc_info.value.status_code == 401
    session.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_and_expired_tokens_look_the_same():
    expired = make_actor(token_expiry=datetime.now(UTC) - timedelta(minutes=1))
    with pytest.raises(ActorAuthError) as unknown:
        await resolve_token(make_session(), ActorType.TENANT, TOKEN)
    with pytest.raises(ActorAuthError) as stale:
        await resolve_token(make_session(single=expired), ActorType.TENANT, TOKEN)
    assert str(unknown.value) == str(stale.value) == "Invalid or expired token"


@pytest.mark.asyncio
async def test_session_requires_user():
    with pytest.raises(ActorAuthError) as exc_info:
        await resolve_session(make_session(), ActorType.TENANT, 10, None)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_session_out_of_scope_is_not_found():
    with pytest.raises(ActorAuthError) as exc_info:
        await resolve_session(make_session(), ActorType.TENANT, 10, make_user(UserRole.BROKER))
    assert exc_info.value.status_code == 404


@pytest.mark.parametrize(
    "role,skip_allowed",
    [(UserRole.ADMIN, True), (UserRole.STAFF, True), (UserRole.BROKER, False)],
)
@pytest.mark.asyncio
async def test_session_skip_validation_by_role(role, skip_allowed):
    actor = make_actor(information_complete=True)
    access = await resolve_session(make_session(single=actor), ActorType.TENANT, 10, make_user(role))
    assert access.auth.can_edit
    assert access.auth.skip_validation_allowed is skip_allowed
    assert access.auth.performed_by == f"{role.value}-1"


@pytest.mark.asyncio
async def test_identifier_dispatch():
    actor = make_actor()
    by_token = await resolve_actor_auth(make_session(single=actor), ActorType.TENANT, TOKEN, None)
    by_id = await resolve_actor_auth(make_session(single=actor), ActorType.TENANT, "10", make_user())
    assert by_token.auth.auth_type == "token"
    assert by_id.auth.auth_type == "session"


@pytest.mark.asyncio
async def test_garbage_identifier():
    with pytest.raises(ActorAuthError) as anonymous:
        await resolve_actor_auth(make_session(), ActorType.TENANT, "abc", None)
    with pytest.raises(ActorAuthError) as signed_in:
        await resolve_actor_auth(make_session(), ActorType.TENANT, "abc", make_user())
    assert anonymous.value.status_code == 401
    assert signed_in.value.status_code == 404
