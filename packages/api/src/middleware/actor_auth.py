# This project was developed with assistance from AI tools.
"""
Dual authentication for actor routes.

An actor is reached either through its portal token (the actor itself) or
through its numeric id with a staff/broker session. The identifier decides:
64 lowercase hex characters are a token, anything else is an id.

Token principals never skip validation and can only edit until they
submit. Unknown tokens, expired tokens and unknown ids all fail with the
same message so that callers cannot tell which records exist.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from db import Actor, get_db
from db.enums import ActorType
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import can_skip_validation
from ..core.errors import ActorAuthError
from ..schemas.auth import ActorAuthContext, UserContext
from ..services.actors import get_actor_by_token, get_scoped_actor
from ..services.tokens import TokenStatus, looks_like_token, validate_actor_token
from .auth import OptionalUser

logger = logging.getLogger(__name__)

_INVALID_TOKEN = "Invalid or expired token"


@dataclass
class ActorAccess:
    auth: ActorAuthContext
    actor: Actor


async def resolve_token(session: AsyncSession, actor_type: ActorType, token: str) -> ActorAccess:
    """Resolve a portal token. Completed actors resolve read-only.

    Raises:
        ActorAuthError: Malformed, unknown or expired token (401).
    """
    if not looks_like_token(token):
        raise ActorAuthError(_INVALID_TOKEN)
    actor = await get_actor_by_token(session, actor_type, token)
    status = validate_actor_token(actor)
    if status in (TokenStatus.INVALID, TokenStatus.EXPIRED):
        logger.warning("Rejected %s token for %s (%s)", status.value, actor_type.value, token[:8])
        raise ActorAuthError(_INVALID_TOKEN)
    return ActorAccess(
        auth=ActorAuthContext(
            auth_type="token",
            actor_type=actor_type,
            actor_id=actor.id,
            can_edit=status == TokenStatus.VALID,
            skip_validation_allowed=False,
        ),
        actor=actor,
    )


async def resolve_session(
    session: AsyncSession,
    actor_type: ActorType,
    actor_id: int,
    user: UserContext | None,
) -> ActorAccess:
    """Resolve an actor id for a signed-in user; brokers only reach their own policies.

    Raises:
        ActorAuthError: No session (401) or actor not visible (404).
    """
    if user is None:
        raise ActorAuthError("Authentication required")
    actor = await get_scoped_actor(session, user, actor_type, actor_id)
    if actor is None:
        raise ActorAuthError("Actor not found", status_code=404)
    return ActorAccess(
        auth=ActorAuthContext(
            auth_type="session",
            actor_type=actor_type,
            actor_id=actor.id,
            can_edit=True,
            skip_validation_allowed=can_skip_validation(user.role),
            user=user,
        ),
        actor=actor,
    )


async def resolve_actor_auth(
    session: AsyncSession,
    actor_type: ActorType,
    identifier: str,
    user: UserContext | None,
) -> ActorAccess:
    """Resolve either kind of identifier."""
    if looks_like_token(identifier):
        return await resolve_token(session, actor_type, identifier)
    if not identifier.isdigit():
        if user is None:
            raise ActorAuthError(_INVALID_TOKEN)
        raise ActorAuthError("Actor not found", status_code=404)
    return await resolve_session(session, actor_type, int(identifier), user)


# ---------------------------------------------------------------------------
# FastAPI dependencies (path parameters: actor_type + identifier | token)
# ---------------------------------------------------------------------------


async def get_actor_access(
    actor_type: ActorType,
    identifier: str,
    user: OptionalUser,
    session: AsyncSession = Depends(get_db),
) -> ActorAccess:
    return await resolve_actor_auth(session, actor_type, identifier, user)


async def get_token_access(
    actor_type: ActorType,
    token: str,
    session: AsyncSession = Depends(get_db),
) -> ActorAccess:
    return await resolve_token(session, actor_type, token)


async def get_landlord_access(
    identifier: str,
    user: OptionalUser,
    session: AsyncSession = Depends(get_db),
) -> ActorAccess:
    return await resolve_actor_auth(session, ActorType.LANDLORD, identifier, user)


ResolvedActor = Annotated[ActorAccess, Depends(get_actor_access)]
TokenActor = Annotated[ActorAccess, Depends(get_token_access)]
LandlordActor = Annotated[ActorAccess, Depends(get_landlord_access)]
