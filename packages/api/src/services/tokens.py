# This project was developed with assistance from AI tools.
"""Actor self-service tokens.

Each actor holds at most one active token. A token is 32 random bytes in
hex; anything else passed where an actor identifier is expected is treated
as a numeric actor id.
"""

import enum
import logging
import re
import secrets
from datetime import UTC, datetime, timedelta

from db import Actor
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.auth import UserContext
from .audit import write_audit_event

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
_TOKEN_RE = re.compile(r"[0-9a-f]{64}")


class TokenStatus(str, enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"
    COMPLETED = "completed"


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def looks_like_token(identifier: str) -> bool:
    return bool(_TOKEN_RE.fullmatch(identifier))


def token_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(UTC)
    return now + timedelta(days=settings.ACTOR_TOKEN_EXPIRATION_DAYS)


def _is_live(actor: Actor, now: datetime) -> bool:
    return bool(actor.access_token) and actor.token_expiry is not None and actor.token_expiry > now


def validate_actor_token(actor: Actor | None, now: datetime | None = None) -> TokenStatus:
    """Classify the token an actor was looked up by.

    ``COMPLETED`` means the token is live but the actor already submitted:
    reads are allowed, writes are not.
    """
    now = now or datetime.now(UTC)
    if actor is None or not actor.access_token:
        return TokenStatus.INVALID
    if not _is_live(actor, now):
        return TokenStatus.EXPIRED
    if actor.information_complete:
        return TokenStatus.COMPLETED
    return TokenStatus.VALID


async def renew_actor_token(session: AsyncSession, actor: Actor, now: datetime | None = None) -> str:
    """Issue a fresh token, invalidating the previous one."""
    actor.access_token = generate_token()
    actor.token_expiry = token_expiry(now)
    await session.flush()
    logger.info("Token regenerated for %s actor %s", actor.actor_type, actor.id)
    return actor.access_token


async def ensure_actor_token(session: AsyncSession, actor: Actor, now: datetime | None = None) -> str:
    """Return the actor's live token, issuing a new one when missing or expired."""
    now = now or datetime.now(UTC)
    if _is_live(actor, now):
        return actor.access_token
    return await renew_actor_token(session, actor, now)


async def regenerate_actor_token(session: AsyncSession, user: UserContext, actor: Actor) -> Actor:
    """Staff-initiated token rotation; audited and committed."""
    await renew_actor_token(session, actor)
    await write_audit_event(
        session,
        event_type="actor_token_generated",
        user_id=user.user_id,
        user_role=user.role.value,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={"actor_type": actor.actor_type.value, "expires_at": actor.token_expiry.isoformat()},
    )
    await session.commit()
    return actor


def actor_portal_url(actor: Actor) -> str:
    """Self-service link, e.g. ``{APP_URL}/actor/joint-obligor/{token}``."""
    base = settings.APP_URL.rstrip("/")
    return f"{base}/actor/{actor.actor_type.portal_segment}/{actor.access_token}"
