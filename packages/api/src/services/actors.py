# This project was developed with assistance from AI tools.
"""Actor persistence.

Loads actors with their references, documents and policy eagerly (no lazy
loads in async context) and applies validated field changes. Nothing here
commits: callers own the transaction.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from db import (
    ACTOR_MODELS,
    Actor,
    CommercialReference,
    Landlord,
    PersonalReference,
)
from db.enums import ActorType, EntityType
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.errors import (
    ActorValidationError,
    FieldIssue,
    SecondaryWriteFailure,
)
from ..schemas.actor import ActorResponse, CommercialReferenceOut, PersonalReferenceOut
from ..schemas.auth import UserContext
from ..schemas.shared import CommercialReferenceIn, PersonalReferenceIn
from .scope import apply_data_scope
from .tokens import actor_portal_url, ensure_actor_token
from .variants import resolve_variant, validate_tab

logger = logging.getLogger(__name__)

ACTOR_COLUMNS: tuple[str, ...] = tuple(column.key for column in Actor.__table__.columns)

# Lifecycle columns only services may change.
_PROTECTED_FIELDS = frozenset(
    {
        "id",
        "policy_id",
        "actor_type",
        "is_primary",
        "access_token",
        "token_expiry",
        "tabs_completed",
        "information_complete",
        "completed_at",
        "completed_by",
        "verification_status",
        "verified_at",
        "verified_by",
        "rejection_reason",
        "created_at",
        "updated_at",
    }
)
WRITABLE_FIELDS = frozenset(ACTOR_COLUMNS) - _PROTECTED_FIELDS
_ACTOR_COLLECTIONS = ["personal_references", "commercial_references", "documents"]


def _actor_query(actor_type: ActorType | None = None):
    model = ACTOR_MODELS[actor_type] if actor_type is not None else Actor
    return select(model).options(
        selectinload(model.personal_references),
        selectinload(model.commercial_references),
        selectinload(model.documents),
        selectinload(model.policy),
    )


async def get_actor(session: AsyncSession, actor_type: ActorType, actor_id: int) -> Actor | None:
    """Load an actor by id. No scope check; see ``get_scoped_actor``."""
    model = ACTOR_MODELS[actor_type]
    result = await session.execute(_actor_query(actor_type).where(model.id == actor_id))
    return result.unique().scalar_one_or_none()


async def get_scoped_actor(
    session: AsyncSession,
    user: UserContext,
    actor_type: ActorType,
    actor_id: int,
) -> Actor | None:
    """Load an actor whose policy is visible to ``user``.

    Returns None for out-of-scope actors, like for missing ones.
    """
    model = ACTOR_MODELS[actor_type]
    stmt = _actor_query(actor_type).where(model.id == actor_id)
    stmt = apply_data_scope(stmt, user.data_scope, user, join_to_policy=model.policy)
    result = await session.execute(stmt)
    return result.unique().scalar_one_or_none()


async def get_actor_by_token(session: AsyncSession, actor_type: ActorType, token: str) -> Actor | None:
    model = ACTOR_MODELS[actor_type]
    result = await session.execute(_actor_query(actor_type).where(model.access_token == token))
    return result.unique().scalar_one_or_none()


async def list_policy_actors(
    session: AsyncSession,
    policy_id: int,
    actor_type: ActorType | None = None,
) -> list[Actor]:
    """All actors of a policy (optionally one type), primary landlord first."""
    model = ACTOR_MODELS[actor_type] if actor_type is not None else Actor
    stmt = (
        _actor_query(actor_type)
        .where(model.policy_id == policy_id)
        .order_by(model.is_primary.desc(), model.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.unique().scalars().all())


async def get_landlords_by_token(session: AsyncSession, token: str) -> list[Actor] | None:
    """Every landlord of the policy the token's landlord belongs to.

    Returns None when no landlord holds the token.
    """
    landlord = await get_actor_by_token(session, ActorType.LANDLORD, token)
    if landlord is None:
        return None
    return await list_policy_actors(session, landlord.policy_id, ActorType.LANDLORD)


def apply_fields(actor: Actor, fields: Mapping[str, Any]) -> list[str]:
    """Copy field values onto the actor; returns the sorted field names.

    Raises:
        ActorValidationError: If a key is not a writable actor column.
    """
    rejected = sorted(set(fields) - WRITABLE_FIELDS)
    if rejected:
        raise ActorValidationError(
            "Some fields cannot be written",
            [FieldIssue(path=name, message="Unknown or read-only field") for name in rejected],
        )
    for name, value in fields.items():
        setattr(actor, name, value)
    return sorted(fields)


def mark_tab_completed(actor: Actor, tab_name: str) -> list[str]:
    """Record a saved tab; reassigns the list so the JSON column is flagged dirty."""
    completed = list(actor.tabs_completed or [])
    if tab_name not in completed:
        completed.append(tab_name)
    actor.tabs_completed = completed
    return completed


def _reference_dicts(references: Iterable[Any] | None, schema) -> list[dict[str, Any]]:
    return [
        {name: getattr(reference, name, None) for name in schema.model_fields}
        for reference in references or []
    ]


def record_from_actor(actor: Actor, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Flatten an actor and its references into the mapping strict schemas validate."""
    record = {name: getattr(actor, name, None) for name in ACTOR_COLUMNS}
    record["personal_references"] = _reference_dicts(actor.personal_references, PersonalReferenceIn)
    record["commercial_references"] = _reference_dicts(
        actor.commercial_references, CommercialReferenceIn
    )
    if overrides:
        record.update(overrides)
    return record


async def replace_references(
    session: AsyncSession,
    actor: Actor,
    personal: list[dict[str, Any]] | None = None,
    commercial: list[dict[str, Any]] | None = None,
) -> None:
    """Replace the actor's reference set(s) inside a savepoint.

    The old rows are deleted (delete-orphan) and the new ones inserted when
    the savepoint is released. A failure rolls back only the savepoint; the
    caller decides whether the enclosing transaction survives.

    Raises:
        SecondaryWriteFailure: If the delete or insert fails.
    """
    if personal is None and commercial is None:
        return
    actor_id = actor.id
    try:
        async with session.begin_nested():
            if personal is not None:
                actor.personal_references = [PersonalReference(**ref) for ref in personal]
            if commercial is not None:
                actor.commercial_references = [CommercialReference(**ref) for ref in commercial]
            await session.flush()
    except SQLAlchemyError as exc:
        # The savepoint rollback expires the actor; reload it so callers can keep using it.
        await session.refresh(actor)
        await session.refresh(actor, _ACTOR_COLLECTIONS)
        raise SecondaryWriteFailure(f"Reference replacement failed for actor {actor_id}") from exc


def actor_display_name(actor: Actor) -> str:
    if actor.entity_type == EntityType.COMPANY:
        return actor.company_name or ""
    parts = (actor.first_name, actor.middle_name, actor.paternal_last_name, actor.maternal_last_name)
    return " ".join(part for part in parts if part)


async def save_co_owners(
    session: AsyncSession,
    primary: Actor,
    landlords: list,
    *,
    skip_validation: bool = False,
) -> list[Actor]:
    """Save the owner information of every co-owner of a property.

    Entries with an ``id`` update that landlord, entries without one create a
    new co-owner, and non-primary landlords missing from the list are
    removed. Exactly one landlord stays primary: the flagged entry, or the
    current primary when none is flagged.

    Args:
        primary: The landlord the request was made for (identifies the policy).
        landlords: ``CoOwnerIn`` entries.
        skip_validation: Persist owner fields without the owner-info schema.

    Raises:
        ActorValidationError: Unknown landlord id, several primaries, or
            owner data rejected by the schema (paths are prefixed with the
            entry index).
    """
    existing = {
        landlord.id: landlord
        for landlord in await list_policy_actors(session, primary.policy_id, ActorType.LANDLORD)
    }
    flagged = [index for index, entry in enumerate(landlords) if entry.is_primary]
    if len(flagged) > 1:
        raise ActorValidationError(
            "Only one landlord can be primary",
            [FieldIssue(path=f"landlords.{index}.is_primary", message="Duplicate primary") for index in flagged],
        )

    saved: list[Actor] = []
    for index, entry in enumerate(landlords):
        if entry.id is not None:
            landlord = existing.get(entry.id)
            if landlord is None:
                raise ActorValidationError(
                    "Unknown landlord",
                    [FieldIssue(path=f"landlords.{index}.id", message="Not a landlord of this policy")],
                )
        else:
            # Empty collections up front so serializing never lazy-loads.
            landlord = Landlord(
                policy_id=primary.policy_id,
                is_primary=False,
                tabs_completed=[],
                personal_references=[],
                commercial_references=[],
                documents=[],
            )
            session.add(landlord)

        overrides = {"entity_type": entry.entity_type, **entry.data}
        fields = dict(entry.data)
        if not skip_validation:
            variant = resolve_variant(ActorType.LANDLORD, landlord, overrides)
            try:
                fields = validate_tab(ActorType.LANDLORD, "owner-info", variant, entry.data)
            except ActorValidationError as exc:
                exc.issues = [
                    FieldIssue(path=f"landlords.{index}.{issue.path}", message=issue.message)
                    for issue in exc.issues
                ]
                raise
        apply_fields(landlord, {"entity_type": entry.entity_type, **fields})
        mark_tab_completed(landlord, "owner-info")
        saved.append(landlord)

    kept_ids = {landlord.id for landlord in saved if landlord.id is not None}
    for landlord_id, landlord in existing.items():
        if landlord_id not in kept_ids and not landlord.is_primary:
            await session.delete(landlord)
            logger.info("Co-owner landlord %s removed from policy %s", landlord_id, primary.policy_id)

    new_primary = saved[flagged[0]] if flagged else None
    if new_primary is not None and not new_primary.is_primary:
        # Demote before promoting: the partial unique index allows one primary per policy.
        for landlord in existing.values():
            landlord.is_primary = False
        await session.flush()
        new_primary.is_primary = True
        logger.info("Landlord primary changed on policy %s", primary.policy_id)

    await session.flush()
    for landlord in saved:
        await ensure_actor_token(session, landlord)
    return saved


_DISCRIMINANTS = frozenset({"entity_type", "nationality", "guarantee_method"})
FORM_FIELDS: tuple[str, ...] = tuple(sorted(WRITABLE_FIELDS - _DISCRIMINANTS))


def build_actor_response(actor: Actor, *, include_portal_url: bool = False) -> ActorResponse:
    """Serialize an actor; the portal link is only shown to staff sessions."""
    return ActorResponse(
        id=actor.id,
        policy_id=actor.policy_id,
        actor_type=actor.actor_type,
        entity_type=actor.entity_type,
        nationality=None if actor.is_company else actor.nationality,
        guarantee_method=actor.guarantee_method,
        is_primary=bool(actor.is_primary),
        display_name=actor_display_name(actor),
        information_complete=bool(actor.information_complete),
        completed_at=actor.completed_at,
        verification_status=actor.verification_status,
        verified_at=actor.verified_at,
        rejection_reason=actor.rejection_reason,
        tabs_completed=list(actor.tabs_completed or []),
        fields={name: getattr(actor, name, None) for name in FORM_FIELDS},
        personal_references=[
            PersonalReferenceOut.model_validate(ref) for ref in actor.personal_references or []
        ],
        commercial_references=[
            CommercialReferenceOut.model_validate(ref) for ref in actor.commercial_references or []
        ],
        portal_url=actor_portal_url(actor) if include_portal_url and actor.access_token else None,
        token_expiry=actor.token_expiry if include_portal_url else None,
    )
