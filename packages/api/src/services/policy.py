# This project was developed with assistance from AI tools.
"""Policy service with role-based data scope filtering.

Brokers see the policies they manage; admin and staff see all. Every
operation that changes a policy writes an audit event in the same
transaction and commits once. Notifications are dispatched after the
commit and never fail the operation.
"""

import logging
import secrets
import string
from collections.abc import Iterable
from datetime import UTC, datetime

from db import (
    ACTOR_MODELS,
    Actor,
    ActorHistory,
    Policy,
)
from db.enums import (
    ActorType,
    PolicyStatus,
    UserRole,
    VerificationStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.errors import InvalidTransitionError, PolicyOperationError
from ..schemas.auth import UserContext
from ..schemas.policy import (
    ActorProgress,
    ActorSeed,
    GuarantorTypeChange,
    PolicyCreate,
    PolicyProgress,
    ReplaceTenantRequest,
    check_guarantors,
)
from .actors import WRITABLE_FIELDS, actor_display_name, list_policy_actors
from .audit import write_audit_event
from .notification import (
    dispatch,
    send_incomplete_actor_info_notification,
    send_tenant_replacement_notification,
)
from .scope import apply_data_scope
from .tokens import ensure_actor_token, renew_actor_token
from .wizard import WizardState

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = PolicyStatus.terminal_stages()
_ACTOR_CHANGE_STATUSES = PolicyStatus.actor_change_stages()

# Non-nullable columns and the value a reset actor starts from.
_RESET_DEFAULTS = {
    "has_additional_income": False,
    "has_pets": False,
    "requires_cfdi": False,
}

_HISTORY_FIELDS = (
    "entity_type",
    "first_name",
    "middle_name",
    "paternal_last_name",
    "maternal_last_name",
    "company_name",
    "email",
    "phone",
    "rfc",
    "occupation",
    "employer_name",
    "monthly_income",
    "information_complete",
)

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_policy_number(now: datetime | None = None) -> str:
    """``POL-YYYYMMDD-XXX`` with a random alphanumeric suffix."""
    now = now or datetime.now(UTC)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(3))
    return f"POL-{now:%Y%m%d}-{suffix}"


def _policy_query():
    # populate_existing refreshes actor collections already in the identity map
    return (
        select(Policy)
        .options(selectinload(Policy.actors))
        .execution_options(populate_existing=True)
    )


async def list_policies(
    session: AsyncSession,
    user: UserContext,
    *,
    offset: int = 0,
    limit: int = 20,
    filter_status: PolicyStatus | None = None,
) -> tuple[list[Policy], int]:
    """Return policies visible to the current user, newest first."""
    count_stmt = select(func.count(Policy.id))
    count_stmt = apply_data_scope(count_stmt, user.data_scope, user)
    if filter_status is not None:
        count_stmt = count_stmt.where(Policy.status == filter_status)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = _policy_query().order_by(Policy.created_at.desc()).offset(offset).limit(limit)
    stmt = apply_data_scope(stmt, user.data_scope, user)
    if filter_status is not None:
        stmt = stmt.where(Policy.status == filter_status)
    result = await session.execute(stmt)
    return list(result.unique().scalars().all()), total


async def get_policy(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
) -> Policy | None:
    """Return a single policy if visible to the current user.

    Returns None (which the route maps to 404) for out-of-scope policies
    rather than 403, to avoid leaking existence of resources.
    """
    stmt = _policy_query().where(Policy.id == policy_id)
    stmt = apply_data_scope(stmt, user.data_scope, user)
    result = await session.execute(stmt)
    return result.unique().scalar_one_or_none()


def _new_actor(actor_type: ActorType, policy_id: int, seed: ActorSeed, *, is_primary: bool = False) -> Actor:
    fields = seed.model_dump(exclude_none=True, exclude={"is_primary"})
    return ACTOR_MODELS[actor_type](
        policy_id=policy_id,
        is_primary=is_primary,
        tabs_completed=[],
        verification_status=VerificationStatus.PENDING,
        **_RESET_DEFAULTS,
        **fields,
    )


def _add_guarantors(
    session: AsyncSession,
    policy_id: int,
    joint_obligors: Iterable[ActorSeed],
    avals: Iterable[ActorSeed],
) -> list[Actor]:
    created = [_new_actor(ActorType.JOINT_OBLIGOR, policy_id, seed) for seed in joint_obligors]
    created += [_new_actor(ActorType.AVAL, policy_id, seed) for seed in avals]
    for actor in created:
        session.add(actor)
    return created


async def _issue_tokens(session: AsyncSession, actors: Iterable[Actor]) -> None:
    for actor in actors:
        await ensure_actor_token(session, actor)


def _audit_user(user: UserContext) -> dict:
    return {"user_id": user.user_id, "user_role": user.role.value}


def _invite(policy_id: int, actors: Iterable[Actor]) -> None:
    dispatch(send_incomplete_actor_info_notification(policy_id, actors), name=f"invite-policy-{policy_id}")


def _check_transition(policy: Policy, new_status: PolicyStatus) -> None:
    current = policy.status or PolicyStatus.DRAFT
    allowed = PolicyStatus.valid_transitions().get(current, frozenset())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition from '{current.value}' to '{new_status.value}'. "
            f"Allowed: {sorted(s.value for s in allowed) if allowed else 'none (terminal status)'}."
        )


async def _set_status(
    session: AsyncSession,
    policy: Policy,
    new_status: PolicyStatus,
    *,
    user_id: str,
    user_role: str | None,
    reason: str | None = None,
) -> None:
    _check_transition(policy, new_status)
    previous = policy.status
    policy.status = new_status
    await write_audit_event(
        session,
        event_type="policy_status_changed",
        user_id=user_id,
        user_role=user_role,
        policy_id=policy.id,
        event_data={"from": previous.value, "to": new_status.value, "reason": reason},
    )
    logger.info("Policy %s moved from %s to %s", policy.id, previous.value, new_status.value)


async def create_policy(session: AsyncSession, user: UserContext, data: PolicyCreate) -> Policy:
    """Create a DRAFT policy with all of its actors and their portal tokens.

    With ``send_invitations`` the policy moves straight to COLLECTING_INFO
    and every actor is invited.
    """
    managed_by = user.user_id if user.role == UserRole.BROKER else (data.managed_by or user.user_id)
    policy = Policy(
        policy_number=generate_policy_number(),
        status=PolicyStatus.DRAFT,
        guarantor_type=data.guarantor_type,
        property_address_details=(
            data.property_address_details.model_dump(exclude_none=True)
            if data.property_address_details
            else None
        ),
        property_type=data.property_type,
        rent_amount=data.rent_amount,
        deposit_amount=data.deposit_amount,
        contract_length_months=data.contract_length_months,
        start_date=data.start_date,
        end_date=data.end_date,
        managed_by=managed_by,
        created_by=user.user_id,
    )
    session.add(policy)
    await session.flush()

    primary_index = next(
        (index for index, landlord in enumerate(data.landlords) if landlord.is_primary), 0
    )
    actors = [_new_actor(ActorType.TENANT, policy.id, data.tenant)]
    actors += [
        _new_actor(ActorType.LANDLORD, policy.id, landlord, is_primary=index == primary_index)
        for index, landlord in enumerate(data.landlords)
    ]
    for actor in actors:
        session.add(actor)
    actors += _add_guarantors(session, policy.id, data.joint_obligors, data.avals)
    await session.flush()
    await _issue_tokens(session, actors)

    await write_audit_event(
        session,
        event_type="policy_created",
        policy_id=policy.id,
        event_data={
            "policy_number": policy.policy_number,
            "guarantor_type": data.guarantor_type.value,
            "actor_ids": [actor.id for actor in actors],
        },
        **_audit_user(user),
    )
    if data.send_invitations:
        await _set_status(
            session,
            policy,
            PolicyStatus.COLLECTING_INFO,
            reason="Invitations sent at creation",
            **_audit_user(user),
        )

    policy_id = policy.id  # capture before commit
    await session.commit()
    logger.info("Policy %s created by %s with %d actors", policy_id, user.user_id, len(actors))

    if data.send_invitations:
        _invite(policy_id, actors)

    # Re-query with eager loading to avoid lazy-load in async context
    return await get_policy(session, user, policy_id)


async def update_status(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    new_status: PolicyStatus,
    notes: str | None = None,
) -> Policy | None:
    """Move a policy to a new status.

    Returns None if the policy is not found or not accessible.

    Raises:
        InvalidTransitionError: If the transition is not allowed.
    """
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None
    if new_status == PolicyStatus.CANCELLED:
        return await cancel_policy(session, user, policy_id, notes or "Cancelled")

    await _set_status(session, policy, new_status, reason=notes, **_audit_user(user))
    await session.commit()
    return await get_policy(session, user, policy_id)


async def cancel_policy(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    reason: str,
) -> Policy | None:
    """Cancel a policy. Cancellation is terminal.

    Raises:
        InvalidTransitionError: If the policy is already cancelled or expired.
    """
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None

    _check_transition(policy, PolicyStatus.CANCELLED)
    previous = policy.status
    policy.status = PolicyStatus.CANCELLED
    policy.cancellation_reason = reason
    policy.cancelled_at = datetime.now(UTC)
    policy.cancelled_by = user.user_id
    await write_audit_event(
        session,
        event_type="policy_cancelled",
        policy_id=policy.id,
        event_data={"from": previous.value, "reason": reason},
        **_audit_user(user),
    )
    await session.commit()
    logger.info("Policy %s cancelled by %s", policy_id, user.user_id)
    return await get_policy(session, user, policy_id)


def _require_actor_change_status(policy: Policy, operation: str) -> None:
    if policy.status not in _ACTOR_CHANGE_STATUSES:
        raise PolicyOperationError(
            f"Cannot {operation} on a policy with status {policy.status.value}"
        )


def _archive(session: AsyncSession, actor: Actor, user: UserContext, reason: str) -> ActorHistory:
    """Snapshot an actor before it is reset or deleted."""
    history = ActorHistory(
        policy_id=actor.policy_id,
        actor_type=actor.actor_type,
        employment_status=actor.employment_status.value if actor.employment_status else None,
        verification_status=actor.verification_status.value if actor.verification_status else None,
        replaced_by=user.user_id,
        replacement_reason=reason,
        **{name: getattr(actor, name) for name in _HISTORY_FIELDS},
    )
    session.add(history)
    return history


def _reset_actor(actor: Actor, seed: ActorSeed) -> None:
    """Clear every form field and lifecycle flag, keeping the row and its id.

    Documents are unlinked (the stored objects stay with the policy) and
    references are deleted. The caller issues a fresh token.
    """
    for name in WRITABLE_FIELDS:
        setattr(actor, name, _RESET_DEFAULTS.get(name))
    for name, value in seed.model_dump(exclude_none=True).items():
        setattr(actor, name, value)
    actor.personal_references = []
    actor.commercial_references = []
    actor.documents = []
    actor.tabs_completed = []
    actor.information_complete = False
    actor.completed_at = None
    actor.completed_by = None
    actor.verification_status = VerificationStatus.PENDING
    actor.verified_at = None
    actor.verified_by = None
    actor.rejection_reason = None
    actor.access_token = None
    actor.token_expiry = None


async def _remove_guarantors(
    session: AsyncSession,
    actors: Iterable[Actor],
    user: UserContext,
    reason: str,
) -> list[int]:
    removed = []
    for actor in actors:
        if not actor.actor_type.is_guarantor:
            continue
        _archive(session, actor, user, reason)
        # Documents keep their stored object; the link is nulled on delete.
        actor.documents = []
        await session.delete(actor)
        removed.append(actor.id)
    return removed


async def _reopen_collection(session: AsyncSession, policy: Policy, user: UserContext, reason: str) -> None:
    """Send a policy past COLLECTING_INFO back to it."""
    if policy.status not in (PolicyStatus.DRAFT, PolicyStatus.COLLECTING_INFO):
        await _set_status(session, policy, PolicyStatus.COLLECTING_INFO, reason=reason, **_audit_user(user))


async def replace_tenant(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    data: ReplaceTenantRequest,
) -> Policy | None:
    """Replace the tenant of a policy that is not active yet.

    The current tenant (and, when asked, every guarantor) is archived to
    ``ActorHistory``. The tenant row is reset for the new tenant and gets a
    fresh token; replaced guarantors are deleted and recreated from the
    request.

    Raises:
        PolicyOperationError: Wrong policy status, no tenant, or guarantors
            that do not match the guarantor type.
    """
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None
    _require_actor_change_status(policy, "replace the tenant")

    actors = await list_policy_actors(session, policy_id)
    tenant = next((actor for actor in actors if actor.actor_type == ActorType.TENANT), None)
    if tenant is None:
        raise PolicyOperationError("No tenant found to replace")

    new_guarantors: list[Actor] = []
    removed: list[int] = []
    if data.replace_guarantors:
        guarantor_type = data.guarantor_type or policy.guarantor_type
        try:
            check_guarantors(guarantor_type, data.joint_obligors, data.avals)
        except ValueError as exc:
            raise PolicyOperationError(str(exc)) from exc

    _archive(session, tenant, user, data.reason)
    _reset_actor(tenant, data.new_tenant)

    if data.replace_guarantors:
        removed = await _remove_guarantors(session, actors, user, data.reason)
        policy.guarantor_type = guarantor_type
        new_guarantors = _add_guarantors(session, policy.id, data.joint_obligors, data.avals)

    await session.flush()
    await renew_actor_token(session, tenant)
    await _issue_tokens(session, new_guarantors)
    await _reopen_collection(session, policy, user, "Tenant replaced")
    await write_audit_event(
        session,
        event_type="tenant_replaced",
        policy_id=policy.id,
        actor_id=tenant.id,
        event_data={
            "reason": data.reason,
            "replaced_guarantors": data.replace_guarantors,
            "removed_actor_ids": removed,
            "new_actor_ids": [actor.id for actor in new_guarantors],
        },
        **_audit_user(user),
    )
    managed_by = policy.managed_by
    invite = policy.status != PolicyStatus.DRAFT
    await session.commit()
    logger.info("Tenant %s replaced on policy %s", tenant.id, policy_id)

    dispatch(send_tenant_replacement_notification(policy_id, managed_by), name=f"tenant-replaced-{policy_id}")
    if invite:
        _invite(policy_id, (tenant, *new_guarantors))
    return await get_policy(session, user, policy_id)


async def change_guarantor_type(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    data: GuarantorTypeChange,
) -> Policy | None:
    """Replace every guarantor of a policy with a new set of another type.

    Raises:
        PolicyOperationError: Wrong policy status or unchanged guarantor type.
    """
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None
    _require_actor_change_status(policy, "change the guarantor type")
    if data.new_type == policy.guarantor_type:
        raise PolicyOperationError(f"Guarantor type is already {data.new_type.value}")

    previous = policy.guarantor_type
    actors = await list_policy_actors(session, policy_id)
    removed = await _remove_guarantors(session, actors, user, data.reason)
    policy.guarantor_type = data.new_type
    created = _add_guarantors(session, policy.id, data.joint_obligors, data.avals)
    await session.flush()
    await _issue_tokens(session, created)
    await _reopen_collection(session, policy, user, "Guarantor type changed")
    await write_audit_event(
        session,
        event_type="guarantor_type_changed",
        policy_id=policy.id,
        event_data={
            "from": previous.value,
            "to": data.new_type.value,
            "reason": data.reason,
            "removed_actor_ids": removed,
            "new_actor_ids": [actor.id for actor in created],
        },
        **_audit_user(user),
    )
    invite = policy.status != PolicyStatus.DRAFT
    await session.commit()
    logger.info("Policy %s guarantor type changed %s -> %s", policy_id, previous.value, data.new_type.value)

    if invite:
        _invite(policy_id, created)
    return await get_policy(session, user, policy_id)


async def check_all_actors_complete(
    session: AsyncSession,
    policy_id: int,
) -> tuple[bool, list[Actor], list[Actor]]:
    """Return ``(all_complete, pending, completed)`` for a policy's actors.

    A policy without actors is never complete.
    """
    actors = await list_policy_actors(session, policy_id)
    pending = [actor for actor in actors if not actor.information_complete]
    completed = [actor for actor in actors if actor.information_complete]
    return bool(actors) and not pending, pending, completed


async def check_and_transition(
    session: AsyncSession,
    policy_id: int,
    *,
    performed_by: str = "system",
    role: str | None = None,
) -> bool:
    """Move a COLLECTING_INFO policy to UNDER_INVESTIGATION once every actor is complete.

    Joins the caller's transaction; does not commit. Returns True when the
    policy was transitioned.
    """
    all_complete, _, completed = await check_all_actors_complete(session, policy_id)
    if not all_complete:
        return False
    result = await session.execute(select(Policy).where(Policy.id == policy_id))
    policy = result.scalar_one_or_none()
    if policy is None or policy.status != PolicyStatus.COLLECTING_INFO:
        return False
    await _set_status(
        session,
        policy,
        PolicyStatus.UNDER_INVESTIGATION,
        user_id=performed_by,
        user_role=role,
        reason=f"All {len(completed)} actors completed their information",
    )
    return True


async def check_all_approved_and_transition(
    session: AsyncSession,
    policy_id: int,
    *,
    performed_by: str,
    role: str | None = None,
) -> bool:
    """Move an UNDER_INVESTIGATION policy to PENDING_APPROVAL once every actor is approved.

    Joins the caller's transaction; does not commit.
    """
    actors = await list_policy_actors(session, policy_id)
    if not actors or any(actor.verification_status != VerificationStatus.APPROVED for actor in actors):
        return False
    result = await session.execute(select(Policy).where(Policy.id == policy_id))
    policy = result.scalar_one_or_none()
    if policy is None or policy.status != PolicyStatus.UNDER_INVESTIGATION:
        return False
    await _set_status(
        session,
        policy,
        PolicyStatus.PENDING_APPROVAL,
        user_id=performed_by,
        user_role=role,
        reason=f"All {len(actors)} actors approved",
    )
    return True


async def get_policy_progress(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
) -> PolicyProgress | None:
    """Per-actor completion and tab progress of a policy."""
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None
    actors = await list_policy_actors(session, policy_id)
    entries = []
    for actor in actors:
        saved, total, percent = WizardState.from_actor(actor.actor_type, actor).progress()
        entries.append(
            ActorProgress(
                actor_id=actor.id,
                actor_type=actor.actor_type,
                display_name=actor_display_name(actor),
                is_primary=actor.is_primary,
                information_complete=actor.information_complete,
                tabs_saved=saved,
                tabs_total=total,
                percent=100 if actor.information_complete else percent,
            )
        )
    completed = sum(1 for entry in entries if entry.information_complete)
    return PolicyProgress(
        policy_id=policy.id,
        status=policy.status,
        all_complete=bool(entries) and completed == len(entries),
        completed=completed,
        total=len(entries),
        actors=entries,
    )


async def send_invitations(
    session: AsyncSession,
    user: UserContext,
    policy_id: int,
    actor_types: list[ActorType] | None = None,
    resend: bool = False,
) -> tuple[Policy, list[Actor]] | None:
    """Invite incomplete actors to the portal.

    A DRAFT policy moves to COLLECTING_INFO. ``resend`` renews every token
    first, so links sent earlier stop working.

    Raises:
        PolicyOperationError: If the policy is cancelled or expired.
    """
    policy = await get_policy(session, user, policy_id)
    if policy is None:
        return None
    if policy.status in _TERMINAL_STATUSES:
        raise PolicyOperationError(f"Cannot invite actors on a policy with status {policy.status.value}")

    wanted = set(actor_types) if actor_types else set(ActorType)
    actors = [
        actor
        for actor in await list_policy_actors(session, policy_id)
        if actor.actor_type in wanted and not actor.information_complete
    ]
    for actor in actors:
        if resend:
            await renew_actor_token(session, actor)
        else:
            await ensure_actor_token(session, actor)

    if policy.status == PolicyStatus.DRAFT:
        await _set_status(
            session, policy, PolicyStatus.COLLECTING_INFO, reason="Invitations sent", **_audit_user(user)
        )
    await write_audit_event(
        session,
        event_type="invitations_sent",
        policy_id=policy.id,
        event_data={"actor_ids": [actor.id for actor in actors], "resend": resend},
        **_audit_user(user),
    )
    await session.commit()
    logger.info("Invited %d actors on policy %s", len(actors), policy_id)

    _invite(policy_id, actors)
    refreshed = await get_policy(session, user, policy_id)
    return refreshed, actors
