# This project was developed with assistance from AI tools.
"""Actor submission.

``submit_actor`` is the only way an actor becomes complete with validation;
``force_submit_actor`` is the only way without it. A rejected submission is
a normal outcome reported through ``SubmissionResult``, never an exception,
and leaves the record untouched. Staff then review complete actors with
``verify_actor``.
"""

import logging
from datetime import UTC, datetime
from typing import Literal

from db import Actor
from db.enums import ActorType, DocumentUploadStatus, VerificationStatus
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import can_skip_validation
from ..core.errors import ActorAuthError, ActorValidationError, FieldIssue, PolicyOperationError
from ..schemas.actor import SubmissionResult
from ..schemas.auth import UserContext
from ..schemas.landlord import PRIMARY_PAYOUT_FIELDS
from .actors import record_from_actor
from .audit import write_audit_event
from .document_requirements import missing_documents
from .policy import check_all_approved_and_transition, check_and_transition
from .variants import resolve_variant, validate_strict

logger = logging.getLogger(__name__)


def uploaded_categories(actor: Actor) -> set:
    """Categories with at least one confirmed upload."""
    return {
        document.category
        for document in actor.documents or []
        if document.upload_status == DocumentUploadStatus.COMPLETE
    }


def collect_submission_issues(actor: Actor) -> tuple[list[FieldIssue], list]:
    """Everything keeping the actor from completing: field issues and missing documents."""
    variant = resolve_variant(actor.actor_type, actor)
    record = record_from_actor(actor)
    issues = validate_strict(variant, record)

    if actor.actor_type == ActorType.LANDLORD and actor.is_primary:
        for name in PRIMARY_PAYOUT_FIELDS:
            if not record.get(name):
                issues.append(FieldIssue(path=name, message="Required for the primary landlord"))

    missing = [] if variant.awaiting_guarantee_method else missing_documents(
        variant, uploaded_categories(actor)
    )
    issues.extend(
        FieldIssue(path=f"documents.{category.value}", message="Required document missing")
        for category in missing
    )
    return issues, missing


async def _complete(
    session: AsyncSession,
    actor: Actor,
    *,
    performed_by: str,
    role: str | None,
    now: datetime,
) -> None:
    actor.information_complete = True
    actor.completed_at = now
    actor.completed_by = performed_by
    actor.verification_status = VerificationStatus.IN_REVIEW
    await session.flush()
    await check_and_transition(session, actor.policy_id, performed_by=performed_by, role=role)


async def submit_actor(
    session: AsyncSession,
    actor: Actor,
    *,
    submitted_by: str,
    role: str | None = None,
    now: datetime | None = None,
) -> SubmissionResult:
    """Validate the accumulated record and mark the actor complete.

    Joins the caller's transaction; does not commit.

    Args:
        submitted_by: User id, or the actor principal for portal submissions.
        role: Role label recorded with the audit event.

    Returns:
        ``ok=True`` with the completion time, or ``ok=False`` with every
        field issue and missing document.
    """
    if actor.information_complete:
        return SubmissionResult(ok=True, completed_at=actor.completed_at)

    issues, missing = collect_submission_issues(actor)
    if issues:
        logger.info(
            "Submission of %s actor %s rejected (%d issues)",
            actor.actor_type.value,
            actor.id,
            len(issues),
        )
        return SubmissionResult(ok=False, issues=issues, missing_documents=missing)

    now = now or datetime.now(UTC)
    await write_audit_event(
        session,
        event_type="actor_submitted",
        user_id=submitted_by,
        user_role=role,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={"actor_type": actor.actor_type.value},
    )
    await _complete(session, actor, performed_by=submitted_by, role=role, now=now)
    logger.info("%s actor %s submitted", actor.actor_type.value, actor.id)
    return SubmissionResult(ok=True, completed_at=now)


async def force_submit_actor(
    session: AsyncSession,
    actor: Actor,
    *,
    by: UserContext,
    reason: str,
    now: datetime | None = None,
) -> SubmissionResult:
    """Mark an actor complete without validation.

    The bypassed issues are recorded in an ``actor_force_submitted`` audit
    event together with who forced it and why. Joins the caller's
    transaction; does not commit.

    Raises:
        ActorAuthError: If the user is not admin or staff (403).
    """
    if not can_skip_validation(by.role):
        logger.warning("Force submit refused for user %s (role %s)", by.user_id, by.role.value)
        raise ActorAuthError("Only staff can force a submission", status_code=403)

    issues, missing = collect_submission_issues(actor)
    now = now or datetime.now(UTC)
    await write_audit_event(
        session,
        event_type="actor_force_submitted",
        user_id=by.user_id,
        user_role=by.role.value,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={
            "actor_type": actor.actor_type.value,
            "reason": reason,
            "forced_at": now.isoformat(),
            "bypassed_fields": sorted({issue.path for issue in issues}),
            "missing_documents": [category.value for category in missing],
        },
    )
    await _complete(session, actor, performed_by=by.user_id, role=by.role.value, now=now)
    logger.warning(
        "%s actor %s force-submitted by %s (%d issues bypassed)",
        actor.actor_type.value,
        actor.id,
        by.user_id,
        len(issues),
    )
    return SubmissionResult(ok=True, forced=True, completed_at=now, issues=issues, missing_documents=missing)


async def verify_actor(
    session: AsyncSession,
    user: UserContext,
    actor: Actor,
    action: Literal["approve", "reject"],
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    """Record the staff review of a completed actor.

    Approving sets ``verified_at``/``verified_by`` and, once every actor of
    the policy is approved, moves an UNDER_INVESTIGATION policy to
    PENDING_APPROVAL. Rejecting stores the reason; the actor keeps its data.
    Joins the caller's transaction; does not commit.

    Returns:
        True when the policy changed status.

    Raises:
        ActorAuthError: If the user is not admin or staff (403).
        ActorValidationError: If a rejection has no reason.
        PolicyOperationError: If the actor has not completed its information.
    """
    if not can_skip_validation(user.role):
        logger.warning("Verification refused for user %s (role %s)", user.user_id, user.role.value)
        raise ActorAuthError("Only staff can verify actors", status_code=403)
    if action == "reject" and not reason:
        raise ActorValidationError(
            "A rejection needs a reason", [FieldIssue(path="reason", message="Required to reject")]
        )
    if not actor.information_complete:
        raise PolicyOperationError(f"{actor.actor_type.value} {actor.id} has not completed its information")

    now = now or datetime.now(UTC)
    outcome = "approved" if action == "approve" else "rejected"
    previous = actor.verification_status
    if action == "approve":
        actor.verification_status = VerificationStatus.APPROVED
        actor.verified_at = now
        actor.verified_by = user.user_id
        actor.rejection_reason = None
    else:
        actor.verification_status = VerificationStatus.REJECTED
        actor.verified_at = None
        actor.verified_by = None
        actor.rejection_reason = reason

    await write_audit_event(
        session,
        event_type=f"actor_{outcome}",
        user_id=user.user_id,
        user_role=user.role.value,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={
            "actor_type": actor.actor_type.value,
            "from": previous.value if previous else None,
            "reason": reason,
        },
    )
    await session.flush()
    logger.info("%s actor %s %s by %s", actor.actor_type.value, actor.id, outcome, user.user_id)
    if action != "approve":
        return False
    return await check_all_approved_and_transition(
        session, actor.policy_id, performed_by=user.user_id, role=user.role.value
    )
