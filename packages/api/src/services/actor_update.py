# This project was developed with assistance from AI tools.
"""Actor update orchestration.

One call saves one tab (or a set of fields) for one actor:

1. refuse principals that may not edit the actor,
2. check the tab exists and every sent field belongs to it,
3. validate against the tab schema of the resolved variant (unless a staff
   session asked to skip validation),
4. persist the normalized fields and record the tab as saved,
5. replace references when sent,
6. submit the actor when the last tab was saved and ``partial`` is not False,
7. commit once.

A rejected submission is reported in the result and never undoes the save.
A failed reference replacement either fails the whole call (``strict``) or
is reported alongside a successful save (``best-effort``), depending on
``REFERENCE_FAILURE_MODE``.
"""

import logging
from collections.abc import Iterable
from typing import Literal

from db import Actor
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import (
    ActorAuthError,
    ActorValidationError,
    FieldIssue,
    SecondaryWriteFailure,
)
from ..schemas.actor import (
    ActorAdminUpdateRequest,
    ActorResponse,
    ActorSelfUpdateRequest,
    ActorUpdateRequest,
    ActorUpdateResult,
    CoOwnersRequest,
    SubmissionResult,
    TabProgress,
    VerifyActorRequest,
)
from ..schemas.auth import ActorAuthContext, UserContext
from .actors import (
    apply_fields,
    build_actor_response,
    mark_tab_completed,
    record_from_actor,
    replace_references,
    save_co_owners,
)
from .audit import write_audit_event
from .notification import dispatch, send_actor_rejection_notification
from .submission import force_submit_actor, submit_actor, verify_actor
from .tabs import get_tab_fields, get_tabs, is_last_tab
from .variants import (
    VariantTag,
    get_tab_schema,
    resolve_variant,
    validate_fields,
    validate_references,
    validate_self_update,
    validate_tab,
)
from .wizard import WizardState

logger = logging.getLogger(__name__)

FailureMode = Literal["strict", "best-effort"]

_FORCED_COMPLETION_REASON = "Marked complete by staff with validation skipped"


def _require_edit(auth: ActorAuthContext, actor: Actor) -> None:
    if not auth.can_edit or (auth.auth_type == "token" and actor.information_complete):
        logger.warning("Write refused for %s actor %s (%s principal)", auth.actor_type.value, actor.id, auth.auth_type)
        raise ActorAuthError("Invalid or expired token", status_code=401)


def _skip_requested(auth: ActorAuthContext, requested: bool) -> bool:
    if requested and not auth.skip_validation_allowed:
        logger.warning("skip_validation ignored for %s principal %s", auth.auth_type, auth.performed_by)
        return False
    return requested


def check_tab_fields(auth: ActorAuthContext, tab_name: str, data: Iterable[str]) -> None:
    """Reject fields that no variant of the tab declares.

    Raises:
        TabConfigurationError: Unknown tab for the actor type.
        ActorValidationError: One issue per field outside the tab.
    """
    allowed = get_tab_fields(auth.actor_type, tab_name)
    outside = sorted(set(data) - allowed)
    if outside:
        raise ActorValidationError(
            f"Fields do not belong to tab '{tab_name}'",
            [FieldIssue(path=name, message=f"Not a field of tab '{tab_name}'") for name in outside],
        )


def progress_of(actor: Actor) -> TabProgress:
    state = WizardState.from_actor(actor.actor_type, actor)
    saved, total, percent = state.progress()
    return TabProgress(saved=saved, total=total, percent=percent, all_tabs_saved=state.all_tabs_saved)


async def _replace_references(
    session: AsyncSession,
    auth: ActorAuthContext,
    actor: Actor,
    variant: VariantTag,
    personal: list | None,
    commercial: list | None,
    mode: FailureMode,
) -> str | None:
    """Replace references; returns the failure message in best-effort mode."""
    personal, commercial = validate_references(variant, personal, commercial)
    try:
        await replace_references(session, actor, personal, commercial)
    except SecondaryWriteFailure as exc:
        if mode == "strict":
            logger.error("Reference replacement failed for actor %s; update rolled back", actor.id)
            raise
        logger.warning("Reference replacement failed for actor %s; field save kept", actor.id)
        await write_audit_event(
            session,
            event_type="reference_write_failed",
            user_id=auth.performed_by,
            user_role=auth.role_label,
            policy_id=actor.policy_id,
            actor_id=actor.id,
            event_data={"actor_type": actor.actor_type.value, "mode": mode},
        )
        return str(exc)
    return None


async def update_actor(
    session: AsyncSession,
    auth: ActorAuthContext,
    actor: Actor,
    request: ActorUpdateRequest,
    *,
    failure_mode: FailureMode | None = None,
) -> ActorUpdateResult:
    """Save one tab (or loose fields) of an actor and auto-submit on the last tab.

    Args:
        auth: Resolved principal; token principals never skip validation.
        actor: The actor, loaded with references and documents.
        request: Field data plus metadata.
        failure_mode: Overrides ``REFERENCE_FAILURE_MODE``.

    Raises:
        ActorAuthError: The principal may not edit this actor.
        TabConfigurationError: Unknown or inapplicable tab.
        ActorValidationError: Fields outside the tab or rejected values.
        SecondaryWriteFailure: References failed in strict mode.
    """
    _require_edit(auth, actor)
    mode: FailureMode = failure_mode or settings.REFERENCE_FAILURE_MODE
    skip = _skip_requested(auth, request.skip_validation)
    tab_name = request.tab_name
    data = request.data

    if tab_name is not None:
        check_tab_fields(auth, tab_name, data)
    variant = resolve_variant(auth.actor_type, actor, data)

    if tab_name is not None:
        # Applicability is checked even when validation is skipped.
        get_tab_schema(auth.actor_type, tab_name, variant)
        fields = dict(data) if skip else validate_tab(auth.actor_type, tab_name, variant, data)
    else:
        fields = dict(data) if skip else validate_fields(auth.actor_type, variant, data)

    written = apply_fields(actor, fields)
    if tab_name is not None:
        mark_tab_completed(actor, tab_name)
    logger.info(
        "%s actor %s saved tab=%s fields=%s skip_validation=%s",
        auth.actor_type.value,
        actor.id,
        tab_name,
        written,
        skip,
    )
    await write_audit_event(
        session,
        event_type="actor_tab_saved",
        user_id=auth.performed_by,
        user_role=auth.role_label,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={"tab": tab_name, "fields": written, "skip_validation": skip},
    )

    reference_error = None
    if request.personal_references is not None or request.commercial_references is not None:
        reference_error = await _replace_references(
            session,
            auth,
            actor,
            variant,
            request.personal_references,
            request.commercial_references,
            mode,
        )
    await session.flush()

    submitted = False
    submission_issues: list[FieldIssue] = []
    if is_last_tab(auth.actor_type, tab_name) and request.partial is not False:
        outcome = await submit_actor(
            session, actor, submitted_by=auth.performed_by, role=auth.role_label
        )
        submitted = outcome.ok
        submission_issues = outcome.issues
    elif request.information_complete and skip and auth.user is not None:
        outcome = await force_submit_actor(session, actor, by=auth.user, reason=_FORCED_COMPLETION_REASON)
        submitted = outcome.ok

    await session.commit()
    return ActorUpdateResult(
        actor=build_actor_response(actor, include_portal_url=auth.user is not None),
        submitted=submitted,
        submission_issues=submission_issues,
        reference_error=reference_error,
        tabs_completed=list(actor.tabs_completed or []),
        progress=progress_of(actor),
    )


async def update_self(
    session: AsyncSession,
    auth: ActorAuthContext,
    actor: Actor,
    request: ActorSelfUpdateRequest,
) -> ActorUpdateResult:
    """Save a whole record from the portal after checking it against the completion schema.

    Tab order is not enforced; every applicable tab that needs saving is
    recorded as saved. The actor still submits separately.

    Raises:
        ActorAuthError: The principal may not edit this actor.
        ActorValidationError: Unknown fields, or a record that would not complete.
    """
    _require_edit(auth, actor)
    variant = resolve_variant(auth.actor_type, actor, request.data)
    fields = validate_fields(auth.actor_type, variant, request.data)
    personal, commercial = validate_references(
        variant, request.personal_references, request.commercial_references
    )

    overrides = dict(fields)
    if personal is not None:
        overrides["personal_references"] = personal
    if commercial is not None:
        overrides["commercial_references"] = commercial
    validate_self_update(auth.actor_type, record_from_actor(actor, overrides))

    written = apply_fields(actor, fields)
    for tab in get_tabs(auth.actor_type, variant.is_company):
        if tab.needs_save:
            mark_tab_completed(actor, tab.id)
    await write_audit_event(
        session,
        event_type="actor_tab_saved",
        user_id=auth.performed_by,
        user_role=auth.role_label,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={"tab": None, "fields": written, "self_update": True},
    )
    await replace_references(session, actor, personal, commercial)
    await session.commit()
    logger.info("%s actor %s saved full record", auth.actor_type.value, actor.id)
    return ActorUpdateResult(
        actor=build_actor_response(actor, include_portal_url=auth.user is not None),
        tabs_completed=list(actor.tabs_completed or []),
        progress=progress_of(actor),
    )


async def update_co_owners(
    session: AsyncSession,
    auth: ActorAuthContext,
    primary: Actor,
    request: CoOwnersRequest,
) -> list[ActorResponse]:
    """Save the owner information of every landlord on the policy.

    Raises:
        ActorAuthError: The principal may not edit this landlord.
        ActorValidationError: Invalid owner data, unknown ids or several primaries.
    """
    _require_edit(auth, primary)
    skip = _skip_requested(auth, request.skip_validation)
    saved = await save_co_owners(session, primary, request.landlords, skip_validation=skip)
    await write_audit_event(
        session,
        event_type="actor_tab_saved",
        user_id=auth.performed_by,
        user_role=auth.role_label,
        policy_id=primary.policy_id,
        actor_id=primary.id,
        event_data={
            "tab": "owner-info",
            "landlord_ids": [landlord.id for landlord in saved],
            "skip_validation": skip,
        },
    )
    await session.commit()
    include_link = auth.user is not None
    return [build_actor_response(landlord, include_portal_url=include_link) for landlord in saved]


async def update_by_admin(
    session: AsyncSession,
    auth: ActorAuthContext,
    actor: Actor,
    request: ActorAdminUpdateRequest,
) -> ActorUpdateResult:
    """Staff edit of arbitrary fields; no tab is recorded as saved."""
    return await update_actor(
        session,
        auth,
        actor,
        ActorUpdateRequest(
            data=request.data,
            personal_references=request.personal_references,
            commercial_references=request.commercial_references,
            skip_validation=request.skip_validation,
        ),
    )


async def submit(session: AsyncSession, auth: ActorAuthContext, actor: Actor) -> SubmissionResult:
    """Explicit submission from the portal or a staff session; commits on success."""
    if not actor.information_complete:
        _require_edit(auth, actor)
    outcome = await submit_actor(session, actor, submitted_by=auth.performed_by, role=auth.role_label)
    if outcome.ok:
        await session.commit()
    return outcome


async def force_submit(
    session: AsyncSession,
    user: UserContext,
    actor: Actor,
    reason: str,
) -> SubmissionResult:
    """Staff completion without validation; commits."""
    if actor.information_complete:
        return SubmissionResult(ok=True, completed_at=actor.completed_at)
    outcome = await force_submit_actor(session, actor, by=user, reason=reason)
    await session.commit()
    return outcome


async def verify(
    session: AsyncSession,
    user: UserContext,
    actor: Actor,
    body: VerifyActorRequest,
) -> ActorResponse:
    """Staff approval or rejection; commits, then tells a rejected actor why."""
    await verify_actor(session, user, actor, body.action, body.reason)
    await session.commit()
    if body.action == "reject":
        dispatch(send_actor_rejection_notification(actor, body.reason), name=f"reject-actor-{actor.id}")
    return build_actor_response(actor, include_portal_url=True)
