# This project was developed with assistance from AI tools.
"""Policy routes with RBAC enforcement."""

from db import Actor, Policy, get_db
from db.enums import ActorType, PolicyStatus, UserRole
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidTransitionError, PolicyOperationError
from ..middleware.actor_auth import resolve_session
from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.actor import ActorResponse, VerifyActorRequest
from ..schemas.policy import (
    ActorSummary,
    AuditEventItem,
    CancelPolicyRequest,
    GuarantorTypeChange,
    InvitationRequest,
    InvitationResult,
    PolicyAuditResponse,
    PolicyCreate,
    PolicyListResponse,
    PolicyProgress,
    PolicyResponse,
    PolicyStatusUpdate,
    ReplaceTenantRequest,
)
from ..services import actor_update
from ..services import policy as policy_service
from ..services.actors import actor_display_name, build_actor_response, list_policy_actors
from ..services.audit import get_policy_events, verify_audit_chain
from ..services.tokens import actor_portal_url

router = APIRouter()

_ALL_ROLES = (UserRole.ADMIN, UserRole.STAFF, UserRole.BROKER)
_STAFF = (UserRole.ADMIN, UserRole.STAFF)


def _build_actor_summary(actor: Actor, *, include_portal_url: bool = True) -> ActorSummary:
    return ActorSummary(
        id=actor.id,
        actor_type=actor.actor_type,
        entity_type=actor.entity_type,
        is_primary=bool(actor.is_primary),
        display_name=actor_display_name(actor),
        email=actor.email,
        information_complete=bool(actor.information_complete),
        completed_at=actor.completed_at,
        portal_url=actor_portal_url(actor) if include_portal_url and actor.access_token else None,
    )


def _build_policy_response(policy: Policy) -> PolicyResponse:
    """Build PolicyResponse from ORM object, populating the actors list."""
    actors = sorted(
        getattr(policy, "actors", []) or [],
        key=lambda actor: (actor.actor_type.value, not actor.is_primary, actor.id),
    )
    return PolicyResponse(
        id=policy.id,
        policy_number=policy.policy_number,
        status=policy.status,
        guarantor_type=policy.guarantor_type,
        property_address_details=policy.property_address_details,
        property_type=policy.property_type,
        rent_amount=policy.rent_amount,
        deposit_amount=policy.deposit_amount,
        contract_length_months=policy.contract_length_months,
        start_date=policy.start_date,
        end_date=policy.end_date,
        managed_by=policy.managed_by,
        created_by=policy.created_by,
        cancellation_reason=policy.cancellation_reason,
        cancelled_at=policy.cancelled_at,
        created_at=policy.created_at,
        updated_at=policy.updated_at,
        actors=[_build_actor_summary(actor) for actor in actors],
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Policy not found")


@router.post(
    "/",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def create_policy(
    body: PolicyCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Create a policy with its tenant, landlords and guarantors."""
    policy = await policy_service.create_policy(session, user, body)
    return _build_policy_response(policy)


@router.get(
    "/",
    response_model=PolicyListResponse,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def list_policies(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    filter_status: PolicyStatus | None = None,
) -> PolicyListResponse:
    """List policies visible to the current user's role and data scope."""
    policies, total = await policy_service.list_policies(
        session,
        user,
        offset=offset,
        limit=limit,
        filter_status=filter_status,
    )
    return PolicyListResponse(
        data=[_build_policy_response(policy) for policy in policies],
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=(offset + limit) < total,
        ),
    )


@router.get(
    "/{policy_id}",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def get_policy(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    policy = await policy_service.get_policy(session, user, policy_id)
    if policy is None:
        raise _not_found()
    return _build_policy_response(policy)


@router.get(
    "/{policy_id}/actors",
    response_model=list[ActorResponse],
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def list_actors(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[ActorResponse]:
    """Every actor of the policy with its form data and portal link."""
    policy = await policy_service.get_policy(session, user, policy_id)
    if policy is None:
        raise _not_found()
    actors = await list_policy_actors(session, policy_id)
    return [build_actor_response(actor, include_portal_url=True) for actor in actors]


@router.post(
    "/{policy_id}/actors/{actor_type}/{actor_id}/verify",
    response_model=ActorResponse,
    dependencies=[Depends(require_roles(*_STAFF))],
)
async def verify_actor(
    policy_id: int,
    actor_type: ActorType,
    actor_id: int,
    body: VerifyActorRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorResponse:
    """Approve or reject a completed actor. Admin and staff only."""
    access = await resolve_session(session, actor_type, actor_id, user)
    if access.actor.policy_id != policy_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Actor not found")
    try:
        return await actor_update.verify(session, user, access.actor, body)
    except PolicyOperationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e


@router.get(
    "/{policy_id}/progress",
    response_model=PolicyProgress,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def get_progress(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyProgress:
    progress = await policy_service.get_policy_progress(session, user, policy_id)
    if progress is None:
        raise _not_found()
    return progress


@router.patch(
    "/{policy_id}/status",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_STAFF))],
)
async def update_status(
    policy_id: int,
    body: PolicyStatusUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Move a policy through its lifecycle. Admin and staff only."""
    try:
        policy = await policy_service.update_status(session, user, policy_id, body.status, body.notes)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    if policy is None:
        raise _not_found()
    return _build_policy_response(policy)


@router.post(
    "/{policy_id}/cancel",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def cancel_policy(
    policy_id: int,
    body: CancelPolicyRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    try:
        policy = await policy_service.cancel_policy(session, user, policy_id, body.reason)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    if policy is None:
        raise _not_found()
    return _build_policy_response(policy)


@router.post(
    "/{policy_id}/replace-tenant",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def replace_tenant(
    policy_id: int,
    body: ReplaceTenantRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Swap the tenant (and optionally the guarantors) before the policy is active."""
    try:
        policy = await policy_service.replace_tenant(session, user, policy_id, body)
    except (PolicyOperationError, InvalidTransitionError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    if policy is None:
        raise _not_found()
    return _build_policy_response(policy)


@router.post(
    "/{policy_id}/guarantor-type",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def change_guarantor_type(
    policy_id: int,
    body: GuarantorTypeChange,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    try:
        policy = await policy_service.change_guarantor_type(session, user, policy_id, body)
    except (PolicyOperationError, InvalidTransitionError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    if policy is None:
        raise _not_found()
    return _build_policy_response(policy)


@router.post(
    "/{policy_id}/invitations",
    response_model=InvitationResult,
    dependencies=[Depends(require_roles(*_ALL_ROLES))],
)
async def send_invitations(
    policy_id: int,
    body: InvitationRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> InvitationResult:
    """Send portal links to every incomplete actor (or only the given types)."""
    try:
        result = await policy_service.send_invitations(
            session, user, policy_id, actor_types=body.actor_types, resend=body.resend
        )
    except PolicyOperationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    if result is None:
        raise _not_found()
    policy, actors = result
    return InvitationResult(
        policy_id=policy.id,
        status=policy.status,
        invited=[_build_actor_summary(actor) for actor in actors],
    )


@router.get(
    "/{policy_id}/audit",
    response_model=PolicyAuditResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def get_audit_trail(
    policy_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    event_type: str | None = None,
    verify_chain: bool = Query(default=False),
) -> PolicyAuditResponse:
    """A policy's audit events, optionally with a hash chain check. Admin only."""
    policy = await policy_service.get_policy(session, user, policy_id)
    if policy is None:
        raise _not_found()
    events = await get_policy_events(session, policy_id, event_type=event_type)
    return PolicyAuditResponse(
        policy_id=policy_id,
        count=len(events),
        events=[AuditEventItem.model_validate(event) for event in events],
        chain=await verify_audit_chain(session) if verify_chain else None,
    )
