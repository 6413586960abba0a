# This project was developed with assistance from AI tools.
"""Actor routes: the self-service portal (token) and staff editing (session).

Identifiers that look like portal tokens are resolved as tokens, anything
else as an actor id that needs a session. Auth, validation and tab errors
raised here are rendered as Problem Details by the app-level handlers.
"""

from db import get_db
from db.enums import ActorType, UserRole
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import ActorAuthError
from ..middleware.actor_auth import (
    ActorAccess,
    LandlordActor,
    ResolvedActor,
    TokenActor,
    resolve_session,
    resolve_token,
)
from ..middleware.auth import CurrentUser, require_roles
from ..schemas.actor import (
    ActorAdminUpdateRequest,
    ActorPortalView,
    ActorResponse,
    ActorSelfUpdateRequest,
    ActorUpdateRequest,
    ActorUpdateResult,
    CoOwnersRequest,
    ForceSubmitRequest,
    PolicySummary,
    SubmissionResult,
    TabInfo,
)
from ..schemas.document import (
    DocumentListResponse,
    DocumentResponse,
    DownloadUrlResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from ..services import actor_update
from ..services import document as document_service
from ..services.actors import build_actor_response, get_landlords_by_token
from ..services.tabs import get_tabs
from ..services.tokens import regenerate_actor_token
from ..services.variants import resolve_variant
from ..services.wizard import WizardState

router = APIRouter()

_STAFF = (UserRole.ADMIN, UserRole.STAFF)


def _build_portal_view(access: ActorAccess) -> ActorPortalView:
    actor = access.actor
    state = WizardState.from_actor(actor.actor_type, actor, admin_mode=access.auth.user is not None)
    tabs = get_tabs(actor.actor_type, resolve_variant(actor.actor_type, actor).is_company)
    return ActorPortalView(
        data=build_actor_response(actor, include_portal_url=access.auth.user is not None),
        policy=PolicySummary.model_validate(actor.policy) if actor.policy is not None else None,
        can_edit=access.auth.can_edit and not (access.auth.auth_type == "token" and actor.information_complete),
        tabs=[
            TabInfo(id=tab.id, label=tab.label, needs_save=tab.needs_save, saved=bool(state.saved.get(tab.id)))
            for tab in tabs
        ],
        progress=actor_update.progress_of(actor),
        documents=document_service.document_requirements(actor),
    )


def _require_document_write(access: ActorAccess) -> None:
    if not access.auth.can_edit:
        raise ActorAuthError("Documents cannot be changed after submission", status_code=403)


def _raise_upload_error(exc: document_service.DocumentUploadError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Portal (token) reads
# ---------------------------------------------------------------------------


@router.get("/landlord/token/{token}/all", response_model=list[ActorResponse])
async def list_co_owners_by_token(
    token: str,
    session: AsyncSession = Depends(get_db),
) -> list[ActorResponse]:
    """Every co-owner of the property the token's landlord belongs to."""
    await resolve_token(session, ActorType.LANDLORD, token)
    landlords = await get_landlords_by_token(session, token) or []
    return [build_actor_response(landlord) for landlord in landlords]


@router.get("/{actor_type}/token/{token}", response_model=ActorPortalView)
async def get_by_token(access: TokenActor) -> ActorPortalView:
    """The actor's form, policy summary, tabs and document checklist."""
    return _build_portal_view(access)


@router.put("/{actor_type}/token/{token}/self", response_model=ActorUpdateResult)
async def update_self(
    access: TokenActor,
    body: ActorSelfUpdateRequest,
    session: AsyncSession = Depends(get_db),
) -> ActorUpdateResult:
    """Save the whole record at once; it must pass the completion schema."""
    return await actor_update.update_self(session, access.auth, access.actor, body)


# ---------------------------------------------------------------------------
# Staff reads and administration
# ---------------------------------------------------------------------------


@router.get(
    "/{actor_type}/{actor_id}",
    response_model=ActorPortalView,
    dependencies=[Depends(require_roles(*_STAFF, UserRole.BROKER))],
)
async def get_by_id(
    actor_type: ActorType,
    actor_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorPortalView:
    """An actor as seen by staff; brokers only reach their own policies."""
    access = await resolve_session(session, actor_type, actor_id, user)
    return _build_portal_view(access)


@router.patch(
    "/{actor_type}/{actor_id}/admin",
    response_model=ActorUpdateResult,
    dependencies=[Depends(require_roles(*_STAFF))],
)
async def update_by_admin(
    actor_type: ActorType,
    actor_id: int,
    body: ActorAdminUpdateRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorUpdateResult:
    """Edit any fields of an actor, outside the tab flow."""
    access = await resolve_session(session, actor_type, actor_id, user)
    return await actor_update.update_by_admin(session, access.auth, access.actor, body)


@router.post(
    "/{actor_type}/{actor_id}/force-submit",
    response_model=SubmissionResult,
    dependencies=[Depends(require_roles(*_STAFF))],
)
async def force_submit(
    actor_type: ActorType,
    actor_id: int,
    body: ForceSubmitRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SubmissionResult:
    """Complete an actor without validation. Audited with the bypassed issues."""
    access = await resolve_session(session, actor_type, actor_id, user)
    return await actor_update.force_submit(session, user, access.actor, body.reason)


@router.post(
    "/{actor_type}/{actor_id}/token",
    response_model=ActorResponse,
    dependencies=[Depends(require_roles(*_STAFF))],
)
async def regenerate_token(
    actor_type: ActorType,
    actor_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ActorResponse:
    """Issue a new portal link; the previous one stops working."""
    access = await resolve_session(session, actor_type, actor_id, user)
    actor = await regenerate_actor_token(session, user, access.actor)
    return build_actor_response(actor, include_portal_url=True)


# ---------------------------------------------------------------------------
# Dual-auth writes (token or session)
# ---------------------------------------------------------------------------


@router.put("/landlord/{identifier}/co-owners", response_model=list[ActorResponse])
async def update_co_owners(
    access: LandlordActor,
    body: CoOwnersRequest,
    session: AsyncSession = Depends(get_db),
) -> list[ActorResponse]:
    """Save the owner information of every co-owner of the property."""
    return await actor_update.update_co_owners(session, access.auth, access.actor, body)


@router.patch("/{actor_type}/{identifier}", response_model=ActorUpdateResult)
async def update_actor(
    access: ResolvedActor,
    body: ActorUpdateRequest,
    session: AsyncSession = Depends(get_db),
) -> ActorUpdateResult:
    """Save one tab; saving the last tab also submits the actor."""
    return await actor_update.update_actor(session, access.auth, access.actor, body)


@router.post("/{actor_type}/{identifier}/submit", response_model=SubmissionResult)
async def submit_actor(
    access: ResolvedActor,
    session: AsyncSession = Depends(get_db),
) -> SubmissionResult:
    """Submit the actor. A rejected submission is a 200 with ``ok=false``."""
    return await actor_update.submit(session, access.auth, access.actor)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.get("/{actor_type}/{identifier}/documents", response_model=DocumentListResponse)
async def list_documents(
    access: ResolvedActor,
    session: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    documents = await document_service.list_documents(session, access.actor)
    requirements = document_service.document_requirements(access.actor, documents)
    return DocumentListResponse(
        data=[DocumentResponse.model_validate(doc) for doc in documents],
        count=len(documents),
        requirements=requirements,
        missing=[row.category for row in requirements if row.required and not row.uploaded],
    )


@router.post(
    "/{actor_type}/{identifier}/documents/upload-url",
    response_model=UploadUrlResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_upload_url(
    access: ResolvedActor,
    body: UploadUrlRequest,
    session: AsyncSession = Depends(get_db),
) -> UploadUrlResponse:
    """Create a pending document and return a presigned PUT URL for it."""
    _require_document_write(access)
    try:
        doc, url = await document_service.request_upload(
            session,
            access.actor,
            body.category,
            body.file_name,
            body.content_type,
            body.file_size,
            uploaded_by=access.auth.performed_by,
        )
    except document_service.DocumentUploadError as exc:
        _raise_upload_error(exc)
    return UploadUrlResponse(document_id=doc.id, upload_url=url, expires_in=settings.DOCUMENT_URL_EXPIRY_SECONDS)


@router.post(
    "/{actor_type}/{identifier}/documents/{document_id}/confirm",
    response_model=DocumentResponse,
)
async def confirm_upload(
    document_id: int,
    access: ResolvedActor,
    session: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Mark a document complete once the file is in storage."""
    _require_document_write(access)
    try:
        doc = await document_service.confirm_upload(
            session,
            access.actor,
            document_id,
            performed_by=access.auth.performed_by,
            role=access.auth.role_label,
        )
    except document_service.DocumentUploadError as exc:
        _raise_upload_error(exc)
    if doc is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return DocumentResponse.model_validate(doc)


@router.get(
    "/{actor_type}/{identifier}/documents/{document_id}/download-url",
    response_model=DownloadUrlResponse,
)
async def get_download_url(
    document_id: int,
    access: ResolvedActor,
    session: AsyncSession = Depends(get_db),
) -> DownloadUrlResponse:
    try:
        result = await document_service.get_download_url(session, access.actor, document_id)
    except document_service.DocumentUploadError as exc:
        _raise_upload_error(exc)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    doc, url = result
    return DownloadUrlResponse(document_id=doc.id, download_url=url, expires_in=settings.DOCUMENT_URL_EXPIRY_SECONDS)


@router.delete(
    "/{actor_type}/{identifier}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_document(
    document_id: int,
    access: ResolvedActor,
    session: AsyncSession = Depends(get_db),
) -> None:
    deleted = await document_service.delete_document(session, access.auth, access.actor, document_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
