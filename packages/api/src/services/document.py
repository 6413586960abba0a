# This project was developed with assistance from AI tools.
"""Actor document service.

Uploads go straight from the client to object storage through a presigned
URL: ``request_upload`` creates a pending row and signs the URL,
``confirm_upload`` checks the object landed and marks the row complete.
Only complete documents count towards submission requirements.
"""

import logging

from db import Actor, ActorDocument
from db.enums import DocumentCategory, DocumentUploadStatus
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import ActorAuthError
from ..schemas.actor import DocumentRequirementOut
from ..schemas.auth import ActorAuthContext
from .audit import write_audit_event
from .document_requirements import DOCUMENT_LABELS, get_document_requirements
from .storage import get_storage_service
from .submission import uploaded_categories
from .variants import resolve_variant

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
}


class DocumentUploadError(Exception):
    """Raised when an upload request or confirmation is refused."""

    def __init__(self, message: str, status_code: int = 422):
        super().__init__(message)
        self.status_code = status_code


async def list_documents(session: AsyncSession, actor: Actor) -> list[ActorDocument]:
    """Documents currently linked to the actor, oldest first."""
    stmt = (
        select(ActorDocument)
        .where(ActorDocument.actor_id == actor.id)
        .order_by(ActorDocument.created_at.asc(), ActorDocument.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


def document_requirements(actor: Actor, documents: list[ActorDocument] | None = None) -> list[DocumentRequirementOut]:
    """Requirement rows for the actor's variant, flagged when a complete upload exists."""
    variant = resolve_variant(actor.actor_type, actor)
    if documents is None:
        uploaded = uploaded_categories(actor)
    else:
        uploaded = {
            doc.category for doc in documents if doc.upload_status == DocumentUploadStatus.COMPLETE
        }
    return [
        DocumentRequirementOut(
            category=row.category,
            label=DOCUMENT_LABELS[row.category],
            required=row.required,
            uploaded=row.category in uploaded,
        )
        for row in get_document_requirements(variant)
    ]


async def _get_actor_document(session: AsyncSession, actor: Actor, document_id: int) -> ActorDocument | None:
    stmt = select(ActorDocument).where(
        ActorDocument.id == document_id,
        ActorDocument.actor_id == actor.id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def request_upload(
    session: AsyncSession,
    actor: Actor,
    category: DocumentCategory,
    file_name: str,
    content_type: str,
    file_size: int,
    uploaded_by: str,
) -> tuple[ActorDocument, str]:
    """Create a pending document and return it with a presigned PUT URL.

    Raises:
        DocumentUploadError: Unsupported content type (422) or file too large (413).
        InfrastructureError: Storage could not sign the URL.
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise DocumentUploadError(
            f"Unsupported content type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    max_bytes = settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024
    if file_size > max_bytes:
        raise DocumentUploadError(
            f"File size {file_size} exceeds maximum of {settings.UPLOAD_MAX_SIZE_MB}MB",
            status_code=413,
        )

    doc = ActorDocument(
        policy_id=actor.policy_id,
        actor_id=actor.id,
        actor_type=actor.actor_type,
        category=category,
        original_name=file_name,
        content_type=content_type,
        file_size=file_size,
        upload_status=DocumentUploadStatus.PENDING,
        uploaded_by=uploaded_by,
    )
    session.add(doc)
    await session.flush()  # Assign doc.id

    storage = get_storage_service()
    doc.s3_key = storage.build_object_key(
        actor.policy_id, actor.actor_type.value, actor.id, category.value, doc.id, file_name
    )
    url = await storage.generate_upload_url(
        doc.s3_key, content_type, settings.DOCUMENT_URL_EXPIRY_SECONDS
    )
    await session.commit()
    logger.info("Upload URL issued for document %s (actor %s, %s)", doc.id, actor.id, category.value)
    return doc, url


async def confirm_upload(
    session: AsyncSession,
    actor: Actor,
    document_id: int,
    performed_by: str,
    role: str | None = None,
) -> ActorDocument | None:
    """Mark a pending document complete once its object exists in storage.

    Returns None when the document does not belong to the actor.

    Raises:
        DocumentUploadError: The object was never uploaded (409).
    """
    doc = await _get_actor_document(session, actor, document_id)
    if doc is None:
        return None
    if doc.upload_status == DocumentUploadStatus.COMPLETE:
        return doc
    if not await get_storage_service().object_exists(doc.s3_key):
        raise DocumentUploadError("The file has not been uploaded yet", status_code=409)

    doc.upload_status = DocumentUploadStatus.COMPLETE
    await write_audit_event(
        session,
        event_type="document_uploaded",
        user_id=performed_by,
        user_role=role,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={"document_id": doc.id, "category": doc.category.value},
    )
    await session.commit()
    logger.info("Document %s confirmed for actor %s", doc.id, actor.id)
    return doc


async def get_download_url(
    session: AsyncSession,
    actor: Actor,
    document_id: int,
) -> tuple[ActorDocument, str] | None:
    """Presigned GET URL for a complete document of the actor.

    Raises:
        DocumentUploadError: The document is still pending (409).
    """
    doc = await _get_actor_document(session, actor, document_id)
    if doc is None:
        return None
    if doc.upload_status != DocumentUploadStatus.COMPLETE:
        raise DocumentUploadError("The document upload is not complete", status_code=409)
    url = await get_storage_service().get_download_url(
        doc.s3_key,
        expires_in=settings.DOCUMENT_URL_EXPIRY_SECONDS,
        filename=doc.original_name,
    )
    return doc, url


async def delete_document(
    session: AsyncSession,
    auth: ActorAuthContext,
    actor: Actor,
    document_id: int,
) -> bool:
    """Delete a document and its stored object.

    Returns False when the document does not belong to the actor.

    Raises:
        ActorAuthError: A portal principal tried to delete after completing (403).
    """
    if auth.auth_type == "token" and actor.information_complete:
        raise ActorAuthError("Documents cannot be deleted after submission", status_code=403)
    doc = await _get_actor_document(session, actor, document_id)
    if doc is None:
        return False

    if doc.s3_key and doc.upload_status == DocumentUploadStatus.COMPLETE:
        await get_storage_service().delete_object(doc.s3_key)
    await write_audit_event(
        session,
        event_type="document_deleted",
        user_id=auth.performed_by,
        user_role=auth.role_label,
        policy_id=actor.policy_id,
        actor_id=actor.id,
        event_data={"document_id": doc.id, "category": doc.category.value},
    )
    await session.delete(doc)
    await session.commit()
    logger.info("Document %s deleted from actor %s", document_id, actor.id)
    return True
