# This project was developed with assistance from AI tools.
"""Document request/response schemas."""

from datetime import datetime

from db.enums import ActorType, DocumentCategory, DocumentUploadStatus
from pydantic import BaseModel, ConfigDict, Field

from .actor import DocumentRequirementOut


class UploadUrlRequest(BaseModel):
    """Ask for a presigned URL to upload one document."""

    category: DocumentCategory
    file_name: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=100)
    file_size: int = Field(gt=0)


class UploadUrlResponse(BaseModel):
    document_id: int
    upload_url: str
    expires_in: int


class DocumentResponse(BaseModel):
    """Document metadata; the storage key is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_id: int | None = None
    actor_type: ActorType
    category: DocumentCategory
    original_name: str
    content_type: str
    file_size: int | None = None
    upload_status: DocumentUploadStatus
    uploaded_by: str | None = None
    created_at: datetime | None = None


class DocumentListResponse(BaseModel):
    """An actor's documents with the requirements they count towards."""

    data: list[DocumentResponse]
    count: int
    requirements: list[DocumentRequirementOut] = []
    missing: list[DocumentCategory] = []


class DownloadUrlResponse(BaseModel):
    document_id: int
    download_url: str
    expires_in: int
