# This project was developed with assistance from AI tools.
"""Actor request/response schemas."""

from datetime import datetime
from typing import Any, Literal

from db.enums import (
    ActorType,
    DocumentCategory,
    EntityType,
    GuaranteeMethod,
    Nationality,
    PolicyStatus,
    VerificationStatus,
)
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.errors import FieldIssue
from .shared import CommercialReferenceIn, PersonalReferenceIn

# Keys that steer an update rather than being stored on the actor.
METADATA_FIELDS = (
    "tab_name",
    "partial",
    "information_complete",
    "personal_references",
    "commercial_references",
    "skip_validation",
)


class ActorUpdateRequest(BaseModel):
    """Body of a tab save.

    Metadata sent inside ``data`` (as older portal builds do) is lifted out
    so that ``data`` only ever holds actor fields.
    """

    data: dict[str, Any] = Field(default_factory=dict)
    tab_name: str | None = None
    partial: bool | None = None
    information_complete: bool | None = None
    personal_references: list[dict[str, Any]] | None = None
    commercial_references: list[dict[str, Any]] | None = None
    skip_validation: bool = False

    @model_validator(mode="before")
    @classmethod
    def _lift_metadata(cls, values: Any) -> Any:
        if not isinstance(values, dict) or not isinstance(values.get("data"), dict):
            return values
        values = dict(values)
        data = dict(values["data"])
        for key in METADATA_FIELDS:
            if key in data:
                lifted = data.pop(key)
                values.setdefault(key, lifted)
        values["data"] = data
        return values


class ActorSelfUpdateRequest(BaseModel):
    """Whole-record save from the portal, validated against the completion schema."""

    data: dict[str, Any] = Field(default_factory=dict)
    personal_references: list[dict[str, Any]] | None = None
    commercial_references: list[dict[str, Any]] | None = None


class ActorAdminUpdateRequest(BaseModel):
    """Staff edit of any fields, checked field by field unless skipped."""

    data: dict[str, Any] = Field(default_factory=dict)
    personal_references: list[dict[str, Any]] | None = None
    commercial_references: list[dict[str, Any]] | None = None
    skip_validation: bool = False


class ForceSubmitRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class VerifyActorRequest(BaseModel):
    """Staff review outcome for a completed actor."""

    model_config = ConfigDict(str_strip_whitespace=True)

    action: Literal["approve", "reject"]
    reason: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _reason_for_rejection(self) -> "VerifyActorRequest":
        if self.action == "reject" and not self.reason:
            raise ValueError("A rejection needs a reason")
        return self


class CoOwnerIn(BaseModel):
    """One co-owner in a multi-landlord save. ``id`` is omitted for new co-owners."""

    id: int | None = None
    is_primary: bool = False
    entity_type: EntityType = EntityType.INDIVIDUAL
    data: dict[str, Any] = Field(default_factory=dict)


class CoOwnersRequest(BaseModel):
    landlords: list[CoOwnerIn] = Field(min_length=1)
    skip_validation: bool = False


class PersonalReferenceOut(PersonalReferenceIn):
    model_config = ConfigDict(from_attributes=True)

    id: int


class CommercialReferenceOut(CommercialReferenceIn):
    model_config = ConfigDict(from_attributes=True)

    id: int


class ActorResponse(BaseModel):
    """An actor as shown to staff and to the actor itself.

    ``fields`` holds every stored form field; ``portal_url`` is only filled
    for staff sessions.
    """

    id: int
    policy_id: int
    actor_type: ActorType
    entity_type: EntityType
    nationality: Nationality | None = None
    guarantee_method: GuaranteeMethod | None = None
    is_primary: bool = False
    display_name: str = ""
    information_complete: bool = False
    completed_at: datetime | None = None
    verification_status: VerificationStatus | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    tabs_completed: list[str] = Field(default_factory=list)
    fields: dict[str, Any] = Field(default_factory=dict)
    personal_references: list[PersonalReferenceOut] = Field(default_factory=list)
    commercial_references: list[CommercialReferenceOut] = Field(default_factory=list)
    portal_url: str | None = None
    token_expiry: datetime | None = None


class TabInfo(BaseModel):
    id: str
    label: str
    needs_save: bool
    saved: bool = False


class TabProgress(BaseModel):
    saved: int
    total: int
    percent: int
    all_tabs_saved: bool


class SubmissionResult(BaseModel):
    """Outcome of a submission attempt. ``ok=False`` is a normal result, not an error."""

    ok: bool
    issues: list[FieldIssue] = Field(default_factory=list)
    missing_documents: list[DocumentCategory] = Field(default_factory=list)
    forced: bool = False
    completed_at: datetime | None = None


class ActorUpdateResult(BaseModel):
    actor: ActorResponse
    submitted: bool = False
    submission_issues: list[FieldIssue] = Field(default_factory=list)
    reference_error: str | None = None
    tabs_completed: list[str] = Field(default_factory=list)
    progress: TabProgress | None = None


class PolicySummary(BaseModel):
    """The slice of a policy an actor sees in the portal."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_number: str
    status: PolicyStatus
    property_address_details: dict[str, Any] | None = None
    rent_amount: float | None = None


class DocumentRequirementOut(BaseModel):
    category: DocumentCategory
    label: str
    required: bool
    uploaded: bool = False


class ActorPortalView(BaseModel):
    """Everything the self-service form needs to render."""

    data: ActorResponse
    policy: PolicySummary | None = None
    can_edit: bool
    tabs: list[TabInfo]
    progress: TabProgress
    documents: list[DocumentRequirementOut] = Field(default_factory=list)
