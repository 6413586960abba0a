# This project was developed with assistance from AI tools.
"""Policy request/response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from db.enums import ActorType, EntityType, GuarantorType, Nationality, PolicyStatus
from pydantic import BaseModel, ConfigDict, Field, model_validator

from . import Pagination
from .shared import OptionalEmail, OptionalPhone, OptionalStr, PartialAddress


class ActorSeed(BaseModel):
    """Minimal identity used to create an actor; the actor fills in the rest."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    entity_type: EntityType = EntityType.INDIVIDUAL
    nationality: Nationality = Nationality.MEXICAN
    first_name: OptionalStr = None
    middle_name: OptionalStr = None
    paternal_last_name: OptionalStr = None
    maternal_last_name: OptionalStr = None
    company_name: OptionalStr = None
    email: OptionalEmail = None
    phone: OptionalPhone = None

    @model_validator(mode="after")
    def _check_name(self) -> "ActorSeed":
        if self.entity_type == EntityType.COMPANY and not self.company_name:
            raise ValueError("company_name is required for a company")
        if self.entity_type == EntityType.INDIVIDUAL and not self.first_name:
            raise ValueError("first_name is required for an individual")
        return self


class LandlordSeed(ActorSeed):
    is_primary: bool = False


class PolicyCreate(BaseModel):
    """Create a policy with its tenant, landlords and guarantors."""

    property_address_details: PartialAddress | None = None
    property_type: OptionalStr = None
    rent_amount: Decimal | None = Field(default=None, gt=0)
    deposit_amount: Decimal | None = Field(default=None, ge=0)
    contract_length_months: int | None = Field(default=None, ge=1, le=120)
    start_date: datetime | None = None
    end_date: datetime | None = None
    guarantor_type: GuarantorType = GuarantorType.NONE
    managed_by: str | None = Field(
        default=None,
        description="Broker user id. Ignored for brokers, who always manage their own policies.",
    )
    tenant: ActorSeed
    landlords: list[LandlordSeed] = Field(min_length=1)
    joint_obligors: list[ActorSeed] = Field(default_factory=list)
    avals: list[ActorSeed] = Field(default_factory=list)
    send_invitations: bool = False

    @model_validator(mode="after")
    def _check_parties(self) -> "PolicyCreate":
        if sum(1 for landlord in self.landlords if landlord.is_primary) > 1:
            raise ValueError("Only one landlord can be primary")
        check_guarantors(self.guarantor_type, self.joint_obligors, self.avals)
        return self


def check_guarantors(
    guarantor_type: GuarantorType,
    joint_obligors: list[ActorSeed],
    avals: list[ActorSeed],
) -> None:
    """Guarantor lists must match the guarantor type."""
    if guarantor_type.needs_joint_obligors and not joint_obligors:
        raise ValueError(f"{guarantor_type.value} requires at least one joint obligor")
    if not guarantor_type.needs_joint_obligors and joint_obligors:
        raise ValueError(f"{guarantor_type.value} does not take joint obligors")
    if guarantor_type.needs_avals and not avals:
        raise ValueError(f"{guarantor_type.value} requires at least one aval")
    if not guarantor_type.needs_avals and avals:
        raise ValueError(f"{guarantor_type.value} does not take avals")


class ActorSummary(BaseModel):
    """Actor nested inside policy responses."""

    id: int
    actor_type: ActorType
    entity_type: EntityType
    is_primary: bool = False
    display_name: str = ""
    email: str | None = None
    information_complete: bool = False
    completed_at: datetime | None = None
    portal_url: str | None = None


class PolicyResponse(BaseModel):
    """Single policy response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_number: str
    status: PolicyStatus
    guarantor_type: GuarantorType
    property_address_details: dict[str, Any] | None = None
    property_type: str | None = None
    rent_amount: Decimal | None = None
    deposit_amount: Decimal | None = None
    contract_length_months: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    managed_by: str | None = None
    created_by: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    actors: list[ActorSummary] = []


class PolicyListResponse(BaseModel):
    """Paginated list of policies."""

    data: list[PolicyResponse]
    pagination: Pagination


class PolicyStatusUpdate(BaseModel):
    status: PolicyStatus
    notes: str | None = Field(default=None, max_length=1000)


class CancelPolicyRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class ReplaceTenantRequest(BaseModel):
    """Swap the tenant of a policy that is not active yet."""

    reason: str = Field(min_length=1, max_length=1000)
    new_tenant: ActorSeed
    replace_guarantors: bool = False
    guarantor_type: GuarantorType | None = Field(
        default=None,
        description="New guarantor type when replace_guarantors is set; defaults to the current one.",
    )
    joint_obligors: list[ActorSeed] = Field(default_factory=list)
    avals: list[ActorSeed] = Field(default_factory=list)


class GuarantorTypeChange(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)
    new_type: GuarantorType
    joint_obligors: list[ActorSeed] = Field(default_factory=list)
    avals: list[ActorSeed] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_guarantors(self) -> "GuarantorTypeChange":
        check_guarantors(self.new_type, self.joint_obligors, self.avals)
        return self


class InvitationRequest(BaseModel):
    actor_types: list[ActorType] | None = Field(
        default=None,
        description="Only invite these actor types; every type when omitted.",
    )
    resend: bool = Field(
        default=False,
        description="Also invite actors that were invited before (their token is renewed).",
    )


class InvitationResult(BaseModel):
    policy_id: int
    status: PolicyStatus
    invited: list[ActorSummary]


class ActorProgress(BaseModel):
    actor_id: int
    actor_type: ActorType
    display_name: str
    is_primary: bool = False
    information_complete: bool
    tabs_saved: int
    tabs_total: int
    percent: int


class PolicyProgress(BaseModel):
    """Per-actor completion of a policy."""

    policy_id: int
    status: PolicyStatus
    all_complete: bool
    completed: int
    total: int
    actors: list[ActorProgress]


class AuditEventItem(BaseModel):
    """Single audit event in a query response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    event_type: str
    user_id: str | None = None
    user_role: str | None = None
    policy_id: int | None = None
    actor_id: int | None = None
    event_data: dict | str | None = None


class PolicyAuditResponse(BaseModel):
    policy_id: int
    count: int
    events: list[AuditEventItem]
    chain: dict[str, Any] | None = Field(
        default=None,
        description="Hash chain verification result, when requested.",
    )
