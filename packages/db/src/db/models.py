# This project was developed with assistance from AI tools.
"""
Rental guarantee platform -- domain models

Policies aggregate one tenant, one or more landlords and optional guarantors
(avals, joint obligors). Every party is an ``Actor`` row in a single table
keyed by ``actor_type``; references, documents, archived actors and the
audit trail hang off it.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import (
    ActorType,
    DocumentCategory,
    DocumentUploadStatus,
    EmploymentStatus,
    EntityType,
    GuaranteeMethod,
    GuarantorType,
    MaritalStatus,
    Nationality,
    PolicyStatus,
    VerificationStatus,
)


class Policy(Base):
    """Rental guarantee policy covering one property."""

    __tablename__ = "policies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_number = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(
        Enum(PolicyStatus, name="policy_status", native_enum=False),
        nullable=False,
        default=PolicyStatus.DRAFT,
    )
    guarantor_type = Column(
        Enum(GuarantorType, name="guarantor_type", native_enum=False),
        nullable=False,
        default=GuarantorType.NONE,
    )
    property_address_details = Column(JSON, nullable=True)
    property_type = Column(String(50), nullable=True)
    rent_amount = Column(Numeric(12, 2), nullable=True)
    deposit_amount = Column(Numeric(12, 2), nullable=True)
    contract_length_months = Column(Integer, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    managed_by = Column(String(255), nullable=True, index=True)
    created_by = Column(String(255), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    tenant = relationship("Tenant", uselist=False, viewonly=True)
    landlords = relationship("Landlord", viewonly=True, order_by="Landlord.id")
    avals = relationship("Aval", viewonly=True, order_by="Aval.id")
    joint_obligors = relationship("JointObligor", viewonly=True, order_by="JointObligor.id")
    actors = relationship(
        "Actor", back_populates="policy", cascade="all, delete-orphan", order_by="Actor.id",
    )

    def __repr__(self):
        return f"<Policy(id={self.id}, number='{self.policy_number}', status='{self.status}')>"


class Actor(Base):
    """A party to a policy who completes the self-service form.

    Single-table inheritance: subclasses only fix ``actor_type``. Columns
    not used by an actor type stay NULL.
    """

    __tablename__ = "actors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    actor_type = Column(
        Enum(ActorType, name="actor_type", native_enum=False),
        nullable=False,
        index=True,
    )

    # -- Variant discriminants --
    entity_type = Column(
        Enum(EntityType, name="entity_type", native_enum=False),
        nullable=False,
        default=EntityType.INDIVIDUAL,
    )
    nationality = Column(
        Enum(Nationality, name="nationality", native_enum=False),
        nullable=False,
        default=Nationality.MEXICAN,
    )
    guarantee_method = Column(
        Enum(GuaranteeMethod, name="guarantee_method", native_enum=False),
        nullable=True,
    )
    is_primary = Column(Boolean, nullable=False, default=False)

    # -- Identity --
    first_name = Column(String(100), nullable=True)
    middle_name = Column(String(100), nullable=True)
    paternal_last_name = Column(String(100), nullable=True)
    maternal_last_name = Column(String(100), nullable=True)
    curp = Column(String(18), nullable=True)
    rfc = Column(String(13), nullable=True)
    passport = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    company_rfc = Column(String(12), nullable=True)
    legal_rep_first_name = Column(String(100), nullable=True)
    legal_rep_middle_name = Column(String(100), nullable=True)
    legal_rep_paternal_last_name = Column(String(100), nullable=True)
    legal_rep_maternal_last_name = Column(String(100), nullable=True)
    legal_rep_position = Column(String(100), nullable=True)
    legal_rep_rfc = Column(String(13), nullable=True)
    legal_rep_phone = Column(String(20), nullable=True)
    legal_rep_email = Column(String(255), nullable=True)
    relationship_to_tenant = Column(String(50), nullable=True)

    # -- Contact --
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True)
    work_phone = Column(String(20), nullable=True)
    personal_email = Column(String(255), nullable=True)
    work_email = Column(String(255), nullable=True)
    address_details = Column(JSON, nullable=True)

    # -- Employment --
    employment_status = Column(
        Enum(EmploymentStatus, name="employment_status", native_enum=False),
        nullable=True,
    )
    occupation = Column(String(255), nullable=True)
    employer_name = Column(String(255), nullable=True)
    employer_address_details = Column(JSON, nullable=True)
    position = Column(String(255), nullable=True)
    monthly_income = Column(Numeric(12, 2), nullable=True)
    income_source = Column(String(255), nullable=True)
    years_at_job = Column(Integer, nullable=True)
    has_additional_income = Column(Boolean, nullable=False, default=False)
    additional_income_source = Column(String(255), nullable=True)
    additional_income_amount = Column(Numeric(12, 2), nullable=True)

    # -- Rental history (tenant) --
    previous_landlord_name = Column(String(255), nullable=True)
    previous_landlord_phone = Column(String(20), nullable=True)
    previous_landlord_email = Column(String(255), nullable=True)
    previous_rent_amount = Column(Numeric(12, 2), nullable=True)
    previous_rental_address_details = Column(JSON, nullable=True)
    rental_history_years = Column(Integer, nullable=True)
    number_of_occupants = Column(Integer, nullable=True)
    reason_for_moving = Column(Text, nullable=True)
    has_pets = Column(Boolean, nullable=False, default=False)
    pet_description = Column(Text, nullable=True)

    # -- Banking --
    bank_name = Column(String(100), nullable=True)
    account_holder = Column(String(255), nullable=True)
    account_number = Column(String(30), nullable=True)
    clabe = Column(String(18), nullable=True)
    has_properties = Column(Boolean, nullable=True)

    # -- Property (guarantee or leased property) --
    guarantee_property_details = Column(JSON, nullable=True)
    property_value = Column(Numeric(14, 2), nullable=True)
    property_deed_number = Column(String(100), nullable=True)
    property_registry = Column(String(100), nullable=True)
    property_tax_account = Column(String(100), nullable=True)
    property_under_legal_proceeding = Column(Boolean, nullable=True)
    marital_status = Column(
        Enum(MaritalStatus, name="marital_status", native_enum=False),
        nullable=True,
    )
    spouse_name = Column(String(255), nullable=True)
    spouse_rfc = Column(String(13), nullable=True)
    spouse_curp = Column(String(18), nullable=True)

    # -- Fiscal / payment --
    payment_method = Column(String(50), nullable=True)
    requires_cfdi = Column(Boolean, nullable=False, default=False)
    cfdi_data = Column(JSON, nullable=True)
    has_iva = Column(Boolean, nullable=True)
    issues_tax_receipts = Column(Boolean, nullable=True)
    additional_info = Column(Text, nullable=True)

    # -- Self-service access --
    access_token = Column(String(64), unique=True, nullable=True, index=True)
    token_expiry = Column(DateTime(timezone=True), nullable=True)

    # -- Completion / review --
    tabs_completed = Column(JSON, nullable=False, default=list)
    information_complete = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by = Column(String(255), nullable=True)
    verification_status = Column(
        Enum(VerificationStatus, name="verification_status", native_enum=False),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    policy = relationship("Policy", back_populates="actors")
    personal_references = relationship(
        "PersonalReference", back_populates="actor", cascade="all, delete-orphan",
        order_by="PersonalReference.id",
    )
    commercial_references = relationship(
        "CommercialReference", back_populates="actor", cascade="all, delete-orphan",
        order_by="CommercialReference.id",
    )
    documents = relationship("ActorDocument", back_populates="actor", order_by="ActorDocument.id")

    __mapper_args__ = {"polymorphic_on": actor_type}

    @property
    def is_company(self) -> bool:
        return self.entity_type == EntityType.COMPANY

    def __repr__(self):
        return f"<{type(self).__name__}(id={self.id}, policy_id={self.policy_id})>"


class Tenant(Actor):
    __mapper_args__ = {"polymorphic_identity": ActorType.TENANT}


class Landlord(Actor):
    __mapper_args__ = {"polymorphic_identity": ActorType.LANDLORD}


class Aval(Actor):
    __mapper_args__ = {"polymorphic_identity": ActorType.AVAL}


class JointObligor(Actor):
    __mapper_args__ = {"polymorphic_identity": ActorType.JOINT_OBLIGOR}


ACTOR_MODELS: dict[ActorType, type[Actor]] = {
    ActorType.TENANT: Tenant,
    ActorType.LANDLORD: Landlord,
    ActorType.AVAL: Aval,
    ActorType.JOINT_OBLIGOR: JointObligor,
}


class PersonalReference(Base):
    """Personal reference supplied by an individual actor."""

    __tablename__ = "personal_references"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(
        Integer, ForeignKey("actors.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    # Declared before the `relationship` column, which shadows the name below.
    actor = relationship("Actor", back_populates="personal_references")
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    paternal_last_name = Column(String(100), nullable=False)
    maternal_last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    relationship = Column(String(100), nullable=False)
    occupation = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<PersonalReference(id={self.id}, actor_id={self.actor_id})>"


class CommercialReference(Base):
    """Commercial reference supplied by a company actor."""

    __tablename__ = "commercial_references"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(
        Integer, ForeignKey("actors.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    # Declared before the `relationship` column, which shadows the name below.
    actor = relationship("Actor", back_populates="commercial_references")
    company_name = Column(String(255), nullable=False)
    contact_first_name = Column(String(100), nullable=False)
    contact_middle_name = Column(String(100), nullable=True)
    contact_paternal_last_name = Column(String(100), nullable=False)
    contact_maternal_last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    relationship = Column(String(100), nullable=False)
    years_of_relationship = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<CommercialReference(id={self.id}, actor_id={self.actor_id})>"


class ActorDocument(Base):
    """Document uploaded by (or for) an actor.

    ``actor_id`` is nulled rather than deleted when an actor is replaced so
    the stored object survives for the policy file.
    """

    __tablename__ = "actor_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    actor_id = Column(
        Integer, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    actor_type = Column(
        Enum(ActorType, name="document_actor_type", native_enum=False),
        nullable=False,
    )
    category = Column(
        Enum(DocumentCategory, name="document_category", native_enum=False),
        nullable=False,
    )
    original_name = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=True)
    s3_key = Column(String(500), nullable=True)
    upload_status = Column(
        Enum(DocumentUploadStatus, name="document_upload_status", native_enum=False),
        nullable=False,
        default=DocumentUploadStatus.PENDING,
    )
    uploaded_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    actor = relationship("Actor", back_populates="documents")

    def __repr__(self):
        return f"<ActorDocument(id={self.id}, category='{self.category}')>"


class ActorHistory(Base):
    """Snapshot of an actor removed by tenant replacement or a guarantor change."""

    __tablename__ = "actor_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(
        Integer, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    actor_type = Column(
        Enum(ActorType, name="history_actor_type", native_enum=False),
        nullable=False,
    )
    entity_type = Column(
        Enum(EntityType, name="history_entity_type", native_enum=False),
        nullable=False,
    )
    first_name = Column(String(100), nullable=True)
    middle_name = Column(String(100), nullable=True)
    paternal_last_name = Column(String(100), nullable=True)
    maternal_last_name = Column(String(100), nullable=True)
    company_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    rfc = Column(String(13), nullable=True)
    employment_status = Column(String(50), nullable=True)
    occupation = Column(String(255), nullable=True)
    employer_name = Column(String(255), nullable=True)
    monthly_income = Column(Numeric(12, 2), nullable=True)
    verification_status = Column(String(20), nullable=True)
    information_complete = Column(Boolean, nullable=False, default=False)
    replaced_by = Column(String(255), nullable=True)
    replacement_reason = Column(Text, nullable=True)
    replaced_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ActorHistory(id={self.id}, type='{self.actor_type}')>"


class AuditEvent(Base):
    """Append-only audit trail. INSERT + SELECT only -- no UPDATE or DELETE."""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    prev_hash = Column(String(64), nullable=True)
    user_id = Column(String(255), nullable=True)
    user_role = Column(String(50), nullable=True)
    event_type = Column(String(100), nullable=False, index=True)
    policy_id = Column(Integer, nullable=True, index=True)
    actor_id = Column(Integer, nullable=True, index=True)
    event_data = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<AuditEvent(id={self.id}, type='{self.event_type}')>"
