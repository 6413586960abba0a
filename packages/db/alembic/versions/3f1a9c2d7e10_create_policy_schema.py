# This project was developed with assistance from AI tools.
"""create policy, actor, reference, document and audit tables

Revision ID: 3f1a9c2d7e10
Revises:
Create Date: 2026-10-18

"""

import sqlalchemy as sa
from alembic import op

revision = "3f1a9c2d7e10"
down_revision = None
branch_labels = None
depends_on = None

TRIGGER_FUNCTION = """
CREATE OR REPLACE FUNCTION audit_events_prevent_mutation()
RETURNS TRIGGER AS $$
BEGIN
    RAISE EXCEPTION 'audit_events is append-only: % denied for row %', TG_OP, OLD.id;
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;
"""

TRIGGER_UPDATE = """
CREATE TRIGGER audit_events_no_update
    BEFORE UPDATE ON audit_events
    FOR EACH ROW
    EXECUTE FUNCTION audit_events_prevent_mutation();
"""

TRIGGER_DELETE = """
CREATE TRIGGER audit_events_no_delete
    BEFORE DELETE ON audit_events
    FOR EACH ROW
    EXECUTE FUNCTION audit_events_prevent_mutation();
"""


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "policies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_number", sa.String(50), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="DRAFT"),
        sa.Column("guarantor_type", sa.String(20), nullable=False, server_default="NONE"),
        sa.Column("property_address_details", sa.JSON(), nullable=True),
        sa.Column("property_type", sa.String(50), nullable=True),
        sa.Column("rent_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("deposit_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("contract_length_months", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("managed_by", sa.String(255), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("policy_number"),
    )
    op.create_index("ix_policies_policy_number", "policies", ["policy_number"])
    op.create_index("ix_policies_managed_by", "policies", ["managed_by"])

    op.create_table(
        "actors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("actor_type", sa.String(20), nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False, server_default="INDIVIDUAL"),
        sa.Column("nationality", sa.String(20), nullable=False, server_default="MEXICAN"),
        sa.Column("guarantee_method", sa.String(20), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        # identity
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("paternal_last_name", sa.String(100), nullable=True),
        sa.Column("maternal_last_name", sa.String(100), nullable=True),
        sa.Column("curp", sa.String(18), nullable=True),
        sa.Column("rfc", sa.String(13), nullable=True),
        sa.Column("passport", sa.String(50), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("company_rfc", sa.String(12), nullable=True),
        sa.Column("legal_rep_first_name", sa.String(100), nullable=True),
        sa.Column("legal_rep_middle_name", sa.String(100), nullable=True),
        sa.Column("legal_rep_paternal_last_name", sa.String(100), nullable=True),
        sa.Column("legal_rep_maternal_last_name", sa.String(100), nullable=True),
        sa.Column("legal_rep_position", sa.String(100), nullable=True),
        sa.Column("legal_rep_rfc", sa.String(13), nullable=True),
        sa.Column("legal_rep_phone", sa.String(20), nullable=True),
        sa.Column("legal_rep_email", sa.String(255), nullable=True),
        sa.Column("relationship_to_tenant", sa.String(50), nullable=True),
        # contact
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("work_phone", sa.String(20), nullable=True),
        sa.Column("personal_email", sa.String(255), nullable=True),
        sa.Column("work_email", sa.String(255), nullable=True),
        sa.Column("address_details", sa.JSON(), nullable=True),
        # employment
        sa.Column("employment_status", sa.String(30), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("employer_name", sa.String(255), nullable=True),
        sa.Column("employer_address_details", sa.JSON(), nullable=True),
        sa.Column("position", sa.String(255), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("income_source", sa.String(255), nullable=True),
        sa.Column("years_at_job", sa.Integer(), nullable=True),
        sa.Column("has_additional_income", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("additional_income_source", sa.String(255), nullable=True),
        sa.Column("additional_income_amount", sa.Numeric(12, 2), nullable=True),
        # rental history
        sa.Column("previous_landlord_name", sa.String(255), nullable=True),
        sa.Column("previous_landlord_phone", sa.String(20), nullable=True),
        sa.Column("previous_landlord_email", sa.String(255), nullable=True),
        sa.Column("previous_rent_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("previous_rental_address_details", sa.JSON(), nullable=True),
        sa.Column("rental_history_years", sa.Integer(), nullable=True),
        sa.Column("number_of_occupants", sa.Integer(), nullable=True),
        sa.Column("reason_for_moving", sa.Text(), nullable=True),
        sa.Column("has_pets", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pet_description", sa.Text(), nullable=True),
        # banking
        sa.Column("bank_name", sa.String(100), nullable=True),
        sa.Column("account_holder", sa.String(255), nullable=True),
        sa.Column("account_number", sa.String(30), nullable=True),
        sa.Column("clabe", sa.String(18), nullable=True),
        sa.Column("has_properties", sa.Boolean(), nullable=True),
        # property
        sa.Column("guarantee_property_details", sa.JSON(), nullable=True),
        sa.Column("property_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("property_deed_number", sa.String(100), nullable=True),
        sa.Column("property_registry", sa.String(100), nullable=True),
        sa.Column("property_tax_account", sa.String(100), nullable=True),
        sa.Column("property_under_legal_proceeding", sa.Boolean(), nullable=True),
        sa.Column("marital_status", sa.String(30), nullable=True),
        sa.Column("spouse_name", sa.String(255), nullable=True),
        sa.Column("spouse_rfc", sa.String(13), nullable=True),
        sa.Column("spouse_curp", sa.String(18), nullable=True),
        # fiscal / payment
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("requires_cfdi", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cfdi_data", sa.JSON(), nullable=True),
        sa.Column("has_iva", sa.Boolean(), nullable=True),
        sa.Column("issues_tax_receipts", sa.Boolean(), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        # access + completion
        sa.Column("access_token", sa.String(64), nullable=True),
        sa.Column("token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tabs_completed", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("information_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", sa.String(255), nullable=True),
        sa.Column("verification_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.String(255), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("access_token"),
    )
    op.create_index("ix_actors_policy_id", "actors", ["policy_id"])
    op.create_index("ix_actors_actor_type", "actors", ["actor_type"])
    op.create_index("ix_actors_email", "actors", ["email"])
    op.create_index("ix_actors_access_token", "actors", ["access_token"])
    # At most one primary landlord per policy.
    op.create_index(
        "uq_actors_primary_landlord",
        "actors",
        ["policy_id"],
        unique=True,
        postgresql_where=sa.text("actor_type = 'LANDLORD' AND is_primary"),
    )

    op.create_table(
        "personal_references",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("paternal_last_name", sa.String(100), nullable=False),
        sa.Column("maternal_last_name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("relationship", sa.String(100), nullable=False),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["actors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personal_references_actor_id", "personal_references", ["actor_id"])

    op.create_table(
        "commercial_references",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("contact_first_name", sa.String(100), nullable=False),
        sa.Column("contact_middle_name", sa.String(100), nullable=True),
        sa.Column("contact_paternal_last_name", sa.String(100), nullable=False),
        sa.Column("contact_maternal_last_name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("relationship", sa.String(100), nullable=False),
        sa.Column("years_of_relationship", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["actors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_commercial_references_actor_id", "commercial_references", ["actor_id"])

    op.create_table(
        "actor_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_type", sa.String(20), nullable=False),
        sa.Column("category", sa.String(40), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("s3_key", sa.String(500), nullable=True),
        sa.Column("upload_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("uploaded_by", sa.String(255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["actors.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_actor_documents_policy_id", "actor_documents", ["policy_id"])
    op.create_index("ix_actor_documents_actor_id", "actor_documents", ["actor_id"])

    op.create_table(
        "actor_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("actor_type", sa.String(20), nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("paternal_last_name", sa.String(100), nullable=True),
        sa.Column("maternal_last_name", sa.String(100), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("rfc", sa.String(13), nullable=True),
        sa.Column("employment_status", sa.String(50), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("employer_name", sa.String(255), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("verification_status", sa.String(20), nullable=True),
        sa.Column("information_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("replaced_by", sa.String(255), nullable=True),
        sa.Column("replacement_reason", sa.Text(), nullable=True),
        sa.Column("replaced_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_actor_history_policy_id", "actor_history", ["policy_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("prev_hash", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("user_role", sa.String(50), nullable=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=True),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("event_data", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])
    op.create_index("ix_audit_events_policy_id", "audit_events", ["policy_id"])
    op.create_index("ix_audit_events_actor_id", "audit_events", ["actor_id"])

    op.execute(TRIGGER_FUNCTION)
    op.execute(TRIGGER_UPDATE)
    op.execute(TRIGGER_DELETE)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS audit_events_no_delete ON audit_events")
    op.execute("DROP TRIGGER IF EXISTS audit_events_no_update ON audit_events")
    op.execute("DROP FUNCTION IF EXISTS audit_events_prevent_mutation()")
    op.drop_table("audit_events")
    op.drop_table("actor_history")
    op.drop_table("actor_documents")
    op.drop_table("commercial_references")
    op.drop_table("personal_references")
    op.drop_table("actors")
    op.drop_table("policies")
