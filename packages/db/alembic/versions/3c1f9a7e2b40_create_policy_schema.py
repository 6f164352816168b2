# This project was developed with assistance from AI tools.
"""create policy schema

Revision ID: 3c1f9a7e2b40
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""

import sqlalchemy as sa
from alembic import op

revision = "3c1f9a7e2b40"
down_revision = None
branch_labels = None
depends_on = None

_ACTOR_TABLES = ("landlords", "tenants", "joint_obligors", "avals")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
    ]


def _actor_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("is_company", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("paternal_last_name", sa.String(100), nullable=True),
        sa.Column("maternal_last_name", sa.String(100), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("legal_rep_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("rfc", sa.String(20), nullable=True),
        sa.Column("curp", sa.String(20), nullable=True),
        sa.Column("nationality", sa.String(20), nullable=False, server_default="MEXICAN"),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("employment_status", sa.String(30), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("employer_name", sa.String(255), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("information_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("verified_by", sa.String(255), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("access_token", sa.String(128), nullable=True),
        sa.Column("token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archive_reason", sa.Text(), nullable=True),
        *_timestamps(),
    ]


def _guarantee_property_columns() -> list[sa.Column]:
    return [
        sa.Column("property_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("property_deed_number", sa.String(100), nullable=True),
        sa.Column("property_registry", sa.String(100), nullable=True),
        sa.Column("guarantee_property_address", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "packages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("min_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "policies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_number", sa.String(50), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="DRAFT"),
        sa.Column("guarantor_type", sa.String(20), nullable=False, server_default="NONE"),
        sa.Column("rent_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("property_address", sa.Text(), nullable=True),
        sa.Column("contract_length_months", sa.Integer(), nullable=False, server_default="12"),
        sa.Column("package_id", sa.Integer(), nullable=True),
        sa.Column("tenant_percentage", sa.Numeric(5, 2), nullable=False, server_default="100"),
        sa.Column("landlord_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["package_id"], ["packages.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_policies_policy_number", "policies", ["policy_number"], unique=True)
    op.create_index("ix_policies_package_id", "policies", ["package_id"])
    op.create_index("ix_policies_created_by", "policies", ["created_by"])

    op.create_table(
        "landlords",
        *_actor_columns(),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bank_name", sa.String(100), nullable=True),
        sa.Column("account_holder", sa.String(255), nullable=True),
        sa.Column("clabe", sa.String(18), nullable=True),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_landlords_primary_per_policy",
        "landlords",
        ["policy_id"],
        unique=True,
        postgresql_where=sa.text("is_primary AND archived_at IS NULL"),
    )

    op.create_table(
        "tenants",
        *_actor_columns(),
        sa.Column("previous_address", sa.Text(), nullable=True),
        sa.Column("previous_landlord_name", sa.String(255), nullable=True),
        sa.Column("previous_rent_amount", sa.Numeric(12, 2), nullable=True),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("policy_id", name="uq_tenants_policy"),
    )

    op.create_table(
        "joint_obligors",
        *_actor_columns(),
        *_guarantee_property_columns(),
        sa.Column("guarantee_method", sa.String(20), nullable=True),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "avals",
        *_actor_columns(),
        *_guarantee_property_columns(),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    for table in _ACTOR_TABLES:
        op.create_index(f"ix_{table}_policy_id", table, ["policy_id"])
        op.create_index(f"ix_{table}_access_token", table, ["access_token"], unique=True)

    op.create_table(
        "actor_references",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("actor_role", sa.String(20), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(20), nullable=False, server_default="PERSONAL"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("relationship_to_actor", sa.String(100), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_actor_references_policy_id", "actor_references", ["policy_id"])
    op.create_index(
        "ix_actor_references_owner", "actor_references", ["actor_role", "actor_id"]
    )

    op.create_table(
        "actor_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("actor_role", sa.String(20), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=True),
        sa.Column("content_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("uploaded_by", sa.String(255), nullable=True),
        sa.Column("validation_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("validated_by", sa.String(255), nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_actor_documents_policy_id", "actor_documents", ["policy_id"])
    op.create_index("ix_actor_documents_owner", "actor_documents", ["actor_role", "actor_id"])

    op.create_table(
        "investigations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("verdict", sa.String(20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_by", sa.String(255), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_investigations_policy_id", "investigations", ["policy_id"], unique=True)

    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("uploaded_by", sa.String(255), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contracts_policy_id", "contracts", ["policy_id"])

    op.create_table(
        "policy_activities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("performed_by_type", sa.String(20), nullable=False, server_default="system"),
        sa.Column("performed_by_id", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_policy_activities_policy_id", "policy_activities", ["policy_id"])
    op.create_index("ix_policy_activities_action", "policy_activities", ["action"])

    # Activity log is append-only at the database level too
    op.execute(
        """
        CREATE OR REPLACE FUNCTION policy_activities_append_only()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'policy_activities is append-only (% not allowed)', TG_OP;
        END;
        $$ LANGUAGE plpgsql
        """
    )
    op.execute(
        """
        CREATE TRIGGER policy_activities_no_update_delete
        BEFORE UPDATE OR DELETE ON policy_activities
        FOR EACH ROW EXECUTE FUNCTION policy_activities_append_only()
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS policy_activities_no_update_delete ON policy_activities")
    op.execute("DROP FUNCTION IF EXISTS policy_activities_append_only()")
    op.drop_table("policy_activities")
    op.drop_table("contracts")
    op.drop_table("investigations")
    op.drop_table("actor_documents")
    op.drop_table("actor_references")
    for table in reversed(_ACTOR_TABLES):
        op.drop_table(table)
    op.drop_table("policies")
    op.drop_table("packages")
