# This project was developed with assistance from AI tools.
"""create marketplace tables

Revision ID: 3b7d1c9e2a41
Revises:
Create Date: 2026-10-18 09:40:12.518204

"""

import sqlalchemy as sa
from alembic import op

revision = "3b7d1c9e2a41"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(32), nullable=False, server_default="buyer"),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "role IN ('buyer', 'seller', 'bank_agent', 'admin')", name="ck_profiles_role"
        ),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bathrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("area", sa.Integer(), nullable=True),
        sa.Column("property_type", sa.String(32), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price > 0", name="ck_properties_price_positive"),
    )
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_is_active", "properties", ["is_active"])

    op.create_table(
        "saved_properties",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "property_id", name="uq_saved_property_user_property"),
    )
    op.create_index("ix_saved_properties_user_id", "saved_properties", ["user_id"])
    op.create_index("ix_saved_properties_property_id", "saved_properties", ["property_id"])

    op.create_table(
        "bank_agent_registrations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("national_id", sa.String(50), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("bank_name", sa.String(200), nullable=False),
        sa.Column("position", sa.String(200), nullable=False),
        sa.Column("employee_id", sa.String(100), nullable=False),
        sa.Column("department", sa.String(200), nullable=False),
        sa.Column("work_address", sa.Text(), nullable=True),
        sa.Column("supervisor_name", sa.String(200), nullable=True),
        sa.Column("supervisor_phone", sa.String(20), nullable=False),
        sa.Column("national_id_document", sa.Text(), nullable=True),
        sa.Column("bank_employment_letter", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status <> 'rejected' OR rejection_reason IS NOT NULL",
            name="ck_bank_agent_registrations_rejection_reason",
        ),
    )
    op.create_index(
        "ix_bank_agent_registrations_user_id", "bank_agent_registrations", ["user_id"]
    )
    op.create_index(
        "uq_bank_agent_registrations_active_user",
        "bank_agent_registrations",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'approved')"),
    )

    op.create_table(
        "loan_applications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("applicant_id", sa.String(255), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=True),
        sa.Column("selected_bank_agent_id", sa.Integer(), nullable=True),
        sa.Column("loan_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("loan_term_years", sa.Integer(), nullable=False),
        sa.Column("interest_rate", sa.Numeric(6, 3), nullable=True),
        sa.Column("monthly_payment", sa.Numeric(12, 2), nullable=True),
        sa.Column("employment_status", sa.String(50), nullable=False),
        sa.Column("annual_income", sa.Numeric(14, 2), nullable=False),
        sa.Column("identity_card_document", sa.Text(), nullable=True),
        sa.Column("proof_of_income_document", sa.Text(), nullable=True),
        sa.Column("submitted_documents", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("include_insurance", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("monthly_insurance_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("bank_agent_decision", sa.String(32), nullable=True),
        sa.Column("bank_agent_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["applicant_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["selected_bank_agent_id"], ["bank_agent_registrations.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("loan_amount > 0", name="ck_loan_applications_amount_positive"),
        sa.CheckConstraint(
            "(status IN ('pending', 'under_review') AND bank_agent_decision IS NULL) "
            "OR (status = 'approved' AND bank_agent_decision = 'approved') "
            "OR (status = 'rejected' AND bank_agent_decision = 'rejected')",
            name="ck_loan_applications_status_decision",
        ),
    )
    op.create_index("ix_loan_applications_applicant_id", "loan_applications", ["applicant_id"])
    op.create_index("ix_loan_applications_property_id", "loan_applications", ["property_id"])
    op.create_index(
        "ix_loan_applications_selected_bank_agent_id",
        "loan_applications",
        ["selected_bank_agent_id"],
    )
    op.create_index("ix_loan_applications_status", "loan_applications", ["status"])


def downgrade() -> None:
    op.drop_table("loan_applications")
    op.drop_table("bank_agent_registrations")
    op.drop_table("saved_properties")
    op.drop_table("properties")
    op.drop_table("profiles")
