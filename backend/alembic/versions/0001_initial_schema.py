"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)
SCORE = sa.Numeric(5, 2)


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _tenant_id() -> sa.Column:
    return sa.Column("tenant_id", sa.Uuid(), nullable=False, index=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _report_card_fk(table: str) -> sa.Column:
    return sa.Column(
        "report_card_id",
        sa.Uuid(),
        sa.ForeignKey(f"{table}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    op.create_table(
        "tenants",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("business_type", sa.String(length=50), nullable=False),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        _created_at(),
    )
    op.create_table(
        "profiles",
        _id(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True, index=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False),
        _created_at(),
    )
    op.create_table(
        "tenant_backups",
        _id(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False, index=True),
        sa.Column("tenant_name", sa.String(length=255), nullable=False),
        sa.Column("business_type", sa.String(length=50), nullable=True),
        sa.Column("backup_data", sa.JSON(), nullable=False),
        sa.Column("deleted_by", sa.Uuid(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "requisitions",
        _id(),
        _tenant_id(),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("requisition_number", sa.String(length=32), nullable=False),
        sa.Column("requisition_type", sa.String(length=50), nullable=False),
        sa.Column("requester_id", sa.Uuid(), nullable=True),
        sa.Column("requester_name", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("purpose", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount_requested", MONEY, nullable=False),
        sa.Column("amount_approved", MONEY, nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="draft", index=True),
        sa.Column("current_approval_level", sa.Integer(), nullable=False),
        sa.Column("max_approval_levels", sa.Integer(), nullable=False),
        sa.Column("urgency", sa.String(length=20), nullable=False),
        sa.Column("expense_category", sa.String(length=100), nullable=True),
        sa.Column("budget_code", sa.String(length=100), nullable=True),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("expected_date", sa.Date(), nullable=True),
        sa.Column("receipt_submitted", sa.Boolean(), nullable=False),
        sa.Column("receipt_urls", sa.JSON(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "sequence_number", name="uq_requisition_sequence"),
    )
    op.create_index("ix_requisition_tenant_status", "requisitions", ["tenant_id", "status"])

    op.create_table(
        "requisition_approvals",
        _id(),
        _tenant_id(),
        sa.Column(
            "requisition_id",
            sa.Uuid(),
            sa.ForeignKey("requisitions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("approval_level", sa.Integer(), nullable=False),
        sa.Column("approver_role", sa.String(length=50), nullable=False),
        sa.Column("approver_id", sa.Uuid(), nullable=True),
        sa.Column("approver_name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("amount_approved", MONEY, nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("requisition_id", "approval_level", name="uq_requisition_approval_level"),
    )
    op.create_table(
        "requisition_activity",
        _id(),
        _tenant_id(),
        sa.Column(
            "requisition_id",
            sa.Uuid(),
            sa.ForeignKey("requisitions.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("user_name", sa.String(length=255), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "requisition_settings",
        _id(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False, unique=True, index=True),
        sa.Column("approval_levels", sa.Integer(), nullable=False),
        sa.Column("level1_role", sa.String(length=50), nullable=False),
        sa.Column("level1_label", sa.String(length=255), nullable=False),
        sa.Column("level2_role", sa.String(length=50), nullable=True),
        sa.Column("level2_label", sa.String(length=255), nullable=True),
        sa.Column("level3_role", sa.String(length=50), nullable=True),
        sa.Column("level3_label", sa.String(length=255), nullable=True),
        sa.Column("auto_approve_below", MONEY, nullable=True),
        sa.Column("require_receipt_for_advance", sa.Boolean(), nullable=False),
        sa.Column("max_advance_amount", MONEY, nullable=True),
        sa.Column("expense_categories", sa.JSON(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "school_classes",
        _id(),
        _tenant_id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("level", sa.String(length=50), nullable=True),
        sa.Column("section", sa.String(length=50), nullable=True),
        _created_at(),
    )
    op.create_table(
        "academic_terms",
        _id(),
        _tenant_id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("term_number", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        _created_at(),
    )
    op.create_table(
        "students",
        _id(),
        _tenant_id(),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("admission_number", sa.String(length=50), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("guardian_name", sa.String(length=255), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("class_id", sa.Uuid(), nullable=True, index=True),
        _created_at(),
    )
    op.create_table(
        "student_report_cards",
        _id(),
        _tenant_id(),
        sa.Column("student_id", sa.Uuid(), nullable=False, index=True),
        sa.Column("term_id", sa.Uuid(), nullable=True),
        sa.Column("days_present", sa.Integer(), nullable=True),
        sa.Column("total_school_days", sa.Integer(), nullable=True),
        sa.Column("class_rank", sa.Integer(), nullable=True),
        sa.Column("total_students_in_class", sa.Integer(), nullable=True),
        sa.Column("is_prefect", sa.Boolean(), nullable=False),
        sa.Column("prefect_title", sa.String(length=100), nullable=True),
        sa.Column("average_score", SCORE, nullable=True),
        sa.Column("discipline_remark", sa.Text(), nullable=True),
        sa.Column("class_teacher_comment", sa.Text(), nullable=True),
        sa.Column("head_teacher_comment", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "report_card_scores",
        _id(),
        _tenant_id(),
        _report_card_fk("student_report_cards"),
        sa.Column("subject_name", sa.String(length=100), nullable=False),
        sa.Column("subject_code", sa.String(length=20), nullable=True),
        sa.Column("formative_score", SCORE, nullable=True),
        sa.Column("school_based_score", SCORE, nullable=True),
        sa.Column("total_score", SCORE, nullable=True),
        sa.Column("grade", sa.String(length=10), nullable=True),
        sa.Column("subject_remark", sa.Text(), nullable=True),
        sa.Column("grade_descriptor", sa.Text(), nullable=True),
    )
    op.create_table(
        "report_card_skills",
        _id(),
        _tenant_id(),
        _report_card_fk("student_report_cards"),
        sa.Column("skill_category", sa.String(length=20), nullable=False),
        sa.Column("skill_name", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.String(length=50), nullable=True),
    )
    op.create_table(
        "ecd_report_cards",
        _id(),
        _tenant_id(),
        sa.Column("student_id", sa.Uuid(), nullable=False, index=True),
        sa.Column("class_id", sa.Uuid(), nullable=True),
        sa.Column("term_id", sa.Uuid(), nullable=True),
        sa.Column("days_present", sa.Integer(), nullable=False),
        sa.Column("days_absent", sa.Integer(), nullable=True),
        sa.Column("total_school_days", sa.Integer(), nullable=False),
        sa.Column("teacher_comment", sa.Text(), nullable=True),
        sa.Column("behavior_comment", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "ecd_learning_ratings",
        _id(),
        _tenant_id(),
        _report_card_fk("ecd_report_cards"),
        sa.Column("area_name", sa.String(length=100), nullable=False),
        sa.Column("area_icon", sa.String(length=16), nullable=True),
        sa.Column("rating_code", sa.String(length=20), nullable=False),
    )
    op.create_table(
        "ecd_skills_ratings",
        _id(),
        _tenant_id(),
        _report_card_fk("ecd_report_cards"),
        sa.Column("skill_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("is_achieved", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "ecd_rating_scale",
        _id(),
        _tenant_id(),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("label", sa.String(length=100), nullable=False),
        sa.Column("icon", sa.String(length=16), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "ecd_rating_scale",
        "ecd_skills_ratings",
        "ecd_learning_ratings",
        "ecd_report_cards",
        "report_card_skills",
        "report_card_scores",
        "student_report_cards",
        "students",
        "academic_terms",
        "school_classes",
        "requisition_settings",
        "requisition_activity",
        "requisition_approvals",
    ):
        op.drop_table(table)
    op.drop_index("ix_requisition_tenant_status", table_name="requisitions")
    op.drop_table("requisitions")
    op.drop_table("tenant_backups")
    op.drop_table("profiles")
    op.drop_table("tenants")
