# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from schoolops.models.base import TenantScoped, TimestampMixin, UUIDBase, now_utc
from schoolops.models.enums import ApprovalStatus, RequisitionStatus, RequisitionType, Urgency

MONEY = sa.Numeric(14, 2)


class Requisition(UUIDBase, TenantScoped, TimestampMixin, table=True):
    """A request for funds moving through a staged approval chain."""

    __tablename__ = "requisitions"
    __table_args__ = (
        sa.Index("ix_requisition_tenant_status", "tenant_id", "status"),
        sa.UniqueConstraint("tenant_id", "sequence_number", name="uq_requisition_sequence"),
    )

    sequence_number: int
    requisition_number: str = Field(max_length=32)
    requisition_type: str = Field(default=RequisitionType.CASH_ADVANCE, max_length=50)
    requester_id: uuid.UUID | None = None
    requester_name: str = Field(max_length=255)
    department: str | None = Field(default=None, max_length=255)
    purpose: str
    description: str | None = None
    amount_requested: Decimal = Field(sa_type=MONEY)
    amount_approved: Decimal | None = Field(default=None, sa_type=MONEY)
    currency: str = Field(default="UGX", max_length=3)
    status: str = Field(
        default=RequisitionStatus.DRAFT, max_length=50, index=True, sa_column_kwargs={"server_default": "draft"}
    )
    current_approval_level: int = 0
    max_approval_levels: int = 0
    urgency: str = Field(default=Urgency.NORMAL, max_length=20)
    expense_category: str | None = Field(default=None, max_length=100)
    budget_code: str | None = Field(default=None, max_length=100)
    payment_method: str | None = Field(default=None, max_length=50)
    expected_date: date | None = None
    receipt_submitted: bool = False
    receipt_urls: list[str] | None = Field(default=None, sa_type=sa.JSON)
    rejection_reason: str | None = None
    cancelled_reason: str | None = None
    notes: str | None = None
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class RequisitionApproval(UUIDBase, TenantScoped, TimestampMixin, table=True):
    """One sign-off slot in a requisition's approval chain."""

    __tablename__ = "requisition_approvals"
    __table_args__ = (
        sa.UniqueConstraint("requisition_id", "approval_level", name="uq_requisition_approval_level"),
    )

    requisition_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("requisitions.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    approval_level: int
    approver_role: str = Field(max_length=50)
    approver_id: uuid.UUID | None = None
    approver_name: str | None = Field(default=None, max_length=255)
    status: str = Field(default=ApprovalStatus.PENDING, max_length=20)
    amount_approved: Decimal | None = Field(default=None, sa_type=MONEY)
    comments: str | None = None
    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]


class RequisitionActivity(UUIDBase, TenantScoped, TimestampMixin, table=True):
    """Append-only audit trail entry for a requisition."""

    __tablename__ = "requisition_activity"

    requisition_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("requisitions.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    user_id: uuid.UUID | None = None
    user_name: str | None = Field(default=None, max_length=255)
    action: str = Field(max_length=50)
    details: str | None = None
    metadata_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)


class RequisitionSettings(UUIDBase, TimestampMixin, table=True):
    """Per-tenant approval chain configuration."""

    __tablename__ = "requisition_settings"

    tenant_id: uuid.UUID = Field(sa_column=sa.Column(sa.Uuid, nullable=False, unique=True, index=True))
    approval_levels: int = 2
    level1_role: str = Field(default="bursar", max_length=50)
    level1_label: str = Field(default="Bursar Approval", max_length=255)
    level2_role: str | None = Field(default="head_teacher", max_length=50)
    level2_label: str | None = Field(default="Head Teacher Approval", max_length=255)
    level3_role: str | None = Field(default=None, max_length=50)
    level3_label: str | None = Field(default=None, max_length=255)
    auto_approve_below: Decimal | None = Field(default=None, sa_type=MONEY)
    require_receipt_for_advance: bool = True
    max_advance_amount: Decimal | None = Field(default=None, sa_type=MONEY)
    expense_categories: list[str] | None = Field(default=None, sa_type=sa.JSON)
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
