# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from schoolops.models.enums import (
    ApprovalStatus,
    ApproverRole,
    PaymentMethod,
    RequisitionStatus,
    RequisitionType,
    Urgency,
)

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateRequisitionPayload(BaseModel):
    """Request body for creating a draft requisition."""

    requisition_type: RequisitionType = RequisitionType.CASH_ADVANCE
    requester_name: str = Field(min_length=2, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    purpose: str = Field(min_length=5)
    description: str | None = None
    amount_requested: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    urgency: Urgency = Urgency.NORMAL
    expense_category: str | None = Field(default=None, max_length=100)
    budget_code: str | None = Field(default=None, max_length=100)
    payment_method: PaymentMethod | None = None
    expected_date: date | None = None
    notes: str | None = None


class UpdateRequisitionPayload(BaseModel):
    """Partial update of a draft requisition. Unset fields are left alone."""

    requisition_type: RequisitionType | None = None
    requester_name: str | None = Field(default=None, min_length=2, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    purpose: str | None = Field(default=None, min_length=5)
    description: str | None = None
    amount_requested: Decimal | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    urgency: Urgency | None = None
    expense_category: str | None = Field(default=None, max_length=100)
    budget_code: str | None = Field(default=None, max_length=100)
    payment_method: PaymentMethod | None = None
    expected_date: date | None = None
    notes: str | None = None


class ApprovePayload(BaseModel):
    """Request body for signing off the current approval level."""

    approval_id: uuid.UUID | None = None
    amount_approved: Decimal | None = Field(default=None, gt=0, max_digits=14, decimal_places=2)
    comments: str | None = Field(default=None, max_length=1000)


class RejectPayload(BaseModel):
    """Request body for rejecting at the current approval level."""

    approval_id: uuid.UUID | None = None
    reason: str = Field(max_length=1000)

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "A rejection reason is required"
            raise ValueError(msg)
        return value


class CancelPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class ReceiptPayload(BaseModel):
    receipt_urls: list[str] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RequisitionResponse(BaseModel):
    """Response schema for a single requisition."""

    id: uuid.UUID
    tenant_id: uuid.UUID
    requisition_number: str
    requisition_type: RequisitionType
    requester_id: uuid.UUID | None
    requester_name: str
    department: str | None
    purpose: str
    description: str | None
    amount_requested: Decimal
    amount_approved: Decimal | None
    currency: str
    status: RequisitionStatus
    current_approval_level: int
    max_approval_levels: int
    urgency: Urgency
    expense_category: str | None
    budget_code: str | None
    payment_method: PaymentMethod | None
    expected_date: date | None
    receipt_submitted: bool
    receipt_urls: list[str] | None
    rejection_reason: str | None
    cancelled_reason: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class RequisitionListResponse(BaseModel):
    """Paginated list of requisitions."""

    items: list[RequisitionResponse]
    total: int


class ApprovalResponse(BaseModel):
    id: uuid.UUID
    requisition_id: uuid.UUID
    approval_level: int
    approver_role: ApproverRole
    approver_role_label: str
    approver_id: uuid.UUID | None
    approver_name: str | None
    status: ApprovalStatus
    amount_approved: Decimal | None
    comments: str | None
    approved_at: datetime | None
    created_at: datetime


class ActivityResponse(BaseModel):
    id: uuid.UUID
    requisition_id: uuid.UUID
    user_id: uuid.UUID | None
    user_name: str | None
    action: str
    details: str | None
    metadata: dict[str, Any] | None
    created_at: datetime


class RequisitionStatsResponse(BaseModel):
    """Headline counters for the requisitions dashboard."""

    total: int
    pending: int
    approved: int
    total_amount: Decimal
