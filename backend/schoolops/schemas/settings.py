# ruff: noqa: TC003
from __future__ import annotations

from decimal import Decimal
from typing import Self

from pydantic import BaseModel, Field, model_validator

from schoolops.models.enums import MAX_APPROVAL_LEVELS, ApproverRole

DEFAULT_EXPENSE_CATEGORIES = ["Stationery", "Transport", "Meals", "Repairs", "Supplies", "Events", "Other"]


class RequisitionSettingsPayload(BaseModel):
    """Full replacement of a tenant's approval chain configuration."""

    approval_levels: int = Field(default=2, ge=1, le=MAX_APPROVAL_LEVELS)
    level1_role: ApproverRole = ApproverRole.BURSAR
    level1_label: str = Field(default="Bursar Approval", min_length=1, max_length=255)
    level2_role: ApproverRole | None = ApproverRole.HEAD_TEACHER
    level2_label: str | None = Field(default="Head Teacher Approval", max_length=255)
    level3_role: ApproverRole | None = None
    level3_label: str | None = Field(default=None, max_length=255)
    auto_approve_below: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    require_receipt_for_advance: bool = True
    max_advance_amount: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    expense_categories: list[str] = Field(default_factory=lambda: list(DEFAULT_EXPENSE_CATEGORIES))

    @model_validator(mode="after")
    def _validate_levels(self) -> Self:
        for level in range(2, self.approval_levels + 1):
            role = getattr(self, f"level{level}_role")
            label = getattr(self, f"level{level}_label")
            if role is None or not (label or "").strip():
                msg = f"level{level}_role and level{level}_label are required when approval_levels >= {level}"
                raise ValueError(msg)
        return self


class RequisitionSettingsResponse(RequisitionSettingsPayload):
    """Effective settings; ``is_default`` is set when the tenant never saved any."""

    is_default: bool = False


class RoleOption(BaseModel):
    value: ApproverRole
    label: str
