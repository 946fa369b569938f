"""Requisition approval state machine.

Every function here is pure: it takes the current workflow state and returns
the next one, or raises when the transition is not allowed. The requisition
service persists whatever these functions return and nothing else, so all
status arithmetic lives in this module.

    draft --submit--> pending_level1 --approve--> pending_level2 ... --approve--> approved
                  \\-> approved (below auto-approve threshold)         \\--> partially_approved
    pending_levelN --reject--> rejected
    draft | pending_levelN --cancel--> cancelled
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from schoolops.exceptions import AppError, ConflictError, InvalidTransitionError
from schoolops.models.enums import MAX_APPROVAL_LEVELS, ApproverRole, RequisitionStatus

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True)
class ApprovalSlot:
    """One approval row to create at submission time."""

    level: int
    role: ApproverRole


@dataclass(frozen=True)
class SubmissionPlan:
    status: RequisitionStatus
    current_level: int
    max_levels: int
    slots: tuple[ApprovalSlot, ...]
    auto_approved: bool = False


@dataclass(frozen=True)
class ApprovalOutcome:
    status: RequisitionStatus
    current_level: int
    amount_approved: Decimal
    is_final: bool


def _coerce(status: str | RequisitionStatus) -> RequisitionStatus:
    return status if isinstance(status, RequisitionStatus) else RequisitionStatus(status)


def ensure_editable(status: str | RequisitionStatus) -> None:
    """Only drafts may have their details changed."""
    current = _coerce(status)
    if current is not RequisitionStatus.DRAFT:
        raise InvalidTransitionError(current, "edit")


def ensure_pending(status: str | RequisitionStatus, action: str) -> RequisitionStatus:
    """Approvers can only act while a level is awaiting sign-off."""
    current = _coerce(status)
    if not current.is_pending:
        raise InvalidTransitionError(current, action)
    return current


def plan_submission(
    status: str | RequisitionStatus,
    roles: Sequence[ApproverRole],
    amount_requested: Decimal,
    auto_approve_below: Decimal | None = None,
) -> SubmissionPlan:
    """Move a draft into the approval chain described by ``roles`` (level 1 first)."""
    current = _coerce(status)
    if current is not RequisitionStatus.DRAFT:
        raise InvalidTransitionError(current, "submit")

    levels = len(roles)
    if not 1 <= levels <= MAX_APPROVAL_LEVELS:
        msg = f"Approval chain must have between 1 and {MAX_APPROVAL_LEVELS} levels, got {levels}"
        raise ValueError(msg)

    slots = tuple(ApprovalSlot(level=i, role=role) for i, role in enumerate(roles, start=1))

    if auto_approve_below is not None and amount_requested < auto_approve_below:
        return SubmissionPlan(
            status=RequisitionStatus.APPROVED,
            current_level=levels,
            max_levels=levels,
            slots=slots,
            auto_approved=True,
        )

    return SubmissionPlan(
        status=RequisitionStatus.PENDING_LEVEL1,
        current_level=1,
        max_levels=levels,
        slots=slots,
    )


def plan_approval(
    status: str | RequisitionStatus,
    current_level: int,
    max_levels: int,
    amount_requested: Decimal,
    amount_carried: Decimal | None = None,
    override_amount: Decimal | None = None,
) -> ApprovalOutcome:
    """Sign off the current level.

    ``amount_carried`` is the amount approved by the previous level (None
    before the first sign-off). An approver may keep it or lower it, never
    raise it; the final level decides between approved and partially
    approved by comparing against the requested amount.
    """
    current = ensure_pending(status, "approve")
    if current.level != current_level or not 1 <= current_level <= max_levels:
        raise ConflictError(
            f"Requisition is in '{current}' but records approval level {current_level} of {max_levels}"
        )

    ceiling = amount_carried if amount_carried is not None else amount_requested
    if override_amount is None:
        amount = ceiling
    elif override_amount <= 0:
        raise AppError("Approved amount must be greater than zero", status_code=400)
    elif override_amount > ceiling:
        raise AppError(f"Approved amount cannot exceed {ceiling}", status_code=400)
    else:
        amount = override_amount

    if current_level >= max_levels:
        final_status = (
            RequisitionStatus.PARTIALLY_APPROVED if amount < amount_requested else RequisitionStatus.APPROVED
        )
        return ApprovalOutcome(status=final_status, current_level=current_level, amount_approved=amount, is_final=True)

    next_level = current_level + 1
    return ApprovalOutcome(
        status=RequisitionStatus.pending_for_level(next_level),
        current_level=next_level,
        amount_approved=amount,
        is_final=False,
    )


def plan_rejection(status: str | RequisitionStatus) -> RequisitionStatus:
    ensure_pending(status, "reject")
    return RequisitionStatus.REJECTED


def plan_cancellation(status: str | RequisitionStatus) -> RequisitionStatus:
    current = _coerce(status)
    if current is not RequisitionStatus.DRAFT and not current.is_pending:
        raise InvalidTransitionError(current, "cancel")
    return RequisitionStatus.CANCELLED


def ensure_receipt_allowed(status: str | RequisitionStatus) -> None:
    current = _coerce(status)
    if current not in (RequisitionStatus.APPROVED, RequisitionStatus.PARTIALLY_APPROVED):
        raise InvalidTransitionError(current, "record a receipt for")
