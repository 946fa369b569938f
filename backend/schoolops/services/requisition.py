# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from schoolops.config import get_settings
from schoolops.db import atomic
from schoolops.exceptions import AppError, ConflictError, ForbiddenError, NotFoundError
from schoolops.models.base import now_utc
from schoolops.models.enums import (
    PENDING_STATUSES,
    ActivityAction,
    ApprovalStatus,
    ApproverRole,
    RequisitionStatus,
    RequisitionType,
    StatusGroup,
)
from schoolops.models.requisition import Requisition, RequisitionActivity, RequisitionApproval, RequisitionSettings
from schoolops.schemas.requisition import (
    ActivityResponse,
    ApprovalResponse,
    RequisitionListResponse,
    RequisitionResponse,
    RequisitionStatsResponse,
)
from schoolops.services import workflow
from schoolops.services.activity import write_activity
from schoolops.services.approval_settings import get_settings_row, resolve_level_roles
from schoolops.services.profile import get_display_name

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from schoolops.schemas.auth import AuthContext
    from schoolops.schemas.requisition import (
        ApprovePayload,
        CancelPayload,
        CreateRequisitionPayload,
        ReceiptPayload,
        RejectPayload,
        UpdateRequisitionPayload,
    )

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = frozenset({"requisition_type", "requester_name", "purpose", "amount_requested", "urgency"})


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_requisition_response(requisition: Requisition) -> RequisitionResponse:
    """Map a requisition model to its response schema."""
    return RequisitionResponse(
        id=requisition.id,
        tenant_id=requisition.tenant_id,
        requisition_number=requisition.requisition_number,
        requisition_type=RequisitionType(requisition.requisition_type),
        requester_id=requisition.requester_id,
        requester_name=requisition.requester_name,
        department=requisition.department,
        purpose=requisition.purpose,
        description=requisition.description,
        amount_requested=requisition.amount_requested,
        amount_approved=requisition.amount_approved,
        currency=requisition.currency,
        status=RequisitionStatus(requisition.status),
        current_approval_level=requisition.current_approval_level,
        max_approval_levels=requisition.max_approval_levels,
        urgency=requisition.urgency,
        expense_category=requisition.expense_category,
        budget_code=requisition.budget_code,
        payment_method=requisition.payment_method,
        expected_date=requisition.expected_date,
        receipt_submitted=requisition.receipt_submitted,
        receipt_urls=requisition.receipt_urls,
        rejection_reason=requisition.rejection_reason,
        cancelled_reason=requisition.cancelled_reason,
        notes=requisition.notes,
        created_at=requisition.created_at,
        updated_at=requisition.updated_at,
    )


def _build_approval_response(approval: RequisitionApproval) -> ApprovalResponse:
    role = ApproverRole(approval.approver_role)
    return ApprovalResponse(
        id=approval.id,
        requisition_id=approval.requisition_id,
        approval_level=approval.approval_level,
        approver_role=role,
        approver_role_label=role.label,
        approver_id=approval.approver_id,
        approver_name=approval.approver_name,
        status=ApprovalStatus(approval.status),
        amount_approved=approval.amount_approved,
        comments=approval.comments,
        approved_at=approval.approved_at,
        created_at=approval.created_at,
    )


def _build_activity_response(entry: RequisitionActivity) -> ActivityResponse:
    return ActivityResponse(
        id=entry.id,
        requisition_id=entry.requisition_id,
        user_id=entry.user_id,
        user_name=entry.user_name,
        action=entry.action,
        details=entry.details,
        metadata=entry.metadata_json,
        created_at=entry.created_at,
    )


async def _get_requisition_or_404(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    requisition_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Requisition:
    """Fetch a requisition scoped to tenant. Raises 404 if not found."""
    query = select(Requisition).where(
        col(Requisition.id) == requisition_id,
        col(Requisition.tenant_id) == tenant_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    requisition = result.scalar_one_or_none()
    if requisition is None:
        raise NotFoundError("Requisition not found")
    return requisition


async def _write_requisition(session: AsyncSession, requisition: Requisition, **values: Any) -> None:
    """Write ``values`` only if the row still has the status and version we read.

    Any other writer that got in first has bumped the version, so the update
    matches zero rows and the caller's whole transaction is abandoned.
    """
    result = await session.execute(
        update(Requisition)
        .where(
            col(Requisition.id) == requisition.id,
            col(Requisition.status) == requisition.status,
            col(Requisition.version) == requisition.version,
        )
        .values(**values, version=requisition.version + 1, updated_at=now_utc())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("Requisition was modified by another request; reload and try again")


async def _decide_slot(session: AsyncSession, slot: RequisitionApproval, **values: Any) -> None:
    """Record a decision on an approval row that must still be pending."""
    result = await session.execute(
        update(RequisitionApproval)
        .where(
            col(RequisitionApproval.id) == slot.id,
            col(RequisitionApproval.status) == ApprovalStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(f"Approval level {slot.approval_level} has already been decided")


async def _get_current_slot(
    session: AsyncSession,
    requisition: Requisition,
    approval_id: uuid.UUID | None,
) -> RequisitionApproval:
    """Return the pending approval row for the requisition's current level."""
    result = await session.execute(
        select(RequisitionApproval).where(
            col(RequisitionApproval.requisition_id) == requisition.id,
            col(RequisitionApproval.approval_level) == requisition.current_approval_level,
            col(RequisitionApproval.status) == ApprovalStatus.PENDING.value,
        )
    )
    slot = result.scalar_one_or_none()
    if slot is None:
        raise ConflictError(f"No pending approval at level {requisition.current_approval_level}")
    if approval_id is not None and slot.id != approval_id:
        raise ConflictError(
            f"Approval {approval_id} is not the pending approval for level {requisition.current_approval_level}"
        )
    return slot


def _ensure_can_decide(auth: AuthContext, slot: RequisitionApproval) -> None:
    if auth.is_admin or auth.role == slot.approver_role:
        return
    role = ApproverRole(slot.approver_role)
    raise ForbiddenError(f"Approval level {slot.approval_level} must be decided by the {role.label}")


def _ensure_requester_or_admin(auth: AuthContext, requisition: Requisition, action: str) -> None:
    if auth.is_admin or requisition.requester_id == auth.user_id:
        return
    raise ForbiddenError(f"Only the requester or an administrator can {action} this requisition")


def _enforce_advance_limit(
    settings_row: RequisitionSettings | None,
    requisition_type: str,
    amount: Decimal,
) -> None:
    if settings_row is None or settings_row.max_advance_amount is None:
        return
    if requisition_type == RequisitionType.CASH_ADVANCE and amount > settings_row.max_advance_amount:
        raise AppError(
            f"Cash advances are limited to {settings_row.max_advance_amount}",
            status_code=400,
        )


async def _next_sequence_number(session: AsyncSession, tenant_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.coalesce(func.max(Requisition.sequence_number), 0)).where(
            col(Requisition.tenant_id) == tenant_id
        )
    )
    return int(result.scalar_one()) + 1


async def _reload(session: AsyncSession, requisition: Requisition) -> RequisitionResponse:
    await session.refresh(requisition)
    return _build_requisition_response(requisition)


# ---------------------------------------------------------------------------
# Public API: mutations
# ---------------------------------------------------------------------------


async def create_requisition(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateRequisitionPayload,
) -> RequisitionResponse:
    """Create a draft requisition with the tenant's next sequence number."""
    try:
        async with atomic(session):
            settings_row = await get_settings_row(session, auth.tenant_id)
            _enforce_advance_limit(settings_row, payload.requisition_type, payload.amount_requested)

            sequence = await _next_sequence_number(session, auth.tenant_id)
            requisition = Requisition(
                tenant_id=auth.tenant_id,
                sequence_number=sequence,
                requisition_number=f"REQ-{sequence:05d}",
                requisition_type=payload.requisition_type.value,
                requester_id=auth.user_id,
                requester_name=payload.requester_name,
                department=payload.department,
                purpose=payload.purpose,
                description=payload.description,
                amount_requested=payload.amount_requested,
                currency=(payload.currency or get_settings().default_currency).upper(),
                status=RequisitionStatus.DRAFT.value,
                urgency=payload.urgency.value,
                expense_category=payload.expense_category,
                budget_code=payload.budget_code,
                payment_method=payload.payment_method.value if payload.payment_method else None,
                expected_date=payload.expected_date,
                notes=payload.notes,
            )
            session.add(requisition)
            await session.flush()

            await write_activity(
                session,
                tenant_id=auth.tenant_id,
                requisition_id=requisition.id,
                action=ActivityAction.CREATED,
                user_id=auth.user_id,
                user_name=payload.requester_name,
                details="Requisition created",
            )
    except IntegrityError:
        raise ConflictError("Another requisition took this number; try again") from None

    logger.info("Requisition %s created for tenant=%s", requisition.requisition_number, auth.tenant_id)
    return await _reload(session, requisition)


async def update_requisition(
    session: AsyncSession,
    auth: AuthContext,
    requisition_id: uuid.UUID,
    payload: UpdateRequisitionPayload,
) -> RequisitionResponse:
    """Edit the details of a draft. Workflow fields are never writable here."""
    changes = payload.model_dump(exclude_unset=True)

    async with atomic(session):
        requisition = await _get_requisition_or_404(session, auth.tenant_id, requisition_id, for_update=True)
        workflow.ensure_editable(requisition.status)
        _ensure_requester_or_admin(auth, requisition, "edit")

        if not changes:
            return _build_requisition_response(requisition)

        values = {key: getattr(value, "value", value) for key, value in changes.items()}
        cleared = sorted(key for key in _REQUIRED_FIELDS if key in values and values[key] is None)
        if cleared:
            raise AppError(f"Cannot clear required field(s): {', '.join(cleared)}", status_code=400)

        settings_row = await get_settings_row(session, auth.tenant_id)
        _enforce_advance_limit(
            settings_row,
            values.get("requisition_type", requisition.requisition_type),
            values.get("amount_requested", requisition.amount_requested),
        )
        await _write_requisition(session, requisition, **values)
        await write_activity(
            session,
            tenant_id=auth.tenant_id,
            requisition_id=requisition.id,
            action=ActivityAction.UPDATED,
            user_id=auth.user_id,
            user_name=await get_display_name(session, auth.user_id),
            details="Requisition details updated",
            metadata={"fields": sorted(values)},
        )

    return await _reload(session, requisition)


async def submit_requisition(
    session: AsyncSession,
    auth: AuthContext,
    requisition_id: uuid.UUID,
) -> RequisitionResponse:
    """Submit a draft into its approval chain.

    The chain is fixed at this point from the tenant's settings: one approval
    row per level, status change and activity entry are committed together.
    """
    async with atomic(session):
        requisition = await _get_requisition_or_404(session, auth.tenant_id, requisition_id, for_update=True)
        _ensure_requester_or_admin(auth, requisition, "submit")

        settings_row = await get_settings_row(session, auth.tenant_id)
        _enforce_advance_limit(settings_row, requisition.requisition_type, requisition.amount_requested)
        plan = workflow.plan_submission(
            requisition.status,
            resolve_level_roles(settings_row),
            requisition.amount_requested,
            auto_approve_below=settings_row.auto_approve_below if settings_row is not None else None,
        )

        values: dict[str, Any] = {
            "status": plan.status.value,
            "current_approval_level": plan.current_level,
            "max_approval_levels": plan.max_levels,
        }
        if plan.auto_approved:
            values["amount_approved"] = requisition.amount_requested
        await _write_requisition(session, requisition, **values)

        decided_at = now_utc() if plan.auto_approved else None
        for slot in plan.slots:
            session.add(
                RequisitionApproval(
                    tenant_id=auth.tenant_id,
                    requisition_id=requisition.id,
                    approval_level=slot.level,
                    approver_role=slot.role.value,
                    status=(ApprovalStatus.APPROVED if plan.auto_approved else ApprovalStatus.PENDING).value,
                    amount_approved=requisition.amount_requested if plan.auto_approved else None,
                    comments="Auto-approved below threshold" if plan.auto_approved else None,
                    approved_at=decided_at,
                )
            )

        user_name = await get_display_name(session, auth.user_id)
        if plan.auto_approved:
            await write_activity(
                session,
                tenant_id=auth.tenant_id,
                requisition_id=requisition.id,
                action=ActivityAction.AUTO_APPROVED,
                user_id=auth.user_id,
                user_name=user_name,
                details="Requisition auto-approved below the tenant threshold",
                metadata={"amount_approved": requisition.amount_requested},
            )
        else:
            await write_activity(
                session,
                tenant_id=auth.tenant_id,
                requisition_id=requisition.id,
                action=ActivityAction.SUBMITTED,
                user_id=auth.user_id,
                user_name=user_name,
                details="Requisition submitted for approval",
                metadata={"approval_levels": plan.max_levels},
            )

    logger.info(
        "Requisition %s submitted: status=%s levels=%d",
        requisition.requisition_number,
        plan.status,
        plan.max_levels,
    )
    return await _reload(session, requisition)


async def approve_requisition(
    session: AsyncSession,
    auth: AuthContext,
    requisition_id: uuid.UUID,
    payload: ApprovePayload,
) -> RequisitionResponse:
    """Sign off the current approval level and advance or finalise the requisition."""
    async with atomic(session):
        requisition = await _get_requisition_or_404(session, auth.tenant_id, requisition_id, for_update=True)
        workflow.ensure_pending(requisition.status, "approve")
        slot = await _get_current_slot(session, requisition, payload.approval_id)
        _ensure_can_decide(auth, slot)
        outcome = workflow.plan_approval(
            requisition.status,
            requisition.current_approval_level,
            requisition.max_approval_levels,
            requisition.amount_requested,
            amount_carried=requisition.amount_approved,
            override_amount=payload.amount_approved,
        )
        approver_name = await get_display_name(session, auth.user_id)

        await _decide_slot(
            session,
            slot,
            status=ApprovalStatus.APPROVED.value,
            approver_id=auth.user_id,
            approver_name=approver_name,
            amount_approved=outcome.amount_approved,
            comments=payload.comments,
            approved_at=now_utc(),
        )
        await _write_requisition(
            session,
            requisition,
            status=outcome.status.value,
            current_approval_level=outcome.current_level,
            amount_approved=outcome.amount_approved,
        )
        await write_activity(
            session,
            tenant_id=auth.tenant_id,
            requisition_id=requisition.id,
            action=ActivityAction.APPROVED,
            user_id=auth.user_id,
            user_name=approver_name,
            details=payload.comments or f"Approved at level {slot.approval_level}",
            metadata={"level": slot.approval_level, "amount_approved": outcome.amount_approved},
        )

    logger.info(
        "Requisition %s approved at level %d -> %s",
        requisition.requisition_number,
        slot.approval_level,
        outcome.status,
    )
    return await _reload(session, requisition)


async def reject_requisition(
    session: AsyncSession,
    auth: AuthContext,
    requisition_id: uuid.UUID,
    payload: RejectPayload,
) -> RequisitionResponse:
    """Reject at the current level. Rejection ends the workflow."""
    async with atomic(session):
        requisition = await _get_requisition_or_404(session, auth.tenant_id, requisition_id, for_update=True)
        new_status = workflow.plan_rejection(requisition.status)
        slot = await _get_current_slot(session, requisition, payload.approval_id)
        _ensure_can_decide(auth, slot)
        approver_name = await get_display_name(session, auth.user_id)

        await _decide_slot(
            session,
            slot,
            status=ApprovalStatus.REJECTED.value,
            approver_id=auth.user_id,
            approver_name=approver_name,
            comments=payload.reason,
            approved_at=now_utc(),
        )
        await _write_requisition(session, requisition, status=new_status.value, rejection_reason=payload.reason)
        await write_activity(
            session,
            tenant_id=auth.tenant_id,
            requisition_id=requisition.id,
            action=ActivityAction.REJECTED,
            user_id=auth.user_id,
            user_name=approver_name,
            details=payload.reason,
            metadata={"level": slot.approval_level},
        )

    logger.info("Requisition %s rejected at level %d", requisition.requisition_number, slot.approval_level)
    return await _reload(session, requisition)


async def cancel_requisition(
    session: AsyncSession,
    auth: AuthContext,
    requisition_id: uuid.UUID,
    payload: CancelPayload | None = None,
) -> RequisitionResponse:
    """Withdraw a draft or pending requisition."""
    reason = payload.reason if payload else None

    async with atomic(session):
        requisition = await _get_requisition_or_404(session, auth.tenant_id, requisition_id, for_update=True)
        new_status = workflow.plan_cancellation(requisition.status)
        _ensure_requester_or_admin(auth, requisition, "cancel")

        await _write_requisition(session, requisition, status=new_status.value, cancelled_reason=reason)
        await write_activity(
            session,
            tenant_id=auth.tenant_id,
            requisition_id=requisition.id,
            action=ActivityAction.CANCELLED,
            user_id=auth.user_id,
            user_name=await get_display_name(session, auth.user_id),
            details=reason or "Requisition cancelled",
        )

    logger.info("Requisition %s cancelled", requisition.requisition_number)
    return await _reload(session, requisition)


async def record_receipt(
    session: AsyncSession,
    auth: AuthContext,
    requisition_id: uuid.UUID,
    payload: ReceiptPayload,
) -> RequisitionResponse:
    """Attach spending receipts to an approved requisition."""
    async with atomic(session):
        requisition = await _get_requisition_or_404(session, auth.tenant_id, requisition_id, for_update=True)
        workflow.ensure_receipt_allowed(requisition.status)
        _ensure_requester_or_admin(auth, requisition, "submit receipts for")

        urls = [*(requisition.receipt_urls or []), *payload.receipt_urls]
        await _write_requisition(session, requisition, receipt_submitted=True, receipt_urls=urls)
        await write_activity(
            session,
            tenant_id=auth.tenant_id,
            requisition_id=requisition.id,
            action=ActivityAction.RECEIPT_SUBMITTED,
            user_id=auth.user_id,
            user_name=await get_display_name(session, auth.user_id),
            details=f"{len(payload.receipt_urls)} receipt(s) submitted",
            metadata={"receipt_urls": payload.receipt_urls},
        )

    return await _reload(session, requisition)


# ---------------------------------------------------------------------------
# Public API: reads
# ---------------------------------------------------------------------------


async def get_requisition(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    requisition_id: uuid.UUID,
) -> RequisitionResponse:
    """Get a single requisition by ID."""
    requisition = await _get_requisition_or_404(session, tenant_id, requisition_id)
    return _build_requisition_response(requisition)


async def list_requisitions(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    status_filter: RequisitionStatus | None = None,
    group: StatusGroup | None = None,
    search: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> RequisitionListResponse:
    """List requisitions with optional filters, newest first."""
    filters = [col(Requisition.tenant_id) == tenant_id]

    if status_filter is not None:
        filters.append(col(Requisition.status) == status_filter.value)
    if group is not None:
        filters.append(col(Requisition.status).in_([s.value for s in group.statuses()]))
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(
                col(Requisition.requisition_number).ilike(pattern),
                col(Requisition.requester_name).ilike(pattern),
                col(Requisition.purpose).ilike(pattern),
            )
        )

    count_result = await session.execute(select(func.count()).select_from(Requisition).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(Requisition)
        .where(*filters)
        .order_by(col(Requisition.created_at).desc(), col(Requisition.sequence_number).desc())
        .offset(offset)
        .limit(limit)
    )
    return RequisitionListResponse(
        items=[_build_requisition_response(r) for r in result.scalars().all()],
        total=total,
    )


async def list_approvals(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    requisition_id: uuid.UUID,
) -> list[ApprovalResponse]:
    """Approval rows for a requisition, level 1 first."""
    await _get_requisition_or_404(session, tenant_id, requisition_id)
    result = await session.execute(
        select(RequisitionApproval)
        .where(
            col(RequisitionApproval.requisition_id) == requisition_id,
            col(RequisitionApproval.tenant_id) == tenant_id,
        )
        .order_by(col(RequisitionApproval.approval_level))
    )
    return [_build_approval_response(a) for a in result.scalars().all()]


async def list_activity(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    requisition_id: uuid.UUID,
) -> list[ActivityResponse]:
    """Activity trail for a requisition, newest first."""
    await _get_requisition_or_404(session, tenant_id, requisition_id)
    result = await session.execute(
        select(RequisitionActivity)
        .where(
            col(RequisitionActivity.requisition_id) == requisition_id,
            col(RequisitionActivity.tenant_id) == tenant_id,
        )
        .order_by(col(RequisitionActivity.created_at).desc())
    )
    return [_build_activity_response(e) for e in result.scalars().all()]


async def get_requisition_stats(session: AsyncSession, tenant_id: uuid.UUID) -> RequisitionStatsResponse:
    """Totals across all of a tenant's requisitions."""
    approved_statuses = [s.value for s in StatusGroup.APPROVED.statuses()]
    pending_statuses = [s.value for s in PENDING_STATUSES]
    result = await session.execute(
        select(
            func.count(),
            func.coalesce(func.sum(case((col(Requisition.status).in_(pending_statuses), 1), else_=0)), 0),
            func.coalesce(func.sum(case((col(Requisition.status).in_(approved_statuses), 1), else_=0)), 0),
            func.coalesce(func.sum(Requisition.amount_requested), 0),
        ).where(col(Requisition.tenant_id) == tenant_id)
    )
    total, pending, approved, total_amount = result.one()
    return RequisitionStatsResponse(
        total=total,
        pending=pending,
        approved=approved,
        total_amount=Decimal(str(total_amount)),
    )
