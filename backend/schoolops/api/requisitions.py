# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from schoolops.api.deps import AuthDep, validate_tenant_scope
from schoolops.db import SessionDep
from schoolops.models.enums import RequisitionStatus, StatusGroup
from schoolops.schemas.requisition import (
    ActivityResponse,
    ApprovalResponse,
    ApprovePayload,
    CancelPayload,
    CreateRequisitionPayload,
    ReceiptPayload,
    RejectPayload,
    RequisitionListResponse,
    RequisitionResponse,
    RequisitionStatsResponse,
    UpdateRequisitionPayload,
)
from schoolops.services import requisition as requisition_service

requisitions_router = APIRouter(
    prefix="/tenants/{tenant_id}/requisitions",
    tags=["requisitions"],
    dependencies=[Depends(validate_tenant_scope)],
)


@requisitions_router.post("", response_model=RequisitionResponse, status_code=status.HTTP_201_CREATED)
async def create_requisition(
    payload: CreateRequisitionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionResponse:
    """Create a draft requisition."""
    return await requisition_service.create_requisition(session, auth, payload)


@requisitions_router.get("", response_model=RequisitionListResponse)
async def list_requisitions(
    session: SessionDep,
    auth: AuthDep,
    status_filter: RequisitionStatus | None = Query(default=None, alias="status"),
    group: StatusGroup | None = Query(default=None),
    q: str | None = Query(default=None, max_length=255),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RequisitionListResponse:
    """List requisitions, newest first, with optional filters."""
    return await requisition_service.list_requisitions(
        session,
        auth.tenant_id,
        status_filter=status_filter,
        group=group,
        search=q,
        offset=offset,
        limit=limit,
    )


@requisitions_router.get("/stats", response_model=RequisitionStatsResponse)
async def get_requisition_stats(
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionStatsResponse:
    return await requisition_service.get_requisition_stats(session, auth.tenant_id)


@requisitions_router.get("/{requisition_id}", response_model=RequisitionResponse)
async def get_requisition(
    requisition_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionResponse:
    """Get a single requisition."""
    return await requisition_service.get_requisition(session, auth.tenant_id, requisition_id)


@requisitions_router.patch("/{requisition_id}", response_model=RequisitionResponse)
async def update_requisition(
    requisition_id: uuid.UUID,
    payload: UpdateRequisitionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionResponse:
    """Edit a draft requisition."""
    return await requisition_service.update_requisition(session, auth, requisition_id, payload)


@requisitions_router.post("/{requisition_id}/submit", response_model=RequisitionResponse)
async def submit_requisition(
    requisition_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionResponse:
    """Submit a draft into the tenant's approval chain."""
    return await requisition_service.submit_requisition(session, auth, requisition_id)


@requisitions_router.post("/{requisition_id}/approve", response_model=RequisitionResponse)
async def approve_requisition(
    requisition_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    payload: ApprovePayload | None = None,
) -> RequisitionResponse:
    """Approve the current level, optionally lowering the approved amount."""
    return await requisition_service.approve_requisition(
        session, auth, requisition_id, payload or ApprovePayload()
    )


@requisitions_router.post("/{requisition_id}/reject", response_model=RequisitionResponse)
async def reject_requisition(
    requisition_id: uuid.UUID,
    payload: RejectPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionResponse:
    """Reject the requisition at the current level."""
    return await requisition_service.reject_requisition(session, auth, requisition_id, payload)


@requisitions_router.post("/{requisition_id}/cancel", response_model=RequisitionResponse)
async def cancel_requisition(
    requisition_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    payload: CancelPayload | None = None,
) -> RequisitionResponse:
    """Cancel a draft or pending requisition."""
    return await requisition_service.cancel_requisition(session, auth, requisition_id, payload)


@requisitions_router.post("/{requisition_id}/receipt", response_model=RequisitionResponse)
async def record_receipt(
    requisition_id: uuid.UUID,
    payload: ReceiptPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionResponse:
    """Attach receipts to an approved requisition."""
    return await requisition_service.record_receipt(session, auth, requisition_id, payload)


@requisitions_router.get("/{requisition_id}/approvals", response_model=list[ApprovalResponse])
async def list_approvals(
    requisition_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> list[ApprovalResponse]:
    return await requisition_service.list_approvals(session, auth.tenant_id, requisition_id)


@requisitions_router.get("/{requisition_id}/activity", response_model=list[ActivityResponse])
async def list_activity(
    requisition_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> list[ActivityResponse]:
    return await requisition_service.list_activity(session, auth.tenant_id, requisition_id)
