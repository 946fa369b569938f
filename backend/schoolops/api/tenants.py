# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from schoolops.api.deps import PlatformActorDep
from schoolops.db import SessionDep
from schoolops.schemas.tenant import DeleteTenantPayload, DeleteTenantResponse
from schoolops.services import tenant as tenant_service

tenants_router = APIRouter(prefix="/tenants", tags=["tenants"])


@tenants_router.delete("/{tenant_id}", response_model=DeleteTenantResponse)
async def delete_tenant(
    tenant_id: uuid.UUID,
    session: SessionDep,
    actor: PlatformActorDep,
    payload: DeleteTenantPayload | None = None,
) -> DeleteTenantResponse:
    """Back up and permanently delete a tenant (platform administrators only)."""
    reason = payload.reason if payload else None
    return await tenant_service.delete_tenant(session, tenant_id, actor, reason)
