# ruff: noqa: B008, TC001
from __future__ import annotations

from fastapi import APIRouter, Depends

from schoolops.api.deps import AdminDep, AuthDep, validate_tenant_scope
from schoolops.db import SessionDep
from schoolops.schemas.settings import RequisitionSettingsPayload, RequisitionSettingsResponse, RoleOption
from schoolops.services import approval_settings as settings_service

settings_router = APIRouter(
    prefix="/tenants/{tenant_id}/requisition-settings",
    tags=["requisition-settings"],
    dependencies=[Depends(validate_tenant_scope)],
)


@settings_router.get("", response_model=RequisitionSettingsResponse)
async def get_requisition_settings(
    session: SessionDep,
    auth: AuthDep,
) -> RequisitionSettingsResponse:
    """Return the approval chain settings, or the defaults when none were saved."""
    return await settings_service.get_requisition_settings(session, auth.tenant_id)


@settings_router.put("", response_model=RequisitionSettingsResponse)
async def put_requisition_settings(
    payload: RequisitionSettingsPayload,
    session: SessionDep,
    auth: AdminDep,
) -> RequisitionSettingsResponse:
    """Save the approval chain settings (admin only)."""
    return await settings_service.upsert_requisition_settings(session, auth, payload)


@settings_router.get("/roles", response_model=list[RoleOption])
async def list_roles(auth: AuthDep) -> list[RoleOption]:
    """Roles that may be assigned to an approval level."""
    return settings_service.list_role_options()
