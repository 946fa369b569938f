"""Per-tenant approval chain configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from schoolops.config import get_settings
from schoolops.exceptions import ConflictError
from schoolops.models.base import now_utc
from schoolops.models.enums import DEFAULT_LEVEL_ROLES, MAX_APPROVAL_LEVELS, ApproverRole
from schoolops.models.requisition import RequisitionSettings
from schoolops.schemas.settings import (
    DEFAULT_EXPENSE_CATEGORIES,
    RequisitionSettingsPayload,
    RequisitionSettingsResponse,
    RoleOption,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from schoolops.schemas.auth import AuthContext

logger = logging.getLogger(__name__)


async def get_settings_row(session: AsyncSession, tenant_id: uuid.UUID) -> RequisitionSettings | None:
    result = await session.execute(
        select(RequisitionSettings).where(col(RequisitionSettings.tenant_id) == tenant_id)
    )
    return result.scalar_one_or_none()


def resolve_level_roles(row: RequisitionSettings | None) -> list[ApproverRole]:
    """Return the approver role for each level, level 1 first.

    Without a settings row the chain has ``default_approval_levels`` levels.
    A level with no configured role falls back to bursar, head teacher and
    director for levels 1, 2 and 3.
    """
    levels = row.approval_levels if row is not None else get_settings().default_approval_levels
    levels = max(1, min(levels, MAX_APPROVAL_LEVELS))

    roles: list[ApproverRole] = []
    for level in range(1, levels + 1):
        configured = getattr(row, f"level{level}_role", None) if row is not None else None
        try:
            roles.append(ApproverRole(configured) if configured else DEFAULT_LEVEL_ROLES[level])
        except ValueError:
            logger.warning("Unknown approver role %r at level %d; using default", configured, level)
            roles.append(DEFAULT_LEVEL_ROLES[level])
    return roles


def _build_settings_response(row: RequisitionSettings | None) -> RequisitionSettingsResponse:
    if row is None:
        roles = resolve_level_roles(None)
        defaults: dict[str, object] = {"approval_levels": len(roles), "is_default": True}
        for level, role in enumerate(roles, start=1):
            defaults[f"level{level}_role"] = role
            defaults[f"level{level}_label"] = f"{role.label} Approval"
        return RequisitionSettingsResponse.model_validate(defaults)
    return RequisitionSettingsResponse(
        approval_levels=row.approval_levels,
        level1_role=ApproverRole(row.level1_role),
        level1_label=row.level1_label,
        level2_role=ApproverRole(row.level2_role) if row.level2_role else None,
        level2_label=row.level2_label,
        level3_role=ApproverRole(row.level3_role) if row.level3_role else None,
        level3_label=row.level3_label,
        auto_approve_below=row.auto_approve_below,
        require_receipt_for_advance=row.require_receipt_for_advance,
        max_advance_amount=row.max_advance_amount,
        expense_categories=row.expense_categories or list(DEFAULT_EXPENSE_CATEGORIES),
    )


async def get_requisition_settings(session: AsyncSession, tenant_id: uuid.UUID) -> RequisitionSettingsResponse:
    """Return the tenant's settings, or the defaults when none were saved."""
    return _build_settings_response(await get_settings_row(session, tenant_id))


async def upsert_requisition_settings(
    session: AsyncSession,
    auth: AuthContext,
    payload: RequisitionSettingsPayload,
) -> RequisitionSettingsResponse:
    """Create or replace the tenant's settings row."""
    row = await get_settings_row(session, auth.tenant_id)
    if row is None:
        row = RequisitionSettings(tenant_id=auth.tenant_id)
        session.add(row)

    row.approval_levels = payload.approval_levels
    row.level1_role = payload.level1_role.value
    row.level1_label = payload.level1_label
    row.level2_role = payload.level2_role.value if payload.level2_role else None
    row.level2_label = payload.level2_label
    row.level3_role = payload.level3_role.value if payload.level3_role else None
    row.level3_label = payload.level3_label
    row.auto_approve_below = payload.auto_approve_below
    row.require_receipt_for_advance = payload.require_receipt_for_advance
    row.max_advance_amount = payload.max_advance_amount
    row.expense_categories = list(payload.expense_categories)
    row.updated_at = now_utc()

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Requisition settings were saved concurrently; reload and try again") from None
    await session.refresh(row)
    logger.info(
        "Requisition settings saved for tenant=%s by user=%s: levels=%d",
        auth.tenant_id,
        auth.user_id,
        row.approval_levels,
    )
    return _build_settings_response(row)


def list_role_options() -> list[RoleOption]:
    return [RoleOption(value=role, label=role.label) for role in ApproverRole]
