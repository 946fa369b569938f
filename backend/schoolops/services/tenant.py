"""Tenant deletion with a full JSON backup.

The backup row and every delete run in one transaction: if any delete fails
the backup is rolled back with it and the tenant stays intact.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from schoolops.db import atomic
from schoolops.exceptions import AppError, NotFoundError
from schoolops.models.base import now_utc
from schoolops.models.report_card import (
    AcademicTerm,
    ECDLearningRating,
    ECDRatingScale,
    ECDReportCard,
    ECDSkillRating,
    ReportCardScore,
    ReportCardSkill,
    SchoolClass,
    Student,
    StudentReportCard,
)
from schoolops.models.requisition import (
    Requisition,
    RequisitionActivity,
    RequisitionApproval,
    RequisitionSettings,
)
from schoolops.models.tenant import Profile, Tenant, TenantBackup
from schoolops.schemas.tenant import DeleteTenantResponse
from schoolops.services.activity import model_to_json_dict

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from schoolops.schemas.auth import PlatformActor

logger = logging.getLogger(__name__)

# Children before parents: deletion walks this list front to back.
TENANT_TABLES: tuple[Any, ...] = (
    RequisitionActivity,
    RequisitionApproval,
    Requisition,
    RequisitionSettings,
    ReportCardScore,
    ReportCardSkill,
    StudentReportCard,
    ECDLearningRating,
    ECDSkillRating,
    ECDReportCard,
    ECDRatingScale,
    Student,
    AcademicTerm,
    SchoolClass,
)


async def _get_tenant_or_404(session: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
    result = await session.execute(select(Tenant).where(col(Tenant.id) == tenant_id))
    tenant = result.scalar_one_or_none()
    if tenant is None:
        raise NotFoundError(f"Tenant {tenant_id} not found")
    return tenant


async def collect_tenant_data(session: AsyncSession, tenant: Tenant) -> dict[str, Any]:
    """Snapshot every tenant-scoped table, skipping empty ones."""
    data: dict[str, Any] = {
        "tenant": model_to_json_dict(tenant),
        "collected_at": now_utc().isoformat(),
    }
    for model in (*TENANT_TABLES, Profile):
        result = await session.execute(select(model).where(col(model.tenant_id) == tenant.id))
        rows = [model_to_json_dict(row) for row in result.scalars().all()]
        if rows:
            data[model.__tablename__] = rows
    return data


async def delete_tenant(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    actor: PlatformActor,
    reason: str | None = None,
) -> DeleteTenantResponse:
    """Back up and then remove a tenant with all of its rows and user accounts."""
    tenant = await _get_tenant_or_404(session, tenant_id)
    tenant_name = tenant.name

    try:
        async with atomic(session):
            backup = TenantBackup(
                tenant_id=tenant.id,
                tenant_name=tenant.name,
                business_type=tenant.business_type,
                backup_data=await collect_tenant_data(session, tenant),
                deleted_by=actor.user_id,
                reason=reason or "No reason provided",
            )
            session.add(backup)
            await session.flush()

            for model in TENANT_TABLES:
                await session.execute(delete(model).where(col(model.tenant_id) == tenant_id))

            profiles = await session.execute(delete(Profile).where(col(Profile.tenant_id) == tenant_id))
            deleted_users = profiles.rowcount or 0

            await session.execute(delete(Tenant).where(col(Tenant.id) == tenant_id))
            backup_id = backup.id
    except SQLAlchemyError as exc:
        logger.exception("Deletion of tenant=%s failed; nothing was removed", tenant_id)
        raise AppError(f"Failed to delete tenant: {exc.__class__.__name__}", status_code=500) from exc

    logger.info(
        "Tenant %s (%s) deleted by %s: backup=%s users=%d",
        tenant_id,
        tenant_name,
        actor.user_id,
        backup_id,
        deleted_users,
    )
    return DeleteTenantResponse(
        success=True,
        message=f"Tenant '{tenant_name}' deleted successfully",
        backup_id=backup_id,
        deleted_users=deleted_users,
    )
