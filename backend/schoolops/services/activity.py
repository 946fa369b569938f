from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from schoolops.models.requisition import RequisitionActivity

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from schoolops.models.enums import ActivityAction


def to_json_value(value: Any) -> Any:
    """Convert a column value into something ``json.dumps`` accepts."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def model_to_json_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict."""
    return {key: to_json_value(value) for key, value in model.model_dump().items()}


async def write_activity(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    requisition_id: uuid.UUID,
    action: ActivityAction,
    user_id: uuid.UUID | None = None,
    user_name: str | None = None,
    details: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> RequisitionActivity:
    """Append an activity entry within the caller's transaction."""
    entry = RequisitionActivity(
        tenant_id=tenant_id,
        requisition_id=requisition_id,
        user_id=user_id,
        user_name=user_name,
        action=action.value,
        details=details,
        metadata_json={k: to_json_value(v) for k, v in metadata.items()} if metadata else None,
    )
    session.add(entry)
    return entry
