# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class DeleteTenantPayload(BaseModel):
    """Optional body for a tenant deletion."""

    reason: str | None = Field(default=None, max_length=1000)


class DeleteTenantResponse(BaseModel):
    success: bool
    message: str
    backup_id: uuid.UUID
    deleted_users: int
