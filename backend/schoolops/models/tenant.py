# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from schoolops.models.base import TimestampMixin, UUIDBase


class Tenant(UUIDBase, TimestampMixin, table=True):
    """One customer organisation and its isolated data partition."""

    __tablename__ = "tenants"

    name: str = Field(max_length=255)
    business_type: str = Field(default="school", max_length=50)
    logo_url: str | None = None
    address: str | None = None
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)


class Profile(UUIDBase, TimestampMixin, table=True):
    """A user account. Platform operators have no tenant."""

    __tablename__ = "profiles"

    tenant_id: uuid.UUID | None = Field(default=None, index=True, sa_type=sa.Uuid)
    full_name: str = Field(max_length=255)
    email: str | None = Field(default=None, max_length=255)
    role: str = Field(default="staff", max_length=50)


class TenantBackup(UUIDBase, TimestampMixin, table=True):
    """JSON snapshot of a tenant's rows taken just before the tenant is deleted."""

    __tablename__ = "tenant_backups"

    tenant_id: uuid.UUID = Field(index=True, sa_type=sa.Uuid)
    tenant_name: str = Field(max_length=255)
    business_type: str | None = Field(default=None, max_length=50)
    backup_data: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    deleted_by: uuid.UUID
    reason: str = "No reason provided"
