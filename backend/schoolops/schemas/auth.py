# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from schoolops.models.enums import ADMIN_ROLES


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers."""

    tenant_id: uuid.UUID
    user_id: uuid.UUID
    role: str = "staff"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class PlatformActor(BaseModel):
    """A platform operator resolved from the profiles table."""

    user_id: uuid.UUID
    full_name: str
    role: str
