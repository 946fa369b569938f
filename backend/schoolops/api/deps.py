# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path

from schoolops.db import SessionDep
from schoolops.exceptions import ForbiddenError, UnauthorizedError
from schoolops.models.enums import ADMIN_ROLES
from schoolops.schemas.auth import AuthContext, PlatformActor
from schoolops.services.profile import get_profile


async def get_auth_context(
    x_tenant_id: uuid.UUID = Header(),
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="staff"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(tenant_id=x_tenant_id, user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def validate_tenant_scope(
    tenant_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Ensure the path tenant_id matches the auth header tenant_id."""
    if tenant_id != auth.tenant_id:
        raise ForbiddenError("Tenant ID mismatch")
    return auth


async def get_platform_actor(
    session: SessionDep,
    x_user_id: uuid.UUID | None = Header(default=None),
) -> PlatformActor:
    """Resolve the calling platform operator from the profiles table."""
    if x_user_id is None:
        raise UnauthorizedError("Authentication required")
    profile = await get_profile(session, x_user_id)
    if profile is None:
        raise UnauthorizedError("Unknown user")
    if profile.role not in ADMIN_ROLES:
        raise ForbiddenError("Only platform administrators can delete tenants")
    return PlatformActor(user_id=profile.id, full_name=profile.full_name, role=profile.role)


PlatformActorDep = Annotated[PlatformActor, Depends(get_platform_actor)]
