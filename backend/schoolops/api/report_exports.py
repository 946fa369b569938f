# ruff: noqa: B008, TC001
from __future__ import annotations

import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response
from fastapi.responses import HTMLResponse

from schoolops.api.deps import AuthDep, validate_tenant_scope
from schoolops.db import SessionDep
from schoolops.models.enums import ExportFormat
from schoolops.schemas.report import ReportExportRequest
from schoolops.services import report_export as export_service

report_exports_router = APIRouter(
    prefix="/tenants/{tenant_id}/report-cards",
    tags=["report-cards"],
    dependencies=[Depends(validate_tenant_scope)],
)


def attachment_disposition(filename: str) -> str:
    """Content-Disposition with an ASCII ``filename`` and the exact UTF-8 ``filename*``."""
    fallback = re.sub(r'[^\x20-\x7e]|["\\]', "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@report_exports_router.post(
    "/export",
    responses={200: {"content": {"application/zip": {}, "text/html": {}}}},
)
async def export_report_cards(
    payload: ReportExportRequest,
    session: SessionDep,
    auth: AuthDep,
) -> Response:
    """Export report cards as a zip of HTML files or as one printable document."""
    if payload.format is ExportFormat.PRINT:
        html = await export_service.export_combined(
            session, auth.tenant_id, payload.kind, payload.report_cards, payload.term_name
        )
        return HTMLResponse(content=html)

    archive = await export_service.export_zip(
        session, auth.tenant_id, payload.kind, payload.report_cards, payload.term_name
    )
    filename = export_service.zip_filename(payload.term_name)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": attachment_disposition(filename)},
    )
