# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from schoolops.models.enums import ExportFormat, ReportKind


class ExportReportCardItem(BaseModel):
    """One report card to include, with the names used for its file."""

    id: uuid.UUID
    student_name: str = Field(min_length=1, max_length=255)
    class_name: str = Field(default="", max_length=100)


class ReportExportRequest(BaseModel):
    """Request body for a batch report card export."""

    kind: ReportKind = ReportKind.REGULAR
    format: ExportFormat = ExportFormat.ZIP
    term_name: str = Field(min_length=1, max_length=100)
    report_cards: list[ExportReportCardItem] = Field(default_factory=list, max_length=500)
