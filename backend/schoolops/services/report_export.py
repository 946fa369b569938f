"""Batch report card export.

Report cards are rendered to standalone HTML with Jinja2, then either packed
one file per student into a zip archive or concatenated into a single
print-ready document with page breaks between reports.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup
from sqlalchemy import select
from sqlmodel import col

from schoolops.config import get_settings
from schoolops.exceptions import AppError, NotFoundError
from schoolops.models.enums import ReportKind, SkillCategory
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
from schoolops.models.tenant import Tenant

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from schoolops.schemas.report import ExportReportCardItem

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "reports"

_TEMPLATES = {
    ReportKind.REGULAR: "regular_report.html",
    ReportKind.ECD: "ecd_report.html",
}


def _placeholder(value: Any) -> Any:
    return "-" if value is None or value == "" else value


def _one_decimal(value: Any) -> str:
    return "-" if value is None else f"{float(value):.1f}"


def _build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["placeholder"] = _placeholder
    env.filters["one_decimal"] = _one_decimal
    return env


_env = _build_environment()


def file_slug(text: str) -> str:
    """Turn a display name into one safe path segment for export file names.

    Runs of whitespace, path separators and other punctuation become a single
    underscore and leading dots are dropped, so the result never escapes the
    export folder.
    """
    slug = re.sub(r"[^\w.-]+", "_", text.strip()).lstrip(".")
    return slug or "report"


def _entry_names(report_cards: Sequence[ExportReportCardItem]) -> list[str]:
    """One ``{student}_{class}.html`` name per report, suffixed ``_2``, ``_3`` on collision."""
    names: list[str] = []
    used: set[str] = set()
    for item in report_cards:
        stem = file_slug(item.student_name)
        if item.class_name.strip():
            stem = f"{stem}_{file_slug(item.class_name)}"
        name, counter = stem, 1
        while name.casefold() in used:
            counter += 1
            name = f"{stem}_{counter}"
        used.add(name.casefold())
        names.append(f"{name}.html")
    return names


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------


async def _get_by_id(session: AsyncSession, model: Any, entity_id: uuid.UUID | None) -> Any:
    if entity_id is None:
        return None
    result = await session.execute(select(model).where(col(model.id) == entity_id))
    return result.scalar_one_or_none()


async def _children(session: AsyncSession, model: Any, report_card_id: uuid.UUID, *order_by: Any) -> list[Any]:
    result = await session.execute(
        select(model).where(col(model.report_card_id) == report_card_id).order_by(*order_by)
    )
    return list(result.scalars().all())


async def _regular_context(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    report_card_id: uuid.UUID,
) -> dict[str, Any]:
    result = await session.execute(
        select(StudentReportCard).where(
            col(StudentReportCard.id) == report_card_id,
            col(StudentReportCard.tenant_id) == tenant_id,
        )
    )
    card = result.scalar_one_or_none()
    if card is None:
        raise NotFoundError(f"Report card {report_card_id} not found")

    student = await _get_by_id(session, Student, card.student_id)
    skills = await _children(session, ReportCardSkill, card.id, col(ReportCardSkill.skill_name))
    return {
        "card": card,
        "student": student,
        "school_class": await _get_by_id(session, SchoolClass, student.class_id if student else None),
        "term": await _get_by_id(session, AcademicTerm, card.term_id),
        "scores": await _children(session, ReportCardScore, card.id, col(ReportCardScore.subject_name)),
        "generic_skills": [s for s in skills if s.skill_category == SkillCategory.GENERIC],
        "values": [s for s in skills if s.skill_category == SkillCategory.VALUES],
    }


async def _ecd_context(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    report_card_id: uuid.UUID,
) -> dict[str, Any]:
    result = await session.execute(
        select(ECDReportCard).where(
            col(ECDReportCard.id) == report_card_id,
            col(ECDReportCard.tenant_id) == tenant_id,
        )
    )
    card = result.scalar_one_or_none()
    if card is None:
        raise NotFoundError(f"ECD report card {report_card_id} not found")

    scale_result = await session.execute(
        select(ECDRatingScale).where(
            col(ECDRatingScale.tenant_id) == tenant_id,
            col(ECDRatingScale.is_active).is_(True),
        )
    )
    rating_icons = {r.code: r.icon for r in scale_result.scalars().all() if r.icon}

    attendance_percent = (
        round(card.days_present / card.total_school_days * 100) if card.total_school_days > 0 else 0
    )
    return {
        "card": card,
        "student": await _get_by_id(session, Student, card.student_id),
        "school_class": await _get_by_id(session, SchoolClass, card.class_id),
        "term": await _get_by_id(session, AcademicTerm, card.term_id),
        "learning_ratings": await _children(session, ECDLearningRating, card.id, col(ECDLearningRating.area_name)),
        "skill_ratings": await _children(session, ECDSkillRating, card.id, col(ECDSkillRating.skill_name)),
        "rating_icons": rating_icons,
        "attendance_percent": attendance_percent,
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def render_report(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    kind: ReportKind,
    report_card_id: uuid.UUID,
    *,
    tenant: Tenant | None = None,
) -> str:
    """Render one report card to an HTML fragment."""
    if tenant is None:
        tenant = await _get_by_id(session, Tenant, tenant_id)

    if kind is ReportKind.ECD:
        context = await _ecd_context(session, tenant_id, report_card_id)
    else:
        context = await _regular_context(session, tenant_id, report_card_id)

    if context["student"] is None:
        raise NotFoundError(f"Student for report card {report_card_id} not found")

    context["tenant"] = tenant
    context["generated_on"] = date.today().strftime(get_settings().report_date_format)
    return _env.get_template(_TEMPLATES[kind]).render(**context)


async def _render_all(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    kind: ReportKind,
    report_cards: Sequence[ExportReportCardItem],
) -> list[str]:
    if not report_cards:
        raise AppError("No report cards to export", status_code=400)

    tenant = await _get_by_id(session, Tenant, tenant_id)
    bodies: list[str] = []
    for index, item in enumerate(report_cards, start=1):
        bodies.append(await render_report(session, tenant_id, kind, item.id, tenant=tenant))
        logger.debug("Rendered report %d/%d (%s)", index, len(report_cards), item.id)
    return bodies


async def export_zip(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    kind: ReportKind,
    report_cards: Sequence[ExportReportCardItem],
    term_name: str,
) -> bytes:
    """Zip one standalone HTML document per report card."""
    bodies = await _render_all(session, tenant_id, kind, report_cards)
    folder = f"Report_Cards_{file_slug(term_name)}"
    document = _env.get_template("document.html")

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for item, name, body in zip(report_cards, _entry_names(report_cards), bodies, strict=True):
            archive.writestr(
                f"{folder}/{name}",
                document.render(student_name=item.student_name, body=Markup(body)),
            )

    logger.info("Exported %d %s report cards as zip for tenant=%s", len(bodies), kind, tenant_id)
    return buffer.getvalue()


async def export_combined(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    kind: ReportKind,
    report_cards: Sequence[ExportReportCardItem],
    term_name: str,
) -> str:
    """One HTML document holding every report, page-broken for printing."""
    bodies = await _render_all(session, tenant_id, kind, report_cards)
    html = _env.get_template("combined.html").render(
        term_name=term_name,
        bodies=[Markup(body) for body in bodies],
    )
    logger.info("Prepared %d %s report cards for printing for tenant=%s", len(bodies), kind, tenant_id)
    return html


def zip_filename(term_name: str) -> str:
    return f"Report_Cards_{file_slug(term_name)}.zip"
