# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from schoolops.models.base import TenantScoped, TimestampMixin, UUIDBase

SCORE = sa.Numeric(5, 2)


class SchoolClass(UUIDBase, TenantScoped, TimestampMixin, table=True):
    __tablename__ = "school_classes"

    name: str = Field(max_length=100)
    level: str | None = Field(default=None, max_length=50)
    section: str | None = Field(default=None, max_length=50)


class AcademicTerm(UUIDBase, TenantScoped, TimestampMixin, table=True):
    __tablename__ = "academic_terms"

    name: str = Field(max_length=100)
    term_number: int
    year: int


class Student(UUIDBase, TenantScoped, TimestampMixin, table=True):
    __tablename__ = "students"

    full_name: str = Field(max_length=255)
    admission_number: str | None = Field(default=None, max_length=50)
    date_of_birth: date | None = None
    gender: str | None = Field(default=None, max_length=20)
    guardian_name: str | None = Field(default=None, max_length=255)
    photo_url: str | None = None
    class_id: uuid.UUID | None = Field(default=None, index=True)


class StudentReportCard(UUIDBase, TenantScoped, TimestampMixin, table=True):
    """Termly academic report for a primary/secondary student."""

    __tablename__ = "student_report_cards"

    student_id: uuid.UUID = Field(index=True)
    term_id: uuid.UUID | None = None
    days_present: int | None = None
    total_school_days: int | None = None
    class_rank: int | None = None
    total_students_in_class: int | None = None
    is_prefect: bool = False
    prefect_title: str | None = Field(default=None, max_length=100)
    average_score: Decimal | None = Field(default=None, sa_type=SCORE)
    discipline_remark: str | None = None
    class_teacher_comment: str | None = None
    head_teacher_comment: str | None = None


class ReportCardScore(UUIDBase, TenantScoped, table=True):
    __tablename__ = "report_card_scores"

    report_card_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("student_report_cards.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    subject_name: str = Field(max_length=100)
    subject_code: str | None = Field(default=None, max_length=20)
    formative_score: Decimal | None = Field(default=None, sa_type=SCORE)
    school_based_score: Decimal | None = Field(default=None, sa_type=SCORE)
    total_score: Decimal | None = Field(default=None, sa_type=SCORE)
    grade: str | None = Field(default=None, max_length=10)
    subject_remark: str | None = None
    grade_descriptor: str | None = None


class ReportCardSkill(UUIDBase, TenantScoped, table=True):
    __tablename__ = "report_card_skills"

    report_card_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("student_report_cards.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    skill_category: str = Field(max_length=20)
    skill_name: str = Field(max_length=255)
    rating: str | None = Field(default=None, max_length=50)


class ECDReportCard(UUIDBase, TenantScoped, TimestampMixin, table=True):
    """Early-childhood progress report."""

    __tablename__ = "ecd_report_cards"

    student_id: uuid.UUID = Field(index=True)
    class_id: uuid.UUID | None = None
    term_id: uuid.UUID | None = None
    days_present: int = 0
    days_absent: int | None = None
    total_school_days: int = 0
    teacher_comment: str | None = None
    behavior_comment: str | None = None


class ECDLearningRating(UUIDBase, TenantScoped, table=True):
    __tablename__ = "ecd_learning_ratings"

    report_card_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("ecd_report_cards.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    area_name: str = Field(max_length=100)
    area_icon: str | None = Field(default=None, max_length=16)
    rating_code: str = Field(max_length=20)


class ECDSkillRating(UUIDBase, TenantScoped, table=True):
    __tablename__ = "ecd_skills_ratings"

    report_card_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("ecd_report_cards.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    skill_name: str = Field(max_length=255)
    category: str | None = Field(default=None, max_length=50)
    is_achieved: bool = False


class ECDRatingScale(UUIDBase, TenantScoped, table=True):
    __tablename__ = "ecd_rating_scale"

    code: str = Field(max_length=20)
    label: str = Field(max_length=100)
    icon: str | None = Field(default=None, max_length=16)
    is_active: bool = True
