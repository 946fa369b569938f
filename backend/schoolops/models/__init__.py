from sqlmodel import SQLModel

from schoolops.models.base import TenantScoped, TimestampMixin, UUIDBase
from schoolops.models.enums import (
    ActivityAction,
    ApprovalStatus,
    ApproverRole,
    ExportFormat,
    PaymentMethod,
    ReportKind,
    RequisitionStatus,
    RequisitionType,
    SkillCategory,
    StatusGroup,
    Urgency,
)
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

__all__ = [
    "AcademicTerm",
    "ActivityAction",
    "ApprovalStatus",
    "ApproverRole",
    "ECDLearningRating",
    "ECDRatingScale",
    "ECDReportCard",
    "ECDSkillRating",
    "ExportFormat",
    "PaymentMethod",
    "Profile",
    "ReportCardScore",
    "ReportCardSkill",
    "ReportKind",
    "Requisition",
    "RequisitionActivity",
    "RequisitionApproval",
    "RequisitionSettings",
    "RequisitionStatus",
    "RequisitionType",
    "SQLModel",
    "SchoolClass",
    "SkillCategory",
    "StatusGroup",
    "Student",
    "StudentReportCard",
    "Tenant",
    "TenantBackup",
    "TenantScoped",
    "TimestampMixin",
    "UUIDBase",
    "Urgency",
]
