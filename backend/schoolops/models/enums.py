from __future__ import annotations

import enum


class RequisitionType(enum.StrEnum):
    """What the requested funds are for."""

    CASH_ADVANCE = "cash_advance"
    REIMBURSEMENT = "reimbursement"
    PURCHASE_REQUEST = "purchase_request"


class Urgency(enum.StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PaymentMethod(enum.StrEnum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"


MAX_APPROVAL_LEVELS = 3


class RequisitionStatus(enum.StrEnum):
    """Workflow state of a requisition."""

    DRAFT = "draft"
    PENDING_LEVEL1 = "pending_level1"
    PENDING_LEVEL2 = "pending_level2"
    PENDING_LEVEL3 = "pending_level3"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @classmethod
    def pending_for_level(cls, level: int) -> RequisitionStatus:
        """Return the pending status for an approval level (1-based)."""
        if not 1 <= level <= MAX_APPROVAL_LEVELS:
            msg = f"Approval level must be between 1 and {MAX_APPROVAL_LEVELS}, got {level}"
            raise ValueError(msg)
        return cls(f"pending_level{level}")

    @property
    def is_pending(self) -> bool:
        return self.value.startswith("pending_level")

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def level(self) -> int | None:
        """Approval level a pending status waits on, None otherwise."""
        if not self.is_pending:
            return None
        return int(self.value.removeprefix("pending_level"))


_TERMINAL_STATUSES = frozenset(
    {
        RequisitionStatus.APPROVED,
        RequisitionStatus.PARTIALLY_APPROVED,
        RequisitionStatus.REJECTED,
        RequisitionStatus.CANCELLED,
    }
)

PENDING_STATUSES = tuple(s for s in RequisitionStatus if s.is_pending)


class StatusGroup(enum.StrEnum):
    """Coarse status buckets used by list filters."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DRAFT = "draft"

    def statuses(self) -> tuple[RequisitionStatus, ...]:
        match self:
            case StatusGroup.PENDING:
                return PENDING_STATUSES
            case StatusGroup.APPROVED:
                return (RequisitionStatus.APPROVED, RequisitionStatus.PARTIALLY_APPROVED)
            case StatusGroup.REJECTED:
                return (RequisitionStatus.REJECTED,)
            case StatusGroup.DRAFT:
                return (RequisitionStatus.DRAFT,)


class ApprovalStatus(enum.StrEnum):
    """Decision on a single approval level."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApproverRole(enum.StrEnum):
    """Roles that can sign off an approval level."""

    HOD = "hod"
    BURSAR = "bursar"
    HEAD_TEACHER = "head_teacher"
    DIRECTOR = "director"
    ADMIN = "admin"

    @property
    def label(self) -> str:
        match self:
            case ApproverRole.HOD:
                return "Head of Department"
            case ApproverRole.BURSAR:
                return "Bursar"
            case ApproverRole.HEAD_TEACHER:
                return "Head Teacher"
            case ApproverRole.DIRECTOR:
                return "Director"
            case ApproverRole.ADMIN:
                return "Administrator"


DEFAULT_LEVEL_ROLES: dict[int, ApproverRole] = {
    1: ApproverRole.BURSAR,
    2: ApproverRole.HEAD_TEACHER,
    3: ApproverRole.DIRECTOR,
}

ADMIN_ROLES = frozenset({"admin", "superadmin"})


class ActivityAction(enum.StrEnum):
    """Label recorded on a requisition activity entry."""

    CREATED = "created"
    UPDATED = "updated"
    SUBMITTED = "submitted"
    AUTO_APPROVED = "auto_approved"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    RECEIPT_SUBMITTED = "receipt_submitted"


class ReportKind(enum.StrEnum):
    """Report card template shape."""

    REGULAR = "regular"
    ECD = "ecd"


class ExportFormat(enum.StrEnum):
    ZIP = "zip"
    PRINT = "print"


class SkillCategory(enum.StrEnum):
    GENERIC = "generic"
    VALUES = "values"
