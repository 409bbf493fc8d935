"""
model.py

Domain models for the College Staff Reporting System.

Entities
--------
- Department
- StaffRecord
- UserAccount
- MonthlyReport
- ReportEntry
- NotificationEvent
- NotificationRecord

All models use Python dataclasses for clean, framework-agnostic definitions.
UUID primary keys are used throughout for portability.
Timestamps are always stored in UTC.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ReportStatus(str, Enum):
    """Workflow status of a monthly report."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReportEvent(str, Enum):
    """Events that move a report between statuses."""
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


class StaffCategory(str, Enum):
    """Fixed staff classification used on every report."""
    LOCAL_INSTRUCTORS = "Local Instructors"
    ARA = "ARA"
    ASTU_SPONSOR = "ASTU Sponsor"


class Sex(str, Enum):
    MALE = "M"
    FEMALE = "F"


class UserRole(str, Enum):
    """
    Application roles.

    SYSTEM_ADMIN     – Full access.
    DEPARTMENT_HEAD  – Generates and submits reports for one department.
    AVD              – Oversight office; approves / rejects department reports
                       and produces the college rollup.
    MANAGEMENT       – Read-only.
    """
    SYSTEM_ADMIN = "system_admin"
    DEPARTMENT_HEAD = "department_head"
    AVD = "avd"
    MANAGEMENT = "management"


class NotificationType(str, Enum):
    """Category of a notification event."""
    REPORT_SUBMITTED = "report_submitted"
    REPORT_RESUBMITTED = "report_resubmitted"
    REPORT_APPROVED = "report_approved"
    REPORT_REJECTED = "report_rejected"
    STAFF_ADDED = "staff_added"
    STAFF_DELETED = "staff_deleted"


# Conventional values of StaffRecord.current_status. The field itself is free text.
STAFF_STATUSES = (
    "On Duty",
    "On Study",
    "Not On Duty",
    "Sick",
    "On Study Leave",
)

EDUCATION_LEVELS = ("Bsc", "BSc", "Msc", "MSc", "PHD", "Dip")

# Column order of the staff CSV import template.
STAFF_IMPORT_COLUMNS = (
    "staff_id",
    "full_name",
    "sex",
    "specialization",
    "education_level",
    "academic_rank",
    "current_status",
    "category",
    "remark",
)

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Staff Registry Entities
# ---------------------------------------------------------------------------


@dataclass
class Department:
    """An academic department; `code` is unique across the college."""
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    code: str = ""
    name: str = ""
    college_name: str = ""
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class StaffRecord:
    """
    A live roster entry for one staff member.

    Mutated freely through the registry. Reports never reference these
    fields at view time; they copy them into ReportEntry rows when generated.
    """
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    staff_code: Optional[str] = None        # Human-readable staff id, e.g. "ASTU/0042"
    full_name: str = ""
    sex: Sex = Sex.MALE
    specialization: Optional[str] = None
    education_level: str = ""
    academic_rank: Optional[str] = None
    category: StaffCategory = StaffCategory.LOCAL_INSTRUCTORS
    current_status: str = "On Duty"
    remark: Optional[str] = None

    department_id: Optional[uuid.UUID] = None   # FK → Department.id
    college_name: str = ""

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class UserAccount:
    """
    A signed-in user of the system.

    Department heads are bound to exactly one department; the other roles
    act college-wide and carry no department.
    """
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    full_name: str = ""
    email: str = ""
    role: UserRole = UserRole.MANAGEMENT
    department_id: Optional[uuid.UUID] = None   # FK → Department.id
    is_active: bool = True
    created_at: datetime = field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Report Entities
# ---------------------------------------------------------------------------


@dataclass
class MonthlyReport:
    """
    One generated report for a (month, year, department) key.

    `department_id` is None for the college-level rollup report.
    At most one report may exist per key; the persistence layer enforces it.
    """
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    month: int = 1                                  # 1 – 12
    year: int = 2000
    department_id: Optional[uuid.UUID] = None       # FK → Department.id; None = college scope
    status: ReportStatus = ReportStatus.DRAFT
    version: int = 1                                # Increments on each regeneration

    created_at: datetime = field(default_factory=_utcnow)
    created_by: Optional[uuid.UUID] = None          # FK → UserAccount.id

    submitted_at: Optional[datetime] = None
    submitted_by: Optional[uuid.UUID] = None

    approved_at: Optional[datetime] = None
    approved_by: Optional[uuid.UUID] = None

    rejected_at: Optional[datetime] = None
    rejected_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None

    @property
    def is_college_report(self) -> bool:
        return self.department_id is None

    @property
    def period_label(self) -> str:
        return f"{MONTHS[self.month - 1]} {self.year}"


@dataclass
class ReportEntry:
    """
    Frozen copy of one StaffRecord taken when the owning report was generated.

    Only `current_status` and `remark` may change after creation.
    Entries are removed only by cascade when their report is deleted.
    """
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    report_id: uuid.UUID = field(default_factory=uuid.uuid4)   # FK → MonthlyReport.id (cascade)
    staff_id: Optional[uuid.UUID] = None                       # Soft reference → StaffRecord.id

    # Snapshot fields
    current_status: str = ""
    category: StaffCategory = StaffCategory.LOCAL_INSTRUCTORS
    remark: Optional[str] = None
    staff_code: Optional[str] = None
    full_name: str = ""
    sex: Sex = Sex.MALE
    college_name: str = ""
    department_code: Optional[str] = None
    department_name: Optional[str] = None
    specialization: Optional[str] = None
    education_level: str = ""
    academic_rank: Optional[str] = None

    created_at: datetime = field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Notification Entities
# ---------------------------------------------------------------------------


@dataclass
class NotificationEvent:
    """
    Outbound, fire-and-forget signal addressed to a role.

    `department_id` narrows department-head delivery to one department;
    it is informational for college-wide roles.
    """
    type: NotificationType
    title: str
    message: str
    target_role: UserRole
    performed_by: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    report_id: Optional[uuid.UUID] = None
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass
class NotificationRecord:
    """Per-recipient copy of a NotificationEvent, as shown in the inbox."""
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    recipient_id: uuid.UUID = field(default_factory=uuid.uuid4)  # FK → UserAccount.id
    type: NotificationType = NotificationType.REPORT_SUBMITTED
    title: str = ""
    message: str = ""
    target_role: UserRole = UserRole.AVD
    department_id: Optional[uuid.UUID] = None
    performed_by: Optional[uuid.UUID] = None
    report_id: Optional[uuid.UUID] = None
    is_read: bool = False
    created_at: datetime = field(default_factory=_utcnow)
