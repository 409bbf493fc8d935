"""
application.py

Application layer for the College Staff Reporting System.

Overview
--------
The application layer sits between the presentation layer (API) and the
domain / service layer.  It is responsible for:

  1. Defining clean output DTOs (dataclasses) that carry only the data
     the presentation layer needs — no raw domain objects are leaked upward.
  2. Declaring abstract Repository interfaces so that the application layer
     remains fully persistence-agnostic (implementations live in infrastructure.py).
  3. Declaring the UnitOfWork abstraction so that multiple repository mutations
     inside a single use case are wrapped in one atomic transaction.
  4. Declaring the NotificationPublisher abstraction: the outbound side channel
     that receives an event after a transition has been committed.
  5. Implementing Use Case handlers — one class per user-facing operation —
     that orchestrate service calls, repository reads/writes, and side-effects
     (notifications) in the correct order.

Structure
---------
DTOs
    UserDTO, DepartmentDTO, StaffDTO
    StaffImportErrorDTO, StaffImportResultDTO
    StaffStatisticsDTO, DepartmentStatisticsDTO
    ReportDTO, ReportEntryDTO
    HeadcountRowDTO, HeadcountSummaryDTO
    ReportChangeDTO, ReportComparisonDTO
    DepartmentSubmissionDTO, SubmissionStatusDTO
    NotificationDTO

Repository interfaces
    AbstractUserRepository
    AbstractDepartmentRepository
    AbstractStaffRepository
    AbstractReportRepository
    AbstractReportEntryRepository
    AbstractNotificationRepository

Unit of Work / side channel
    AbstractUnitOfWork
    AbstractNotificationPublisher

Use Cases
    --- Users & departments ---
    RegisterUserUseCase, GetUserUseCase, ListUsersUseCase
    ChangeUserRoleUseCase, SetUserActiveUseCase, DeleteUserUseCase
    CreateDepartmentUseCase, GetDepartmentUseCase, ListDepartmentsUseCase

    --- Staff registry ---
    CreateStaffUseCase, UpdateStaffUseCase, DeleteStaffUseCase
    GetStaffUseCase, ListStaffUseCase
    ImportStaffUseCase, GetStaffImportTemplateUseCase
    GetStaffStatisticsUseCase, ListDepartmentStatisticsUseCase

    --- Report generation ---
    GenerateReportUseCase
    GenerateCollegeReportUseCase

    --- Report lifecycle ---
    SubmitReportUseCase, ApproveReportUseCase, RejectReportUseCase
    DeleteReportUseCase

    --- Report queries ---
    GetReportUseCase, ListReportsUseCase, ListReportEntriesUseCase
    UpdateReportEntryUseCase, GetHeadcountSummaryUseCase, CompareReportsUseCase
    GetSubmissionStatusUseCase, ExportReportEntriesUseCase

    --- Notifications ---
    ListMyNotificationsUseCase, CountUnreadNotificationsUseCase
    MarkNotificationReadUseCase, MarkAllNotificationsReadUseCase
    DeleteNotificationUseCase

Design notes
------------
- Use cases receive commands and return DTOs only; no domain objects cross
  the application boundary.
- Each use case accepts a UnitOfWork as its sole persistence dependency.
  Use cases that emit notifications also take a publisher at construction.
- Notifications are published after commit.  A publisher failure is logged
  and discarded; it never fails the use case.
- All timestamps flowing out are ISO-8601 strings (UTC) for easy JSON
  serialisation.
- Errors bubble up as ApplicationError subclasses.
"""

from __future__ import annotations

import abc
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from model import (
    Department,
    MonthlyReport,
    NotificationEvent,
    NotificationRecord,
    NotificationType,
    ReportEntry,
    ReportStatus,
    Sex,
    StaffCategory,
    StaffRecord,
    UserAccount,
    UserRole,
)
from service import (
    DepartmentService,
    DuplicateRecord,
    InvalidTransition,
    NoApprovedReports,
    NotificationService,
    PermissionDenied,
    ReportAnalysisService,
    ReportService,
    RollupService,
    RosterStatisticsService,
    StaffService,
    UserService,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ApplicationError(Exception):
    """Raised when a use case cannot complete due to a business rule violation."""


class NotFoundError(ApplicationError):
    """Raised when a requested entity does not exist."""


class AuthorizationError(ApplicationError):
    """Raised when the acting user lacks the required role."""


class AlreadyExistsError(ApplicationError):
    """Raised when a record with the same natural key already exists."""


class InvalidTransitionError(ApplicationError):
    """Raised when a report workflow action is not legal in the report's current status."""


class NoApprovedReportsError(ApplicationError):
    """Raised when a college rollup finds no approved department reports."""


class PersistenceError(ApplicationError):
    """Raised by repositories when the underlying store fails."""


def _translate(exc: ValueError) -> ApplicationError:
    """Map a service-level rule violation onto the application error taxonomy."""
    if isinstance(exc, PermissionDenied):
        return AuthorizationError(str(exc))
    if isinstance(exc, DuplicateRecord):
        return AlreadyExistsError(str(exc))
    if isinstance(exc, InvalidTransition):
        return InvalidTransitionError(str(exc))
    if isinstance(exc, NoApprovedReports):
        return NoApprovedReportsError(str(exc))
    return ApplicationError(str(exc))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fmt(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO-8601 UTC string, or None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _str(value: Optional[uuid.UUID]) -> Optional[str]:
    return str(value) if value else None


# ===========================================================================
# DTO DEFINITIONS
# ===========================================================================

# ---------------------------------------------------------------------------
# Registry DTOs
# ---------------------------------------------------------------------------

@dataclass
class UserDTO:
    id: str
    full_name: str
    email: str
    role: str
    department_id: Optional[str]
    is_active: bool


@dataclass
class DepartmentDTO:
    id: str
    code: str
    name: str
    college_name: str
    created_at: str


@dataclass
class StaffDTO:
    id: str
    staff_code: Optional[str]
    full_name: str
    sex: str
    specialization: Optional[str]
    education_level: str
    academic_rank: Optional[str]
    category: str
    current_status: str
    remark: Optional[str]
    department_id: Optional[str]
    department_code: Optional[str]
    college_name: str
    created_at: str
    updated_at: str


@dataclass
class StaffImportErrorDTO:
    line: int
    error: str


@dataclass
class StaffImportResultDTO:
    department_id: str
    department_code: str
    imported: int
    failed: int
    skipped: int
    errors: List[StaffImportErrorDTO]
    staff: List[StaffDTO]


@dataclass
class StaffStatisticsDTO:
    department_id: Optional[str]        # None = whole college
    total: int
    by_category: Dict[str, int]
    by_sex: Dict[str, int]
    by_education: Dict[str, int]
    by_rank: Dict[str, int]
    by_status: Dict[str, int]


@dataclass
class DepartmentStatisticsDTO:
    department_id: str
    department_code: str
    department_name: str
    total: int
    by_rank: Dict[str, int]
    by_status: Dict[str, int]


# ---------------------------------------------------------------------------
# Report DTOs
# ---------------------------------------------------------------------------

@dataclass
class ReportDTO:
    id: str
    month: int
    year: int
    period_label: str
    scope: str                          # "department" | "college"
    department_id: Optional[str]
    department_code: Optional[str]
    department_name: Optional[str]
    status: str
    version: int
    entry_count: int
    created_at: str
    created_by: Optional[str]
    submitted_at: Optional[str]
    submitted_by: Optional[str]
    approved_at: Optional[str]
    approved_by: Optional[str]
    rejected_at: Optional[str]
    rejected_by: Optional[str]
    rejection_reason: Optional[str]


@dataclass
class ReportEntryDTO:
    id: str
    report_id: str
    staff_id: Optional[str]
    staff_code: Optional[str]
    full_name: str
    sex: str
    college_name: str
    department_code: Optional[str]
    department_name: Optional[str]
    specialization: Optional[str]
    education_level: str
    academic_rank: Optional[str]
    category: str
    current_status: str
    remark: Optional[str]
    created_at: str


@dataclass
class HeadcountRowDTO:
    category: str
    by_status: Dict[str, Dict[str, int]]
    male_total: int
    female_total: int
    total: int


@dataclass
class HeadcountSummaryDTO:
    report_id: str
    period_label: str
    rows: List[HeadcountRowDTO]
    totals: HeadcountRowDTO


@dataclass
class ReportChangeDTO:
    change_type: str                    # "added" | "removed" | "status_changed"
    staff_code: Optional[str]
    full_name: str
    department_code: Optional[str]
    category: str
    current_status: str
    previous_status: Optional[str]


@dataclass
class ReportComparisonDTO:
    previous_report_id: str
    current_report_id: str
    previous_label: str
    current_label: str
    added: int
    removed: int
    status_changed: int
    changes: List[ReportChangeDTO] = field(default_factory=list)


@dataclass
class DepartmentSubmissionDTO:
    department_id: str
    department_code: str
    department_name: str
    status: str                         # "pending" | "submitted" | "approved" | "rejected"
    report_id: Optional[str]
    submitted_at: Optional[str]


@dataclass
class SubmissionStatusDTO:
    month: int
    year: int
    approved: int
    submitted: int
    rejected: int
    pending: int
    total: int
    progress_pct: float
    departments: List[DepartmentSubmissionDTO]


# ---------------------------------------------------------------------------
# Notification DTO
# ---------------------------------------------------------------------------

@dataclass
class NotificationDTO:
    id: str
    type: str
    title: str
    message: str
    target_role: str
    department_id: Optional[str]
    performed_by: Optional[str]
    report_id: Optional[str]
    is_read: bool
    created_at: str


# ===========================================================================
# DTO ASSEMBLERS
# ===========================================================================

class _Assembler:
    """Converts domain model instances into DTOs."""

    @staticmethod
    def user(u: UserAccount) -> UserDTO:
        return UserDTO(
            id=str(u.id),
            full_name=u.full_name,
            email=u.email,
            role=u.role.value,
            department_id=_str(u.department_id),
            is_active=u.is_active,
        )

    @staticmethod
    def department(d: Department) -> DepartmentDTO:
        return DepartmentDTO(
            id=str(d.id),
            code=d.code,
            name=d.name,
            college_name=d.college_name,
            created_at=_fmt(d.created_at),
        )

    @staticmethod
    def staff(s: StaffRecord, department: Optional[Department]) -> StaffDTO:
        return StaffDTO(
            id=str(s.id),
            staff_code=s.staff_code,
            full_name=s.full_name,
            sex=s.sex.value,
            specialization=s.specialization,
            education_level=s.education_level,
            academic_rank=s.academic_rank,
            category=s.category.value,
            current_status=s.current_status,
            remark=s.remark,
            department_id=_str(s.department_id),
            department_code=department.code if department else None,
            college_name=s.college_name,
            created_at=_fmt(s.created_at),
            updated_at=_fmt(s.updated_at),
        )

    @staticmethod
    def report(
        r: MonthlyReport, department: Optional[Department], entry_count: int
    ) -> ReportDTO:
        return ReportDTO(
            id=str(r.id),
            month=r.month,
            year=r.year,
            period_label=r.period_label,
            scope="college" if r.is_college_report else "department",
            department_id=_str(r.department_id),
            department_code=department.code if department else None,
            department_name=department.name if department else None,
            status=r.status.value,
            version=r.version,
            entry_count=entry_count,
            created_at=_fmt(r.created_at),
            created_by=_str(r.created_by),
            submitted_at=_fmt(r.submitted_at),
            submitted_by=_str(r.submitted_by),
            approved_at=_fmt(r.approved_at),
            approved_by=_str(r.approved_by),
            rejected_at=_fmt(r.rejected_at),
            rejected_by=_str(r.rejected_by),
            rejection_reason=r.rejection_reason,
        )

    @staticmethod
    def entry(e: ReportEntry) -> ReportEntryDTO:
        return ReportEntryDTO(
            id=str(e.id),
            report_id=str(e.report_id),
            staff_id=_str(e.staff_id),
            staff_code=e.staff_code,
            full_name=e.full_name,
            sex=e.sex.value,
            college_name=e.college_name,
            department_code=e.department_code,
            department_name=e.department_name,
            specialization=e.specialization,
            education_level=e.education_level,
            academic_rank=e.academic_rank,
            category=e.category.value,
            current_status=e.current_status,
            remark=e.remark,
            created_at=_fmt(e.created_at),
        )

    @staticmethod
    def headcount_row(row: Dict) -> HeadcountRowDTO:
        return HeadcountRowDTO(
            category=row["category"],
            by_status=row["by_status"],
            male_total=row["male_total"],
            female_total=row["female_total"],
            total=row["total"],
        )

    @staticmethod
    def notification(n: NotificationRecord) -> NotificationDTO:
        return NotificationDTO(
            id=str(n.id),
            type=n.type.value,
            title=n.title,
            message=n.message,
            target_role=n.target_role.value,
            department_id=_str(n.department_id),
            performed_by=_str(n.performed_by),
            report_id=_str(n.report_id),
            is_read=n.is_read,
            created_at=_fmt(n.created_at),
        )


# ===========================================================================
# REPOSITORY INTERFACES
# ===========================================================================

# Implementations raise PersistenceError when their backing store fails
# (connection lost, write refused).

class AbstractUserRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, user_id: uuid.UUID) -> Optional[UserAccount]: ...
    @abc.abstractmethod
    def get_by_email(self, email: str) -> Optional[UserAccount]: ...
    @abc.abstractmethod
    def list_all(self) -> List[UserAccount]: ...
    @abc.abstractmethod
    def save(self, user: UserAccount) -> None: ...
    @abc.abstractmethod
    def delete(self, user_id: uuid.UUID) -> None: ...


class AbstractDepartmentRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, department_id: uuid.UUID) -> Optional[Department]: ...
    @abc.abstractmethod
    def list_all(self) -> List[Department]: ...
    @abc.abstractmethod
    def save(self, department: Department) -> None: ...


class AbstractStaffRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, staff_id: uuid.UUID) -> Optional[StaffRecord]: ...
    @abc.abstractmethod
    def list_all(self) -> List[StaffRecord]: ...
    @abc.abstractmethod
    def save(self, staff: StaffRecord) -> None: ...
    @abc.abstractmethod
    def delete(self, staff_id: uuid.UUID) -> None: ...


class AbstractReportRepository(abc.ABC):
    """
    Implementations must reject a second report with the same
    (month, year, department_id) key by raising AlreadyExistsError, and
    must cascade delete() to the report's entries.  Store failures surface
    as PersistenceError (HTTP 503), never as a partial write: the unit of
    work rolls the block back.
    """
    @abc.abstractmethod
    def get(self, report_id: uuid.UUID) -> Optional[MonthlyReport]: ...
    @abc.abstractmethod
    def find_by_key(
        self, month: int, year: int, department_id: Optional[uuid.UUID]
    ) -> Optional[MonthlyReport]: ...
    @abc.abstractmethod
    def list_all(self) -> List[MonthlyReport]: ...
    @abc.abstractmethod
    def list_for_period(self, month: int, year: int) -> List[MonthlyReport]: ...
    @abc.abstractmethod
    def save(self, report: MonthlyReport) -> None: ...
    @abc.abstractmethod
    def delete(self, report_id: uuid.UUID) -> None: ...


class AbstractReportEntryRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, entry_id: uuid.UUID) -> Optional[ReportEntry]: ...
    @abc.abstractmethod
    def list_for_report(self, report_id: uuid.UUID) -> List[ReportEntry]: ...
    @abc.abstractmethod
    def save(self, entry: ReportEntry) -> None: ...
    @abc.abstractmethod
    def save_all(self, entries: List[ReportEntry]) -> None: ...


class AbstractNotificationRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, notification_id: uuid.UUID) -> Optional[NotificationRecord]: ...
    @abc.abstractmethod
    def list_for_recipient(self, user_id: uuid.UUID) -> List[NotificationRecord]: ...
    @abc.abstractmethod
    def save(self, record: NotificationRecord) -> None: ...
    @abc.abstractmethod
    def delete(self, notification_id: uuid.UUID) -> None: ...


# ===========================================================================
# UNIT OF WORK
# ===========================================================================

class AbstractUnitOfWork(abc.ABC):
    """
    Groups all repositories under a single transactional boundary.
    Use as a context manager:

        with uow:
            uow.reports.save(report)
            uow.commit()
    """
    users: AbstractUserRepository
    departments: AbstractDepartmentRepository
    staff: AbstractStaffRepository
    reports: AbstractReportRepository
    entries: AbstractReportEntryRepository
    notifications: AbstractNotificationRepository

    def __enter__(self) -> "AbstractUnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        else:
            self.commit()

    @abc.abstractmethod
    def commit(self) -> None: ...

    @abc.abstractmethod
    def rollback(self) -> None: ...


# ===========================================================================
# NOTIFICATION PUBLISHER
# ===========================================================================

class AbstractNotificationPublisher(abc.ABC):
    """
    Outbound side channel for workflow events.  Implementations may deliver
    synchronously or queue; either way they are called after commit.
    """

    @abc.abstractmethod
    def publish(self, event: NotificationEvent) -> None: ...


def _publish(
    publisher: Optional[AbstractNotificationPublisher],
    event: Optional[NotificationEvent],
) -> None:
    """Fire-and-forget: delivery problems are logged, never raised."""
    if publisher is None or event is None:
        return
    try:
        publisher.publish(event)
    except Exception:
        logger.warning(
            "Notification %s to %s could not be published",
            event.type.value,
            event.target_role.value,
            exc_info=True,
        )


# ===========================================================================
# SERVICE SINGLETONS (shared across use cases)
# ===========================================================================

_user_svc = UserService()
_department_svc = DepartmentService()
_staff_svc = StaffService()
_roster_stats_svc = RosterStatisticsService()
_report_svc = ReportService()
_rollup_svc = RollupService()
_analysis_svc = ReportAnalysisService()
_notification_svc = NotificationService()


# ===========================================================================
# USE CASE HELPERS
# ===========================================================================

def _get_user_or_raise(uow: AbstractUnitOfWork, user_id: uuid.UUID) -> UserAccount:
    user = uow.users.get(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found.")
    return user


def _get_department_or_raise(
    uow: AbstractUnitOfWork, department_id: uuid.UUID
) -> Department:
    department = uow.departments.get(department_id)
    if department is None:
        raise NotFoundError(f"Department {department_id} not found.")
    return department


def _get_staff_or_raise(uow: AbstractUnitOfWork, staff_id: uuid.UUID) -> StaffRecord:
    staff = uow.staff.get(staff_id)
    if staff is None:
        raise NotFoundError(f"Staff member {staff_id} not found.")
    return staff


def _get_report_or_raise(uow: AbstractUnitOfWork, report_id: uuid.UUID) -> MonthlyReport:
    report = uow.reports.get(report_id)
    if report is None:
        raise NotFoundError(f"Report {report_id} not found.")
    return report


def _department_of(
    uow: AbstractUnitOfWork, department_id: Optional[uuid.UUID]
) -> Optional[Department]:
    return uow.departments.get(department_id) if department_id else None


def _report_dto(uow: AbstractUnitOfWork, report: MonthlyReport) -> ReportDTO:
    return _Assembler.report(
        report,
        _department_of(uow, report.department_id),
        len(uow.entries.list_for_report(report.id)),
    )


def _get_readable_report(
    uow: AbstractUnitOfWork, report_id: uuid.UUID, actor: UserAccount
) -> MonthlyReport:
    report = _get_report_or_raise(uow, report_id)
    try:
        _report_svc.check_read_access(report, actor)
    except ValueError as exc:
        raise _translate(exc) from exc
    return report


class _PublishingUseCase:
    """Base for use cases that emit a notification after commit."""

    def __init__(self, publisher: Optional[AbstractNotificationPublisher] = None):
        self._publisher = publisher


# ===========================================================================
# USE CASES: USERS & DEPARTMENTS
# ===========================================================================

@dataclass
class RegisterUserCommand:
    full_name: str
    email: str
    role: UserRole
    department_id: Optional[uuid.UUID]
    acting_user_id: uuid.UUID


class RegisterUserUseCase:
    """Only system administrators may register users."""

    def execute(self, cmd: RegisterUserCommand, uow: AbstractUnitOfWork) -> UserDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            if actor.role != UserRole.SYSTEM_ADMIN:
                raise AuthorizationError("Only system administrators may register users.")
            if cmd.department_id is not None:
                _get_department_or_raise(uow, cmd.department_id)
            try:
                user = _user_svc.create_user(
                    full_name=cmd.full_name,
                    email=cmd.email,
                    role=cmd.role,
                    department_id=cmd.department_id,
                    existing=uow.users.list_all(),
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.users.save(user)
            uow.commit()
            logger.info("Registered user %s with role %s", user.email, user.role.value)
            return _Assembler.user(user)


class GetUserUseCase:
    def execute(self, user_id: uuid.UUID, uow: AbstractUnitOfWork) -> UserDTO:
        with uow:
            return _Assembler.user(_get_user_or_raise(uow, user_id))


class ListUsersUseCase:
    def execute(self, uow: AbstractUnitOfWork) -> List[UserDTO]:
        with uow:
            users = sorted(uow.users.list_all(), key=lambda u: u.full_name.lower())
            return [_Assembler.user(u) for u in users]


@dataclass
class ChangeUserRoleCommand:
    user_id: uuid.UUID
    role: UserRole
    department_id: Optional[uuid.UUID]
    acting_user_id: uuid.UUID


class ChangeUserRoleUseCase:
    def execute(self, cmd: ChangeUserRoleCommand, uow: AbstractUnitOfWork) -> UserDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            user = _get_user_or_raise(uow, cmd.user_id)
            if cmd.department_id is not None:
                _get_department_or_raise(uow, cmd.department_id)
            try:
                user = _user_svc.change_role(
                    user, cmd.role, cmd.department_id, uow.users.list_all(), actor
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.users.save(user)
            uow.commit()
            logger.info("User %s is now %s (by %s)", user.id, user.role.value, actor.id)
            return _Assembler.user(user)


@dataclass
class SetUserActiveCommand:
    user_id: uuid.UUID
    is_active: bool
    acting_user_id: uuid.UUID


class SetUserActiveUseCase:
    """Inactive users cannot authenticate and receive no notifications."""

    def execute(self, cmd: SetUserActiveCommand, uow: AbstractUnitOfWork) -> UserDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            user = _get_user_or_raise(uow, cmd.user_id)
            try:
                user = _user_svc.set_active(user, cmd.is_active, uow.users.list_all(), actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.users.save(user)
            uow.commit()
            logger.info(
                "User %s %s by %s",
                user.id, "activated" if user.is_active else "deactivated", actor.id,
            )
            return _Assembler.user(user)


@dataclass
class DeleteUserCommand:
    user_id: uuid.UUID
    acting_user_id: uuid.UUID


class DeleteUserUseCase:
    """
    Removes the account and its inbox.  Reports keep the user's id in their
    *_by fields.
    """

    def execute(self, cmd: DeleteUserCommand, uow: AbstractUnitOfWork) -> None:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            user = _get_user_or_raise(uow, cmd.user_id)
            try:
                _user_svc.check_delete(user, uow.users.list_all(), actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            for record in uow.notifications.list_for_recipient(user.id):
                uow.notifications.delete(record.id)
            uow.users.delete(user.id)
            uow.commit()
            logger.info("User %s (%s) deleted by %s", user.id, user.email, actor.id)


@dataclass
class CreateDepartmentCommand:
    code: str
    name: str
    college_name: str
    acting_user_id: uuid.UUID


class CreateDepartmentUseCase:
    def execute(self, cmd: CreateDepartmentCommand, uow: AbstractUnitOfWork) -> DepartmentDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            try:
                department = _department_svc.create_department(
                    code=cmd.code,
                    name=cmd.name,
                    college_name=cmd.college_name,
                    existing=uow.departments.list_all(),
                    acting_user=actor,
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.departments.save(department)
            uow.commit()
            return _Assembler.department(department)


class GetDepartmentUseCase:
    def execute(self, department_id: uuid.UUID, uow: AbstractUnitOfWork) -> DepartmentDTO:
        with uow:
            return _Assembler.department(_get_department_or_raise(uow, department_id))


class ListDepartmentsUseCase:
    def execute(self, uow: AbstractUnitOfWork) -> List[DepartmentDTO]:
        with uow:
            departments = sorted(uow.departments.list_all(), key=lambda d: d.code)
            return [_Assembler.department(d) for d in departments]


# ===========================================================================
# USE CASES: STAFF REGISTRY
# ===========================================================================

@dataclass
class CreateStaffCommand:
    full_name: str
    sex: Sex
    category: StaffCategory
    education_level: str
    department_id: Optional[uuid.UUID]
    acting_user_id: uuid.UUID
    college_name: Optional[str] = None
    staff_code: Optional[str] = None
    specialization: Optional[str] = None
    academic_rank: Optional[str] = None
    current_status: str = "On Duty"
    remark: Optional[str] = None


class CreateStaffUseCase(_PublishingUseCase):
    def execute(self, cmd: CreateStaffCommand, uow: AbstractUnitOfWork) -> StaffDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            department = None
            if cmd.department_id is not None:
                department = _get_department_or_raise(uow, cmd.department_id)
            college_name = cmd.college_name or (department.college_name if department else "")
            try:
                staff = _staff_svc.create_staff(
                    full_name=cmd.full_name,
                    sex=cmd.sex,
                    category=cmd.category,
                    education_level=cmd.education_level,
                    department_id=cmd.department_id,
                    college_name=college_name,
                    acting_user=actor,
                    staff_code=cmd.staff_code,
                    specialization=cmd.specialization,
                    academic_rank=cmd.academic_rank,
                    current_status=cmd.current_status,
                    remark=cmd.remark,
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.staff.save(staff)
            uow.commit()
            event = _notification_svc.staff_event(
                NotificationType.STAFF_ADDED, staff, department, actor
            )
            result = _Assembler.staff(staff, department)
        _publish(self._publisher, event)
        return result


@dataclass
class UpdateStaffCommand:
    staff_id: uuid.UUID
    changes: Dict[str, Any]
    acting_user_id: uuid.UUID


class UpdateStaffUseCase:
    """
    Edits the live roster only.  Existing report entries keep the values
    captured when their report was generated.
    """

    def execute(self, cmd: UpdateStaffCommand, uow: AbstractUnitOfWork) -> StaffDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            staff = _get_staff_or_raise(uow, cmd.staff_id)
            changes = dict(cmd.changes)
            new_department_id = changes.get("department_id")
            if new_department_id is not None:
                department = _get_department_or_raise(uow, new_department_id)
                # A move without an explicit college takes the new department's.
                if new_department_id != staff.department_id and not changes.get("college_name"):
                    changes["college_name"] = department.college_name
            try:
                staff = _staff_svc.update_staff(staff, changes, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.staff.save(staff)
            uow.commit()
            return _Assembler.staff(staff, _department_of(uow, staff.department_id))


@dataclass
class DeleteStaffCommand:
    staff_id: uuid.UUID
    acting_user_id: uuid.UUID


class DeleteStaffUseCase(_PublishingUseCase):
    def execute(self, cmd: DeleteStaffCommand, uow: AbstractUnitOfWork) -> None:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            staff = _get_staff_or_raise(uow, cmd.staff_id)
            try:
                _staff_svc.check_write_access(actor, staff.department_id)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.staff.delete(staff.id)
            uow.commit()
            event = _notification_svc.staff_event(
                NotificationType.STAFF_DELETED,
                staff,
                _department_of(uow, staff.department_id),
                actor,
            )
        _publish(self._publisher, event)


class GetStaffUseCase:
    def execute(self, staff_id: uuid.UUID, uow: AbstractUnitOfWork) -> StaffDTO:
        with uow:
            staff = _get_staff_or_raise(uow, staff_id)
            return _Assembler.staff(staff, _department_of(uow, staff.department_id))


class ListStaffUseCase:
    def execute(
        self,
        uow: AbstractUnitOfWork,
        category: Optional[StaffCategory] = None,
        department_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> List[StaffDTO]:
        with uow:
            departments = {d.id: d for d in uow.departments.list_all()}
            staff = _staff_svc.filter_staff(
                uow.staff.list_all(),
                category=category,
                department_id=department_id,
                search=search,
            )
            return [
                _Assembler.staff(s, departments.get(s.department_id)) for s in staff
            ]


@dataclass
class ImportStaffCommand:
    csv_text: str
    acting_user_id: uuid.UUID
    department_id: Optional[uuid.UUID] = None     # defaults to the caller's department


class ImportStaffUseCase(_PublishingUseCase):
    """
    Bulk-create staff from CSV.  Rows are independent: a bad row is reported
    in the result and the rest are still saved.  The AVD office gets a single
    summary notification.
    """

    def execute(self, cmd: ImportStaffCommand, uow: AbstractUnitOfWork) -> StaffImportResultDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            department_id = cmd.department_id or actor.department_id
            if department_id is None:
                raise ApplicationError("No department given and none assigned to the caller.")
            department = _get_department_or_raise(uow, department_id)
            try:
                outcome = _staff_svc.import_staff(cmd.csv_text, department, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            for staff in outcome["created"]:
                uow.staff.save(staff)
            uow.commit()
            logger.info(
                "Imported %d staff into %s (%d failed, %d skipped)",
                len(outcome["created"]), department.code,
                len(outcome["failures"]), outcome["skipped"],
            )
            event = None
            if outcome["created"]:
                event = _notification_svc.staff_import_event(
                    len(outcome["created"]), department, actor
                )
            result = StaffImportResultDTO(
                department_id=str(department.id),
                department_code=department.code,
                imported=len(outcome["created"]),
                failed=len(outcome["failures"]),
                skipped=outcome["skipped"],
                errors=[StaffImportErrorDTO(**f) for f in outcome["failures"]],
                staff=[_Assembler.staff(s, department) for s in outcome["created"]],
            )
        _publish(self._publisher, event)
        return result


class GetStaffImportTemplateUseCase:
    def execute(self) -> str:
        return _staff_svc.import_template()


class GetStaffStatisticsUseCase:
    """Counts over the live roster, college-wide or for one department."""

    def execute(
        self, uow: AbstractUnitOfWork, department_id: Optional[uuid.UUID] = None
    ) -> StaffStatisticsDTO:
        with uow:
            staff = uow.staff.list_all()
            if department_id is not None:
                _get_department_or_raise(uow, department_id)
                staff = [s for s in staff if s.department_id == department_id]
            stats = _roster_stats_svc.staff_statistics(staff)
            return StaffStatisticsDTO(
                department_id=_str(department_id),
                total=stats["total"],
                by_category=stats["by_category"],
                by_sex=stats["by_sex"],
                by_education=stats["by_education"],
                by_rank=stats["by_rank"],
                by_status=stats["by_status"],
            )


class ListDepartmentStatisticsUseCase:
    def execute(self, uow: AbstractUnitOfWork) -> List[DepartmentStatisticsDTO]:
        with uow:
            rows = _roster_stats_svc.department_statistics(
                uow.departments.list_all(), uow.staff.list_all()
            )
            return [
                DepartmentStatisticsDTO(
                    department_id=str(row["department_id"]),
                    department_code=row["department_code"],
                    department_name=row["department_name"],
                    total=row["total"],
                    by_rank=row["by_rank"],
                    by_status=row["by_status"],
                )
                for row in rows
            ]


# ===========================================================================
# USE CASES: REPORT GENERATION
# ===========================================================================

@dataclass
class GenerateReportCommand:
    month: int
    year: int
    department_id: Optional[uuid.UUID]     # None = college scope, all staff
    acting_user_id: uuid.UUID
    regenerate: bool = False


class GenerateReportUseCase:
    """
    Create a report for a (month, year, scope) key by snapshotting the
    roster.  With `regenerate`, an existing non-submitted report for the key
    is deleted (with its entries) and recreated at the next version.

    Every step runs inside one unit of work, so a failure part-way leaves
    neither a half-written report nor a deleted predecessor behind.
    """

    def execute(self, cmd: GenerateReportCommand, uow: AbstractUnitOfWork) -> ReportDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            try:
                _report_svc.validate_period(cmd.month, cmd.year)
                _report_svc.check_create_access(actor, cmd.department_id)
            except ValueError as exc:
                raise _translate(exc) from exc
            department = None
            if cmd.department_id is not None:
                department = _get_department_or_raise(uow, cmd.department_id)

            existing = uow.reports.find_by_key(cmd.month, cmd.year, cmd.department_id)
            try:
                version = _report_svc.resolve_version(existing, cmd.regenerate)
                if existing is not None:
                    _report_svc.check_delete_access(existing, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            if existing is not None:
                logger.info(
                    "Regenerating report %s (%s, version %d)",
                    existing.id, existing.period_label, existing.version,
                )
                uow.reports.delete(existing.id)

            report = _report_svc.create_report(
                month=cmd.month,
                year=cmd.year,
                department_id=cmd.department_id,
                version=version,
                created_by=actor.id,
            )
            uow.reports.save(report)
            departments = {d.id: d for d in uow.departments.list_all()}
            entries = _report_svc.snapshot_entries(report, uow.staff.list_all(), departments)
            uow.entries.save_all(entries)
            uow.commit()
            logger.info(
                "Generated report %s for %s (%s) with %d entries",
                report.id,
                report.period_label,
                department.code if department else "college",
                len(entries),
            )
            return _Assembler.report(report, department, len(entries))


@dataclass
class GenerateCollegeReportCommand:
    month: int
    year: int
    acting_user_id: uuid.UUID
    regenerate: bool = False


class GenerateCollegeReportUseCase:
    """
    Build the college-level report for a period as the union of the entries
    of every approved department report for that period.
    """

    def execute(
        self, cmd: GenerateCollegeReportCommand, uow: AbstractUnitOfWork
    ) -> ReportDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            existing = uow.reports.find_by_key(cmd.month, cmd.year, None)
            try:
                _report_svc.validate_period(cmd.month, cmd.year)
                _rollup_svc.check_access(actor)
                version = _report_svc.resolve_version(existing, cmd.regenerate)
                sources = _rollup_svc.select_source_reports(
                    uow.reports.list_for_period(cmd.month, cmd.year),
                    cmd.month,
                    cmd.year,
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            if existing is not None:
                uow.reports.delete(existing.id)

            report = _report_svc.create_report(
                month=cmd.month,
                year=cmd.year,
                department_id=None,
                version=version,
                created_by=actor.id,
            )
            uow.reports.save(report)
            source_entries = [
                e for source in sources for e in uow.entries.list_for_report(source.id)
            ]
            entries = _rollup_svc.copy_entries(report, source_entries)
            uow.entries.save_all(entries)
            uow.commit()
            logger.info(
                "Generated college report %s for %s from %d department reports (%d entries)",
                report.id, report.period_label, len(sources), len(entries),
            )
            return _Assembler.report(report, None, len(entries))


# ===========================================================================
# USE CASES: REPORT LIFECYCLE
# ===========================================================================

@dataclass
class SubmitReportCommand:
    report_id: uuid.UUID
    acting_user_id: uuid.UUID


class SubmitReportUseCase(_PublishingUseCase):
    """Submit a draft report, or resubmit a rejected one, to the AVD."""

    def execute(self, cmd: SubmitReportCommand, uow: AbstractUnitOfWork) -> ReportDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            report = _get_report_or_raise(uow, cmd.report_id)
            resubmission = report.status == ReportStatus.REJECTED
            try:
                report = _report_svc.submit(report, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.reports.save(report)
            uow.commit()
            logger.info("Report %s %s by %s", report.id,
                        "resubmitted" if resubmission else "submitted", actor.id)
            event = _notification_svc.report_event(
                NotificationType.REPORT_RESUBMITTED if resubmission
                else NotificationType.REPORT_SUBMITTED,
                report,
                _department_of(uow, report.department_id),
                performed_by=actor.id,
            )
            result = _report_dto(uow, report)
        _publish(self._publisher, event)
        return result


@dataclass
class ApproveReportCommand:
    report_id: uuid.UUID
    acting_user_id: uuid.UUID


class ApproveReportUseCase(_PublishingUseCase):
    def execute(self, cmd: ApproveReportCommand, uow: AbstractUnitOfWork) -> ReportDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            report = _get_report_or_raise(uow, cmd.report_id)
            try:
                report = _report_svc.approve(report, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.reports.save(report)
            uow.commit()
            logger.info("Report %s approved by %s", report.id, actor.id)
            event = None
            if not report.is_college_report:
                event = _notification_svc.report_event(
                    NotificationType.REPORT_APPROVED,
                    report,
                    _department_of(uow, report.department_id),
                    performed_by=actor.id,
                )
            result = _report_dto(uow, report)
        _publish(self._publisher, event)
        return result


@dataclass
class RejectReportCommand:
    report_id: uuid.UUID
    reason: str
    acting_user_id: uuid.UUID


class RejectReportUseCase(_PublishingUseCase):
    """Reject a submitted report.  The reason is sent to the department head."""

    def execute(self, cmd: RejectReportCommand, uow: AbstractUnitOfWork) -> ReportDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            report = _get_report_or_raise(uow, cmd.report_id)
            try:
                report = _report_svc.reject(report, cmd.reason, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.reports.save(report)
            uow.commit()
            logger.info("Report %s rejected by %s", report.id, actor.id)
            event = None
            if not report.is_college_report:
                event = _notification_svc.report_event(
                    NotificationType.REPORT_REJECTED,
                    report,
                    _department_of(uow, report.department_id),
                    performed_by=actor.id,
                    reason=report.rejection_reason,
                )
            result = _report_dto(uow, report)
        _publish(self._publisher, event)
        return result


@dataclass
class DeleteReportCommand:
    report_id: uuid.UUID
    acting_user_id: uuid.UUID


class DeleteReportUseCase:
    """Delete a report; its entries go with it."""

    def execute(self, cmd: DeleteReportCommand, uow: AbstractUnitOfWork) -> None:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            report = _get_report_or_raise(uow, cmd.report_id)
            try:
                _report_svc.check_delete_access(report, actor)
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.reports.delete(report.id)
            uow.commit()
            logger.info("Report %s (%s) deleted by %s", report.id, report.period_label, actor.id)


# ===========================================================================
# USE CASES: REPORT QUERIES
# ===========================================================================

class GetReportUseCase:
    def execute(
        self, report_id: uuid.UUID, acting_user_id: uuid.UUID, uow: AbstractUnitOfWork
    ) -> ReportDTO:
        with uow:
            actor = _get_user_or_raise(uow, acting_user_id)
            report = _get_readable_report(uow, report_id, actor)
            return _report_dto(uow, report)


class ListReportsUseCase:
    def execute(
        self,
        acting_user_id: uuid.UUID,
        uow: AbstractUnitOfWork,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[ReportStatus] = None,
        scope: Optional[str] = None,
    ) -> List[ReportDTO]:
        with uow:
            actor = _get_user_or_raise(uow, acting_user_id)
            try:
                reports = _report_svc.visible_reports(
                    actor,
                    uow.reports.list_all(),
                    month=month,
                    year=year,
                    status=status,
                    scope=scope,
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            return [_report_dto(uow, r) for r in reports]


class ListReportEntriesUseCase:
    def execute(
        self, report_id: uuid.UUID, acting_user_id: uuid.UUID, uow: AbstractUnitOfWork
    ) -> List[ReportEntryDTO]:
        with uow:
            actor = _get_user_or_raise(uow, acting_user_id)
            report = _get_readable_report(uow, report_id, actor)
            entries = sorted(
                uow.entries.list_for_report(report.id),
                key=lambda e: ((e.department_code or ""), e.full_name.lower()),
            )
            return [_Assembler.entry(e) for e in entries]


@dataclass
class UpdateReportEntryCommand:
    report_id: uuid.UUID
    entry_id: uuid.UUID
    acting_user_id: uuid.UUID
    current_status: Optional[str] = None
    remark: Optional[str] = None


class UpdateReportEntryUseCase:
    """Correct the status / remark of one entry of a draft or rejected report."""

    def execute(
        self, cmd: UpdateReportEntryCommand, uow: AbstractUnitOfWork
    ) -> ReportEntryDTO:
        with uow:
            actor = _get_user_or_raise(uow, cmd.acting_user_id)
            report = _get_report_or_raise(uow, cmd.report_id)
            entry = uow.entries.get(cmd.entry_id)
            if entry is None or entry.report_id != report.id:
                raise NotFoundError(
                    f"Entry {cmd.entry_id} not found in report {cmd.report_id}."
                )
            try:
                entry = _report_svc.update_entry(
                    report,
                    entry,
                    actor,
                    current_status=cmd.current_status,
                    remark=cmd.remark,
                )
            except ValueError as exc:
                raise _translate(exc) from exc
            uow.entries.save(entry)
            uow.commit()
            return _Assembler.entry(entry)


class GetHeadcountSummaryUseCase:
    """Counts per category by status and sex; the figures of the official letter."""

    def execute(
        self, report_id: uuid.UUID, acting_user_id: uuid.UUID, uow: AbstractUnitOfWork
    ) -> HeadcountSummaryDTO:
        with uow:
            actor = _get_user_or_raise(uow, acting_user_id)
            report = _get_readable_report(uow, report_id, actor)
            summary = _analysis_svc.headcount_summary(uow.entries.list_for_report(report.id))
            return HeadcountSummaryDTO(
                report_id=str(report.id),
                period_label=report.period_label,
                rows=[_Assembler.headcount_row(r) for r in summary["rows"]],
                totals=_Assembler.headcount_row(summary["totals"]),
            )


class CompareReportsUseCase:
    def execute(
        self,
        previous_report_id: uuid.UUID,
        current_report_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        uow: AbstractUnitOfWork,
    ) -> ReportComparisonDTO:
        with uow:
            actor = _get_user_or_raise(uow, acting_user_id)
            previous = _get_readable_report(uow, previous_report_id, actor)
            current = _get_readable_report(uow, current_report_id, actor)
            changes = _analysis_svc.compare(
                uow.entries.list_for_report(previous.id),
                uow.entries.list_for_report(current.id),
            )
            return ReportComparisonDTO(
                previous_report_id=str(previous.id),
                current_report_id=str(current.id),
                previous_label=previous.period_label,
                current_label=current.period_label,
                added=sum(1 for c in changes if c["change_type"] == "added"),
                removed=sum(1 for c in changes if c["change_type"] == "removed"),
                status_changed=sum(1 for c in changes if c["change_type"] == "status_changed"),
                changes=[ReportChangeDTO(**c) for c in changes],
            )


class GetSubmissionStatusUseCase:
    def execute(self, month: int, year: int, uow: AbstractUnitOfWork) -> SubmissionStatusDTO:
        with uow:
            try:
                _report_svc.validate_period(month, year)
            except ValueError as exc:
                raise _translate(exc) from exc
            status = _analysis_svc.submission_status(
                uow.departments.list_all(),
                uow.reports.list_for_period(month, year),
                month,
                year,
            )
            return SubmissionStatusDTO(
                month=month,
                year=year,
                approved=status["counts"]["approved"],
                submitted=status["counts"]["submitted"],
                rejected=status["counts"]["rejected"],
                pending=status["counts"]["pending"],
                total=status["total"],
                progress_pct=status["progress_pct"],
                departments=[
                    DepartmentSubmissionDTO(
                        department_id=str(row["department_id"]),
                        department_code=row["department_code"],
                        department_name=row["department_name"],
                        status=row["status"],
                        report_id=_str(row["report_id"]),
                        submitted_at=_fmt(row["submitted_at"]),
                    )
                    for row in status["departments"]
                ],
            )


class ExportReportEntriesUseCase:
    def execute(
        self, report_id: uuid.UUID, acting_user_id: uuid.UUID, uow: AbstractUnitOfWork
    ) -> List[Dict]:
        with uow:
            actor = _get_user_or_raise(uow, acting_user_id)
            report = _get_readable_report(uow, report_id, actor)
            return _analysis_svc.export_entries(uow.entries.list_for_report(report.id))


# ===========================================================================
# USE CASES: NOTIFICATIONS
# ===========================================================================

class ListMyNotificationsUseCase:
    def execute(
        self,
        user_id: uuid.UUID,
        uow: AbstractUnitOfWork,
        unread_only: bool = False,
    ) -> List[NotificationDTO]:
        with uow:
            records = _notification_svc.inbox(
                user_id, uow.notifications.list_for_recipient(user_id)
            )
            if unread_only:
                records = [n for n in records if not n.is_read]
            return [_Assembler.notification(n) for n in records]


class CountUnreadNotificationsUseCase:
    def execute(self, user_id: uuid.UUID, uow: AbstractUnitOfWork) -> int:
        with uow:
            return sum(
                1 for n in uow.notifications.list_for_recipient(user_id) if not n.is_read
            )


def _get_own_notification(
    uow: AbstractUnitOfWork, notification_id: uuid.UUID, user: UserAccount
) -> NotificationRecord:
    record = uow.notifications.get(notification_id)
    if record is None:
        raise NotFoundError(f"Notification {notification_id} not found.")
    try:
        _notification_svc.check_owner(record, user)
    except ValueError as exc:
        raise _translate(exc) from exc
    return record


class MarkNotificationReadUseCase:
    def execute(
        self, notification_id: uuid.UUID, user_id: uuid.UUID, uow: AbstractUnitOfWork
    ) -> NotificationDTO:
        with uow:
            user = _get_user_or_raise(uow, user_id)
            record = _get_own_notification(uow, notification_id, user)
            record.is_read = True
            uow.notifications.save(record)
            uow.commit()
            return _Assembler.notification(record)


class MarkAllNotificationsReadUseCase:
    def execute(self, user_id: uuid.UUID, uow: AbstractUnitOfWork) -> int:
        """Returns the number of notifications that changed state."""
        with uow:
            changed = 0
            for record in uow.notifications.list_for_recipient(user_id):
                if not record.is_read:
                    record.is_read = True
                    uow.notifications.save(record)
                    changed += 1
            uow.commit()
            return changed


class DeleteNotificationUseCase:
    def execute(
        self, notification_id: uuid.UUID, user_id: uuid.UUID, uow: AbstractUnitOfWork
    ) -> None:
        with uow:
            user = _get_user_or_raise(uow, user_id)
            record = _get_own_notification(uow, notification_id, user)
            uow.notifications.delete(record.id)
            uow.commit()
