"""
service.py

Service layer for the College Staff Reporting System.

Responsibilities
----------------
Each service class encapsulates all business logic for its domain.
Services receive and return domain model instances (from model.py).
No persistence is handled here — callers are responsible for storing
and retrieving models via a repository layer of their choosing.

Services
--------
- DepartmentService       – Department registration
- StaffService            – Staff roster CRUD, filtering, write access and CSV import
- RosterStatisticsService – Live-roster counts by category, sex, education, rank and status
- UserService             – User registration, role changes, deactivation and removal
- ReportService           – Report generation, lifecycle transitions, entry edits
- RollupService           – College-level aggregation of approved department reports
- ReportAnalysisService   – Headcount summary, comparison, submission dashboard, export
- NotificationService     – Notification events, fan-out and inbox helpers

Design notes
------------
- All mutating methods accept the acting user and stamp the relevant
  *_at / *_by fields.
- UTC datetimes are used throughout.
- Business rule violations raise ValueError (or one of the ValueError
  subclasses below) with a descriptive message.
- Authorization checks are guard helpers called at the start of each
  operation that requires elevated rights.
- Methods that would normally persist data return the mutated object(s)
  so the caller can hand them to a repository.
"""

from __future__ import annotations

import csv
import io
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from model import (
    EDUCATION_LEVELS,
    STAFF_IMPORT_COLUMNS,
    STAFF_STATUSES,
    Department,
    MonthlyReport,
    NotificationEvent,
    NotificationRecord,
    NotificationType,
    ReportEntry,
    ReportEvent,
    ReportStatus,
    Sex,
    StaffCategory,
    StaffRecord,
    UserAccount,
    UserRole,
)


# ---------------------------------------------------------------------------
# Rule violations
# ---------------------------------------------------------------------------

class PermissionDenied(ValueError):
    """The acting user's role does not allow the operation."""


class DuplicateRecord(ValueError):
    """A record with the same natural key already exists."""


class InvalidTransition(ValueError):
    """The requested (status, event) pair is not part of the report workflow."""


class NoApprovedReports(ValueError):
    """A college rollup was requested for a period with no approved department reports."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_role(user: UserAccount, *allowed_roles: UserRole) -> None:
    """Raise PermissionDenied if the user does not hold one of the allowed roles."""
    if not user.is_active or user.role not in allowed_roles:
        raise PermissionDenied(
            f"User {user.id} does not hold any of the required "
            f"roles: {[r.value for r in allowed_roles]}."
        )


def _require_department_scope(
    user: UserAccount, department_id: Optional[uuid.UUID]
) -> None:
    """Department heads may only act on their own department."""
    if user.role == UserRole.DEPARTMENT_HEAD and (
        department_id is None or department_id != user.department_id
    ):
        raise PermissionDenied(
            "Department heads may only act on their own department."
        )


# ---------------------------------------------------------------------------
# DepartmentService
# ---------------------------------------------------------------------------

class DepartmentService:

    def create_department(
        self,
        code: str,
        name: str,
        college_name: str,
        existing: List[Department],
        acting_user: UserAccount,
    ) -> Department:
        """Create and return a new Department (unsaved)."""
        _require_role(acting_user, UserRole.SYSTEM_ADMIN)
        code = code.strip()
        if not code or not name.strip():
            raise ValueError("Department code and name must not be empty.")
        if any(d.code.lower() == code.lower() for d in existing):
            raise DuplicateRecord(f"A department with code '{code}' already exists.")
        return Department(
            code=code,
            name=name.strip(),
            college_name=college_name,
            created_at=_utcnow(),
        )


# ---------------------------------------------------------------------------
# StaffService
# ---------------------------------------------------------------------------

class StaffService:
    """
    Manages the live staff roster.
    Reports read it by snapshot only; nothing here touches report entries.
    """

    _EDITABLE_FIELDS = (
        "staff_code",
        "full_name",
        "sex",
        "specialization",
        "education_level",
        "academic_rank",
        "category",
        "current_status",
        "remark",
        "department_id",
        "college_name",
    )

    _REQUIRED_FIELDS = ("full_name", "sex", "category", "education_level", "current_status")

    def check_write_access(
        self, acting_user: UserAccount, department_id: Optional[uuid.UUID]
    ) -> None:
        _require_role(
            acting_user,
            UserRole.SYSTEM_ADMIN,
            UserRole.AVD,
            UserRole.DEPARTMENT_HEAD,
        )
        _require_department_scope(acting_user, department_id)

    def create_staff(
        self,
        full_name: str,
        sex: Sex,
        category: StaffCategory,
        education_level: str,
        department_id: Optional[uuid.UUID],
        college_name: str,
        acting_user: UserAccount,
        staff_code: Optional[str] = None,
        specialization: Optional[str] = None,
        academic_rank: Optional[str] = None,
        current_status: str = "On Duty",
        remark: Optional[str] = None,
    ) -> StaffRecord:
        """Create and return a new StaffRecord (unsaved)."""
        self.check_write_access(acting_user, department_id)
        if not full_name.strip():
            raise ValueError("Staff full_name must not be empty.")
        if not current_status.strip():
            raise ValueError("Staff current_status must not be empty.")
        now = _utcnow()
        return StaffRecord(
            staff_code=staff_code,
            full_name=full_name.strip(),
            sex=sex,
            specialization=specialization,
            education_level=education_level,
            academic_rank=academic_rank,
            category=category,
            current_status=current_status,
            remark=remark,
            department_id=department_id,
            college_name=college_name,
            created_at=now,
            updated_at=now,
        )

    def update_staff(
        self,
        staff: StaffRecord,
        changes: Dict[str, object],
        acting_user: UserAccount,
    ) -> StaffRecord:
        """
        Apply field-level updates to a staff record.
        Moving a record to another department requires write access to both.
        """
        self.check_write_access(acting_user, staff.department_id)
        unknown = set(changes) - set(self._EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown staff fields: {sorted(unknown)}.")
        if "department_id" in changes:
            self.check_write_access(acting_user, changes["department_id"])
        for name in self._REQUIRED_FIELDS:
            if name in changes and not str(changes[name] or "").strip():
                raise ValueError(f"Staff {name} must not be empty.")
        for name, value in changes.items():
            setattr(staff, name, value)
        staff.updated_at = _utcnow()
        return staff

    def filter_staff(
        self,
        staff: Iterable[StaffRecord],
        category: Optional[StaffCategory] = None,
        department_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> List[StaffRecord]:
        """Filter by category / department / name substring, ordered by full name."""
        result = list(staff)
        if category is not None:
            result = [s for s in result if s.category == category]
        if department_id is not None:
            result = [s for s in result if s.department_id == department_id]
        if search:
            needle = search.lower()
            result = [s for s in result if needle in s.full_name.lower()]
        return sorted(result, key=lambda s: s.full_name.lower())

    # --- CSV import ---------------------------------------------------------

    _IMPORT_SEX = {"": Sex.MALE, "m": Sex.MALE, "male": Sex.MALE,
                   "f": Sex.FEMALE, "female": Sex.FEMALE}

    def import_template(self) -> str:
        """Header line plus one example row."""
        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow(STAFF_IMPORT_COLUMNS)
        writer.writerow([
            "STF001", "John Doe", "M", "Computer Science", "Msc",
            "Lecturer", "On Duty", StaffCategory.LOCAL_INSTRUCTORS.value, "",
        ])
        return out.getvalue()

    def import_staff(
        self,
        csv_text: str,
        department: Department,
        acting_user: UserAccount,
    ) -> Dict:
        """
        Build one StaffRecord per CSV data row for `department`.

        Returns {"created": [...], "failures": [{"line", "error"}], "skipped": n}.
        A failing row does not stop the others; rows without a full name
        are skipped.  Headers are matched case-insensitively, so are the
        category and education level values.
        """
        self.check_write_access(acting_user, department.id)
        reader = csv.reader(io.StringIO(csv_text))
        rows = [(reader.line_num, row) for row in reader if any(v.strip() for v in row)]
        if len(rows) < 2:
            raise ValueError("CSV file is empty or has no data rows.")

        headers = [h.strip().lower() for h in rows[0][1]]
        created: List[StaffRecord] = []
        failures: List[Dict] = []
        skipped = 0
        for line, values in rows[1:]:
            if len(values) > len(headers):
                failures.append({
                    "line": line,
                    "error": f"Expected at most {len(headers)} values, found {len(values)}.",
                })
                continue
            row = {h: v.strip() for h, v in zip(headers, values)}
            if not row.get("full_name"):
                skipped += 1
                continue
            try:
                created.append(self._staff_from_row(row, department, acting_user))
            except ValueError as exc:
                failures.append({"line": line, "error": str(exc)})
        return {"created": created, "failures": failures, "skipped": skipped}

    def _staff_from_row(
        self, row: Dict[str, str], department: Department, acting_user: UserAccount
    ) -> StaffRecord:
        sex = self._IMPORT_SEX.get(row.get("sex", "").lower())
        if sex is None:
            raise ValueError(f"Unrecognised sex '{row['sex']}'; use M or F.")
        category = _match_choice(
            row.get("category", ""),
            [c.value for c in StaffCategory],
            StaffCategory.LOCAL_INSTRUCTORS.value,
        )
        return self.create_staff(
            full_name=row["full_name"],
            sex=sex,
            category=StaffCategory(category),
            education_level=_match_choice(row.get("education_level", ""), EDUCATION_LEVELS, "Msc"),
            department_id=department.id,
            college_name=department.college_name,
            acting_user=acting_user,
            staff_code=row.get("staff_id") or None,
            specialization=row.get("specialization") or None,
            academic_rank=row.get("academic_rank") or None,
            current_status=row.get("current_status") or "On Duty",
            remark=row.get("remark") or None,
        )


def _match_choice(value: str, choices: Iterable[str], default: str) -> str:
    """Case-insensitive lookup of `value` among `choices`."""
    return next((c for c in choices if c.lower() == value.lower()), default)


# ---------------------------------------------------------------------------
# RosterStatisticsService
# ---------------------------------------------------------------------------

class RosterStatisticsService:
    """Counts over the live roster, for the dashboard.  Report snapshots are not involved."""

    RANKS = ("Lecturer", "Asst. Prof.", "Asso. Prof.", "Professor")
    STATUSES = ("On Duty", "Not On Duty", "On Study")

    @staticmethod
    def normalise_rank(academic_rank: Optional[str]) -> Optional[str]:
        """Fold free-text ranks onto RANKS; None when the rank is not one of them."""
        rank = (academic_rank or "").strip().lower()
        if "lecturer" in rank and "senior" not in rank and "s." not in rank:
            return "Lecturer"
        if "asst" in rank or "assistant" in rank:
            return "Asst. Prof."
        if "asso" in rank or "associate" in rank:
            return "Asso. Prof."
        if rank in ("professor", "prof", "prof."):
            return "Professor"
        return None

    @staticmethod
    def normalise_status(current_status: Optional[str]) -> Optional[str]:
        if current_status == "On Study Leave":
            return "On Study"
        return current_status if current_status in RosterStatisticsService.STATUSES else None

    def _breakdowns(self, staff: List[StaffRecord]) -> Dict:
        by_rank = dict.fromkeys(self.RANKS, 0)
        by_status = dict.fromkeys(self.STATUSES, 0)
        for s in staff:
            rank = self.normalise_rank(s.academic_rank)
            if rank:
                by_rank[rank] += 1
            status = self.normalise_status(s.current_status)
            if status:
                by_status[status] += 1
        return {"total": len(staff), "by_rank": by_rank, "by_status": by_status}

    def staff_statistics(self, staff: Iterable[StaffRecord]) -> Dict:
        staff = list(staff)
        result = self._breakdowns(staff)
        result["by_category"] = {
            c.value: sum(1 for s in staff if s.category == c) for c in StaffCategory
        }
        result["by_sex"] = {x.value: sum(1 for s in staff if s.sex == x) for x in Sex}
        by_education: Dict[str, int] = {}
        for s in staff:
            by_education[s.education_level] = by_education.get(s.education_level, 0) + 1
        result["by_education"] = by_education
        return result

    def department_statistics(
        self, departments: Iterable[Department], staff: Iterable[StaffRecord]
    ) -> List[Dict]:
        staff = list(staff)
        rows = []
        for dept in sorted(departments, key=lambda d: d.code):
            row = self._breakdowns([s for s in staff if s.department_id == dept.id])
            row.update(department_id=dept.id, department_code=dept.code, department_name=dept.name)
            rows.append(row)
        return rows


# ---------------------------------------------------------------------------
# UserService
# ---------------------------------------------------------------------------

class UserService:

    def create_user(
        self,
        full_name: str,
        email: str,
        role: UserRole,
        department_id: Optional[uuid.UUID],
        existing: List[UserAccount],
    ) -> UserAccount:
        """Create and return a new UserAccount (unsaved)."""
        if not full_name.strip():
            raise ValueError("User full_name must not be empty.")
        if "@" not in email:
            raise ValueError(f"'{email}' does not appear to be a valid email address.")
        if any(u.email.lower() == email.lower() for u in existing):
            raise DuplicateRecord(f"A user with email '{email}' already exists.")
        if role == UserRole.DEPARTMENT_HEAD and department_id is None:
            raise ValueError("A department head must be assigned to a department.")
        return UserAccount(
            full_name=full_name.strip(),
            email=email,
            role=role,
            department_id=department_id if role == UserRole.DEPARTMENT_HEAD else None,
            is_active=True,
            created_at=_utcnow(),
        )

    # --- Role management (system administrators only) ---------------------

    @staticmethod
    def _is_last_admin(user: UserAccount, users: Iterable[UserAccount]) -> bool:
        if user.role != UserRole.SYSTEM_ADMIN or not user.is_active:
            return False
        return not any(
            u.id != user.id and u.role == UserRole.SYSTEM_ADMIN and u.is_active
            for u in users
        )

    def change_role(
        self,
        user: UserAccount,
        role: UserRole,
        department_id: Optional[uuid.UUID],
        users: List[UserAccount],
        acting_user: UserAccount,
    ) -> UserAccount:
        _require_role(acting_user, UserRole.SYSTEM_ADMIN)
        if role != UserRole.SYSTEM_ADMIN and self._is_last_admin(user, users):
            raise ValueError("The last active system administrator cannot change role.")
        if role == UserRole.DEPARTMENT_HEAD and department_id is None:
            raise ValueError("A department head must be assigned to a department.")
        user.role = role
        user.department_id = department_id if role == UserRole.DEPARTMENT_HEAD else None
        return user

    def set_active(
        self,
        user: UserAccount,
        is_active: bool,
        users: List[UserAccount],
        acting_user: UserAccount,
    ) -> UserAccount:
        _require_role(acting_user, UserRole.SYSTEM_ADMIN)
        if not is_active:
            if user.id == acting_user.id:
                raise ValueError("You cannot deactivate your own account.")
            if self._is_last_admin(user, users):
                raise ValueError("The last active system administrator cannot be deactivated.")
        user.is_active = is_active
        return user

    def check_delete(
        self, user: UserAccount, users: List[UserAccount], acting_user: UserAccount
    ) -> None:
        _require_role(acting_user, UserRole.SYSTEM_ADMIN)
        if user.id == acting_user.id:
            raise ValueError("You cannot delete your own account.")
        if self._is_last_admin(user, users):
            raise ValueError("The last active system administrator cannot be deleted.")


# ---------------------------------------------------------------------------
# ReportService
# ---------------------------------------------------------------------------

class ReportService:
    """
    Report generation and the submit / approve / reject workflow.

    Legal transitions are listed in TRANSITIONS; any other (status, event)
    pair raises InvalidTransition before the report is touched.
    """

    TRANSITIONS: Dict[Tuple[ReportStatus, ReportEvent], ReportStatus] = {
        (ReportStatus.DRAFT, ReportEvent.SUBMIT): ReportStatus.SUBMITTED,
        (ReportStatus.REJECTED, ReportEvent.SUBMIT): ReportStatus.SUBMITTED,
        (ReportStatus.SUBMITTED, ReportEvent.APPROVE): ReportStatus.APPROVED,
        (ReportStatus.SUBMITTED, ReportEvent.REJECT): ReportStatus.REJECTED,
    }

    # Statuses in which snapshot status / remark may still be corrected.
    EDITABLE_STATUSES = (ReportStatus.DRAFT, ReportStatus.REJECTED)

    # --- Generation ---------------------------------------------------------

    def validate_period(self, month: int, year: int) -> None:
        if not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12.")
        if not 1000 <= year <= 9999:
            raise ValueError("year must be a four-digit value.")

    def check_create_access(
        self, acting_user: UserAccount, department_id: Optional[uuid.UUID]
    ) -> None:
        _require_role(
            acting_user,
            UserRole.SYSTEM_ADMIN,
            UserRole.AVD,
            UserRole.DEPARTMENT_HEAD,
        )
        _require_department_scope(acting_user, department_id)

    def resolve_version(
        self, existing: Optional[MonthlyReport], regenerate: bool
    ) -> int:
        """
        Decide whether a report may be (re)generated for a key and return the
        version the new report will carry.

        - no existing report                → 1
        - existing, regenerate=False        → DuplicateRecord
        - existing and SUBMITTED            → InvalidTransition
        - existing otherwise, regenerate    → existing.version + 1
        """
        if existing is None:
            return 1
        if not regenerate:
            raise DuplicateRecord(
                f"A report for {existing.period_label} already exists for this scope."
            )
        if existing.status == ReportStatus.SUBMITTED:
            raise InvalidTransition("Cannot regenerate a submitted report.")
        return existing.version + 1

    def create_report(
        self,
        month: int,
        year: int,
        department_id: Optional[uuid.UUID],
        version: int,
        created_by: uuid.UUID,
    ) -> MonthlyReport:
        """Create and return a new draft MonthlyReport (unsaved)."""
        self.validate_period(month, year)
        return MonthlyReport(
            month=month,
            year=year,
            department_id=department_id,
            status=ReportStatus.DRAFT,
            version=version,
            created_at=_utcnow(),
            created_by=created_by,
        )

    def snapshot_entries(
        self,
        report: MonthlyReport,
        staff: Iterable[StaffRecord],
        departments: Dict[uuid.UUID, Department],
    ) -> List[ReportEntry]:
        """
        Copy every matching staff record into a new ReportEntry.

        A department report takes the staff of its department; a college
        report generated directly (outside the rollup) takes all staff.
        """
        now = _utcnow()
        entries: List[ReportEntry] = []
        for s in staff:
            if report.department_id is not None and s.department_id != report.department_id:
                continue
            dept = departments.get(s.department_id) if s.department_id else None
            entries.append(
                ReportEntry(
                    report_id=report.id,
                    staff_id=s.id,
                    current_status=s.current_status,
                    category=s.category,
                    remark=s.remark,
                    staff_code=s.staff_code,
                    full_name=s.full_name,
                    sex=s.sex,
                    college_name=s.college_name,
                    department_code=dept.code if dept else None,
                    department_name=dept.name if dept else None,
                    specialization=s.specialization,
                    education_level=s.education_level,
                    academic_rank=s.academic_rank,
                    created_at=now,
                )
            )
        return entries

    # --- Lifecycle ----------------------------------------------------------

    def next_status(self, current: ReportStatus, event: ReportEvent) -> ReportStatus:
        try:
            return self.TRANSITIONS[(current, event)]
        except KeyError:
            raise InvalidTransition(
                f"Cannot {event.value} a report in status '{current.value}'."
            ) from None

    def submit(self, report: MonthlyReport, acting_user: UserAccount) -> MonthlyReport:
        """Submit a draft report, or resubmit a rejected one."""
        _require_role(
            acting_user,
            UserRole.SYSTEM_ADMIN,
            UserRole.AVD,
            UserRole.DEPARTMENT_HEAD,
        )
        _require_department_scope(acting_user, report.department_id)
        report.status = self.next_status(report.status, ReportEvent.SUBMIT)
        report.submitted_at = _utcnow()
        report.submitted_by = acting_user.id
        return report

    def approve(self, report: MonthlyReport, acting_user: UserAccount) -> MonthlyReport:
        _require_role(acting_user, UserRole.SYSTEM_ADMIN, UserRole.AVD)
        report.status = self.next_status(report.status, ReportEvent.APPROVE)
        report.approved_at = _utcnow()
        report.approved_by = acting_user.id
        return report

    def reject(
        self,
        report: MonthlyReport,
        reason: str,
        acting_user: UserAccount,
    ) -> MonthlyReport:
        """Reject a submitted report. A non-blank reason is mandatory."""
        if reason is None or not reason.strip():
            raise ValueError("A reason must be provided when rejecting a report.")
        _require_role(acting_user, UserRole.SYSTEM_ADMIN, UserRole.AVD)
        report.status = self.next_status(report.status, ReportEvent.REJECT)
        report.rejected_at = _utcnow()
        report.rejected_by = acting_user.id
        report.rejection_reason = reason.strip()
        return report

    def check_delete_access(self, report: MonthlyReport, acting_user: UserAccount) -> None:
        """
        System admins and the AVD may delete at any status.
        Department heads may delete their own drafts and rejected reports only.
        """
        _require_role(
            acting_user,
            UserRole.SYSTEM_ADMIN,
            UserRole.AVD,
            UserRole.DEPARTMENT_HEAD,
        )
        if acting_user.role == UserRole.DEPARTMENT_HEAD:
            _require_department_scope(acting_user, report.department_id)
            if report.status not in self.EDITABLE_STATUSES:
                raise PermissionDenied(
                    f"Department heads cannot delete a {report.status.value} report."
                )

    # --- Entries ------------------------------------------------------------

    def update_entry(
        self,
        report: MonthlyReport,
        entry: ReportEntry,
        acting_user: UserAccount,
        current_status: Optional[str] = None,
        remark: Optional[str] = None,
    ) -> ReportEntry:
        """Correct the status / remark of one snapshot row."""
        _require_role(
            acting_user,
            UserRole.SYSTEM_ADMIN,
            UserRole.AVD,
            UserRole.DEPARTMENT_HEAD,
        )
        _require_department_scope(acting_user, report.department_id)
        if report.status not in self.EDITABLE_STATUSES:
            raise InvalidTransition(
                f"Entries of a {report.status.value} report cannot be edited."
            )
        if current_status is not None:
            if not current_status.strip():
                raise ValueError("current_status must not be empty.")
            entry.current_status = current_status.strip()
        if remark is not None:
            entry.remark = remark
        return entry

    # --- Queries ------------------------------------------------------------

    def visible_reports(
        self,
        acting_user: UserAccount,
        reports: Iterable[MonthlyReport],
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[ReportStatus] = None,
        scope: Optional[str] = None,
    ) -> List[MonthlyReport]:
        """
        Reports the user may see, newest period first.

        Department heads only see their own department; everybody else
        sees all reports. `scope` is "department" or "college".
        """
        result = list(reports)
        if acting_user.role == UserRole.DEPARTMENT_HEAD:
            result = [r for r in result if r.department_id == acting_user.department_id]
        if month is not None:
            result = [r for r in result if r.month == month]
        if year is not None:
            result = [r for r in result if r.year == year]
        if status is not None:
            result = [r for r in result if r.status == status]
        if scope == "college":
            result = [r for r in result if r.is_college_report]
        elif scope == "department":
            result = [r for r in result if not r.is_college_report]
        elif scope is not None:
            raise ValueError("scope must be 'department' or 'college'.")
        return sorted(result, key=lambda r: (r.year, r.month, r.created_at), reverse=True)

    def check_read_access(self, report: MonthlyReport, acting_user: UserAccount) -> None:
        if acting_user.role == UserRole.DEPARTMENT_HEAD:
            _require_department_scope(acting_user, report.department_id)


# ---------------------------------------------------------------------------
# RollupService
# ---------------------------------------------------------------------------

class RollupService:
    """
    Builds the college-level report from approved department reports.
    The rollup is a union of entries; no deduplication by staff identity.
    """

    def check_access(self, acting_user: UserAccount) -> None:
        _require_role(acting_user, UserRole.SYSTEM_ADMIN, UserRole.AVD)

    def select_source_reports(
        self,
        reports: Iterable[MonthlyReport],
        month: int,
        year: int,
    ) -> List[MonthlyReport]:
        """Approved department reports for the period; NoApprovedReports if none."""
        sources = [
            r for r in reports
            if r.department_id is not None
            and r.status == ReportStatus.APPROVED
            and r.month == month
            and r.year == year
        ]
        if not sources:
            raise NoApprovedReports(
                f"No approved department reports exist for {month:02d}/{year}."
            )
        return sources

    def copy_entries(
        self,
        college_report: MonthlyReport,
        source_entries: Iterable[ReportEntry],
    ) -> List[ReportEntry]:
        """Copy each source entry, re-owned by the college report."""
        now = _utcnow()
        return [
            ReportEntry(
                report_id=college_report.id,
                staff_id=e.staff_id,
                current_status=e.current_status,
                category=e.category,
                remark=e.remark,
                staff_code=e.staff_code,
                full_name=e.full_name,
                sex=e.sex,
                college_name=e.college_name,
                department_code=e.department_code,
                department_name=e.department_name,
                specialization=e.specialization,
                education_level=e.education_level,
                academic_rank=e.academic_rank,
                created_at=now,
            )
            for e in source_entries
        ]


# ---------------------------------------------------------------------------
# ReportAnalysisService
# ---------------------------------------------------------------------------

class ReportAnalysisService:
    """Read-only computations over report entries."""

    def headcount_summary(self, entries: List[ReportEntry]) -> Dict:
        """
        Count entries per category by status and sex.

        Statuses outside STAFF_STATUSES still count toward the male / female
        and overall totals of their row.
        """
        rows = []
        for category in StaffCategory:
            in_category = [e for e in entries if e.category == category]
            rows.append(self._summary_row(category.value, in_category))
        totals = self._summary_row("Total", entries)
        return {"rows": rows, "totals": totals}

    def _summary_row(self, label: str, entries: List[ReportEntry]) -> Dict:
        by_status = {
            status: {
                "male": sum(1 for e in entries if e.current_status == status and e.sex == Sex.MALE),
                "female": sum(1 for e in entries if e.current_status == status and e.sex == Sex.FEMALE),
            }
            for status in STAFF_STATUSES
        }
        return {
            "category": label,
            "by_status": by_status,
            "male_total": sum(1 for e in entries if e.sex == Sex.MALE),
            "female_total": sum(1 for e in entries if e.sex == Sex.FEMALE),
            "total": len(entries),
        }

    @staticmethod
    def _staff_key(entry: ReportEntry) -> str:
        return entry.staff_code or (str(entry.staff_id) if entry.staff_id else str(entry.id))

    def compare(
        self,
        previous_entries: List[ReportEntry],
        current_entries: List[ReportEntry],
    ) -> List[Dict]:
        """
        Staff added, removed or with a changed status between two reports.
        Entries are matched on staff code, falling back to the staff id.
        """
        previous = {self._staff_key(e): e for e in previous_entries}
        current = {self._staff_key(e): e for e in current_entries}
        changes: List[Dict] = []

        for key, entry in current.items():
            before = previous.get(key)
            if before is None:
                changes.append(self._change(entry, "added"))
            elif before.current_status != entry.current_status:
                changes.append(
                    self._change(entry, "status_changed", previous_status=before.current_status)
                )
        for key, entry in previous.items():
            if key not in current:
                changes.append(self._change(entry, "removed"))
        return changes

    def _change(
        self,
        entry: ReportEntry,
        change_type: str,
        previous_status: Optional[str] = None,
    ) -> Dict:
        return {
            "change_type": change_type,
            "staff_code": entry.staff_code,
            "full_name": entry.full_name,
            "department_code": entry.department_code,
            "category": entry.category.value,
            "current_status": entry.current_status,
            "previous_status": previous_status,
        }

    def submission_status(
        self,
        departments: List[Department],
        reports: List[MonthlyReport],
        month: int,
        year: int,
    ) -> Dict:
        """One row per department for the period; `pending` when no report exists."""
        by_department = {
            r.department_id: r
            for r in reports
            if r.department_id is not None and r.month == month and r.year == year
        }
        rows = []
        for dept in sorted(departments, key=lambda d: d.code):
            report = by_department.get(dept.id)
            if report is None or report.status == ReportStatus.DRAFT:
                status = "pending"
            else:
                status = report.status.value
            rows.append(
                {
                    "department_id": dept.id,
                    "department_code": dept.code,
                    "department_name": dept.name,
                    "status": status,
                    "report_id": report.id if report else None,
                    "submitted_at": report.submitted_at if report else None,
                }
            )
        counts = {s: sum(1 for r in rows if r["status"] == s)
                  for s in ("approved", "submitted", "rejected", "pending")}
        total = len(rows)
        progress = (counts["approved"] + counts["submitted"]) / total * 100 if total else 0.0
        return {
            "month": month,
            "year": year,
            "departments": rows,
            "counts": counts,
            "total": total,
            "progress_pct": round(progress, 2),
        }

    def export_entries(self, entries: List[ReportEntry]) -> List[Dict]:
        """
        Serialise entries to a list of flat dicts for CSV/JSON export,
        ordered by department code then full name.
        """
        ordered = sorted(
            entries,
            key=lambda e: ((e.department_code or ""), e.full_name.lower()),
        )
        return [
            {
                "no": i,
                "staff_code": e.staff_code,
                "full_name": e.full_name,
                "sex": e.sex.value,
                "college_name": e.college_name,
                "department_code": e.department_code,
                "department_name": e.department_name,
                "specialization": e.specialization,
                "education_level": e.education_level,
                "academic_rank": e.academic_rank,
                "category": e.category.value,
                "current_status": e.current_status,
                "remark": e.remark,
            }
            for i, e in enumerate(ordered, start=1)
        ]


# ---------------------------------------------------------------------------
# NotificationService
# ---------------------------------------------------------------------------

class NotificationService:
    """
    Builds notification events and per-recipient inbox records.
    Delivery is the publisher's concern; nothing here can fail a transition.
    """

    _REPORT_TARGETS = {
        NotificationType.REPORT_SUBMITTED: UserRole.AVD,
        NotificationType.REPORT_RESUBMITTED: UserRole.AVD,
        NotificationType.REPORT_APPROVED: UserRole.DEPARTMENT_HEAD,
        NotificationType.REPORT_REJECTED: UserRole.DEPARTMENT_HEAD,
    }

    def report_event(
        self,
        notification_type: NotificationType,
        report: MonthlyReport,
        department: Optional[Department],
        performed_by: uuid.UUID,
        reason: Optional[str] = None,
    ) -> NotificationEvent:
        scope = f"{department.name} ({department.code})" if department else "College"
        verb = notification_type.value.replace("report_", "")
        message = f"The {scope} staff report for {report.period_label} was {verb}."
        if reason:
            message += f" Reason: {reason}"
        return NotificationEvent(
            type=notification_type,
            title=f"Report {verb}: {scope}, {report.period_label}",
            message=message,
            target_role=self._REPORT_TARGETS[notification_type],
            performed_by=performed_by,
            department_id=report.department_id,
            report_id=report.id,
            occurred_at=_utcnow(),
        )

    def staff_event(
        self,
        notification_type: NotificationType,
        staff: StaffRecord,
        department: Optional[Department],
        performed_by: UserAccount,
    ) -> NotificationEvent:
        action = "added to" if notification_type == NotificationType.STAFF_ADDED else "removed from"
        dept_name = department.name if department else "-"
        return NotificationEvent(
            type=notification_type,
            title=f"Staff {action.split()[0]}: {dept_name}",
            message=(
                f"{staff.full_name} was {action} the roster of {dept_name} "
                f"by {performed_by.full_name}."
            ),
            target_role=UserRole.AVD,
            performed_by=performed_by.id,
            department_id=staff.department_id,
            occurred_at=_utcnow(),
        )

    def staff_import_event(
        self, count: int, department: Department, performed_by: UserAccount
    ) -> NotificationEvent:
        """One summary event for a CSV import rather than one per row."""
        return NotificationEvent(
            type=NotificationType.STAFF_ADDED,
            title=f"Staff imported: {department.name}",
            message=(
                f"{count} staff member(s) were imported into the roster of "
                f"{department.name} by {performed_by.full_name}."
            ),
            target_role=UserRole.AVD,
            performed_by=performed_by.id,
            department_id=department.id,
            occurred_at=_utcnow(),
        )

    def fan_out(
        self,
        event: NotificationEvent,
        users: Iterable[UserAccount],
    ) -> List[NotificationRecord]:
        """
        One NotificationRecord per active user holding the target role.
        Department-head events only reach the head of the event's department.
        """
        records: List[NotificationRecord] = []
        for user in users:
            if not user.is_active or user.role != event.target_role:
                continue
            if (
                event.target_role == UserRole.DEPARTMENT_HEAD
                and user.department_id != event.department_id
            ):
                continue
            records.append(
                NotificationRecord(
                    recipient_id=user.id,
                    type=event.type,
                    title=event.title,
                    message=event.message,
                    target_role=event.target_role,
                    department_id=event.department_id,
                    performed_by=event.performed_by,
                    report_id=event.report_id,
                    is_read=False,
                    created_at=event.occurred_at,
                )
            )
        return records

    def inbox(
        self, user_id: uuid.UUID, records: Iterable[NotificationRecord]
    ) -> List[NotificationRecord]:
        """Return the user's notifications, newest first."""
        return sorted(
            [n for n in records if n.recipient_id == user_id],
            key=lambda n: n.created_at,
            reverse=True,
        )

    def check_owner(self, record: NotificationRecord, user: UserAccount) -> None:
        if record.recipient_id != user.id:
            raise PermissionDenied("Notifications can only be managed by their recipient.")
