"""Unit tests for the service layer: pure rules, no repositories."""
import uuid

import pytest

from model import (
    Department,
    MonthlyReport,
    NotificationType,
    ReportEntry,
    ReportEvent,
    ReportStatus,
    Sex,
    StaffCategory,
    STAFF_IMPORT_COLUMNS,
    StaffRecord,
    UserAccount,
    UserRole,
)
from service import (
    DuplicateRecord,
    InvalidTransition,
    NoApprovedReports,
    NotificationService,
    PermissionDenied,
    ReportAnalysisService,
    ReportService,
    RosterStatisticsService,
    RollupService,
    StaffService,
    UserService,
)

reports = ReportService()
rollup = RollupService()
analysis = ReportAnalysisService()
notifications = NotificationService()

DEPT = Department(code="CSE", name="Computer Science", college_name="CoE")
OTHER = Department(code="EEE", name="Electrical", college_name="CoE")
ADMIN = UserAccount(full_name="Admin", email="a@x.io", role=UserRole.SYSTEM_ADMIN)
AVD = UserAccount(full_name="Avd", email="v@x.io", role=UserRole.AVD)
HEAD = UserAccount(full_name="Head", email="h@x.io", role=UserRole.DEPARTMENT_HEAD, department_id=DEPT.id)
VIEWER = UserAccount(full_name="Viewer", email="m@x.io", role=UserRole.MANAGEMENT)


def _report(status=ReportStatus.DRAFT, department=DEPT, month=3, year=2025):
    return MonthlyReport(
        month=month,
        year=year,
        department_id=department.id if department else None,
        status=status,
    )


def _entry(code, status="On Duty", sex=Sex.MALE, category=StaffCategory.LOCAL_INSTRUCTORS,
           department_code="CSE", name=None):
    return ReportEntry(
        staff_code=code,
        full_name=name or f"Person {code}",
        current_status=status,
        sex=sex,
        category=category,
        department_code=department_code,
    )


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

LEGAL = {
    (ReportStatus.DRAFT, ReportEvent.SUBMIT): ReportStatus.SUBMITTED,
    (ReportStatus.REJECTED, ReportEvent.SUBMIT): ReportStatus.SUBMITTED,
    (ReportStatus.SUBMITTED, ReportEvent.APPROVE): ReportStatus.APPROVED,
    (ReportStatus.SUBMITTED, ReportEvent.REJECT): ReportStatus.REJECTED,
}


@pytest.mark.parametrize("status", list(ReportStatus))
@pytest.mark.parametrize("event", list(ReportEvent))
def test_next_status_follows_transition_table(status, event):
    if (status, event) in LEGAL:
        assert reports.next_status(status, event) == LEGAL[(status, event)]
    else:
        with pytest.raises(InvalidTransition):
            reports.next_status(status, event)


def test_approve_draft_leaves_report_untouched():
    report = _report(ReportStatus.DRAFT)
    with pytest.raises(InvalidTransition):
        reports.approve(report, AVD)
    assert report.status == ReportStatus.DRAFT
    assert report.approved_at is None


def test_submit_stamps_actor_and_time():
    report = _report(ReportStatus.DRAFT)
    reports.submit(report, HEAD)
    assert report.status == ReportStatus.SUBMITTED
    assert report.submitted_by == HEAD.id
    assert report.submitted_at is not None


def test_department_head_cannot_submit_other_department():
    report = _report(ReportStatus.DRAFT, department=OTHER)
    with pytest.raises(PermissionDenied):
        reports.submit(report, HEAD)
    assert report.status == ReportStatus.DRAFT


def test_department_head_cannot_approve():
    with pytest.raises(PermissionDenied):
        reports.approve(_report(ReportStatus.SUBMITTED), HEAD)


@pytest.mark.parametrize("reason", ["", "   ", "\t\n", None])
def test_reject_requires_reason_before_any_change(reason):
    report = _report(ReportStatus.SUBMITTED)
    with pytest.raises(ValueError):
        reports.reject(report, reason, AVD)
    assert report.status == ReportStatus.SUBMITTED
    assert report.rejected_at is None
    assert report.rejection_reason is None


def test_reject_records_trimmed_reason():
    report = reports.reject(_report(ReportStatus.SUBMITTED), "  incomplete data ", AVD)
    assert report.status == ReportStatus.REJECTED
    assert report.rejection_reason == "incomplete data"
    assert report.rejected_by == AVD.id


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def test_resolve_version_without_existing_report():
    assert reports.resolve_version(None, regenerate=False) == 1
    assert reports.resolve_version(None, regenerate=True) == 1


def test_resolve_version_existing_without_regenerate():
    with pytest.raises(DuplicateRecord):
        reports.resolve_version(_report(), regenerate=False)


def test_resolve_version_refuses_submitted():
    with pytest.raises(InvalidTransition):
        reports.resolve_version(_report(ReportStatus.SUBMITTED), regenerate=True)


@pytest.mark.parametrize(
    "status", [ReportStatus.DRAFT, ReportStatus.REJECTED, ReportStatus.APPROVED]
)
def test_resolve_version_increments(status):
    existing = _report(status)
    existing.version = 3
    assert reports.resolve_version(existing, regenerate=True) == 4


@pytest.mark.parametrize("month,year", [(0, 2025), (13, 2025), (3, 999), (3, 10000)])
def test_validate_period_rejects_out_of_range(month, year):
    with pytest.raises(ValueError):
        reports.validate_period(month, year)


def test_snapshot_copies_only_department_staff():
    staff = [
        StaffRecord(full_name="Abebe", staff_code="S1", department_id=DEPT.id, current_status="Sick"),
        StaffRecord(full_name="Sara", staff_code="S2", department_id=DEPT.id),
        StaffRecord(full_name="Other", staff_code="S3", department_id=OTHER.id),
    ]
    report = _report()
    entries = reports.snapshot_entries(report, staff, {DEPT.id: DEPT, OTHER.id: OTHER})

    assert sorted(e.staff_code for e in entries) == ["S1", "S2"]
    sick = next(e for e in entries if e.staff_code == "S1")
    assert sick.report_id == report.id
    assert sick.current_status == "Sick"
    assert sick.department_code == "CSE"
    assert sick.department_name == "Computer Science"


def test_snapshot_is_detached_from_later_staff_edits():
    person = StaffRecord(full_name="Abebe", department_id=DEPT.id, current_status="On Duty")
    entries = reports.snapshot_entries(_report(), [person], {DEPT.id: DEPT})
    person.current_status = "On Study Leave"
    person.full_name = "Abebe K."
    assert entries[0].current_status == "On Duty"
    assert entries[0].full_name == "Abebe"


def test_snapshot_college_scope_takes_everyone():
    staff = [
        StaffRecord(full_name="A", department_id=DEPT.id),
        StaffRecord(full_name="B", department_id=OTHER.id),
        StaffRecord(full_name="C", department_id=None),
    ]
    entries = reports.snapshot_entries(_report(department=None), staff, {DEPT.id: DEPT, OTHER.id: OTHER})
    assert len(entries) == 3


def test_update_entry_only_in_editable_status():
    entry = _entry("S1")
    reports.update_entry(_report(ReportStatus.REJECTED), entry, HEAD, current_status="Sick", remark="since 3rd")
    assert entry.current_status == "Sick"
    assert entry.remark == "since 3rd"

    with pytest.raises(InvalidTransition):
        reports.update_entry(_report(ReportStatus.SUBMITTED), entry, HEAD, current_status="On Duty")
    assert entry.current_status == "Sick"


def test_department_head_delete_rules():
    reports.check_delete_access(_report(ReportStatus.DRAFT), HEAD)
    reports.check_delete_access(_report(ReportStatus.REJECTED), HEAD)
    with pytest.raises(PermissionDenied):
        reports.check_delete_access(_report(ReportStatus.APPROVED), HEAD)
    with pytest.raises(PermissionDenied):
        reports.check_delete_access(_report(ReportStatus.DRAFT, department=OTHER), HEAD)
    reports.check_delete_access(_report(ReportStatus.SUBMITTED), AVD)
    with pytest.raises(PermissionDenied):
        reports.check_delete_access(_report(), VIEWER)


def test_visible_reports_filters_and_orders():
    older = _report(month=2)
    newer = _report(month=3)
    foreign = _report(department=OTHER)
    college = _report(department=None)
    everything = [older, newer, foreign, college]

    assert reports.visible_reports(HEAD, everything) == [newer, older]
    assert reports.visible_reports(VIEWER, everything, scope="college") == [college]
    assert len(reports.visible_reports(VIEWER, everything, month=3)) == 3
    with pytest.raises(ValueError):
        reports.visible_reports(VIEWER, everything, scope="faculty")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_management_cannot_write_staff():
    with pytest.raises(PermissionDenied):
        StaffService().create_staff(
            full_name="X", sex=Sex.FEMALE, category=StaffCategory.ARA,
            education_level="BSc", department_id=DEPT.id, college_name="CoE",
            acting_user=VIEWER,
        )


def test_update_staff_rejects_unknown_and_blank_fields():
    svc = StaffService()
    person = StaffRecord(full_name="Abebe", department_id=DEPT.id)
    with pytest.raises(ValueError):
        svc.update_staff(person, {"id": uuid.uuid4()}, ADMIN)
    with pytest.raises(ValueError):
        svc.update_staff(person, {"full_name": "  "}, ADMIN)
    svc.update_staff(person, {"current_status": "On Study"}, HEAD)
    assert person.current_status == "On Study"


def test_department_head_needs_department():
    with pytest.raises(ValueError):
        UserService().create_user("Head", "h2@x.io", UserRole.DEPARTMENT_HEAD, None, [])


def test_duplicate_email_refused():
    with pytest.raises(DuplicateRecord):
        UserService().create_user("Other", "A@X.io", UserRole.AVD, None, [ADMIN])


# ---------------------------------------------------------------------------
# Rollup
# ---------------------------------------------------------------------------

def test_select_source_reports_needs_an_approved_department_report():
    candidates = [
        _report(ReportStatus.SUBMITTED),
        _report(ReportStatus.APPROVED, department=None),
        _report(ReportStatus.APPROVED, month=4),
    ]
    with pytest.raises(NoApprovedReports):
        rollup.select_source_reports(candidates, 3, 2025)


def test_copy_entries_is_a_plain_union():
    college = _report(department=None)
    source = [_entry("S1"), _entry("S1"), _entry("S2")]
    copies = rollup.copy_entries(college, source)
    assert len(copies) == 3
    assert all(c.report_id == college.id for c in copies)
    assert {c.id for c in copies}.isdisjoint({s.id for s in source})


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def test_headcount_summary_counts_by_category_status_and_sex():
    entries = [
        _entry("1", "On Duty", Sex.MALE),
        _entry("2", "On Duty", Sex.FEMALE),
        _entry("3", "Sick", Sex.FEMALE),
        _entry("4", "On Duty", Sex.MALE, category=StaffCategory.ARA),
        _entry("5", "Seconded", Sex.MALE, category=StaffCategory.ASTU_SPONSOR),
    ]
    summary = analysis.headcount_summary(entries)
    rows = {row["category"]: row for row in summary["rows"]}

    local = rows["Local Instructors"]
    assert local["by_status"]["On Duty"] == {"male": 1, "female": 1}
    assert local["by_status"]["Sick"] == {"male": 0, "female": 1}
    assert (local["male_total"], local["female_total"], local["total"]) == (1, 2, 3)

    sponsor = rows["ASTU Sponsor"]
    assert sponsor["total"] == 1
    assert all(v == {"male": 0, "female": 0} for v in sponsor["by_status"].values())

    totals = summary["totals"]
    assert totals["total"] == 5
    assert totals["male_total"] == 3
    assert totals["by_status"]["On Duty"] == {"male": 2, "female": 1}


def test_compare_classifies_changes():
    previous = [_entry("S1", "On Duty"), _entry("S2", "On Duty"), _entry("S3")]
    current = [_entry("S1", "On Duty"), _entry("S2", "Sick"), _entry("S4")]
    changes = {c["staff_code"]: c for c in analysis.compare(previous, current)}

    assert set(changes) == {"S2", "S3", "S4"}
    assert changes["S2"]["change_type"] == "status_changed"
    assert changes["S2"]["previous_status"] == "On Duty"
    assert changes["S2"]["current_status"] == "Sick"
    assert changes["S3"]["change_type"] == "removed"
    assert changes["S4"]["change_type"] == "added"


def test_compare_falls_back_to_staff_id():
    staff_id = uuid.uuid4()
    before = ReportEntry(staff_id=staff_id, full_name="No Code", current_status="On Duty")
    after = ReportEntry(staff_id=staff_id, full_name="No Code", current_status="On Study")
    changes = analysis.compare([before], [after])
    assert [c["change_type"] for c in changes] == ["status_changed"]


def test_submission_status_counts_departments():
    third = Department(code="MEC", name="Mechanical", college_name="CoE")
    report_list = [
        _report(ReportStatus.APPROVED, department=DEPT),
        _report(ReportStatus.DRAFT, department=OTHER),
        _report(ReportStatus.APPROVED, department=None),
    ]
    status = analysis.submission_status([DEPT, OTHER, third], report_list, 3, 2025)

    by_code = {row["department_code"]: row["status"] for row in status["departments"]}
    assert by_code == {"CSE": "approved", "EEE": "pending", "MEC": "pending"}
    assert status["counts"] == {"approved": 1, "submitted": 0, "rejected": 0, "pending": 2}
    assert status["total"] == 3
    assert status["progress_pct"] == pytest.approx(33.33)


def test_submission_status_without_departments():
    status = analysis.submission_status([], [], 3, 2025)
    assert status["total"] == 0
    assert status["progress_pct"] == 0.0


def test_export_entries_numbered_and_ordered():
    rows = analysis.export_entries([
        _entry("2", department_code="EEE", name="Zed"),
        _entry("1", department_code="CSE", name="Yonas"),
        _entry("3", department_code="CSE", name="almaz"),
    ])
    assert [(r["no"], r["full_name"]) for r in rows] == [(1, "almaz"), (2, "Yonas"), (3, "Zed")]
    assert rows[0]["category"] == "Local Instructors"
    assert rows[0]["sex"] == "M"


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

def test_rejection_event_targets_department_head_with_reason():
    report = _report(ReportStatus.REJECTED)
    event = notifications.report_event(
        NotificationType.REPORT_REJECTED, report, DEPT, performed_by=AVD.id, reason="incomplete data"
    )
    assert event.target_role == UserRole.DEPARTMENT_HEAD
    assert event.department_id == DEPT.id
    assert "incomplete data" in event.message
    assert "March 2025" in event.title


def test_fan_out_reaches_only_matching_recipients():
    other_head = UserAccount(role=UserRole.DEPARTMENT_HEAD, department_id=OTHER.id)
    inactive_avd = UserAccount(role=UserRole.AVD, is_active=False)
    users = [ADMIN, AVD, HEAD, VIEWER, other_head, inactive_avd]

    submitted = notifications.report_event(
        NotificationType.REPORT_SUBMITTED, _report(ReportStatus.SUBMITTED), DEPT, HEAD.id
    )
    assert [r.recipient_id for r in notifications.fan_out(submitted, users)] == [AVD.id]

    approved = notifications.report_event(
        NotificationType.REPORT_APPROVED, _report(ReportStatus.APPROVED), DEPT, AVD.id
    )
    assert [r.recipient_id for r in notifications.fan_out(approved, users)] == [HEAD.id]


# ---------------------------------------------------------------------------
# Roster statistics and CSV import
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("rank,expected", [
    ("Lecturer", "Lecturer"),
    ("Senior Lecturer", None),
    ("S. Lecturer", None),
    ("Assistant Professor", "Asst. Prof."),
    ("asst. prof.", "Asst. Prof."),
    ("Associate Prof.", "Asso. Prof."),
    ("Prof.", "Professor"),
    ("Professor Emeritus", None),
    (None, None),
])
def test_normalise_rank(rank, expected):
    assert RosterStatisticsService.normalise_rank(rank) == expected


def test_import_template_header_and_example_row():
    rows = StaffService().import_template().splitlines()
    assert rows[0] == ",".join(STAFF_IMPORT_COLUMNS)
    assert rows[1].startswith("STF001,John Doe,M,")


def test_import_staff_requires_rows_and_write_access():
    svc = StaffService()
    with pytest.raises(ValueError, match="no data rows"):
        svc.import_staff("full_name,sex\n", DEPT, ADMIN)
    head_other = UserAccount(role=UserRole.DEPARTMENT_HEAD, department_id=OTHER.id)
    with pytest.raises(PermissionDenied):
        svc.import_staff("full_name\nAbebe\n", DEPT, head_other)


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------

def test_last_active_admin_is_protected():
    admin = UserAccount(full_name="Admin", email="a@x.io", role=UserRole.SYSTEM_ADMIN)
    users = [admin, AVD]
    svc = UserService()
    with pytest.raises(ValueError, match="last active"):
        svc.change_role(admin, UserRole.AVD, None, users, admin)
    with pytest.raises(ValueError, match="own account"):
        svc.set_active(admin, False, users, admin)

    second = UserAccount(full_name="Second", email="s@x.io", role=UserRole.SYSTEM_ADMIN)
    demoted = svc.change_role(admin, UserRole.MANAGEMENT, DEPT.id, users + [second], second)
    assert demoted.role == UserRole.MANAGEMENT
    assert demoted.department_id is None


def test_only_admins_manage_users():
    with pytest.raises(PermissionDenied):
        UserService().set_active(ADMIN, False, [ADMIN, AVD], AVD)
