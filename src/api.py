"""
api.py

REST API layer for the College Staff Reporting System.

Framework : FastAPI
Auth      : Bearer token — the token is the UUID of a registered user.
            get_current_user resolves it and rejects unknown or inactive
            users with 401.  Replace with a real identity provider (JWT,
            session lookup) before going to production; nothing else in
            this module needs to change.

Structure
---------
  Routers (all prefixed under /api/v1)
  ├── /users                         — registration, role, status, removal (system admin)
  ├── /departments                   — department registry, /statistics per department
  ├── /staff                         — staff roster CRUD & filters
  │   ├── /import                    — CSV bulk import (+ /import-template)
  │   └── /statistics                — live roster totals
  ├── /reports                       — monthly report generation & workflow
  │   ├── /rollup                    — college-level report from approved reports
  │   ├── /compare                   — differences between two reports
  │   ├── /submission-status         — per-department progress for a period
  │   ├── /{report_id}/submit|approve|reject
  │   ├── /{report_id}/entries       — snapshot rows (status / remark editable)
  │   ├── /{report_id}/summary       — headcount by category, status and sex
  │   └── /{report_id}/export        — flat rows for CSV / spreadsheet export
  └── /me                            — profile and notification inbox

Error handling
--------------
  NotFoundError           → 404
  AuthorizationError      → 403
  AlreadyExistsError      → 409
  InvalidTransitionError  → 409
  NoApprovedReportsError  → 422
  PersistenceError        → 503
  ApplicationError        → 422
  ValueError              → 422
  Missing / unknown token → 401

Response envelope
-----------------
  Success  : { "data": <payload> }
  Error    : { "detail": "<message>" }

Running
-------
  uvicorn api:app --reload
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import (
    APIRouter, Depends, FastAPI, File, HTTPException, Path, Query, UploadFile, status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi_mcp import FastApiMCP
from pydantic import BaseModel, EmailStr, Field

from config import settings
from infrastructure import InMemoryNotificationPublisher, InMemoryUnitOfWork
from application import (
    # Exceptions
    AlreadyExistsError,
    ApplicationError,
    AuthorizationError,
    InvalidTransitionError,
    NoApprovedReportsError,
    NotFoundError,
    PersistenceError,
    # Interfaces
    AbstractNotificationPublisher,
    AbstractUnitOfWork,
    # Use-case commands
    ApproveReportCommand,
    ChangeUserRoleCommand,
    CreateDepartmentCommand,
    CreateStaffCommand,
    DeleteReportCommand,
    DeleteStaffCommand,
    DeleteUserCommand,
    GenerateCollegeReportCommand,
    GenerateReportCommand,
    ImportStaffCommand,
    RegisterUserCommand,
    RejectReportCommand,
    SetUserActiveCommand,
    SubmitReportCommand,
    UpdateReportEntryCommand,
    UpdateStaffCommand,
    # Use-case classes
    ApproveReportUseCase,
    ChangeUserRoleUseCase,
    CompareReportsUseCase,
    CountUnreadNotificationsUseCase,
    CreateDepartmentUseCase,
    CreateStaffUseCase,
    DeleteNotificationUseCase,
    DeleteReportUseCase,
    DeleteStaffUseCase,
    DeleteUserUseCase,
    ExportReportEntriesUseCase,
    GenerateCollegeReportUseCase,
    GenerateReportUseCase,
    GetDepartmentUseCase,
    GetHeadcountSummaryUseCase,
    GetReportUseCase,
    GetStaffImportTemplateUseCase,
    GetStaffStatisticsUseCase,
    GetStaffUseCase,
    GetSubmissionStatusUseCase,
    GetUserUseCase,
    ImportStaffUseCase,
    ListDepartmentStatisticsUseCase,
    ListDepartmentsUseCase,
    ListMyNotificationsUseCase,
    ListReportEntriesUseCase,
    ListReportsUseCase,
    ListStaffUseCase,
    ListUsersUseCase,
    MarkAllNotificationsReadUseCase,
    MarkNotificationReadUseCase,
    RegisterUserUseCase,
    RejectReportUseCase,
    SetUserActiveUseCase,
    SubmitReportUseCase,
    UpdateReportEntryUseCase,
    UpdateStaffUseCase,
)
from model import ReportStatus, Sex, StaffCategory, UserAccount, UserRole

logger = logging.getLogger(__name__)

# Seeded administrator; its UUID is the bootstrap bearer token.
SYSTEM_ADMIN_ID = uuid.UUID(settings.SEED_ADMIN_ID)


# ---------------------------------------------------------------------------
# App bootstrap
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "REST API for monthly college staff reports: staff roster, report "
        "snapshots, the department head / AVD approval workflow, the "
        "college-level rollup, and role notifications."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def seed_system_admin(uow: AbstractUnitOfWork) -> None:
    """Ensure the bootstrap system administrator exists."""
    with uow:
        if uow.users.get(SYSTEM_ADMIN_ID) is None:
            uow.users.save(
                UserAccount(
                    id=SYSTEM_ADMIN_ID,
                    full_name=settings.SEED_ADMIN_NAME,
                    email=settings.SEED_ADMIN_EMAIL,
                    role=UserRole.SYSTEM_ADMIN,
                    is_active=True,
                )
            )
            logger.info("System administrator seeded: %s", SYSTEM_ADMIN_ID)
        uow.commit()


@app.on_event("startup")
def on_startup():
    seed_system_admin(InMemoryUnitOfWork())


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(AuthorizationError)
async def authorization_handler(request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(AlreadyExistsError)
async def already_exists_handler(request, exc: AlreadyExistsError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NoApprovedReportsError)
async def no_approved_reports_handler(request, exc: NoApprovedReportsError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request, exc: PersistenceError):
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_uow() -> AbstractUnitOfWork:
    """Returns the in-memory Unit of Work (no database required)."""
    return InMemoryUnitOfWork()


def get_publisher() -> AbstractNotificationPublisher:
    return InMemoryNotificationPublisher()


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> uuid.UUID:
    """Resolve the bearer token to the UUID of an active user."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user_id = uuid.UUID(credentials.credentials)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    with uow:
        user = uow.users.get(user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


# ---------------------------------------------------------------------------
# Envelope helper
# ---------------------------------------------------------------------------

def _ok(data: Any) -> Dict:
    """Wrap a DTO or list of DTOs in the standard success envelope."""
    if dataclasses.is_dataclass(data):
        return {"data": dataclasses.asdict(data)}
    if isinstance(data, list):
        return {
            "data": [
                dataclasses.asdict(item) if dataclasses.is_dataclass(item) else item
                for item in data
            ]
        }
    return {"data": data}


# ===========================================================================
# REQUEST BODY SCHEMAS  (Pydantic v2)
# ===========================================================================

class RegisterUserRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    role: UserRole
    department_id: Optional[uuid.UUID] = None


class ChangeUserRoleRequest(BaseModel):
    role: UserRole
    department_id: Optional[uuid.UUID] = Field(
        default=None, description="Required when the new role is department_head."
    )


class SetUserActiveRequest(BaseModel):
    is_active: bool


class CreateDepartmentRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)
    college_name: Optional[str] = Field(default=None, max_length=200)


class CreateStaffRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    sex: Sex
    category: StaffCategory
    education_level: str = Field(..., min_length=1, max_length=100)
    department_id: Optional[uuid.UUID] = None
    college_name: Optional[str] = None
    staff_code: Optional[str] = Field(default=None, max_length=50)
    specialization: Optional[str] = None
    academic_rank: Optional[str] = None
    current_status: str = Field(default="On Duty", min_length=1)
    remark: Optional[str] = None


class UpdateStaffRequest(BaseModel):
    """Only the fields present in the request body are changed."""
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    sex: Optional[Sex] = None
    category: Optional[StaffCategory] = None
    education_level: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    college_name: Optional[str] = None
    staff_code: Optional[str] = Field(default=None, max_length=50)
    specialization: Optional[str] = None
    academic_rank: Optional[str] = None
    current_status: Optional[str] = Field(default=None, min_length=1)
    remark: Optional[str] = None


class GenerateReportRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1000, le=9999)
    department_id: Optional[uuid.UUID] = Field(
        default=None, description="Omit for a college-scope report over all staff."
    )
    regenerate: bool = False


class GenerateCollegeReportRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1000, le=9999)
    regenerate: bool = False


class RejectReportRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class UpdateReportEntryRequest(BaseModel):
    current_status: Optional[str] = Field(default=None, min_length=1, max_length=100)
    remark: Optional[str] = None


# ===========================================================================
# ROUTERS
# ===========================================================================

api_v1 = APIRouter(prefix=settings.API_PREFIX)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

user_router = APIRouter(prefix="/users", tags=["Users"])


@user_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Register a user with a role",
)
def register_user(
    body: RegisterUserRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """
    Department heads must be given a department; the other roles act
    college-wide.  The returned `id` is the user's bearer token.
    """
    cmd = RegisterUserCommand(
        full_name=body.full_name,
        email=str(body.email),
        role=body.role,
        department_id=body.department_id,
        acting_user_id=current_user_id,
    )
    result = RegisterUserUseCase().execute(cmd, uow)
    return _ok(result)


@user_router.get("", summary="List all users")
def list_users(
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListUsersUseCase().execute(uow)
    return _ok(result)


@user_router.get("/{user_id}", summary="Get a user by ID")
def get_user(
    user_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetUserUseCase().execute(user_id, uow)
    return _ok(result)


@user_router.patch("/{user_id}/role", summary="Change a user's role and department")
def change_user_role(
    body: ChangeUserRoleRequest,
    user_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """System administrators only.  The last active administrator keeps the role."""
    cmd = ChangeUserRoleCommand(
        user_id=user_id,
        role=body.role,
        department_id=body.department_id,
        acting_user_id=current_user_id,
    )
    result = ChangeUserRoleUseCase().execute(cmd, uow)
    return _ok(result)


@user_router.patch("/{user_id}/status", summary="Activate or deactivate a user")
def set_user_active(
    body: SetUserActiveRequest,
    user_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """A deactivated user's bearer token is refused with 401."""
    cmd = SetUserActiveCommand(
        user_id=user_id, is_active=body.is_active, acting_user_id=current_user_id
    )
    result = SetUserActiveUseCase().execute(cmd, uow)
    return _ok(result)


@user_router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user and their notifications",
)
def delete_user(
    user_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    DeleteUserUseCase().execute(
        DeleteUserCommand(user_id=user_id, acting_user_id=current_user_id), uow
    )


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------

department_router = APIRouter(prefix="/departments", tags=["Departments"])


@department_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create a department",
)
def create_department(
    body: CreateDepartmentRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    cmd = CreateDepartmentCommand(
        code=body.code,
        name=body.name,
        college_name=body.college_name or settings.DEFAULT_COLLEGE_NAME,
        acting_user_id=current_user_id,
    )
    result = CreateDepartmentUseCase().execute(cmd, uow)
    return _ok(result)


@department_router.get("", summary="List departments ordered by code")
def list_departments(
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListDepartmentsUseCase().execute(uow)
    return _ok(result)


@department_router.get(
    "/statistics",
    summary="Per-department roster totals by status and academic rank",
)
def list_department_statistics(
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListDepartmentStatisticsUseCase().execute(uow)
    return _ok(result)


@department_router.get("/{department_id}", summary="Get a department by ID")
def get_department(
    department_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetDepartmentUseCase().execute(department_id, uow)
    return _ok(result)


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

staff_router = APIRouter(prefix="/staff", tags=["Staff"])


@staff_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Add a staff member to the roster",
)
def create_staff(
    body: CreateStaffRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
    publisher: AbstractNotificationPublisher = Depends(get_publisher),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """Notifies the AVD office."""
    cmd = CreateStaffCommand(
        acting_user_id=current_user_id,
        **body.model_dump(),
    )
    result = CreateStaffUseCase(publisher).execute(cmd, uow)
    return _ok(result)


@staff_router.get("", summary="List staff with optional filters")
def list_staff(
    category: Optional[StaffCategory] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive name substring"),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListStaffUseCase().execute(
        uow, category=category, department_id=department_id, search=search
    )
    return _ok(result)


@staff_router.post(
    "/import",
    status_code=status.HTTP_201_CREATED,
    summary="Import staff from a CSV file",
)
def import_staff(
    file: UploadFile = File(..., description="CSV with the columns of /staff/import-template"),
    department_id: Optional[uuid.UUID] = Query(
        None, description="Defaults to the caller's own department"
    ),
    uow: AbstractUnitOfWork = Depends(get_uow),
    publisher: AbstractNotificationPublisher = Depends(get_publisher),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """
    Category and education level are matched case-insensitively; rows without
    a full name are skipped.  Bad rows are listed in `errors` with their line
    number and do not stop the rest of the import.
    """
    try:
        csv_text = file.file.read().decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ApplicationError("The CSV file must be UTF-8 encoded.") from exc
    cmd = ImportStaffCommand(
        csv_text=csv_text,
        department_id=department_id,
        acting_user_id=current_user_id,
    )
    result = ImportStaffUseCase(publisher).execute(cmd, uow)
    return _ok(result)


@staff_router.get("/import-template", summary="Download the CSV import template")
def staff_import_template(
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    return Response(
        content=GetStaffImportTemplateUseCase().execute(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="staff_import_template.csv"'},
    )


@staff_router.get(
    "/statistics",
    summary="Roster totals by category, sex, education, rank and status",
)
def staff_statistics(
    department_id: Optional[uuid.UUID] = Query(None, description="Omit for the whole college"),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetStaffStatisticsUseCase().execute(uow, department_id=department_id)
    return _ok(result)


@staff_router.get("/{staff_id}", summary="Get a staff member by ID")
def get_staff(
    staff_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetStaffUseCase().execute(staff_id, uow)
    return _ok(result)


@staff_router.patch("/{staff_id}", summary="Update a staff member")
def update_staff(
    body: UpdateStaffRequest,
    staff_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """
    Changes the live roster only.  Reports generated earlier keep the
    values captured at generation time.
    """
    cmd = UpdateStaffCommand(
        staff_id=staff_id,
        changes=body.model_dump(exclude_unset=True),
        acting_user_id=current_user_id,
    )
    result = UpdateStaffUseCase().execute(cmd, uow)
    return _ok(result)


@staff_router.delete(
    "/{staff_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a staff member from the roster",
)
def delete_staff(
    staff_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    publisher: AbstractNotificationPublisher = Depends(get_publisher),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    cmd = DeleteStaffCommand(staff_id=staff_id, acting_user_id=current_user_id)
    DeleteStaffUseCase(publisher).execute(cmd, uow)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

report_router = APIRouter(prefix="/reports", tags=["Reports"])


@report_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Generate a monthly report snapshot",
)
def generate_report(
    body: GenerateReportRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """
    Copies the current roster of the department (all staff when
    `department_id` is omitted) into a new draft report.

    With `regenerate=true` an existing report for the same period and scope
    is replaced by a fresh snapshot at the next version.  A submitted report
    cannot be regenerated.
    """
    cmd = GenerateReportCommand(
        month=body.month,
        year=body.year,
        department_id=body.department_id,
        regenerate=body.regenerate,
        acting_user_id=current_user_id,
    )
    result = GenerateReportUseCase().execute(cmd, uow)
    return _ok(result)


@report_router.get("", summary="List reports visible to the current user")
def list_reports(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1000, le=9999),
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    scope: Optional[str] = Query(None, pattern="^(department|college)$"),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListReportsUseCase().execute(
        current_user_id,
        uow,
        month=month,
        year=year,
        status=status_filter,
        scope=scope,
    )
    return _ok(result)


@report_router.post(
    "/rollup",
    status_code=status.HTTP_201_CREATED,
    summary="Generate the college report from approved department reports",
)
def generate_college_report(
    body: GenerateCollegeReportRequest,
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    cmd = GenerateCollegeReportCommand(
        month=body.month,
        year=body.year,
        regenerate=body.regenerate,
        acting_user_id=current_user_id,
    )
    result = GenerateCollegeReportUseCase().execute(cmd, uow)
    return _ok(result)


@report_router.get("/compare", summary="Compare the entries of two reports")
def compare_reports(
    previous_id: uuid.UUID = Query(...),
    current_id: uuid.UUID = Query(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = CompareReportsUseCase().execute(previous_id, current_id, current_user_id, uow)
    return _ok(result)


@report_router.get(
    "/submission-status",
    summary="Per-department submission progress for a period",
)
def get_submission_status(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1000, le=9999),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetSubmissionStatusUseCase().execute(month, year, uow)
    return _ok(result)


@report_router.get("/{report_id}", summary="Get a report")
def get_report(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetReportUseCase().execute(report_id, current_user_id, uow)
    return _ok(result)


@report_router.delete(
    "/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a report and its entries",
)
def delete_report(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    cmd = DeleteReportCommand(report_id=report_id, acting_user_id=current_user_id)
    DeleteReportUseCase().execute(cmd, uow)


@report_router.post("/{report_id}/submit", summary="Submit or resubmit a report")
def submit_report(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    publisher: AbstractNotificationPublisher = Depends(get_publisher),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """Allowed from draft or rejected.  Notifies the AVD office."""
    cmd = SubmitReportCommand(report_id=report_id, acting_user_id=current_user_id)
    result = SubmitReportUseCase(publisher).execute(cmd, uow)
    return _ok(result)


@report_router.post("/{report_id}/approve", summary="Approve a submitted report")
def approve_report(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    publisher: AbstractNotificationPublisher = Depends(get_publisher),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    cmd = ApproveReportCommand(report_id=report_id, acting_user_id=current_user_id)
    result = ApproveReportUseCase(publisher).execute(cmd, uow)
    return _ok(result)


@report_router.post("/{report_id}/reject", summary="Reject a submitted report")
def reject_report(
    body: RejectReportRequest,
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    publisher: AbstractNotificationPublisher = Depends(get_publisher),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """The reason is shown to the department head in their notification."""
    cmd = RejectReportCommand(
        report_id=report_id,
        reason=body.reason,
        acting_user_id=current_user_id,
    )
    result = RejectReportUseCase(publisher).execute(cmd, uow)
    return _ok(result)


@report_router.get("/{report_id}/entries", summary="List the entries of a report")
def list_report_entries(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListReportEntriesUseCase().execute(report_id, current_user_id, uow)
    return _ok(result)


@report_router.patch(
    "/{report_id}/entries/{entry_id}",
    summary="Correct the status or remark of one entry",
)
def update_report_entry(
    body: UpdateReportEntryRequest,
    report_id: uuid.UUID = Path(...),
    entry_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    """Only while the report is draft or rejected."""
    cmd = UpdateReportEntryCommand(
        report_id=report_id,
        entry_id=entry_id,
        current_status=body.current_status,
        remark=body.remark,
        acting_user_id=current_user_id,
    )
    result = UpdateReportEntryUseCase().execute(cmd, uow)
    return _ok(result)


@report_router.get(
    "/{report_id}/summary",
    summary="Headcount by category, status and sex",
)
def get_report_summary(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetHeadcountSummaryUseCase().execute(report_id, current_user_id, uow)
    return _ok(result)


@report_router.get("/{report_id}/export", summary="Export report entries as flat rows")
def export_report(
    report_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ExportReportEntriesUseCase().execute(report_id, current_user_id, uow)
    return _ok(result)


# ---------------------------------------------------------------------------
# Current user: profile and notification inbox
# ---------------------------------------------------------------------------

me_router = APIRouter(prefix="/me", tags=["Me"])


@me_router.get("", summary="Get the authenticated user")
def get_me(
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = GetUserUseCase().execute(current_user_id, uow)
    return _ok(result)


@me_router.get("/notifications", summary="Get the notification inbox, newest first")
def get_my_notifications(
    unread_only: bool = Query(False),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = ListMyNotificationsUseCase().execute(current_user_id, uow, unread_only=unread_only)
    return _ok(result)


@me_router.get("/notifications/unread-count", summary="Count unread notifications")
def count_unread_notifications(
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    count = CountUnreadNotificationsUseCase().execute(current_user_id, uow)
    return _ok({"unread": count})


@me_router.post("/notifications/read-all", summary="Mark every notification as read")
def mark_all_notifications_read(
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    changed = MarkAllNotificationsReadUseCase().execute(current_user_id, uow)
    return _ok({"marked_read": changed})


@me_router.post("/notifications/{notification_id}/read", summary="Mark a notification as read")
def mark_notification_read(
    notification_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    result = MarkNotificationReadUseCase().execute(notification_id, current_user_id, uow)
    return _ok(result)


@me_router.delete(
    "/notifications/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
def delete_notification(
    notification_id: uuid.UUID = Path(...),
    uow: AbstractUnitOfWork = Depends(get_uow),
    current_user_id: uuid.UUID = Depends(get_current_user),
):
    DeleteNotificationUseCase().execute(notification_id, current_user_id, uow)


# ===========================================================================
# REGISTER ROUTERS
# ===========================================================================

api_v1.include_router(user_router)
api_v1.include_router(department_router)
api_v1.include_router(staff_router)
api_v1.include_router(report_router)
api_v1.include_router(me_router)

app.include_router(api_v1)


# ===========================================================================
# HEALTH CHECK
# ===========================================================================

@app.get("/health", tags=["Health"], summary="Service health check")
def health():
    return {"status": "ok", "version": settings.APP_VERSION}


# ---------------------------------------------------------------------------
# MCP Server: exposes all API routes as MCP tools
# Accessible at: http://localhost:8000/mcp (settings.MCP_PATH)
# ---------------------------------------------------------------------------
def mount_mcp(target: FastAPI, path: str) -> FastApiMCP:
    mcp = FastApiMCP(target)
    mcp.mount(mount_path=path)
    logger.info("MCP server mounted at %s", path)
    return mcp


if settings.MCP_ENABLED:
    mcp = mount_mcp(app, settings.MCP_PATH)


# ===========================================================================
# OPENAPI CUSTOMISATION: tag order and descriptions
# ===========================================================================

tags_metadata = [
    {
        "name": "Health",
        "description": "Liveness check.",
    },
    {
        "name": "Users",
        "description": (
            "Registered users and their roles.  Department heads are bound to one "
            "department; the AVD office, management and system administrators act "
            "college-wide.  System administrators change roles, deactivate and remove "
            "accounts."
        ),
    },
    {
        "name": "Departments",
        "description": "Academic departments.  Each department submits one report per month.",
    },
    {
        "name": "Staff",
        "description": (
            "The live staff roster, its CSV import and roster statistics.  Edits "
            "here never change reports that were already generated."
        ),
    },
    {
        "name": "Reports",
        "description": (
            "Monthly staff reports.  Each report is a snapshot of the roster taken at "
            "generation time and moves through draft → submitted → approved or "
            "rejected.  Rejected reports can be corrected and resubmitted.  Approved "
            "department reports are rolled up into the college report."
        ),
    },
    {
        "name": "Me",
        "description": "The authenticated user's profile and notification inbox.",
    },
]

app.openapi_tags = tags_metadata
