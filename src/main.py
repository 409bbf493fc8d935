"""
main.py

Entry point for the College Staff Reporting API.

Configures logging, wires the in-memory infrastructure into the FastAPI app
and starts uvicorn.

Usage
-----
    # Option 1: run directly
    python main.py

    # Option 2: run via uvicorn CLI (recommended for development)
    uvicorn main:app --reload --port 8000

Once running, open your browser at:
    http://localhost:8000/docs      ← Swagger UI  (try every endpoint interactively)
    http://localhost:8000/redoc     ← ReDoc
    http://localhost:8000/health    ← liveness check

Quick-start walkthrough (use Swagger UI or curl)
-------------------------------------------------
All calls carry `Authorization: Bearer <user-id>`.  The seeded system
administrator's id is SEED_ADMIN_ID (default 00000000-0000-0000-0000-000000000001).

1.  POST  /api/v1/departments                  — create a department
2.  POST  /api/v1/users                        — register a department head (with
                                                 department_id) and an AVD user
3.  POST  /api/v1/staff                        — add staff to the roster
4.  POST  /api/v1/reports                      — generate the monthly snapshot
                                                 (as the department head)
5.  POST  /api/v1/reports/{id}/submit          — submit it; the AVD is notified
6.  POST  /api/v1/reports/{id}/approve         — approve it (as the AVD user)
7.  POST  /api/v1/reports/rollup               — build the college report
8.  GET   /api/v1/reports/{id}/summary         — headcount by category / status / sex
9.  GET   /api/v1/me/notifications             — inbox of the calling user
"""

import uvicorn

from api import app, get_publisher, get_uow
from config import settings
from infrastructure import InMemoryNotificationPublisher, InMemoryUnitOfWork
from logging_config import setup_logging

setup_logging()

# ---------------------------------------------------------------------------
# Wire the concrete Unit of Work and publisher into the FastAPI dependency
# system.  To swap databases, replace these with your SQL implementations.
# ---------------------------------------------------------------------------

app.dependency_overrides[get_uow] = lambda: InMemoryUnitOfWork()
app.dependency_overrides[get_publisher] = lambda: InMemoryNotificationPublisher()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.SERVER_RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )
