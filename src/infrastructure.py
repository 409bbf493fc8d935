"""
infrastructure.py

In-memory implementation of all repository interfaces, the Unit of Work and
the notification publisher.

Everything is stored in plain Python dicts keyed by UUID.  Suitable for
local development, demos, and integration testing without needing a real
database.

Transactions
------------
Units of work are serialised by a re-entrant lock held on the database for
the duration of the `with` block.  Repositories hand out copies of stored
records and store copies on save, so a record only changes through
save / delete.  The first write to a key inside a unit of work journals the
key's previous value; rollback replays the journal, commit discards it.
A read-only unit of work journals nothing.

The report repository refuses a second report for the same
(month, year, department_id) key, and deleting a report removes its entries.

To swap in a real database (e.g. SQLAlchemy + PostgreSQL) later, implement
the same Abstract* interfaces from application.py and override get_uow() in
api.py:

    app.dependency_overrides[get_uow] = lambda: SqlAlchemyUnitOfWork(session)

Nothing in service.py, application.py, or api.py needs to change.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from typing import Callable, List, Optional

from application import (
    AbstractDepartmentRepository,
    AbstractNotificationPublisher,
    AbstractNotificationRepository,
    AbstractReportEntryRepository,
    AbstractReportRepository,
    AbstractStaffRepository,
    AbstractUnitOfWork,
    AbstractUserRepository,
    AlreadyExistsError,
)
from model import MonthlyReport, NotificationEvent
from service import NotificationService

logger = logging.getLogger(__name__)

_ABSENT = object()


# ---------------------------------------------------------------------------
# Generic in-memory store
# ---------------------------------------------------------------------------

class _Store(dict):
    """
    A plain dict with typed get/save/delete helpers.

    `journal` is set while a unit of work is open: key -> value before the
    first write in that unit of work (_ABSENT when the key was new).
    """

    def __init__(self):
        super().__init__()
        self.journal: Optional[dict] = None

    def fetch(self, key: uuid.UUID):
        obj = self.get(key)
        return copy.copy(obj) if obj is not None else None

    def put(self, obj) -> None:
        self._record(obj.id)
        self[obj.id] = copy.copy(obj)

    def remove(self, key: uuid.UUID) -> None:
        if key in self:
            self._record(key)
            del self[key]

    def all(self) -> list:
        return [copy.copy(obj) for obj in self.values()]

    def where(self, predicate: Callable) -> list:
        return [copy.copy(obj) for obj in self.values() if predicate(obj)]

    def _record(self, key: uuid.UUID) -> None:
        if self.journal is not None and key not in self.journal:
            self.journal[key] = self.get(key, _ABSENT)

    def undo(self) -> None:
        for key, previous in self.journal.items():
            if previous is _ABSENT:
                self.pop(key, None)
            else:
                self[key] = previous


# ---------------------------------------------------------------------------
# Shared in-memory database (module-level singleton)
# Persists for the lifetime of the process: restarting uvicorn resets it.
# ---------------------------------------------------------------------------

class InMemoryDatabase:
    STORES = ("users", "departments", "staff", "reports", "entries", "notifications")

    def __init__(self):
        self.lock = threading.RLock()
        self.users:         _Store = _Store()
        self.departments:   _Store = _Store()
        self.staff:         _Store = _Store()
        self.reports:       _Store = _Store()
        self.entries:       _Store = _Store()
        self.notifications: _Store = _Store()

    def _stores(self) -> List[_Store]:
        return [getattr(self, name) for name in self.STORES]

    def open_journals(self) -> List[Optional[dict]]:
        """Start fresh journals; returns the enclosing ones (None at top level)."""
        outer = [store.journal for store in self._stores()]
        for store in self._stores():
            store.journal = {}
        return outer

    def keep_journals(self, outer: List[Optional[dict]]) -> None:
        """Accept the writes so far.  A nested block hands its journal to the outer one."""
        for store, enclosing in zip(self._stores(), outer):
            if enclosing is not None:
                for key, previous in store.journal.items():
                    enclosing.setdefault(key, previous)
            store.journal = {}

    def undo_journals(self) -> None:
        for store in self._stores():
            store.undo()
            store.journal = {}

    def close_journals(self, outer: List[Optional[dict]]) -> None:
        for store, enclosing in zip(self._stores(), outer):
            store.journal = enclosing


# Module-level singleton: shared across all requests
_db = InMemoryDatabase()


# ---------------------------------------------------------------------------
# Repository implementations
# ---------------------------------------------------------------------------

class InMemoryUserRepository(AbstractUserRepository):
    def __init__(self, store: _Store): self._s = store
    def get(self, user_id):           return self._s.fetch(user_id)
    def get_by_email(self, email):
        matches = self._s.where(lambda u: u.email.lower() == email.lower())
        return matches[0] if matches else None
    def list_all(self):               return self._s.all()
    def save(self, user):             self._s.put(user)
    def delete(self, user_id):        self._s.remove(user_id)


class InMemoryDepartmentRepository(AbstractDepartmentRepository):
    def __init__(self, store: _Store): self._s = store
    def get(self, department_id):     return self._s.fetch(department_id)
    def list_all(self):               return self._s.all()
    def save(self, department):       self._s.put(department)


class InMemoryStaffRepository(AbstractStaffRepository):
    def __init__(self, store: _Store): self._s = store
    def get(self, staff_id):          return self._s.fetch(staff_id)
    def list_all(self):               return self._s.all()
    def save(self, staff):            self._s.put(staff)
    def delete(self, staff_id):       self._s.remove(staff_id)


class InMemoryReportRepository(AbstractReportRepository):
    """Holds the entry store as well so that delete() can cascade."""

    def __init__(self, store: _Store, entries: _Store):
        self._s = store
        self._entries = entries

    def get(self, report_id):         return self._s.fetch(report_id)

    def find_by_key(self, month, year, department_id) -> Optional[MonthlyReport]:
        matches = self._s.where(
            lambda r: r.month == month and r.year == year and r.department_id == department_id
        )
        return matches[0] if matches else None

    def list_all(self):               return self._s.all()

    def list_for_period(self, month, year):
        return self._s.where(lambda r: r.month == month and r.year == year)

    def save(self, report) -> None:
        clash = self.find_by_key(report.month, report.year, report.department_id)
        if clash is not None and clash.id != report.id:
            raise AlreadyExistsError(
                f"A report for {report.period_label} already exists for this scope."
            )
        self._s.put(report)

    def delete(self, report_id) -> None:
        for entry_id in [k for k, e in self._entries.items() if e.report_id == report_id]:
            self._entries.remove(entry_id)
        self._s.remove(report_id)


class InMemoryReportEntryRepository(AbstractReportEntryRepository):
    def __init__(self, store: _Store): self._s = store
    def get(self, entry_id):          return self._s.fetch(entry_id)
    def list_for_report(self, report_id):
        return self._s.where(lambda e: e.report_id == report_id)
    def save(self, entry):            self._s.put(entry)
    def save_all(self, entries):
        for entry in entries:
            self._s.put(entry)


class InMemoryNotificationRepository(AbstractNotificationRepository):
    def __init__(self, store: _Store): self._s = store
    def get(self, notification_id):   return self._s.fetch(notification_id)
    def list_for_recipient(self, user_id):
        return self._s.where(lambda n: n.recipient_id == user_id)
    def save(self, record):           self._s.put(record)
    def delete(self, notification_id): self._s.remove(notification_id)


# ---------------------------------------------------------------------------
# Unit of Work
# ---------------------------------------------------------------------------

class InMemoryUnitOfWork(AbstractUnitOfWork):
    """
    Wraps all in-memory repositories in a serialised, all-or-nothing block.
    Nested use of the same database on one thread is allowed (the lock is
    re-entrant); the inner block then has its own rollback point, and its
    committed writes are still undone if the outer block rolls back.
    """

    def __init__(self, db: InMemoryDatabase = _db):
        self._db = db
        self._outer: Optional[List[Optional[dict]]] = None
        self.users         = InMemoryUserRepository(db.users)
        self.departments   = InMemoryDepartmentRepository(db.departments)
        self.staff         = InMemoryStaffRepository(db.staff)
        self.reports       = InMemoryReportRepository(db.reports, db.entries)
        self.entries       = InMemoryReportEntryRepository(db.entries)
        self.notifications = InMemoryNotificationRepository(db.notifications)

    def __enter__(self) -> "InMemoryUnitOfWork":
        self._db.lock.acquire()
        self._outer = self._db.open_journals()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._db.close_journals(self._outer)
            self._outer = None
            self._db.lock.release()

    def commit(self) -> None:
        if self._outer is not None:
            self._db.keep_journals(self._outer)

    def rollback(self) -> None:
        if self._outer is not None:
            self._db.undo_journals()
            logger.debug("Unit of work rolled back")


# ---------------------------------------------------------------------------
# Notification publisher
# ---------------------------------------------------------------------------

class InMemoryNotificationPublisher(AbstractNotificationPublisher):
    """
    Fans an event out to one inbox record per recipient and stores them.
    Runs in its own unit of work, after the transition has committed.
    """

    def __init__(self, db: InMemoryDatabase = _db):
        self._db = db
        self._svc = NotificationService()

    def publish(self, event: NotificationEvent) -> None:
        with InMemoryUnitOfWork(self._db) as uow:
            records = self._svc.fan_out(event, uow.users.list_all())
            for record in records:
                uow.notifications.save(record)
            uow.commit()
        logger.info(
            "Published %s to %d %s recipient(s)",
            event.type.value, len(records), event.target_role.value,
        )
