"""
Radius source and audit sink

The pipeline reads the blur radius from a RadiusSource and appends one JobRecord
per finished job to an AuditSink. How the radius gets updated is up to the caller.
"""

import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .blur import coerce_radius
from .errors import AuditError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobRecord:
    path: str
    radius: int
    elapsed_ms: int


class RadiusSource(Protocol):
    def get_current_radius(self) -> int: ...


class AuditSink(Protocol):
    def append(self, path: str, radius: int, elapsed_ms: int) -> None: ...


class RadiusCell:
    """
    Thread-safe holder for the current blur radius.

    Readers always see a complete value. Subscribers are called with the new
    radius after every update, outside the lock.
    """

    def __init__(self, radius: int = 3):
        self._lock = threading.Lock()
        self._radius = coerce_radius(radius)
        self._subscribers: list[Callable[[int], None]] = []

    def get_current_radius(self) -> int:
        with self._lock:
            return self._radius

    def set_radius(self, radius: int) -> int:
        value = coerce_radius(radius)
        with self._lock:
            self._radius = value
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(value)
        return value

    def subscribe(self, callback: Callable[[int], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)


class AuditLog:
    """Append-only SQLite table of finished jobs."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def initialize(self) -> None:
        """
        Create the database directory and the transformations table.

        Raises:
            AuditError: directory or table could not be created
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    "CREATE TABLE IF NOT EXISTS transformations ("
                    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                    "path TEXT NOT NULL, "
                    "radius INTEGER NOT NULL, "
                    "elapsed_ms INTEGER NOT NULL, "
                    "created_at REAL NOT NULL)"
                )
        except (OSError, sqlite3.Error) as exc:
            raise AuditError(f"cannot initialise audit database {self.db_path}: {exc}") from exc
        logger.info("Audit database ready: %s", self.db_path.resolve())

    def append(self, path: str, radius: int, elapsed_ms: int) -> None:
        """
        Insert one job row.

        Raises:
            AuditError: the row could not be written
        """
        with self._lock:
            try:
                with closing(self._connect()) as conn, conn:
                    conn.execute(
                        "INSERT INTO transformations (path, radius, elapsed_ms, created_at) "
                        "VALUES (?, ?, ?, ?)",
                        (path, radius, elapsed_ms, time.time()),
                    )
            except sqlite3.Error as exc:
                raise AuditError(f"cannot record job for {path}: {exc}") from exc
        logger.debug("Recorded job: %s, radius %d, %d ms", path, radius, elapsed_ms)

    def records(self) -> list[JobRecord]:
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    "SELECT path, radius, elapsed_ms FROM transformations ORDER BY id"
                ).fetchall()
        except sqlite3.Error as exc:
            raise AuditError(f"cannot read audit database {self.db_path}: {exc}") from exc
        return [JobRecord(path, radius, elapsed_ms) for path, radius, elapsed_ms in rows]
