import asyncio
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from novadesk.core.exceptions import StorageError
from novadesk.core.logger import logger
from novadesk.models.db_models import BookingRecord

MAX_PAGE_SIZE = 200
# Largest value sqlite binds as INTEGER; beyond it no row can match
SQLITE_MAX_INT = 2 ** 63 - 1

SCHEMA = """
    CREATE TABLE IF NOT EXISTS reservas (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        last_name TEXT NOT NULL,
        booking_number TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
"""

SELECT_COLUMNS = "SELECT id, last_name, booking_number, created_at FROM reservas"


def utc_timestamp() -> str:
    """ISO 8601 UTC with milliseconds and a Z suffix (sortable as text)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clamp_page(page) -> int:
    return max(1, int(page))


def clamp_size(size) -> int:
    return max(1, min(MAX_PAGE_SIZE, int(size)))


class RecordStore(ABC):
    """
    Owns every pre-check-in record. Nothing else writes reservations.
    """

    @abstractmethod
    async def insert(self, last_name: str, booking_number: str) -> BookingRecord: ...

    @abstractmethod
    async def latest(self, limit: int = 5) -> List[BookingRecord]: ...

    @abstractmethod
    async def list(self, page: int = 1, size: int = 20) -> List[BookingRecord]: ...

    @abstractmethod
    async def count(self) -> int: ...

    @abstractmethod
    async def delete(self, record_id: int) -> int: ...

    def close(self) -> None:
        pass


class SqliteRecordStore(RecordStore):
    """
    Durable store on a single sqlite file.

    One connection is shared by all callers; a lock serialises every statement
    and the work runs in a worker thread so the event loop never blocks.
    """

    def __init__(self, path: str):
        self.path = path
        self._db: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        if self._db is None:
            if self.path != ":memory:":
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
            db = sqlite3.connect(self.path, check_same_thread=False)
            db.row_factory = sqlite3.Row
            if self.path != ":memory:":
                db.execute("PRAGMA journal_mode=WAL")
            db.executescript(SCHEMA)
            db.commit()
            self._db = db
            logger.info(f"✅ SQLite store ready at {self.path}")
        return self._db

    async def _run(self, operation: str, fn, *args):
        def locked():
            with self._lock:
                db = self._connect()
                try:
                    return fn(db, *args)
                except sqlite3.Error:
                    db.rollback()
                    raise

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            logger.error(f"❌ DB Error ({operation}): {e}")
            raise StorageError(f"{operation} failed") from e

    @staticmethod
    def _to_record(row: sqlite3.Row) -> BookingRecord:
        return BookingRecord(
            id=row["id"],
            last_name=row["last_name"],
            booking_number=row["booking_number"],
            created_at=row["created_at"],
        )

    async def insert(self, last_name: str, booking_number: str) -> BookingRecord:
        def op(db, last_name, booking_number):
            created_at = utc_timestamp()
            cursor = db.execute(
                "INSERT INTO reservas (last_name, booking_number, created_at) VALUES (?, ?, ?)",
                (last_name, booking_number, created_at)
            )
            db.commit()
            return BookingRecord(
                id=cursor.lastrowid,
                last_name=last_name,
                booking_number=booking_number,
                created_at=created_at,
            )

        record = await self._run("insert", op, last_name, booking_number)
        logger.info(f"📝 Reserva #{record.id} stored")
        return record

    async def latest(self, limit: int = 5) -> List[BookingRecord]:
        def op(db, limit):
            rows = db.execute(f"{SELECT_COLUMNS} ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
            return [self._to_record(r) for r in rows]

        return await self._run("latest", op, min(SQLITE_MAX_INT, max(0, int(limit))))

    async def list(self, page: int = 1, size: int = 20) -> List[BookingRecord]:
        limit = clamp_size(size)
        offset = (clamp_page(page) - 1) * limit
        if offset > SQLITE_MAX_INT:
            return []

        def op(db, limit, offset):
            rows = db.execute(
                f"{SELECT_COLUMNS} ORDER BY id DESC LIMIT ? OFFSET ?", (limit, offset)
            ).fetchall()
            return [self._to_record(r) for r in rows]

        return await self._run("list", op, limit, offset)

    async def count(self) -> int:
        def op(db):
            return db.execute("SELECT COUNT(*) AS total FROM reservas").fetchone()["total"]

        return await self._run("count", op)

    async def delete(self, record_id: int) -> int:
        record_id = int(record_id)
        if record_id > SQLITE_MAX_INT:
            return 0

        def op(db, record_id):
            cursor = db.execute("DELETE FROM reservas WHERE id = ?", (record_id,))
            db.commit()
            return cursor.rowcount

        deleted = await self._run("delete", op, record_id)
        if deleted:
            logger.info(f"🗑️ Reserva #{record_id} deleted from DB.")
        return deleted

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None


class MemoryRecordStore(RecordStore):
    """In-process store for tests and local development. Same contract, no disk."""

    def __init__(self):
        self._rows: List[BookingRecord] = []
        self._last_id = 0
        self._lock = threading.Lock()

    async def insert(self, last_name: str, booking_number: str) -> BookingRecord:
        with self._lock:
            self._last_id += 1
            record = BookingRecord(
                id=self._last_id,
                last_name=last_name,
                booking_number=booking_number,
                created_at=utc_timestamp(),
            )
            self._rows.append(record)
        return record

    def _newest_first(self) -> List[BookingRecord]:
        with self._lock:
            return sorted(self._rows, key=lambda r: r.id, reverse=True)

    async def latest(self, limit: int = 5) -> List[BookingRecord]:
        return self._newest_first()[:max(0, int(limit))]

    async def list(self, page: int = 1, size: int = 20) -> List[BookingRecord]:
        limit = clamp_size(size)
        offset = (clamp_page(page) - 1) * limit
        return self._newest_first()[offset:offset + limit]

    async def count(self) -> int:
        with self._lock:
            return len(self._rows)

    async def delete(self, record_id: int) -> int:
        with self._lock:
            before = len(self._rows)
            self._rows = [r for r in self._rows if r.id != record_id]
            return before - len(self._rows)


def create_record_store(settings) -> RecordStore:
    backend = settings.STORAGE_BACKEND.strip().lower()
    if backend == "memory":
        logger.warning("⚠️ Using in-memory record store, reservations will not survive a restart")
        return MemoryRecordStore()
    if backend == "sqlite":
        return SqliteRecordStore(settings.DATABASE_PATH)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
