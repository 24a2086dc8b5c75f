"""SQLite database management for command timing history."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from shellprompt.storage.models import TimingRecord

logger = logging.getLogger(__name__)

_db: aiosqlite.Connection | None = None


async def init_db(db_path: str) -> None:
    """Initialize database and create tables."""
    global _db
    resolved = Path(db_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(resolved))
    _db.row_factory = aiosqlite.Row
    await _db.execute("PRAGMA journal_mode = WAL")

    await _db.execute("""
        CREATE TABLE IF NOT EXISTS timings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            command TEXT NOT NULL,
            elapsed_seconds REAL NOT NULL,
            exit_status INTEGER DEFAULT 0,
            cwd TEXT DEFAULT '',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    await _db.execute("CREATE INDEX IF NOT EXISTS idx_timings_created_at ON timings(created_at)")
    await _db.commit()
    logger.info("Database initialized: %s", resolved)


async def get_db() -> aiosqlite.Connection:
    """Get the database connection."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database closed")


async def save_timing(
    command: str,
    elapsed_seconds: float,
    exit_status: int,
    cwd: str = "",
) -> None:
    """Save a reported command duration to history."""
    try:
        db = await get_db()
        await db.execute(
            """INSERT INTO timings (command, elapsed_seconds, exit_status, cwd)
               VALUES (?, ?, ?, ?)""",
            (command, elapsed_seconds, exit_status, cwd),
        )
        await db.commit()
    except Exception:
        logger.exception("Failed to save timing history")


def _record(row: aiosqlite.Row) -> TimingRecord:
    return TimingRecord(
        id=row["id"],
        command=row["command"],
        elapsed_seconds=row["elapsed_seconds"],
        exit_status=row["exit_status"],
        cwd=row["cwd"],
        created_at=str(row["created_at"]),
    )


async def get_recent_timings(limit: int = 10) -> list[TimingRecord]:
    """Get recent timings, newest first."""
    db = await get_db()
    cursor = await db.execute(
        "SELECT id, command, elapsed_seconds, exit_status, cwd, created_at FROM timings ORDER BY id DESC LIMIT ?",
        (limit,),
    )
    rows = await cursor.fetchall()
    return [_record(row) for row in rows]


async def get_slowest_timings(limit: int = 10) -> list[TimingRecord]:
    """Get the longest recorded timings, slowest first."""
    db = await get_db()
    cursor = await db.execute(
        """SELECT id, command, elapsed_seconds, exit_status, cwd, created_at FROM timings
           ORDER BY elapsed_seconds DESC, id DESC LIMIT ?""",
        (limit,),
    )
    rows = await cursor.fetchall()
    return [_record(row) for row in rows]


async def record_timing(
    db_path: str,
    command: str,
    elapsed_seconds: float,
    exit_status: int,
    cwd: str = "",
) -> None:
    """Open the database, store one timing and close it again."""
    try:
        await init_db(db_path)
    except Exception:
        logger.exception("Failed to open timing history")
        return
    try:
        await save_timing(command, elapsed_seconds, exit_status, cwd)
    finally:
        await close_db()
