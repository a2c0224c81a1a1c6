from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .models import AnswerRecord

SCHEMA_VERSION = 1

logger = logging.getLogger(__name__)


class AnswerSink(Protocol):
    """Append-only destination for answers. Raises on failure."""

    def record(self, answer: AnswerRecord, user_id: str) -> None:
        ...


@dataclass(frozen=True, slots=True)
class ProgressRow:
    id: int
    user_id: str
    question_id: str
    question_type: str
    answer: str
    is_correct: bool | None
    time_spent_seconds: int | None
    created_at_utc: str


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_progress (
                id INTEGER PRIMARY KEY,
                user_id TEXT NOT NULL,
                question_id TEXT NOT NULL,
                question_type TEXT NOT NULL,
                answer TEXT NOT NULL,
                is_correct INTEGER,
                time_spent_seconds INTEGER,
                created_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_user_progress_user ON user_progress(user_id, id);"
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def _answer_text(answer: int | str) -> str:
    # Free text is stored as-is; option indices as JSON.
    return answer if isinstance(answer, str) else json.dumps(answer)


class SqliteProgressSink:
    """Writes each answer as one ``user_progress`` row.

    The schema is prepared on the first write (so an unused sink never creates
    the file); later writes open a plain connection each, which lets the sink
    run on any worker thread.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        with self._schema_lock:
            if not self._schema_ready:
                open_db(self._db_path).close()
                self._schema_ready = True
        return sqlite3.connect(self._db_path)

    def record(self, answer: AnswerRecord, user_id: str) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO user_progress(
                        user_id, question_id, question_type, answer,
                        is_correct, time_spent_seconds, created_at_utc
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(user_id),
                        str(answer.question_id),
                        str(answer.kind.value),
                        _answer_text(answer.answer),
                        None if answer.is_correct is None else int(answer.is_correct),
                        int(answer.elapsed_s),
                        _utc_now_iso(),
                    ),
                )
        finally:
            conn.close()
        logger.debug("stored answer for %s (%s)", answer.question_id, answer.kind.value)


def fetch_progress(db_path: Path, user_id: str) -> list[ProgressRow]:
    """Return a user's stored answers, oldest first."""

    conn = open_db(Path(db_path))
    try:
        rows = conn.execute(
            """
            SELECT id, user_id, question_id, question_type, answer,
                   is_correct, time_spent_seconds, created_at_utc
            FROM user_progress
            WHERE user_id = ?
            ORDER BY id
            """,
            (str(user_id),),
        ).fetchall()
    finally:
        conn.close()

    return [
        ProgressRow(
            id=int(r[0]),
            user_id=str(r[1]),
            question_id=str(r[2]),
            question_type=str(r[3]),
            answer=str(r[4]),
            is_correct=None if r[5] is None else bool(r[5]),
            time_spent_seconds=None if r[6] is None else int(r[6]),
            created_at_utc=str(r[7]),
        )
        for r in rows
    ]
