import asyncio
import json
import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from mockprep.errors import SaveError
from mockprep.models.assessment import AssessmentDraft, AssessmentRecord, QuestionResult

log = logging.getLogger("mockprep")


class AssessmentStore:
    """
    SQLite storage for assessment records.

    Storage assigns id and created_at; records are never updated after insert.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    # -------------------------
    # Connection
    # -------------------------
    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path)
        con.row_factory = sqlite3.Row
        return con

    def _ensure_columns(self, con: sqlite3.Connection, table: str, cols: dict) -> None:
        cur = con.execute(f"PRAGMA table_info({table})")
        existing = {row[1] for row in cur.fetchall()}
        for col, ddl in cols.items():
            if col not in existing:
                con.execute(f"ALTER TABLE {table} ADD COLUMN {col} {ddl}")

    def _init_db(self) -> None:
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)

        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS assessments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,

                    user_id TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT 'Technical',

                    quiz_score REAL NOT NULL CHECK(quiz_score >= 0 AND quiz_score <= 100),
                    questions_json TEXT NOT NULL,
                    improvement_tip TEXT,

                    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
                )
                """
            )

            # migrations (safe on existing DBs)
            self._ensure_columns(
                con,
                "assessments",
                {
                    "category": "TEXT NOT NULL DEFAULT 'Technical'",
                    "improvement_tip": "TEXT",
                },
            )

            con.execute("CREATE INDEX IF NOT EXISTS idx_assessments_user_time ON assessments(user_id, created_at)")
            con.commit()

    # -------------------------
    # Row mapping
    # -------------------------
    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> AssessmentRecord:
        questions = tuple(
            QuestionResult.from_dict(q) for q in json.loads(row["questions_json"] or "[]")
        )
        return AssessmentRecord(
            id=int(row["id"]),
            # SQLite 'now' is UTC
            created_at=datetime.fromisoformat(row["created_at"]).replace(tzinfo=timezone.utc),
            user_id=row["user_id"],
            quiz_score=float(row["quiz_score"]),
            questions=questions,
            improvement_tip=row["improvement_tip"],
            category=row["category"],
        )

    # -------------------------
    # Sync API
    # -------------------------
    def insert_assessment(self, draft: AssessmentDraft) -> AssessmentRecord:
        questions_json = json.dumps([q.as_dict() for q in draft.questions], ensure_ascii=False)
        try:
            with self._connect() as con:
                cur = con.execute(
                    """
                    INSERT INTO assessments (user_id, category, quiz_score, questions_json, improvement_tip)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        str(draft.user_id),
                        draft.category,
                        float(draft.quiz_score),
                        questions_json,
                        draft.improvement_tip,
                    ),
                )
                row = con.execute(
                    "SELECT * FROM assessments WHERE id = ?", (cur.lastrowid,)
                ).fetchone()
                con.commit()
        except sqlite3.Error as e:
            raise SaveError(f"Could not store assessment: {e}", draft=draft) from e

        log.debug("Stored assessment id=%s user=%s", row["id"], row["user_id"])
        return self._row_to_record(row)

    def assessments_for_user(self, user_id: str) -> List[AssessmentRecord]:
        with self._connect() as con:
            rows = con.execute(
                "SELECT * FROM assessments WHERE user_id = ?", (str(user_id),)
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def get_assessment(self, *, user_id: str, assessment_id: int) -> Optional[AssessmentRecord]:
        with self._connect() as con:
            row = con.execute(
                "SELECT * FROM assessments WHERE id = ? AND user_id = ?",
                (int(assessment_id), str(user_id)),
            ).fetchone()
        return self._row_to_record(row) if row else None

    # -------------------------
    # Storage collaborator (async)
    # -------------------------
    async def save(self, draft: AssessmentDraft) -> AssessmentRecord:
        return await asyncio.to_thread(self.insert_assessment, draft)

    async def list_by_user(self, user_id: str) -> List[AssessmentRecord]:
        return await asyncio.to_thread(self.assessments_for_user, user_id)
