import asyncio
import os
import tempfile
from datetime import datetime, timedelta
from itertools import count
from typing import List, Optional, Sequence

# must be set before config / mockprep.web are imported
_TMP = tempfile.mkdtemp(prefix="mockprep-tests-")
os.environ["DB_PATH"] = os.path.join(_TMP, "web.sqlite3")
os.environ["MOCKPREP_RATELIMIT"] = "0"
os.environ["WEB_SESSION_SECRET"] = "test-secret"
os.environ["LLM_PROVIDER"] = "local"

import pytest

from mockprep.db import AssessmentStore
from mockprep.errors import SaveError
from mockprep.models.assessment import AssessmentDraft, AssessmentRecord, QuestionResult
from mockprep.models.quiz import InterviewProfile, Question
from mockprep.services.quiz_session import QuizSession
from mockprep.services.record_builder import AssessmentRecordBuilder


def run(coro):
    return asyncio.run(coro)


def make_question(n: int, correct: str = "A", options=("A", "B", "C", "D")) -> Question:
    return Question(
        prompt=f"Question {n}?",
        options=tuple(options),
        correct_answer=correct,
        explanation=f"Because {correct} (q{n}).",
    )


def make_record(score: float, created_at: datetime, *, n_questions: int = 4, id: int = 0) -> AssessmentRecord:
    questions = tuple(
        QuestionResult(
            question=f"Q{i}",
            options=("A", "B"),
            user_answer="A",
            answer="A",
            is_correct=True,
        )
        for i in range(n_questions)
    )
    return AssessmentRecord(
        id=id,
        created_at=created_at,
        user_id="u1",
        quiz_score=score,
        questions=questions,
    )


class FakeGenerator:
    def __init__(self, questions: Optional[Sequence[Question]] = None, *, error: Optional[Exception] = None):
        self.questions = list(questions or [])
        self.error = error
        self.calls: List[InterviewProfile] = []

    async def generate(self, profile):
        self.calls.append(profile)
        if self.error is not None:
            raise self.error
        return list(self.questions)


class FakeAdvisor:
    def __init__(self, tip: Optional[str] = "Review the basics.", *, error: Optional[Exception] = None):
        self.tip = tip
        self.error = error
        self.calls = 0

    async def suggest_improvement(self, questions, answers):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.tip


class FakeStorage:
    """In-memory storage; fails the first `fail_times` saves."""

    def __init__(self, *, fail_times: int = 0, error: Optional[Exception] = None):
        self.fail_times = fail_times
        self.error = error or SaveError("storage down")
        self.saved: List[AssessmentDraft] = []
        self.attempts: List[AssessmentDraft] = []
        self.records: List[AssessmentRecord] = []
        self._ids = count(1)
        self._clock = datetime(2026, 1, 1, 9, 0, 0)

    async def save(self, draft):
        self.attempts.append(draft)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise self.error
        self.saved.append(draft)
        self._clock += timedelta(minutes=1)
        record = AssessmentRecord.from_draft(draft, id=next(self._ids), created_at=self._clock)
        self.records.append(record)
        return record

    async def list_by_user(self, user_id):
        return [r for r in self.records if r.user_id == user_id]


@pytest.fixture
def profile():
    return InterviewProfile(industry="Software Engineering", skills=("Python", "SQL"))


@pytest.fixture
def four_questions():
    return [make_question(i) for i in range(1, 5)]


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def advisor():
    return FakeAdvisor()


@pytest.fixture
def session_factory(four_questions, storage, advisor):
    def _make(*, questions=None, generator=None, storage_=None, advisor_=advisor):
        gen = generator or FakeGenerator(questions if questions is not None else four_questions)
        builder = AssessmentRecordBuilder(storage_ or storage)
        return QuizSession(generator=gen, builder=builder, advisor=advisor_)

    return _make


@pytest.fixture
def sqlite_store(tmp_path):
    return AssessmentStore(str(tmp_path / "assessments.sqlite3"))

