from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

DEFAULT_CATEGORY = "Technical"


@dataclass(frozen=True)
class QuestionResult:
    question: str
    options: Tuple[str, ...]
    user_answer: Optional[str]
    answer: str
    is_correct: bool
    explanation: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "userAnswer": self.user_answer,
            "answer": self.answer,
            "isCorrect": self.is_correct,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionResult":
        return cls(
            question=str(data.get("question", "")),
            options=tuple(str(o) for o in (data.get("options") or [])),
            user_answer=data.get("userAnswer"),
            answer=str(data.get("answer", "")),
            is_correct=bool(data.get("isCorrect", False)),
            explanation=str(data.get("explanation", "") or ""),
        )


@dataclass(frozen=True)
class ScoreResult:
    questions: Tuple[QuestionResult, ...]
    quiz_score: float

    @property
    def correct_count(self) -> int:
        return sum(1 for q in self.questions if q.is_correct)


@dataclass(frozen=True)
class AssessmentDraft:
    """Scored attempt that storage has not confirmed yet. No id, no timestamp."""

    user_id: str
    quiz_score: float
    questions: Tuple[QuestionResult, ...]
    improvement_tip: Optional[str] = None
    category: str = DEFAULT_CATEGORY

    def as_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "category": self.category,
            "quizScore": self.quiz_score,
            "questions": [q.as_dict() for q in self.questions],
            "improvementTip": self.improvement_tip,
        }


@dataclass(frozen=True)
class AssessmentRecord:
    id: Any
    created_at: datetime
    user_id: str
    quiz_score: float
    questions: Tuple[QuestionResult, ...]
    improvement_tip: Optional[str] = None
    category: str = DEFAULT_CATEGORY

    @classmethod
    def from_draft(cls, draft: AssessmentDraft, *, id: Any, created_at: datetime) -> "AssessmentRecord":
        return cls(
            id=id,
            created_at=created_at,
            user_id=draft.user_id,
            quiz_score=draft.quiz_score,
            questions=draft.questions,
            improvement_tip=draft.improvement_tip,
            category=draft.category,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "userId": self.user_id,
            "category": self.category,
            "quizScore": self.quiz_score,
            "questions": [q.as_dict() for q in self.questions],
            "improvementTip": self.improvement_tip,
        }


@dataclass(frozen=True)
class PerformanceSummary:
    average_score: float = 0.0
    total_questions: int = 0
    latest_score: Optional[float] = None
    # (date label, score), oldest first
    series: Tuple[Tuple[str, float], ...] = field(default_factory=tuple)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "averageScore": self.average_score,
            "totalQuestions": self.total_questions,
            "latestScore": None if self.latest_score is None else round(self.latest_score, 1),
            "series": [{"date": d, "score": s} for d, s in self.series],
        }
