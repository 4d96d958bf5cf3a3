from .scoring import score_attempt
from .performance import summarize
from .quiz_session import Phase, QuizSession
from .record_builder import AssessmentRecordBuilder

__all__ = [
    "score_attempt",
    "summarize",
    "Phase",
    "QuizSession",
    "AssessmentRecordBuilder",
]
