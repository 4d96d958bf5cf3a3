from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from mockprep.errors import GenerationError

MIN_OPTIONS = 2


@dataclass(frozen=True)
class Question:
    prompt: str
    options: Tuple[str, ...]
    correct_answer: str
    explanation: str = ""

    def __post_init__(self):
        # accept any sequence but keep it immutable
        object.__setattr__(self, "options", tuple(self.options))

        if not (self.prompt or "").strip():
            raise ValueError("Question prompt must not be empty")
        if len(self.options) < MIN_OPTIONS:
            raise ValueError(f"Question must have at least {MIN_OPTIONS} options")
        if len(set(self.options)) != len(self.options):
            raise ValueError("Question options must be distinct")
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")

    def is_option(self, choice: str) -> bool:
        return choice in self.options

    def as_dict(self) -> Dict[str, Any]:
        return {
            "question": self.prompt,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class InterviewProfile:
    industry: str
    skills: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "industry", " ".join((self.industry or "").split()))
        object.__setattr__(
            self,
            "skills",
            tuple(s.strip() for s in (self.skills or ()) if s and s.strip()),
        )
        if not self.industry:
            raise ValueError("InterviewProfile.industry must not be empty")

    def describe(self) -> str:
        if self.skills:
            return f"{self.industry} professional with expertise in {', '.join(self.skills)}"
        return f"{self.industry} professional"


QuestionSet = Tuple[Question, ...]


def validate_question_set(questions: Iterable[Question]) -> QuestionSet:
    """
    Freeze a generator result into a QuestionSet.

    Raises GenerationError if the set is empty or holds anything that is not a Question.
    """
    if questions is None:
        raise GenerationError("Question generator returned nothing")

    out: List[Question] = []
    for i, q in enumerate(questions):
        if not isinstance(q, Question):
            raise GenerationError(f"Question generator returned an invalid item at index {i}")
        out.append(q)

    if not out:
        raise GenerationError("Question generator returned an empty question set")
    return tuple(out)
