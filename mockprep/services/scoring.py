from __future__ import annotations

from typing import List, Optional, Sequence

from mockprep.errors import ValidationError
from mockprep.models.assessment import QuestionResult, ScoreResult
from mockprep.models.quiz import Question


def score_attempt(
    questions: Sequence[Question], answers: Sequence[Optional[str]]
) -> ScoreResult:
    """
    Score one attempt.

    A question is correct when the answer equals its correct_answer exactly (no case
    folding, no trimming). Unanswered questions count as wrong. Pure: same inputs,
    same result.
    """
    if not questions:
        raise ValidationError("Cannot score an attempt with no questions")
    if len(answers) != len(questions):
        raise ValidationError(
            f"answers/questions length mismatch: {len(answers)} != {len(questions)}"
        )

    results: List[QuestionResult] = []
    for q, a in zip(questions, answers):
        results.append(
            QuestionResult(
                question=q.prompt,
                options=q.options,
                user_answer=a,
                answer=q.correct_answer,
                is_correct=(a is not None and a == q.correct_answer),
                explanation=q.explanation,
            )
        )

    correct = sum(1 for r in results if r.is_correct)
    score = 100.0 * correct / len(questions)
    return ScoreResult(questions=tuple(results), quiz_score=score)
