from __future__ import annotations

from typing import Iterable, List

from mockprep.models.assessment import AssessmentRecord, PerformanceSummary

SERIES_DATE_FMT = "%b %d"
HISTORY_DATE_FMT = "%B %d, %Y %H:%M"


def sort_chronological(records: Iterable[AssessmentRecord]) -> List[AssessmentRecord]:
    # stable: records sharing a created_at keep their input order
    return sorted(records, key=lambda r: r.created_at)


def average_score(records: Iterable[AssessmentRecord]) -> float:
    scores = [float(r.quiz_score) for r in records]
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 1)


def total_questions(records: Iterable[AssessmentRecord]) -> int:
    return sum(len(r.questions) for r in records)


def latest_record(records: Iterable[AssessmentRecord]) -> AssessmentRecord | None:
    ordered = sort_chronological(records)
    return ordered[-1] if ordered else None


def score_series(records: Iterable[AssessmentRecord]) -> List[tuple[str, float]]:
    return [
        (r.created_at.strftime(SERIES_DATE_FMT), float(r.quiz_score))
        for r in sort_chronological(records)
    ]


def summarize(records: Iterable[AssessmentRecord]) -> PerformanceSummary:
    """
    Recompute the dashboard summary from a snapshot of records.

    Input order does not matter. Nothing is cached between calls and the input is
    never mutated, so concurrent callers can share the same collection.
    """
    snapshot = list(records or [])
    if not snapshot:
        return PerformanceSummary()

    latest = latest_record(snapshot)
    return PerformanceSummary(
        average_score=average_score(snapshot),
        total_questions=total_questions(snapshot),
        latest_score=float(latest.quiz_score) if latest else None,
        series=tuple(score_series(snapshot)),
    )


def history_newest_first(records: Iterable[AssessmentRecord]) -> List[AssessmentRecord]:
    return list(reversed(sort_chronological(records)))
