from datetime import datetime
from itertools import permutations

from conftest import make_record
from mockprep.models.assessment import PerformanceSummary
from mockprep.services.performance import (
    history_newest_first,
    latest_record,
    score_series,
    summarize,
)

D1 = datetime(2026, 3, 1, 10, 0)
D2 = datetime(2026, 3, 2, 10, 0)
D3 = datetime(2026, 3, 3, 10, 0)


def test_empty_collection():
    summary = summarize([])

    assert summary == PerformanceSummary()
    assert summary.average_score == 0.0
    assert summary.total_questions == 0
    assert summary.latest_score is None
    assert summary.series == ()


def test_three_records():
    records = [make_record(80, D1), make_record(60, D2), make_record(100, D3)]

    summary = summarize(records)

    assert summary.average_score == 80.0
    assert summary.latest_score == 100.0
    assert summary.total_questions == 12
    assert [s for _, s in summary.series] == [80.0, 60.0, 100.0]


def test_average_is_rounded_to_one_decimal():
    records = [make_record(100, D1), make_record(0, D2), make_record(0, D3)]

    assert summarize(records).average_score == 33.3


def test_series_is_chronological_for_any_input_order():
    records = [make_record(80, D1, id=1), make_record(60, D2, id=2), make_record(100, D3, id=3)]

    for perm in permutations(records):
        summary = summarize(list(perm))
        assert [s for _, s in summary.series] == [80.0, 60.0, 100.0]
        assert summary.latest_score == 100.0


def test_series_labels_use_short_month_and_day():
    series = score_series([make_record(75, datetime(2026, 1, 5, 8, 30))])

    assert series == [("Jan 05", 75.0)]


def test_total_questions_sums_every_record():
    records = [make_record(50, D1, n_questions=10), make_record(70, D2, n_questions=3)]

    assert summarize(records).total_questions == 13


def test_timestamp_tie_keeps_input_order():
    first = make_record(40, D1, id=1)
    second = make_record(90, D1, id=2)

    assert latest_record([first, second]).id == 2
    assert latest_record([second, first]).id == 1


def test_input_is_not_mutated():
    records = [make_record(60, D2), make_record(80, D1)]
    before = list(records)

    summarize(records)

    assert records == before


def test_history_is_newest_first():
    records = [make_record(60, D2, id=2), make_record(100, D3, id=3), make_record(80, D1, id=1)]

    assert [r.id for r in history_newest_first(records)] == [3, 2, 1]


def test_summary_as_dict():
    summary = summarize([make_record(66.666, datetime(2026, 2, 14, 12, 0))])

    data = summary.as_dict()

    assert data["latestScore"] == 66.7
    assert data["totalQuestions"] == 4
    assert data["series"] == [{"date": "Feb 14", "score": 66.666}]
    assert PerformanceSummary().as_dict()["latestScore"] is None
