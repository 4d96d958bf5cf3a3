import json
from base64 import b64encode
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from itsdangerous import TimestampSigner

from conftest import FakeAdvisor, FakeGenerator, FakeStorage
from mockprep.errors import GenerationError
from mockprep.services.record_builder import AssessmentRecordBuilder
from mockprep.web.core.deps import QuizSessionRegistry
from mockprep.web.main import app

API = "/api/interview"
PROFILE = {"industry": "Software Engineering", "skills": "Python, SQL"}


def _session_cookie(data):
    # same encoding as starlette SessionMiddleware, signed with the test secret
    return TimestampSigner("test-secret").sign(b64encode(json.dumps(data).encode("utf-8"))).decode("utf-8")


@pytest.fixture
def make_client(monkeypatch, sqlite_store, four_questions):
    def _make(*, generator=None, storage=None, advisor=None):
        registry = QuizSessionRegistry(
            generator=generator or FakeGenerator(four_questions),
            builder=AssessmentRecordBuilder(storage or sqlite_store),
            advisor=advisor or FakeAdvisor(),
        )
        monkeypatch.setattr(app.state, "quiz_sessions", registry)
        monkeypatch.setattr(app.state, "store", sqlite_store)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


def _play(client, answers):
    for choice in answers:
        r = client.post(f"{API}/quiz/answer", json={"choice": choice})
        assert r.status_code == 200, r.text
        r = client.post(f"{API}/quiz/advance")
        assert r.status_code == 200, r.text
    return r


def test_initial_state_is_idle(client):
    r = client.get(f"{API}/quiz")

    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["state"]["phase"] == "idle"
    assert body["state"]["question"] is None


def test_full_attempt(client):
    r = client.post(f"{API}/quiz/start", json=PROFILE)
    assert r.status_code == 200
    state = r.json()["state"]
    assert state["phase"] == "in_progress"
    assert state["total"] == 4
    assert state["question"]["prompt"] == "Question 1?"

    client.post(f"{API}/quiz/answer", json={"choice": "B"})
    r = client.post(f"{API}/quiz/reveal")
    assert r.status_code == 200
    assert r.json()["explanation"] == "Because A (q1)."
    client.post(f"{API}/quiz/advance")

    r = _play(client, ["A", "A", "A"])
    assert r.json()["state"]["phase"] == "completed"
    assert r.json()["state"]["score"] == 75.0

    r = client.post(f"{API}/quiz/finish")
    assert r.status_code == 200
    record = r.json()["record"]
    assert record["quizScore"] == 75.0
    assert record["improvementTip"] == "Review the basics."
    assert record["category"] == "Technical"
    assert r.json()["state"]["phase"] == "finished"

    r = client.get(f"{API}/assessments")
    assert r.json()["total"] == 1
    item = r.json()["items"][0]
    assert item["id"] == record["id"]
    assert item["displayDate"]
    assert item["questions"][0]["userAnswer"] == "B"

    r = client.get(f"{API}/assessments/{record['id']}")
    assert r.status_code == 200
    assert r.json()["quizScore"] == 75.0

    r = client.get(f"{API}/performance")
    assert r.json() == {
        "averageScore": 75.0,
        "totalQuestions": 4,
        "latestScore": 75.0,
        "series": [{"date": datetime.fromisoformat(record["createdAt"]).strftime("%b %d"), "score": 75.0}],
    }

    r = client.post(f"{API}/quiz/restart")
    assert r.json()["state"]["phase"] == "idle"


def test_start_failure_is_502(make_client):
    client = make_client(generator=FakeGenerator(error=GenerationError("model offline")))

    r = client.post(f"{API}/quiz/start", json=PROFILE)

    assert r.status_code == 502
    body = r.json()
    assert body["ok"] is False
    assert body["error"] == "generation_failed"
    assert body["state"]["phase"] == "idle"
    assert body["state"]["error"] == "model offline"


def test_start_without_profile_is_422(client):
    r = client.post(f"{API}/quiz/start")

    assert r.status_code == 422
    assert r.json()["error"] == "bad_request"


def test_start_accepts_a_skill_list(make_client, four_questions):
    gen = FakeGenerator(four_questions)
    client = make_client(generator=gen)

    r = client.post(f"{API}/quiz/start", json={"industry": "Data Science", "skills": ["pandas", "  "]})

    assert r.status_code == 200
    assert gen.calls[0].industry == "Data Science"
    assert gen.calls[0].skills == ("pandas",)


def test_invalid_choice_is_409(client):
    client.post(f"{API}/quiz/start", json=PROFILE)

    r = client.post(f"{API}/quiz/answer", json={"choice": "Z"})

    assert r.status_code == 409
    assert r.json()["error"] == "invalid_input"


def test_non_string_choice_is_422(client):
    client.post(f"{API}/quiz/start", json=PROFILE)

    r = client.post(f"{API}/quiz/answer", json={"choice": 3})

    assert r.status_code == 422


def test_advance_without_answer_is_409(client):
    client.post(f"{API}/quiz/start", json=PROFILE)

    r = client.post(f"{API}/quiz/advance")

    assert r.status_code == 409
    assert r.json()["state"]["index"] == 0


def test_out_of_order_intents_are_409(client):
    r = client.post(f"{API}/quiz/finish")
    assert r.status_code == 409
    assert r.json()["error"] == "invalid_transition"

    client.post(f"{API}/quiz/start", json=PROFILE)
    r = client.post(f"{API}/quiz/restart")
    assert r.status_code == 409


def test_save_failure_is_503_and_retry_succeeds(make_client):
    storage = FakeStorage(fail_times=1)
    client = make_client(storage=storage)
    client.post(f"{API}/quiz/start", json=PROFILE)
    _play(client, ["A", "B", "A", "A"])

    r = client.post(f"{API}/quiz/finish")
    assert r.status_code == 503
    assert r.json()["error"] == "save_failed"
    assert r.json()["state"]["phase"] == "completed"

    r = client.post(f"{API}/quiz/finish")
    assert r.status_code == 200
    assert r.json()["record"]["quizScore"] == 75.0
    assert storage.attempts[0] is storage.attempts[1]


def test_history_is_newest_first_and_scoped(make_client):
    client = make_client()
    for answers in (["A", "B", "B", "B"], ["A", "A", "A", "A"]):
        client.post(f"{API}/quiz/start", json=PROFILE)
        _play(client, answers)
        client.post(f"{API}/quiz/finish")
        client.post(f"{API}/quiz/restart")

    items = client.get(f"{API}/assessments").json()["items"]
    assert [i["quizScore"] for i in items] == [100.0, 25.0]

    other = TestClient(app)
    assert other.get(f"{API}/assessments").json() == {"items": [], "total": 0}
    assert other.get(f"{API}/assessments/{items[0]['id']}").status_code == 404
    assert other.get(f"{API}/performance").json()["latestScore"] is None


def test_security_headers(client):
    r = client.get(f"{API}/quiz")

    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["Cache-Control"] == "no-store"


def test_each_browser_gets_its_own_attempt(client):
    client.post(f"{API}/quiz/start", json=PROFILE)

    other = TestClient(app)
    r = other.get(f"{API}/quiz")

    assert r.json()["state"]["phase"] == "idle"
    assert client.get(f"{API}/quiz").json()["state"]["phase"] == "in_progress"


def test_start_mid_attempt_begins_a_new_one(client):
    client.post(f"{API}/quiz/start", json=PROFILE)
    _play(client, ["A", "B"])

    r = client.post(f"{API}/quiz/start", json=PROFILE)

    assert r.status_code == 200
    state = r.json()["state"]
    assert state["phase"] == "in_progress"
    assert state["index"] == 0
    assert state["question"]["selected"] is None


def test_start_is_not_rate_limited_under_test(client):
    for _ in range(12):
        r = client.post(f"{API}/quiz/start", json=PROFILE)
        assert r.status_code == 200, r.text


def test_signed_in_user_and_stored_profile(make_client, four_questions):
    gen = FakeGenerator(four_questions)
    make_client(generator=gen)
    cookie = _session_cookie({"user": {"id": "42"}, "profile": {"industry": "Data Science", "skills": ["pandas"]}})
    laptop = TestClient(app, cookies={"session": cookie})
    phone = TestClient(app, cookies={"session": cookie})

    r = laptop.post(f"{API}/quiz/start", headers={"origin": "http://testserver"})

    assert r.status_code == 200, r.text
    assert gen.calls[0].industry == "Data Science"
    assert gen.calls[0].skills == ("pandas",)
    assert phone.get(f"{API}/quiz").json()["state"]["phase"] == "in_progress"

    r = laptop.post(f"{API}/quiz/answer", json={"choice": "A"}, headers={"origin": "http://evil.example"})
    assert r.status_code == 403
    assert r.json()["error"] == "csrf_blocked"
