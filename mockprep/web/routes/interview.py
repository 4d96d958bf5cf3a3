import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from mockprep.errors import BusyError, EngineError, GenerationError, SaveError, ValidationError
from mockprep.models.quiz import InterviewProfile
from mockprep.services.performance import HISTORY_DATE_FMT, history_newest_first, summarize
from mockprep.services.quiz_session import QuizSession
from mockprep.web.core.deps import user_key
from mockprep.web.core.ratelimit import limiter

log = logging.getLogger("mockprep")

router = APIRouter(prefix="/api/interview", tags=["interview"])

_STATUS = (
    (GenerationError, 502),
    (SaveError, 503),
    (BusyError, 409),
    (ValidationError, 409),
)


def _session(request: Request) -> QuizSession:
    return request.app.state.quiz_sessions.get(user_key(request))


def _ok(session: QuizSession, **extra: Any) -> JSONResponse:
    return JSONResponse({"ok": True, **extra, "state": session.snapshot()})


def _fail(session: QuizSession, exc: EngineError) -> JSONResponse:
    status = next((code for cls, code in _STATUS if isinstance(exc, cls)), 500)
    log.info("Interview request rejected | %s (%d): %s", exc.code, status, exc)
    return JSONResponse(
        {
            "ok": False,
            "error": exc.code,
            "message": str(exc),
            "state": session.snapshot(),
        },
        status_code=status,
    )


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": "bad_request", "message": message}, status_code=422)


def _profile_from(payload: Dict[str, Any]) -> InterviewProfile:
    skills = payload.get("skills") or []
    if isinstance(skills, str):
        skills = skills.split(",")
    elif not isinstance(skills, (list, tuple)):
        raise ValueError("'skills' must be a list or a comma-separated string")
    return InterviewProfile(
        industry=str(payload.get("industry") or ""),
        skills=tuple(str(s) for s in skills),
    )


def _history_item(record) -> Dict[str, Any]:
    item = record.as_dict()
    item["displayDate"] = record.created_at.strftime(HISTORY_DATE_FMT)
    return item


# -----------------------------
# Quiz attempt
# -----------------------------
@router.get("/quiz")
@limiter.limit("120/minute")
async def quiz_state(request: Request):
    return _ok(_session(request))


@router.post("/quiz/start")
@limiter.limit("10/minute")
async def quiz_start(request: Request, payload: Dict[str, Any] = Body(default={})):
    session = _session(request)
    # without a body, fall back to the profile onboarding stored in the session
    try:
        profile = _profile_from(payload or request.session.get("profile") or {})
    except ValueError as e:
        return _bad_request(str(e))

    try:
        await session.start(profile, user_id=user_key(request))
    except EngineError as e:
        return _fail(session, e)
    return _ok(session)


@router.post("/quiz/answer")
@limiter.limit("120/minute")
async def quiz_answer(request: Request, payload: Dict[str, Any] = Body(...)):
    session = _session(request)
    choice = payload.get("choice")
    if not isinstance(choice, str):
        return _bad_request("'choice' must be a string")

    try:
        session.answer(choice)
    except EngineError as e:
        return _fail(session, e)
    return _ok(session)


@router.post("/quiz/reveal")
@limiter.limit("120/minute")
async def quiz_reveal(request: Request):
    session = _session(request)
    try:
        explanation = session.reveal()
    except EngineError as e:
        return _fail(session, e)
    return _ok(session, explanation=explanation)


@router.post("/quiz/advance")
@limiter.limit("120/minute")
async def quiz_advance(request: Request):
    session = _session(request)
    try:
        session.advance()
    except EngineError as e:
        return _fail(session, e)
    return _ok(session)


@router.post("/quiz/finish")
@limiter.limit("20/minute")
async def quiz_finish(request: Request):
    session = _session(request)
    try:
        record = await session.finish()
    except EngineError as e:
        return _fail(session, e)
    return _ok(session, record=record.as_dict())


@router.post("/quiz/restart")
@limiter.limit("60/minute")
async def quiz_restart(request: Request):
    session = _session(request)
    try:
        session.restart()
    except EngineError as e:
        return _fail(session, e)
    return _ok(session)


# -----------------------------
# History / dashboard
# -----------------------------
@router.get("/assessments")
@limiter.limit("60/minute")
async def assessments(request: Request):
    store = request.app.state.store
    records = await store.list_by_user(user_key(request))
    items = [_history_item(r) for r in history_newest_first(records)]
    return JSONResponse({"items": items, "total": len(items)})


@router.get("/assessments/{assessment_id}")
@limiter.limit("60/minute")
def assessment_detail(request: Request, assessment_id: int):
    store = request.app.state.store
    record = store.get_assessment(user_id=user_key(request), assessment_id=assessment_id)
    if record is None:
        return JSONResponse({"ok": False, "error": "not_found"}, status_code=404)
    return JSONResponse(_history_item(record))


@router.get("/performance")
@limiter.limit("60/minute")
async def performance(request: Request):
    store = request.app.state.store
    records = await store.list_by_user(user_key(request))
    return JSONResponse(summarize(records).as_dict())
