from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.status import HTTP_403_FORBIDDEN, HTTP_429_TOO_MANY_REQUESTS

from mockprep.web.core.deps import IS_PROD, SESSION_SECRET, quiz_sessions, store
from mockprep.web.core.ratelimit import limiter
from mockprep.web.core.security import RESPONSE_HEADERS, needs_origin_check, same_origin
from mockprep.web.routes.interview import router as interview_router

log = logging.getLogger("mockprep")

app = FastAPI(title="MockPrep Interview API")

app.state.limiter = limiter
app.state.store = store
app.state.quiz_sessions = quiz_sessions


# -----------------------------
# Rate limiting
# -----------------------------
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def on_rate_limited(request: Request, exc: RateLimitExceeded):
    log.info("Rate limited | %s %s", request.method, request.url.path)
    return JSONResponse(
        {"ok": False, "error": "rate_limited", "message": "Too many requests, slow down."},
        status_code=HTTP_429_TOO_MANY_REQUESTS,
    )


# -----------------------------
# Guards
# -----------------------------
@app.middleware("http")
async def origin_guard(request: Request, call_next):
    if needs_origin_check(request) and not same_origin(request):
        log.warning("Cross-origin write blocked | %s %s", request.method, request.url.path)
        return JSONResponse(
            {"ok": False, "error": "csrf_blocked", "message": "Cross-origin request blocked."},
            status_code=HTTP_403_FORBIDDEN,
        )
    return await call_next(request)


@app.middleware("http")
async def response_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in RESPONSE_HEADERS.items():
        response.headers[name] = value
    return response


# added last so it wraps the guards above and request.session is populated for them
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    same_site="lax",
    https_only=bool(IS_PROD),
    max_age=60 * 60 * 24 * 7,  # one week
)

app.include_router(interview_router)
