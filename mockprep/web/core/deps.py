from __future__ import annotations

import logging
import secrets
from collections import OrderedDict
from typing import Any, Dict, Optional

from fastapi import Request

from config import (
    DB_PATH,
    DEFAULT_MODEL,
    GROQ_API_KEY,
    GROQ_BASE_URL,
    GROQ_MODEL,
    IS_PROD,
    LLM_PROVIDER,
    OPENAI_API_KEY,
    OPENAI_API_URL,
    OPENAI_BASE_URL,
    OPENAI_MODEL,
    QUIZ_QUESTION_COUNT,
    WEB_SESSION_SECRET,
)
from mockprep.db import AssessmentStore
from mockprep.services.advisor import LLMAdvisor
from mockprep.services.llm import LLMClient
from mockprep.services.quiz_gen import LLMQuestionGenerator
from mockprep.services.quiz_session import Advisor, QuestionGenerator, QuizSession
from mockprep.services.record_builder import AssessmentRecordBuilder

log = logging.getLogger("mockprep")

# -----------------------------
# Settings / env
# -----------------------------
SESSION_SECRET = WEB_SESSION_SECRET
if not SESSION_SECRET:
    SESSION_SECRET = secrets.token_urlsafe(32)
    log.warning("WEB_SESSION_SECRET not set: using an ephemeral secret (sessions reset on restart)")

MAX_LIVE_SESSIONS = 1000


def build_llm() -> LLMClient:
    provider = (LLM_PROVIDER or "").strip().lower()
    if provider == "groq":
        return LLMClient(
            base_url=GROQ_BASE_URL,
            default_model=GROQ_MODEL,
            api_key=GROQ_API_KEY,
            openai_base_url=GROQ_BASE_URL,
            openai_default_model=GROQ_MODEL,
            prefer_responses_api=False,  # Groq has no /responses
            force_chat_completions=True,
        )
    if provider == "openai":
        return LLMClient(
            base_url=OPENAI_BASE_URL,
            default_model=DEFAULT_MODEL,
            api_key=OPENAI_API_KEY,
            openai_base_url=OPENAI_API_URL,
            openai_default_model=OPENAI_MODEL,
        )
    return LLMClient(base_url=OPENAI_BASE_URL, default_model=DEFAULT_MODEL)


# -----------------------------
# Live quiz attempts
# -----------------------------
class QuizSessionRegistry:
    """One QuizSession per browser/user key, oldest evicted first when full."""

    def __init__(
        self,
        *,
        generator: QuestionGenerator,
        builder: AssessmentRecordBuilder,
        advisor: Optional[Advisor] = None,
        max_sessions: int = MAX_LIVE_SESSIONS,
    ):
        self.generator = generator
        self.builder = builder
        self.advisor = advisor
        self.max_sessions = max(1, int(max_sessions))
        self._sessions: "OrderedDict[str, QuizSession]" = OrderedDict()

    def get(self, key: str) -> QuizSession:
        s = self._sessions.get(key)
        if s is None:
            s = QuizSession(generator=self.generator, builder=self.builder, advisor=self.advisor)
            self._sessions[key] = s
            self._evict()
        else:
            self._sessions.move_to_end(key)
        return s

    def _evict(self) -> None:
        for key in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                return
            if not self._sessions[key].busy:
                del self._sessions[key]

    def __len__(self) -> int:
        return len(self._sessions)


# -----------------------------
# Singletons
# -----------------------------
store = AssessmentStore(DB_PATH)
llm = build_llm()
quiz_sessions = QuizSessionRegistry(
    generator=LLMQuestionGenerator(llm, question_count=QUIZ_QUESTION_COUNT),
    builder=AssessmentRecordBuilder(store),
    advisor=LLMAdvisor(llm),
)


# -----------------------------
# Session helpers
# -----------------------------
# session["user"] (and session["profile"]) are written by the sign-in and onboarding
# layer that shares this cookie; this API only reads them.
def user_from_session(request: Request) -> Optional[Dict[str, Any]]:
    return request.session.get("user")


def sid(request: Request) -> str:
    s = request.session.get("sid")
    if not s:
        s = secrets.token_urlsafe(16)
        request.session["sid"] = s
    return s


def user_key(request: Request) -> str:
    u = user_from_session(request)
    if u and u.get("id"):
        return f"u:{u['id']}"
    return f"s:{sid(request)}"

