from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from mockprep.errors import (
    BusyError,
    GenerationError,
    InvalidTransition,
    SaveError,
    ValidationError,
)
from mockprep.models.assessment import AssessmentDraft, AssessmentRecord, ScoreResult
from mockprep.models.quiz import InterviewProfile, Question, QuestionSet, validate_question_set
from mockprep.services.record_builder import AssessmentRecordBuilder
from mockprep.services.scoring import score_attempt

log = logging.getLogger("mockprep")


class Phase(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SAVING = "saving"
    FINISHED = "finished"


class QuestionGenerator(Protocol):
    async def generate(self, profile: InterviewProfile) -> Sequence[Question]: ...


class Advisor(Protocol):
    async def suggest_improvement(
        self, questions: Sequence[Question], answers: Sequence[Optional[str]]
    ) -> Optional[str]: ...


class QuizSession:
    """
    One quiz attempt, from generation to a saved assessment.

    Flow:
    - start(profile) -> questions generated, first question shown
    - answer(choice) -> may be revised until advance()
    - reveal() -> explanation of the current question (needs an answer)
    - advance() -> next question, or Completed (scored) after the last one
    - finish() -> improvement tip + save; a failed save stays in Completed and can be retried
    - restart() -> back to Idle once Finished
    - start() again at any point -> the unfinished attempt is discarded

    Only one outbound request (generate / advisor / save) may be outstanding per session;
    mutating calls made meanwhile raise BusyError. A cancelled request puts the phase back
    where it was (Generating -> Idle, Saving -> Completed).
    """

    def __init__(
        self,
        *,
        generator: QuestionGenerator,
        builder: AssessmentRecordBuilder,
        advisor: Optional[Advisor] = None,
    ):
        self.generator = generator
        self.builder = builder
        self.advisor = advisor

        self.phase = Phase.IDLE
        self.user_id: Optional[str] = None
        self.questions: QuestionSet = ()
        self.answers: List[Optional[str]] = []
        self.current = 0
        self.revealed = False

        self.result: Optional[ScoreResult] = None
        self.draft: Optional[AssessmentDraft] = None
        self.record: Optional[AssessmentRecord] = None
        self.last_error: Optional[str] = None

        self._busy = False

    # -----------------------------
    # helpers / guards
    # -----------------------------
    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def is_last(self) -> bool:
        return bool(self.questions) and self.current >= len(self.questions) - 1

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase != Phase.IN_PROGRESS:
            return None
        return self.questions[self.current]

    @property
    def score(self) -> Optional[float]:
        return self.result.quiz_score if self.result else None

    def _set_phase(self, phase: Phase) -> None:
        if phase != self.phase:
            log.debug("Quiz phase %s -> %s (user=%s)", self.phase.value, phase.value, self.user_id)
        self.phase = phase

    def _require(self, op: str, *allowed: Phase) -> None:
        if self._busy:
            raise BusyError(f"{op}() rejected: a request for this quiz is still in flight")
        if self.phase not in allowed:
            raise InvalidTransition(f"{op}() is not allowed while {self.phase.value}")

    @contextmanager
    def _outstanding(self) -> Iterator[None]:
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _clear_attempt(self) -> None:
        self.questions = ()
        self.answers = []
        self.current = 0
        self.revealed = False
        self.result = None
        self.draft = None
        self.record = None

    # -----------------------------
    # intents
    # -----------------------------
    async def start(self, profile: InterviewProfile, *, user_id: str) -> QuestionSet:
        self._require("start", *Phase)
        if self.phase not in (Phase.IDLE, Phase.FINISHED):
            log.info("Quiz attempt abandoned | user=%s phase=%s", self.user_id, self.phase.value)

        self._clear_attempt()
        self.user_id = str(user_id)
        self.last_error = None
        self._set_phase(Phase.GENERATING)

        with self._outstanding():
            try:
                raw = await self.generator.generate(profile)
                questions = validate_question_set(raw)
            except Exception as e:
                self._set_phase(Phase.IDLE)
                self.last_error = str(e) or "Question generation failed"
                if isinstance(e, GenerationError):
                    log.warning("Quiz generation failed: %s", e)
                    raise
                log.exception("Quiz generation failed")
                raise GenerationError(self.last_error) from e
            except BaseException:
                self._set_phase(Phase.IDLE)
                raise

        self.questions = questions
        self.answers = [None] * len(questions)
        self.current = 0
        self.revealed = False
        self._set_phase(Phase.IN_PROGRESS)
        log.info("Quiz started | user=%s questions=%d", self.user_id, len(questions))
        return questions

    def answer(self, choice: str) -> None:
        self._require("answer", Phase.IN_PROGRESS)

        q = self.questions[self.current]
        if not q.is_option(choice):
            raise ValidationError(
                f"{choice!r} is not an option of question {self.current + 1}"
            )
        self.answers[self.current] = choice

    def reveal(self) -> str:
        if self.phase != Phase.IN_PROGRESS:
            raise InvalidTransition(f"reveal() is not allowed while {self.phase.value}")
        if self.answers[self.current] is None:
            raise ValidationError("Answer the current question before revealing its explanation")

        self.revealed = True
        return self.questions[self.current].explanation

    def advance(self) -> Phase:
        # past the last question further advances are no-ops until restart()
        if self.phase in (Phase.COMPLETED, Phase.SAVING, Phase.FINISHED):
            return self.phase

        self._require("advance", Phase.IN_PROGRESS)
        if self.answers[self.current] is None:
            raise ValidationError(f"Question {self.current + 1} has no answer yet")

        if self.is_last:
            self.result = score_attempt(self.questions, self.answers)
            self._set_phase(Phase.COMPLETED)
            log.info(
                "Quiz completed | user=%s score=%.1f (%d/%d)",
                self.user_id,
                self.result.quiz_score,
                self.result.correct_count,
                len(self.questions),
            )
            return self.phase

        self.current += 1
        self.revealed = False
        return self.phase

    async def finish(self) -> AssessmentRecord:
        self._require("finish", Phase.COMPLETED)

        with self._outstanding():
            if self.draft is None:
                tip = await self._improvement_tip()
                self.draft = self.builder.build(
                    user_id=self.user_id or "",
                    result=self.result,
                    improvement_tip=tip,
                )

            self._set_phase(Phase.SAVING)
            try:
                record = await self.builder.submit(self.draft)
            except SaveError as e:
                self._set_phase(Phase.COMPLETED)
                self.last_error = str(e) or "Failed to save quiz results"
                raise
            except BaseException:
                self._set_phase(Phase.COMPLETED)
                raise

        self.record = record
        self.last_error = None
        self._set_phase(Phase.FINISHED)
        return record

    def restart(self) -> None:
        self._require("restart", Phase.FINISHED)
        self._clear_attempt()
        self.last_error = None
        self._set_phase(Phase.IDLE)

    async def _improvement_tip(self) -> Optional[str]:
        if self.advisor is None:
            return None
        try:
            return await self.advisor.suggest_improvement(self.questions, list(self.answers))
        except Exception as e:
            log.warning("Improvement tip unavailable, saving without it: %s", e)
            return None

    # -----------------------------
    # read-only view
    # -----------------------------
    def snapshot(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "phase": self.phase.value,
            "busy": self._busy,
            "total": len(self.questions),
            "index": self.current if self.questions else None,
            "error": self.last_error,
            "question": None,
            "score": None,
            "record": None,
        }

        q = self.current_question
        if q is not None:
            selected = self.answers[self.current]
            data["question"] = {
                "number": self.current + 1,
                "prompt": q.prompt,
                "options": list(q.options),
                "selected": selected,
                "explanation": q.explanation if self.revealed else None,
                "canReveal": selected is not None,
                "canAdvance": selected is not None and not self._busy,
                "isLast": self.is_last,
            }

        if self.result is not None:
            data["score"] = round(self.result.quiz_score, 1)
            data["correct"] = self.result.correct_count
        if self.record is not None:
            data["record"] = self.record.as_dict()
        return data
