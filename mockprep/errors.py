"""
Typed failures of the assessment engine.

All of them are scoped to a single quiz attempt; none is fatal to the host process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mockprep.models.assessment import AssessmentDraft


class EngineError(Exception):
    code = "engine_error"


class GenerationError(EngineError):
    """Question source unavailable or returned unusable data. Retry with start()."""

    code = "generation_failed"


class ValidationError(EngineError, ValueError):
    """Caller broke the engine contract (bad choice, advance without answer...)."""

    code = "invalid_input"


class InvalidTransition(ValidationError):
    code = "invalid_transition"


class BusyError(EngineError):
    """A mutating operation arrived while a request for the same attempt is outstanding."""

    code = "busy"


class SaveError(EngineError):
    """Storage unavailable or rejected the record. The scored draft is kept for retry."""

    code = "save_failed"

    def __init__(self, message: str, *, draft: Optional["AssessmentDraft"] = None):
        super().__init__(message)
        self.draft = draft


class AdvisorError(EngineError):
    code = "advisor_failed"


class LLMError(EngineError):
    code = "llm_failed"

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
