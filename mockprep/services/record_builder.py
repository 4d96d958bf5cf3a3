from __future__ import annotations

import logging
from typing import Optional, Protocol

from mockprep.errors import SaveError
from mockprep.models.assessment import (
    DEFAULT_CATEGORY,
    AssessmentDraft,
    AssessmentRecord,
    ScoreResult,
)

log = logging.getLogger("mockprep")


class AssessmentStorage(Protocol):
    async def save(self, draft: AssessmentDraft) -> AssessmentRecord: ...

    async def list_by_user(self, user_id: str) -> list[AssessmentRecord]: ...


class AssessmentRecordBuilder:
    """
    Turns a scored attempt into a draft and hands it to storage.

    Storage owns id and created_at. A failed submit leaves the draft untouched so the
    caller can resubmit it as-is.
    """

    def __init__(self, storage: AssessmentStorage, *, category: str = DEFAULT_CATEGORY):
        self.storage = storage
        self.category = category

    def build(
        self,
        *,
        user_id: str,
        result: ScoreResult,
        improvement_tip: Optional[str] = None,
    ) -> AssessmentDraft:
        tip = (improvement_tip or "").strip() or None
        return AssessmentDraft(
            user_id=str(user_id),
            quiz_score=result.quiz_score,
            questions=result.questions,
            improvement_tip=tip,
            category=self.category,
        )

    async def submit(self, draft: AssessmentDraft) -> AssessmentRecord:
        try:
            record = await self.storage.save(draft)
        except SaveError as e:
            if e.draft is None:
                e.draft = draft
            log.warning("Assessment save rejected: %s", e)
            raise
        except Exception as e:
            log.exception("Failed to write assessment to storage")
            raise SaveError(f"Storage unavailable: {e}", draft=draft) from e

        if not isinstance(record, AssessmentRecord):
            raise SaveError("Storage returned no record", draft=draft)

        log.debug(
            "Assessment saved | id=%s user=%s score=%.1f",
            record.id,
            record.user_id,
            record.quiz_score,
        )
        return record
