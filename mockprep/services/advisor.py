from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from mockprep.errors import AdvisorError, LLMError
from mockprep.models.quiz import Question
from mockprep.utils.text import clean_llm_text, limit, one_line

log = logging.getLogger("mockprep")

MAX_TIP_LEN = 300
MAX_MISTAKES_IN_PROMPT = 10


def _system_prompt() -> str:
    return (
        "You are a supportive interview coach.\n"
        "Reply with the tip only: plain text, no lists, no headings."
    )


def _make_prompt(mistakes: List[str]) -> str:
    return (
        "The candidate got the following technical interview questions wrong:\n\n"
        + "\n\n".join(mistakes)
        + "\n\n"
        "Based on these mistakes, give a concise, specific improvement tip.\n"
        "Focus on the knowledge gaps revealed by these wrong answers.\n"
        "Keep the response under 2 sentences and make it encouraging.\n"
        "Don't explicitly mention the mistakes, focus on what to learn or practice."
    )


def wrong_answer_lines(
    questions: Sequence[Question], answers: Sequence[Optional[str]]
) -> List[str]:
    out: List[str] = []
    for q, a in zip(questions, answers):
        if a == q.correct_answer:
            continue
        out.append(
            f'Question: "{q.prompt}"\n'
            f'Correct Answer: "{q.correct_answer}"\n'
            f'User Answer: "{a if a is not None else "(no answer)"}"'
        )
    return out


class LLMAdvisor:
    """Improvement tip for the weakest areas of an attempt. Best-effort."""

    def __init__(self, llm):
        self.llm = llm

    async def suggest_improvement(
        self, questions: Sequence[Question], answers: Sequence[Optional[str]]
    ) -> Optional[str]:
        mistakes = wrong_answer_lines(questions, answers)
        if not mistakes:
            return None

        try:
            raw = await self.llm.ask(
                prompt=_make_prompt(mistakes[:MAX_MISTAKES_IN_PROMPT]),
                system=_system_prompt(),
                max_tokens=200,
                temperature=0.4,
            )
        except LLMError as e:
            raise AdvisorError(f"Advisor unavailable: {e}") from e

        tip = limit(one_line(clean_llm_text(raw or "")), MAX_TIP_LEN)
        if not tip:
            log.debug("Advisor returned an empty tip")
            return None
        return tip
