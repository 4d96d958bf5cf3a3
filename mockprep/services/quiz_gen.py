from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from mockprep.errors import GenerationError, LLMError
from mockprep.models.quiz import InterviewProfile, Question
from mockprep.services.question_rules import rule_check
from mockprep.utils.text import clamp, jaccard_sim, limit, one_line

log = logging.getLogger("mockprep")

# -----------------------------
# Limits
# -----------------------------
MAX_Q_LEN = 300
MAX_EXPL_LEN = 400
CHOICE_MAX_LEN = 120
CHOICE_COUNT = 4
MAX_QUESTIONS = 20
JACCARD_Q_SIM = 0.82
TEMPERATURE = 0.7
MAX_AVOID_IN_PROMPT = 12

LETTERS = "ABCD"

# -----------------------------
# Block format
# -----------------------------
_DASH = r"[:\-\u2014]"
STEM_RE = re.compile(rf"^(?:\d+[.)\-]\s*)?Q\s*{_DASH}\s*(?P<text>.+)$", re.I)
OPTION_RE = re.compile(r"^(?:[-\u2022]\s*)?(?P<letter>[A-D])[.):]\s*(?P<text>.+)$", re.I)
# ANSWER: B / ANSWER: B) Redis / CORRECT ANSWER - C
ANSWER_RE = re.compile(rf"^(?:ANSWER|ANS|CORRECT(?:\s+ANSWER)?)\s*{_DASH}\s*(?P<letter>[A-D])\b", re.I)
EXPLAIN_RE = re.compile(rf"^(?:EXPLAIN|EXPLANATION|RATIONALE|WHY)\s*{_DASH}\s*(?P<text>.+)$", re.I)
SEPARATOR_RE = re.compile(r"^(?:-{3,}|###)$")

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_OPTION_PREFIX_RE = re.compile(r"^(?:[A-D][.):\-]\s*|[-\u2022]\s*)")
_CORRECT_TAG_RE = re.compile(r"\s*\(\s*correct\s*\)$", re.I)


def _clean(s: str) -> str:
    return one_line(_CONTROL_RE.sub("", s or ""))


def _clean_option(s: str) -> str:
    s = _clean(s).strip("\"'")
    s = _OPTION_PREFIX_RE.sub("", s).strip()
    s = _CORRECT_TAG_RE.sub("", s).rstrip(" ;,")
    # hard cut, no ellipsis: two truncated options must not collide on "…"
    return s[:CHOICE_MAX_LEN].rstrip()


# -----------------------------
# Prompting
# -----------------------------
SYSTEM_PROMPT = (
    "You write technical job-interview multiple-choice questions.\n"
    "Output PLAIN TEXT ONLY, no titles, no commentary.\n"
    "Every question has exactly ONE correct option and a one or two sentence explanation.\n"
    "Use exactly this format and separate questions with a line containing only ---\n"
    "\n"
    "Q: <the question>\n"
    "A) <option>\n"
    "B) <option>\n"
    "C) <option>\n"
    "D) <option>\n"
    "ANSWER: <A|B|C|D>\n"
    "EXPLAIN: <why the answer is correct>\n"
    "---\n"
)


def build_prompt(
    profile: InterviewProfile,
    n: int,
    *,
    avoid: Optional[List[str]] = None,
    hint: str = "",
) -> str:
    focus = f", covering: {', '.join(profile.skills)}" if profile.skills else ""
    lines = [
        f"CANDIDATE: {profile.describe()}",
        "",
        f"Generate EXACTLY {n} technical interview question(s) for a {profile.industry} role{focus}.",
        f"Options per question: {CHOICE_COUNT}.",
        f"Limits: Q<={MAX_Q_LEN} chars, EXPLAIN<={MAX_EXPL_LEN} chars, OPTION<={CHOICE_MAX_LEN} chars.",
        "Do not use 'All of the above' or 'None of the above'.",
        "",
    ]

    recent = [a for a in (avoid or []) if a][:MAX_AVOID_IN_PROMPT]
    if recent:
        lines.append("AVOID close paraphrases of these questions:")
        lines.extend(f"- {a}" for a in recent)
        lines.append("")
    if hint:
        lines += ["EXTRA:", hint, ""]

    lines.append("Return the questions now.")
    return "\n".join(lines)


# -----------------------------
# Parser
# -----------------------------
@dataclass
class _Block:
    question: str = ""
    options: Dict[str, str] = field(default_factory=dict)
    answer: str = ""
    explanation: str = ""

    def complete(self, letters: str) -> bool:
        return bool(self.question and self.answer) and self.answer in letters and all(k in self.options for k in letters)

    def as_item(self, letters: str) -> Dict[str, object]:
        return {
            "question": self.question,
            "choices": [self.options[k] for k in letters],
            "answer_index": letters.index(self.answer),
            "explanation": self.explanation,
        }


def parse_question_blocks(text: str, *, expected_choices: int = CHOICE_COUNT) -> List[Dict[str, object]]:
    """
    Parse the Q:/A)-D)/ANSWER:/EXPLAIN:/--- format into raw items.

    Incomplete blocks are dropped silently. A trailing '---' on any line closes the block,
    and unlabelled lines after EXPLAIN extend the explanation.
    """
    letters = LETTERS[:expected_choices]
    items: List[Dict[str, object]] = []
    cur = _Block()

    def close() -> None:
        nonlocal cur
        if cur.complete(letters):
            items.append(cur.as_item(letters))
        cur = _Block()

    body = _CONTROL_RE.sub("", text or "").replace("\r\n", "\n").replace("\r", "\n")
    for raw in body.split("\n"):
        line = raw.strip()
        ends_block = len(line) > 3 and line.endswith("---")
        if ends_block:
            line = line[:-3].rstrip()

        if SEPARATOR_RE.match(line):
            close()
            continue

        m = STEM_RE.match(line)
        if m:
            if cur.question:
                close()
            cur.question = m.group("text").strip()
        elif OPTION_RE.match(line):
            m = OPTION_RE.match(line)
            cur.options[m.group("letter").upper()] = m.group("text").strip()
        elif ANSWER_RE.match(line):
            cur.answer = ANSWER_RE.match(line).group("letter").upper()
        elif EXPLAIN_RE.match(line):
            cur.explanation = EXPLAIN_RE.match(line).group("text").strip()
        elif cur.explanation and line:
            cur.explanation = f"{cur.explanation} {line}"

        if ends_block:
            close()

    close()
    return items


def build_question(item: Dict[str, object], *, expected_choices: int = CHOICE_COUNT) -> Optional[Question]:
    """Normalise one parsed item and run the structural rules; None means rejected."""
    stem = limit(_clean(str(item.get("question") or "")), MAX_Q_LEN)
    if not stem:
        return None

    raw_choices = item.get("choices")
    if not isinstance(raw_choices, list) or len(raw_choices) != expected_choices:
        return None
    choices = [_clean_option(str(c)) for c in raw_choices]
    if not all(choices):
        return None

    try:
        ai = int(item.get("answer_index", -1))
    except (TypeError, ValueError):
        return None

    explanation = limit(_clean(str(item.get("explanation") or "")), MAX_EXPL_LEN)

    verdict = rule_check(stem, choices, ai)
    if not verdict.ok:
        log.debug("Question rejected: %s | %r", verdict.reason, stem[:120])
        return None

    return Question(
        prompt=stem,
        options=tuple(choices),
        correct_answer=choices[ai],
        explanation=explanation,
    )


# -----------------------------
# De-duplication
# -----------------------------
def _digest(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:16]


class _SeenQuestions:
    """Exact (stem + options), stem-only and fuzzy (Jaccard) duplicates within one run."""

    def __init__(self):
        self._exact: Set[str] = set()
        self._stems: Set[str] = set()
        self._accepted: List[str] = []

    def add(self, q: Question) -> bool:
        stem = _clean(q.prompt).lower()
        exact = _digest("||".join([stem, *(_clean(o).lower() for o in q.options)]))
        bare = _digest(" ".join(re.sub(r"[^a-z0-9\s]", "", stem).split()))

        if exact in self._exact or bare in self._stems:
            return False
        if any(jaccard_sim(q.prompt, prev) >= JACCARD_Q_SIM for prev in self._accepted):
            return False

        self._exact.add(exact)
        self._stems.add(bare)
        self._accepted.append(q.prompt)
        return True


# -----------------------------
# Generator
# -----------------------------
class LLMQuestionGenerator:
    """
    Question Generator backed by an LLM.

    Asks in bounded rounds until `question_count` distinct questions are accepted. A short
    but non-empty set is returned with a warning; nothing usable raises GenerationError, and
    so does an unreachable model (no further rounds are attempted).
    """

    def __init__(self, llm, *, question_count: int = 10, max_rounds: int = 6):
        self.llm = llm
        self.question_count = clamp(int(question_count), 1, MAX_QUESTIONS)
        self.max_rounds = max(1, int(max_rounds))

    async def _ask(self, prompt: str, n: int) -> str:
        try:
            return await self.llm.ask(
                prompt=prompt,
                system=SYSTEM_PROMPT,
                max_tokens=min(4000, 600 + n * 300),
                temperature=TEMPERATURE,
            )
        except LLMError as e:
            raise GenerationError(f"Question source unavailable: {e}") from e

    async def generate(self, profile: InterviewProfile) -> List[Question]:
        n = self.question_count
        out: List[Question] = []
        seen = _SeenQuestions()
        hint = ""

        for round_no in range(1, self.max_rounds + 1):
            missing = n - len(out)
            if missing <= 0:
                break

            # one spare per retry round: some of what comes back will be duplicates
            ask_for = missing if round_no == 1 else min(missing + 1, n + 2)
            raw = await self._ask(
                build_prompt(profile, ask_for, avoid=[q.prompt for q in out], hint=hint),
                ask_for,
            )

            parsed = parse_question_blocks(raw or "")
            if not parsed:
                log.warning("Quiz parse failed (round %d): 0 blocks | raw=%r", round_no, (raw or "")[:1200])
                hint = "Follow the exact format."
                continue

            built = [q for q in (build_question(item) for item in parsed) if q is not None]
            accepted = 0
            for q in built:
                if len(out) >= n:
                    break
                if seen.add(q):
                    out.append(q)
                    accepted += 1

            log.info(
                "Quiz round %d | parsed=%d | built=%d | accepted=%d | total=%d/%d",
                round_no,
                len(parsed),
                len(built),
                accepted,
                len(out),
                n,
            )
            if not accepted:
                hint = "Keep each question clear and specific. All options must be plausible and distinct."

        if not out:
            raise GenerationError(f"Quiz generation failed: 0/{n} questions produced.")
        if len(out) < n:
            log.warning("Quiz generation short: %d/%d questions produced", len(out), n)
        return out
