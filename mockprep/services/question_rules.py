"""
Structural checks for generated interview questions.

Rules are conservative: a question is rejected only on a strong signal that it cannot be
scored by exact option match (ambiguous, leaked or duplicated answers).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

MIN_CHOICES = 2
MAX_CHOICES = 4

_CATCH_ALL_PREFIXES = ("all of the above", "none of the above", "both a and b")
_AMBIGUOUS_STEM_WORDS = ("misconception", "myth")


@dataclass(frozen=True)
class RuleResult:
    ok: bool
    reason: str = ""


Rule = Callable[[str, List[str], int], Optional[str]]


def _squash(s: str) -> str:
    return " ".join((s or "").split()).lower()


# -----------------------------
# Rules: return a reason to reject, or None
# -----------------------------
def _options_distinct(q: str, choices: List[str], ai: int) -> Optional[str]:
    if len({_squash(c) for c in choices}) != len(choices):
        return "Options must be distinct."
    return None


def _no_leaked_answer(q: str, choices: List[str], ai: int) -> Optional[str]:
    if any("(correct)" in _squash(c) for c in choices):
        return "An option leaks the answer with a '(correct)' tag."
    return None


def _no_catch_all_option(q: str, choices: List[str], ai: int) -> Optional[str]:
    # these make "exactly one correct option" ambiguous
    if any(_squash(c).startswith(_CATCH_ALL_PREFIXES) for c in choices):
        return "Catch-all options are ambiguous."
    return None


def _no_ambiguous_stem(q: str, choices: List[str], ai: int) -> Optional[str]:
    stem = _squash(q)
    if any(re.search(rf"\b{w}", stem) for w in _AMBIGUOUS_STEM_WORDS):
        return "Misconception-style questions have no single defensible answer."
    return None


RULES: Sequence[Rule] = (
    _options_distinct,
    _no_leaked_answer,
    _no_catch_all_option,
    _no_ambiguous_stem,
)


def rule_check(
    question: str,
    choices: List[str],
    answer_index: int,
) -> RuleResult:
    """Shape checks first, then every rule in order; the first failure wins."""
    if not (question or "").strip():
        return RuleResult(False, "Empty question.")
    if not isinstance(choices, list) or not (MIN_CHOICES <= len(choices) <= MAX_CHOICES):
        return RuleResult(False, f"Expected {MIN_CHOICES}-{MAX_CHOICES} options, got {len(choices or [])}.")
    if not isinstance(answer_index, int) or not (0 <= answer_index < len(choices)):
        return RuleResult(False, f"Answer index {answer_index!r} is out of range.")

    for rule in RULES:
        reason = rule(question, choices, answer_index)
        if reason:
            return RuleResult(False, reason)
    return RuleResult(True)
