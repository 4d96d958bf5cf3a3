# mockprep/utils/text.py
import json
import re
from typing import FrozenSet, List

_FENCE_RE = re.compile(r"```[\w+-]*\n?")
_HASHTAG_LINE_RE = re.compile(r"^#\w+$")
_HEADER_RE = re.compile(r"^#{1,6}\s*")
_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1")
_WORD_RE = re.compile(r"[a-z0-9]+")


# -----------------------------
# LLM output cleanup
# -----------------------------
def unwrap_message_json(text: str) -> str:
    """Some local servers answer with {"message": "..."} instead of plain text."""
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict) and "message" in data:
        return str(data["message"])
    return text


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def clean_llm_text(text: str) -> str:
    text = strip_code_fences(unwrap_message_json(text or ""))

    kept: List[str] = []
    for raw in text.splitlines():
        s = raw.strip()
        if _HASHTAG_LINE_RE.match(s):
            continue
        s = _HEADER_RE.sub("", s)
        s = _BOLD_RE.sub(r"\2", s)
        kept.append(s)
    return "\n".join(kept).strip()


# -----------------------------
# Small string helpers
# -----------------------------
def clamp(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def one_line(text: str) -> str:
    return " ".join((text or "").split())


def limit(s: str, n: int) -> str:
    s = (s or "").strip()
    if len(s) <= n:
        return s
    return s[: max(0, n - 1)].rstrip() + "…"


# -----------------------------
# Near-duplicate questions
# -----------------------------
# question words and fillers every interview stem shares
_FILLER: FrozenSet[str] = frozenset(
    """
    the and for with from into that this these those than then there
    what which who whom whose when where why how
    are was were been being does did has have had can could should would will
    you your following best most true false correct statement describes
    """.split()
)


def keywords(s: str) -> FrozenSet[str]:
    words = _WORD_RE.findall((s or "").lower())
    return frozenset(w for w in words if len(w) >= 3 and w not in _FILLER)


def jaccard_sim(a: str, b: str) -> float:
    ka, kb = keywords(a), keywords(b)
    if not ka or not kb:
        return 0.0
    return len(ka & kb) / len(ka | kb)
