"""
Boundary extractor: finds the part of a noisy text that holds the payload.

The outermost-span heuristic assumes one structured payload per response,
which holds for single-turn generation prompts.
"""

import re
from typing import Dict, Optional, Tuple

from quizparse.decoding.repair import repair
from quizparse.decoding.stages import parse_json
from quizparse.utils.errors import StageError
from quizparse.utils.logging import get_logger

logger = get_logger(__name__)

FENCED_BLOCK_RE = re.compile(r"```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n?([\s\S]*?)```")

_FLAT_LINE_RE = re.compile(r"^\s*([A-Za-z_][\w \-]{0,63}?)\s*:\s*(.*?)\s*$")
_BRACKET_CHARS = frozenset("{}[]")


def find_fenced_block(text: str) -> Optional[str]:
    """Contents of the first fenced block, if it is non-empty once trimmed."""
    match = FENCED_BLOCK_RE.search(text)
    if not match:
        return None
    inner = match.group(1).strip()
    return inner or None


def _span(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def object_span(text: str) -> Optional[str]:
    """First ``{`` through last ``}``."""
    return _span(text, "{", "}")


def array_span(text: str) -> Optional[str]:
    """First ``[`` through last ``]``."""
    return _span(text, "[", "]")


def open_tail(text: str) -> Optional[str]:
    """Everything from the first ``{`` or ``[`` to the end of the text."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    return text[min(starts):]


def _parses(candidate: Optional[str]) -> bool:
    if candidate is None:
        return False
    try:
        parse_json(repair(candidate))
    except StageError:
        return False
    return True


def extract_payload(text: str, prefer_object: bool = True) -> str:
    """
    Substring most likely to hold the intended payload.

    Args:
        text: Raw or normalized model text
        prefer_object: Tie-break when both the object span and the array span
            parse; also decides which span is returned when neither parses

    Returns:
        A fenced block's contents, a bracketed span, or ``text`` unchanged
    """
    fenced = find_fenced_block(text)
    if fenced is not None:
        return fenced

    candidates: Tuple[Optional[str], Optional[str]] = (object_span(text), array_span(text))
    if not prefer_object:
        candidates = candidates[::-1]

    for candidate in candidates:
        if _parses(candidate):
            return candidate

    # Truncated output: the closer never arrived, so take everything from the
    # first opener and let bracket balancing finish it.
    tail = open_tail(text)
    if tail is not None and tail != text and _parses(tail):
        return tail

    for candidate in candidates:
        if candidate is not None:
            return candidate

    return text


def reconstruct_flat_object(text: str) -> Dict[str, str]:
    """
    Build a flat object from ``label: value`` lines.

    Only applies when the text has no bracket characters at all and every
    non-blank line is a short label followed by a colon. This is a
    last-resort heuristic: prose that happens to look like labelled lines
    will be turned into fields.

    Raises:
        StageError: When the text does not look like labelled lines
    """
    if any(ch in _BRACKET_CHARS for ch in text):
        raise StageError("flat", "text has bracket structure")

    result: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        match = _FLAT_LINE_RE.match(line)
        if not match:
            raise StageError("flat", "line is not 'label: value'")
        key, value = match.group(1).strip(), match.group(2)
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        result[key] = value

    if not result:
        raise StageError("flat", "no labelled lines")
    return result
