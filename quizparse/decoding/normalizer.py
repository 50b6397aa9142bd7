"""
Normalizer: strips wrapper envelopes and boilerplate from raw model text.

Nothing here fails. Each helper returns its input unchanged when there is
nothing to strip.
"""

import json
import re
from typing import Any, Optional

from quizparse.utils.logging import get_logger

logger = get_logger(__name__)

# Opening fence, optionally tagged with a format hint (```json, ```JSON, ```js ...)
_OPENING_FENCE_RE = re.compile(r"\A\s*```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_CLOSING_FENCE_RE = re.compile(r"\r?\n?[ \t]*```\s*\Z")

# Labels models put in front of the payload. Matched case-insensitively at the
# start of the text and at the start of every line.
BOILERPLATE_LABELS = (
    r"\[(?:ANALYSIS|RESPONSE|RESULT|OUTPUT)\]",
    r"Content\s*:\s*QuizQuestions\s*:",
    r"Content\s*:",
    r"Response\s*:",
    r"Brief overview\s*:",
    r"Analysis\s*:",
    r"Result\s*:",
    r"Output\s*:",
    r"Quiz\s*:",
    r"Summary\s*:",
    r"Here is the JSON\s*[:.]",
    r"Here is the (?:requested|required|specified) JSON\s*[:.]",
    r"(?:Please )?(?:return|provide) JSON(?: (?:with|in the following format))?\s*[:.]",
)

# One match eats a whole run of labels, so a pass is linear in the text length.
_LABEL_RUN = r"(?:(?:" + "|".join(BOILERPLATE_LABELS) + r")[ \t]*)+"
_LEADING_LABELS_RE = re.compile(r"\A" + _LABEL_RUN, re.IGNORECASE)
_LINE_LABELS_RE = re.compile(r"^[ \t]*" + _LABEL_RUN, re.IGNORECASE | re.MULTILINE)


def strip_fence(text: str) -> str:
    """Remove one leading opening fence and one trailing closing fence."""
    if not text:
        return ""
    match = _OPENING_FENCE_RE.match(text)
    if not match:
        return text
    inner = text[match.end():]
    inner = _CLOSING_FENCE_RE.sub("", inner)
    return inner.strip()


def strip_prefixes(text: str) -> str:
    """
    Remove boilerplate labels until a pass no longer shortens the text.

    Handles nested labels such as "Content: Response: Content: {...}" and
    labels repeated at the start of individual lines. Once the text starts
    with "{" or "[" only leading labels are removed, so a bare key such as
    "summary:" on its own line inside the payload is kept.
    """
    cleaned = text.strip()
    previous_length = -1
    while len(cleaned) != previous_length:
        previous_length = len(cleaned)
        cleaned = _LEADING_LABELS_RE.sub("", cleaned, count=1).strip()
        if cleaned.startswith(("{", "[")) and not _LEADING_LABELS_RE.match(cleaned):
            break
        cleaned = _LINE_LABELS_RE.sub("", cleaned).strip()
    return cleaned


def envelope_text(value: Any) -> Optional[str]:
    """
    Return the generated text inside an inference-API envelope, if ``value`` is one.

    Recognised envelopes:
        [{"generated_text": "..."}, ...]
        {"generated_text": "..."}
        {"content": "..."}   (``content`` as the only key)
    """
    if isinstance(value, list) and value and isinstance(value[0], dict):
        inner = value[0].get("generated_text")
        return inner if isinstance(inner, str) else None
    if isinstance(value, dict):
        inner = value.get("generated_text")
        if isinstance(inner, str):
            return inner
        if len(value) == 1 and isinstance(value.get("content"), str):
            return value["content"]
    return None


def unwrap_envelope(text: str) -> Optional[str]:
    """
    Inner text of an envelope-shaped JSON document, or None.

    Any parse problem means "not an envelope"; nothing is raised.
    """
    stripped = text.strip()
    if not stripped or stripped[0] not in "[{":
        return None
    try:
        value = json.loads(stripped)
    except (ValueError, RecursionError):
        return None
    return envelope_text(value)


def normalize(text: str, unwrap: bool = True) -> str:
    """
    Strip fences, boilerplate labels and (once) an inference envelope.

    Args:
        text: Raw model text
        unwrap: Whether to look for an envelope. The inner text is
            normalized with ``unwrap=False`` so unwrapping never recurses.

    Returns:
        Candidate text for parsing
    """
    if not isinstance(text, str) or not text:
        return ""

    cleaned = strip_fence(text.strip())
    cleaned = strip_prefixes(cleaned)
    cleaned = strip_fence(cleaned)

    if unwrap:
        inner = unwrap_envelope(cleaned)
        if inner is not None:
            logger.debug("Unwrapped inference envelope")
            return normalize(inner, unwrap=False)

    return cleaned
