"""
Syntax repairer: idempotent textual fixes for near-valid JSON.

Fixes are applied in a fixed order, since each may change counts the next
one depends on. Separator and key rewrites only touch text outside string
literals, so values such as URLs, timestamps or "a, b: c" survive intact.
No semantic validation happens here.
"""

import re
from typing import Callable, List, Tuple

_DOUBLED_COMMA_RE = re.compile(r",(?:\s*,)+")
_COMMA_AFTER_OPENER_RE = re.compile(r"([\[{])\s*,+")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)(\s*:)")

_SMART_DOUBLE_QUOTES = ("“", "”", "„", "‟")

# Repair converges in one or two passes; the bound only guards pathological input.
_MAX_PASSES = 4

Segment = Tuple[bool, str]


def detect_quote_char(text: str) -> str:
    """Single quotes only count as string delimiters when no double quote exists."""
    if "'" in text and '"' not in text:
        return "'"
    return '"'


def split_literals(text: str, quote: str = '"') -> List[Segment]:
    """
    Split text into (is_literal, segment) pairs.

    A literal runs from ``quote`` to the next unescaped ``quote``; an
    unterminated literal runs to the end of the text.
    """
    segments: List[Segment] = []
    n = len(text)
    start = 0
    i = 0
    while i < n:
        if text[i] != quote:
            i += 1
            continue
        if i > start:
            segments.append((False, text[start:i]))
        j = i + 1
        while j < n:
            if text[j] == "\\":
                j += 2
                continue
            if text[j] == quote:
                j += 1
                break
            j += 1
        j = min(j, n)
        segments.append((True, text[i:j]))
        start = i = j
    if start < n:
        segments.append((False, text[start:]))
    return segments


def _outside_literals(text: str, quote: str, fix: Callable[[str], str]) -> str:
    return "".join(seg if is_literal else fix(seg) for is_literal, seg in split_literals(text, quote))


def collapse_separators(text: str, quote: str = '"') -> str:
    """Collapse ",," / ", ," into one comma and drop commas right after an opener."""

    def fix(code: str) -> str:
        code = _DOUBLED_COMMA_RE.sub(",", code)
        return _COMMA_AFTER_OPENER_RE.sub(r"\1", code)

    return _outside_literals(text, quote, fix)


def remove_trailing_commas(text: str, quote: str = '"') -> str:
    """Remove a comma directly before a closing brace or bracket."""
    return _outside_literals(text, quote, lambda code: _TRAILING_COMMA_RE.sub(r"\1", code))


def quote_bare_keys(text: str, quote: str = '"') -> str:
    """
    Quote identifiers used as object keys.

    Only an identifier that directly follows ``{`` or ``,`` and is directly
    followed by ``:`` is touched. The key is wrapped in ``quote`` so it
    matches the text's own quoting style.
    """
    replacement = r"\1" + quote + r"\2" + quote + r"\3"
    return _outside_literals(text, quote, lambda code: _BARE_KEY_RE.sub(replacement, code))


def _requote_literal(literal: str) -> str:
    terminated = len(literal) > 1 and literal.endswith("'")
    body = literal[1:-1] if terminated else literal[1:]
    body = body.replace("\\'", "'")
    return '"' + body + ('"' if terminated else "")


def normalize_quotes(text: str, quote: str = '"') -> str:
    """
    Turn single-quoted literals into double-quoted ones.

    Only fires when the text was written in single-quote style, i.e. it had
    single quotes and no double quotes at all when repair started.
    """
    if quote != "'":
        return text
    return "".join(
        _requote_literal(seg) if is_literal else seg for is_literal, seg in split_literals(text, "'")
    )


def normalize_smart_quotes(text: str) -> str:
    """Curly double quotes become straight ones when no straight double quote exists."""
    if '"' in text or not any(q in text for q in _SMART_DOUBLE_QUOTES):
        return text
    for q in _SMART_DOUBLE_QUOTES:
        text = text.replace(q, '"')
    return text


def _count_unescaped_quotes(text: str) -> int:
    count = 0
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            count += 1
    return count


def close_open_string(text: str) -> str:
    """Append a closing quote when output was truncated inside a string."""
    if _count_unescaped_quotes(text) % 2 == 0:
        return text
    stripped = text.rstrip()
    # A dangling escape would swallow the closing quote
    trailing = len(stripped) - len(stripped.rstrip("\\"))
    if trailing % 2 == 1:
        stripped = stripped[:-1]
    return stripped + '"'


def _open_stack(text: str) -> List[str]:
    """Unclosed openers, outermost first, ignoring brackets inside strings."""
    stack: List[str] = []
    pairs = {"}": "{", "]": "["}
    for is_literal, seg in split_literals(text, '"'):
        if is_literal:
            continue
        for ch in seg:
            if ch in "{[":
                stack.append(ch)
            elif ch in pairs and stack and stack[-1] == pairs[ch]:
                stack.pop()
    return stack


def balance_brackets(text: str) -> str:
    """
    Make brace and bracket counts equal.

    Missing closers are appended (innermost first where the nesting can be
    read off the text); surplus closers get matching openers prepended.
    Counts are raw character counts, so the result is always balanced.
    """
    brace_gap = text.count("{") - text.count("}")
    bracket_gap = text.count("[") - text.count("]")
    if brace_gap == 0 and bracket_gap == 0:
        return text

    prefix = ""
    if brace_gap < 0 or bracket_gap < 0:
        text = text.lstrip().lstrip(",").lstrip()
        prefix = "{" * max(-brace_gap, 0) + "[" * max(-bracket_gap, 0)

    suffix = ""
    if brace_gap > 0 or bracket_gap > 0:
        text = text.rstrip().rstrip(",").rstrip()
        closers = {"{": "}", "[": "]"}
        for opener in reversed(_open_stack(text)):
            if opener == "{" and brace_gap > 0:
                suffix += closers[opener]
                brace_gap -= 1
            elif opener == "[" and bracket_gap > 0:
                suffix += closers[opener]
                bracket_gap -= 1
        suffix += "}" * max(brace_gap, 0) + "]" * max(bracket_gap, 0)

    return prefix + text + suffix


def _repair_once(text: str) -> str:
    text = normalize_smart_quotes(text)
    quote = detect_quote_char(text)
    text = collapse_separators(text, quote)
    text = remove_trailing_commas(text, quote)
    text = quote_bare_keys(text, quote)
    text = normalize_quotes(text, quote)
    text = close_open_string(text)
    return balance_brackets(text)


def repair(text: str) -> str:
    """
    Apply every fix, repeating until the text stops changing.

    Args:
        text: Near-valid JSON text

    Returns:
        Repaired text; ``repair(repair(x)) == repair(x)`` and brace/bracket
        counts are equal
    """
    if not text:
        return ""
    text = text.strip()
    for _ in range(_MAX_PASSES):
        repaired = _repair_once(text)
        if repaired == text:
            break
        text = repaired
    return text
