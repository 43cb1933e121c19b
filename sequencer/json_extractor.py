"""
Locate, clean up and parse a JSON payload buried in arbitrary text.

Clipboard content produced by other tools is rarely clean JSON: it comes
wrapped in prose, contains raw line breaks inside string values, trailing
commas or comments. The pipeline here is:

1. locate the first balanced ``{...}`` (then ``[...]``) candidate
2. escape raw control characters inside string literals
3. parse (tolerating comments and trailing commas)
4. on failure, re-escape every string token found by a regex scan
5. on failure, apply one single-character fix at the reported error position

Every function is stateless; the scan state lives only for one call.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, NamedTuple, Optional, Tuple

from .errors import JsonRepairFailed, NoJsonFound

logger = logging.getLogger(__name__)

_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_STRING_TOKEN = re.compile(r'"(?:[^\\"]|\\.)*"', re.DOTALL)


class ExtractedJson(NamedTuple):
    text: str
    document: Any


def find_matching_bracket(text: str, open_index: int, open_ch: str = "{", close_ch: str = "}") -> int:
    """Return the index of the bracket closing the one at ``open_index``, or -1.

    Brackets inside string literals are ignored. A quote only counts as a
    string boundary when the character right before it is not a backslash.
    """
    depth = 1
    in_string = False
    previous = ""
    for i in range(open_index + 1, len(text)):
        c = text[i]
        if c == '"' and previous != "\\":
            in_string = not in_string
        elif not in_string:
            if c == open_ch:
                depth += 1
            elif c == close_ch:
                depth -= 1
                if depth == 0:
                    return i
        previous = c
    return -1


def locate_candidates(text: str) -> List[str]:
    """Balanced object candidate first, then array candidate."""
    candidates: List[str] = []
    if not text:
        return candidates
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = text.find(open_ch)
        if start < 0:
            logger.debug("No '%s' found in text", open_ch)
            continue
        end = find_matching_bracket(text, start, open_ch, close_ch)
        if end > start:
            candidates.append(text[start:end + 1])
        else:
            logger.debug("No matching '%s' for '%s' at position %d", close_ch, open_ch, start)
    return candidates


def sanitize(text: str) -> str:
    """Escape raw control characters inside string literals only.

    Running it on its own output changes nothing.
    """
    if not text:
        return text
    out: List[str] = []
    in_string = False
    escaped = False
    for c in text:
        if escaped:
            out.append(c)
            escaped = False
        elif c == "\\":
            out.append(c)
            escaped = True
        elif c == '"':
            in_string = not in_string
            out.append(c)
        elif in_string and c in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[c])
        else:
            out.append(c)
    return "".join(out)


def _escape_span(match: "re.Match[str]") -> str:
    span = match.group(0).replace("\r\n", "\\n")
    for raw, escaped in _CONTROL_ESCAPES.items():
        span = span.replace(raw, escaped)
    return span


def repair_strings(text: str) -> str:
    """Token-driven variant of :func:`sanitize` over every string literal span."""
    if not text:
        return text
    return _STRING_TOKEN.sub(_escape_span, text)


def repair_at_position(text: str, line: int, column: int) -> Optional[str]:
    """Apply exactly one fix at a 1-based ``line``/``column`` error position.

    ``\\n``, ``\\r``, ``\\t`` and an unescaped ``"`` are escaped; any other
    character is deleted. A column just past the end of a line points at the
    line break itself. Returns None when the position is out of range.
    """
    lines = text.split("\n")
    if line < 1 or line > len(lines) or column < 1:
        logger.debug("Invalid repair position line %d column %d", line, column)
        return None
    index = line - 1
    current = lines[index]
    pos = column - 1
    if pos == len(current) and index + 1 < len(lines):
        lines[index] = current + "\\n" + lines[index + 1]
        del lines[index + 1]
        logger.debug("Raw line break at line %d escaped", line)
        return "\n".join(lines)
    if pos >= len(current):
        logger.debug("Invalid column %d (line length %d)", column, len(current))
        return None
    c = current[pos]
    if c in ("\r", "\t"):
        fixed = current[:pos] + _CONTROL_ESCAPES[c] + current[pos + 1:]
    elif c == '"' and (pos == 0 or current[pos - 1] != "\\"):
        fixed = current[:pos] + '\\"' + current[pos + 1:]
    else:
        fixed = current[:pos] + current[pos + 1:]
        logger.debug("Removed character %r at line %d column %d", c, line, column)
    lines[index] = fixed
    return "\n".join(lines)


def _blank_relaxed(text: str) -> str:
    """Overwrite comments and trailing commas with spaces, keeping offsets."""
    out = list(text)
    n = len(text)
    in_string = False
    escaped = False
    pending_comma = -1
    i = 0
    while i < n:
        c = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            i += 1
            continue
        if c == "/" and i + 1 < n and text[i + 1] in "/*":
            if text[i + 1] == "/":
                end = text.find("\n", i)
                end = n if end < 0 else end
            else:
                end = text.find("*/", i + 2)
                end = n if end < 0 else end + 2
            for k in range(i, end):
                if out[k] not in "\r\n":
                    out[k] = " "
            i = end
            continue
        if c == '"':
            in_string = True
            pending_comma = -1
        elif c == ",":
            pending_comma = i
        elif c in "}]":
            if pending_comma >= 0:
                out[pending_comma] = " "
            pending_comma = -1
        elif not c.isspace():
            pending_comma = -1
        i += 1
    return "".join(out)


def loads_relaxed(text: str) -> Any:
    """``json.loads`` that also accepts comments and trailing commas.

    Raises:
        json.JSONDecodeError: positions refer to the unmodified input.
    """
    return json.loads(_blank_relaxed(text))


def is_valid_json(text: str) -> bool:
    try:
        loads_relaxed(text)
        return True
    except ValueError:
        return False


def _try_parse(text: str) -> Tuple[Optional[Any], Optional[json.JSONDecodeError], bool]:
    try:
        return loads_relaxed(text), None, True
    except json.JSONDecodeError as e:
        return None, e, False


class JsonTextExtractor:
    """Runs the full locate/sanitize/repair pipeline on noisy text."""

    def extract(self, text: Optional[str]) -> ExtractedJson:
        """Return the first candidate that parses, with its parsed document.

        Raises:
            NoJsonFound: no balanced object or array exists in ``text``.
            JsonRepairFailed: candidates exist but none could be made valid.
        """
        candidates = locate_candidates(text or "")
        if not candidates:
            raise NoJsonFound("No JSON object or array found in text")
        last_error: Optional[json.JSONDecodeError] = None
        for candidate in candidates:
            logger.debug("JSON candidate (length %d): %.50s", len(candidate), candidate)
            sanitized = sanitize(candidate)
            document, error, ok = _try_parse(sanitized)
            if ok:
                return ExtractedJson(sanitized, document)

            repaired = repair_strings(candidate)
            document, error, ok = _try_parse(repaired)
            if ok:
                logger.debug("JSON valid after string repair")
                return ExtractedJson(repaired, document)

            fixed = repair_at_position(repaired, error.lineno, error.colno)
            if fixed is not None:
                document, fixed_error, ok = _try_parse(fixed)
                if ok:
                    logger.info("JSON repaired at line %d column %d", error.lineno, error.colno)
                    return ExtractedJson(fixed, document)
                error = fixed_error
            last_error = error
        raise JsonRepairFailed(f"JSON could not be repaired: {last_error}")
