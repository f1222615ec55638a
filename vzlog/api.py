"""Helpers shared by the middleware APIs."""

from __future__ import annotations

import json
import logging
import re

from vzlog.buffer import Buffer

log = logging.getLogger(__name__)

_STRINGS_AND_BRACKETS = re.compile(r'"(?:\\.|[^"\\])*"?|[\[\]{}]')


def api_json_tuples(buffer: Buffer) -> list[list[float]]:
    """Return ``[timestamp_ms, value]`` pairs for every buffered reading."""
    log.debug("==> number of tuples: %d", len(buffer))
    tuples = []
    for reading in buffer:
        with buffer.lock:
            timestamp = reading.tvtod() * 1000
            value = reading.value
        tuples.append([timestamp, value])
    return tuples


def _innermost_container(text: str) -> str | None:
    stack: list[str] = []
    for match in _STRINGS_AND_BRACKETS.finditer(text):
        token = match.group()
        if token in "[{":
            stack.append(token)
        elif token in "]}" and stack:
            stack.pop()
    return stack[-1] if stack else None


def _error_description(text: str, exc: json.JSONDecodeError) -> str:
    if not text[exc.pos :].strip() or exc.msg.startswith("Unterminated string"):
        return "continue"
    if exc.msg.startswith("Expecting property name"):
        return "quoted object property name expected"
    if exc.msg.startswith("Expecting ':'"):
        return "object property name separator ':' expected"
    if exc.msg.startswith("Expecting ','"):
        if _innermost_container(text[: exc.pos]) == "[":
            return "array value separator ',' expected"
        return "object value separator ',' expected"
    if exc.msg.startswith(("Invalid control character", "Invalid \\")):
        return "invalid string sequence"
    return "unexpected character"


def _as_text(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def api_parse_exception(data: str | bytes) -> str:
    """Describe the exception carried in a middleware error response."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    start = len(data) - len(data.lstrip())
    try:
        document, _ = json.JSONDecoder().raw_decode(data, start)
    except json.JSONDecodeError as exc:
        return _error_description(data, exc)

    exception = document.get("exception") if isinstance(document, dict) else None
    if exception is None:
        return "missing exception"
    if isinstance(exception, dict):
        kind = exception.get("type")
        message = exception.get("message")
    else:
        kind = message = None
    return f"{_as_text(kind)}: {_as_text(message)}"