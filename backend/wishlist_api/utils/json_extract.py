"""Locate and parse JSON inside free-form model output.

Models wrap answers in prose and markdown fences, so the whole response is
rarely valid JSON. extract_json() returns ParseOk or ParseError instead of a
bare empty default, letting callers tell "the model said []" apart from
"nothing parseable came back".
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

JsonKind = Literal["array", "object"]

_OPENERS: dict[str, str] = {"[": "]", "{": "}"}
_KIND_OPENER: dict[str, str] = {"array": "[", "object": "{"}


@dataclass(frozen=True)
class ParseOk:
    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ParseError:
    reason: str

    @property
    def ok(self) -> bool:
        return False


ParseResult = ParseOk | ParseError


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```)."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text.removeprefix("```")
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def _matches(value: Any, expect: JsonKind | None) -> bool:
    if expect == "array":
        return isinstance(value, list)
    if expect == "object":
        return isinstance(value, dict)
    return isinstance(value, (list, dict))


def _balanced_end(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at text[start], or None.

    String literals and escapes are skipped so brackets inside titles like
    "Shelf [2-pack]" don't unbalance the walk.
    """
    stack = [_OPENERS[text[start]]]
    in_string = False
    escape_next = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("]", "}"):
            if ch != stack.pop():
                return None
            if not stack:
                return i
    return None


def extract_json(text: str | None, expect: JsonKind | None = None) -> ParseResult:
    """Return the first well-formed JSON literal of the expected kind.

    Tries the whole (fence-stripped) text first, then scans left to right for
    a balanced array/object that decodes. A candidate that fails to decode
    does not stop the scan.
    """
    if text is None or not text.strip():
        return ParseError("empty_response")
    body = strip_code_fence(text)

    try:
        whole = json.loads(body)
    except json.JSONDecodeError:
        pass
    else:
        if _matches(whole, expect):
            return ParseOk(whole)

    openers = _KIND_OPENER[expect] if expect else "[{"
    found_candidate = False
    for start, ch in enumerate(body):
        if ch not in openers:
            continue
        end = _balanced_end(body, start)
        if end is None:
            continue
        found_candidate = True
        try:
            value = json.loads(body[start : end + 1])
        except json.JSONDecodeError:
            continue
        if _matches(value, expect):
            return ParseOk(value)

    if found_candidate:
        return ParseError("invalid_json")
    return ParseError("no_json_found")
