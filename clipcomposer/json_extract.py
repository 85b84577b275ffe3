from __future__ import annotations

import json
import re
from typing import Any, Iterator, Optional

try:
    from errors import ExtractionError
except ImportError:
    from .errors import ExtractionError

CODE_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

_UNPARSED = object()


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_RE.sub("", text).strip()


def try_parse(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, RecursionError):
        return _UNPARSED


def extract_json_block(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def iter_top_level_objects(text: str) -> Iterator[str]:
    # Braces inside string literals are counted too.
    depth = 0
    start = -1
    for idx, ch in enumerate(text):
        if ch == "{":
            if depth == 0:
                start = idx
            depth += 1
        elif ch == "}":
            if depth == 0:
                continue
            depth -= 1
            if depth == 0:
                yield text[start : idx + 1]


def extract_json(text: Any) -> Any:
    """Recover one JSON value from model output.

    Tries, in order: the whole text with code fences removed, the slice from
    the first ``{`` to the last ``}``, then each balanced top-level ``{...}``
    block left to right. Raises ExtractionError when nothing parses.
    """
    if not text or not isinstance(text, str):
        raise ExtractionError("Empty response")

    sanitized = strip_code_fences(text)
    parsed = try_parse(sanitized)
    if parsed is not _UNPARSED:
        return parsed

    block = extract_json_block(sanitized)
    if block is not None:
        parsed = try_parse(block)
        if parsed is not _UNPARSED:
            return parsed

    for candidate in iter_top_level_objects(sanitized):
        parsed = try_parse(candidate)
        if parsed is not _UNPARSED:
            return parsed

    raise ExtractionError("No valid JSON found")
