from __future__ import annotations

from typing import Any, Iterable, List, Optional

ERROR_AI_JSON = "AI_JSON_ERROR"
ERROR_SCHEMA_MISSING = "SCHEMA_MISSING_FIELDS"
ERROR_OUT_OF_SCALE = "OUT_OF_SCALE"
ERROR_MODEL = "MODEL_ERROR"

DEFAULT_ERROR_STATUS = 400


class ClipError(Exception):
    """Base for failures reported to the caller as ``KIND: detail`` text."""

    kind = "CLIP_ERROR"

    def __init__(self, detail: str, status_code: int = DEFAULT_ERROR_STATUS) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code

    def render(self) -> str:
        return f"{self.kind}: {self.detail}"


class ExtractionError(ClipError, ValueError):
    kind = ERROR_AI_JSON


class SchemaError(ClipError):
    kind = ERROR_SCHEMA_MISSING

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: List[str] = list(missing)
        super().__init__("/".join(self.missing))


class ScaleViolationError(ClipError):
    kind = ERROR_OUT_OF_SCALE

    def __init__(self, count: int, key: Any, mode: Any) -> None:
        self.count = count
        self.key = key
        self.mode = mode
        super().__init__(f"{count} non-diatonic notes for {key} {mode}")


class ComposeError(ClipError):
    """Text-generation provider failure, keeping the provider's status where known."""

    kind = ERROR_MODEL

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail, status_code or DEFAULT_ERROR_STATUS)
