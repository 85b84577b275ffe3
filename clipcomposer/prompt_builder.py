from __future__ import annotations

from typing import Any, List

try:
    from constants import DEFAULT_BARS, DEFAULT_CLIP_TYPE, MAX_BARS
    from models import ComposeParams
    from music_theory import build_scale, get_scale_note_names
    from prompts import CLIP_TYPE_HINTS, REPAIR_USER_PREFIX
except ImportError:
    from .constants import DEFAULT_BARS, DEFAULT_CLIP_TYPE, MAX_BARS
    from .models import ComposeParams
    from .music_theory import build_scale, get_scale_note_names
    from .prompts import CLIP_TYPE_HINTS, REPAIR_USER_PREFIX


def resolve_bars(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_BARS
    try:
        bars = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_BARS
    if bars <= 0:
        return DEFAULT_BARS
    return min(bars, MAX_BARS)


def build_key_line(params: ComposeParams) -> str:
    if not (params.key and params.mode):
        return "Key/scale: auto."
    line = f"Key/scale: {params.key} {params.mode}."
    scale = build_scale(params.key, params.mode)
    if scale is not None:
        line += f" Allowed notes: {', '.join(get_scale_note_names(scale, params.key))}."
    return line


def build_user_prompt(params: ComposeParams) -> str:
    bars = resolve_bars(params.bars)
    clip_type = params.clip_type or DEFAULT_CLIP_TYPE
    parts: List[str] = [
        f"Make a {clip_type} clip.",
        f"Length: {bars} bars.",
        "Time signature: 4/4.",
        build_key_line(params),
    ]
    if params.feel:
        parts.append(f"Feel: {params.feel}.")
    if params.text:
        parts.append(f"Details: {params.text}")

    parts.extend(CLIP_TYPE_HINTS.get(clip_type, []))

    parts.append(
        "\n".join([
            "Requirements:",
            f"- Fit exactly within {bars} bars (no notes beyond bar {bars}).",
            f"- All notes must be diatonic to {params.key or 'the chosen'} {params.mode or 'scale'}.",
            "Return STRICT JSON per schema.",
        ])
    )
    return "\n".join(parts)


def build_repair_prompt(raw: str) -> str:
    return REPAIR_USER_PREFIX + raw
