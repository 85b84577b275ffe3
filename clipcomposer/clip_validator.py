from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

try:
    from constants import (
        BEATS_PER_BAR_QUADRUPLE,
        BEATS_PER_BAR_TRIPLE,
        DEFAULT_CLIP_TYPE,
        DEFAULT_TIME_SIGNATURE,
        MAX_BARS,
        MIDI_MAX,
        MIDI_MIN,
        MIN_BARS,
        TRIPLE_METER_PREFIX,
    )
    from errors import ScaleViolationError, SchemaError
    from logger_config import logger
    from music_theory import build_scale, is_in_scale, nearest_in_scale, pitch_to_note
    from utils import clamp, finite_number, positive_number
except ImportError:
    from .constants import (
        BEATS_PER_BAR_QUADRUPLE,
        BEATS_PER_BAR_TRIPLE,
        DEFAULT_CLIP_TYPE,
        DEFAULT_TIME_SIGNATURE,
        MAX_BARS,
        MIDI_MAX,
        MIDI_MIN,
        MIN_BARS,
        TRIPLE_METER_PREFIX,
    )
    from .errors import ScaleViolationError, SchemaError
    from .logger_config import logger
    from .music_theory import build_scale, is_in_scale, nearest_in_scale, pitch_to_note
    from .utils import clamp, finite_number, positive_number

SCHEMA_KEY_NOTES = "notes"
SCHEMA_KEY_TIME_SIGNATURE = "time_signature"
SCHEMA_KEY_LENGTH_BARS = "length_bars"
SCHEMA_KEY_CLIP_TYPE = "clip_type"
SCHEMA_KEY_KEY = "key"
SCHEMA_KEY_MODE = "mode"
SCHEMA_KEY_SNAPPED_INFO = "_snapped_info"
SCHEMA_KEY_DROPPED_INFO = "_dropped_info"

NOTE_KEY_START = "tb"
NOTE_KEY_DURATION = "db"
NOTE_KEY_PITCH = "p"
NOTE_KEY_VELOCITY = "v"

SNAP_INFO_MODE = "snap_to_scale"


class ScalePolicy(str, Enum):
    SNAP = "snap"
    STRICT = "strict"
    OFF = "off"


def validate_schema(doc: Any) -> None:
    if not isinstance(doc, dict):
        raise SchemaError([SCHEMA_KEY_NOTES, SCHEMA_KEY_TIME_SIGNATURE, SCHEMA_KEY_LENGTH_BARS])
    missing: List[str] = []
    if not isinstance(doc.get(SCHEMA_KEY_NOTES), list):
        missing.append(SCHEMA_KEY_NOTES)
    if not doc.get(SCHEMA_KEY_TIME_SIGNATURE):
        missing.append(SCHEMA_KEY_TIME_SIGNATURE)
    if doc.get(SCHEMA_KEY_LENGTH_BARS) is None:
        missing.append(SCHEMA_KEY_LENGTH_BARS)
    if missing:
        raise SchemaError(missing)


def beats_per_bar(time_signature: Any) -> int:
    if isinstance(time_signature, str) and time_signature.strip().startswith(TRIPLE_METER_PREFIX):
        return BEATS_PER_BAR_TRIPLE
    return BEATS_PER_BAR_QUADRUPLE


def resolve_length_bars(value: Any, requested_bars: int) -> int:
    # whole bars within MIN_BARS..MAX_BARS, else the requested count
    bars = positive_number(value)
    if bars is None or not bars.is_integer() or not MIN_BARS <= bars <= MAX_BARS:
        return int(clamp(requested_bars, MIN_BARS, MAX_BARS))
    return int(bars)


def admit_note(note: Any, total_beats: float) -> Optional[Dict[str, Any]]:
    if not isinstance(note, dict):
        return None
    start = finite_number(note.get(NOTE_KEY_START))
    duration = finite_number(note.get(NOTE_KEY_DURATION))
    pitch = finite_number(note.get(NOTE_KEY_PITCH))
    if start is None or start < 0:
        return None
    if duration is None or duration <= 0:
        return None
    if pitch is None or not pitch.is_integer() or not MIDI_MIN <= pitch <= MIDI_MAX:
        return None
    if start + duration > total_beats:
        return None
    admitted = dict(note)
    admitted[NOTE_KEY_PITCH] = int(pitch)
    return admitted


def clamp_temporal(
    doc: Dict[str, Any],
    requested_bars: int,
    clip_type: Optional[str] = None,
    key: Optional[str] = None,
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    """Fill missing header fields and keep only notes that fit inside the clip.

    Notes are admitted or dropped as they are; timing is never shifted or
    truncated. Request values only fill fields the candidate left out.
    """
    length_bars = resolve_length_bars(doc.get(SCHEMA_KEY_LENGTH_BARS), requested_bars)
    total_beats = length_bars * beats_per_bar(doc.get(SCHEMA_KEY_TIME_SIGNATURE))

    if not doc.get(SCHEMA_KEY_CLIP_TYPE):
        doc[SCHEMA_KEY_CLIP_TYPE] = clip_type or DEFAULT_CLIP_TYPE
    doc[SCHEMA_KEY_LENGTH_BARS] = length_bars
    if not doc.get(SCHEMA_KEY_TIME_SIGNATURE):
        doc[SCHEMA_KEY_TIME_SIGNATURE] = DEFAULT_TIME_SIGNATURE
    if key and not doc.get(SCHEMA_KEY_KEY):
        doc[SCHEMA_KEY_KEY] = key
    if mode and not doc.get(SCHEMA_KEY_MODE):
        doc[SCHEMA_KEY_MODE] = mode

    raw_notes = doc.get(SCHEMA_KEY_NOTES)
    if not isinstance(raw_notes, list):
        raw_notes = []
    notes = []
    for note in raw_notes:
        admitted = admit_note(note, total_beats)
        if admitted is not None:
            notes.append(admitted)
    doc[SCHEMA_KEY_NOTES] = notes

    dropped = len(raw_notes) - len(notes)
    if dropped:
        logger.info("Dropped %d of %d notes outside %s beats", dropped, len(raw_notes), total_beats)
        doc[SCHEMA_KEY_DROPPED_INFO] = {"dropped_count": dropped}
    return doc


def enforce_scale_conformance(doc: Dict[str, Any], policy: ScalePolicy = ScalePolicy.SNAP) -> Dict[str, Any]:
    key = doc.get(SCHEMA_KEY_KEY)
    mode = doc.get(SCHEMA_KEY_MODE)
    scale = build_scale(key, mode) if key and mode else None
    if scale is None or policy == ScalePolicy.OFF:
        return doc

    notes = doc.get(SCHEMA_KEY_NOTES, [])
    if policy == ScalePolicy.STRICT:
        bad = [n for n in notes if not is_in_scale(n[NOTE_KEY_PITCH], scale)]
        if bad:
            logger.warning("Rejecting clip: %d notes outside %s %s", len(bad), key, mode)
            raise ScaleViolationError(len(bad), key, mode)
        return doc

    snapped_count = 0
    snapped_notes = []
    for note in notes:
        pitch = note[NOTE_KEY_PITCH]
        if is_in_scale(pitch, scale):
            snapped_notes.append(note)
            continue
        new_pitch = nearest_in_scale(pitch, scale)
        if new_pitch != pitch:
            snapped_count += 1
            logger.debug("Snapped %s -> %s at beat %s", pitch_to_note(pitch), pitch_to_note(new_pitch), note.get(NOTE_KEY_START))
        snapped_notes.append({**note, NOTE_KEY_PITCH: new_pitch})
    doc[SCHEMA_KEY_NOTES] = snapped_notes

    if snapped_count > 0:
        logger.info("Snapped %d notes to %s %s", snapped_count, key, mode)
        doc[SCHEMA_KEY_SNAPPED_INFO] = {"snapped_count": snapped_count, "mode": SNAP_INFO_MODE}
    return doc


def validate_clip(
    doc: Any,
    requested_bars: int,
    policy: ScalePolicy = ScalePolicy.SNAP,
    clip_type: Optional[str] = None,
    key: Optional[str] = None,
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    validate_schema(doc)
    doc = clamp_temporal(doc, requested_bars, clip_type=clip_type, key=key, mode=mode)
    return enforce_scale_conformance(doc, policy)
