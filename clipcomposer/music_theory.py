from __future__ import annotations

from typing import FrozenSet, List, NamedTuple, Optional, Tuple

try:
    from constants import MAX_SCALE_SEARCH, SEMITONES_PER_OCTAVE
except ImportError:
    from .constants import MAX_SCALE_SEARCH, SEMITONES_PER_OCTAVE

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_NAMES_FLAT = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

NOTE_TO_PC = {
    "C": 0, "C#": 1, "Db": 1, "D": 2, "D#": 3, "Eb": 3,
    "E": 4, "F": 5, "F#": 6, "Gb": 6,
    "G": 7, "G#": 8, "Ab": 8, "A": 9, "A#": 10, "Bb": 10,
    "B": 11,
}

DEFAULT_MODE = "major"

MODE_INTERVALS = {
    "major": (0, 2, 4, 5, 7, 9, 11),
    "minor": (0, 2, 3, 5, 7, 8, 10),
    "dorian": (0, 2, 3, 5, 7, 9, 10),
    "mixolydian": (0, 2, 4, 5, 7, 9, 10),
}

# Keys whose conventional spelling uses flats.
FLAT_KEYS = {"F", "Bb", "Eb", "Ab", "Db", "Gb"}


class Scale(NamedTuple):
    root: int
    degrees: Tuple[int, ...]
    members: FrozenSet[int]


def normalize_pitch_class(n: int) -> int:
    return ((n % SEMITONES_PER_OCTAVE) + SEMITONES_PER_OCTAVE) % SEMITONES_PER_OCTAVE


def pitch_to_note(pitch: int) -> str:
    octave = (pitch // SEMITONES_PER_OCTAVE) - 1
    return f"{NOTE_NAMES[normalize_pitch_class(pitch)]}{octave}"


def resolve_mode(mode: Optional[str]) -> str:
    name = str(mode or "").strip().lower()
    return name if name in MODE_INTERVALS else DEFAULT_MODE


def build_scale(key: Optional[str], mode: Optional[str]) -> Optional[Scale]:
    """Scale for ``key``/``mode``, or ``None`` when the key is not a known letter name.

    Unknown modes fall back to major; an unknown key means no scale constraint.
    """
    if not isinstance(key, str):
        return None
    root = NOTE_TO_PC.get(key.strip())
    if root is None:
        return None
    degrees = MODE_INTERVALS[resolve_mode(mode)]
    members = frozenset((root + d) % SEMITONES_PER_OCTAVE for d in degrees)
    return Scale(root=root, degrees=degrees, members=members)


def is_in_scale(pitch: int, scale: Optional[Scale]) -> bool:
    if scale is None:
        return True
    return normalize_pitch_class(pitch) in scale.members


def nearest_in_scale(pitch: int, scale: Optional[Scale]) -> int:
    """Closest in-scale pitch, checking below before above at equal distance."""
    if scale is None or is_in_scale(pitch, scale):
        return pitch
    for offset in range(1, MAX_SCALE_SEARCH + 1):
        if normalize_pitch_class(pitch - offset) in scale.members:
            return pitch - offset
        if normalize_pitch_class(pitch + offset) in scale.members:
            return pitch + offset
    return pitch


def get_scale_note_names(scale: Scale, key: str = "") -> List[str]:
    names = NOTE_NAMES_FLAT if key.strip() in FLAT_KEYS else NOTE_NAMES
    return [names[(scale.root + d) % SEMITONES_PER_OCTAVE] for d in scale.degrees]
