from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

try:
    from constants import DEFAULT_TIME_SIGNATURE, MAX_BARS, MIDI_MAX, MIDI_MIN, MIN_BARS
except ImportError:
    from .constants import DEFAULT_TIME_SIGNATURE, MAX_BARS, MIDI_MAX, MIDI_MIN, MIN_BARS


class ComposeParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    clip_type: Optional[str] = Field(default=None, alias="clipType")
    # Loosely typed: the form posts strings and anything non-numeric falls back to the default.
    bars: Any = None
    key: Optional[str] = None
    mode: Optional[str] = None
    feel: Optional[str] = None
    text: Optional[str] = None


class Instrument(BaseModel):
    name: str = ""
    program: Optional[int] = Field(default=None, ge=MIDI_MIN, le=MIDI_MAX)


class NoteEvent(BaseModel):
    tb: float = Field(..., ge=0.0, description="Start in beats")
    db: float = Field(..., gt=0.0, description="Duration in beats")
    p: int = Field(..., ge=MIDI_MIN, le=MIDI_MAX, description="MIDI pitch")
    v: float = Field(default=0.8, description="Velocity 0-1")


class ClipDocument(BaseModel):
    time_signature: str = DEFAULT_TIME_SIGNATURE
    length_bars: int = Field(..., ge=MIN_BARS, le=MAX_BARS)
    clip_type: Optional[str] = None
    key: Optional[str] = None
    mode: Optional[str] = None
    instrument: Optional[Instrument] = None
    notes: List[NoteEvent] = Field(default_factory=list)
