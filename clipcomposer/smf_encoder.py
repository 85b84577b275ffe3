"""Standard MIDI File export for validated clip documents.

The output is a format-0 file with a single track: a time-signature meta
event at tick 0, an optional program change, then note-on/note-off pairs
ordered by tick with releases ahead of attacks on the same tick.
"""

from __future__ import annotations

import io
import math
from typing import Any, List, Mapping, NamedTuple

import mido

try:
    from clip_validator import (
        NOTE_KEY_DURATION,
        NOTE_KEY_PITCH,
        NOTE_KEY_START,
        NOTE_KEY_VELOCITY,
        beats_per_bar,
    )
    from constants import (
        BEAT_UNIT,
        MIDI_CHANNEL,
        MIDI_CLOCKS_PER_CLICK,
        MIDI_MAX,
        MIDI_MIN,
        MIDI_VEL_MIN,
        NOTATED_32ND_PER_BEAT,
        TICKS_PER_BEAT,
    )
    from utils import clamp
except ImportError:
    from .clip_validator import (
        NOTE_KEY_DURATION,
        NOTE_KEY_PITCH,
        NOTE_KEY_START,
        NOTE_KEY_VELOCITY,
        beats_per_bar,
    )
    from .constants import (
        BEAT_UNIT,
        MIDI_CHANNEL,
        MIDI_CLOCKS_PER_CLICK,
        MIDI_MAX,
        MIDI_MIN,
        MIDI_VEL_MIN,
        NOTATED_32ND_PER_BEAT,
        TICKS_PER_BEAT,
    )
    from .utils import clamp

DEFAULT_NOTE_VELOCITY = 0.8

NOTE_OFF = 0
NOTE_ON = 1


class TrackEvent(NamedTuple):
    tick: int
    kind: int
    pitch: int
    velocity: int


def beat_to_tick(beat: float, ticks_per_beat: int = TICKS_PER_BEAT) -> int:
    return int(round(beat * ticks_per_beat))


def scale_velocity(value: Any) -> int:
    try:
        velocity = float(value)
    except (TypeError, ValueError):
        velocity = DEFAULT_NOTE_VELOCITY
    if not math.isfinite(velocity):
        velocity = DEFAULT_NOTE_VELOCITY
    return int(clamp(round(velocity * MIDI_MAX), MIDI_VEL_MIN, MIDI_MAX))


def build_track_events(notes: List[Mapping[str, Any]], ticks_per_beat: int = TICKS_PER_BEAT) -> List[TrackEvent]:
    events: List[TrackEvent] = []
    for note in notes:
        pitch = int(clamp(int(note[NOTE_KEY_PITCH]), MIDI_MIN, MIDI_MAX))
        start = float(note[NOTE_KEY_START])
        on_tick = beat_to_tick(start, ticks_per_beat)
        # notes last at least one tick
        off_tick = max(beat_to_tick(start + float(note[NOTE_KEY_DURATION]), ticks_per_beat), on_tick + 1)
        events.append(TrackEvent(on_tick, NOTE_ON, pitch, scale_velocity(note.get(NOTE_KEY_VELOCITY))))
        events.append(TrackEvent(off_tick, NOTE_OFF, pitch, 0))
    events.sort(key=lambda e: (e.tick, e.kind, e.pitch))
    return events


def time_signature_message(time_signature: Any) -> mido.MetaMessage:
    return mido.MetaMessage(
        "time_signature",
        numerator=beats_per_bar(time_signature),
        denominator=BEAT_UNIT,
        clocks_per_click=MIDI_CLOCKS_PER_CLICK,
        notated_32nd_notes_per_beat=NOTATED_32ND_PER_BEAT,
        time=0,
    )


def program_of(doc: Mapping[str, Any]) -> Any:
    instrument = doc.get("instrument")
    if not isinstance(instrument, Mapping):
        return None
    program = instrument.get("program")
    if isinstance(program, bool) or not isinstance(program, int):
        return None
    if not MIDI_MIN <= program <= MIDI_MAX:
        return None
    return program


def build_midi_file(doc: Mapping[str, Any], ticks_per_beat: int = TICKS_PER_BEAT) -> mido.MidiFile:
    midi = mido.MidiFile(type=0, ticks_per_beat=ticks_per_beat)
    track = mido.MidiTrack()
    midi.tracks.append(track)

    track.append(time_signature_message(doc.get("time_signature")))
    program = program_of(doc)
    if program is not None:
        track.append(mido.Message("program_change", program=program, channel=MIDI_CHANNEL, time=0))

    last_tick = 0
    for event in build_track_events(list(doc.get("notes") or []), ticks_per_beat):
        message_type = "note_on" if event.kind == NOTE_ON else "note_off"
        track.append(
            mido.Message(
                message_type,
                note=event.pitch,
                velocity=event.velocity,
                channel=MIDI_CHANNEL,
                time=event.tick - last_tick,
            )
        )
        last_tick = event.tick
    track.append(mido.MetaMessage("end_of_track", time=0))
    return midi


def encode_clip(doc: Mapping[str, Any]) -> bytes:
    buffer = io.BytesIO()
    build_midi_file(doc).save(file=buffer)
    return buffer.getvalue()

