#!/usr/bin/env python3
"""
Utilities for turning MIDI melodies into reference trajectories.

A trajectory holds one frequency per tick, so we replay the MIDI file on the
tick grid and read off the highest sounding note at every tick. Ticks with
nothing sounding become 0.0, the same value the pitch extractor reports for
silence.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import os

import mido

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


def midi_to_note_name(midi_note: int) -> str:
    octave = (midi_note // 12) - 1
    name = NOTE_NAMES[midi_note % 12]
    return f"{name}{octave}"


def midi_to_frequency(midi_note: int) -> float:
    return 440.0 * (2.0 ** ((midi_note - 69) / 12.0))


@dataclass
class SoundingChange:
    """Top sounding note from time_sec onward (None = silence)."""
    time_sec: float
    midi_note: Optional[int]


def _sounding_changes(midi_file) -> List[SoundingChange]:
    """Replay the merged tracks and record each change of the top note.

    Iterating a MidiFile yields messages with ``time`` already converted to
    seconds, tempo changes included.
    """
    changes: List[SoundingChange] = []
    active: Dict[int, int] = {}  # midi note -> number of overlapping note_ons
    now = 0.0

    for msg in midi_file:
        now += msg.time
        if msg.type == "note_on" and msg.velocity > 0:
            active[msg.note] = active.get(msg.note, 0) + 1
        elif msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
            remaining = active.get(msg.note, 0) - 1
            if remaining > 0:
                active[msg.note] = remaining
            else:
                active.pop(msg.note, None)
        else:
            continue

        top = max(active) if active else None
        if changes and changes[-1].time_sec == now:
            changes[-1] = SoundingChange(time_sec=now, midi_note=top)
        elif not changes or changes[-1].midi_note != top:
            changes.append(SoundingChange(time_sec=now, midi_note=top))

    return changes


def sample_midi_melody(midi_path: str, interval_ms: float = 100.0) -> List[float]:
    """Sample a MIDI file into a Hz trajectory at ``interval_ms`` cadence.

    The trajectory starts at the first note_on and ends at the last change
    (normally the final note_off).
    """
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be positive, got {interval_ms}")
    if not os.path.exists(midi_path):
        raise FileNotFoundError(midi_path)

    midi = mido.MidiFile(midi_path)
    changes = _sounding_changes(midi)
    if not any(c.midi_note is not None for c in changes):
        raise ValueError(f"No note events found in MIDI: {midi_path}")

    cursor = next(i for i, c in enumerate(changes) if c.midi_note is not None)
    start = changes[cursor].time_sec
    end = changes[-1].time_sec
    step = interval_ms / 1000.0
    tick_count = max(1, int(round((end - start) / step)))

    frequencies: List[float] = []
    for tick in range(tick_count):
        t = start + tick * step
        # Small epsilon so a change landing exactly on the grid is picked up
        while cursor + 1 < len(changes) and changes[cursor + 1].time_sec <= t + 1e-9:
            cursor += 1
        note = changes[cursor].midi_note
        frequencies.append(round(midi_to_frequency(note), 2) if note is not None else 0.0)

    return frequencies
