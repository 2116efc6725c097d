"""
Voicing - turn a chord's pitch classes into concrete pitches.

Rules:
1. The root sits in the base octave (3 by default).
2. A later note whose pitch class sorts below the root's is lifted an
   octave, so the chord stacks upward from the root.
3. The fifth voiced note goes at least one octave above the base and
   anything after it at least two, which spreads ninths, elevenths and
   thirteenths above the core triad/seventh.

Notes that already name an octave pass through unchanged.
Stateless and deterministic.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from chuk_mcp_chordwheel.constants import BASE_OCTAVE

from .pitch import Note

if TYPE_CHECKING:
    from .chord import Chord


def voice(notes: Sequence[str], root_octave: int = BASE_OCTAVE) -> list[str]:
    """
    Assign octaves to a chord's notes.

    Args:
        notes: Spelled notes, root first (e.g. ["C", "E", "G", "Bb"])
        root_octave: Octave for the root when it has none

    Returns:
        Notes with octaves, e.g. ["C3", "E3", "G3", "Bb3"]

    Examples:
        voice(["A", "C", "E"])              -> ["A3", "C4", "E4"]
        voice(["C", "E", "G", "B", "D"])    -> ["C3", "E3", "G3", "B3", "D4"]
    """
    if not notes:
        return []

    parsed = [Note.parse(n) for n in notes]
    root = parsed[0]
    base = root.octave if root.octave is not None else root_octave

    voiced: list[str] = []
    for index, note in enumerate(parsed):
        if note.has_octave:
            voiced.append(str(note))
            continue

        if index == 0:
            octave = base
        elif index >= 5:
            octave = base + 2
        elif index == 4:
            octave = base + 1
        elif note.pitch_class < root.pitch_class:
            octave = base + 1
        else:
            octave = base
        voiced.append(str(note.at_octave(octave)))

    return voiced


def to_midi_notes(voiced: Sequence[str]) -> list[int]:
    """MIDI numbers for voiced notes."""
    return [Note.parse(n).to_midi() for n in voiced]


def voice_chord(chord: Chord, root_octave: int = BASE_OCTAVE) -> list[int]:
    """Voice a chord straight to MIDI numbers."""
    return to_midi_notes(voice(chord.notes, root_octave))
