"""
Core theory primitives - the layer everything else composes on:
- PitchClass / Note: chromatic pitches and spelled notes
- Key / KeySignature: major keys on the circle of fifths
- ChordQuality / Chord: interval formulas and materialized chords
- Wheel: chords per wheel position and diatonic membership
- Voicing: pitch classes to concrete octaves
- TimeSignature: measure lengths in beats
"""

from chuk_mcp_chordwheel.core.chord import (
    Chord,
    ChordQuality,
    build_chord,
    chord_notes,
    chord_notes_or_fallback,
    parse_chord_symbol,
)
from chuk_mcp_chordwheel.core.key import CIRCLE_OF_FIFTHS, Key, KeySignature
from chuk_mcp_chordwheel.core.pitch import Accidental, Interval, Note, PitchClass
from chuk_mcp_chordwheel.core.rhythm import TimeSignature
from chuk_mcp_chordwheel.core.voicing import to_midi_notes, voice, voice_chord
from chuk_mcp_chordwheel.core.wheel import (
    DiatonicEntry,
    WheelChords,
    chords_at_wheel_position,
    diatonic_membership,
    is_diatonic,
    key_from_position,
    key_position,
    key_signature,
    voicing_suggestions,
    wheel_rotation,
)

__all__ = [
    # Pitch
    "Accidental",
    "Interval",
    "Note",
    "PitchClass",
    # Key
    "CIRCLE_OF_FIFTHS",
    "Key",
    "KeySignature",
    # Chord
    "Chord",
    "ChordQuality",
    "build_chord",
    "chord_notes",
    "chord_notes_or_fallback",
    "parse_chord_symbol",
    # Wheel
    "DiatonicEntry",
    "WheelChords",
    "chords_at_wheel_position",
    "diatonic_membership",
    "is_diatonic",
    "key_from_position",
    "key_position",
    "key_signature",
    "voicing_suggestions",
    "wheel_rotation",
    # Voicing
    "to_midi_notes",
    "voice",
    "voice_chord",
    # Rhythm
    "TimeSignature",
]
