"""
Constants and enums for the chord-wheel engine.

No magic strings - use enums and Literal types for constrained values.
"""

from enum import Enum
from typing import Literal

# Audio rendering defaults
SAMPLE_RATE = 44100
CHANNELS = 2
BITS_PER_SAMPLE = 16
TAIL_SECONDS = 2.0  # Release/reverb ring-out appended to every export
RENDER_BLOCK_FRAMES = 4096
LIMITER_THRESHOLD_DB = -3.0

# Voicing
BASE_OCTAVE = 3

# Playback
DEFAULT_TEMPO = 120
DEFAULT_VELOCITY = 100
DEFAULT_INSTRUMENT = "piano"

# MIDI export: standard ticks per beat (quarter note)
TICKS_PER_BEAT = 480


class WheelRing(str, Enum):
    """The three concentric rings of the chord wheel."""

    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "diminished"


class PlaybackStatus(str, Enum):
    """Transport status."""

    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class SectionType(str, Enum):
    """Song section types."""

    INTRO = "intro"
    VERSE = "verse"
    PRE_CHORUS = "pre-chorus"
    CHORUS = "chorus"
    BRIDGE = "bridge"
    OUTRO = "outro"
    CUSTOM = "custom"


OscillatorType = Literal["sine", "triangle", "sawtooth", "square"]

SchemaVersion = Literal["song/v1"]


class ErrorMessages:
    """Standardized error messages."""

    SONG_NOT_FOUND = "Song '{name}' not found."
    SECTION_NOT_FOUND = "Section '{section}' not found in song."
    INVALID_POSITION = "Invalid wheel position: {position}. Must be between 0 and 11."


class SuccessMessages:
    """Standardized success messages."""

    WAV_EXPORTED = "Exported '{name}' to {path} ({seconds:.2f}s)."
    MIDI_EXPORTED = "Exported '{name}' to {path}."
