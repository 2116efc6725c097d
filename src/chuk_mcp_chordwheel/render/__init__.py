"""
Render layer - offline audio, WAV encoding and MIDI export.
"""

from chuk_mcp_chordwheel.render.files import sanitize_filename, write_atomic
from chuk_mcp_chordwheel.render.midi import (
    TICKS_PER_BEAT,
    MidiEvent,
    events_to_midi,
    export_midi,
    song_to_midi,
    song_to_midi_events,
)
from chuk_mcp_chordwheel.render.offline import (
    AudioExporter,
    OfflineRenderer,
    RenderResult,
    song_duration,
)
from chuk_mcp_chordwheel.render.wav import HEADER_SIZE, encode_wav, to_pcm16, write_wav

__all__ = [
    "HEADER_SIZE",
    "TICKS_PER_BEAT",
    "AudioExporter",
    "MidiEvent",
    "OfflineRenderer",
    "RenderResult",
    "encode_wav",
    "events_to_midi",
    "export_midi",
    "sanitize_filename",
    "song_duration",
    "song_to_midi",
    "song_to_midi_events",
    "to_pcm16",
    "write_atomic",
    "write_wav",
]
