"""
Playback layer - transport, scheduler and live monitoring.
"""

from chuk_mcp_chordwheel.playback.monitor import LiveMonitor
from chuk_mcp_chordwheel.playback.scheduler import (
    NoteGroup,
    PlaybackScheduler,
    PlaybackState,
    ScheduledChord,
    VoiceSink,
)
from chuk_mcp_chordwheel.playback.transport import ScheduledTrigger, Transport

__all__ = [
    "LiveMonitor",
    "NoteGroup",
    "PlaybackScheduler",
    "PlaybackState",
    "ScheduledChord",
    "ScheduledTrigger",
    "Transport",
    "VoiceSink",
]
