"""
Pydantic models for the chord-wheel engine.

This module provides:
- Song: Complete song model (key, tempo, sections)
- Section: Structural segment with optional time signature override
- Measure: Beats filling one bar
- Beat: A chord or a rest with an exact duration
- SongEvent: A beat placed on the song timeline
"""

from chuk_mcp_chordwheel.models.song import Beat, Measure, Section, Song, SongEvent

__all__ = [
    "Beat",
    "Measure",
    "Section",
    "Song",
    "SongEvent",
]
