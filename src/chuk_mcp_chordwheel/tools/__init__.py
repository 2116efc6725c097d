"""
MCP tool implementations.

Tools are organized by domain:
- theory - Wheel positions, diatonic chords, spelling and voicing
- songs - Song files
- export - WAV and MIDI export
"""

from chuk_mcp_chordwheel.tools.export import register_export_tools
from chuk_mcp_chordwheel.tools.songs import register_song_tools
from chuk_mcp_chordwheel.tools.theory import register_theory_tools

__all__ = [
    "register_export_tools",
    "register_song_tools",
    "register_theory_tools",
]
