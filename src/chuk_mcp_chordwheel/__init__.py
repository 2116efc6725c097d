"""
chuk-mcp-chordwheel - chord-wheel composition engine.

Theory and voicing derivation, playback scheduling, offline WAV
rendering and MIDI export, exposed as MCP tools.
"""

__version__ = "0.1.0"
