#!/usr/bin/env python3
"""
Async Chord Wheel MCP Server using chuk-mcp-server

This server provides MCP tools built on a circle-of-fifths chord wheel.

The server provides tools for:
- Reading chords off the wheel and listing a key's diatonic chords
- Spelling and voicing chords, with extension suggestions per scale degree
- Creating songs from chord progressions
- Rendering songs to WAV through an instrument and effects chain
- Exporting songs to MIDI files
"""

import logging
import os
from pathlib import Path

from chuk_mcp_server import ChukMCPServer

from chuk_mcp_chordwheel.instruments import InstrumentRegistry
from chuk_mcp_chordwheel.render import AudioExporter, OfflineRenderer
from chuk_mcp_chordwheel.songs import SongLoader
from chuk_mcp_chordwheel.tools import (
    register_export_tools,
    register_song_tools,
    register_theory_tools,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer("chuk-mcp-chordwheel")

# Paths - use standard project structure, overridable from the environment
BASE_PATH = Path.cwd()
SONGS_DIR = Path(os.environ.get("CHORDWHEEL_SONGS_DIR", BASE_PATH / "songs"))
OUTPUT_DIR = Path(os.environ.get("CHORDWHEEL_OUTPUT_DIR", BASE_PATH / "output"))
SAMPLES_DIR = Path(os.environ.get("CHORDWHEEL_SAMPLES_DIR", BASE_PATH / "samples"))

# Create managers
instrument_registry = InstrumentRegistry(samples_dir=SAMPLES_DIR)
song_loader = SongLoader(SONGS_DIR)
audio_exporter = AudioExporter(OfflineRenderer(instrument_registry), OUTPUT_DIR)

# Register all tools
theory_tools = register_theory_tools(mcp)
song_tools = register_song_tools(mcp, song_loader)
export_tools = register_export_tools(mcp, song_loader, audio_exporter, OUTPUT_DIR)

# Export tool functions for direct access
wheel_chords_at_position = theory_tools["wheel_chords_at_position"]
wheel_diatonic_chords = theory_tools["wheel_diatonic_chords"]
wheel_key_signature = theory_tools["wheel_key_signature"]
wheel_chord_notes = theory_tools["wheel_chord_notes"]
wheel_voice_chord = theory_tools["wheel_voice_chord"]
wheel_suggest_voicings = theory_tools["wheel_suggest_voicings"]
wheel_list_qualities = theory_tools["wheel_list_qualities"]

wheel_create_song = song_tools["wheel_create_song"]
wheel_get_song = song_tools["wheel_get_song"]
wheel_list_songs = song_tools["wheel_list_songs"]

wheel_export_wav = export_tools["wheel_export_wav"]
wheel_export_midi = export_tools["wheel_export_midi"]
wheel_list_instruments = export_tools["wheel_list_instruments"]

logger.info("CHUK Chord Wheel MCP Server initialized")
logger.info(f"  Songs dir: {SONGS_DIR}")
logger.info(f"  Samples dir: {SAMPLES_DIR}")
logger.info(f"  Output dir: {OUTPUT_DIR}")
