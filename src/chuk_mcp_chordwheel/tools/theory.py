"""
Theory tools - MCP tools for the chord wheel itself.

Tools for reading chords off the wheel, listing a key's diatonic chords,
spelling and voicing chords.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from chuk_mcp_chordwheel.core import (
    Chord,
    ChordQuality,
    Note,
    chord_notes_or_fallback,
    chords_at_wheel_position,
    diatonic_membership,
    key_from_position,
    key_position,
    key_signature,
    parse_chord_symbol,
    voice,
    voicing_suggestions,
    wheel_rotation,
)
from chuk_mcp_chordwheel.core.voicing import to_midi_notes
from chuk_mcp_chordwheel.errors import UnknownChordQuality

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def chord_to_dict(chord: Chord) -> dict[str, Any]:
    """JSON-friendly view of a chord."""
    return {
        "symbol": chord.symbol,
        "root": chord.root_name,
        "quality": chord.quality,
        "notes": list(chord.notes),
        "numeral": chord.numeral,
    }


def register_theory_tools(mcp: ChukMCPServer) -> dict[str, Any]:
    """
    Register chord-wheel theory tools with the MCP server.

    Args:
        mcp: The MCP server instance

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_chords_at_position(position: int) -> str:
        """
        Get the three chords at a wheel position.

        Position 0 is C and each step clockwise is a fifth up
        (C G D A E B F# Db Ab Eb Bb F).

        Args:
            position: Wheel position 0-11

        Returns:
            JSON string with the major, minor and diminished chords

        Example:
            wheel_chords_at_position(position=1)
        """
        try:
            chords = chords_at_wheel_position(position)
            return json.dumps(
                {
                    "status": "success",
                    "position": position,
                    "key": key_from_position(position).name,
                    "major": chord_to_dict(chords.major),
                    "minor": chord_to_dict(chords.minor),
                    "diminished": chord_to_dict(chords.diminished),
                }
            )
        except Exception as e:
            logger.exception("Failed to read wheel position")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_chords_at_position"] = wheel_chords_at_position

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_diatonic_chords(key: str) -> str:
        """
        List the seven diatonic chords of a key and where they sit on the wheel.

        Args:
            key: Major key (e.g., 'C', 'Eb', 'F# major') or minor key ('Am'),
                which resolves to its relative major

        Returns:
            JSON string with I ii iii IV V vi vii° and their wheel positions

        Example:
            wheel_diatonic_chords(key="G")
        """
        try:
            entries = diatonic_membership(key)
            return json.dumps(
                {
                    "status": "success",
                    "key": entries[0].chord.root_name,
                    "position": key_position(key),
                    "rotation": wheel_rotation(key),
                    "chords": [
                        {
                            "numeral": entry.numeral,
                            "position": entry.position,
                            "ring": entry.ring.value,
                            **chord_to_dict(entry.chord),
                        }
                        for entry in entries
                    ],
                }
            )
        except Exception as e:
            logger.exception("Failed to list diatonic chords")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_diatonic_chords"] = wheel_diatonic_chords

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_key_signature(key: str) -> str:
        """
        Get the key signature of a major key.

        Args:
            key: Key name (e.g., 'D', 'Bb')

        Returns:
            JSON string with the number of sharps and flats

        Example:
            wheel_key_signature(key="Eb")
        """
        try:
            signature = key_signature(key)
            return json.dumps(
                {
                    "status": "success",
                    "key": key,
                    "sharps": signature.sharps,
                    "flats": signature.flats,
                    "signature": str(signature),
                }
            )
        except Exception as e:
            logger.exception("Failed to compute key signature")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_key_signature"] = wheel_key_signature

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_chord_notes(
        root: str,
        quality: str = "major",
        key: str | None = None,
    ) -> str:
        """
        Spell the notes of a chord.

        Unknown qualities fall back to the major triad; the response then
        carries a warning naming the quality that was not recognized.

        Args:
            root: Chord root (e.g., 'F#', 'Bb')
            quality: Quality name or symbol (e.g., 'minor7', 'm7', 'sus4')
            key: Optional key whose accidentals decide the spelling

        Returns:
            JSON string with the spelled notes

        Example:
            wheel_chord_notes(root="D", quality="dominant7", key="G")
        """
        try:
            notes, error = chord_notes_or_fallback(root, quality, key)
            result: dict[str, Any] = {
                "status": "success",
                "root": root,
                "quality": quality if error is None else "major",
                "notes": notes,
            }
            if error is not None:
                result["warning"] = str(error)
            return json.dumps(result)
        except Exception as e:
            logger.exception("Failed to spell chord")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_chord_notes"] = wheel_chord_notes

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_voice_chord(
        chord: str,
        root_octave: int = 3,
        key: str | None = None,
    ) -> str:
        """
        Voice a chord symbol across octaves.

        The root sits in root_octave, later notes never sound below it,
        and extensions (the 5th note onward) are lifted higher.

        Args:
            chord: Chord symbol (e.g., 'Cmaj7', 'F#m7b5', 'G13')
            root_octave: Octave of the root (default: 3)
            key: Optional key for spelling

        Returns:
            JSON string with octave-annotated notes and MIDI numbers

        Example:
            wheel_voice_chord(chord="Dm9", root_octave=3)
        """
        try:
            parsed = parse_chord_symbol(chord, key=key)
            voiced = voice(parsed.notes, root_octave)
            return json.dumps(
                {
                    "status": "success",
                    "chord": chord_to_dict(parsed),
                    "voicing": voiced,
                    "midi": to_midi_notes(voiced),
                    "frequencies": [round(Note.parse(n).frequency, 2) for n in voiced],
                }
            )
        except UnknownChordQuality as e:
            return json.dumps({"status": "error", "message": str(e), "fallback": e.fallback})
        except Exception as e:
            logger.exception("Failed to voice chord")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_voice_chord"] = wheel_voice_chord

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_suggest_voicings(numeral: str) -> str:
        """
        Suggest chord extensions for a scale degree.

        Args:
            numeral: Roman numeral (e.g., 'I', 'ii', 'V', 'vii°')

        Returns:
            JSON string with suggested qualities and their symbols

        Example:
            wheel_suggest_voicings(numeral="V")
        """
        try:
            suggestions = voicing_suggestions(numeral)
            return json.dumps(
                {
                    "status": "success",
                    "numeral": numeral,
                    "suggestions": [
                        {"quality": q.name, "symbol": q.symbol}
                        for q in (ChordQuality.lookup(s) for s in suggestions)
                    ],
                }
            )
        except Exception as e:
            logger.exception("Failed to suggest voicings")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_suggest_voicings"] = wheel_suggest_voicings

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_list_qualities() -> str:
        """
        List every chord quality the wheel knows.

        Returns:
            JSON string with quality names, symbols and intervals
        """
        return json.dumps(
            {
                "status": "success",
                "qualities": [
                    {
                        "name": q.name,
                        "symbol": q.symbol,
                        "intervals": [i.semitones for i in q.intervals],
                    }
                    for q in ChordQuality.all()
                ],
            }
        )

    tools["wheel_list_qualities"] = wheel_list_qualities

    return tools
