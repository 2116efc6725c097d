"""
Export tools - MCP tools for audio and MIDI export.

Tools for rendering songs to WAV and writing them as MIDI files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from chuk_mcp_chordwheel.audio import EffectSettings
from chuk_mcp_chordwheel.constants import DEFAULT_INSTRUMENT, ErrorMessages, SuccessMessages
from chuk_mcp_chordwheel.render import AudioExporter, export_midi
from chuk_mcp_chordwheel.songs import SongLoader

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def register_export_tools(
    mcp: ChukMCPServer,
    loader: SongLoader,
    exporter: AudioExporter,
    output_dir: Path,
) -> dict[str, Any]:
    """
    Register export tools with the MCP server.

    Args:
        mcp: The MCP server instance
        loader: The song loader
        exporter: Serialized WAV exporter
        output_dir: Directory for MIDI output files

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_export_wav(
        song_id: str,
        instrument: str = DEFAULT_INSTRUMENT,
        effects: dict[str, float] | None = None,
        wet: bool = True,
        output_name: str | None = None,
    ) -> str:
        """
        Render a song to a 16-bit stereo WAV file.

        The file runs two seconds past the last beat so notes and reverb
        can ring out. Exports run one at a time.

        Args:
            song_id: Song identifier
            instrument: Instrument id (e.g., 'piano', 'organ', 'pad')
            effects: Optional effect settings, e.g.
                {"reverb_mix": 0.3, "delay_mix": 0.2, "tone": -2}
            wet: Apply effects (false renders the dry instrument)
            output_name: Optional output filename (without .wav extension)

        Returns:
            JSON string with the file path and render details

        Example:
            wheel_export_wav(song_id="demo", instrument="epiano",
                             effects={"chorus_mix": 0.4})
        """
        try:
            song = await loader.get(song_id)
            if song is None:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.SONG_NOT_FOUND.format(name=song_id)}
                )

            settings = EffectSettings(**(effects or {}))
            path, result = await exporter.export_wav(
                song, settings, instrument, wet=wet, output_name=output_name or song.id
            )
            return json.dumps(
                {
                    "status": "success",
                    "path": str(path),
                    "render": {
                        "sample_rate": result.sample_rate,
                        "channels": result.channels,
                        "frames": result.frames,
                        "seconds": round(result.duration_seconds, 3),
                        "instrument": result.instrument,
                    },
                    "message": SuccessMessages.WAV_EXPORTED.format(
                        name=song.id, path=path, seconds=result.duration_seconds
                    ),
                }
            )
        except Exception as e:
            logger.exception("Failed to export WAV")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_export_wav"] = wheel_export_wav

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_export_midi(
        song_id: str,
        output_name: str | None = None,
    ) -> str:
        """
        Write a song as a MIDI file.

        One track with tempo and time signature, one note group per chord.

        Args:
            song_id: Song identifier
            output_name: Optional output filename (without .mid extension)

        Returns:
            JSON string with the file path

        Example:
            wheel_export_midi(song_id="demo")
        """
        try:
            song = await loader.get(song_id)
            if song is None:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.SONG_NOT_FOUND.format(name=song_id)}
                )

            path = export_midi(song, output_dir, output_name or song.id)
            return json.dumps(
                {
                    "status": "success",
                    "path": str(path),
                    "message": SuccessMessages.MIDI_EXPORTED.format(name=song.id, path=path),
                }
            )
        except Exception as e:
            logger.exception("Failed to export MIDI")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_export_midi"] = wheel_export_midi

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_list_instruments() -> str:
        """
        List the instruments available for export.

        Returns:
            JSON string with instrument ids and whether each is loaded
        """
        registry = exporter.renderer.registry
        return json.dumps(
            {
                "status": "success",
                "instruments": [
                    {"id": name, "state": registry.state(name).value}
                    for name in registry.instruments()
                ],
            }
        )

    tools["wheel_list_instruments"] = wheel_list_instruments

    return tools
