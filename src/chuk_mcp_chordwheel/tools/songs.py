"""
Song tools - MCP tools for song files.

Tools for listing, reading and creating songs.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from chuk_mcp_chordwheel.constants import ErrorMessages
from chuk_mcp_chordwheel.songs import SongLoader

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def register_song_tools(mcp: ChukMCPServer, loader: SongLoader) -> dict[str, Any]:
    """
    Register song tools with the MCP server.

    Args:
        mcp: The MCP server instance
        loader: The song loader

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_create_song(
        song_id: str,
        chords: list[str | None],
        key: str = "C",
        tempo: int = 120,
        time_signature: str = "4/4",
        beats_per_chord: float = 1,
        title: str | None = None,
        save: bool = True,
    ) -> str:
        """
        Create a one-section song from a chord progression.

        Chords are symbols ('C', 'Am7', 'F#m7b5'); use '-' or null for a
        rest. The progression must fill whole measures.

        Args:
            song_id: Song identifier
            chords: Chord symbols in order
            key: Song key (default: 'C')
            tempo: Tempo in BPM (default: 120)
            time_signature: Time signature (default: '4/4')
            beats_per_chord: Length of each chord in beats (default: 1)
            title: Optional title (defaults to the id)
            save: Write the song file (default: true)

        Returns:
            JSON string with the created song summary

        Example:
            wheel_create_song(song_id="demo", chords=["C", "Am", "F", "G"])
        """
        try:
            song = await loader.create(
                song_id,
                chords,
                key=key,
                tempo=tempo,
                time_signature=time_signature,
                title=title,
                beats_per_chord=beats_per_chord,
            )
            path = await loader.save(song) if save else None
            return json.dumps(
                {
                    "status": "success",
                    "song": {
                        "id": song.id,
                        "title": song.title,
                        "key": song.key,
                        "tempo": song.tempo,
                        "total_beats": str(song.total_beats),
                    },
                    "path": str(path) if path else None,
                    "message": f"Created song '{song.id}' in {song.key}",
                }
            )
        except Exception as e:
            logger.exception("Failed to create song")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_create_song"] = wheel_create_song

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_get_song(song_id: str) -> str:
        """
        Get a song in its YAML form.

        Args:
            song_id: Song identifier

        Returns:
            JSON string with the full song

        Example:
            wheel_get_song(song_id="demo")
        """
        try:
            song = await loader.get(song_id)
            if song is None:
                return json.dumps(
                    {"status": "error", "message": ErrorMessages.SONG_NOT_FOUND.format(name=song_id)}
                )
            return json.dumps({"status": "success", "song": song.to_yaml_dict()})
        except Exception as e:
            logger.exception("Failed to get song")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_get_song"] = wheel_get_song

    @mcp.tool  # type: ignore[arg-type]
    async def wheel_list_songs() -> str:
        """
        List the song files in the songs directory.

        Returns:
            JSON string with song ids, keys and tempos, newest first
        """
        try:
            songs = await loader.list_songs()
            return json.dumps(
                {
                    "status": "success",
                    "songs": [
                        {
                            "id": meta.id,
                            "title": meta.title,
                            "key": meta.key,
                            "tempo": meta.tempo,
                            "sections": meta.section_count,
                            "modified": meta.modified.isoformat(),
                        }
                        for meta in songs
                    ],
                    "count": len(songs),
                }
            )
        except Exception as e:
            logger.exception("Failed to list songs")
            return json.dumps({"status": "error", "message": str(e)})

    tools["wheel_list_songs"] = wheel_list_songs

    return tools
