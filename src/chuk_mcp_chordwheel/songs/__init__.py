"""
Song files.
"""

from chuk_mcp_chordwheel.songs.loader import SongLoader, SongMetadata

__all__ = ["SongLoader", "SongMetadata"]
