"""
Song loader - reads song YAML files and keeps parsed songs in a cache.

Songs are files named `<id>.song.yaml` in the songs directory. The
engine never edits a loaded song; `create` and `save` exist so a chord
progression can be turned into a song file from the tool layer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from fractions import Fraction
from pathlib import Path

import yaml

from chuk_mcp_chordwheel.constants import DEFAULT_TEMPO
from chuk_mcp_chordwheel.core.chord import parse_chord_symbol
from chuk_mcp_chordwheel.core.key import Key
from chuk_mcp_chordwheel.core.rhythm import TimeSignature, to_fraction
from chuk_mcp_chordwheel.models.song import Beat, Measure, Section, Song, guess_section_type
from chuk_mcp_chordwheel.render.files import sanitize_filename

logger = logging.getLogger(__name__)

SONG_SUFFIX = ".song.yaml"


class SongMetadata:
    """Lightweight metadata for listing songs."""

    def __init__(
        self,
        id: str,
        path: Path,
        title: str,
        key: str,
        tempo: int,
        section_count: int,
        modified: datetime,
    ):
        self.id = id
        self.path = path
        self.title = title
        self.key = key
        self.tempo = tempo
        self.section_count = section_count
        self.modified = modified

    def __repr__(self) -> str:
        return f"SongMetadata({self.id!r}, {self.key}, {self.tempo}bpm)"


class SongLoader:
    """
    Loads songs by id from a directory of YAML files.

    Example:
        loader = SongLoader(Path("songs"))
        song = await loader.get("demo")
    """

    def __init__(self, songs_dir: Path, strict: bool = False):
        """
        Args:
            songs_dir: Directory holding `*.song.yaml` files
            strict: Raise on unknown chord qualities instead of falling back
        """
        self.songs_dir = songs_dir
        self.strict = strict
        self._cache: dict[str, Song] = {}

    async def get(self, song_id: str) -> Song | None:
        """Get a song from the cache, or from its file; None if neither exists."""
        if song_id in self._cache:
            return self._cache[song_id]

        path = self._get_path(song_id)
        if path.exists():
            return await self.load(path)

        return None

    async def load(self, path: Path) -> Song:
        """Parse a song file and cache it under its id."""
        with open(path) as f:
            data = yaml.safe_load(f)

        song = Song.from_yaml_dict(data, strict=self.strict)
        self._cache[song.id] = song
        logger.debug(f"Loaded song '{song.id}' from {path}")
        return song

    async def save(self, song: Song) -> Path:
        """Write a song to `<songs_dir>/<id>.song.yaml`."""
        self.songs_dir.mkdir(parents=True, exist_ok=True)
        path = self._get_path(song.id)

        with open(path, "w") as f:
            yaml.safe_dump(song.to_yaml_dict(), f, default_flow_style=False, sort_keys=False)

        self._cache[song.id] = song
        return path

    async def create(
        self,
        song_id: str,
        chords: list[str | None],
        key: str = "C",
        tempo: int = DEFAULT_TEMPO,
        time_signature: str = "4/4",
        title: str | None = None,
        beats_per_chord: float | str = 1,
        section_name: str = "Verse 1",
    ) -> Song:
        """
        Build a one-section song from a list of chord symbols.

        None (or "-") in the list is a rest. The chords are split into
        measures of the time signature, so their total length must fill
        whole measures.
        """
        ts = TimeSignature.parse(time_signature)
        song_key = Key.parse(key)
        duration = to_fraction(beats_per_chord)

        measures: list[Measure] = []
        beats: list[Beat] = []
        filled = Fraction(0)
        for index, symbol in enumerate(chords, start=1):
            chord = None if symbol in (None, "-") else parse_chord_symbol(symbol, key=song_key)
            beats.append(Beat(id=f"b{index}", chord=chord, duration=duration))
            filled += duration
            if filled == ts.beats_per_measure:
                measures.append(Measure(id=f"m{len(measures) + 1}", beats=beats))
                beats, filled = [], Fraction(0)
            elif filled > ts.beats_per_measure:
                raise ValueError(
                    f"Chord {index} crosses the end of measure {len(measures) + 1} "
                    f"({ts.numerator}/{ts.denominator})"
                )
        if beats:
            raise ValueError(
                f"Chords fill {filled} of {ts.beats_per_measure} beats in the last measure"
            )

        song = Song(
            id=song_id,
            title=title or song_id,
            key=song_key.name,
            tempo=tempo,
            time_signature=ts,
            sections=[
                Section(
                    id="s1",
                    name=section_name,
                    type=guess_section_type(section_name),
                    measures=measures,
                )
            ],
        )
        self._cache[song.id] = song
        return song

    async def list_songs(self) -> list[SongMetadata]:
        """List the song files in the directory, newest first."""
        if not self.songs_dir.exists():
            return []

        result = []
        for path in self.songs_dir.glob(f"*{SONG_SUFFIX}"):
            try:
                with open(path) as f:
                    data = yaml.safe_load(f)

                result.append(
                    SongMetadata(
                        id=str(data.get("id", path.name.removesuffix(SONG_SUFFIX))),
                        path=path,
                        title=data.get("title", "Untitled"),
                        key=data.get("key", "C"),
                        tempo=data.get("tempo", DEFAULT_TEMPO),
                        section_count=len(data.get("sections", [])),
                        modified=datetime.fromtimestamp(path.stat().st_mtime),
                    )
                )
            except (OSError, yaml.YAMLError, AttributeError) as e:
                logger.warning(f"Skipping unreadable song file {path}: {e}")
                continue

        return sorted(result, key=lambda m: m.modified, reverse=True)

    def _get_path(self, song_id: str) -> Path:
        return self.songs_dir / f"{sanitize_filename(song_id)}{SONG_SUFFIX}"
