"""
Tests for the song loader.
"""

from pathlib import Path

import pytest
import yaml

from chuk_mcp_chordwheel.errors import UnknownChordQuality
from chuk_mcp_chordwheel.models import Song
from chuk_mcp_chordwheel.songs import SongLoader


def write_song(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f)
    return path


SONG_YAML = {
    "schema": "song/v1",
    "id": "waltz",
    "title": "Little Waltz",
    "key": "F",
    "tempo": 90,
    "time_signature": "3/4",
    "sections": [
        {
            "id": "a",
            "name": "Verse",
            "type": "verse",
            "measures": [
                {"id": "m1", "beats": [{"id": "b1", "duration": 3, "chord": "F"}]},
                {
                    "id": "m2",
                    "beats": [
                        {"id": "b1", "duration": 2, "chord": "Gm7"},
                        {"id": "b2", "duration": 1, "chord": "C7"},
                    ],
                },
            ],
        }
    ],
}


class TestSongLoader:
    """Tests for SongLoader."""

    @pytest.mark.asyncio
    async def test_get_from_file(self, temp_dir: Path) -> None:
        """Songs are read from `<id>.song.yaml`."""
        write_song(temp_dir / "waltz.song.yaml", SONG_YAML)
        loader = SongLoader(temp_dir)
        song = await loader.get("waltz")
        assert song is not None
        assert song.title == "Little Waltz"
        assert song.total_beats == 6
        chord = song.sections[0].measures[1].beats[1].chord
        assert chord is not None
        assert chord.notes == ("C", "E", "G", "Bb")

    @pytest.mark.asyncio
    async def test_get_is_cached(self, temp_dir: Path) -> None:
        """The second get does not touch the file."""
        path = write_song(temp_dir / "waltz.song.yaml", SONG_YAML)
        loader = SongLoader(temp_dir)
        first = await loader.get("waltz")
        path.unlink()
        assert await loader.get("waltz") is first

    @pytest.mark.asyncio
    async def test_missing_song(self, temp_dir: Path) -> None:
        """Unknown ids give None."""
        assert await SongLoader(temp_dir).get("nope") is None

    @pytest.mark.asyncio
    async def test_strict_loading(self, temp_dir: Path) -> None:
        """A strict loader refuses unknown qualities."""
        data = {**SONG_YAML, "id": "odd"}
        data["sections"] = [
            {
                "id": "a",
                "measures": [{"id": "m1", "beats": [{"id": "b1", "duration": 3, "chord": "Fzz"}]}],
            }
        ]
        write_song(temp_dir / "odd.song.yaml", data)
        with pytest.raises(UnknownChordQuality):
            await SongLoader(temp_dir, strict=True).get("odd")
        song = await SongLoader(temp_dir).get("odd")
        assert song is not None

    @pytest.mark.asyncio
    async def test_save_and_reload(self, temp_dir: Path, two_section_song: Song) -> None:
        """Saved songs load back unchanged."""
        path = await SongLoader(temp_dir).save(two_section_song)
        assert path.name == "two_sections.song.yaml"
        again = await SongLoader(temp_dir).load(path)
        assert again == two_section_song

    @pytest.mark.asyncio
    async def test_list_songs(self, temp_dir: Path) -> None:
        """Listing reads metadata and skips broken files."""
        write_song(temp_dir / "waltz.song.yaml", SONG_YAML)
        (temp_dir / "broken.song.yaml").write_text("- just\n- a list\n")
        (temp_dir / "notes.txt").write_text("ignored")
        songs = await SongLoader(temp_dir).list_songs()
        assert [s.id for s in songs] == ["waltz"]
        assert songs[0].key == "F"
        assert songs[0].tempo == 90
        assert songs[0].section_count == 1

    @pytest.mark.asyncio
    async def test_list_missing_dir(self, temp_dir: Path) -> None:
        """A missing directory lists nothing."""
        assert await SongLoader(temp_dir / "absent").list_songs() == []


class TestCreate:
    """Tests for SongLoader.create()."""

    @pytest.mark.asyncio
    async def test_progression_fills_measures(self, temp_dir: Path) -> None:
        """Eight quarter-note chords make two 4/4 measures."""
        loader = SongLoader(temp_dir)
        song = await loader.create(
            "prog", ["C", "Am", "F", "G", "C", "-", None, "G7"], key="C", tempo=100
        )
        section = song.sections[0]
        assert len(section.measures) == 2
        assert section.measures[1].beats[1].is_rest
        assert section.measures[1].beats[2].is_rest
        assert song.tempo == 100
        assert await loader.get("prog") is song

    @pytest.mark.asyncio
    async def test_spelled_in_key(self, temp_dir: Path) -> None:
        """Chords take the song key's accidentals."""
        song = await SongLoader(temp_dir).create(
            "flat", ["A#", "D#"], key="Bb", beats_per_chord=2
        )
        chords = [b.chord for b in song.sections[0].measures[0].beats]
        assert [c.notes for c in chords if c is not None] == [
            ("Bb", "D", "F"),
            ("Eb", "G", "Bb"),
        ]

    @pytest.mark.asyncio
    async def test_incomplete_measure(self, temp_dir: Path) -> None:
        """Chords must fill whole measures."""
        with pytest.raises(ValueError, match="last measure"):
            await SongLoader(temp_dir).create("short", ["C", "F", "G"])

    @pytest.mark.asyncio
    async def test_chord_across_barline(self, temp_dir: Path) -> None:
        """A chord may not straddle two measures."""
        with pytest.raises(ValueError, match="crosses the end of measure 1"):
            await SongLoader(temp_dir).create(
                "odd", ["C", "F"], time_signature="3/4", beats_per_chord=2
            )

    @pytest.mark.asyncio
    async def test_section_type_from_name(self, temp_dir: Path) -> None:
        """The section name hints its type."""
        song = await SongLoader(temp_dir).create(
            "c", ["C", "G", "Am", "F"], section_name="Chorus 2"
        )
        assert song.sections[0].type.value == "chorus"
