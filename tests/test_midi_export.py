"""
MIDI export tests.
"""

from pathlib import Path

import pytest
from mido import MidiFile

from chuk_mcp_chordwheel.core import TimeSignature
from chuk_mcp_chordwheel.models import Song
from chuk_mcp_chordwheel.render import (
    TICKS_PER_BEAT,
    MidiEvent,
    events_to_midi,
    export_midi,
    song_to_midi,
    song_to_midi_events,
)
from chuk_mcp_chordwheel.render.midi import beats_to_ticks, song_time_signatures


def absolute(mid: MidiFile) -> list[tuple[int, object]]:
    """(absolute tick, message) pairs of the first track."""
    tick = 0
    out = []
    for msg in mid.tracks[0]:
        tick += msg.time
        out.append((tick, msg))
    return out


class TestMidiEvent:
    """Test MidiEvent dataclass."""

    def test_create_valid_event(self) -> None:
        """Can create a valid MIDI event."""
        event = MidiEvent(pitch=60, start_ticks=0, duration_ticks=480, velocity=100, channel=0)
        assert event.pitch == 60
        assert event.duration_ticks == 480

    def test_event_validation(self) -> None:
        """Pitch, velocity and channel ranges are enforced."""
        with pytest.raises(ValueError, match="Pitch must be 0-127"):
            MidiEvent(pitch=128, start_ticks=0, duration_ticks=480)
        with pytest.raises(ValueError, match="Velocity must be 0-127"):
            MidiEvent(pitch=60, start_ticks=0, duration_ticks=480, velocity=128)
        with pytest.raises(ValueError, match="Channel must be 0-15"):
            MidiEvent(pitch=60, start_ticks=0, duration_ticks=480, channel=16)
        with pytest.raises(ValueError, match="Start ticks"):
            MidiEvent(pitch=60, start_ticks=-1, duration_ticks=480)


class TestTicks:
    """Test beat/tick conversion."""

    def test_beats_to_ticks(self) -> None:
        """480 ticks per quarter note."""
        assert TICKS_PER_BEAT == 480
        assert beats_to_ticks(1) == 480
        assert beats_to_ticks(4) == 1920

    def test_fractional_beats(self) -> None:
        """Triplets land on whole ticks."""
        from fractions import Fraction

        assert beats_to_ticks(Fraction(1, 3)) == 160
        assert beats_to_ticks(Fraction(1, 2), ticks_per_beat=96) == 48


class TestEventsToMidi:
    """Test events_to_midi()."""

    def test_header_metas(self) -> None:
        """Track name, tempo and time signature come first."""
        mid = events_to_midi([], tempo_bpm=90, track_name="Demo")
        track = mid.tracks[0]
        assert track[0].type == "track_name"
        assert track[0].name == "Demo"
        assert track[1].type == "set_tempo"
        assert track[1].tempo == 666666
        assert track[2].type == "time_signature"
        assert (track[2].numerator, track[2].denominator) == (4, 4)
        assert track[-1].type == "end_of_track"

    def test_note_off_before_note_on_at_same_tick(self) -> None:
        """Repeated notes are released before being struck again."""
        events = [
            MidiEvent(pitch=60, start_ticks=0, duration_ticks=480),
            MidiEvent(pitch=60, start_ticks=480, duration_ticks=480),
        ]
        notes = [
            (tick, msg.type)
            for tick, msg in absolute(events_to_midi(events))
            if msg.type in ("note_on", "note_off")
        ]
        assert notes == [(0, "note_on"), (480, "note_off"), (480, "note_on"), (960, "note_off")]


class TestSongToMidi:
    """Test song export."""

    def test_one_bar(self, one_bar_song: Song) -> None:
        """Four C major triads, one per beat."""
        mid = song_to_midi(one_bar_song)
        assert mid.ticks_per_beat == 480
        assert mid.type == 1
        note_ons = [(t, m.note) for t, m in absolute(mid) if m.type == "note_on"]
        assert note_ons[:3] == [(0, 48), (0, 52), (0, 55)]
        assert [t for t, _ in note_ons[::3]] == [0, 480, 960, 1440]
        assert len(note_ons) == 12

    def test_tempo_from_song(self, two_section_song: Song) -> None:
        """120 BPM is 500000 microseconds per beat."""
        tempos = [m.tempo for _, m in absolute(song_to_midi(two_section_song)) if m.type == "set_tempo"]
        assert tempos == [500000]

    def test_rests_move_time(self, two_section_song: Song) -> None:
        """The rest at beat 9 leaves a gap before the D chord."""
        note_ons = [
            t for t, m in absolute(song_to_midi(two_section_song)) if m.type == "note_on"
        ]
        group_starts = sorted(set(note_ons))
        assert group_starts == [0, 960, 1920, 2880, 3840, 4800, 5760]

    def test_events_carry_voicing(self, two_section_song: Song) -> None:
        """Em7 is voiced E3 G3 B3 D4."""
        events = song_to_midi_events(two_section_song)
        em7 = [e.pitch for e in events if e.start_ticks == 960]
        assert em7 == [52, 55, 59, 62]
        assert all(e.duration_ticks == 960 for e in events if e.start_ticks == 960)

    def test_time_signature_change(self) -> None:
        """A 3/4 section gets its own time signature message."""
        song = Song.from_yaml_dict(
            {
                "id": "ts",
                "sections": [
                    {"id": "a", "measures": [{"beats": [{"duration": 4, "chord": "C"}]}]},
                    {
                        "id": "b",
                        "time_signature": "3/4",
                        "measures": [{"beats": [{"duration": 3, "chord": "G"}]}],
                    },
                ],
            }
        )
        assert song_time_signatures(song) == [(0, TimeSignature(4, 4)), (1920, TimeSignature(3, 4))]
        metas = [
            (t, m.numerator, m.denominator)
            for t, m in absolute(song_to_midi(song))
            if m.type == "time_signature"
        ]
        assert metas == [(0, 4, 4), (1920, 3, 4)]

    def test_deterministic(self, two_section_song: Song, temp_dir: Path) -> None:
        """Same song, same bytes."""
        a = export_midi(two_section_song, temp_dir, "a")
        b = export_midi(two_section_song, temp_dir, "b")
        assert a.read_bytes() == b.read_bytes()

    def test_export_round_trip(self, one_bar_song: Song, temp_dir: Path) -> None:
        """The written file loads back with mido."""
        path = export_midi(one_bar_song, temp_dir)
        assert path.name == "one_bar.mid"
        loaded = MidiFile(str(path))
        assert loaded.ticks_per_beat == 480
        assert loaded.length == pytest.approx(2.0)
