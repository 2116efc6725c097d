"""
Tests for the voicing engine.
"""

import pytest

from chuk_mcp_chordwheel.core import build_chord, parse_chord_symbol, to_midi_notes, voice, voice_chord


class TestVoice:
    """Tests for voice()."""

    def test_major_triad_stays_in_base_octave(self) -> None:
        """Notes above the root stay in its octave."""
        assert voice(["C", "E", "G"]) == ["C3", "E3", "G3"]

    def test_notes_behind_root_move_up(self) -> None:
        """Pitch classes below the root's are lifted an octave."""
        assert voice(["A", "C", "E"]) == ["A3", "C4", "E4"]
        assert voice(["F", "A", "C"]) == ["F3", "A3", "C4"]
        assert voice(["G", "B", "D", "F"]) == ["G3", "B3", "D4", "F4"]

    def test_fifth_note_one_octave_up(self) -> None:
        """The fifth voiced note sits at least an octave above the base."""
        assert voice(["C", "E", "G", "B", "D"]) == ["C3", "E3", "G3", "B3", "D4"]

    def test_sixth_note_two_octaves_up(self) -> None:
        """Notes after the fifth go two octaves above the base."""
        assert voice(["C", "E", "G", "Bb", "D", "A"]) == ["C3", "E3", "G3", "Bb3", "D4", "A5"]
        assert voice(["C", "E", "G", "Bb", "D", "F"]) == ["C3", "E3", "G3", "Bb3", "D4", "F5"]

    def test_root_octave(self) -> None:
        """The base octave is configurable."""
        assert voice(["D", "F#", "A"], root_octave=4) == ["D4", "F#4", "A4"]

    def test_explicit_octaves_pass_through(self) -> None:
        """Manually pinned notes are not moved."""
        assert voice(["C", "E2", "G"]) == ["C3", "E2", "G3"]
        assert voice(["E4", "C", "G"]) == ["E4", "C5", "G4"]

    def test_deterministic(self) -> None:
        """Same input, same output."""
        notes = ["Bb", "D", "F", "A", "C", "G"]
        assert voice(notes) == voice(notes)
        assert voice(tuple(notes)) == voice(list(notes))

    def test_empty(self) -> None:
        """Nothing to voice."""
        assert voice([]) == []

    def test_invalid_note(self) -> None:
        """Unparseable notes raise."""
        with pytest.raises(ValueError, match="Invalid note"):
            voice(["C", "Q"])

    def test_no_note_sounds_below_the_root(self) -> None:
        """Every chord tone is at or above the root."""
        for symbol in ("Am7", "F#m7b5", "Dbmaj13", "B11", "Gsus4", "Eaug"):
            midi = to_midi_notes(voice(parse_chord_symbol(symbol).notes))
            assert min(midi) == midi[0], symbol


class TestVoiceChord:
    """Tests for voice_chord()."""

    def test_to_midi(self) -> None:
        """C3 is MIDI 48."""
        assert voice_chord(build_chord("C", "major")) == [48, 52, 55]

    def test_minor_seventh(self) -> None:
        """A3 C4 E4 G4."""
        assert voice_chord(build_chord("A", "minor7")) == [57, 60, 64, 67]

    def test_octave_argument(self) -> None:
        """root_octave shifts the whole chord."""
        chord = build_chord("G", "major")
        assert [n + 12 for n in voice_chord(chord, 3)] == voice_chord(chord, 4)
