"""
Tests for chord qualities, note spelling and the Chord model.
"""

import pytest
from pydantic import ValidationError

from chuk_mcp_chordwheel.core import (
    Chord,
    ChordQuality,
    PitchClass,
    build_chord,
    chord_notes,
    chord_notes_or_fallback,
    parse_chord_symbol,
)
from chuk_mcp_chordwheel.core.pitch import Note
from chuk_mcp_chordwheel.errors import ChordWheelError, UnknownChordQuality


def pitch_classes(notes: list[str]) -> list[int]:
    return [Note.parse(n).pitch_class.value for n in notes]


class TestChordQuality:
    """Tests for the quality catalog."""

    def test_lookup_by_name_symbol_and_alias(self) -> None:
        """Every way of naming a quality resolves to the same object."""
        assert ChordQuality.lookup("minor7") is ChordQuality.MINOR_7
        assert ChordQuality.lookup("m7") is ChordQuality.MINOR_7
        assert ChordQuality.lookup("min7") is ChordQuality.MINOR_7
        assert ChordQuality.lookup("Dominant7") is ChordQuality.DOMINANT_7

    def test_symbols_are_case_sensitive(self) -> None:
        """'M7' is not 'm7'."""
        with pytest.raises(UnknownChordQuality):
            ChordQuality.lookup("M7")

    def test_unknown_quality(self) -> None:
        """Unknown names raise the dedicated error kind."""
        with pytest.raises(UnknownChordQuality) as exc_info:
            ChordQuality.lookup("hyperlydian")
        assert exc_info.value.quality == "hyperlydian"
        assert isinstance(exc_info.value, ChordWheelError)

    def test_find_returns_none_for_unknown(self) -> None:
        """find() is the non-raising lookup."""
        assert ChordQuality.find("m7") is ChordQuality.MINOR_7
        assert ChordQuality.find("hyperlydian") is None

    def test_catalog_size(self) -> None:
        """Triads, sixths, sevenths and extensions."""
        names = {q.name for q in ChordQuality.all()}
        assert len(names) == 21
        assert {"major", "minor", "diminished", "sus4", "dominant13", "major13"} <= names

    def test_third_and_fifth_flags(self) -> None:
        """Quality flags used for spelling decisions."""
        assert ChordQuality.MINOR.has_minor_third
        assert not ChordQuality.MAJOR.has_minor_third
        assert ChordQuality.HALF_DIMINISHED_7.has_diminished_fifth


class TestChordNotes:
    """Tests for chord_notes()."""

    @pytest.mark.parametrize("root", list(PitchClass))
    def test_major_triad_shape(self, root: PitchClass) -> None:
        """Root, major third, perfect fifth for every root."""
        notes = chord_notes(root, "major")
        assert len(notes) == 3
        assert pitch_classes(notes) == [root, root.transpose(4), root.transpose(7)]

    @pytest.mark.parametrize("root", list(PitchClass))
    def test_dominant7_has_minor_seventh(self, root: PitchClass) -> None:
        """Four notes including the minor seventh."""
        notes = chord_notes(root, "dominant7")
        assert len(notes) == 4
        assert root.transpose(10) in pitch_classes(notes)

    def test_formula_order(self) -> None:
        """Extensions come after the seventh."""
        assert chord_notes("C", "major9") == ["C", "E", "G", "B", "D"]
        assert chord_notes("C", "dominant13") == ["C", "E", "G", "Bb", "D", "A"]

    def test_key_decides_spelling(self) -> None:
        """Flats in flat keys, sharps otherwise."""
        assert chord_notes("Eb", "major", key="Bb") == ["Eb", "G", "Bb"]
        assert chord_notes("D#", "minor", key="E") == ["D#", "F#", "A#"]
        assert chord_notes("Bb", "major", key="E") == ["A#", "D", "F"]

    def test_home_key_spelling_without_key(self) -> None:
        """Without a key each chord spells like its home key."""
        assert chord_notes("F", "major") == ["F", "A", "C"]
        assert chord_notes("F", "dominant7") == ["F", "A", "C", "Eb"]
        assert chord_notes("C", "dominant7") == ["C", "E", "G", "Bb"]
        assert chord_notes("G", "dominant7") == ["G", "B", "D", "F"]
        assert chord_notes("D", "minor") == ["D", "F", "A"]
        assert chord_notes("B", "diminished") == ["B", "D", "F"]
        assert chord_notes("Bb", "minor7") == ["Bb", "Db", "F", "Ab"]

    def test_spelling_is_consistent_within_a_chord(self) -> None:
        """A chord never mixes sharps and flats."""
        for root in PitchClass:
            for quality in ChordQuality.all():
                notes = chord_notes(root, quality)
                joined = "".join(n[1:] for n in notes)
                assert not ("#" in joined and "b" in joined), (root, quality, notes)

    def test_unknown_quality_raises_with_fallback(self) -> None:
        """The error carries the major triad to fall back to."""
        with pytest.raises(UnknownChordQuality) as exc_info:
            chord_notes("A", "mystery")
        assert exc_info.value.fallback == ["A", "C#", "E"]
        assert exc_info.value.chord == "Amystery"

    def test_or_fallback_signals(self) -> None:
        """The recovering variant returns the triad and the error."""
        notes, error = chord_notes_or_fallback("D", "mystery")
        assert notes == ["D", "F#", "A"]
        assert isinstance(error, UnknownChordQuality)

        notes, error = chord_notes_or_fallback("D", "minor")
        assert notes == ["D", "F", "A"]
        assert error is None


class TestChordModel:
    """Tests for the Chord model."""

    def test_symbol(self) -> None:
        """Symbol is root spelling plus quality symbol."""
        chord = build_chord("F#", "minor7")
        assert chord.symbol == "F#m7"
        assert build_chord("C", "major").symbol == "C"

    def test_frozen(self) -> None:
        """Chords are immutable."""
        chord = build_chord("C", "major")
        with pytest.raises(ValidationError):
            chord.quality = "minor"  # type: ignore[misc]

    def test_with_quality_returns_new_chord(self) -> None:
        """Variants are new objects; the original is unchanged."""
        chord = build_chord("G", "major", numeral="V")
        seventh = chord.with_quality("dominant7")
        assert seventh is not chord
        assert seventh.notes == ("G", "B", "D", "F")
        assert seventh.numeral == "V"
        assert chord.notes == ("G", "B", "D")

    def test_root_must_lead(self) -> None:
        """The first note's pitch class is the root."""
        with pytest.raises(ValidationError, match="does not match root"):
            Chord(root="C", quality="major", notes=("E", "G", "C"))

    def test_notes_required(self) -> None:
        """A chord with a quality has notes."""
        with pytest.raises(ValidationError):
            Chord(root="C", quality="major", notes=())

    def test_quality_canonicalized(self) -> None:
        """Symbols are stored as canonical names."""
        chord = Chord(root="A", quality="m", notes=("A", "C", "E"))
        assert chord.quality == "minor"

    def test_build_chord_falls_back(self) -> None:
        """Unknown qualities become a major triad with a warning."""
        chord = build_chord("E", "nonsense")
        assert chord.quality == "major"
        assert chord.notes == ("E", "G#", "B")


class TestParseChordSymbol:
    """Tests for parse_chord_symbol()."""

    @pytest.mark.parametrize(
        "symbol,quality,notes",
        [
            ("C", "major", ("C", "E", "G")),
            ("Am", "minor", ("A", "C", "E")),
            ("F#m7", "minor7", ("F#", "A", "C#", "E")),
            ("Bbmaj9", "major9", ("Bb", "D", "F", "A", "C")),
            ("Bm7b5", "half-diminished7", ("B", "D", "F", "A")),
            ("Gsus4", "sus4", ("G", "C", "D")),
            ("Bdim7", "diminished7", ("B", "D", "F", "G#")),
        ],
    )
    def test_parse(self, symbol: str, quality: str, notes: tuple[str, ...]) -> None:
        """Root accidentals are split from the quality suffix."""
        chord = parse_chord_symbol(symbol)
        assert chord.quality == quality
        assert chord.notes == notes

    def test_key_spelling(self) -> None:
        """The key overrides home-key spelling."""
        assert parse_chord_symbol("Gb", key="Db").notes == ("Gb", "Bb", "Db")

    def test_unknown_suffix(self) -> None:
        """The error names the symbol and carries the fallback."""
        with pytest.raises(UnknownChordQuality) as exc_info:
            parse_chord_symbol("Cwhat")
        assert exc_info.value.chord == "Cwhat"
        assert exc_info.value.fallback == ["C", "E", "G"]
        assert "chord=Cwhat" in str(exc_info.value)

    def test_empty(self) -> None:
        """Empty symbols are rejected."""
        with pytest.raises(ValueError, match="Empty chord symbol"):
            parse_chord_symbol("  ")
