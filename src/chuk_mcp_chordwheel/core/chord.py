"""
Chord primitives - ChordQuality, Chord and note derivation.

Chord qualities are interval stacks measured from the root. Notes come
out in formula order (root, third, fifth, seventh, extensions), which
the voicing engine relies on to place extensions in higher octaves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator, model_validator

from chuk_mcp_chordwheel.errors import UnknownChordQuality

from .key import Key
from .pitch import Accidental, Interval, Note, PitchClass

logger = logging.getLogger(__name__)

I = Interval  # noqa: E741


@dataclass(frozen=True)
class ChordQuality:
    """
    A chord quality: canonical name, display symbol and interval formula.

    Immutable and hashable. Look qualities up by name, symbol or alias
    with ChordQuality.lookup().
    """

    name: str
    symbol: str
    intervals: tuple[Interval, ...]
    aliases: tuple[str, ...] = ()

    MAJOR: ClassVar[ChordQuality]
    MINOR: ClassVar[ChordQuality]
    DIMINISHED: ClassVar[ChordQuality]
    AUGMENTED: ClassVar[ChordQuality]
    DOMINANT_7: ClassVar[ChordQuality]
    MAJOR_7: ClassVar[ChordQuality]
    MINOR_7: ClassVar[ChordQuality]
    HALF_DIMINISHED_7: ClassVar[ChordQuality]

    def get_pitches(self, root: PitchClass) -> list[PitchClass]:
        """Pitch classes of this quality on a root, in formula order."""
        return [root.transpose(interval.semitones) for interval in self.intervals]

    @property
    def has_minor_third(self) -> bool:
        return Interval.MINOR_THIRD in self.intervals and Interval.MAJOR_THIRD not in self.intervals

    @property
    def has_diminished_fifth(self) -> bool:
        return Interval.TRITONE in self.intervals

    @classmethod
    def find(cls, name: str) -> ChordQuality | None:
        """Find a quality by canonical name, symbol or alias; None if unknown."""
        key = name.strip()
        return _BY_NAME.get(key) or _BY_CANONICAL.get(key.lower())

    @classmethod
    def lookup(cls, name: str) -> ChordQuality:
        """
        Find a quality by canonical name, symbol or alias.

        Raises:
            UnknownChordQuality: if nothing matches
        """
        quality = cls.find(name)
        if quality is None:
            raise UnknownChordQuality(name)
        return quality

    @classmethod
    def all(cls) -> list[ChordQuality]:
        return list(_QUALITIES)

    def __str__(self) -> str:
        return self.name


_QUALITIES: tuple[ChordQuality, ...] = (
    ChordQuality("major", "", (I(0), I(4), I(7)), ("maj", "major triad")),
    ChordQuality("minor", "m", (I(0), I(3), I(7)), ("min", "-")),
    ChordQuality("diminished", "dim", (I(0), I(3), I(6)), ("°", "o")),
    ChordQuality("augmented", "aug", (I(0), I(4), I(8)), ("+",)),
    ChordQuality("sus2", "sus2", (I(0), I(2), I(7))),
    ChordQuality("sus4", "sus4", (I(0), I(5), I(7)), ("sus",)),
    ChordQuality("major6", "6", (I(0), I(4), I(7), I(9)), ("maj6",)),
    ChordQuality("minor6", "m6", (I(0), I(3), I(7), I(9)), ("min6",)),
    ChordQuality("add9", "add9", (I(0), I(4), I(7), I(14))),
    ChordQuality("dominant7", "7", (I(0), I(4), I(7), I(10)), ("dom7",)),
    ChordQuality("major7", "maj7", (I(0), I(4), I(7), I(11)), ("Δ7", "Δ")),
    ChordQuality("minor7", "m7", (I(0), I(3), I(7), I(10)), ("min7", "-7")),
    ChordQuality(
        "half-diminished7",
        "m7b5",
        (I(0), I(3), I(6), I(10)),
        ("ø7", "ø", "m7♭5", "half-diminished"),
    ),
    ChordQuality("diminished7", "dim7", (I(0), I(3), I(6), I(9)), ("°7", "o7")),
    ChordQuality("dominant9", "9", (I(0), I(4), I(7), I(10), I(14)), ("dom9",)),
    ChordQuality("major9", "maj9", (I(0), I(4), I(7), I(11), I(14)), ("Δ9",)),
    ChordQuality("minor9", "m9", (I(0), I(3), I(7), I(10), I(14)), ("min9",)),
    ChordQuality("dominant11", "11", (I(0), I(4), I(7), I(10), I(14), I(17)), ("dom11",)),
    ChordQuality("minor11", "m11", (I(0), I(3), I(7), I(10), I(14), I(17)), ("min11",)),
    ChordQuality("dominant13", "13", (I(0), I(4), I(7), I(10), I(14), I(21)), ("dom13",)),
    ChordQuality("major13", "maj13", (I(0), I(4), I(7), I(11), I(14), I(21)), ("Δ13",)),
)

# Symbols are case-sensitive (m7 vs M7); canonical names are not
_BY_NAME: dict[str, ChordQuality] = {}
for _quality in _QUALITIES:
    for _label in (_quality.name, _quality.symbol, *_quality.aliases):
        _BY_NAME.setdefault(_label, _quality)
_BY_CANONICAL: dict[str, ChordQuality] = {q.name.lower(): q for q in _QUALITIES}

ChordQuality.MAJOR = _BY_NAME["major"]
ChordQuality.MINOR = _BY_NAME["minor"]
ChordQuality.DIMINISHED = _BY_NAME["diminished"]
ChordQuality.AUGMENTED = _BY_NAME["augmented"]
ChordQuality.DOMINANT_7 = _BY_NAME["dominant7"]
ChordQuality.MAJOR_7 = _BY_NAME["major7"]
ChordQuality.MINOR_7 = _BY_NAME["minor7"]
ChordQuality.HALF_DIMINISHED_7 = _BY_NAME["half-diminished7"]

def _coerce_root(root: PitchClass | str | int) -> PitchClass:
    if isinstance(root, PitchClass):
        return root
    if isinstance(root, str):
        return PitchClass.parse(root)
    return PitchClass(root)


def _coerce_key(key: Key | str | None) -> Key | None:
    if key is None or isinstance(key, Key):
        return key
    return Key.parse(key)


def spelling_for(root: PitchClass, quality: ChordQuality, key: Key | str | None) -> Accidental:
    """
    Accidental class used to spell a chord.

    With a key, the key's signature decides. Without one, the chord is
    spelled in the major key it is diatonic "home" to: its own key for
    major-third chords, the key it is V of for dominant sevenths, the
    relative major for minor chords and the key a semitone up for
    diminished chords.
    """
    resolved = _coerce_key(key)
    if resolved is not None:
        return resolved.accidental
    if quality.has_minor_third:
        home = root.transpose(1) if quality.has_diminished_fifth else root.transpose(3)
    elif Interval.MINOR_SEVENTH in quality.intervals:
        home = root.transpose(5)
    else:
        home = root
    return Key(home).accidental


def chord_notes(
    root: PitchClass | str | int,
    quality: str | ChordQuality = "major",
    key: Key | str | None = None,
) -> list[str]:
    """
    Spelled notes of a chord, root first, in formula order.

    Examples:
        chord_notes("C", "major")            -> ["C", "E", "G"]
        chord_notes("F", "dominant7")        -> ["F", "A", "C", "Eb"]
        chord_notes("D", "minor", key="C")   -> ["D", "F", "A"]

    Raises:
        UnknownChordQuality: with the major-triad fallback attached
    """
    pitch = _coerce_root(root)
    try:
        resolved = quality if isinstance(quality, ChordQuality) else ChordQuality.lookup(quality)
    except UnknownChordQuality as e:
        e.fallback = _spell(pitch, ChordQuality.MAJOR, key)
        e.chord = f"{pitch.spell()}{quality}"
        raise
    return _spell(pitch, resolved, key)


def _spell(pitch: PitchClass, quality: ChordQuality, key: Key | str | None) -> list[str]:
    accidental = spelling_for(pitch, quality, key)
    return [p.spell(accidental) for p in quality.get_pitches(pitch)]


def chord_notes_or_fallback(
    root: PitchClass | str | int,
    quality: str | ChordQuality = "major",
    key: Key | str | None = None,
) -> tuple[list[str], UnknownChordQuality | None]:
    """
    Like chord_notes(), but recovers from an unknown quality.

    Returns the major triad together with the error so the caller can
    report the substitution instead of it happening silently.
    """
    try:
        return chord_notes(root, quality, key), None
    except UnknownChordQuality as e:
        return e.fallback, e


class Chord(BaseModel):
    """
    A materialized chord: root, quality and its spelled notes.

    Immutable. Variants (a different quality on the same root) are
    built with with_quality(), never by mutation.
    """

    root: PitchClass = Field(..., description="Root pitch class (0-11)")
    quality: str = Field("major", description="Canonical quality name")
    notes: tuple[str, ...] = Field(..., min_length=1, description="Spelled notes, root first")
    numeral: str | None = Field(None, description="Roman numeral within the song's key")

    model_config = {"frozen": True}

    @field_validator("root", mode="before")
    @classmethod
    def parse_root(cls, v: Any) -> Any:
        """Accept pitch names like 'Bb'."""
        if isinstance(v, str):
            return PitchClass.parse(v)
        return v

    @field_validator("quality")
    @classmethod
    def canonical_quality(cls, v: str) -> str:
        """Store the canonical quality name."""
        return ChordQuality.lookup(v).name

    @model_validator(mode="after")
    def root_leads(self) -> Chord:
        """The first note must be the root."""
        first = Note.parse(self.notes[0])
        if first.pitch_class != self.root:
            raise ValueError(
                f"First note '{self.notes[0]}' does not match root {self.root.spell()}"
            )
        return self

    @property
    def chord_quality(self) -> ChordQuality:
        return ChordQuality.lookup(self.quality)

    @property
    def root_name(self) -> str:
        """Root as spelled in the notes."""
        return Note.parse(self.notes[0]).name

    @property
    def symbol(self) -> str:
        """Display symbol, e.g. 'F#m7'."""
        return f"{self.root_name}{self.chord_quality.symbol}"

    def with_quality(self, quality: str, key: Key | str | None = None) -> Chord:
        """Same root and numeral with a different quality."""
        return build_chord(self.root_name, quality, key=key, numeral=self.numeral)

    def __str__(self) -> str:
        return self.symbol


def build_chord(
    root: PitchClass | str | int,
    quality: str | ChordQuality = "major",
    key: Key | str | None = None,
    numeral: str | None = None,
) -> Chord:
    """
    Build a Chord, falling back to the major triad on an unknown quality.

    The fallback is logged; use chord_notes() to have it raised instead.
    """
    notes, error = chord_notes_or_fallback(root, quality, key)
    if error is not None:
        logger.warning("%s; using major triad %s", error, notes)
        quality = ChordQuality.MAJOR
    name = quality.name if isinstance(quality, ChordQuality) else quality
    return Chord(root=_coerce_root(root), quality=name, notes=tuple(notes), numeral=numeral)


def parse_chord_symbol(symbol: str, key: Key | str | None = None) -> Chord:
    """
    Parse a chord symbol like 'C', 'Am', 'F#m7', 'Bbmaj9', 'Bm7b5'.

    Raises:
        ValueError: if the root cannot be parsed
        UnknownChordQuality: if the suffix is not a known quality
    """
    text = symbol.strip()
    if not text:
        raise ValueError("Empty chord symbol")

    root_len = 1
    while root_len < len(text) and text[root_len] in "#b♯♭":
        root_len += 1
    root_text, suffix = text[:root_len], text[root_len:]
    root = PitchClass.parse(root_text)

    if suffix == "":
        quality = ChordQuality.MAJOR
    else:
        try:
            quality = ChordQuality.lookup(suffix)
        except UnknownChordQuality as e:
            e.chord = text
            e.fallback = _spell(root, ChordQuality.MAJOR, key)
            raise

    return Chord(root=root, quality=quality.name, notes=tuple(_spell(root, quality, key)))
