"""
Pitch primitives - PitchClass, Accidental, Interval and Note.

PitchClass represents the 12 chromatic pitches (octave-independent).
Spelling (C# vs Db) is a display concern resolved through a lookup
table keyed by accidental class.
Note is a spelled pitch with an optional octave ("Bb3", "F#").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from functools import total_ordering
from typing import ClassVar


class Accidental(str, Enum):
    """Which accidental a key signature (and therefore its spelling) uses."""

    SHARP = "sharp"
    FLAT = "flat"


# Spelling tables (module level to avoid IntEnum member issues)
_SPELLINGS: dict[Accidental, tuple[str, ...]] = {
    Accidental.SHARP: ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"),
    Accidental.FLAT: ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"),
}

_LETTER_VALUES: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_ACCIDENTAL_STEPS: dict[str, int] = {"#": 1, "♯": 1, "b": -1, "♭": -1}

_NOTE_RE = re.compile(r"^([A-Ga-g])([#b♯♭]*)(-?\d+)?$")


class PitchClass(IntEnum):
    """
    The 12 chromatic pitch classes (0-11).

    Octave-independent - C3 and C4 are both PitchClass.C.
    Enharmonic equivalents share the same value (C# == Db == 1).
    """

    C = 0
    Cs = 1  # C# / Db
    D = 2
    Ds = 3  # D# / Eb
    E = 4
    F = 5
    Fs = 6  # F# / Gb
    G = 7
    Gs = 8  # G# / Ab
    A = 9
    As = 10  # A# / Bb
    B = 11

    def transpose(self, semitones: int) -> PitchClass:
        """Transpose by a number of semitones (positive or negative)."""
        return PitchClass((self.value + semitones) % 12)

    def interval_to(self, other: PitchClass) -> Interval:
        """Get the interval from this pitch class to another (ascending)."""
        return Interval((other.value - self.value) % 12)

    def to_midi(self, octave: int = 4) -> int:
        """Convert to MIDI note number. C4 = 60."""
        return self.value + (octave + 1) * 12

    def spell(self, accidental: Accidental = Accidental.SHARP) -> str:
        """Get the name of this pitch class in the given accidental class."""
        return _SPELLINGS[accidental][self.value]

    @property
    def is_natural(self) -> bool:
        """True for the white keys."""
        return _SPELLINGS[Accidental.SHARP][self.value] == _SPELLINGS[Accidental.FLAT][self.value]

    @classmethod
    def from_midi(cls, midi_note: int) -> PitchClass:
        """Extract pitch class from MIDI note number."""
        return cls(midi_note % 12)

    @classmethod
    def parse(cls, name: str) -> PitchClass:
        """
        Parse a pitch class from a string like 'C', 'C#', 'Db', 'E#' or 'Cs'.

        Any number of sharps/flats is accepted, ASCII or unicode.
        """
        name = name.strip()

        match = _NOTE_RE.match(name)
        if match and match.group(3) is None:
            letter, accidentals, _ = match.groups()
            value = _LETTER_VALUES[letter.upper()]
            value += sum(_ACCIDENTAL_STEPS[a] for a in accidentals)
            return cls(value % 12)

        # Enum names (C, Cs, D, Ds, etc.)
        name_upper = name.upper()
        for member in cls:
            if member.name.upper() == name_upper:
                return member

        raise ValueError(f"Unknown pitch class: {name}")


@total_ordering
class Interval:
    """
    Distance between pitches in semitones.

    Chord formulas are interval stacks measured from the root. Compound
    intervals (ninths, elevenths, thirteenths) keep their full size.

    Immutable and hashable.
    """

    __slots__ = ("_semitones",)
    _semitones: int

    UNISON: ClassVar[Interval]
    MAJOR_SECOND: ClassVar[Interval]
    MINOR_THIRD: ClassVar[Interval]
    MAJOR_THIRD: ClassVar[Interval]
    PERFECT_FOURTH: ClassVar[Interval]
    TRITONE: ClassVar[Interval]
    PERFECT_FIFTH: ClassVar[Interval]
    MINOR_SIXTH: ClassVar[Interval]
    MAJOR_SIXTH: ClassVar[Interval]
    MINOR_SEVENTH: ClassVar[Interval]
    MAJOR_SEVENTH: ClassVar[Interval]
    OCTAVE: ClassVar[Interval]
    MAJOR_NINTH: ClassVar[Interval]
    PERFECT_ELEVENTH: ClassVar[Interval]
    MAJOR_THIRTEENTH: ClassVar[Interval]

    def __init__(self, semitones: int) -> None:
        """Create an interval with the given number of semitones."""
        object.__setattr__(self, "_semitones", semitones)

    @property
    def semitones(self) -> int:
        """Number of semitones in this interval."""
        return self._semitones

    @property
    def simple(self) -> Interval:
        """The interval reduced to within an octave (M9 -> M2)."""
        return Interval(self._semitones % 12)

    def __add__(self, other: Interval) -> Interval:
        if not isinstance(other, Interval):
            return NotImplemented
        return Interval(self._semitones + other._semitones)

    def __neg__(self) -> Interval:
        return Interval(-self._semitones)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        return bool(self._semitones == other._semitones)

    def __lt__(self, other: Interval) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        return bool(self._semitones < other._semitones)

    def __hash__(self) -> int:
        return hash(self._semitones)

    def __repr__(self) -> str:
        return f"Interval({self._semitones})"


Interval.UNISON = Interval(0)
Interval.MAJOR_SECOND = Interval(2)
Interval.MINOR_THIRD = Interval(3)
Interval.MAJOR_THIRD = Interval(4)
Interval.PERFECT_FOURTH = Interval(5)
Interval.TRITONE = Interval(6)
Interval.PERFECT_FIFTH = Interval(7)
Interval.MINOR_SIXTH = Interval(8)
Interval.MAJOR_SIXTH = Interval(9)
Interval.MINOR_SEVENTH = Interval(10)
Interval.MAJOR_SEVENTH = Interval(11)
Interval.OCTAVE = Interval(12)
Interval.MAJOR_NINTH = Interval(14)
Interval.PERFECT_ELEVENTH = Interval(17)
Interval.MAJOR_THIRTEENTH = Interval(21)


@dataclass(frozen=True)
class Note:
    """
    A spelled note, optionally pinned to an octave.

    "Bb" is a pitch-class name; "Bb3" is a concrete pitch.
    Octave numbering follows MIDI convention (C4 = 60).
    """

    name: str
    pitch_class: PitchClass
    octave: int | None = None

    @classmethod
    def parse(cls, text: str) -> Note:
        """Parse 'C', 'F#4', 'Bb3', 'eb5'."""
        match = _NOTE_RE.match(text.strip())
        if not match:
            raise ValueError(f"Invalid note: {text}")
        letter, accidentals, octave = match.groups()
        name = letter.upper() + accidentals.replace("♯", "#").replace("♭", "b")
        return cls(
            name=name,
            pitch_class=PitchClass.parse(name),
            octave=int(octave) if octave is not None else None,
        )

    @property
    def has_octave(self) -> bool:
        return self.octave is not None

    def at_octave(self, octave: int) -> Note:
        """Same spelling pinned to an octave."""
        return Note(self.name, self.pitch_class, octave)

    def to_midi(self) -> int:
        """
        MIDI note number.

        The octave belongs to the letter, so Cb4 is B3 (59) and B#3 is C4 (60).
        """
        if self.octave is None:
            raise ValueError(f"Note '{self.name}' has no octave")
        letter_value = _LETTER_VALUES[self.name[0]]
        offset = sum(_ACCIDENTAL_STEPS[a] for a in self.name[1:])
        return letter_value + offset + (self.octave + 1) * 12

    @property
    def frequency(self) -> float:
        """Equal-tempered frequency in Hz (A4 = 440)."""
        return midi_to_frequency(self.to_midi())

    def __str__(self) -> str:
        return self.name if self.octave is None else f"{self.name}{self.octave}"


def midi_to_frequency(midi_note: float) -> float:
    """Equal-tempered frequency for a (possibly fractional) MIDI note."""
    return 440.0 * 2 ** ((midi_note - 69) / 12)
