"""
Rhythm primitives - TimeSignature and beat/time conversion.

Beats are quarter notes. Durations and positions use Fraction so that
subdivided measures (triplets, 6/8) sum exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Any, ClassVar

_VALID_DENOMINATORS = (1, 2, 4, 8, 16, 32)


@dataclass(frozen=True)
class TimeSignature:
    """
    A time signature: numerator over denominator.

    A measure lasts numerator * (4 / denominator) quarter-note beats,
    so 6/8 is 3 beats and 3/4 is 3 beats.

    Examples:
        TimeSignature(4, 4).beats_per_measure == 4
        TimeSignature(6, 8).beats_per_measure == 3
        TimeSignature(5, 16).beats_per_measure == Fraction(5, 4)
    """

    numerator: int
    denominator: int = 4

    COMMON_TIME: ClassVar[TimeSignature]  # 4/4
    WALTZ: ClassVar[TimeSignature]  # 3/4
    SIX_EIGHT: ClassVar[TimeSignature]  # 6/8

    def __post_init__(self) -> None:
        if self.numerator <= 0:
            raise ValueError(f"Numerator must be positive, got {self.numerator}")
        if self.denominator not in _VALID_DENOMINATORS:
            raise ValueError(f"Unsupported time signature denominator: {self.denominator}")

    @property
    def beats_per_measure(self) -> Fraction:
        """Quarter-note beats in one measure."""
        return Fraction(self.numerator * 4, self.denominator)

    def as_tuple(self) -> tuple[int, int]:
        return (self.numerator, self.denominator)

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"

    @classmethod
    def parse(cls, notation: str) -> TimeSignature:
        """Parse '4/4', '3/4', '6/8'."""
        parts = notation.split("/")
        if len(parts) != 2:
            raise ValueError(f"Invalid time signature format: {notation}")
        return cls(int(parts[0]), int(parts[1]))

    @classmethod
    def coerce(cls, value: Any) -> TimeSignature:
        """Accept a TimeSignature, '3/4', or a (numerator, denominator) pair."""
        if isinstance(value, TimeSignature):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(int(value[0]), int(value[1]))
        raise ValueError(f"Invalid time signature: {value!r}")


TimeSignature.COMMON_TIME = TimeSignature(4, 4)
TimeSignature.WALTZ = TimeSignature(3, 4)
TimeSignature.SIX_EIGHT = TimeSignature(6, 8)


def to_fraction(value: Any) -> Fraction:
    """
    Exact beat value from an int, Fraction, '3/2' string or float.

    Floats are snapped to the nearest 1/960 of a beat.
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid beat value: {value!r}")
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, float):
        return Fraction(value).limit_denominator(960)
    if isinstance(value, str):
        return Fraction(value.strip())
    raise ValueError(f"Invalid beat value: {value!r}")


def seconds_per_beat(tempo_bpm: float) -> Fraction:
    """Length of one beat in seconds at a tempo."""
    if tempo_bpm <= 0:
        raise ValueError(f"Invalid tempo: {tempo_bpm}. Must be a positive number of BPM.")
    return Fraction(60) / to_fraction(tempo_bpm)


def beats_to_seconds(beats: Fraction | int, tempo_bpm: float) -> Fraction:
    """Convert beats to seconds at a tempo."""
    return to_fraction(beats) * seconds_per_beat(tempo_bpm)
