"""
Key primitives - Key, KeySignature and the circle of fifths.

The chord wheel is laid out in ascending fifths. Position 0 is C, each
step clockwise adds a sharp (or removes a flat). A Key here is always
the major key sitting at a wheel position; minor keys are addressed
through their relative major.
"""

from __future__ import annotations

from dataclasses import dataclass

from chuk_mcp_chordwheel.constants import ErrorMessages

from .pitch import Accidental, PitchClass

# Wheel order, spelled the way each key is conventionally written
CIRCLE_OF_FIFTHS: tuple[str, ...] = (
    "C",
    "G",
    "D",
    "A",
    "E",
    "B",
    "F#",
    "Db",
    "Ab",
    "Eb",
    "Bb",
    "F",
)

WHEEL_SIZE = len(CIRCLE_OF_FIFTHS)

# Positions up to here are written with sharps, the rest with flats
_LAST_SHARP_POSITION = 6


def validate_position(position: int) -> int:
    """Check a wheel position is in range and return it."""
    if not isinstance(position, int) or not 0 <= position < WHEEL_SIZE:
        raise ValueError(ErrorMessages.INVALID_POSITION.format(position=position))
    return position


def position_of(pitch: PitchClass) -> int:
    """
    Wheel position whose major root is the given pitch class.

    A fifth is 7 semitones and 7 * 7 = 49 = 1 (mod 12), so multiplying by 7
    inverts the position -> root mapping.
    """
    return (pitch.value * 7) % WHEEL_SIZE


def root_at(position: int) -> PitchClass:
    """Major root at a wheel position."""
    return PitchClass((validate_position(position) * 7) % 12)


@dataclass(frozen=True)
class KeySignature:
    """
    Number of sharps or flats in a major key signature.

    At most one of the two counts is non-zero.
    """

    sharps: int = 0
    flats: int = 0

    def __post_init__(self) -> None:
        if self.sharps and self.flats:
            raise ValueError("A key signature cannot carry both sharps and flats")
        if not 0 <= self.sharps <= 7 or not 0 <= self.flats <= 7:
            raise ValueError(f"Invalid key signature: {self.sharps} sharps, {self.flats} flats")

    @property
    def accidental(self) -> Accidental:
        """Accidental class used to spell notes in this key."""
        return Accidental.FLAT if self.flats else Accidental.SHARP

    def __str__(self) -> str:
        if self.sharps:
            return f"{self.sharps}#"
        if self.flats:
            return f"{self.flats}b"
        return "0"


@dataclass(frozen=True)
class Key:
    """
    A major key on the chord wheel.

    Examples:
        Key.parse("C")        -> position 0, no accidentals
        Key.parse("Eb")       -> position 9, three flats
        Key.parse("A minor")  -> relative major C
    """

    tonic: PitchClass

    @property
    def position(self) -> int:
        """Wheel position of this key's I chord."""
        return position_of(self.tonic)

    @property
    def name(self) -> str:
        return CIRCLE_OF_FIFTHS[self.position]

    @property
    def signature(self) -> KeySignature:
        """Sharps/flats for this key."""
        position = self.position
        if position <= _LAST_SHARP_POSITION:
            return KeySignature(sharps=position)
        return KeySignature(flats=WHEEL_SIZE - position)

    @property
    def accidental(self) -> Accidental:
        return self.signature.accidental

    def spell(self, pitch: PitchClass) -> str:
        """Spell a pitch class the way this key writes it."""
        return pitch.spell(self.accidental)

    @classmethod
    def from_position(cls, position: int) -> Key:
        """The major key whose I chord sits at a wheel position."""
        return cls(root_at(position))

    @classmethod
    def parse(cls, name: str) -> Key:
        """
        Parse a key from 'C', 'Eb', 'F# major', 'C_major', 'Am' or 'A minor'.

        Minor keys resolve to their relative major.
        """
        text = name.strip().replace("_", " ")
        if not text:
            raise ValueError(f"Invalid key: '{name}'. Expected a major key name like 'C' or 'Eb'.")

        parts = text.split()
        root_text = parts[0]
        mode = " ".join(parts[1:]).lower()
        if not mode and len(root_text) > 1 and root_text.endswith("m"):
            root_text, mode = root_text[:-1], "minor"

        try:
            root = PitchClass.parse(root_text)
        except ValueError as e:
            raise ValueError(
                f"Invalid key: '{name}'. Expected a major key name like 'C' or 'Eb'."
            ) from e

        if mode in ("", "major", "maj"):
            return cls(root)
        if mode in ("minor", "min"):
            return cls(root.transpose(3))
        raise ValueError(f"Unsupported key mode: '{mode}'")

    def __str__(self) -> str:
        return f"{self.name} major"

    def __repr__(self) -> str:
        return f"Key({self.name!r})"
