"""
The chord wheel - chords by position and diatonic membership.

Each of the 12 positions holds three chords on three rings:
- major: the position's major root
- minor: its relative minor (a minor third below)
- diminished: its leading tone (a semitone below)

A key's seven diatonic chords fall on three adjacent positions: the
key's own position, one counter-clockwise (IV, ii) and one clockwise
(V, iii). Positions wrap, so F (11) and C (0) are neighbours.
"""

from __future__ import annotations

from dataclasses import dataclass

from chuk_mcp_chordwheel.constants import WheelRing

from .chord import Chord, build_chord
from .key import WHEEL_SIZE, Key, KeySignature, root_at, validate_position


@dataclass(frozen=True)
class WheelChords:
    """The three chords at one wheel position."""

    position: int
    major: Chord
    minor: Chord
    diminished: Chord

    def on_ring(self, ring: WheelRing) -> Chord:
        """The chord on a given ring."""
        if ring == WheelRing.MAJOR:
            return self.major
        if ring == WheelRing.MINOR:
            return self.minor
        return self.diminished


@dataclass(frozen=True)
class DiatonicEntry:
    """One diatonic chord of a key and where it sits on the wheel."""

    numeral: str
    position: int
    ring: WheelRing
    chord: Chord


# (numeral, position offset from the key, ring) in scale-degree order
_DIATONIC_LAYOUT: tuple[tuple[str, int, WheelRing], ...] = (
    ("I", 0, WheelRing.MAJOR),
    ("ii", -1, WheelRing.MINOR),
    ("iii", 1, WheelRing.MINOR),
    ("IV", -1, WheelRing.MAJOR),
    ("V", 1, WheelRing.MAJOR),
    ("vi", 0, WheelRing.MINOR),
    ("vii°", 0, WheelRing.DIMINISHED),
)

_RING_QUALITY: dict[WheelRing, str] = {
    WheelRing.MAJOR: "major",
    WheelRing.MINOR: "minor",
    WheelRing.DIMINISHED: "diminished",
}

# Extensions worth trying on each function
_SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "I": ("major7", "major9", "major13", "major6"),
    "IV": ("major7", "major9", "major13", "major6"),
    "V": ("dominant7", "dominant9", "dominant11", "sus4", "dominant13"),
    "ii": ("minor7", "minor9", "minor11", "minor6"),
    "iii": ("minor7",),
    "vi": ("minor7", "minor9", "minor11"),
    "vii°": ("half-diminished7",),
    # Secondary dominants
    "II": ("dominant7", "sus4"),
    "III": ("dominant7", "sus4"),
}


def _wrap(position: int) -> int:
    return position % WHEEL_SIZE


def _as_key(key: Key | str) -> Key:
    return key if isinstance(key, Key) else Key.parse(key)


def chords_at_wheel_position(position: int) -> WheelChords:
    """
    The major, minor and diminished chords at a wheel position.

    Chords are spelled in the major key at that position.

    Raises:
        ValueError: if position is outside 0-11
    """
    validate_position(position)
    home = Key.from_position(position)
    major_root = root_at(position)
    return WheelChords(
        position=position,
        major=build_chord(major_root, "major", key=home),
        minor=build_chord(major_root.transpose(-3), "minor", key=home),
        diminished=build_chord(major_root.transpose(-1), "diminished", key=home),
    )


def key_position(key: Key | str) -> int:
    """Wheel position of a key's I chord."""
    return _as_key(key).position


def key_from_position(position: int) -> Key:
    """The key whose I chord sits at a wheel position."""
    return Key.from_position(validate_position(position))


def key_signature(key: Key | str) -> KeySignature:
    """Sharps or flats of a major key."""
    return _as_key(key).signature


def wheel_rotation(key: Key | str) -> float:
    """Rotation in degrees that brings a key's position to the top of the wheel."""
    return -key_position(key) * (360.0 / WHEEL_SIZE)


def diatonic_membership(key: Key | str) -> list[DiatonicEntry]:
    """
    The seven diatonic chords of a major key, with their wheel slots.

    Entries come in scale-degree order (I ii iii IV V vi vii°). Chords are
    spelled in the key and carry their numeral.
    """
    resolved = _as_key(key)
    home = resolved.position
    entries: list[DiatonicEntry] = []
    for numeral, offset, ring in _DIATONIC_LAYOUT:
        position = _wrap(home + offset)
        slot = chords_at_wheel_position(position).on_ring(ring)
        chord = build_chord(slot.root, _RING_QUALITY[ring], key=resolved, numeral=numeral)
        entries.append(DiatonicEntry(numeral=numeral, position=position, ring=ring, chord=chord))
    return entries


def is_diatonic(key: Key | str, position: int, ring: WheelRing) -> bool:
    """Whether the chord in a wheel slot belongs to a key."""
    validate_position(position)
    return any(
        entry.position == position and entry.ring == ring for entry in diatonic_membership(key)
    )


def voicing_suggestions(numeral: str) -> list[str]:
    """Extension qualities that suit a chord's function in the key."""
    return list(_SUGGESTIONS.get(numeral.strip(), ()))
