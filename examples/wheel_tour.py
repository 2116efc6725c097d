#!/usr/bin/env python3
"""
Example: Walk around the chord wheel.

Prints the three chords at every wheel position, then the diatonic
chords of a key with their voicings and suggested extensions.

Usage:
    python examples/wheel_tour.py
    python examples/wheel_tour.py Eb
"""

import sys

from chuk_mcp_chordwheel.core import (
    chords_at_wheel_position,
    diatonic_membership,
    key_signature,
    voice,
    voicing_suggestions,
)


def main() -> None:
    """Print the wheel and one key's chords."""
    key = sys.argv[1] if len(sys.argv) > 1 else "G"

    print("Wheel positions:")
    for position in range(12):
        chords = chords_at_wheel_position(position)
        print(
            f"  {position:2d}: {chords.major.symbol:<4} "
            f"{chords.minor.symbol:<5} {chords.diminished.symbol}"
        )

    print(f"\nKey of {key} ({key_signature(key)}):")
    for entry in diatonic_membership(key):
        voiced = " ".join(voice(entry.chord.notes))
        suggestions = ", ".join(voicing_suggestions(entry.numeral)) or "-"
        print(
            f"  {entry.numeral:<5} {entry.chord.symbol:<6} "
            f"pos {entry.position:2d} {entry.ring.value:<10} {voiced:<16} try: {suggestions}"
        )


if __name__ == "__main__":
    main()
