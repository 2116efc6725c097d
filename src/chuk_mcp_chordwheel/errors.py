"""
Error kinds raised by the chord-wheel engine.

Every error carries the context it was raised in (section, measure, chord,
instrument) so a caller can point at the offending part of a song.
"""

from __future__ import annotations

from typing import Any


class ChordWheelError(Exception):
    """Base error for the chord-wheel engine."""

    def __init__(
        self,
        message: str,
        *,
        section: str | None = None,
        measure: int | None = None,
        chord: str | None = None,
        instrument: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.section = section
        self.measure = measure
        self.chord = chord
        self.instrument = instrument

    @property
    def context(self) -> dict[str, Any]:
        """Non-empty context fields."""
        fields = {
            "section": self.section,
            "measure": self.measure,
            "chord": self.chord,
            "instrument": self.instrument,
        }
        return {k: v for k, v in fields.items() if v is not None}

    def with_context(self, **context: Any) -> ChordWheelError:
        """Fill in context fields that are still empty and return self."""
        for name, value in context.items():
            if getattr(self, name, None) is None:
                setattr(self, name, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        where = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({where})"


class UnknownChordQuality(ChordWheelError):
    """
    Raised when a chord quality has no interval formula.

    Carries the major-triad fallback so callers can recover locally.
    """

    def __init__(
        self, quality: str, *, fallback: list[str] | None = None, **context: Any
    ) -> None:
        super().__init__(f"Unknown chord quality: '{quality}'", **context)
        self.quality = quality
        self.fallback = fallback or []


class InstrumentNotReady(ChordWheelError):
    """Raised when an instrument is requested before its resources have loaded."""


class InstrumentLoadFailed(ChordWheelError):
    """Raised when an instrument's resources could not be loaded."""


class RenderBufferUnavailable(ChordWheelError):
    """Raised when an offline render produced no usable buffer."""


class EffectsChainDisposed(ChordWheelError):
    """Raised when a disposed effects chain is used."""
