"""
Live monitoring - fired chords rendered through the live effects chain.

An audio callback (outside this package) asks for blocks with pull();
the monitor sums whatever notes are sounding and runs the block through
its effects chain, whose stages keep state from one block to the next.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from chuk_mcp_chordwheel.audio.effects import EffectsChain, EffectSettings
from chuk_mcp_chordwheel.audio.synth import FloatArray, Voice
from chuk_mcp_chordwheel.constants import CHANNELS, DEFAULT_VELOCITY, SAMPLE_RATE

logger = logging.getLogger(__name__)


@dataclass
class _Sounding:
    samples: FloatArray
    offset: int = 0

    @property
    def finished(self) -> bool:
        return self.offset >= len(self.samples)


class LiveMonitor:
    """
    A VoiceSink that produces audio blocks on demand.

    Example:
        monitor = LiveMonitor.build(EffectSettings(reverb_mix=0.2))
        scheduler = PlaybackScheduler(registry, sink=monitor)
        ...
        block = monitor.pull(512)  # (2, 512) floats
    """

    def __init__(
        self,
        effects: EffectsChain,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        self.effects = effects
        self.sample_rate = sample_rate
        self.channels = channels
        self.velocity = velocity / 127
        self._sounding: list[_Sounding] = []

    @classmethod
    def build(
        cls, settings: EffectSettings | None = None, sample_rate: int = SAMPLE_RATE
    ) -> LiveMonitor:
        return cls(EffectsChain.build(settings, sample_rate), sample_rate)

    @property
    def active_notes(self) -> int:
        return len(self._sounding)

    def trigger(self, voice: Voice, notes: Sequence[int], duration: float) -> None:
        for midi_note in notes:
            samples = voice.render_note(midi_note, duration, self.sample_rate, self.velocity)
            self._sounding.append(_Sounding(samples))

    def release_all(self) -> None:
        """Silence every sounding note at once."""
        if self._sounding:
            logger.debug(f"Released {len(self._sounding)} sounding note(s)")
        self._sounding.clear()

    def pull(self, frames: int) -> FloatArray:
        """Next (channels, frames) block of monitored audio."""
        block = np.zeros((self.channels, frames))
        for note in self._sounding:
            chunk = note.samples[note.offset : note.offset + frames]
            block[:, : len(chunk)] += chunk
            note.offset += len(chunk)
        self._sounding = [n for n in self._sounding if not n.finished]
        return self.effects.process(block)

    def dispose(self) -> None:
        self.release_all()
        self.effects.dispose()
