"""
Synthesis primitives - oscillators, envelopes and note voices.

Two kinds of voice render single notes into mono float buffers:
- SynthVoice: oscillator (optionally AM/FM modulated) through an ADSR
- SampleVoice: nearest reference sample, repitched by resampling

Everything here is a pure function of its inputs: no noise sources,
no global state, so renders are reproducible sample for sample.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal, Protocol, TypeAlias

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field
from scipy.signal import butter, lfilter  # type: ignore[import]

from chuk_mcp_chordwheel.constants import SAMPLE_RATE, OscillatorType
from chuk_mcp_chordwheel.core.pitch import midi_to_frequency

FloatArray: TypeAlias = NDArray[np.float64]

# Minimum times to prevent clicks
_MIN_ATTACK = 0.005
_MIN_RELEASE = 0.01
_MIN_DECAY = 0.0001


class Envelope(BaseModel):
    """ADSR envelope; times in seconds, sustain as a level (0-1)."""

    attack: float = Field(0.01, ge=0.0)
    decay: float = Field(0.1, ge=0.0)
    sustain: float = Field(0.7, ge=0.0, le=1.0)
    release: float = Field(1.0, ge=0.0)

    model_config = {"frozen": True}


class SynthPatch(BaseModel):
    """
    An oscillator voice definition.

    modulation "am" multiplies the carrier by a modulator at
    harmonicity x the note frequency; "fm" bends the carrier's phase
    by modulation_index.
    """

    oscillator: OscillatorType = "triangle"
    envelope: Envelope = Field(default_factory=Envelope)
    modulation: Literal["none", "am", "fm"] = "none"
    harmonicity: float = Field(1.0, gt=0.0)
    modulation_index: float = Field(0.0, ge=0.0)
    lowpass_hz: float | None = Field(None, gt=0.0, description="Optional fixed lowpass")
    gain: float = Field(0.25, ge=0.0, le=1.0)

    model_config = {"frozen": True}


class Voice(Protocol):
    """Anything that can render one note."""

    def render_note(
        self,
        midi_note: int,
        duration: float,
        sample_rate: int = SAMPLE_RATE,
        velocity: float = 0.8,
    ) -> FloatArray: ...


def oscillator(kind: OscillatorType, phase: FloatArray) -> FloatArray:
    """
    Evaluate a waveform at phases given in cycles.

    Output is in [-1, 1].
    """
    if kind == "sine":
        return np.sin(2 * np.pi * phase)
    frac = phase - np.floor(phase + 0.5)  # -0.5..0.5
    if kind == "triangle":
        return 2 * np.abs(2 * frac) - 1
    if kind == "sawtooth":
        return 2 * frac
    if kind == "square":
        return np.where(phase - np.floor(phase) < 0.5, 1.0, -1.0)
    raise ValueError(f"Unknown oscillator: {kind}")


def adsr(gate: float, envelope: Envelope, sr: int = SAMPLE_RATE) -> FloatArray:
    """
    Envelope for a note held for `gate` seconds, release tail included.

    The release starts from whatever level the envelope reached when the
    gate closed, so short notes never jump.
    """
    attack = max(envelope.attack, _MIN_ATTACK)
    decay = max(envelope.decay, _MIN_DECAY)
    release = max(envelope.release, _MIN_RELEASE)

    total = int(round((gate + release) * sr))
    t = np.arange(total, dtype=np.float64) / sr
    xp = [0.0, attack, attack + decay]
    fp = [0.0, 1.0, envelope.sustain]

    held = np.interp(t, xp, fp)
    gate_level = float(np.interp(gate, xp, fp))
    released = gate_level * np.clip(1.0 - (t - gate) / release, 0.0, 1.0)
    return np.where(t < gate, held, released)


@lru_cache(maxsize=256)
def _lowpass_coeffs(cutoff: float, sr: int) -> tuple[FloatArray, FloatArray]:
    normalized = min(max(cutoff / (sr / 2), 0.001), 0.99)
    b, a = butter(2, normalized, btype="low", output="ba")
    return np.asarray(b, dtype=np.float64), np.asarray(a, dtype=np.float64)


@dataclass(frozen=True)
class SynthVoice:
    """Renders notes from a SynthPatch."""

    patch: SynthPatch

    def render_note(
        self,
        midi_note: int,
        duration: float,
        sample_rate: int = SAMPLE_RATE,
        velocity: float = 0.8,
    ) -> FloatArray:
        env = adsr(duration, self.patch.envelope, sample_rate)
        t = np.arange(len(env), dtype=np.float64) / sample_rate
        freq = midi_to_frequency(midi_note)
        mod_freq = freq * self.patch.harmonicity

        phase = freq * t
        if self.patch.modulation == "fm":
            phase = phase + self.patch.modulation_index / (2 * np.pi) * np.sin(
                2 * np.pi * mod_freq * t
            )
        signal = oscillator(self.patch.oscillator, phase)
        if self.patch.modulation == "am":
            signal = signal * (0.5 + 0.5 * np.sin(2 * np.pi * mod_freq * t))

        if self.patch.lowpass_hz is not None:
            b, a = _lowpass_coeffs(self.patch.lowpass_hz, sample_rate)
            signal = np.asarray(lfilter(b, a, signal), dtype=np.float64)

        return signal * env * (self.patch.gain * velocity)


@dataclass(frozen=True)
class SampleVoice:
    """
    Renders notes from a handful of reference recordings.

    Each note uses the nearest reference (ties go to the lower one) and
    is repitched by linear-interpolation resampling.
    """

    samples: Mapping[int, FloatArray]  # MIDI note -> mono buffer
    sample_rate: int = SAMPLE_RATE
    envelope: Envelope = field(
        default_factory=lambda: Envelope(attack=0.0, decay=0.0, sustain=1.0, release=1.0)
    )
    gain: float = 0.8

    def __post_init__(self) -> None:
        if not self.samples:
            raise ValueError("SampleVoice needs at least one reference sample")

    def nearest_reference(self, midi_note: int) -> int:
        return min(self.samples, key=lambda ref: (abs(ref - midi_note), ref))

    def render_note(
        self,
        midi_note: int,
        duration: float,
        sample_rate: int = SAMPLE_RATE,
        velocity: float = 0.8,
    ) -> FloatArray:
        reference = self.nearest_reference(midi_note)
        source = self.samples[reference]
        env = adsr(duration, self.envelope, sample_rate)

        ratio = 2 ** ((midi_note - reference) / 12) * (self.sample_rate / sample_rate)
        positions = np.arange(len(env), dtype=np.float64) * ratio
        signal = np.interp(positions, np.arange(len(source)), source, right=0.0)
        return signal * env * (self.gain * velocity)


def mix_note(buffer: FloatArray, note: FloatArray, start: int) -> None:
    """Add a rendered note into a buffer in place, truncating at its end."""
    if start >= buffer.shape[-1] or start < 0:
        return
    end = min(start + len(note), buffer.shape[-1])
    buffer[..., start:end] += note[: end - start]
