"""
Effects chain - the fixed signal path from instrument to output.

Order is fixed:
    pitch shift -> tone tilt -> gain -> distortion          (tone shaping)
    -> auto filter -> phaser -> tremolo -> vibrato -> chorus (modulation)
    -> ping-pong delay -> reverb                            (time-based)
    -> limiter                                              (always last)

Every stage works on (channels, frames) float blocks and keeps its own
state (filter memories, delay lines, LFO phase) between blocks, so a
live stream processed block by block sounds the same as one long
buffer. A stage whose amount is zero is bypassed and hands its input
back untouched.

Chains own their buffers: dispose() releases them, and any use after
that raises EffectsChainDisposed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import numpy as np
from pydantic import BaseModel, Field
from scipy.signal import lfilter  # type: ignore[import]

from chuk_mcp_chordwheel.audio.synth import FloatArray, Voice
from chuk_mcp_chordwheel.constants import CHANNELS, LIMITER_THRESHOLD_DB, SAMPLE_RATE
from chuk_mcp_chordwheel.errors import EffectsChainDisposed

if TYPE_CHECKING:
    from chuk_mcp_chordwheel.instruments.registry import InstrumentRegistry

logger = logging.getLogger(__name__)

# Frames per coefficient update in time-varying filters
_MOD_BLOCK = 64


class EffectSettings(BaseModel):
    """
    User-facing effect amounts.

    Mix/depth/amount values are 0-1 and map directly to how much of the
    effect is heard; 0 switches the stage off. Defaults are neutral.
    """

    tone: float = Field(0.0, ge=-12.0, le=12.0, description="Tilt EQ in dB (+ brighter)")
    instrument_gain: float = Field(1.0, ge=0.0, le=2.0, description="Linear instrument gain")
    reverb_mix: float = Field(0.0, ge=0.0, le=1.0)
    delay_mix: float = Field(0.0, ge=0.0, le=1.0)
    delay_feedback: float = Field(0.3, ge=0.0, le=0.95)
    chorus_mix: float = Field(0.0, ge=0.0, le=1.0)
    vibrato_depth: float = Field(0.0, ge=0.0, le=1.0)
    distortion_amount: float = Field(0.0, ge=0.0, le=1.0)
    tremolo_depth: float = Field(0.0, ge=0.0, le=1.0)
    phaser_mix: float = Field(0.0, ge=0.0, le=1.0)
    filter_mix: float = Field(0.0, ge=0.0, le=1.0)
    pitch_shift: float = Field(0.0, ge=-12.0, le=12.0, description="Semitones")

    model_config = {"frozen": True}


class EffectStage:
    """
    Base class for one stage of the chain.

    Subclasses implement _process(); process() handles bypass,
    disposal and the running frame counter used by LFOs.
    """

    name: ClassVar[str] = "stage"

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        self.amount = amount
        self.sample_rate = sample_rate
        self.disposed = False
        self._frames = 0

    @property
    def bypassed(self) -> bool:
        return self.amount == 0

    def process(self, block: FloatArray) -> FloatArray:
        if self.disposed:
            raise self._disposed()
        if self.bypassed:
            return block
        out = self._process(block)
        self._frames += block.shape[1]
        return out

    def _process(self, block: FloatArray) -> FloatArray:
        raise NotImplementedError

    def dispose(self) -> None:
        self.disposed = True
        self._release()

    def _release(self) -> None:
        """Drop buffers held by the stage."""

    def _disposed(self) -> EffectsChainDisposed:
        return EffectsChainDisposed(f"Effect stage '{self.name}' has been disposed")

    def _lfo(self, frames: int, rate: float, phase: float = 0.0) -> FloatArray:
        """Unipolar (0-1) sine LFO continuing from the frames already processed."""
        t = (self._frames + np.arange(frames)) / self.sample_rate
        return 0.5 + 0.5 * np.sin(2 * np.pi * (rate * t + phase))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(amount={self.amount})"


def _crossfade(dry: FloatArray, wet: FloatArray, mix: float) -> FloatArray:
    return dry * (1.0 - mix) + wet * mix


def _subblocks(frames: int, size: int = _MOD_BLOCK) -> Iterator[tuple[int, int]]:
    for start in range(0, frames, size):
        yield start, min(start + size, frames)


class _DelayLine:
    """Multi-channel delay line with fractional (interpolated) reads."""

    def __init__(self, max_delay: int, channels: int = CHANNELS) -> None:
        self.size = max_delay + 2
        self.history = np.zeros((channels, self.size))

    def process(self, block: FloatArray, *taps: FloatArray) -> list[FloatArray]:
        """
        Write a block and read one output per tap.

        Each tap gives, per channel and frame, how many samples behind
        the write head to read; shape (channels, frames), values within
        0..max_delay.
        """
        frames = block.shape[1]
        ext = np.concatenate([self.history, block], axis=1)
        grid = np.arange(ext.shape[1], dtype=np.float64)
        outputs = []
        for delays in taps:
            read_at = self.size + np.arange(frames) - delays
            out = np.empty_like(block)
            for ch in range(block.shape[0]):
                out[ch] = np.interp(read_at[ch], grid, ext[ch])
            outputs.append(out)
        self.history = ext[:, -self.size :]
        return outputs


class _FeedbackLine:
    """
    y[n] = b0*x[n] + bd*x[n-D] + ad*y[n-D] on one channel.

    Covers pure delays, feedback combs and Schroeder allpasses. Runs in
    chunks of D samples, since every output in a chunk depends only on
    samples at least D back.
    """

    def __init__(self, delay: int, b0: float, bd: float, ad: float) -> None:
        self.delay = max(1, delay)
        self.b0, self.bd, self.ad = b0, bd, ad
        self.x_hist = np.zeros(self.delay)
        self.y_hist = np.zeros(self.delay)

    def process(self, x: FloatArray) -> FloatArray:
        d = self.delay
        n = len(x)
        ext_x = np.concatenate([self.x_hist, x])
        ext_y = np.concatenate([self.y_hist, np.zeros(n)])
        for start in range(0, n, d):
            end = min(start + d, n)
            ext_y[d + start : d + end] = (
                self.b0 * x[start:end]
                + self.bd * ext_x[start:end]
                + self.ad * ext_y[start:end]
            )
        self.x_hist = ext_x[-d:]
        self.y_hist = ext_y[-d:]
        return ext_y[d:]


# =============================================================================
# Tone shaping
# =============================================================================


class PitchShift(EffectStage):
    """
    Delay-line pitch shifter.

    Two taps sweep through a short window at the rate implied by the
    shift ratio and crossfade so the wrap-around is never heard.
    amount is in semitones.
    """

    name = "pitch_shift"
    WINDOW_SECONDS = 0.1

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self.window = int(self.WINDOW_SECONDS * sample_rate)
        self._line: _DelayLine | None = _DelayLine(self.window)
        self._phase = 0.0

    def _process(self, block: FloatArray) -> FloatArray:
        if self._line is None:
            raise self._disposed()
        frames = block.shape[1]
        ratio = 2 ** (self.amount / 12)
        w = float(self.window)
        d1 = (self._phase - (ratio - 1.0) * np.arange(frames)) % w
        d2 = (d1 + w / 2) % w
        self._phase = float((self._phase - (ratio - 1.0) * frames) % w)

        g1 = np.sin(np.pi * d1 / w) ** 2
        g2 = np.sin(np.pi * d2 / w) ** 2
        tap1, tap2 = self._line.process(
            block, np.broadcast_to(d1, block.shape), np.broadcast_to(d2, block.shape)
        )
        return tap1 * g1 + tap2 * g2

    def _release(self) -> None:
        self._line = None


def _shelf(kind: str, freq: float, gain_db: float, sr: int) -> tuple[FloatArray, FloatArray]:
    """RBJ cookbook shelving biquad (slope 1)."""
    a_gain = 10 ** (gain_db / 40)
    w0 = 2 * np.pi * freq / sr
    cos_w0 = np.cos(w0)
    alpha = np.sin(w0) / 2 * np.sqrt(2.0)
    k = 2 * np.sqrt(a_gain) * alpha
    ap, am = a_gain + 1, a_gain - 1
    if kind == "low":
        b = [
            a_gain * (ap - am * cos_w0 + k),
            2 * a_gain * (am - ap * cos_w0),
            a_gain * (ap - am * cos_w0 - k),
        ]
        a = [ap + am * cos_w0 + k, -2 * (am + ap * cos_w0), ap + am * cos_w0 - k]
    else:
        b = [
            a_gain * (ap + am * cos_w0 + k),
            -2 * a_gain * (am + ap * cos_w0),
            a_gain * (ap + am * cos_w0 - k),
        ]
        a = [ap - am * cos_w0 + k, 2 * (am - ap * cos_w0), ap - am * cos_w0 - k]
    b_arr, a_arr = np.asarray(b), np.asarray(a)
    return b_arr / a_arr[0], a_arr / a_arr[0]


class ToneTilt(EffectStage):
    """
    Three-band tilt: lows cut by `amount` dB, highs boosted by it.

    Negative amounts darken, positive brighten.
    """

    name = "tone"
    LOW_HZ = 400.0
    HIGH_HZ = 2500.0

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self._filters = [
            _shelf("low", self.LOW_HZ, -amount, sample_rate),
            _shelf("high", self.HIGH_HZ, amount, sample_rate),
        ]
        self._zi: list[FloatArray] | None = [np.zeros((CHANNELS, 2)) for _ in self._filters]

    def _process(self, block: FloatArray) -> FloatArray:
        if self._zi is None:
            raise self._disposed()
        out = block
        for i, (b, a) in enumerate(self._filters):
            out, self._zi[i] = lfilter(b, a, out, axis=-1, zi=self._zi[i])
        return np.asarray(out, dtype=np.float64)

    def _release(self) -> None:
        self._zi = None


class Gain(EffectStage):
    """Linear gain; unity is a bypass."""

    name = "gain"

    @property
    def bypassed(self) -> bool:
        return self.amount == 1

    def _process(self, block: FloatArray) -> FloatArray:
        return block * self.amount


class Distortion(EffectStage):
    """tanh waveshaper blended at half wet; amount sets the drive."""

    name = "distortion"
    WET = 0.5

    def _process(self, block: FloatArray) -> FloatArray:
        drive = 1.0 + 20.0 * self.amount
        shaped = np.tanh(drive * block) / np.tanh(drive)
        return _crossfade(block, shaped, self.WET)


# =============================================================================
# Modulation
# =============================================================================


class AutoFilter(EffectStage):
    """Lowpass swept by a slow LFO over four octaves above 200 Hz."""

    name = "auto_filter"
    RATE_HZ = 0.5
    BASE_HZ = 200.0
    OCTAVES = 4.0

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self._y_prev: FloatArray | None = np.zeros(CHANNELS)

    def _process(self, block: FloatArray) -> FloatArray:
        if self._y_prev is None:
            raise self._disposed()
        lfo = self._lfo(block.shape[1], self.RATE_HZ)
        wet = np.empty_like(block)
        for start, end in _subblocks(block.shape[1]):
            cutoff = self.BASE_HZ * 2 ** (self.OCTAVES * lfo[start])
            coeff = float(np.exp(-2 * np.pi * cutoff / self.sample_rate))
            zi = (coeff * self._y_prev)[:, None]
            seg, _ = lfilter([1 - coeff], [1, -coeff], block[:, start:end], axis=-1, zi=zi)
            wet[:, start:end] = seg
            self._y_prev = wet[:, end - 1].copy()
        return _crossfade(block, wet, self.amount)

    def _release(self) -> None:
        self._y_prev = None


class Phaser(EffectStage):
    """Four swept first-order allpasses summed with the dry signal."""

    name = "phaser"
    RATE_HZ = 0.5
    BASE_HZ = 1000.0
    OCTAVES = 3.0
    STAGES = 4

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self._x_prev: FloatArray | None = np.zeros((self.STAGES, CHANNELS))
        self._y_prev: FloatArray | None = np.zeros((self.STAGES, CHANNELS))

    def _process(self, block: FloatArray) -> FloatArray:
        if self._x_prev is None or self._y_prev is None:
            raise self._disposed()
        lfo = self._lfo(block.shape[1], self.RATE_HZ)
        swept = np.empty_like(block)
        for start, end in _subblocks(block.shape[1]):
            freq = min(self.BASE_HZ * 2 ** (self.OCTAVES * lfo[start]), 0.45 * self.sample_rate)
            t = np.tan(np.pi * freq / self.sample_rate)
            c = float((t - 1) / (t + 1))
            seg = block[:, start:end]
            for stage in range(self.STAGES):
                zi = (self._x_prev[stage] - c * self._y_prev[stage])[:, None]
                out, _ = lfilter([c, 1.0], [1.0, c], seg, axis=-1, zi=zi)
                self._x_prev[stage] = seg[:, -1]
                self._y_prev[stage] = out[:, -1]
                seg = out
            swept[:, start:end] = seg
        phased = 0.5 * (block + swept)
        return _crossfade(block, phased, self.amount)

    def _release(self) -> None:
        self._x_prev = None
        self._y_prev = None


class Tremolo(EffectStage):
    """Amplitude LFO at 5 Hz; channels swing in opposite phase."""

    name = "tremolo"
    RATE_HZ = 5.0

    def _process(self, block: FloatArray) -> FloatArray:
        frames = block.shape[1]
        left = 1.0 - self.amount * self._lfo(frames, self.RATE_HZ)
        right = 1.0 - self.amount * self._lfo(frames, self.RATE_HZ, phase=0.5)
        return block * np.stack([left, right])[: block.shape[0]]


class Vibrato(EffectStage):
    """Pitch wobble at 5 Hz from a modulated delay of up to 5 ms."""

    name = "vibrato"
    RATE_HZ = 5.0
    MAX_DELAY_SECONDS = 0.005

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self._max = self.MAX_DELAY_SECONDS * sample_rate
        self._line: _DelayLine | None = _DelayLine(int(self._max) + 1)

    def _process(self, block: FloatArray) -> FloatArray:
        if self._line is None:
            raise self._disposed()
        delay = 1.0 + self.amount * self._max * self._lfo(block.shape[1], self.RATE_HZ)
        (wet,) = self._line.process(block, np.broadcast_to(delay, block.shape))
        return wet

    def _release(self) -> None:
        self._line = None


class Chorus(EffectStage):
    """Two modulated 3.5 ms delays, 90 degrees apart, blended with the dry signal."""

    name = "chorus"
    RATE_HZ = 1.5
    DELAY_SECONDS = 0.0035
    DEPTH = 0.7

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self._center = self.DELAY_SECONDS * sample_rate
        self._line: _DelayLine | None = _DelayLine(int(self._center * (1 + self.DEPTH)) + 1)

    def _process(self, block: FloatArray) -> FloatArray:
        if self._line is None:
            raise self._disposed()
        frames = block.shape[1]
        swing = [2 * self._lfo(frames, self.RATE_HZ, phase) - 1 for phase in (0.0, 0.25)]
        delays = self._center * (1 + self.DEPTH * np.stack(swing)[: block.shape[0]])
        (wet,) = self._line.process(block, delays)
        return _crossfade(block, wet, self.amount)

    def _release(self) -> None:
        self._line = None


# =============================================================================
# Time-based
# =============================================================================


class PingPongDelay(EffectStage):
    """
    Quarter-second echoes bouncing left, right, left...

    The input (summed to mono) enters the left line; each line feeds the
    other, scaled by feedback on the way back to the left.
    """

    name = "delay"
    DELAY_SECONDS = 0.25

    def __init__(self, amount: float, feedback: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        self.feedback = feedback
        self.delay = int(self.DELAY_SECONDS * sample_rate)
        self._hist: FloatArray | None = np.zeros((3, self.delay))  # input, left, right

    def _process(self, block: FloatArray) -> FloatArray:
        if self._hist is None:
            raise self._disposed()
        d = self.delay
        frames = block.shape[1]
        mono = block.mean(axis=0)
        ext_in = np.concatenate([self._hist[0], mono])
        ext_l = np.concatenate([self._hist[1], np.zeros(frames)])
        ext_r = np.concatenate([self._hist[2], np.zeros(frames)])
        for start in range(0, frames, d):
            end = min(start + d, frames)
            ext_l[d + start : d + end] = ext_in[start:end] + self.feedback * ext_r[start:end]
            ext_r[d + start : d + end] = ext_l[start:end]
        self._hist = np.stack([ext_in[-d:], ext_l[-d:], ext_r[-d:]])
        wet = np.stack([ext_l[d:], ext_r[d:]])[: block.shape[0]]
        return _crossfade(block, wet, self.amount)

    def _release(self) -> None:
        self._hist = None


# (pre-delay, parallel combs, series allpasses)
_ReverbChannel = tuple[_FeedbackLine, list[_FeedbackLine], list[_FeedbackLine]]


class Reverb(EffectStage):
    """
    Schroeder/Freeverb-style reverb: pre-delay, four parallel feedback
    combs and two series allpasses per channel.

    Comb feedback is set so the tail falls 60 dB over DECAY_SECONDS.
    """

    name = "reverb"
    DECAY_SECONDS = 4.0
    PRE_DELAY_SECONDS = 0.02
    COMB_TUNING = (1116, 1188, 1277, 1356)  # samples at 44.1 kHz
    ALLPASS_TUNING = (556, 441)
    STEREO_SPREAD = 23
    ALLPASS_FEEDBACK = 0.5

    def __init__(self, amount: float, sample_rate: int = SAMPLE_RATE) -> None:
        super().__init__(amount, sample_rate)
        scale = sample_rate / 44100
        pre_delay = int(self.PRE_DELAY_SECONDS * sample_rate)
        self._channels: list[_ReverbChannel] | None = []
        for ch in range(CHANNELS):
            spread = self.STEREO_SPREAD * ch
            combs = []
            for tuning in self.COMB_TUNING:
                delay = int((tuning + spread) * scale)
                g = 10 ** (-3 * delay / (self.DECAY_SECONDS * sample_rate))
                combs.append(_FeedbackLine(delay, b0=0.0, bd=1.0, ad=g))
            allpasses = [
                _FeedbackLine(
                    int((tuning + spread) * scale),
                    b0=-self.ALLPASS_FEEDBACK,
                    bd=1.0,
                    ad=self.ALLPASS_FEEDBACK,
                )
                for tuning in self.ALLPASS_TUNING
            ]
            self._channels.append(
                (_FeedbackLine(pre_delay, b0=0.0, bd=1.0, ad=0.0), combs, allpasses)
            )

    def _process(self, block: FloatArray) -> FloatArray:
        if self._channels is None:
            raise self._disposed()
        wet = np.empty_like(block)
        for ch in range(block.shape[0]):
            pre, combs, allpasses = self._channels[ch]
            delayed = pre.process(block[ch])
            out = sum(comb.process(delayed) for comb in combs) / len(combs)
            for allpass in allpasses:
                out = allpass.process(out)
            wet[ch] = out
        return _crossfade(block, wet, self.amount)

    def _release(self) -> None:
        self._channels = None


# =============================================================================
# Output
# =============================================================================


class Limiter(EffectStage):
    """
    Sample-peak brickwall at the threshold (dB).

    Never bypassed. Blocks that stay under the threshold pass through
    bit for bit (gain is exactly 1.0 there).
    """

    name = "limiter"

    def __init__(
        self, threshold_db: float = LIMITER_THRESHOLD_DB, sample_rate: int = SAMPLE_RATE
    ) -> None:
        super().__init__(threshold_db, sample_rate)
        self.threshold = 10 ** (threshold_db / 20)

    @property
    def bypassed(self) -> bool:
        return False

    def _process(self, block: FloatArray) -> FloatArray:
        peak = np.abs(block).max(axis=0)
        gain = np.minimum(1.0, self.threshold / np.maximum(peak, 1e-12))
        return block * gain


# =============================================================================
# Chain
# =============================================================================

StageFactory = Callable[[EffectSettings, int], EffectStage]

STAGE_ORDER: tuple[tuple[str, StageFactory], ...] = (
    ("pitch_shift", lambda s, sr: PitchShift(s.pitch_shift, sr)),
    ("tone", lambda s, sr: ToneTilt(s.tone, sr)),
    ("gain", lambda s, sr: Gain(s.instrument_gain, sr)),
    ("distortion", lambda s, sr: Distortion(s.distortion_amount, sr)),
    ("auto_filter", lambda s, sr: AutoFilter(s.filter_mix, sr)),
    ("phaser", lambda s, sr: Phaser(s.phaser_mix, sr)),
    ("tremolo", lambda s, sr: Tremolo(s.tremolo_depth, sr)),
    ("vibrato", lambda s, sr: Vibrato(s.vibrato_depth, sr)),
    ("chorus", lambda s, sr: Chorus(s.chorus_mix, sr)),
    ("delay", lambda s, sr: PingPongDelay(s.delay_mix, s.delay_feedback, sr)),
    ("reverb", lambda s, sr: Reverb(s.reverb_mix, sr)),
    ("limiter", lambda s, sr: Limiter(LIMITER_THRESHOLD_DB, sr)),
)


class EffectsChain:
    """
    An ordered list of stages, processed in sequence.

    Build with EffectsChain.build(); use as a context manager (or call
    dispose()) to release it.
    """

    def __init__(self, stages: list[EffectStage]) -> None:
        self.stages = stages
        self._disposed = False

    @classmethod
    def build(
        cls,
        settings: EffectSettings | None = None,
        sample_rate: int = SAMPLE_RATE,
        wet: bool = True,
    ) -> EffectsChain:
        """
        Construct every stage in order.

        wet=False gives an empty chain (the dry signal, unlimited). If a
        stage fails to construct, the ones already built are disposed
        before the error propagates.
        """
        settings = settings or EffectSettings()
        stages: list[EffectStage] = []
        if not wet:
            return cls(stages)
        try:
            for _, factory in STAGE_ORDER:
                stages.append(factory(settings, sample_rate))
        except Exception:
            for stage in stages:
                stage.dispose()
            raise
        return cls(stages)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def stage(self, name: str) -> EffectStage:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def process(self, block: FloatArray) -> FloatArray:
        """Run a (channels, frames) block through every stage."""
        if self._disposed:
            raise EffectsChainDisposed("Effects chain has been disposed")
        for stage in self.stages:
            block = stage.process(block)
        return block

    def dispose(self) -> None:
        """Release every stage. Safe to call more than once."""
        if self._disposed:
            return
        for stage in self.stages:
            stage.dispose()
        self._disposed = True
        logger.debug(f"Disposed effects chain ({len(self.stages)} stages)")

    def __enter__(self) -> EffectsChain:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()


@dataclass
class SignalChain:
    """An instrument voice feeding an effects chain."""

    voice: Voice
    effects: EffectsChain

    def dispose(self) -> None:
        self.effects.dispose()


async def build_signal_chain(
    registry: InstrumentRegistry,
    instrument_id: str,
    settings: EffectSettings | None = None,
    sample_rate: int = SAMPLE_RATE,
    wet: bool = True,
) -> SignalChain:
    """
    Build the effects chain and attach an instrument to it.

    If the instrument cannot be loaded, the already-built chain is
    disposed and the error propagates.
    """
    effects = EffectsChain.build(settings, sample_rate, wet)
    try:
        voice = await registry.load(instrument_id)
    except BaseException:
        effects.dispose()
        raise
    return SignalChain(voice=voice, effects=effects)
