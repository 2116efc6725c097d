"""
Tests for the effects chain.
"""

import numpy as np
import pytest

from chuk_mcp_chordwheel.audio import (
    STAGE_ORDER,
    EffectSettings,
    EffectsChain,
    build_signal_chain,
)
from chuk_mcp_chordwheel.audio import effects as effects_module
from chuk_mcp_chordwheel.audio.effects import Limiter, PingPongDelay, Reverb, Tremolo
from chuk_mcp_chordwheel.errors import EffectsChainDisposed, InstrumentLoadFailed
from chuk_mcp_chordwheel.instruments import InstrumentRegistry

SR = 8000


def stereo_tone(frames: int = 2048, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(frames) / SR
    mono = amplitude * np.sin(2 * np.pi * 220 * t)
    return np.stack([mono, mono])


def impulse(frames: int = 4000) -> np.ndarray:
    block = np.zeros((2, frames))
    block[:, 0] = 0.5
    return block


class TestChainOrder:
    """Tests for the fixed stage order."""

    def test_order(self) -> None:
        """Tone shaping, modulation, time-based, limiter last."""
        assert [name for name, _ in STAGE_ORDER] == [
            "pitch_shift",
            "tone",
            "gain",
            "distortion",
            "auto_filter",
            "phaser",
            "tremolo",
            "vibrato",
            "chorus",
            "delay",
            "reverb",
            "limiter",
        ]

    def test_build_follows_order(self) -> None:
        """Built stages carry their names in order."""
        with EffectsChain.build(sample_rate=SR) as chain:
            assert [s.name for s in chain.stages] == [name for name, _ in STAGE_ORDER]

    def test_dry_chain_is_empty(self) -> None:
        """wet=False skips every stage."""
        chain = EffectsChain.build(EffectSettings(reverb_mix=1.0), SR, wet=False)
        block = stereo_tone(amplitude=1.0)
        assert chain.process(block) is block


class TestBypass:
    """Stages at zero pass their input through untouched."""

    def test_default_chain_is_identity(self) -> None:
        """Neutral settings and a quiet signal come out bit-identical."""
        block = stereo_tone()
        with EffectsChain.build(sample_rate=SR) as chain:
            out = chain.process(block)
        assert np.array_equal(out, block)

    @pytest.mark.parametrize(
        "field",
        [
            "reverb_mix",
            "delay_mix",
            "chorus_mix",
            "vibrato_depth",
            "distortion_amount",
            "tremolo_depth",
            "phaser_mix",
            "filter_mix",
        ],
    )
    def test_zero_mix_stage_is_bypassed(self, field: str) -> None:
        """Setting one mix to zero leaves the signal untouched."""
        settings = EffectSettings(**{field: 0.0})
        with EffectsChain.build(settings, SR) as chain:
            block = stereo_tone()
            assert np.array_equal(chain.process(block), block)

    def test_unity_gain_and_zero_shift_bypass(self) -> None:
        """Gain 1.0, tone 0 dB and pitch shift 0 are bypasses."""
        with EffectsChain.build(sample_rate=SR) as chain:
            assert chain.stage("gain").bypassed
            assert chain.stage("tone").bypassed
            assert chain.stage("pitch_shift").bypassed
            assert not chain.stage("limiter").bypassed


class TestStages:
    """Behavior of individual stages."""

    def test_limiter_clamps_peaks(self) -> None:
        """Loud samples are pulled down to the threshold."""
        limiter = Limiter(-3.0, SR)
        out = limiter.process(stereo_tone(amplitude=1.5))
        assert np.abs(out).max() <= limiter.threshold + 1e-12
        assert limiter.threshold == pytest.approx(10 ** (-3 / 20))

    def test_limiter_leaves_quiet_signal(self) -> None:
        """Below the threshold the gain is exactly one."""
        block = stereo_tone(amplitude=0.1)
        assert np.array_equal(Limiter(-3.0, SR).process(block), block)

    def test_delay_echoes(self) -> None:
        """An impulse comes back a quarter second later on the left."""
        delay = PingPongDelay(1.0, 0.5, SR)
        out = delay.process(impulse(6000))
        echo = int(0.25 * SR)
        assert out[0, echo] == pytest.approx(0.5)
        assert out[1, 2 * echo] == pytest.approx(0.5)
        assert out[0, 0] == 0.0

    def test_delay_state_carries_across_blocks(self) -> None:
        """Block-by-block processing matches one long block."""
        whole = PingPongDelay(0.5, 0.4, SR).process(impulse(6000))
        split = PingPongDelay(0.5, 0.4, SR)
        parts = [split.process(impulse(6000)[:, :2500]), split.process(impulse(6000)[:, 2500:])]
        assert np.allclose(np.concatenate(parts, axis=1), whole)

    def test_reverb_tail(self) -> None:
        """Reverb spreads an impulse over time."""
        out = Reverb(1.0, SR).process(impulse(8000))
        assert np.abs(out[:, 2000:]).max() > 0

    def test_tremolo_stereo_phase(self) -> None:
        """Left and right tremolo swing in opposite phase."""
        block = np.ones((2, SR))
        out = Tremolo(1.0, SR).process(block)
        assert not np.allclose(out[0], out[1])
        assert out.min() >= 0.0

    def test_effects_change_the_signal(self) -> None:
        """A non-zero mix makes an audible difference."""
        settings = EffectSettings(chorus_mix=0.5, reverb_mix=0.3, distortion_amount=0.4)
        with EffectsChain.build(settings, SR) as chain:
            block = stereo_tone()
            assert not np.allclose(chain.process(block), block)


class TestDisposal:
    """Tests for dispose and partial-build cleanup."""

    def test_use_after_dispose(self) -> None:
        """A disposed chain raises EffectsChainDisposed."""
        chain = EffectsChain.build(sample_rate=SR)
        chain.dispose()
        assert chain.disposed
        with pytest.raises(EffectsChainDisposed):
            chain.process(stereo_tone())
        chain.dispose()

    def test_stage_use_after_dispose(self) -> None:
        """Stages refuse to run once disposed."""
        chain = EffectsChain.build(EffectSettings(reverb_mix=0.5), SR)
        reverb = chain.stage("reverb")
        chain.dispose()
        with pytest.raises(EffectsChainDisposed):
            reverb.process(stereo_tone())

    @pytest.mark.parametrize(
        "name",
        ["pitch_shift", "tone", "auto_filter", "phaser", "vibrato", "chorus", "delay", "reverb"],
    )
    def test_released_buffers_raise_disposed(self, name: str) -> None:
        """Processing with released state buffers raises EffectsChainDisposed."""
        settings = EffectSettings(
            pitch_shift=3.0,
            tone=4.0,
            filter_mix=0.5,
            phaser_mix=0.5,
            vibrato_depth=0.5,
            chorus_mix=0.5,
            delay_mix=0.5,
            reverb_mix=0.5,
        )
        chain = EffectsChain.build(settings, SR)
        stage = chain.stage(name)
        chain.dispose()
        with pytest.raises(EffectsChainDisposed, match=name):
            stage._process(stereo_tone())

    def test_partial_build_disposes_built_stages(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A stage failing to construct disposes the ones before it."""
        built = []

        def tracking(factory):
            def make(settings, sr):
                stage = factory(settings, sr)
                built.append(stage)
                return stage

            return make

        def broken(settings, sr):
            raise RuntimeError("no buffer")

        order = [(name, tracking(factory)) for name, factory in STAGE_ORDER[:5]]
        order.append(("phaser", broken))
        monkeypatch.setattr(effects_module, "STAGE_ORDER", tuple(order))

        with pytest.raises(RuntimeError, match="no buffer"):
            EffectsChain.build(sample_rate=SR)
        assert len(built) == 5
        assert all(stage.disposed for stage in built)

    @pytest.mark.asyncio
    async def test_signal_chain_disposes_on_load_failure(
        self, registry: InstrumentRegistry, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """If the instrument fails, the effects built for it are released."""
        chains = []
        original = EffectsChain.build

        def capture(*args, **kwargs):
            chain = original(*args, **kwargs)
            chains.append(chain)
            return chain

        monkeypatch.setattr(EffectsChain, "build", capture)
        with pytest.raises(InstrumentLoadFailed):
            await build_signal_chain(registry, "piano", sample_rate=SR)
        assert chains and chains[0].disposed

    @pytest.mark.asyncio
    async def test_signal_chain(self, registry: InstrumentRegistry) -> None:
        """A ready instrument yields voice plus live chain."""
        chain = await build_signal_chain(registry, "organ", sample_rate=SR)
        assert chain.voice is registry.get("organ")
        chain.dispose()
        assert chain.effects.disposed
