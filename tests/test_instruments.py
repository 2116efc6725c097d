"""
Tests for synthesis voices and the instrument registry.
"""

import asyncio
from pathlib import Path

import numpy as np
import pytest

from chuk_mcp_chordwheel.audio import Envelope, SampleVoice, SynthPatch, SynthVoice, adsr, oscillator
from chuk_mcp_chordwheel.errors import InstrumentLoadFailed, InstrumentNotReady
from chuk_mcp_chordwheel.instruments import InstrumentRegistry, InstrumentState, SamplerSpec


def tone(length: int = 4410) -> np.ndarray:
    return np.sin(np.linspace(0, 40 * np.pi, length))


class FakeLoader:
    """Sample loader that returns a short sine and counts calls."""

    def __init__(self, rate: int = 44100, fail_on: str | None = None):
        self.rate = rate
        self.fail_on = fail_on
        self.calls: list[Path] = []

    async def __call__(self, path: Path) -> tuple[int, np.ndarray]:
        self.calls.append(path)
        await asyncio.sleep(0)
        if self.fail_on and self.fail_on in str(path):
            raise FileNotFoundError(path)
        return self.rate, tone()


class TestSynthesis:
    """Tests for oscillators, envelopes and voices."""

    @pytest.mark.parametrize("kind", ["sine", "triangle", "sawtooth", "square"])
    def test_oscillator_range(self, kind: str) -> None:
        """Waveforms stay within [-1, 1]."""
        wave = oscillator(kind, np.linspace(0, 3, 1000))  # type: ignore[arg-type]
        assert wave.max() <= 1.0
        assert wave.min() >= -1.0

    def test_unknown_oscillator(self) -> None:
        """Only four shapes exist."""
        with pytest.raises(ValueError, match="Unknown oscillator"):
            oscillator("noise", np.zeros(4))  # type: ignore[arg-type]

    def test_adsr_length_and_shape(self) -> None:
        """Gate plus release, starting and ending silent."""
        env = adsr(0.5, Envelope(attack=0.1, decay=0.1, sustain=0.5, release=0.2), sr=1000)
        assert len(env) == 700
        assert env[0] == 0.0
        assert env[100] == pytest.approx(1.0)
        assert env[300] == pytest.approx(0.5)
        assert env[-1] == pytest.approx(0.0, abs=0.01)

    def test_synth_voice_is_deterministic(self) -> None:
        """Same note, same samples."""
        voice = SynthVoice(SynthPatch(oscillator="sawtooth", modulation="fm", modulation_index=2.0))
        a = voice.render_note(60, 0.25)
        b = voice.render_note(60, 0.25)
        assert np.array_equal(a, b)
        assert np.abs(a).max() > 0

    def test_sample_voice_nearest_reference(self) -> None:
        """Ties go to the lower reference."""
        voice = SampleVoice(samples={60: tone(), 64: tone()})
        assert voice.nearest_reference(61) == 60
        assert voice.nearest_reference(62) == 60
        assert voice.nearest_reference(63) == 64

    def test_sample_voice_needs_samples(self) -> None:
        """Empty sample maps are rejected."""
        with pytest.raises(ValueError):
            SampleVoice(samples={})


class TestInstrumentRegistry:
    """Tests for InstrumentRegistry."""

    def test_presets_registered(self, registry: InstrumentRegistry) -> None:
        """Synth and sampler presets are known."""
        assert {"organ", "synth", "pad", "piano", "guitar"} <= set(registry.instruments())

    def test_synth_ready_immediately(self, registry: InstrumentRegistry) -> None:
        """Synth presets need no loading."""
        assert registry.is_ready("organ")
        assert isinstance(registry.get("organ"), SynthVoice)

    def test_sampler_not_ready_before_load(self, registry: InstrumentRegistry) -> None:
        """Reading a sampler before it loads raises InstrumentNotReady."""
        assert registry.state("piano") == InstrumentState.UNLOADED
        with pytest.raises(InstrumentNotReady) as exc_info:
            registry.get("piano")
        assert exc_info.value.instrument == "piano"

    def test_unknown_instrument(self, registry: InstrumentRegistry) -> None:
        """Unknown ids are a load failure."""
        with pytest.raises(InstrumentLoadFailed, match="Unknown instrument"):
            registry.get("theremin")

    @pytest.mark.asyncio
    async def test_load_unknown_instrument(self, registry: InstrumentRegistry) -> None:
        """Loading an id that was never registered fails with its id attached."""
        with pytest.raises(InstrumentLoadFailed, match="Unknown instrument") as exc_info:
            await registry.load("theremin")
        assert exc_info.value.instrument == "theremin"

    @pytest.mark.asyncio
    async def test_sampler_loads(self, temp_dir: Path) -> None:
        """After load() the sampler is ready and renders."""
        loader = FakeLoader()
        registry = InstrumentRegistry(samples_dir=temp_dir, loader=loader)
        voice = await registry.load("piano")
        assert isinstance(voice, SampleVoice)
        assert sorted(voice.samples) == [60, 63, 66, 69]
        assert registry.state("piano") == InstrumentState.READY
        assert registry.get("piano") is voice
        assert len(voice.render_note(62, 0.1)) > 0

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_work(self, temp_dir: Path) -> None:
        """Concurrent callers wait on one load."""
        loader = FakeLoader()
        registry = InstrumentRegistry(samples_dir=temp_dir, loader=loader)
        first, second = await asyncio.gather(registry.load("guitar"), registry.ready("guitar"))
        assert first is registry.get("guitar")
        assert second is None
        assert len(loader.calls) == 3

    @pytest.mark.asyncio
    async def test_loading_state(self, temp_dir: Path) -> None:
        """While files load, the instrument is still not ready."""
        registry = InstrumentRegistry(samples_dir=temp_dir, loader=FakeLoader())
        task = asyncio.create_task(registry.load("piano"))
        await asyncio.sleep(0)
        assert registry.state("piano") == InstrumentState.LOADING
        with pytest.raises(InstrumentNotReady):
            registry.get("piano")
        await task
        assert registry.is_ready("piano")

    @pytest.mark.asyncio
    async def test_load_failure(self, temp_dir: Path) -> None:
        """A missing file fails the load and the failure sticks."""
        registry = InstrumentRegistry(samples_dir=temp_dir, loader=FakeLoader(fail_on="A4"))
        with pytest.raises(InstrumentLoadFailed) as exc_info:
            await registry.load("piano")
        assert exc_info.value.instrument == "piano"
        assert registry.state("piano") == InstrumentState.FAILED
        with pytest.raises(InstrumentLoadFailed):
            registry.get("piano")

    @pytest.mark.asyncio
    async def test_no_samples_dir(self, registry: InstrumentRegistry) -> None:
        """Samplers cannot load without a samples directory."""
        with pytest.raises(InstrumentLoadFailed, match="no samples directory"):
            await registry.load("guitar")

    @pytest.mark.asyncio
    async def test_mixed_sample_rates(self, temp_dir: Path) -> None:
        """Reference samples must share a sample rate."""
        rates = iter([44100, 48000])

        async def loader(path: Path) -> tuple[int, np.ndarray]:
            return next(rates), tone()

        registry = InstrumentRegistry(samples_dir=temp_dir, loader=loader, include_presets=False)
        registry.register("duo", SamplerSpec(samples={"C4": "a.wav", "C5": "b.wav"}))
        with pytest.raises(InstrumentLoadFailed, match="mixed sample rates"):
            await registry.load("duo")

    @pytest.mark.asyncio
    async def test_resolve_falls_back_to_default(self, registry: InstrumentRegistry) -> None:
        """Playback substitutes the default voice for a failed instrument."""
        assert await registry.resolve("piano") is registry.default_voice
        assert await registry.resolve("nothing") is registry.default_voice
        assert await registry.resolve("organ") is registry.get("organ")

    @pytest.mark.asyncio
    async def test_dispose_keeps_synths(self, temp_dir: Path) -> None:
        """Loaded samplers are dropped, synths remain."""
        registry = InstrumentRegistry(samples_dir=temp_dir, loader=FakeLoader())
        await registry.load("piano")
        registry.dispose()
        assert registry.state("piano") == InstrumentState.UNLOADED
        assert registry.is_ready("organ")

    def test_register_replaces(self, registry: InstrumentRegistry) -> None:
        """Registering an id again swaps its voice."""
        patch = SynthPatch(oscillator="square")
        registry.register("organ", patch)
        voice = registry.get("organ")
        assert isinstance(voice, SynthVoice)
        assert voice.patch == patch
