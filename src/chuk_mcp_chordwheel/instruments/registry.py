"""
Instrument registry - where playback and export get their voices.

The registry is owned by the caller and handed to the scheduler and
the renderer; nothing here is a module-level singleton. Synth presets
are ready as soon as they are registered. Samplers load their files
asynchronously: until then get() raises InstrumentNotReady, and
await load() (or ready()) resolves once they are usable.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path

import numpy as np
from scipy.io import wavfile  # type: ignore[import]

from chuk_mcp_chordwheel.audio.synth import FloatArray, SampleVoice, SynthPatch, SynthVoice, Voice
from chuk_mcp_chordwheel.core.pitch import Note
from chuk_mcp_chordwheel.errors import InstrumentLoadFailed, InstrumentNotReady

from .presets import DEFAULT_VOICE_PATCH, SAMPLER_PRESETS, SYNTH_PRESETS, SamplerSpec

logger = logging.getLogger(__name__)

# (sample_rate, mono float buffer) for a file path
SampleLoader = Callable[[Path], Awaitable[tuple[int, FloatArray]]]

InstrumentSpec = SynthPatch | SamplerSpec


class InstrumentState(str, Enum):
    """Load state of a registered instrument."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def _read_wav(path: Path) -> tuple[int, FloatArray]:
    rate, data = wavfile.read(path)
    samples = np.asarray(data)
    if np.issubdtype(samples.dtype, np.integer):
        samples = samples.astype(np.float64) / float(np.iinfo(samples.dtype).max)
    else:
        samples = samples.astype(np.float64)
    if samples.ndim > 1:
        samples = samples.mean(axis=1)
    return int(rate), samples


async def read_wav_sample(path: Path) -> tuple[int, FloatArray]:
    """Read a WAV file off the event loop, downmixed to mono float."""
    return await asyncio.to_thread(_read_wav, path)


class InstrumentRegistry:
    """
    Registry of instruments by id.

    Example:
        registry = InstrumentRegistry(samples_dir=Path("samples"))
        voice = await registry.load("piano")
        voice = registry.get("organ")  # synths are ready immediately
    """

    def __init__(
        self,
        samples_dir: Path | None = None,
        loader: SampleLoader | None = None,
        include_presets: bool = True,
    ) -> None:
        self.samples_dir = samples_dir
        self._loader = loader or read_wav_sample
        self._specs: dict[str, InstrumentSpec] = {}
        self._voices: dict[str, Voice] = {}
        self._errors: dict[str, InstrumentLoadFailed] = {}
        self._loading: dict[str, asyncio.Task[Voice]] = {}
        self.default_voice: Voice = SynthVoice(DEFAULT_VOICE_PATCH)

        if include_presets:
            for instrument_id, patch in SYNTH_PRESETS.items():
                self.register(instrument_id, patch)
            for instrument_id, spec in SAMPLER_PRESETS.items():
                self.register(instrument_id, spec)

    def register(self, instrument_id: str, spec: InstrumentSpec) -> None:
        """Add or replace an instrument. Synths become ready immediately."""
        self._forget(instrument_id)
        self._specs[instrument_id] = spec
        if isinstance(spec, SynthPatch):
            self._voices[instrument_id] = SynthVoice(spec)

    def instruments(self) -> list[str]:
        return sorted(self._specs)

    def state(self, instrument_id: str) -> InstrumentState:
        if instrument_id in self._voices:
            return InstrumentState.READY
        if instrument_id in self._errors:
            return InstrumentState.FAILED
        if instrument_id in self._loading:
            return InstrumentState.LOADING
        return InstrumentState.UNLOADED

    def is_ready(self, instrument_id: str) -> bool:
        return self.state(instrument_id) == InstrumentState.READY

    def get(self, instrument_id: str) -> Voice:
        """
        Get a loaded instrument without waiting.

        Raises:
            InstrumentNotReady: if it is unloaded or still loading
            InstrumentLoadFailed: if it is unknown or its load failed
        """
        if instrument_id in self._voices:
            return self._voices[instrument_id]
        if instrument_id in self._errors:
            raise self._errors[instrument_id]
        if instrument_id not in self._specs:
            raise InstrumentLoadFailed(
                f"Unknown instrument: '{instrument_id}'.", instrument=instrument_id
            )
        raise InstrumentNotReady(
            f"Instrument '{instrument_id}' is not loaded yet", instrument=instrument_id
        )

    async def load(self, instrument_id: str) -> Voice:
        """
        Load an instrument (once) and return its voice.

        Concurrent callers share the same load.

        Raises:
            InstrumentLoadFailed: if it is unknown or its samples cannot be read
        """
        if instrument_id in self._voices:
            return self._voices[instrument_id]
        if instrument_id in self._errors:
            raise self._errors[instrument_id]

        spec = self._specs.get(instrument_id)
        if not isinstance(spec, SamplerSpec):
            raise InstrumentLoadFailed(
                f"Unknown instrument: '{instrument_id}'.", instrument=instrument_id
            )

        task = self._loading.get(instrument_id)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._load_sampler(instrument_id, spec))
            self._loading[instrument_id] = task
        return await asyncio.shield(task)

    async def ready(self, instrument_id: str) -> None:
        """Wait until an instrument is usable."""
        await self.load(instrument_id)

    async def resolve(self, instrument_id: str) -> Voice:
        """
        Load an instrument, substituting the default synth voice if it fails.

        This is what playback and export use: a missing sample set must
        not stop the music.
        """
        try:
            return await self.load(instrument_id)
        except InstrumentLoadFailed as e:
            logger.warning("%s; using default synth voice", e)
            return self.default_voice

    def dispose(self) -> None:
        """Cancel pending loads and drop every loaded voice."""
        for task in self._loading.values():
            task.cancel()
        self._loading.clear()
        self._voices = {
            k: v for k, v in self._voices.items() if isinstance(self._specs.get(k), SynthPatch)
        }
        self._errors.clear()

    def _forget(self, instrument_id: str) -> None:
        task = self._loading.pop(instrument_id, None)
        if task is not None:
            task.cancel()
        self._voices.pop(instrument_id, None)
        self._errors.pop(instrument_id, None)

    async def _load_sampler(self, instrument_id: str, spec: SamplerSpec) -> Voice:
        logger.debug(f"Loading sampler '{instrument_id}'")
        try:
            if self.samples_dir is None:
                raise FileNotFoundError("no samples directory configured")
            notes = [Note.parse(name).to_midi() for name in spec.samples]
            loaded = await asyncio.gather(
                *(self._loader(self.samples_dir / filename) for filename in spec.samples.values())
            )
            rates = {rate for rate, _ in loaded}
            if len(rates) != 1:
                raise ValueError(f"reference samples have mixed sample rates: {sorted(rates)}")
            voice = SampleVoice(
                samples={note: data for note, (_, data) in zip(notes, loaded, strict=True)},
                sample_rate=rates.pop(),
                envelope=spec.envelope,
                gain=spec.gain,
            )
        except (OSError, ValueError) as e:
            error = InstrumentLoadFailed(
                f"Failed to load instrument '{instrument_id}': {e}", instrument=instrument_id
            )
            self._errors[instrument_id] = error
            raise error from e
        finally:
            self._loading.pop(instrument_id, None)

        self._voices[instrument_id] = voice
        logger.info(f"Loaded sampler '{instrument_id}' ({len(notes)} reference notes)")
        return voice
