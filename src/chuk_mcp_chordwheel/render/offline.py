"""
Offline rendering - a whole song to a stereo buffer, faster than real time.

The render is a pure function of (song, settings, instrument): events
are placed at sample positions computed from exact fractions, voices
and effects are deterministic, and nothing reads the wall clock. Two
renders of the same input produce identical bytes.

The renderer builds its own effects chain for each render and always
disposes it, so it never shares state with live playback.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

import numpy as np

from chuk_mcp_chordwheel.audio.effects import (
    EffectsChain,
    EffectSettings,
    SignalChain,
    build_signal_chain,
)
from chuk_mcp_chordwheel.audio.synth import FloatArray, Voice, mix_note
from chuk_mcp_chordwheel.constants import (
    BASE_OCTAVE,
    CHANNELS,
    DEFAULT_INSTRUMENT,
    DEFAULT_VELOCITY,
    RENDER_BLOCK_FRAMES,
    SAMPLE_RATE,
    TAIL_SECONDS,
)
from chuk_mcp_chordwheel.core.rhythm import beats_to_seconds, to_fraction
from chuk_mcp_chordwheel.core.voicing import voice_chord
from chuk_mcp_chordwheel.errors import (
    ChordWheelError,
    InstrumentLoadFailed,
    RenderBufferUnavailable,
)
from chuk_mcp_chordwheel.instruments.registry import InstrumentRegistry
from chuk_mcp_chordwheel.models.song import Song

from .files import sanitize_filename
from .wav import encode_wav, write_wav

logger = logging.getLogger(__name__)


def song_duration(song: Song, tail_seconds: float = TAIL_SECONDS) -> Fraction:
    """Rendered length in seconds: the song itself plus the release tail."""
    return beats_to_seconds(song.total_beats, song.tempo) + to_fraction(tail_seconds)


@dataclass(frozen=True)
class RenderResult:
    """A rendered (channels, frames) float buffer."""

    buffer: FloatArray
    sample_rate: int
    instrument: str

    @property
    def frames(self) -> int:
        return int(self.buffer.shape[1])

    @property
    def channels(self) -> int:
        return int(self.buffer.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate

    def to_wav_bytes(self) -> bytes:
        return encode_wav(self.buffer, self.sample_rate)


class OfflineRenderer:
    """
    Renders songs through an instrument and effects chain.

    Example:
        renderer = OfflineRenderer(InstrumentRegistry())
        result = await renderer.render(song, EffectSettings(reverb_mix=0.3), "organ")
        wav_bytes = result.to_wav_bytes()
    """

    def __init__(
        self,
        registry: InstrumentRegistry,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        tail_seconds: float = TAIL_SECONDS,
        block_frames: int = RENDER_BLOCK_FRAMES,
        root_octave: int = BASE_OCTAVE,
    ) -> None:
        if channels != CHANNELS:
            raise ValueError(f"Only {CHANNELS}-channel rendering is supported, got {channels}")
        self.registry = registry
        self.sample_rate = sample_rate
        self.channels = channels
        self.tail_seconds = tail_seconds
        self.block_frames = block_frames
        self.root_octave = root_octave

    def frame_count(self, song: Song) -> int:
        """Frames in the rendered buffer."""
        return round(song_duration(song, self.tail_seconds) * self.sample_rate)

    def seconds_to_frame(self, seconds: Fraction) -> int:
        return round(seconds * self.sample_rate)

    async def render(
        self,
        song: Song,
        settings: EffectSettings | None = None,
        instrument_id: str = DEFAULT_INSTRUMENT,
        wet: bool = True,
    ) -> RenderResult:
        """
        Render a song.

        An instrument that fails to load is replaced by the default synth
        voice. wet=False skips the effects chain entirely.

        Raises:
            RenderBufferUnavailable: if the render produced no usable buffer
        """
        signal = await self._build_chain(instrument_id, settings, wet)
        try:
            dry = self._render_notes(song, signal.voice)
            buffer = self._apply_effects(dry, signal.effects)
        finally:
            signal.dispose()

        if buffer.shape[1] == 0 or not np.all(np.isfinite(buffer)):
            raise RenderBufferUnavailable(
                f"Offline render of '{song.id}' produced no usable buffer",
                instrument=instrument_id,
            )

        logger.debug(
            f"Rendered '{song.id}': {buffer.shape[1]} frames at {self.sample_rate} Hz"
        )
        return RenderResult(buffer=buffer, sample_rate=self.sample_rate, instrument=instrument_id)

    async def _build_chain(
        self, instrument_id: str, settings: EffectSettings | None, wet: bool
    ) -> SignalChain:
        try:
            return await build_signal_chain(
                self.registry, instrument_id, settings, self.sample_rate, wet
            )
        except InstrumentLoadFailed as e:
            logger.warning("%s; rendering with default synth voice", e)
            return SignalChain(
                voice=self.registry.default_voice,
                effects=EffectsChain.build(settings, self.sample_rate, wet),
            )

    def _render_notes(self, song: Song, voice: Voice) -> FloatArray:
        buffer = np.zeros((self.channels, self.frame_count(song)))
        velocity = DEFAULT_VELOCITY / 127

        for event in song.iter_events():
            if event.chord is None:
                continue
            try:
                notes = voice_chord(event.chord, self.root_octave)
            except ChordWheelError as e:
                raise e.with_context(
                    section=event.section_id, measure=event.measure, chord=event.chord.symbol
                )
            start = self.seconds_to_frame(beats_to_seconds(event.start, song.tempo))
            seconds = float(beats_to_seconds(event.duration, song.tempo))
            for midi_note in notes:
                rendered = voice.render_note(midi_note, seconds, self.sample_rate, velocity)
                mix_note(buffer, rendered, start)

        return buffer

    def _apply_effects(self, dry: FloatArray, effects: EffectsChain) -> FloatArray:
        if not effects.stages:
            return dry
        out = np.empty_like(dry)
        for start in range(0, dry.shape[1], self.block_frames):
            end = min(start + self.block_frames, dry.shape[1])
            out[:, start:end] = effects.process(dry[:, start:end])
        return out


class AudioExporter:
    """
    Song to WAV file, one export at a time.

    Exports are serialized: a second export waits for the first to
    finish instead of racing it for the renderer.
    """

    def __init__(self, renderer: OfflineRenderer, output_dir: Path) -> None:
        self.renderer = renderer
        self.output_dir = output_dir
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def export_wav(
        self,
        song: Song,
        settings: EffectSettings | None = None,
        instrument_id: str = DEFAULT_INSTRUMENT,
        wet: bool = True,
        output_name: str | None = None,
    ) -> tuple[Path, RenderResult]:
        """Render and write `<output_dir>/<name>.wav`; returns the path and the render."""
        async with self._lock:
            result = await self.renderer.render(song, settings, instrument_id, wet)
            filename = f"{sanitize_filename(output_name or song.title)}.wav"
            path = write_wav(self.output_dir / filename, result.buffer, result.sample_rate)
        logger.info(f"Exported '{song.id}' to {path} ({result.duration_seconds:.2f}s)")
        return path, result
