"""
WAV encoding - float buffers to 16-bit PCM RIFF files.

Layout is the canonical 44-byte header followed by interleaved
little-endian samples:

    RIFF <36 + data length> WAVE
    fmt  <16> <PCM=1> <channels> <rate> <rate*channels*2> <channels*2> <16>
    data <data length> <samples...>
"""

from __future__ import annotations

import io
import wave
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from chuk_mcp_chordwheel.audio.synth import FloatArray
from chuk_mcp_chordwheel.constants import BITS_PER_SAMPLE, SAMPLE_RATE

from .files import write_atomic

HEADER_SIZE = 44


def interleave(buffer: FloatArray) -> FloatArray:
    """(channels, frames) -> L R L R ... as one flat array."""
    if buffer.ndim == 1:
        return buffer
    return buffer.T.reshape(-1)


def to_pcm16(samples: FloatArray) -> NDArray[np.int16]:
    """
    Quantize floats to signed 16-bit.

    Samples are clamped to [-1, 1] first. Negative values scale by 32768
    and positive by 32767, so both full-scale ends are reachable, and the
    result truncates toward zero.
    """
    if not np.all(np.isfinite(samples)):
        raise ValueError("Cannot encode non-finite samples")
    clamped = np.clip(samples, -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * 32768.0, clamped * 32767.0)
    return scaled.astype("<i2")


def encode_wav(buffer: FloatArray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Encode a (channels, frames) float buffer as a complete WAV file."""
    channels = 1 if buffer.ndim == 1 else buffer.shape[0]
    pcm = to_pcm16(interleave(buffer))

    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(BITS_PER_SAMPLE // 8)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return out.getvalue()


def write_wav(path: Path, buffer: FloatArray, sample_rate: int = SAMPLE_RATE) -> Path:
    """Encode fully, then write; a failed encode leaves no file behind."""
    return write_atomic(path, encode_wav(buffer, sample_rate))
