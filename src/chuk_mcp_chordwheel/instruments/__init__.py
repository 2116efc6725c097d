"""
Instrument registry and built-in presets.
"""

from chuk_mcp_chordwheel.instruments.presets import (
    DEFAULT_VOICE_PATCH,
    SAMPLER_PRESETS,
    SYNTH_PRESETS,
    SamplerSpec,
)
from chuk_mcp_chordwheel.instruments.registry import (
    InstrumentRegistry,
    InstrumentState,
    read_wav_sample,
)

__all__ = [
    "DEFAULT_VOICE_PATCH",
    "InstrumentRegistry",
    "InstrumentState",
    "SAMPLER_PRESETS",
    "SYNTH_PRESETS",
    "SamplerSpec",
    "read_wav_sample",
]
