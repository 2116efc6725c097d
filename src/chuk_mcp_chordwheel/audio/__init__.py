"""
Audio layer - synthesis voices and the effects chain.
"""

from chuk_mcp_chordwheel.audio.effects import (
    STAGE_ORDER,
    EffectSettings,
    EffectsChain,
    EffectStage,
    SignalChain,
    build_signal_chain,
)
from chuk_mcp_chordwheel.audio.synth import (
    Envelope,
    SampleVoice,
    SynthPatch,
    SynthVoice,
    Voice,
    adsr,
    oscillator,
)

__all__ = [
    "STAGE_ORDER",
    "EffectSettings",
    "EffectStage",
    "EffectsChain",
    "Envelope",
    "SampleVoice",
    "SignalChain",
    "SynthPatch",
    "SynthVoice",
    "Voice",
    "adsr",
    "build_signal_chain",
    "oscillator",
]
