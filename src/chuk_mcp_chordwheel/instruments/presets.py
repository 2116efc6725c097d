"""
Built-in instrument presets.

Synth presets are available immediately. Sampler presets point at a
few reference recordings per instrument and become ready once those
files have been loaded.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from chuk_mcp_chordwheel.audio.synth import Envelope, SynthPatch


class SamplerSpec(BaseModel):
    """
    A sampled instrument: note name -> sample file, plus its envelope.

    File names are resolved against the registry's samples directory.
    """

    samples: dict[str, str] = Field(..., min_length=1, description="Note name to file name")
    attack: float = Field(0.0, ge=0.0)
    release: float = Field(1.0, ge=0.0)
    gain: float = Field(0.8, ge=0.0, le=1.0)

    model_config = {"frozen": True}

    @property
    def envelope(self) -> Envelope:
        return Envelope(attack=self.attack, decay=0.0, sustain=1.0, release=self.release)


DEFAULT_VOICE_PATCH = SynthPatch(
    oscillator="triangle",
    envelope=Envelope(attack=0.005, decay=0.1, sustain=0.3, release=1.0),
)

SYNTH_PRESETS: dict[str, SynthPatch] = {
    "organ": SynthPatch(
        oscillator="sine",
        modulation="am",
        harmonicity=3.0,
        envelope=Envelope(attack=0.01, decay=0.2, sustain=1.0, release=0.2),
    ),
    "synth": SynthPatch(
        oscillator="sawtooth",
        envelope=Envelope(attack=0.01, decay=0.1, sustain=0.5, release=1.0),
        gain=0.18,
    ),
    "strings": SynthPatch(
        oscillator="sine",
        modulation="fm",
        harmonicity=1.0,
        modulation_index=2.0,
        envelope=Envelope(attack=0.3, decay=0.2, sustain=0.8, release=1.5),
    ),
    "pad": SynthPatch(
        oscillator="sine",
        modulation="fm",
        harmonicity=0.5,
        modulation_index=1.0,
        envelope=Envelope(attack=0.5, decay=0.3, sustain=0.8, release=2.0),
    ),
    "epiano": SynthPatch(
        oscillator="sine",
        modulation="fm",
        harmonicity=3.0,
        modulation_index=10.0,
        envelope=Envelope(attack=0.001, decay=2.0, sustain=0.1, release=2.0),
    ),
    "brass": SynthPatch(
        oscillator="sawtooth",
        lowpass_hz=1800.0,
        envelope=Envelope(attack=0.1, decay=0.2, sustain=0.6, release=0.5),
        gain=0.2,
    ),
}

SAMPLER_PRESETS: dict[str, SamplerSpec] = {
    "piano": SamplerSpec(
        samples={
            "C4": "piano/C4.wav",
            "D#4": "piano/Ds4.wav",
            "F#4": "piano/Fs4.wav",
            "A4": "piano/A4.wav",
        },
        attack=0.05,
        release=1.0,
    ),
    "guitar": SamplerSpec(
        samples={"C3": "guitar/C3.wav", "C4": "guitar/C4.wav", "C5": "guitar/C5.wav"},
        release=2.0,
    ),
}
