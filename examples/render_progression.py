#!/usr/bin/env python3
"""
Example: Turn a chord progression into MIDI and WAV files.

This demonstrates the whole pipeline:
1. Build a song from chord symbols
2. Simulate playback against the transport (no audio device needed)
3. Export MIDI
4. Render WAV through an effects chain

Usage:
    python examples/render_progression.py
    # Creates: examples/output/pop_loop.mid and examples/output/pop_loop.wav
"""

import asyncio
from collections.abc import Sequence
from pathlib import Path

from chuk_mcp_chordwheel.audio import EffectSettings, Voice
from chuk_mcp_chordwheel.instruments import InstrumentRegistry
from chuk_mcp_chordwheel.playback import PlaybackScheduler
from chuk_mcp_chordwheel.render import AudioExporter, OfflineRenderer, export_midi
from chuk_mcp_chordwheel.songs import SongLoader


class PrintSink:
    """Prints every chord the scheduler fires."""

    def trigger(self, voice: Voice, notes: Sequence[int], duration: float) -> None:
        print(f"    play {list(notes)} for {duration:.2f}s")

    def release_all(self) -> None:
        print("    (all notes released)")


async def main() -> None:
    """Build, play and export a four-chord loop."""
    output_dir = Path(__file__).parent / "output"
    loader = SongLoader(output_dir / "songs")
    registry = InstrumentRegistry()

    print("Creating song...")
    song = await loader.create(
        "pop_loop",
        ["C", "G", "Am7", "Fmaj7", "C", "G", "F", "-"],
        key="C",
        tempo=96,
        beats_per_chord=2,
        title="Pop Loop",
    )
    print(f"  {song.title}: {song.total_beats} beats in {song.key}")

    print("\nSimulating playback (first 4 seconds)...")
    scheduler = PlaybackScheduler(registry, sink=PrintSink(), instrument_id="epiano")
    scheduler.schedule_song(song)
    await scheduler.start()
    scheduler.advance(4.0)
    scheduler.stop()

    print("\nExporting MIDI...")
    midi_path = export_midi(song, output_dir)
    print(f"  Created: {midi_path}")

    print("\nRendering WAV...")
    exporter = AudioExporter(OfflineRenderer(registry), output_dir)
    wav_path, result = await exporter.export_wav(
        song,
        EffectSettings(reverb_mix=0.25, chorus_mix=0.3, tone=-2.0),
        instrument_id="epiano",
    )
    print(f"  Created: {wav_path} ({result.duration_seconds:.2f}s)")


if __name__ == "__main__":
    asyncio.run(main())
