"""
MIDI export - a song as a single-track Standard MIDI File.

The track starts with its name, tempo and time signature, then carries
one note-on group per chord and the matching note-offs after the
chord's duration. Rests only move time forward. A section that changes
the time signature gets a new time-signature message where it starts.

All operations are deterministic: same song -> same MIDI file.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

from mido import Message, MetaMessage, MidiFile, MidiTrack

from chuk_mcp_chordwheel.constants import BASE_OCTAVE, DEFAULT_VELOCITY, TICKS_PER_BEAT
from chuk_mcp_chordwheel.core.rhythm import TimeSignature
from chuk_mcp_chordwheel.core.voicing import voice_chord
from chuk_mcp_chordwheel.errors import ChordWheelError
from chuk_mcp_chordwheel.models.song import Song

from .files import sanitize_filename


# Metronome clicks per quarter and 32nds per quarter for time_signature meta
_CLOCKS_PER_CLICK = 24
_NOTATED_32NDS = 8


@dataclass(frozen=True)
class MidiEvent:
    """
    A single MIDI note event.

    All times are in ticks (absolute from start of track).
    """

    pitch: int  # MIDI note number (0-127)
    start_ticks: int  # Absolute start time in ticks
    duration_ticks: int  # Duration in ticks
    velocity: int = DEFAULT_VELOCITY  # 0-127
    channel: int = 0  # 0-15

    def __post_init__(self) -> None:
        """Validate MIDI ranges."""
        if not 0 <= self.pitch <= 127:
            raise ValueError(f"Pitch must be 0-127, got {self.pitch}")
        if not 0 <= self.velocity <= 127:
            raise ValueError(f"Velocity must be 0-127, got {self.velocity}")
        if not 0 <= self.channel <= 15:
            raise ValueError(f"Channel must be 0-15, got {self.channel}")
        if self.start_ticks < 0:
            raise ValueError(f"Start ticks must be >= 0, got {self.start_ticks}")
        if self.duration_ticks < 0:
            raise ValueError(f"Duration ticks must be >= 0, got {self.duration_ticks}")


def beats_to_ticks(beats: Fraction | int, ticks_per_beat: int = TICKS_PER_BEAT) -> int:
    """Convert a beat position or length to ticks (rounded to nearest)."""
    return round(Fraction(beats) * ticks_per_beat)


def _time_signature_meta(ts: TimeSignature) -> MetaMessage:
    return MetaMessage(
        "time_signature",
        numerator=ts.numerator,
        denominator=ts.denominator,
        clocks_per_click=_CLOCKS_PER_CLICK,
        notated_32nd_notes_per_beat=_NOTATED_32NDS,
        time=0,
    )


def events_to_midi(
    events: Sequence[MidiEvent],
    tempo_bpm: int = 120,
    ticks_per_beat: int = TICKS_PER_BEAT,
    time_signatures: Sequence[tuple[int, TimeSignature]] = ((0, TimeSignature.COMMON_TIME),),
    track_name: str | None = None,
) -> MidiFile:
    """
    Convert a sequence of MidiEvents to a MidiFile.

    Args:
        events: Sequence of MidiEvent objects
        tempo_bpm: Tempo in beats per minute
        ticks_per_beat: Resolution (default 480)
        time_signatures: (tick, signature) changes; the first should be at tick 0
        track_name: Optional track name meta message

    Returns:
        A mido MidiFile ready to be saved
    """
    mid = MidiFile(ticks_per_beat=ticks_per_beat)
    track = MidiTrack()
    mid.tracks.append(track)

    if track_name:
        track.append(MetaMessage("track_name", name=track_name, time=0))

    # Set tempo (microseconds per beat)
    tempo_us = int(60_000_000 / tempo_bpm)
    track.append(MetaMessage("set_tempo", tempo=tempo_us, time=0))

    # (absolute tick, order at that tick, message); meta < note_off < note_on
    messages: list[tuple[int, int, Message | MetaMessage]] = []

    for tick, ts in time_signatures:
        messages.append((tick, 0, _time_signature_meta(ts)))

    for event in events:
        messages.append(
            (
                event.start_ticks,
                2,
                Message(
                    "note_on",
                    channel=event.channel,
                    note=event.pitch,
                    velocity=event.velocity,
                    time=0,  # Will be converted to delta
                ),
            )
        )
        messages.append(
            (
                event.start_ticks + event.duration_ticks,
                1,
                Message(
                    "note_off",
                    channel=event.channel,
                    note=event.pitch,
                    velocity=0,
                    time=0,  # Will be converted to delta
                ),
            )
        )

    # Stable sort keeps chord tones in voicing order within a group
    messages.sort(key=lambda x: (x[0], x[1]))

    # Convert to delta times
    current_time = 0
    for abs_time, _, msg in messages:
        msg.time = abs_time - current_time
        track.append(msg)
        current_time = abs_time

    track.append(MetaMessage("end_of_track", time=0))

    return mid


def song_to_midi_events(
    song: Song,
    ticks_per_beat: int = TICKS_PER_BEAT,
    root_octave: int = BASE_OCTAVE,
    velocity: int = DEFAULT_VELOCITY,
) -> list[MidiEvent]:
    """One note event per voiced chord tone; rests produce nothing."""
    events: list[MidiEvent] = []
    for event in song.iter_events():
        if event.chord is None:
            continue
        try:
            pitches = voice_chord(event.chord, root_octave)
        except ChordWheelError as e:
            raise e.with_context(
                section=event.section_id, measure=event.measure, chord=event.chord.symbol
            )
        start = beats_to_ticks(event.start, ticks_per_beat)
        duration = beats_to_ticks(event.duration, ticks_per_beat)
        events.extend(
            MidiEvent(pitch=p, start_ticks=start, duration_ticks=duration, velocity=velocity)
            for p in pitches
        )
    return events


def song_time_signatures(
    song: Song, ticks_per_beat: int = TICKS_PER_BEAT
) -> list[tuple[int, TimeSignature]]:
    """Time-signature changes in ticks, starting with the one in force at tick 0."""
    changes: list[tuple[int, TimeSignature]] = []
    cursor = Fraction(0)
    for section in song.sections:
        ts = song.effective_time_signature(section)
        if not changes or changes[-1][1] != ts:
            changes.append((beats_to_ticks(cursor, ticks_per_beat), ts))
        cursor += section.total_beats
    return changes or [(0, song.time_signature)]


def song_to_midi(song: Song, ticks_per_beat: int = TICKS_PER_BEAT) -> MidiFile:
    """
    Convert a song to a MidiFile.

    Example:
        mid = song_to_midi(song)
        mid.save("demo.mid")
    """
    return events_to_midi(
        song_to_midi_events(song, ticks_per_beat),
        tempo_bpm=song.tempo,
        ticks_per_beat=ticks_per_beat,
        time_signatures=song_time_signatures(song, ticks_per_beat),
        track_name=song.title,
    )


def export_midi(song: Song, output_dir: Path, output_name: str | None = None) -> Path:
    """Write `<output_dir>/<name>.mid` and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{sanitize_filename(output_name or song.title)}.mid"
    song_to_midi(song).save(str(path))
    return path
