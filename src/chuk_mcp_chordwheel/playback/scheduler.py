"""
Playback scheduler - chords on a transport, with start/pause/stop and looping.

State machine:

    stopped --start--> playing --pause--> paused --start--> playing
    playing/paused --stop--> stopped
    playing --(last event ends, no loop)--> stopped

Beat times are converted to seconds with the tempo in force when they
are scheduled. Changing the tempo later does not move triggers that are
already on the transport; it only affects what is scheduled next.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from fractions import Fraction
from typing import Protocol, cast

from chuk_mcp_chordwheel.audio.synth import Voice
from chuk_mcp_chordwheel.constants import (
    BASE_OCTAVE,
    DEFAULT_INSTRUMENT,
    DEFAULT_TEMPO,
    TICKS_PER_BEAT,
    PlaybackStatus,
)
from chuk_mcp_chordwheel.core.chord import Chord
from chuk_mcp_chordwheel.core.rhythm import beats_to_seconds, seconds_per_beat, to_fraction
from chuk_mcp_chordwheel.core.voicing import voice_chord
from chuk_mcp_chordwheel.instruments.registry import InstrumentRegistry
from chuk_mcp_chordwheel.models.song import Song

from .transport import ScheduledTrigger, Transport

logger = logging.getLogger(__name__)


class VoiceSink(Protocol):
    """Where fired chords go: an audio monitor, a recorder, a test double."""

    def trigger(self, voice: Voice, notes: Sequence[int], duration: float) -> None: ...

    def release_all(self) -> None: ...


@dataclass(frozen=True)
class ScheduledChord:
    """A chord (or rest, when chord is None) at a beat position."""

    chord: Chord | None
    start: Fraction  # beats
    duration: Fraction  # beats

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"Start must be >= 0 beats, got {self.start}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be > 0 beats, got {self.duration}")


@dataclass(frozen=True)
class NoteGroup:
    """What a trigger carries: voiced MIDI notes and how long they sound."""

    notes: tuple[int, ...]
    duration: float  # seconds
    chord: Chord


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the scheduler."""

    status: PlaybackStatus
    position_ticks: int
    loop_range: tuple[Fraction, Fraction] | None


class PlaybackScheduler:
    """
    Schedules voiced chords against a Transport and plays them into a sink.

    Example:
        scheduler = PlaybackScheduler(registry, sink=monitor)
        scheduler.schedule_song(song)
        await scheduler.start("organ")
        await scheduler.run()
    """

    def __init__(
        self,
        registry: InstrumentRegistry,
        sink: VoiceSink | None = None,
        tempo: int = DEFAULT_TEMPO,
        instrument_id: str = DEFAULT_INSTRUMENT,
        root_octave: int = BASE_OCTAVE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        seconds_per_beat(tempo)  # validates
        self.registry = registry
        self.sink = sink
        self.instrument_id = instrument_id
        self.root_octave = root_octave
        self.transport = Transport()
        self._tempo = tempo
        # tempo the scheduled timeline was converted at
        self._timeline_tempo = tempo
        self._clock = clock
        self._status = PlaybackStatus.STOPPED
        self._voice: Voice | None = None
        self._end_time = Fraction(0)
        self._loop_beats: tuple[Fraction, Fraction] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def tempo(self) -> int:
        return self._tempo

    @property
    def pending(self) -> int:
        """Triggers still on the transport."""
        return len(self.transport)

    @property
    def position_seconds(self) -> Fraction:
        return self.transport.position

    @property
    def position_beats(self) -> Fraction:
        """Play head in beats of the scheduled timeline, unaffected by later tempo changes."""
        return self.transport.position / seconds_per_beat(self._timeline_tempo)

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            status=self._status,
            position_ticks=round(self.position_beats * TICKS_PER_BEAT),
            loop_range=self._loop_beats,
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def set_tempo(self, bpm: int) -> None:
        """Change the tempo for chords scheduled from now on."""
        seconds_per_beat(bpm)
        logger.debug(f"Tempo {self._tempo} -> {bpm} BPM")
        self._tempo = bpm

    def schedule(self, events: Iterable[ScheduledChord]) -> list[ScheduledTrigger]:
        """
        Put chords on the transport, one trigger per non-rest event.

        Events at the same time fire in the order given here.
        """
        if not self.transport:
            self._timeline_tempo = self._tempo
        triggers: list[ScheduledTrigger] = []
        for event in events:
            start = beats_to_seconds(event.start, self._tempo)
            end = beats_to_seconds(event.start + event.duration, self._tempo)
            self._end_time = max(self._end_time, end)
            if event.chord is None:
                continue
            group = NoteGroup(
                notes=tuple(voice_chord(event.chord, self.root_octave)),
                duration=float(end - start),
                chord=event.chord,
            )
            triggers.append(self.transport.add(start, self._fire, group))
        logger.debug(f"Scheduled {len(triggers)} chord(s) at {self._tempo} BPM")
        return triggers

    def schedule_song(self, song: Song, use_song_tempo: bool = True) -> list[ScheduledTrigger]:
        """Schedule every beat of a song, optionally adopting its tempo first."""
        if use_song_tempo:
            self.set_tempo(song.tempo)
        return self.schedule(
            ScheduledChord(chord=e.chord, start=e.start, duration=e.duration)
            for e in song.iter_events()
        )

    def set_loop(self, start: Fraction | float, end: Fraction | float) -> None:
        """Loop [start, end) in beats, converted at the current tempo."""
        start_beats, end_beats = to_fraction(start), to_fraction(end)
        self.transport.set_loop(
            beats_to_seconds(start_beats, self._tempo),
            beats_to_seconds(end_beats, self._tempo),
        )
        self._loop_beats = (start_beats, end_beats)

    def clear_loop(self) -> None:
        self.transport.clear_loop()
        self._loop_beats = None

    def loop_section(self, song: Song, section_id: str) -> None:
        """Loop one section of a song scheduled with its own tempo."""
        start, end = song.section_range(section_id)
        self.set_loop(start, end)

    # ------------------------------------------------------------------
    # Transport control
    # ------------------------------------------------------------------

    async def start(self, instrument_id: str | None = None) -> None:
        """
        Start or resume playback.

        Waits for the instrument to be ready. An instrument that fails to
        load is replaced by the default synth voice.
        """
        if instrument_id is not None and instrument_id != self.instrument_id:
            self.instrument_id = instrument_id
            self._voice = None
        if self._voice is None:
            self._voice = await self.registry.resolve(self.instrument_id)
        if self._status != PlaybackStatus.PLAYING:
            logger.info(
                f"Playback {'resumed' if self._status == PlaybackStatus.PAUSED else 'started'} "
                f"at {float(self.position_seconds):.3f}s with '{self.instrument_id}'"
            )
        self._status = PlaybackStatus.PLAYING

    def pause(self) -> bool:
        """Hold the play head where it is. Returns False if not playing."""
        if self._status != PlaybackStatus.PLAYING:
            return False
        self._status = PlaybackStatus.PAUSED
        return True

    def stop(self) -> bool:
        """
        Cancel every pending trigger, silence the sink, rewind.

        Safe from any state; returns False when there was nothing to stop.
        """
        if self._status == PlaybackStatus.STOPPED and not self.pending:
            return False
        cancelled = self.transport.cancel_all()
        self.transport.seek(Fraction(0))
        self._end_time = Fraction(0)
        self._status = PlaybackStatus.STOPPED
        if self.sink is not None:
            self.sink.release_all()
        logger.info(f"Playback stopped ({cancelled} trigger(s) cancelled)")
        return True

    def advance(self, seconds: Fraction | float) -> int:
        """Move the transport forward while playing; returns triggers fired."""
        if self._status != PlaybackStatus.PLAYING:
            return 0
        fired = self.transport.advance(seconds)
        if (
            self._status == PlaybackStatus.PLAYING
            and self.transport.loop is None
            and self.transport.position >= self._end_time
        ):
            self._complete()
        return fired

    async def run(self, tick: float = 0.01) -> None:
        """Drive the transport from the clock until playback stops or pauses."""
        last = self._clock()
        while self._status == PlaybackStatus.PLAYING:
            await asyncio.sleep(tick)
            now = self._clock()
            self.advance(now - last)
            last = now

    def _complete(self) -> None:
        logger.info(f"Playback finished at {float(self.position_seconds):.3f}s")
        self._status = PlaybackStatus.STOPPED
        self.transport.seek(Fraction(0))

    def _fire(self, trigger: ScheduledTrigger) -> None:
        group = cast(NoteGroup, trigger.payload)
        logger.debug(f"{float(trigger.time):.3f}s: {group.chord.symbol} {list(group.notes)}")
        if self.sink is not None:
            voice = self._voice or self.registry.default_voice
            self.sink.trigger(voice, group.notes, group.duration)
