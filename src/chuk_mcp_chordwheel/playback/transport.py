"""
Transport - the shared logical clock that scheduled triggers hang off.

Times are exact Fractions of a second from the start of the timeline.
The transport never looks at a real clock; something else (the
scheduler's run loop, or a test) moves it forward with advance().
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from fractions import Fraction

logger = logging.getLogger(__name__)

TriggerCallback = Callable[["ScheduledTrigger"], None]


@dataclass(eq=False)
class ScheduledTrigger:
    """
    One callback at one time on the transport.

    seq is the submission order; it breaks ties between triggers at the
    same time so they fire in the order they were scheduled.
    """

    time: Fraction
    seq: int
    callback: TriggerCallback
    payload: object = None
    cancelled: bool = field(default=False)

    @property
    def sort_key(self) -> tuple[Fraction, int]:
        return (self.time, self.seq)

    def cancel(self) -> None:
        self.cancelled = True


class Transport:
    """
    A timeline of triggers plus a play head.

    Triggers stay on the timeline after they fire so that a loop can
    fire them again on the next pass. advance() fires every trigger in
    [position, position + seconds), wrapping at the loop end.

    Example:
        transport = Transport()
        transport.add(Fraction(1, 2), lambda t: print("beat 2"))
        transport.advance(1.0)
    """

    def __init__(self) -> None:
        self._timeline: list[ScheduledTrigger] = []
        self._seq = 0
        self._generation = 0
        self.position = Fraction(0)
        self.loop: tuple[Fraction, Fraction] | None = None

    def __len__(self) -> int:
        return len(self._timeline)

    @property
    def triggers(self) -> list[ScheduledTrigger]:
        """Live triggers in firing order."""
        return list(self._timeline)

    @property
    def end_time(self) -> Fraction:
        """Time of the last trigger (0 when empty)."""
        return self._timeline[-1].time if self._timeline else Fraction(0)

    def add(
        self, time: Fraction, callback: TriggerCallback, payload: object = None
    ) -> ScheduledTrigger:
        """Put a callback on the timeline."""
        if time < 0:
            raise ValueError(f"Trigger time must be >= 0, got {time}")
        trigger = ScheduledTrigger(time=time, seq=self._seq, callback=callback, payload=payload)
        self._seq += 1
        bisect.insort(self._timeline, trigger, key=lambda t: t.sort_key)
        return trigger

    def cancel_all(self) -> int:
        """Cancel and drop every trigger; returns how many there were."""
        timeline, self._timeline = self._timeline, []
        self._generation += 1
        for trigger in timeline:
            trigger.cancel()
        return len(timeline)

    def set_loop(self, start: Fraction, end: Fraction) -> None:
        if start < 0 or end <= start:
            raise ValueError(f"Loop range must satisfy 0 <= start < end, got [{start}, {end})")
        self.loop = (start, end)

    def clear_loop(self) -> None:
        self.loop = None

    def seek(self, position: Fraction) -> None:
        if position < 0:
            raise ValueError(f"Position must be >= 0, got {position}")
        self._generation += 1
        self.position = position

    def advance(self, seconds: Fraction | float) -> int:
        """
        Move the play head forward, firing triggers passed on the way.

        Returns the number of triggers fired.
        """
        remaining = Fraction(seconds)
        if remaining < 0:
            raise ValueError(f"Cannot advance by a negative amount: {seconds}")

        fired = 0
        while remaining > 0:
            if self.loop is not None and self.position >= self.loop[1]:
                # loop set behind the play head
                self.position = self.loop[0]
                logger.debug(f"Play head past loop end, wrapped to {float(self.loop[0]):.3f}s")
            generation = self._generation
            target = self.position + remaining
            if self.loop is not None and self.position < self.loop[1] <= target:
                start, end = self.loop
                fired += self._fire_between(self.position, end)
                if generation != self._generation:
                    break  # a callback stopped or moved the play head
                remaining = target - end
                self.position = start
                logger.debug(f"Loop wrapped to {float(start):.3f}s")
            else:
                fired += self._fire_between(self.position, target)
                if generation != self._generation:
                    break
                self.position = target
                remaining = Fraction(0)
        return fired

    def _fire_between(self, start: Fraction, end: Fraction) -> int:
        fired = 0
        generation = self._generation
        for trigger in list(self._timeline):
            if trigger.time >= end or generation != self._generation:
                break
            if trigger.time < start or trigger.cancelled:
                continue
            trigger.callback(trigger)
            fired += 1
        return fired
