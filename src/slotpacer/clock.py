"""
slotpacer - Slot clock

Derives the current slot and the offset into it from wall-clock time.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .types import SlotState

logger = logging.getLogger("slotpacer.clock")


class SlotClock:
    """Maps wall-clock time onto fixed-duration slots.

    The slot is recomputed from elapsed time on every call so tick jitter
    never accumulates. The submission trigger fires ``delay`` seconds into a
    slot, or in the last second of the previous slot when ``delay`` is 0.
    """

    def __init__(
        self,
        genesis_time: int,
        slot_duration: int = 12,
        delay: int = 0,
        time_fn: Callable[[], float] = time.time,
    ) -> None:
        self._genesis_time = genesis_time
        self._slot_duration = slot_duration
        self._delay = delay
        self._time_fn = time_fn
        self._state: Optional[SlotState] = None
        self._last_triggered_slot: Optional[int] = None
        self._armed = False

    @property
    def slot_duration(self) -> int:
        return self._slot_duration

    @property
    def trigger_offset(self) -> int:
        if self._delay == 0:
            return self._slot_duration - 1
        return self._delay

    @property
    def state(self) -> Optional[SlotState]:
        return self._state

    def time(self) -> float:
        return self._time_fn()

    def state_at(self, now: float) -> SlotState:
        elapsed = int(now) - self._genesis_time
        slot, offset = divmod(elapsed, self._slot_duration)
        return SlotState(current_slot=slot, seconds_into_slot=offset)

    def tick(self) -> SlotState:
        """Recompute the slot state from the time source."""
        state = self.state_at(self._time_fn())
        if self._state and state.current_slot < self._state.current_slot:
            # Wall clock stepped backwards; hold the last slot.
            logger.debug(
                "Clock went backwards (slot %d < %d), holding",
                state.current_slot, self._state.current_slot,
            )
            return self._state
        self._state = state
        return state

    def should_trigger(self, state: SlotState) -> bool:
        """True once per slot, on the first tick at or past the trigger offset.

        A late tick still fires for its slot. The slot the clock was started
        in is skipped if the first tick already lies past the trigger offset.
        """
        if self._last_triggered_slot is not None and state.current_slot <= self._last_triggered_slot:
            return False
        if state.seconds_into_slot < self.trigger_offset:
            self._armed = True
            return False
        if state.seconds_into_slot > self.trigger_offset and not self._armed:
            logger.info("Started past the trigger offset, waiting for slot %d", state.current_slot + 1)
            self._last_triggered_slot = state.current_slot
            self._armed = True
            return False
        self._armed = True
        if state.seconds_into_slot > self.trigger_offset:
            logger.warning(
                "Slot %d trigger is late (offset %d, wanted %d)",
                state.current_slot, state.seconds_into_slot, self.trigger_offset,
            )
        self._last_triggered_slot = state.current_slot
        return True

    def seconds_until_next_tick(self, interval: float = 1.0) -> float:
        """Delay that lands the next tick on an ``interval`` boundary."""
        now = self._time_fn()
        remainder = (now - self._genesis_time) % interval
        return interval - remainder
