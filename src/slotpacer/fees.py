"""
slotpacer - Fee oracle

Tracks the base fee of the newest observed block and derives the fee cap
used for submissions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .display import format_gwei
from .types import Block, FeeState

logger = logging.getLogger("slotpacer.fees")

BlockFetcher = Callable[[int], Awaitable[Block]]


class FeeOracle:
    """Base-fee tracker with single-flight header refresh."""

    def __init__(
        self,
        fee_multiplier: int = 2,
        priority_fee_floor: int = 0,
    ) -> None:
        self._state = FeeState(fee_multiplier=fee_multiplier)
        self._priority_fee_floor = priority_fee_floor
        self._refresh_task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> FeeState:
        return self._state

    @property
    def base_fee(self) -> int:
        return self._state.base_fee

    @property
    def last_observed_block(self) -> int:
        return self._state.last_observed_block

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def current_fee(self) -> int:
        return max(self._state.base_fee * self._state.fee_multiplier, self._priority_fee_floor)

    def apply_block(self, block: Block) -> bool:
        """Fold in a block's base fee. Stale or repeated blocks are ignored."""
        if block.number <= self._state.last_observed_block:
            logger.debug(
                "Discarding base fee from block %d (have %d)",
                block.number, self._state.last_observed_block,
            )
            return False
        self._state.base_fee = block.base_fee_per_gas
        self._state.last_observed_block = block.number
        logger.info(
            "Block %d base fee %s gwei, fast fee %s gwei",
            block.number,
            format_gwei(block.base_fee_per_gas),
            format_gwei(self.current_fee()),
        )
        return True

    def is_stale(self, block_number: int) -> bool:
        return block_number > self._state.last_observed_block

    def observe(self, block_number: int, fetch: BlockFetcher) -> Optional[asyncio.Task[None]]:
        """Start a header fetch for ``block_number`` if it is newer.

        Returns the refresh task, or None when nothing was started because the
        fee is current or a fetch is already in flight.
        """
        if not self.is_stale(block_number) or self.refreshing:
            return None
        self._refresh_task = asyncio.ensure_future(self._refresh(block_number, fetch))
        return self._refresh_task

    async def _refresh(self, block_number: int, fetch: BlockFetcher) -> None:
        try:
            block = await fetch(block_number)
        except Exception as e:
            logger.warning("Base fee fetch for block %d failed, keeping previous: %s", block_number, e)
            return
        self.apply_block(block)

    def cancel(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
