"""
basic.py -- Pace 20 filler transactions over the next 10 slots.

Expects a local dev node on :8545 and a funded key in SLOTPACER_SIGNERS.
"""

import asyncio
import logging
import os
import time

from slotpacer import PacerError, Runner, config_builder


async def main() -> None:
    key = os.environ["SLOTPACER_SIGNERS"]

    # Dev chains usually start their slot clock when the node boots.
    genesis = int(os.environ.get("GENESIS_TIME", time.time()))

    config = (
        config_builder()
        .endpoint("http://localhost:8545")
        .signer(key)
        .genesis_time(genesis)
        .slot_duration(12)
        .slots(10)
        .txns_per_slot(2)
        .delay(4)
        .size_kb(64)
        .build()
    )

    runner = Runner.from_config(config)
    try:
        summary = await runner.run()
        print(f"Landed {summary.landed}/{summary.total_target} "
              f"({summary.failed} failed) by block {summary.highest_block}")
    except PacerError as e:
        print(f"Run failed [{e.code}]: {e}")
    finally:
        await runner.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
