"""
presigned.py -- Sign the whole batch up front and spread it over endpoints.

Useful when signing would otherwise eat into the submission window. Every
payload carries the fee cap current at startup, so give the fee multiplier
some headroom.
"""

import asyncio
import logging
import os

from slotpacer import (
    BroadcastFailurePolicy,
    BuildStrategy,
    GasLimitMode,
    Runner,
    config_builder,
)
from slotpacer.config import parse_signer_keys

# Holesky beacon genesis
HOLESKY_GENESIS = 1695902400


async def main() -> None:
    config = (
        config_builder()
        .endpoint("https://rpc-a.example.org")
        .endpoint("https://rpc-b.example.org", {"Authorization": "Bearer " + os.environ.get("RPC_TOKEN", "")})
        .signers(parse_signer_keys(os.environ["SLOTPACER_SIGNERS"]))
        .genesis_time(HOLESKY_GENESIS)
        .slot_duration(12)
        .slots(32)
        .txns_per_slot(4)
        .max_txns_per_slot(6)
        .delay(0)                  # last second of the previous slot
        .fee_multiplier(4)
        .priority_fee(2_000_000_000)
        .gas_limit_mode(GasLimitMode.FORMULA)
        .build_strategy(BuildStrategy.PRESIGNED)
        .broadcast_failure(BroadcastFailurePolicy.SKIP)
        .confirmation_timeout(120)
        .build()
    )

    runner = Runner.from_config(config)
    try:
        summary = await runner.run()
    finally:
        await runner.close()

    print(f"Submitted {summary.submitted}, landed {summary.landed}, "
          f"skipped {summary.skipped}, failed {summary.failed}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
