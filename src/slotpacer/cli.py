"""
slotpacer - Command line entry point
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from eth_utils import to_wei

from .config import config_builder, parse_header, parse_signer_keys
from .errors import PacerError
from .runner import Runner
from .types import BroadcastFailurePolicy, BuildStrategy, GasLimitMode, PacerConfig

logger = logging.getLogger("slotpacer.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slotpacer",
        description="Submit a paced budget of filler transactions over upcoming slots.",
    )
    parser.add_argument("-r", "--rpc", action="append", default=None,
                        help="RPC endpoint URL, may be repeated or comma-separated (default: http://localhost:8545)")
    parser.add_argument("--header", action="append", default=[], metavar="K:V",
                        help="add a header to every RPC request, may be repeated")
    parser.add_argument("-z", "--size", type=int, default=64, metavar="KB",
                        help="calldata kilobytes to include per transaction")
    parser.add_argument("--trim-bytes", type=int, default=256,
                        help="trim a few bytes from the size")
    parser.add_argument("-b", "--slots", "--blocks", dest="slots", type=int, default=10,
                        help="number of slots to run for")
    parser.add_argument("-d", "--delay", type=int, default=4,
                        help="seconds into a slot before submitting (0 submits in the last second of the previous slot)")
    parser.add_argument("-t", "--txns", type=int, default=2,
                        help="average number of transactions to submit per slot")
    parser.add_argument("-m", "--max-txns", type=int, default=8,
                        help="maximum transactions to submit per slot")
    parser.add_argument("-c", "--contract", "--recipient", dest="recipient",
                        default="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
                        help="transaction recipient")
    parser.add_argument("-f", "--fee-mult", type=int, default=2, help="base fee multiplier")
    parser.add_argument("-g", "--gas-mult", type=int, default=2, help="gas limit multiplier")
    parser.add_argument("-p", "--priority-fee", default="10", metavar="GWEI",
                        help="max priority fee per gas")
    parser.add_argument("--gas-limit", choices=[m.value for m in GasLimitMode],
                        default=GasLimitMode.ESTIMATE.value,
                        help="estimate the gas limit once via RPC, or use the calldata formula")
    parser.add_argument("--presign", action="store_true",
                        help="build and sign the whole batch before the first slot")
    parser.add_argument("--on-broadcast-failure", choices=[p.value for p in BroadcastFailurePolicy],
                        default=BroadcastFailurePolicy.ABORT.value,
                        help="abort the run or skip the transaction when a node rejects it")
    parser.add_argument("--confirmation-timeout", type=float, default=None, metavar="SECONDS",
                        help="stop waiting for a transaction after this long (default: wait forever)")
    parser.add_argument("--polling-interval", type=float, default=4.0, metavar="SECONDS",
                        help="interval for block number and receipt polling")
    parser.add_argument("--genesis-time", type=int, required=True,
                        help="unix timestamp of slot 0")
    parser.add_argument("--slot-duration", type=int, required=True, help="seconds per slot")
    parser.add_argument("-s", "--signer", default=os.environ.get("SLOTPACER_SIGNERS"),
                        help="private key(s) to send from, comma-separated (env: SLOTPACER_SIGNERS)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> PacerConfig:
    builder = config_builder()

    urls: List[str] = []
    for value in args.rpc or ["http://localhost:8545"]:
        urls.extend(u.strip() for u in value.split(",") if u.strip())
    for url in urls:
        builder.endpoint(url)

    for header in args.header:
        name, value = parse_header(header)
        builder.header(name, value)

    if not args.signer:
        raise PacerError.config("a signer key is required (--signer or SLOTPACER_SIGNERS)")
    builder.signers(parse_signer_keys(args.signer))

    try:
        priority_fee = to_wei(Decimal(args.priority_fee), "gwei")
    except (InvalidOperation, ValueError) as e:
        raise PacerError.config(f"invalid priority fee: {args.priority_fee!r}") from e

    return (
        builder
        .genesis_time(args.genesis_time)
        .slot_duration(args.slot_duration)
        .slots(args.slots)
        .delay(args.delay)
        .txns_per_slot(args.txns)
        .max_txns_per_slot(args.max_txns)
        .size_kb(args.size)
        .trim_bytes(args.trim_bytes)
        .recipient(args.recipient)
        .fee_multiplier(args.fee_mult)
        .gas_multiplier(args.gas_mult)
        .priority_fee(priority_fee)
        .gas_limit_mode(GasLimitMode(args.gas_limit))
        .build_strategy(BuildStrategy.PRESIGNED if args.presign else BuildStrategy.ON_DEMAND)
        .broadcast_failure(BroadcastFailurePolicy(args.on_broadcast_failure))
        .confirmation_timeout(args.confirmation_timeout)
        .polling_interval(args.polling_interval)
        .build()
    )


async def _run(config: PacerConfig) -> int:
    runner = Runner.from_config(config)
    try:
        await runner.run()
    finally:
        await runner.close()
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        config = config_from_args(args)
    except PacerError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG

    try:
        return asyncio.run(_run(config))
    except PacerError as e:
        if e.code == "CONFIG":
            logger.error("Configuration error: %s", e)
            return EXIT_CONFIG
        logger.error("Run failed [%s]: %s", e.code, e)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
