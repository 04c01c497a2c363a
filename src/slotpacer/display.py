"""
slotpacer - Console formatting helpers
"""

from __future__ import annotations

from eth_utils import from_wei


def short_hash(tx_hash: str) -> str:
    """Abbreviate a hash as ``0x12..cdef``."""
    if len(tx_hash) <= 10:
        return tx_hash
    return f"{tx_hash[:4]}..{tx_hash[-4:]}"


def format_gwei(wei: int) -> str:
    return str(from_wei(wei, "gwei"))


def format_ether(wei: int) -> str:
    return str(from_wei(wei, "ether"))
