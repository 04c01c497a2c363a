"""
slotpacer - Error types
"""

from __future__ import annotations

from typing import Optional


class PacerError(Exception):
    """Base error for all slotpacer errors."""

    def __init__(self, code: str, message: str, details: Optional[object] = None):
        super().__init__(message)
        self.code = code
        self.details = details

    @staticmethod
    def config(msg: str) -> PacerError:
        return PacerError("CONFIG", msg)

    @staticmethod
    def connection(msg: str) -> PacerError:
        return PacerError("CONNECTION", msg)

    @staticmethod
    def rpc(msg: str, code: Optional[int] = None) -> PacerError:
        return PacerError("RPC", msg, {"rpc_code": code} if code is not None else None)

    @staticmethod
    def broadcast(msg: str, nonce: Optional[int] = None) -> PacerError:
        return PacerError("BROADCAST", msg, {"nonce": nonce} if nonce is not None else None)

    @staticmethod
    def signing(msg: str) -> PacerError:
        return PacerError("SIGNING", msg)

    @staticmethod
    def timeout(seconds: float) -> PacerError:
        return PacerError("TIMEOUT", f"Operation timed out after {seconds}s")

    @staticmethod
    def internal(msg: str) -> PacerError:
        return PacerError("INTERNAL", msg)
