"""
slotpacer - Local signer

Wraps an eth-account private key.
"""

from __future__ import annotations

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import PacerError
from .types import SignedPayload, UnsignedTransaction


class LocalSigner:
    """Signs type-2 transactions with an in-memory private key."""

    def __init__(self, key: str) -> None:
        try:
            self._account: LocalAccount = Account.from_key(key)
        except Exception as e:
            # never echo the key itself
            raise PacerError.config(f"invalid signer key: {type(e).__name__}") from e

    @property
    def address(self) -> str:
        return self._account.address

    def sign(self, tx: UnsignedTransaction, signer_index: int = 0) -> SignedPayload:
        try:
            signed = self._account.sign_transaction(tx.to_dict())
        except Exception as e:
            raise PacerError.signing(f"failed to sign nonce {tx.nonce}: {e}") from e
        return SignedPayload(
            raw=bytes(signed.raw_transaction),
            hash="0x" + bytes(signed.hash).hex(),
            nonce=tx.nonce,
            signer_index=signer_index,
        )
