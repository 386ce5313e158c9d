"""Secret commitments placed on-chain instead of the plaintext secret."""

from __future__ import annotations

from hexbytes import HexBytes
from web3 import Web3


def secret_commitment(secret: str) -> HexBytes:
    """Return the 32-byte keccak-256 digest of ``secret`` encoded as UTF-8.

    The encoding is applied as-is (no normalisation, no salt) so any party can
    recompute the same commitment from the same text.
    """

    if not isinstance(secret, str):
        raise TypeError(f"secret must be str, not {type(secret).__name__}")
    return HexBytes(Web3.keccak(secret.encode("utf-8")))


def commitment_hex(secret: str) -> str:
    return Web3.to_hex(secret_commitment(secret))


__all__ = ["commitment_hex", "secret_commitment"]
