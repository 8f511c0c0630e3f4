"""
Hex helpers for Ethereum JSON-RPC values.

Quantities are "0x"-prefixed, minimal big-endian hex ("0x0", "0x1f").
Transaction hashes are "0x" + 64 lowercase hex chars (32 bytes).
"""

from __future__ import annotations

import re

TX_HASH_BYTES = 32

_TX_HASH_RE = re.compile(r"^0x[0-9a-f]{64}$")
_QUANTITY_RE = re.compile(r"^0x(0|[1-9a-f][0-9a-f]*)$")


def normalize_tx_hash(value: bytes | str) -> str:
    """Return the canonical "0x" + lowercase hex form of a transaction hash.

    Accepts 32 raw bytes or a hex string with or without the "0x" prefix.

    Raises:
        ValueError: If the value is not a 32-byte hash.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != TX_HASH_BYTES:
            raise ValueError(
                f"tx_hash must be {TX_HASH_BYTES} bytes, got {len(value)}"
            )
        return "0x" + bytes(value).hex()

    if not isinstance(value, str):
        raise ValueError(f"tx_hash must be bytes or str, got {type(value).__name__}")

    text = value.lower()
    if not text.startswith("0x"):
        text = "0x" + text
    if not _TX_HASH_RE.match(text):
        raise ValueError(f"tx_hash must be 32 bytes of hex, got: {value!r}")
    return text


def tx_hash_bytes(value: bytes | str) -> bytes:
    """Return the raw 32 bytes of a transaction hash."""
    return bytes.fromhex(normalize_tx_hash(value)[2:])


def encode_quantity(value: int) -> str:
    """Encode a non-negative integer as a JSON-RPC hex quantity."""
    if value < 0:
        raise ValueError(f"quantity must be non-negative, got {value}")
    return hex(value)


def decode_quantity(value: object) -> int:
    """Decode a JSON-RPC hex quantity.

    Raises:
        ValueError: If the value is not a well-formed quantity string.
    """
    if not isinstance(value, str):
        raise ValueError(f"quantity must be a hex string, got {type(value).__name__}")
    text = value.lower()
    if not _QUANTITY_RE.match(text):
        raise ValueError(f"malformed hex quantity: {value!r}")
    return int(text, 16)
