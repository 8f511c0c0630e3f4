"""
Error taxonomy for the finality signer.

Every failure surfaces as a subclass of ``FinalitySignerError`` carrying a
machine-readable ``error_code`` and a ``details`` dict for diagnostics.

Two families:
    - Retryable (``retryable = True``): the chain is not there yet, or the
      RPC endpoint misbehaved. Callers re-invoke later.
        RpcError, NotIncludedError, NotSafeError
    - Fatal (``retryable = False``): something is broken locally.
        SigningError, ConfigError

No error ever accompanies a partial signature.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error categories."""

    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    PROTOCOL_VIOLATION = "PROTOCOL_VIOLATION"
    NOT_INCLUDED = "NOT_INCLUDED"
    NOT_SAFE = "NOT_SAFE"
    SIGNING_FAILED = "SIGNING_FAILED"
    INVALID_CONFIG = "INVALID_CONFIG"


class FinalitySignerError(Exception):
    """Base class for all finality signer errors.

    Args:
        message: Human-readable description.
        error_code: Category from ErrorCode. Subclasses supply a default.
        details: Structured diagnostics. Never contains key material.
    """

    default_code: ErrorCode = ErrorCode.BACKEND_UNAVAILABLE
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details: dict[str, Any] = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": str(self.error_code),
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class RpcError(FinalitySignerError):
    """The chain-RPC endpoint failed or returned malformed data."""

    default_code = ErrorCode.BACKEND_UNAVAILABLE
    retryable = True


class NotIncludedError(FinalitySignerError):
    """The transaction has no receipt yet (not mined)."""

    default_code = ErrorCode.NOT_INCLUDED
    retryable = True

    def __init__(self, tx_hash: str) -> None:
        super().__init__(
            "transaction is not yet included in any block",
            details={"tx_hash": tx_hash},
        )
        self.tx_hash = tx_hash


class NotSafeError(FinalitySignerError):
    """The transaction is mined, but after the current safe block."""

    default_code = ErrorCode.NOT_SAFE
    retryable = True

    def __init__(self, tx_hash: str, block_number: int, safe_block_number: int) -> None:
        super().__init__(
            f"transaction is not yet safe: included in block {block_number}, "
            f"safe block is {safe_block_number}",
            details={
                "tx_hash": tx_hash,
                "block_number": block_number,
                "safe_block_number": safe_block_number,
            },
        )
        self.tx_hash = tx_hash
        self.block_number = block_number
        self.safe_block_number = safe_block_number

    @property
    def blocks_remaining(self) -> int:
        """How many more blocks the safe reference must advance."""
        return self.block_number - self.safe_block_number


class SigningError(FinalitySignerError):
    """Cryptographic failure. Suggests corrupt key material; do not retry."""

    default_code = ErrorCode.SIGNING_FAILED


class ConfigError(FinalitySignerError):
    """Invalid configuration supplied at construction time."""

    default_code = ErrorCode.INVALID_CONFIG
