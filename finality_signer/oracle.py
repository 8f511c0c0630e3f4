"""
Finality oracle — decides whether a transaction is safe to co-sign.

A transaction is safe iff its inclusion block is at or below the safe
reference block, where

    safe reference = block (current head + safe_offset)

and safe_offset is a fixed negative constant. The reference is fetched
fresh on every call: the head keeps moving, so a transaction that is not
safe now becomes safe later.

One verification is three chain reads (receipt, head number, safe block).
No state is kept between calls and no lock is held, so concurrent
verifications never block each other.
"""

from __future__ import annotations

import logging

from finality_signer.client import BlockHeader, ChainClient
from finality_signer.config import SAFE_BLOCK_OFFSET
from finality_signer.errors import (
    ConfigError,
    ErrorCode,
    NotIncludedError,
    NotSafeError,
    RpcError,
)
from finality_signer.hexutil import normalize_tx_hash

logger = logging.getLogger(__name__)


class FinalityOracle:
    """Renders safety verdicts from current chain state.

    Args:
        client: Chain-RPC collaborator, shared across calls.
        safe_offset: Negative offset from head defining the safe block.
    """

    def __init__(self, client: ChainClient, safe_offset: int = SAFE_BLOCK_OFFSET) -> None:
        if safe_offset >= 0:
            raise ConfigError(
                f"safe_offset must be negative, got {safe_offset}",
                details={"field": "safe_offset", "value": safe_offset},
            )
        self._client = client
        self._safe_offset = safe_offset

    @property
    def safe_offset(self) -> int:
        return self._safe_offset

    async def safe_block(self) -> BlockHeader:
        """Fetch the current safe reference block.

        Raises:
            RpcError: If the head or the safe block cannot be fetched, or
                the chain is shorter than the offset.
        """
        head = await self._client.get_block_number()
        if head <= 0:
            raise RpcError(
                f"chain head must be a positive block number, got {head}",
                error_code=ErrorCode.PROTOCOL_VIOLATION,
                details={"head": head},
            )

        target = head + self._safe_offset
        if target <= 0:
            raise RpcError(
                f"chain too short for a safe block: head {head}, offset {self._safe_offset}",
                error_code=ErrorCode.PROTOCOL_VIOLATION,
                details={"head": head, "safe_offset": self._safe_offset},
            )

        block = await self._client.get_block_by_number(target)
        if block is None:
            raise RpcError(
                f"failed to fetch safe block {target}",
                details={"head": head, "target": target},
            )
        if block.number != target:
            raise RpcError(
                f"requested block {target}, node returned block {block.number}",
                error_code=ErrorCode.PROTOCOL_VIOLATION,
                details={"target": target, "actual": block.number},
            )
        return block

    async def verify(self, tx_hash: bytes | str) -> int:
        """Check that a transaction is mined at or below the safe block.

        Args:
            tx_hash: 32-byte transaction hash (raw bytes or hex).

        Returns:
            The transaction's inclusion block number.

        Raises:
            ValueError: If tx_hash is not a 32-byte hash.
            RpcError: On chain-RPC failure or protocol violation.
            NotIncludedError: If the transaction has no receipt yet.
            NotSafeError: If the transaction is newer than the safe block.
        """
        normalized = normalize_tx_hash(tx_hash)

        receipt = await self._client.get_transaction_receipt(normalized)
        if receipt is None:
            logger.debug("tx %s not included", normalized)
            raise NotIncludedError(normalized)

        if receipt.block_number <= 0:
            raise RpcError(
                f"receipt reports invalid block number {receipt.block_number}",
                error_code=ErrorCode.PROTOCOL_VIOLATION,
                details={"tx_hash": normalized, "block_number": receipt.block_number},
            )

        safe = await self.safe_block()

        if receipt.block_number > safe.number:
            logger.debug(
                "tx %s not safe: block %d > safe block %d",
                normalized,
                receipt.block_number,
                safe.number,
            )
            raise NotSafeError(normalized, receipt.block_number, safe.number)

        logger.debug(
            "tx %s safe: block %d <= safe block %d",
            normalized,
            receipt.block_number,
            safe.number,
        )
        return receipt.block_number
