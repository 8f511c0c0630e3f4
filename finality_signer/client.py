"""
Chain client protocol — the network boundary.

Defines the interface the finality oracle depends on, not a concrete
implementation. This keeps the oracle testable and keeps HTTP out of
the verdict logic.

Concrete implementations:
    - EthJsonRpcClient (Ethereum JSON-RPC over an injectable transport)
    - FakeChainClient (tests)

The protocol has three methods:
    - get_transaction_receipt(tx_hash) → TransactionReceipt | None
    - get_block_number() → int
    - get_block_by_number(number) → BlockHeader | None

"Not mined yet" and "no such block" are expected answers and come back
as None. Endpoint failures and malformed responses raise RpcError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class TransactionReceipt:
    """Inclusion record for a mined transaction.

    Attributes:
        tx_hash: Transaction hash ("0x" + 64 lowercase hex).
        block_number: Number of the block the transaction was mined in.
        block_hash: Hash of that block, when the node reports it.
        status: Execution status (1 success, 0 revert). None for
            pre-Byzantium receipts that carry a state root instead.
    """

    tx_hash: str
    block_number: int
    block_hash: str | None = None
    status: int | None = None


@dataclass(frozen=True)
class BlockHeader:
    """The subset of a block the oracle cares about."""

    number: int
    hash: str | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class ChainClient(Protocol):
    """Interface for the chain-RPC collaborator.

    Implementations must tolerate concurrent outstanding calls.
    """

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """Fetch a transaction's receipt.

        Args:
            tx_hash: Normalized transaction hash ("0x" + 64 hex).

        Returns:
            The receipt, or None if the transaction is not mined.

        Raises:
            RpcError: On endpoint failure or malformed response.
        """
        ...

    async def get_block_number(self) -> int:
        """Return the number of the current head block.

        Raises:
            RpcError: On endpoint failure or malformed response.
        """
        ...

    async def get_block_by_number(self, number: int) -> BlockHeader | None:
        """Fetch a block header by absolute number.

        Returns:
            The header, or None if the node has no such block.

        Raises:
            RpcError: On endpoint failure or malformed response.
        """
        ...
