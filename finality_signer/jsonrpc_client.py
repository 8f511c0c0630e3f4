"""
Ethereum JSON-RPC client — real network implementation of ChainClient.

Translates eth_* JSON-RPC responses into TransactionReceipt / BlockHeader.
Uses an injectable transport (JsonRpcTransport) so the HTTP layer can be
swapped for test fakes without changing parsing logic.

No retry loops. No secrets. No chain logic beyond response parsing.

Methods used:
    - eth_getTransactionReceipt [hash]      → receipt object | null
    - eth_blockNumber []                    → hex quantity
    - eth_getBlockByNumber [quantity, false] → block object | null

Failure mapping (all raise RpcError):
    - httpx / socket timeout                → TIMEOUT
    - connection, HTTP status, bad JSON     → BACKEND_UNAVAILABLE
    - JSON-RPC "error" member               → BACKEND_UNAVAILABLE (code in details)
    - missing "result", malformed fields    → PROTOCOL_VIOLATION
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from finality_signer.client import BlockHeader, TransactionReceipt
from finality_signer.errors import ErrorCode, RpcError
from finality_signer.hexutil import decode_quantity, encode_quantity, normalize_tx_hash
from finality_signer.transport import HttpxTransport, JsonRpcTransport

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


class EthJsonRpcClient:
    """Ethereum JSON-RPC client implementing the ChainClient protocol.

    Safe for concurrent use: no per-request state is kept on the instance.

    Args:
        url: The JSON-RPC endpoint URL (e.g. "http://localhost:8545").
        transport: Injectable transport for HTTP POST. Defaults to
            HttpxTransport. Pass a FakeTransport for testing.
    """

    def __init__(
        self,
        url: str,
        transport: JsonRpcTransport | None = None,
    ) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        """The JSON-RPC endpoint URL."""
        return self._url

    @property
    def transport(self) -> JsonRpcTransport:
        return self._transport

    # -----------------------------------------------------------------
    # ChainClient protocol methods
    # -----------------------------------------------------------------

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """Fetch a receipt via ``eth_getTransactionReceipt``.

        Returns None when the node has no receipt (not mined, or a
        pending receipt without a block number).
        """
        tx_hash = normalize_tx_hash(tx_hash)
        result = await self._call("eth_getTransactionReceipt", [tx_hash])
        return _parse_receipt(result, tx_hash)

    async def get_block_number(self) -> int:
        """Fetch the current head via ``eth_blockNumber``."""
        result = await self._call("eth_blockNumber", [])
        try:
            return decode_quantity(result)
        except ValueError as e:
            raise RpcError(
                f"eth_blockNumber returned a malformed quantity: {e}",
                error_code=ErrorCode.PROTOCOL_VIOLATION,
                details={"method": "eth_blockNumber", "result": result},
            ) from e

    async def get_block_by_number(self, number: int) -> BlockHeader | None:
        """Fetch a block header via ``eth_getBlockByNumber`` (no tx bodies)."""
        result = await self._call("eth_getBlockByNumber", [encode_quantity(number), False])
        return _parse_block(result)

    # -----------------------------------------------------------------
    # Wire
    # -----------------------------------------------------------------

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("rpc %s %s", method, params)

        try:
            response = await self._transport.post_json(self._url, payload)
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.warning("rpc %s timed out: %s", method, e)
            raise RpcError(
                f"{method} timed out",
                error_code=ErrorCode.TIMEOUT,
                details={"method": method, "url": self._url},
            ) from e
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.warning("rpc %s failed: %s", method, e)
            raise RpcError(
                f"{method} failed: {e}",
                error_code=ErrorCode.BACKEND_UNAVAILABLE,
                details={"method": method, "url": self._url, "error": str(e)},
            ) from e

        return _extract_result(method, response)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _protocol_violation(method: str, message: str, **details: Any) -> RpcError:
    return RpcError(
        f"{method}: {message}",
        error_code=ErrorCode.PROTOCOL_VIOLATION,
        details={"method": method, **details},
    )


def _extract_result(method: str, response: Any) -> Any:
    """Unwrap a JSON-RPC 2.0 response envelope.

    Raises:
        RpcError: On an "error" member, a non-object body, or no "result".
    """
    if not isinstance(response, dict):
        raise _protocol_violation(
            method, "response is not a JSON object", type=type(response).__name__
        )

    error = response.get("error")
    if error is not None:
        code = error.get("code") if isinstance(error, dict) else None
        message = error.get("message") if isinstance(error, dict) else str(error)
        logger.warning("rpc %s returned error %s: %s", method, code, message)
        raise RpcError(
            f"{method} returned error: {message}",
            error_code=ErrorCode.BACKEND_UNAVAILABLE,
            details={"method": method, "rpc_code": code, "rpc_message": message},
        )

    if "result" not in response:
        raise _protocol_violation(method, "response has no result")

    return response["result"]


def _parse_receipt(result: Any, tx_hash: str) -> TransactionReceipt | None:
    """Parse an eth_getTransactionReceipt result into TransactionReceipt.

    Handles:
        - null (not mined) → None
        - receipt without blockNumber (pending) → None
        - receipt for a different hash → PROTOCOL_VIOLATION
        - malformed quantities → PROTOCOL_VIOLATION
    """
    method = "eth_getTransactionReceipt"
    if result is None:
        return None
    if not isinstance(result, dict):
        raise _protocol_violation(method, "receipt is not an object")

    raw_block = result.get("blockNumber")
    if raw_block is None:
        return None

    reported_hash = result.get("transactionHash")
    if reported_hash is not None:
        try:
            reported_hash = normalize_tx_hash(reported_hash)
        except ValueError as e:
            raise _protocol_violation(method, str(e)) from e
        if reported_hash != tx_hash:
            raise _protocol_violation(
                method,
                "receipt is for a different transaction",
                expected=tx_hash,
                actual=reported_hash,
            )

    try:
        block_number = decode_quantity(raw_block)
        raw_status = result.get("status")
        status = decode_quantity(raw_status) if raw_status is not None else None
    except ValueError as e:
        raise _protocol_violation(method, str(e)) from e

    block_hash = result.get("blockHash")
    return TransactionReceipt(
        tx_hash=tx_hash,
        block_number=block_number,
        block_hash=block_hash if isinstance(block_hash, str) else None,
        status=status,
    )


def _parse_block(result: Any) -> BlockHeader | None:
    """Parse an eth_getBlockByNumber result into BlockHeader."""
    method = "eth_getBlockByNumber"
    if result is None:
        return None
    if not isinstance(result, dict):
        raise _protocol_violation(method, "block is not an object")

    try:
        number = decode_quantity(result.get("number"))
    except ValueError as e:
        raise _protocol_violation(method, str(e)) from e

    block_hash = result.get("hash")
    return BlockHeader(
        number=number,
        hash=block_hash if isinstance(block_hash, str) else None,
    )
