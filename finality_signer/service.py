"""
Finality signing service — verify, then sign.

Composes the finality oracle (chain reads) with the attestation signer
(key material) behind the one external operation:

    verify_and_sign(tx_hash) → SignatureResult

    1. oracle.verify(tx_hash) — any error propagates unchanged.
    2. signer.sign(tx_hash)   — only reached on a safe verdict.

No signature is ever returned alongside an error.

The optional deadline bounds both RPC round-trips of one call. When it
expires the in-flight request is cancelled and RpcError(TIMEOUT) is
raised. Cancelling the calling task propagates CancelledError as usual.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from finality_signer.client import ChainClient
from finality_signer.config import SignerConfig
from finality_signer.errors import ErrorCode, RpcError, SigningError
from finality_signer.hexutil import normalize_tx_hash
from finality_signer.jsonrpc_client import EthJsonRpcClient
from finality_signer.oracle import FinalityOracle
from finality_signer.signer import AttestationSigner, Secp256k1Signer, SignatureResult
from finality_signer.transport import HttpxTransport, JsonRpcTransport

logger = logging.getLogger(__name__)


class FinalitySigningService:
    """Co-signs transaction hashes once they are past the safe block.

    Safe for concurrent use: calls share the oracle, the chain client and
    the signer, none of which hold per-request state.

    Args:
        oracle: Finality oracle bound to a chain client.
        signer: Signer holding the service's key material.
        request_deadline_s: Default deadline for verify_and_sign.
        transport: Transport to close on ``aclose()``. Pass only a
            transport this service owns.
    """

    def __init__(
        self,
        oracle: FinalityOracle,
        signer: AttestationSigner,
        *,
        request_deadline_s: float | None = None,
        transport: HttpxTransport | None = None,
    ) -> None:
        self._oracle = oracle
        self._signer = signer
        self._request_deadline_s = request_deadline_s
        self._owned_transport = transport

    @property
    def oracle(self) -> FinalityOracle:
        return self._oracle

    @property
    def public_key_bytes(self) -> bytes:
        return self._signer.public_key_bytes

    @property
    def key_id(self) -> str:
        return self._signer.key_id

    async def verify_and_sign(
        self,
        tx_hash: bytes | str,
        *,
        timeout: float | None = None,
    ) -> SignatureResult:
        """Sign a transaction hash if, and only if, it is safe.

        Args:
            tx_hash: 32-byte transaction hash (raw bytes or hex).
            timeout: Deadline in seconds for the verification round-trips.
                Defaults to the configured request deadline.

        Returns:
            SignatureResult with the signature and the service public key.

        Raises:
            ValueError: If tx_hash is not a 32-byte hash.
            RpcError: Chain-RPC failure, protocol violation, or deadline.
            NotIncludedError: Transaction not mined yet.
            NotSafeError: Transaction mined after the safe block.
            SigningError: Cryptographic failure.
        """
        normalized = normalize_tx_hash(tx_hash)
        deadline = timeout if timeout is not None else self._request_deadline_s

        if deadline is None:
            block_number = await self._oracle.verify(normalized)
        else:
            try:
                block_number = await asyncio.wait_for(
                    self._oracle.verify(normalized), deadline
                )
            except TimeoutError as e:
                logger.warning("verification of %s exceeded %ss deadline", normalized, deadline)
                raise RpcError(
                    f"verification exceeded deadline of {deadline}s",
                    error_code=ErrorCode.TIMEOUT,
                    details={"tx_hash": normalized, "deadline_s": deadline},
                ) from e

        try:
            result = self._signer.sign(normalized)
        except SigningError:
            logger.exception(
                "signing failed for %s with key %s; key material may be corrupt",
                normalized,
                self._signer.key_id,
            )
            raise

        logger.info(
            "signed %s (block %d) with key %s",
            normalized,
            block_number,
            self._signer.key_id,
        )
        return result

    async def aclose(self) -> None:
        """Release the HTTP connection pool if this service owns it."""
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> "FinalitySigningService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _build_signer(config: SignerConfig) -> AttestationSigner:
    if config.private_key_hex:
        return Secp256k1Signer.from_private_hex(config.private_key_hex)
    signer = Secp256k1Signer.generate()
    logger.warning(
        "no private key configured; generated ephemeral key %s "
        "(identity changes on restart)",
        signer.key_id,
    )
    return signer


def create_service(
    config: SignerConfig | Mapping[str, Any],
    *,
    signer: AttestationSigner | None = None,
    transport: JsonRpcTransport | None = None,
    client: ChainClient | None = None,
) -> FinalitySigningService:
    """Wire a FinalitySigningService from configuration.

    Args:
        config: SignerConfig or a plain mapping validated by
            ``SignerConfig.from_dict``.
        signer: Injected signer. Defaults to the configured private key,
            or a freshly generated one.
        transport: Injected JSON-RPC transport. Defaults to an
            HttpxTransport owned (and closed) by the service.
        client: Injected chain client. Overrides transport.

    Raises:
        ConfigError: If the configuration is invalid.
        SigningError: If key material cannot be loaded or generated.
    """
    if not isinstance(config, SignerConfig):
        config = SignerConfig.from_dict(config)

    if signer is None:
        signer = _build_signer(config)

    owned: HttpxTransport | None = None
    if client is None:
        if transport is None:
            owned = HttpxTransport(timeout=config.http_timeout_s)
            transport = owned
        client = EthJsonRpcClient(config.rpc_url, transport)

    oracle = FinalityOracle(client, safe_offset=config.safe_offset)
    logger.info(
        "finality signer ready: rpc=%s safe_offset=%d key=%s",
        config.rpc_url,
        config.safe_offset,
        signer.key_id,
    )
    return FinalitySigningService(
        oracle,
        signer,
        request_deadline_s=config.request_deadline_s,
        transport=owned,
    )
