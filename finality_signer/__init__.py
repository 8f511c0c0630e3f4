"""
finality-signer: co-signs transaction hashes once they are past the safe block.

Public API:

    Service:
        - ``create_service()`` — wire a service from configuration.
        - ``FinalitySigningService.verify_and_sign()`` — the one external
          operation: verify finality, then sign.

    Components:
        - ``FinalityOracle`` — safety verdicts from current chain state.
        - ``AttestationSigner`` — signing protocol (secrets boundary).
        - ``Secp256k1Signer`` — recoverable secp256k1 signer (eth_keys).
        - ``verify_signature()`` — check a co-signature.
        - ``recover_public_key()`` — ecrecover the signer of a hash.

    Chain boundary:
        - ``ChainClient`` — protocol (receipt, head number, block by number).
        - ``EthJsonRpcClient`` — Ethereum JSON-RPC implementation.
        - ``JsonRpcTransport`` / ``HttpxTransport`` — injectable HTTP layer.

    Configuration:
        - ``SignerConfig``, ``load_config()``, ``SAFE_BLOCK_OFFSET``.

    Errors:
        - ``RpcError``, ``NotIncludedError``, ``NotSafeError`` (retryable)
        - ``SigningError``, ``ConfigError`` (fatal)
"""

from finality_signer.client import BlockHeader, ChainClient, TransactionReceipt
from finality_signer.config import SAFE_BLOCK_OFFSET, SignerConfig, load_config
from finality_signer.errors import (
    ConfigError,
    ErrorCode,
    FinalitySignerError,
    NotIncludedError,
    NotSafeError,
    RpcError,
    SigningError,
)
from finality_signer.jsonrpc_client import EthJsonRpcClient
from finality_signer.oracle import FinalityOracle
from finality_signer.service import FinalitySigningService, create_service
from finality_signer.signer import (
    AttestationSigner,
    Secp256k1Signer,
    SignatureResult,
    recover_public_key,
    verify_signature,
)
from finality_signer.transport import HttpxTransport, JsonRpcTransport

__version__ = "0.1.0"

__all__ = [
    "AttestationSigner",
    "BlockHeader",
    "ChainClient",
    "ConfigError",
    "EthJsonRpcClient",
    "ErrorCode",
    "FinalityOracle",
    "FinalitySignerError",
    "FinalitySigningService",
    "HttpxTransport",
    "JsonRpcTransport",
    "NotIncludedError",
    "NotSafeError",
    "RpcError",
    "SAFE_BLOCK_OFFSET",
    "Secp256k1Signer",
    "SignatureResult",
    "SignerConfig",
    "SigningError",
    "TransactionReceipt",
    "create_service",
    "load_config",
    "recover_public_key",
    "verify_signature",
]
