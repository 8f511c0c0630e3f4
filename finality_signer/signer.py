"""
Attestation signer — the secrets boundary.

Signs transaction hashes with the service's secp256k1 key. The signer has
no chain awareness: it trusts its caller (the service facade) to have
gated the call on a successful finality verdict.

Output format (Ethereum ``crypto.Sign`` compatible):
    signature: 65 bytes, r || s || v. r and s are 32-byte big-endian,
        s is low-S normalized, v is the recovery id in {0, 1}. Signing is
        deterministic (RFC 6979), so the same hash and key always produce
        the same bytes. A consumer can recover the signer's public key
        (ecrecover) from the hash and signature alone.
    public_key: 65 bytes, uncompressed SEC1 point (0x04 || X || Y),
        derived once at construction and identical on every call.

Key material is loaded or generated with ``cryptography`` and held as an
``eth_keys`` private key, which does the recoverable signing. The private
key never leaves the signer. ``key_id`` is a public digest of the public
key, safe for logs and audit trails.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from eth_keys import keys
from eth_keys.constants import SECPK1_N
from eth_keys.exceptions import BadSignature, ValidationError

from finality_signer.errors import SigningError
from finality_signer.hexutil import tx_hash_bytes

logger = logging.getLogger(__name__)

SIGNATURE_BYTES = 65
PUBLIC_KEY_BYTES = 65
PRIVATE_KEY_BYTES = 32

_UNCOMPRESSED_PREFIX = b"\x04"


@dataclass(frozen=True)
class SignatureResult:
    """A co-signature over a transaction hash.

    Attributes:
        signature: r || s || v, 65 bytes, v in {0, 1}.
        public_key: Uncompressed SEC1 public key, 65 bytes.
    """

    signature: bytes
    public_key: bytes

    @property
    def recovery_id(self) -> int:
        return self.signature[64]

    def to_dict(self) -> dict[str, str]:
        return {
            "signature": "0x" + self.signature.hex(),
            "public_key": "0x" + self.public_key.hex(),
        }


@runtime_checkable
class AttestationSigner(Protocol):
    """Interface for hash signing.

    Implementations manage key material internally and never expose it.
    """

    @property
    def public_key_bytes(self) -> bytes:
        """The signer's public key. Stable for the signer's lifetime."""
        ...

    @property
    def key_id(self) -> str:
        """Public identifier of the signing key (safe for logging)."""
        ...

    def sign(self, tx_hash: bytes | str) -> SignatureResult:
        """Sign a 32-byte transaction hash.

        Raises:
            ValueError: If tx_hash is not a 32-byte hash.
            SigningError: On an underlying cryptographic failure.
        """
        ...


class Secp256k1Signer:
    """AttestationSigner holding one secp256k1 key.

    Construct with ``generate()`` for an ephemeral identity, or with one of
    the ``from_*`` constructors to load persisted key material.
    """

    def __init__(self, private_key: keys.PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_bytes = _UNCOMPRESSED_PREFIX + private_key.public_key.to_bytes()
        self._key_id = "sha256:" + hashlib.sha256(self._public_key_bytes).hexdigest()[:16]

    # -----------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------

    @classmethod
    def generate(cls) -> "Secp256k1Signer":
        """Generate a fresh key. The identity lasts only as long as the object."""
        try:
            key = ec.generate_private_key(ec.SECP256K1())
        except (ValueError, UnsupportedAlgorithm) as e:
            raise SigningError(f"key generation failed: {e}") from e
        return cls.from_cryptography_key(key)

    @classmethod
    def from_private_bytes(cls, data: bytes) -> "Secp256k1Signer":
        """Load a raw 32-byte big-endian private scalar."""
        if len(data) != PRIVATE_KEY_BYTES:
            raise SigningError(
                f"private key must be {PRIVATE_KEY_BYTES} bytes, got {len(data)}"
            )
        scalar = int.from_bytes(data, "big")
        if not 0 < scalar < SECPK1_N:
            raise SigningError("private key scalar is out of range for secp256k1")
        try:
            key = keys.PrivateKey(bytes(data))
        except ValidationError as e:
            raise SigningError(f"cannot load private key: {e}") from e
        return cls(key)

    @classmethod
    def from_private_hex(cls, value: str) -> "Secp256k1Signer":
        """Load a hex-encoded private scalar, with or without "0x"."""
        text = value[2:] if value.lower().startswith("0x") else value
        try:
            data = bytes.fromhex(text)
        except ValueError as e:
            raise SigningError("private key is not valid hex") from e
        return cls.from_private_bytes(data)

    @classmethod
    def from_cryptography_key(cls, key: ec.EllipticCurvePrivateKey) -> "Secp256k1Signer":
        """Adopt a ``cryptography`` EC private key. The curve must be secp256k1."""
        if not isinstance(key.curve, ec.SECP256K1):
            raise SigningError(
                f"expected a secp256k1 key, got {key.curve.name}",
                details={"curve": key.curve.name},
            )
        scalar = key.private_numbers().private_value
        return cls.from_private_bytes(scalar.to_bytes(PRIVATE_KEY_BYTES, "big"))

    @classmethod
    def from_pem(cls, data: bytes, password: bytes | None = None) -> "Secp256k1Signer":
        """Load a PEM-encoded EC private key."""
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"cannot load PEM private key: {e}") from e
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise SigningError(
                f"PEM key is not an EC key: {type(key).__name__}"
            )
        return cls.from_cryptography_key(key)

    # -----------------------------------------------------------------
    # AttestationSigner protocol
    # -----------------------------------------------------------------

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    @property
    def key_id(self) -> str:
        return self._key_id

    def sign(self, tx_hash: bytes | str) -> SignatureResult:
        digest = tx_hash_bytes(tx_hash)
        try:
            signature = self._private_key.sign_msg_hash(digest).to_bytes()
        except (ValidationError, BadSignature) as e:
            logger.error("signing failed with key %s: %s", self._key_id, e)
            raise SigningError(
                f"failed to sign transaction: {e}",
                details={"key_id": self._key_id},
            ) from e
        return SignatureResult(signature=signature, public_key=self._public_key_bytes)

    def __repr__(self) -> str:
        return f"Secp256k1Signer(key_id={self._key_id!r})"

    def to_dict(self) -> dict[str, Any]:
        """Public description of the signer. Never includes the private key."""
        return {
            "key_id": self._key_id,
            "public_key": "0x" + self._public_key_bytes.hex(),
        }


# =========================================================================
# Verification and recovery
# =========================================================================


def _parse_signature(signature: bytes) -> keys.Signature | None:
    """Range-check r, s and v before handing the bytes to eth_keys."""
    if len(signature) != SIGNATURE_BYTES:
        return None
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    if not (0 < r < SECPK1_N and 0 < s < SECPK1_N and v in (0, 1)):
        return None
    return keys.Signature(bytes(signature))


def _parse_public_key(public_key: bytes) -> keys.PublicKey | None:
    """Accept only an uncompressed SEC1 point that lies on secp256k1."""
    if len(public_key) != PUBLIC_KEY_BYTES or not public_key.startswith(_UNCOMPRESSED_PREFIX):
        return None
    try:
        ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(public_key))
    except ValueError:
        return None
    return keys.PublicKey(bytes(public_key[1:]))


def recover_public_key(tx_hash: bytes | str, signature: bytes) -> bytes:
    """Recover the signer's uncompressed public key (ecrecover).

    Raises:
        ValueError: If the hash or signature is malformed or unrecoverable.
    """
    digest = tx_hash_bytes(tx_hash)
    sig = _parse_signature(signature)
    if sig is None:
        raise ValueError("signature must be 65 bytes r || s || v with v in {0, 1}")
    try:
        recovered = sig.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError) as e:
        raise ValueError(f"cannot recover public key: {e}") from e
    return _UNCOMPRESSED_PREFIX + recovered.to_bytes()


def verify_signature(public_key: bytes, tx_hash: bytes | str, signature: bytes) -> bool:
    """Check an r || s || v signature over a transaction hash.

    Returns False for any malformed input rather than raising.
    """
    try:
        digest = tx_hash_bytes(tx_hash)
    except ValueError:
        return False
    key = _parse_public_key(public_key)
    sig = _parse_signature(signature)
    if key is None or sig is None:
        return False
    try:
        if not sig.verify_msg_hash(digest, key):
            return False
        # v must recover this key, or ecrecover on-chain yields another signer
        recovered = sig.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError):
        return False
    return recovered.to_bytes() == key.to_bytes()
