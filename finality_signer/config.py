"""
Service configuration.

Configuration is supplied once, at construction time, and never re-read.
Three entry points produce the same validated ``SignerConfig``:

    - ``SignerConfig.from_dict()`` — validates against the packaged
      JSON Schema (schemas/signer.config.v0.1.json).
    - ``load_config(path)`` — reads a JSON file, then ``from_dict()``.
    - ``SignerConfig.from_env()`` — reads FINALITY_SIGNER_* variables.

Any invalid input raises ConfigError.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, cast

import jsonschema  # type: ignore[import-untyped]

from finality_signer.errors import ConfigError

# Blocks behind the current head at which a transaction is considered safe.
SAFE_BLOCK_OFFSET = -4

DEFAULT_HTTP_TIMEOUT_S = 30.0

CONFIG_SCHEMA_FILE = "schemas/signer.config.v0.1.json"

ENV_PREFIX = "FINALITY_SIGNER_"

_CONFIG_SCHEMA: dict[str, Any] | None = None


def _load_config_schema() -> dict[str, Any]:
    global _CONFIG_SCHEMA
    if _CONFIG_SCHEMA is None:
        with resources.files("finality_signer").joinpath(CONFIG_SCHEMA_FILE).open(
            "r", encoding="utf-8"
        ) as f:
            _CONFIG_SCHEMA = cast(dict[str, Any], json.load(f))
    return _CONFIG_SCHEMA


@dataclass(frozen=True)
class SignerConfig:
    """Validated service configuration.

    Attributes:
        rpc_url: Chain JSON-RPC endpoint URL.
        safe_offset: Negative block offset from the current head that
            defines the safe reference block.
        http_timeout_s: Per-request HTTP timeout.
        request_deadline_s: Optional deadline covering both RPC calls of
            one verification. None means no deadline beyond http_timeout_s.
        private_key_hex: Optional persisted secp256k1 key. Excluded from
            repr so it never lands in logs.
    """

    rpc_url: str
    safe_offset: int = SAFE_BLOCK_OFFSET
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    request_deadline_s: float | None = None
    private_key_hex: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ConfigError("rpc_url is required", details={"field": "rpc_url"})
        if isinstance(self.safe_offset, bool) or not isinstance(self.safe_offset, int):
            raise ConfigError(
                "safe_offset must be an integer",
                details={"field": "safe_offset"},
            )
        if self.safe_offset >= 0:
            raise ConfigError(
                f"safe_offset must be negative, got {self.safe_offset}",
                details={"field": "safe_offset", "value": self.safe_offset},
            )
        if self.http_timeout_s <= 0:
            raise ConfigError(
                f"http_timeout_s must be positive, got {self.http_timeout_s}",
                details={"field": "http_timeout_s", "value": self.http_timeout_s},
            )
        if self.request_deadline_s is not None and self.request_deadline_s <= 0:
            raise ConfigError(
                f"request_deadline_s must be positive, got {self.request_deadline_s}",
                details={"field": "request_deadline_s", "value": self.request_deadline_s},
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting the private key."""
        return {
            "rpc_url": self.rpc_url,
            "safe_offset": self.safe_offset,
            "http_timeout_s": self.http_timeout_s,
            "request_deadline_s": self.request_deadline_s,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SignerConfig":
        """Build a config from a plain mapping, validated against the schema."""
        try:
            jsonschema.validate(instance=dict(data), schema=_load_config_schema())
        except jsonschema.ValidationError as e:
            field_path = ".".join(str(p) for p in e.absolute_path) or None
            raise ConfigError(
                f"invalid configuration: {e.message}",
                details={"field": field_path},
            ) from e

        return cls(
            rpc_url=data["rpc_url"],
            safe_offset=data.get("safe_offset", SAFE_BLOCK_OFFSET),
            http_timeout_s=float(data.get("http_timeout_s", DEFAULT_HTTP_TIMEOUT_S)),
            request_deadline_s=data.get("request_deadline_s"),
            private_key_hex=data.get("private_key_hex"),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SignerConfig":
        """Build a config from FINALITY_SIGNER_* environment variables.

        Recognized variables:
            FINALITY_SIGNER_RPC_URL (required)
            FINALITY_SIGNER_SAFE_OFFSET
            FINALITY_SIGNER_HTTP_TIMEOUT
            FINALITY_SIGNER_DEADLINE
            FINALITY_SIGNER_PRIVATE_KEY
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        rpc_url = env.get(ENV_PREFIX + "RPC_URL")
        if rpc_url is not None:
            data["rpc_url"] = rpc_url

        conversions: list[tuple[str, str, type]] = [
            ("SAFE_OFFSET", "safe_offset", int),
            ("HTTP_TIMEOUT", "http_timeout_s", float),
            ("DEADLINE", "request_deadline_s", float),
        ]
        for suffix, key, convert in conversions:
            raw = env.get(ENV_PREFIX + suffix)
            if raw is None or raw == "":
                continue
            try:
                data[key] = convert(raw)
            except ValueError as e:
                raise ConfigError(
                    f"{ENV_PREFIX + suffix} is not a valid {convert.__name__}: {raw!r}",
                    details={"field": key},
                ) from e

        private_key = env.get(ENV_PREFIX + "PRIVATE_KEY")
        if private_key:
            data["private_key_hex"] = private_key

        return cls.from_dict(data)


def load_config(path: str | Path) -> SignerConfig:
    """Load a SignerConfig from a JSON file."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(
            f"cannot read config file {p}: {e}",
            details={"path": str(p)},
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"config file {p} is not valid JSON: {e.msg}",
            details={"path": str(p), "line": e.lineno},
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"config file {p} must contain a JSON object",
            details={"path": str(p)},
        )
    return SignerConfig.from_dict(data)
