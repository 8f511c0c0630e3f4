"""Tests for the error taxonomy."""

import pytest

from finality_signer.errors import (
    ConfigError,
    ErrorCode,
    FinalitySignerError,
    NotIncludedError,
    NotSafeError,
    RpcError,
    SigningError,
)


class TestRetryable:
    @pytest.mark.parametrize(
        "err",
        [
            RpcError("down"),
            NotIncludedError("0x" + "00" * 32),
            NotSafeError("0x" + "00" * 32, 99, 96),
        ],
    )
    def test_try_again_later(self, err: FinalitySignerError) -> None:
        assert err.retryable is True

    @pytest.mark.parametrize("err", [SigningError("bad key"), ConfigError("bad config")])
    def test_broken(self, err: FinalitySignerError) -> None:
        assert err.retryable is False


class TestCodes:
    def test_default_codes(self) -> None:
        assert RpcError("x").error_code == ErrorCode.BACKEND_UNAVAILABLE
        assert NotIncludedError("0x").error_code == ErrorCode.NOT_INCLUDED
        assert NotSafeError("0x", 2, 1).error_code == ErrorCode.NOT_SAFE
        assert SigningError("x").error_code == ErrorCode.SIGNING_FAILED
        assert ConfigError("x").error_code == ErrorCode.INVALID_CONFIG

    def test_override_code(self) -> None:
        err = RpcError("slow", error_code=ErrorCode.TIMEOUT)
        assert err.error_code == ErrorCode.TIMEOUT

    def test_to_dict(self) -> None:
        err = NotSafeError("0xabc", 99, 96)
        data = err.to_dict()
        assert data["error_code"] == "NOT_SAFE"
        assert data["retryable"] is True
        assert data["details"] == {
            "tx_hash": "0xabc",
            "block_number": 99,
            "safe_block_number": 96,
        }
        assert "99" in data["message"]

    def test_all_share_base(self) -> None:
        for cls in (RpcError, SigningError, ConfigError):
            assert issubclass(cls, FinalitySignerError)
        assert issubclass(NotIncludedError, FinalitySignerError)
        assert issubclass(NotSafeError, FinalitySignerError)
