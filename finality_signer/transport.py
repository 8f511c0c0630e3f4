"""
Transport protocol for chain JSON-RPC calls.

Defines the seam where concrete HTTP implementations plug in. The
JSON-RPC client depends on this protocol, not on httpx directly, so the
transport can be swapped for test fakes without changing parsing logic.

Concrete implementations:
    - HttpxTransport (default, one pooled httpx.AsyncClient shared by
      every concurrent request)
    - FakeTransport (tests, returns canned responses)

Transport-level failures (connection refused, timeout, HTTP status >= 400,
undecodable body) propagate as exceptions. The JSON-RPC client maps them
to RpcError.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_MAX_CONNECTIONS = 32


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        """Send a JSON-RPC request and return the decoded JSON body.

        Args:
            url: The JSON-RPC endpoint URL.
            payload: The JSON-RPC request body (jsonrpc, method, params, id).

        Returns:
            Decoded JSON response. Normally a dict; callers validate.

        Raises:
            Exception: On transport-level failures.
        """
        ...


class HttpxTransport:
    """Default transport using a shared httpx.AsyncClient.

    The client is created on first use and reused for every request, so
    concurrent verifications multiplex over one connection pool. Call
    ``aclose()`` (or use ``async with``) to release it.

    Args:
        timeout: Per-request timeout in seconds.
        max_connections: Upper bound on pooled connections.
        headers: Extra HTTP headers sent with every request.
        client: Pre-built AsyncClient to use instead of creating one.
            The transport does not close a client it did not create.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_S,
        *,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._limits = httpx.Limits(max_connections=max_connections)
        self._headers = headers or {}
        self._client = client
        self._owns_client = client is None

    @property
    def timeout(self) -> float:
        return self._timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, limits=self._limits)
            self._owns_client = True
        return self._client

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        """Send JSON-RPC request via httpx."""
        client = self._get_client()
        response = await client.post(
            url,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                **self._headers,
            },
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            logger.debug("closed JSON-RPC HTTP client")
        self._client = None

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
