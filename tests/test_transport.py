"""Tests for HttpxTransport against a mocked HTTP layer."""

from __future__ import annotations

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from finality_signer.errors import ErrorCode, RpcError
from finality_signer.jsonrpc_client import EthJsonRpcClient
from finality_signer.transport import HttpxTransport, JsonRpcTransport

URL = "http://node.example:8545"


class TestHttpxTransport:
    def test_implements_protocol(self) -> None:
        assert isinstance(HttpxTransport(), JsonRpcTransport)

    @pytest.mark.asyncio
    async def test_posts_json_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"jsonrpc": "2.0", "id": 1, "result": "0x64"})

        async with HttpxTransport(timeout=5.0) as transport:
            body = await transport.post_json(URL, {"method": "eth_blockNumber", "params": []})

        assert body["result"] == "0x64"
        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"method": "eth_blockNumber", "params": []}

    @pytest.mark.asyncio
    async def test_extra_headers_sent(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"result": None})

        async with HttpxTransport(headers={"Authorization": "Bearer t"}) as transport:
            await transport.post_json(URL, {})

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", status_code=502)

        async with HttpxTransport() as transport:
            with pytest.raises(httpx.HTTPStatusError):
                await transport.post_json(URL, {})

    @pytest.mark.asyncio
    async def test_client_reused_across_requests(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"result": "0x1"})
        httpx_mock.add_response(url=URL, method="POST", json={"result": "0x2"})

        transport = HttpxTransport()
        await transport.post_json(URL, {})
        first = transport._client
        await transport.post_json(URL, {})
        assert transport._client is first

        await transport.aclose()
        assert transport._client is None

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"result": "0x1"})

        async with httpx.AsyncClient() as shared:
            transport = HttpxTransport(client=shared)
            await transport.post_json(URL, {})
            await transport.aclose()
            assert not shared.is_closed

    @pytest.mark.asyncio
    async def test_client_created_after_aclose_is_owned(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"result": "0x1"})
        httpx_mock.add_response(url=URL, method="POST", json={"result": "0x2"})

        async with httpx.AsyncClient() as shared:
            transport = HttpxTransport(client=shared)
            await transport.post_json(URL, {})
            await transport.aclose()

            body = await transport.post_json(URL, {})
            assert body["result"] == "0x2"
            replacement = transport._client
            assert replacement is not None
            assert replacement is not shared

            await transport.aclose()
            assert replacement.is_closed
            assert transport._client is None
            assert not shared.is_closed


class TestClientOverHttpx:
    """EthJsonRpcClient wired to the real transport, HTTP mocked."""

    @pytest.mark.asyncio
    async def test_block_number_round_trip(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", json={"jsonrpc": "2.0", "id": 1, "result": "0x64"})

        async with HttpxTransport() as transport:
            client = EthJsonRpcClient(URL, transport)
            assert await client.get_block_number() == 100

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_is_rpc_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=URL)

        async with HttpxTransport() as transport:
            client = EthJsonRpcClient(URL, transport)
            with pytest.raises(RpcError) as exc_info:
                await client.get_block_number()

        assert exc_info.value.error_code == ErrorCode.BACKEND_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_read_timeout_is_timeout(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=URL)

        async with HttpxTransport() as transport:
            client = EthJsonRpcClient(URL, transport)
            with pytest.raises(RpcError) as exc_info:
                await client.get_block_number()

        assert exc_info.value.error_code == ErrorCode.TIMEOUT

    @pytest.mark.asyncio
    async def test_server_error_status_is_rpc_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", status_code=503)

        async with HttpxTransport() as transport:
            client = EthJsonRpcClient(URL, transport)
            with pytest.raises(RpcError) as exc_info:
                await client.get_block_number()

        assert exc_info.value.details["url"] == URL

    @pytest.mark.asyncio
    async def test_non_json_body_is_rpc_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=URL, method="POST", text="<html>bad gateway</html>")

        async with HttpxTransport() as transport:
            client = EthJsonRpcClient(URL, transport)
            with pytest.raises(RpcError):
                await client.get_block_number()
