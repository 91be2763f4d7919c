"""Tests for sync/transport.py: aiohttp remote endpoint."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from record_sync.errors import TransportError
from record_sync.sync.protocol import SyncConfig
from record_sync.sync.transport import HttpEndpoint


def _mock_response(status: int, body: Any = None, text: str = "") -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=body)
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=False)
    return mock_response


def _endpoint_with(response: AsyncMock) -> tuple[HttpEndpoint, AsyncMock]:
    mock_session = AsyncMock()
    mock_session.post = MagicMock(return_value=response)
    return HttpEndpoint(session=mock_session), mock_session


CONFIG = SyncConfig(
    endpoint="https://api.example.com/orders",
    headers={"Authorization": "Bearer token"},
    timeout=5.0,
)

# ─────────── Requests ───────────


class TestHttpEndpointRequests:
    """Tests for send_item() and send_batch()."""

    @pytest.mark.asyncio
    async def test_send_item_posts_json(self) -> None:
        endpoint, session = _endpoint_with(_mock_response(200, {"success": True}))

        result = await endpoint.send_item({"id": 1}, CONFIG)

        assert result == {"success": True}
        call = session.post.call_args
        assert call.args[0] == "https://api.example.com/orders"
        assert call.kwargs["json"] == {"id": 1}
        assert call.kwargs["headers"]["Content-Type"] == "application/json"
        assert call.kwargs["headers"]["Authorization"] == "Bearer token"
        assert call.kwargs["timeout"].total == 5.0

    @pytest.mark.asyncio
    async def test_send_batch_wraps_items(self) -> None:
        endpoint, session = _endpoint_with(_mock_response(200, {"results": []}))

        await endpoint.send_batch([{"id": 1}, {"id": 2}], CONFIG)

        assert session.post.call_args.kwargs["json"] == {"items": [{"id": 1}, {"id": 2}]}

    @pytest.mark.asyncio
    async def test_creates_session_lazily(self) -> None:
        response = _mock_response(200, {"success": True})

        with patch("aiohttp.ClientSession") as mock_cls:
            mock_session = AsyncMock()
            mock_session.post = MagicMock(return_value=response)
            mock_cls.return_value = mock_session
            endpoint = HttpEndpoint()
            await endpoint.send_item({"id": 1}, CONFIG)
            await endpoint.close()

        mock_cls.assert_called_once()
        mock_session.close.assert_awaited_once()


# ─────────── Failures ───────────


class TestHttpEndpointFailures:
    """Tests for error mapping to TransportError."""

    @pytest.mark.asyncio
    async def test_raises_on_5xx(self) -> None:
        endpoint, _ = _endpoint_with(_mock_response(500, text="Server error"))

        with pytest.raises(TransportError) as exc_info:
            await endpoint.send_item({"id": 1}, CONFIG)
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_raises_on_4xx(self) -> None:
        endpoint, _ = _endpoint_with(_mock_response(409, text="Conflict"))

        with pytest.raises(TransportError) as exc_info:
            await endpoint.send_batch([{"id": 1}], CONFIG)
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_wraps_client_error(self) -> None:
        mock_session = AsyncMock()
        mock_session.post = MagicMock(side_effect=aiohttp.ClientError("connection failed"))
        endpoint = HttpEndpoint(session=mock_session)

        with pytest.raises(TransportError, match="Connection error"):
            await endpoint.send_item({"id": 1}, CONFIG)

    @pytest.mark.asyncio
    async def test_wraps_timeout(self) -> None:
        mock_session = AsyncMock()
        mock_session.post = MagicMock(side_effect=asyncio.TimeoutError())
        endpoint = HttpEndpoint(session=mock_session)

        with pytest.raises(TransportError, match="timed out"):
            await endpoint.send_item({"id": 1}, CONFIG)

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self) -> None:
        mock_session = AsyncMock()
        endpoint = HttpEndpoint(session=mock_session)

        await endpoint.close()

        mock_session.close.assert_not_awaited()
