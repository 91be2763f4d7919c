"""Remote endpoint collaborators used by the delivery strategies."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import aiohttp

from record_sync.errors import TransportError
from record_sync.sync.protocol import SyncConfig


class RemoteEndpoint(ABC):
    """
    Abstract remote authority.

    Single-item delivery sends ``{...item fields, metadata}`` and expects
    ``{"success": bool, "item": {...}}`` or the (possibly resolved) item
    directly. Batch delivery sends ``{"items": [...]}`` and expects
    ``{"results": [{"success", "item_id", "error"?, "item"?}, ...]}``.

    Implementations raise :class:`TransportError` for any non-2xx status or
    network failure.
    """

    @abstractmethod
    async def send_item(self, item: dict[str, Any], config: SyncConfig) -> Any:
        ...

    @abstractmethod
    async def send_batch(self, items: list[dict[str, Any]], config: SyncConfig) -> Any:
        ...

    async def close(self) -> None:  # noqa: B027
        """Release network resources. No-op by default."""


class HttpEndpoint(RemoteEndpoint):
    """
    aiohttp-based endpoint POSTing JSON to ``config.endpoint``.

    Usage:
        async with HttpEndpoint() as endpoint:
            coordinator = SyncCoordinator(collection, endpoint=endpoint)
            await coordinator.enable(config)
    """

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> HttpEndpoint:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def send_item(self, item: dict[str, Any], config: SyncConfig) -> Any:
        return await self._post(config, item)

    async def send_batch(self, items: list[dict[str, Any]], config: SyncConfig) -> Any:
        return await self._post(config, {"items": items})

    async def _post(self, config: SyncConfig, payload: Any) -> Any:
        if self._session is None:
            self._session = aiohttp.ClientSession()

        headers = {"Content-Type": "application/json", **config.headers}
        try:
            async with self._session.post(
                config.endpoint,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=config.timeout),
            ) as response:
                if not 200 <= response.status < 300:
                    text = await response.text()
                    raise TransportError(
                        f"Sync failed with status {response.status}: {text}",
                        status_code=response.status,
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise TransportError(f"Connection error: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError("Request timed out") from e
