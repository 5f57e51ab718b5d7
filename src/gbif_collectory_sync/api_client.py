"""Shared async JSON-over-HTTP plumbing for the GBIF and collectory clients."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

import httpx

from .errors import NotFoundError, TransportError, UpstreamError
from .logging_utils import get_logger

logger = get_logger(__name__)


class JsonApiClient:
    """Async HTTP client that maps httpx failures onto the sync error taxonomy.

    Requests are never retried; a failed call surfaces immediately so the
    caller can attribute it to the dataset key being processed.
    """

    user_agent = "gbif-collectory-sync/1.0"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.last_status_code: Optional[int] = None
        self._headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        self._headers.update(headers or {})

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        not_found_is_missing: bool = False,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("HTTP client is not ready")

        url = f"{self._base_url}/{path.lstrip('/')}"
        logger.debug("%s %s", method, url)
        self.last_status_code = None
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers,
                params=dict(params or {}),
                json=json,
            )
            self.last_status_code = response.status_code
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            preview = exc.response.text[:500]
            if status_code == 404 and not_found_is_missing:
                logger.debug("Resource not found at %s (preview: %s)", url, preview)
                raise NotFoundError(f"No resource at {url}") from exc
            logger.error(
                "HTTP %s for %s %s; response preview: %s",
                status_code,
                method,
                url,
                preview,
            )
            message = f"HTTP {status_code} for {method} {url}"
            if preview:
                message += f"; response preview: {preview}"
            raise UpstreamError(message, status_code=status_code, url=url) from exc
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timed out on {method} {url}: {exc}") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"Network error for {method} {url}: {exc}") from exc

        return response

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug(
                "Non-JSON body from %s: %s", response.request.url, response.text[:200]
            )
            return None
