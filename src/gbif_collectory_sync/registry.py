"""Client for the GBIF registry dataset endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional

import httpx
from pydantic import ValidationError

from .api_client import JsonApiClient
from .errors import MalformedInputError
from .logging_utils import get_logger
from .models import GbifDataset

logger = get_logger(__name__)


class GbifRegistryClient(JsonApiClient):
    """Fetches canonical dataset metadata from ``{base}/v1/dataset/{key}``."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url, timeout, transport=transport)

    async def __aenter__(self) -> "GbifRegistryClient":
        await super().__aenter__()
        return self

    async def fetch(self, key: str) -> GbifDataset:
        response = await self._request(
            "GET", f"v1/dataset/{key}", not_found_is_missing=True
        )
        logger.debug("GBIF Dataset | %s | %s", key, response.status_code)

        payload = self._json_or_none(response)
        if not isinstance(payload, Mapping):
            raise MalformedInputError(f"GBIF dataset {key} returned unexpected payload")
        try:
            return GbifDataset.model_validate(payload)
        except ValidationError as exc:
            raise MalformedInputError(
                f"GBIF dataset {key} failed validation: {exc}"
            ) from exc
