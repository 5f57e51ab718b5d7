"""Client for the collectory ``ws/dataResource`` web service."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .api_client import JsonApiClient
from .errors import MalformedInputError
from .logging_utils import get_logger
from .models import DataResource, DataResourcePayload

logger = get_logger(__name__)

RESOURCE_PATH = "ws/dataResource"


class CollectoryClient(JsonApiClient):
    """Looks up, creates and updates collectory data resources."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Authorization": api_key} if api_key else None
        super().__init__(base_url, timeout, headers=headers, transport=transport)

    async def __aenter__(self) -> "CollectoryClient":
        await super().__aenter__()
        return self

    async def lookup(self, key: str) -> list[DataResource]:
        """Return every data resource whose guid equals ``key``."""
        response = await self._request("GET", RESOURCE_PATH, params={"guid": key})
        logger.debug("GET Data Resource | %s | %s", key, response.status_code)

        payload = self._json_or_none(response)
        if payload is None:
            return []
        if isinstance(payload, Mapping):
            # A single match is occasionally returned unwrapped.
            payload = [payload]
        if not isinstance(payload, list):
            raise MalformedInputError(
                f"Data resource lookup for {key} returned unexpected payload"
            )
        try:
            return [DataResource.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise MalformedInputError(
                f"Data resource lookup for {key} failed validation: {exc}"
            ) from exc

    async def create(self, payload: DataResourcePayload) -> DataResource:
        response = await self._request(
            "POST", RESOURCE_PATH, json=payload.model_dump(mode="json")
        )
        logger.debug("POST Data Resource | %s | %s", payload.guid, response.status_code)
        return self._resource_from_response(response, payload)

    async def update(self, uid: str, payload: DataResourcePayload) -> DataResource:
        response = await self._request(
            "PUT", f"{RESOURCE_PATH}/{uid}", json=payload.model_dump(mode="json")
        )
        logger.debug("PUT Data Resource | %s | %s", payload.guid, response.status_code)
        return self._resource_from_response(response, payload, default_uid=uid)

    def _resource_from_response(
        self,
        response: httpx.Response,
        payload: DataResourcePayload,
        default_uid: Optional[str] = None,
    ) -> DataResource:
        body = self._json_or_none(response)
        data: dict[str, Any] = payload.model_dump(mode="json")
        if isinstance(body, Mapping):
            data.update(body)
        if not data.get("uid"):
            data["uid"] = self._uid_from_location(response.headers.get("Location"))
        if not data.get("uid"):
            data["uid"] = default_uid
        try:
            return DataResource.model_validate(data)
        except ValidationError as exc:
            # The write is already durable; keep the uid and drop the odd body.
            logger.warning(
                "Unexpected data resource body for %s (preview: %s): %s",
                payload.guid,
                response.text[:500],
                exc,
            )
            uid = data.get("uid")
            return DataResource(
                uid=uid if isinstance(uid, str) else default_uid, guid=payload.guid
            )

    @staticmethod
    def _uid_from_location(location: Optional[str]) -> Optional[str]:
        if not location:
            return None
        uid = location.rstrip("/").rsplit("/", 1)[-1]
        return uid or None
