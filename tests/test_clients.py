import json
import logging

import httpx
import pytest

from fakes import FakeRegistry
from payloads import gbif_payload
from gbif_collectory_sync.catalog import CollectoryClient
from gbif_collectory_sync.errors import (MalformedInputError, NotFoundError,
                                         TransportError, UpstreamError)
from gbif_collectory_sync.mapping import map_dataset
from gbif_collectory_sync.models import GbifDataset, Outcome
from gbif_collectory_sync.registry import GbifRegistryClient
from gbif_collectory_sync.sync import run_sync

GBIF = "https://api.gbif.test"
COLLECTORY = "https://collectory.test/"


def registry_with(handler) -> GbifRegistryClient:
    return GbifRegistryClient(GBIF, timeout=5.0, transport=httpx.MockTransport(handler))


def collectory_with(handler, api_key=None) -> CollectoryClient:
    return CollectoryClient(
        COLLECTORY, timeout=5.0, api_key=api_key, transport=httpx.MockTransport(handler)
    )


def sample_payload():
    return map_dataset(GbifDataset.model_validate(gbif_payload("abc123")))


class TestGbifRegistryClient:
    @pytest.mark.asyncio
    async def test_fetches_and_parses_dataset(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=gbif_payload("abc123", "CHECKLIST"))

        async with registry_with(handler) as registry:
            dataset = await registry.fetch("abc123")
            assert registry.last_status_code == 200

        assert dataset.key == "abc123"
        assert dataset.type == "CHECKLIST"
        assert dataset.contacts[0].city == "Burlington"
        assert str(seen[0].url) == "https://api.gbif.test/v1/dataset/abc123"
        assert seen[0].method == "GET"

    @pytest.mark.asyncio
    async def test_404_is_not_found(self):
        async with registry_with(lambda request: httpx.Response(404, text="nope")) as registry:
            with pytest.raises(NotFoundError):
                await registry.fetch("missing")
            assert registry.last_status_code == 404

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_error_with_status(self):
        async with registry_with(lambda request: httpx.Response(503, text="busy")) as registry:
            with pytest.raises(UpstreamError) as excinfo:
                await registry.fetch("abc123")

        assert excinfo.value.status_code == 503
        assert excinfo.value.url == "https://api.gbif.test/v1/dataset/abc123"

    @pytest.mark.asyncio
    async def test_connection_failure_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        async with registry_with(handler) as registry:
            with pytest.raises(TransportError, match="connection refused"):
                await registry.fetch("abc123")

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow")

        async with registry_with(handler) as registry:
            with pytest.raises(TransportError, match="Timed out"):
                await registry.fetch("abc123")

    @pytest.mark.asyncio
    async def test_non_object_payload_is_malformed(self):
        async with registry_with(lambda request: httpx.Response(200, json=[1, 2])) as registry:
            with pytest.raises(MalformedInputError):
                await registry.fetch("abc123")

    @pytest.mark.asyncio
    async def test_client_must_be_opened(self):
        with pytest.raises(RuntimeError, match="not ready"):
            await registry_with(lambda request: httpx.Response(200)).fetch("abc123")


class TestCollectoryClient:
    @pytest.mark.asyncio
    async def test_lookup_queries_by_guid(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"uid": "dr42", "name": "Survey"}])

        async with collectory_with(handler) as catalog:
            matches = await catalog.lookup("abc123")

        assert [match.uid for match in matches] == ["dr42"]
        assert seen[0].url.path == "/ws/dataResource"
        assert seen[0].url.params["guid"] == "abc123"

    @pytest.mark.asyncio
    async def test_lookup_returns_every_match(self):
        body = [{"uid": "dr1"}, {"uid": "dr2"}]
        async with collectory_with(lambda request: httpx.Response(200, json=body)) as catalog:
            matches = await catalog.lookup("abc123")
        assert len(matches) == 2

    @pytest.mark.asyncio
    async def test_lookup_with_empty_body_returns_no_matches(self):
        async with collectory_with(lambda request: httpx.Response(200, json=[])) as catalog:
            assert await catalog.lookup("abc123") == []

    @pytest.mark.asyncio
    async def test_lookup_error_is_upstream_error(self):
        async with collectory_with(lambda request: httpx.Response(500)) as catalog:
            with pytest.raises(UpstreamError) as excinfo:
                await catalog.lookup("abc123")
        assert excinfo.value.status_code == 500

    @pytest.mark.asyncio
    async def test_create_posts_payload_and_reads_uid(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"uid": "dr7"})

        payload = sample_payload()
        async with collectory_with(handler, api_key="secret") as catalog:
            resource = await catalog.create(payload)
            assert catalog.last_status_code == 201

        assert resource.uid == "dr7"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/ws/dataResource"
        assert seen[0].headers["Authorization"] == "secret"
        body = json.loads(seen[0].content)
        assert body["guid"] == "abc123"
        assert body["networkMembership"] is None
        assert "uid" not in body

    @pytest.mark.asyncio
    async def test_create_reads_uid_from_location_header(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                201, headers={"Location": "https://collectory.test/ws/dataResource/dr9"}
            )

        async with collectory_with(handler) as catalog:
            resource = await catalog.create(sample_payload())

        assert resource.uid == "dr9"
        assert resource.guid == "abc123"

    @pytest.mark.asyncio
    async def test_update_puts_to_uid(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="")

        async with collectory_with(handler) as catalog:
            resource = await catalog.update("dr42", sample_payload())

        assert resource.uid == "dr42"
        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/ws/dataResource/dr42"
        assert "Authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_rejected_update_is_upstream_error(self):
        async with collectory_with(lambda request: httpx.Response(400, text="bad field")) as catalog:
            with pytest.raises(UpstreamError, match="bad field") as excinfo:
                await catalog.update("dr42", sample_payload())
        assert excinfo.value.status_code == 400

    @pytest.mark.asyncio
    async def test_create_with_unexpected_body_keeps_uid(self):
        body = {"uid": "dr1", "contentTypes": '["gbif import"]'}
        async with collectory_with(lambda request: httpx.Response(201, json=body)) as catalog:
            resource = await catalog.create(sample_payload())

        assert resource.uid == "dr1"
        assert resource.guid == "abc123"

    @pytest.mark.asyncio
    async def test_update_with_unexpected_body_keeps_requested_uid(self):
        body = {"uid": 42, "contentTypes": "gbif import"}
        async with collectory_with(lambda request: httpx.Response(200, json=body)) as catalog:
            resource = await catalog.update("dr42", sample_payload())

        assert resource.uid == "dr42"


@pytest.mark.asyncio
async def test_unexpected_write_body_does_not_abort_batch(outcome_log):
    def collectory(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[])
        guid = json.loads(request.content)["guid"]
        return httpx.Response(201, json={"uid": f"dr-{guid}", "contentTypes": '["gbif import"]'})

    registry = FakeRegistry({key: gbif_payload(key) for key in ("k1", "k2")})
    async with collectory_with(collectory) as catalog:
        report = await run_sync(["k1", "k2"], registry, catalog, outcome_log)

    assert [item.outcome for item in report.outcomes] == [Outcome.CREATED, Outcome.CREATED]
    assert [item.uid for item in report.outcomes] == ["dr-k1", "dr-k2"]


@pytest.mark.asyncio
async def test_clients_leave_status_lines_to_the_outcome_log(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.gbif.test":
            return httpx.Response(200, json=gbif_payload("abc123"))
        return httpx.Response(200, json=[])

    caplog.set_level(logging.INFO, logger="gbif_collectory_sync")
    async with registry_with(handler) as registry, collectory_with(handler) as catalog:
        await registry.fetch("abc123")
        await catalog.lookup("abc123")

    assert [record for record in caplog.records if record.levelno >= logging.INFO] == []
