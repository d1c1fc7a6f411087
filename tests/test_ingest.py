"""Tests for the ingest service client."""

from datetime import date, datetime, timezone

import httpx
import pytest

from healthbridge.schemas.payloads import IngestPayload, RawSnapshot, Source
from healthbridge.services.errors import IngestConnectionError, NetworkTimeoutError
from healthbridge.services.ingest import IngestClient
from tests.fakes import FakeIngestServer

PAYLOAD = IngestPayload.build(
    date(2025, 10, 1),
    RawSnapshot.from_records({"Steps": [{"count": 5}]}),
    Source(source_app="fake_provider", device_id="dev", collected_at=datetime(2025, 10, 2, tzinfo=timezone.utc)),
)


def _client_with(handler) -> IngestClient:
    return IngestClient("http://ingest.test/", "k", transport=httpx.MockTransport(handler))


class TestIngestClient:

    @pytest.mark.asyncio
    async def test_posts_wire_payload_with_api_key(self):
        server = FakeIngestServer()
        client = server.client()
        try:
            result = await client.post_daily(PAYLOAD)
        finally:
            await client.close()

        assert result.success
        assert result.status_code == 200
        assert result.response.status == "ok"
        assert result.response.inserted is True

        request = server.requests[0]
        assert request["path"] == "/v1/ingest/daily"
        assert request["headers"]["x-api-key"] == "secret-key"
        assert request["body"]["raw_json"] == '{"Steps":[{"count":5}]}'

    @pytest.mark.asyncio
    async def test_intraday_and_debug_paths(self):
        server = FakeIngestServer()
        client = server.client()
        try:
            await client.post_intraday(PAYLOAD)
            await client.post_debug(PAYLOAD)
        finally:
            await client.close()

        assert [r["path"] for r in server.requests] == ["/v1/ingest/intraday", "/v1/ingest/debug"]

    @pytest.mark.asyncio
    async def test_non_2xx_is_a_failed_result(self):
        server = FakeIngestServer()
        server.status_by_date["2025-10-01"] = 500
        client = server.client()
        try:
            result = await client.post_daily(PAYLOAD)
        finally:
            await client.close()

        assert not result.success
        assert result.status_code == 500
        assert result.error_body == "internal error"
        assert result.response is None

    @pytest.mark.asyncio
    async def test_timeout_is_classified(self):
        server = FakeIngestServer()
        server.error_by_date["2025-10-01"] = httpx.ReadTimeout
        client = server.client()
        try:
            with pytest.raises(NetworkTimeoutError) as exc_info:
                await client.post_daily(PAYLOAD)
        finally:
            await client.close()
        assert exc_info.value.reason == "timeout"

    @pytest.mark.asyncio
    async def test_connection_error_is_classified(self):
        server = FakeIngestServer()
        server.error_by_date["2025-10-01"] = httpx.ConnectError
        client = server.client()
        try:
            with pytest.raises(IngestConnectionError):
                await client.post_daily(PAYLOAD)
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_success_with_unexpected_body(self):
        client = _client_with(lambda request: httpx.Response(201, text="created"))
        try:
            result = await client.post_daily(PAYLOAD)
        finally:
            await client.close()
        assert result.success
        assert result.response is None
