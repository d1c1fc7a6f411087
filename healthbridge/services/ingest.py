"""Ingest service API client."""

import logging
from dataclasses import dataclass
from typing import Optional
import httpx

from healthbridge.schemas.payloads import IngestPayload, IngestResponse, encode_payload
from healthbridge.services.errors import IngestConnectionError, NetworkTimeoutError

logger = logging.getLogger(__name__)

DAILY_PATH = "/v1/ingest/daily"
INTRADAY_PATH = "/v1/ingest/intraday"
DEBUG_PATH = "/v1/ingest/debug"


@dataclass
class IngestResult:
    """Outcome of one POST to the ingest service."""
    status_code: int
    success: bool
    error_body: Optional[str] = None
    response: Optional[IngestResponse] = None


class IngestClient:
    """Async client for the ingest service.

    Every request carries the static ``X-API-Key`` header. Timeouts and
    connection failures are raised as NetworkTimeoutError /
    IngestConnectionError; any HTTP answer comes back as an IngestResult.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
                transport=self.transport,
            )
        return self.client

    async def close(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    def _parse_response(self, response: httpx.Response) -> Optional[IngestResponse]:
        """Parse the JSON body, returning None when it is not an IngestResponse."""
        if not response.text:
            return None
        try:
            return IngestResponse.model_validate(response.json())
        except Exception as e:
            logger.debug(f"Unparseable ingest response: {e}, body: {response.text[:200]}")
            return None

    async def _post(self, path: str, payload: IngestPayload) -> IngestResult:
        client = await self._get_client()
        try:
            response = await client.post(path, json=encode_payload(payload))
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout posting {payload.date_key} to {path}: {e}")
            raise NetworkTimeoutError(str(e) or "timeout") from e
        except httpx.TransportError as e:
            logger.warning(f"Connection error posting {payload.date_key} to {path}: {e}")
            raise IngestConnectionError(str(e) or "connection error") from e

        if response.is_success:
            logger.info(f"Posted {payload.date_key} to {path}: HTTP {response.status_code}")
            return IngestResult(
                status_code=response.status_code,
                success=True,
                response=self._parse_response(response),
            )

        logger.error(f"Ingest rejected {payload.date_key} at {path}: HTTP {response.status_code}: {response.text[:200]}")
        return IngestResult(
            status_code=response.status_code,
            success=False,
            error_body=response.text or None,
        )

    async def post_daily(self, payload: IngestPayload) -> IngestResult:
        return await self._post(DAILY_PATH, payload)

    async def post_intraday(self, payload: IngestPayload) -> IngestResult:
        return await self._post(INTRADAY_PATH, payload)

    async def post_debug(self, payload: IngestPayload) -> IngestResult:
        return await self._post(DEBUG_PATH, payload)
