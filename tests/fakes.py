"""Test doubles for the provider, the ingest service and the clock."""

import json
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import httpx

from healthbridge.services.health_source import HealthDataSource
from healthbridge.services.ingest import IngestClient

TZ_NAME = "Europe/London"
TZ = ZoneInfo(TZ_NAME)
# 2025-10-05 is "today" in every worker test (BST, UTC+1)
NOW = datetime(2025, 10, 5, 14, 30, tzinfo=TZ)


class FakeHealthSource(HealthDataSource):
    """In-memory provider: ``data[date][record_type] -> records``."""

    source_app = "fake_provider"
    record_types = ("Steps", "SleepSession", "HeartRate", "ExerciseSession")

    def __init__(self, data=None, granted=True):
        super().__init__(request_delay=0, quota_pause=0, max_quota_pause=0)
        self.data = data or {}
        self.errors = {}
        self.granted = granted
        self.calls = []

    async def granted_permissions(self) -> set[str]:
        return self.permissions() if self.granted else set()

    async def request_permission(self, capabilities=None) -> bool:
        self.granted = True
        return True

    async def read_records(self, record_type, start, end):
        self.calls.append((record_type, start, end))
        if record_type in self.errors:
            raise self.errors[record_type]
        return list(self.data.get(start.date().isoformat(), {}).get(record_type, []))


class FakeIngestServer:
    """Stands in for the ingest service behind an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.status_by_date = {}
        self.error_by_date = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append({"path": request.url.path, "body": body, "headers": request.headers})

        if body["date"] in self.error_by_date:
            raise self.error_by_date[body["date"]](f"simulated failure for {body['date']}", request=request)

        status = self.status_by_date.get(body["date"], 200)
        if status >= 400:
            return httpx.Response(status, text="internal error")
        return httpx.Response(status, json={"status": "ok", "inserted": True, "id": f"row-{len(self.requests)}"})

    def client(self) -> IngestClient:
        return IngestClient("http://ingest.test", "secret-key", transport=httpx.MockTransport(self.handler))

    def dates_posted(self, path=None) -> list[str]:
        return [r["body"]["date"] for r in self.requests if path is None or r["path"] == path]


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def day_data(steps: int = 1000, hr: int = 60) -> dict:
    """A day with a steps record and a heart rate record."""
    return {
        "Steps": [{"count": steps}],
        "HeartRate": [{"bpm": hr}],
    }

