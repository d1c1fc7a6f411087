#!/usr/bin/env python3
"""
Capture yesterday's provider snapshot and save it as a fixture.
Run this with real credentials to see what a day's raw capture and hash look like.
"""

import asyncio
import json
from datetime import timedelta
from pathlib import Path

from healthbridge.core.config import get_settings
from healthbridge.core.database import init_db
from healthbridge.core.services import build_services
from healthbridge.services.hasher import compute_hash
from healthbridge.services.sync import day_bounds


async def main():
    settings = get_settings()
    services = build_services(settings)
    await init_db(services.engine)

    sync = services.sync
    yesterday = sync.today() - timedelta(days=1)
    start, end = day_bounds(yesterday, sync.tz)
    print(f"Capturing {services.source.source_app} data for {yesterday}...")

    payload = await sync.build_payload(yesterday, start, end)

    fixtures_dir = Path(__file__).parent.parent / "tests" / "fixtures"
    fixtures_dir.mkdir(parents=True, exist_ok=True)

    filename = fixtures_dir / f"snapshot_{yesterday.isoformat()}.json"
    with open(filename, "w") as f:
        json.dump(payload.snapshot.records(), f, indent=2, default=str)

    for record_type, records in payload.snapshot.records().items():
        print(f"  {record_type}: {len(records)} records")
    for failure in payload.snapshot.failures:
        print(f"  {failure.record_type}: FAILED ({failure.reason})")

    print(f"\nHash: {compute_hash(payload)}")
    print(f"Saved snapshot to {filename}")

    await services.aclose()


if __name__ == "__main__":
    asyncio.run(main())
