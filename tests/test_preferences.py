"""Tests for local key/value preferences."""

import asyncio
import uuid
from datetime import datetime

import pytest

from healthbridge.services.preferences import PreferencesStore


class TestDeviceId:

    @pytest.mark.asyncio
    async def test_generated_once_and_persisted(self, preferences, session_maker):
        first = await preferences.get_device_id()
        second = await PreferencesStore(session_maker).get_device_id()

        assert first == second
        uuid.UUID(first)

    @pytest.mark.asyncio
    async def test_concurrent_first_use_agrees(self, preferences):
        ids = await asyncio.gather(*[preferences.get_device_id() for _ in range(3)])
        assert len(set(ids)) == 1


class TestLastIntradayRun:

    @pytest.mark.asyncio
    async def test_absent_until_set(self, preferences):
        assert await preferences.get_last_intraday_run() is None

    @pytest.mark.asyncio
    async def test_round_trip(self, preferences):
        when = datetime(2025, 10, 5, 13, 30)
        await preferences.set_last_intraday_run(when)
        await preferences.set_last_intraday_run(when.replace(minute=45))
        assert await preferences.get_last_intraday_run() == when.replace(minute=45)
