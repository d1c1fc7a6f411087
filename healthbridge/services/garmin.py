import asyncio
import os
import logging
from datetime import datetime
from typing import Any, Iterable, Optional
from garminconnect import Garmin, GarminConnectAuthenticationError, GarminConnectTooManyRequestsError, GarminConnectConnectionError

from healthbridge.services.errors import ProviderQuotaExceededError, ProviderTransientError
from healthbridge.services.health_source import HealthDataSource

logger = logging.getLogger(__name__)

# Record type -> Garmin Connect call for a single YYYY-MM-DD date
GARMIN_READERS = {
    "Steps": lambda client, d: client.get_steps_data(d),
    "SleepSession": lambda client, d: client.get_sleep_data(d),
    "HeartRate": lambda client, d: client.get_heart_rates(d),
    "HeartRateVariability": lambda client, d: client.get_hrv_data(d),
    "BodyBattery": lambda client, d: client.get_body_battery(d, d),
    "Stress": lambda client, d: client.get_all_day_stress(d),
    "OxygenSaturation": lambda client, d: client.get_spo2_data(d),
    "RespiratoryRate": lambda client, d: client.get_respiration_data(d),
    "BodyComposition": lambda client, d: client.get_body_composition(d, d),
    "ExerciseSession": lambda client, d: client.get_activities_by_date(d, d),
}


class GarminNotAuthorizedError(Exception):
    """Raised when no valid Garmin tokens are available for a non-interactive login."""
    pass


def _as_records(response: Any) -> list[Any]:
    """Normalize a Garmin response into a list of records."""
    if not response:
        return []
    if isinstance(response, list):
        return response
    return [response]


class GarminHealthSource(HealthDataSource):
    """Garmin Connect binding of the health data provider.

    Garmin endpoints are day-scoped, so a capture reads the local date on
    which ``start`` falls. A saved-token login stands in for the permission
    grant.
    """

    source_app = "garmin_connect"
    record_types = tuple(GARMIN_READERS)

    def __init__(self, email: str, password: str, token_dir: str, **pacing):
        super().__init__(**pacing)
        self.email = email
        self.password = password
        self.token_dir = token_dir
        self.client: Optional[Garmin] = None

    async def connect(self) -> None:
        """Connect to Garmin using saved tokens."""
        os.makedirs(self.token_dir, exist_ok=True)

        def _connect():
            try:
                client = Garmin(self.email, self.password)
                client.login(self.token_dir)
                logger.info("Logged in using saved tokens")
                return client
            except FileNotFoundError:
                logger.info("No saved tokens found")
            except Exception as token_err:
                logger.info(f"Saved tokens invalid: {token_err}")

            raise GarminNotAuthorizedError(
                f"No valid Garmin tokens found in {self.token_dir}"
            )

        try:
            self.client = await asyncio.to_thread(_connect)
            logger.info("Connected to Garmin successfully")
        except GarminConnectAuthenticationError as e:
            logger.error(f"Garmin authentication failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Garmin connection error: {e}")
            raise

    async def granted_permissions(self) -> set[str]:
        if self.client is None:
            try:
                await self.connect()
            except Exception:
                return set()
        return self.permissions()

    async def request_permission(self, capabilities: Optional[Iterable[str]] = None) -> bool:
        self.client = None
        try:
            await self.connect()
        except Exception:
            return False
        return await self.has_permission(capabilities)

    async def read_records(self, record_type: str, start: datetime, end: datetime) -> list[Any]:
        if self.client is None:
            await self.connect()

        reader = GARMIN_READERS[record_type]
        date_str = start.date().isoformat()

        for attempt in range(2):
            try:
                response = await asyncio.to_thread(reader, self.client, date_str)
                return _as_records(response)
            except GarminConnectTooManyRequestsError as e:
                raise ProviderQuotaExceededError(str(e)) from e
            except GarminConnectAuthenticationError:
                if attempt == 0:
                    logger.warning("Authentication error, attempting re-login")
                    await self.connect()
                    continue
                raise
            except GarminConnectConnectionError as e:
                raise ProviderTransientError(str(e)) from e
        return []
