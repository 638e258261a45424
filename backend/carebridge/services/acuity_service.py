"""
Acuity Scheduling integration.

- AcuitySchedulingClient: REST calls (appointments, availability times)
- AcuityAvailabilityCache: in-process cache of open slots per provider/date
- AcuitySyncManager: refreshes the cache, usually from a background job
  after a webhook says a provider's calendar changed
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo

import httpx
from sqlmodel import Session, select

from carebridge.config import (
    ACUITY_API_KEY,
    ACUITY_AVAILABILITY_CACHE_SECONDS,
    ACUITY_BASE_URL,
    ACUITY_USER_ID,
)
from carebridge.models.appointment import AppointmentType
from carebridge.models.provider import Provider, SchedulingSystemId
from carebridge.webhook_security import verify_acuity_signature

logger = logging.getLogger(__name__)

ACUITY_DATE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class AcuityException(Exception):
    """Raised when the Acuity API call fails"""


def parse_acuity_date_time(value: str, time_zone: str) -> datetime:
    """Parse an Acuity timestamp and return naive wall-clock time in ``time_zone``."""
    parsed = datetime.strptime(value, ACUITY_DATE_TIME_FORMAT)
    return parsed.astimezone(ZoneInfo(time_zone)).replace(tzinfo=None)


class AcuitySchedulingClient:
    def __init__(
        self,
        user_id: str = ACUITY_USER_ID,
        api_key: str = ACUITY_API_KEY,
        base_url: str = ACUITY_BASE_URL,
        timeout: float = 10.0,
    ):
        self.user_id = user_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: Optional[dict] = None):
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(auth=(self.user_id, self.api_key), timeout=self.timeout) as client:
                response = client.get(url, params=params)
        except httpx.HTTPError as e:
            raise AcuityException(f"Acuity request to {path} failed: {e}") from e

        if response.status_code >= 400:
            raise AcuityException(f"Acuity request to {path} failed with HTTP {response.status_code}: {response.text}")
        return response.json()

    def get_appointment(self, acuity_appointment_id: int) -> dict:
        return self._get(f"/appointments/{acuity_appointment_id}")

    def get_availability_times(
        self, appointment_type_id: int, calendar_id: int, for_date: date, time_zone: str
    ) -> List[dict]:
        return self._get(
            "/availability/times",
            params={
                "appointmentTypeID": appointment_type_id,
                "calendarID": calendar_id,
                "date": for_date.isoformat(),
                "timezone": time_zone,
            },
        )

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> bool:
        return verify_acuity_signature(self.api_key, payload, signature or "")


@dataclass
class CachedSlot:
    start_time: datetime
    appointment_type_ids: List[UUID] = field(default_factory=list)


class AcuityAvailabilityCache:
    """Thread-safe cache of Acuity slots keyed by (provider_id, date)."""

    def __init__(self, ttl_seconds: int = ACUITY_AVAILABILITY_CACHE_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[Tuple[UUID, date], Tuple[float, List[CachedSlot]]] = {}
        self._lock = threading.Lock()

    def get(self, provider_id: UUID, for_date: date) -> Optional[List[CachedSlot]]:
        with self._lock:
            entry = self._entries.get((provider_id, for_date))
            if entry is None:
                return None
            stored_at, slots = entry
            if time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[(provider_id, for_date)]
                return None
            return list(slots)

    def put(self, provider_id: UUID, for_date: date, slots: List[CachedSlot]) -> None:
        with self._lock:
            self._entries[(provider_id, for_date)] = (time.monotonic(), list(slots))

    def invalidate(self, provider_id: UUID, for_date: date) -> None:
        with self._lock:
            self._entries.pop((provider_id, for_date), None)
        logger.info(f"Invalidated Acuity availability for provider {provider_id} on {for_date}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class AcuitySyncManager:
    def __init__(
        self,
        client: AcuitySchedulingClient,
        cache: AcuityAvailabilityCache,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.client = client
        self.cache = cache
        self._session_factory = session_factory

    def _new_session(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        from carebridge.database import new_session

        return new_session()

    def fetch_availability(self, session: Session, provider: Provider, for_date: date) -> List[CachedSlot]:
        """Ask Acuity for one day of a provider's open slots and cache them."""
        appointment_types = session.exec(
            select(AppointmentType).where(
                AppointmentType.provider_id == provider.provider_id,
                AppointmentType.deleted == False,  # noqa: E712
                AppointmentType.acuity_appointment_type_id != None,  # noqa: E711
            )
        ).all()

        slots_by_time: Dict[datetime, CachedSlot] = {}
        for appointment_type in appointment_types:
            times = self.client.get_availability_times(
                appointment_type.acuity_appointment_type_id,
                provider.acuity_calendar_id,
                for_date,
                provider.time_zone,
            )
            for entry in times:
                start_time = parse_acuity_date_time(entry["time"], provider.time_zone)
                slot = slots_by_time.setdefault(start_time, CachedSlot(start_time=start_time))
                slot.appointment_type_ids.append(appointment_type.appointment_type_id)

        slots = [slots_by_time[key] for key in sorted(slots_by_time)]
        self.cache.put(provider.provider_id, for_date, slots)
        return slots

    def availability_for(self, session: Session, provider: Provider, for_date: date) -> List[CachedSlot]:
        cached = self.cache.get(provider.provider_id, for_date)
        if cached is not None:
            return cached
        try:
            return self.fetch_availability(session, provider, for_date)
        except AcuityException as e:
            logger.error(f"Unable to load Acuity availability for provider {provider.provider_id} on {for_date}: {e}")
            return []

    def sync_provider_availability(self, provider_id: UUID, for_date: date) -> None:
        """Background entry point: refresh one provider/date in its own session."""
        with self._new_session() as session:
            provider = session.get(Provider, provider_id)
            if provider is None or provider.scheduling_system_id != SchedulingSystemId.ACUITY:
                logger.warning(f"Skipping Acuity sync for non-Acuity provider {provider_id}")
                return
            self.fetch_availability(session, provider, for_date)
            logger.info(f"Synced Acuity availability for provider {provider_id} on {for_date}")

    def sync_all_providers(self, days: int = 14) -> int:
        with self._new_session() as session:
            providers = session.exec(
                select(Provider).where(
                    Provider.scheduling_system_id == SchedulingSystemId.ACUITY,
                    Provider.active == True,  # noqa: E712
                )
            ).all()
            synced = 0
            for provider in providers:
                today = datetime.now(ZoneInfo(provider.time_zone)).date()
                for offset in range(days):
                    try:
                        self.fetch_availability(session, provider, today + timedelta(days=offset))
                    except AcuityException as e:
                        logger.error(f"Acuity sync failed for provider {provider.provider_id}: {e}")
                        break
                synced += 1
        logger.info(f"Synced Acuity availability for {synced} provider(s)")
        return synced


_acuity_client: Optional[AcuitySchedulingClient] = None
_acuity_cache = AcuityAvailabilityCache()
_acuity_sync_manager: Optional[AcuitySyncManager] = None


def get_acuity_client() -> AcuitySchedulingClient:
    global _acuity_client
    if _acuity_client is None:
        _acuity_client = AcuitySchedulingClient()
    return _acuity_client


def get_acuity_availability_cache() -> AcuityAvailabilityCache:
    return _acuity_cache


def get_acuity_sync_manager() -> AcuitySyncManager:
    global _acuity_sync_manager
    if _acuity_sync_manager is None:
        _acuity_sync_manager = AcuitySyncManager(get_acuity_client(), get_acuity_availability_cache())
    return _acuity_sync_manager
