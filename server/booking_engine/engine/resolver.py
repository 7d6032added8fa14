"""Month availability resolution for a single bookable resource."""

from datetime import date, datetime
from typing import Callable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import settings
from ..core.observability import get_logger
from .calendar import YearMonth, has_started, normalize_slot_time
from .errors import AvailabilityUnavailableError

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def wall_clock() -> datetime:
    """Current time in the storefront timezone."""
    return datetime.now(settings.tzinfo)


class SlotAvailability(BaseModel):
    """Remaining seats for one start time on one date."""

    model_config = ConfigDict(frozen=True)

    time: str
    remaining: int = Field(..., ge=0)


class MonthAvailability(BaseModel):
    """Raw availability payload for one resource and one month."""

    model_config = ConfigDict(frozen=True)

    slots_by_date: dict[date, tuple[SlotAvailability, ...]] = Field(default_factory=dict)
    fully_booked_dates: frozenset[date] = Field(default_factory=frozenset)


class AvailabilityFetcher(Protocol):
    async def get_availability(self, resource_id: str, month: YearMonth) -> MonthAvailability:
        ...


class AvailabilityResolver:
    """
    Fetches and caches month availability, answering date and time queries.

    Only the response for the most recently requested (resource, month) pair
    is applied; anything older that completes afterwards is discarded.
    """

    def __init__(self, fetcher: AvailabilityFetcher, clock: Optional[Clock] = None):
        self._fetcher = fetcher
        self._clock = clock or wall_clock
        self._cache: dict[tuple[str, YearMonth], MonthAvailability] = {}
        self._resource_id: Optional[str] = None
        self._active: Optional[tuple[str, YearMonth]] = None
        self.error: Optional[AvailabilityUnavailableError] = None
        self.loading = False

    @property
    def active_month(self) -> Optional[YearMonth]:
        return self._active[1] if self._active else None

    @property
    def current(self) -> Optional[MonthAvailability]:
        """Payload for the active month, if it has arrived."""
        if self._active is None:
            return None
        return self._cache.get(self._active)

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().date()

    def invalidate(self) -> None:
        """Forget every cached month and the active request."""
        self._cache.clear()
        self._resource_id = None
        self._active = None
        self.error = None
        self.loading = False

    async def load(self, resource_id: str, month: YearMonth) -> Optional[MonthAvailability]:
        """
        Fetch availability for ``month`` and make it the active month.

        Returns:
            MonthAvailability | None: The payload, or None when a newer request
            superseded this one while it was in flight

        Raises:
            AvailabilityUnavailableError: If the fetch for the still-active
            month failed
        """
        if resource_id != self._resource_id:
            self._cache.clear()
            self._resource_id = resource_id

        key = (resource_id, month)
        self._active = key
        self.error = None
        self.loading = True

        try:
            payload = await self._fetcher.get_availability(resource_id, month)
        except AvailabilityUnavailableError as exc:
            if self._active != key:
                logger.debug("Discarding stale availability failure", resource_id=resource_id, month=str(month))
                return None
            self.loading = False
            self.error = exc
            logger.warning(
                "Availability fetch failed",
                resource_id=resource_id,
                month=str(month),
                reason=exc.reason,
            )
            raise

        if self._active != key:
            logger.debug("Discarding stale availability response", resource_id=resource_id, month=str(month))
            return None

        self.loading = False
        self._cache[key] = payload
        logger.debug(
            "Availability loaded",
            resource_id=resource_id,
            month=str(month),
            dates=len(payload.slots_by_date),
            fully_booked=len(payload.fully_booked_dates),
        )
        return payload

    async def retry(self) -> Optional[MonthAvailability]:
        """Re-issue the request for the active (resource, month) pair."""
        if self._active is None:
            raise RuntimeError("No availability request to retry")
        resource_id, month = self._active
        return await self.load(resource_id, month)

    def _payload_for(self, day: date) -> Optional[MonthAvailability]:
        if self._resource_id is None:
            return None
        return self._cache.get((self._resource_id, YearMonth.of(day)))

    def raw_slots(self, day: date) -> tuple[SlotAvailability, ...]:
        payload = self._payload_for(day)
        if payload is None:
            return ()
        return payload.slots_by_date.get(day, ())

    def is_fully_booked(self, day: date) -> bool:
        payload = self._payload_for(day)
        if payload is None:
            return False
        if day in payload.fully_booked_dates:
            return True
        slots = payload.slots_by_date.get(day, ())
        return bool(slots) and all(slot.remaining == 0 for slot in slots)

    def is_date_disabled(self, day: date) -> bool:
        """A date is disabled when it lies before today or is fully booked."""
        return day < self.today() or self.is_fully_booked(day)

    def selectable_times(self, day: date) -> list[str]:
        """
        Start times that can still be booked on ``day``.

        On the current day, slots starting at or before the wall clock are
        excluded. Evaluated on every call so a long-open view never offers an
        elapsed slot.
        """
        if self.is_date_disabled(day):
            return []
        now = self.now()
        times = []
        for slot in self.raw_slots(day):
            if slot.remaining <= 0:
                continue
            if has_started(day, slot.time, now):
                continue
            times.append(normalize_slot_time(slot.time))
        return times

    def is_time_selectable(self, day: date, start_time: Optional[str]) -> bool:
        if not start_time:
            return False
        try:
            wanted = normalize_slot_time(start_time)
        except ValueError:
            return False
        return wanted in self.selectable_times(day)

    def remaining_for(self, day: date, start_time: str) -> Optional[int]:
        """Remaining seats for a slot, or None when the slot is unknown."""
        wanted = normalize_slot_time(start_time)
        for slot in self.raw_slots(day):
            if normalize_slot_time(slot.time) == wanted:
                return slot.remaining
        return None
