"""Shared test doubles and calendar constants."""

import asyncio
from datetime import date, datetime, timezone
from typing import Optional

from booking_engine.engine.calendar import YearMonth
from booking_engine.engine.errors import AvailabilityUnavailableError
from booking_engine.engine.resolver import MonthAvailability, SlotAvailability

# Wednesday 10 September 2025, 12:30 UTC
NOW = datetime(2025, 9, 10, 12, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
SEPTEMBER = YearMonth(2025, 9)
OCTOBER = YearMonth(2025, 10)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeFetcher:
    """
    In-memory availability fetcher.

    Payloads are registered per (resource, month). A month can be made to
    fail, or gated on an event so tests can control completion order.
    """

    def __init__(self):
        self.payloads: dict[tuple[str, YearMonth], MonthAvailability] = {}
        self.failing: set[tuple[str, YearMonth]] = set()
        self.gates: dict[tuple[str, YearMonth], asyncio.Event] = {}
        self.calls: list[tuple[str, YearMonth]] = []

    def set(self, resource_id: str, month: YearMonth, payload: MonthAvailability) -> None:
        self.payloads[(resource_id, month)] = payload

    def fail(self, resource_id: str, month: YearMonth) -> None:
        self.failing.add((resource_id, month))

    def recover(self, resource_id: str, month: YearMonth) -> None:
        self.failing.discard((resource_id, month))

    def gate(self, resource_id: str, month: YearMonth) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[(resource_id, month)] = event
        return event

    async def get_availability(self, resource_id: str, month: YearMonth) -> MonthAvailability:
        key = (resource_id, month)
        self.calls.append(key)
        gate = self.gates.pop(key, None)
        if gate is not None:
            await gate.wait()
        if key in self.failing:
            raise AvailabilityUnavailableError(resource_id, str(month))
        return self.payloads.get(key, MonthAvailability())


def month_availability(
    slots: dict[date, list[tuple[str, int]]],
    fully_booked: Optional[list[date]] = None,
) -> MonthAvailability:
    """Build a payload from ``{date: [(time, remaining), ...]}``."""
    return MonthAvailability(
        slots_by_date={
            day: tuple(SlotAvailability(time=start, remaining=remaining) for start, remaining in entries)
            for day, entries in slots.items()
        },
        fully_booked_dates=frozenset(fully_booked or []),
    )
