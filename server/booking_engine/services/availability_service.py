"""Month availability derived from slot templates and existing bookings."""

import logging
from collections import defaultdict
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.observability import metrics_collector
from ..engine.calendar import YearMonth, normalize_slot_time
from ..models.booking import Booking, BookingStatus
from ..models.tour import Tour
from ..schemas.availability import MonthAvailabilityResponse, SlotRemaining
from .resource_service import ResourceService

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service answering month availability queries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.resource_service = ResourceService(db)

    async def _booked_guests(self, tour_id: UUID, month: YearMonth) -> dict[date, dict[str, int]]:
        """Seats taken per date and start time, infants included."""
        stmt = (
            select(
                Booking.booking_date,
                Booking.booking_time,
                func.sum(Booking.adult_guests + Booking.child_guests + Booking.infant_guests),
            )
            .where(
                Booking.tour_id == tour_id,
                Booking.booking_date >= month.first_day,
                Booking.booking_date <= month.last_day,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            .group_by(Booking.booking_date, Booking.booking_time)
        )
        result = await self.db.execute(stmt)

        booked: dict[date, dict[str, int]] = defaultdict(dict)
        for booking_date, booking_time, guests in result.all():
            start_time = normalize_slot_time(booking_time)
            booked[booking_date][start_time] = booked[booking_date].get(start_time, 0) + int(guests or 0)
        return booked

    async def get_month_availability(self, tour_id: UUID, month: YearMonth) -> MonthAvailabilityResponse:
        """
        Compute bookable slots for every run day of ``month``.

        Only slots with seats left are listed. A run day where no slot has a
        seat left is reported as fully booked.

        Raises:
            NotFoundError: If the resource does not exist
        """
        tour: Tour = await self.resource_service.get_resource(tour_id)
        booked = await self._booked_guests(tour.id, month)
        run_days = set(tour.available_days or [])

        slots_by_date: dict[date, list[SlotRemaining]] = {}
        fully_booked: list[date] = []

        for day in month.days():
            if day.weekday() not in run_days:
                continue

            taken = booked.get(day, {})
            open_slots = []
            for slot in tour.slots:
                remaining = slot.capacity - taken.get(normalize_slot_time(slot.start_time), 0)
                if remaining > 0:
                    open_slots.append(SlotRemaining(time=normalize_slot_time(slot.start_time), remaining=remaining))

            if open_slots:
                slots_by_date[day] = open_slots
            else:
                fully_booked.append(day)

        metrics_collector.record_availability_query(str(tour.id))
        logger.debug(
            "Month availability computed",
            extra={
                "resource_id": str(tour.id),
                "month": str(month),
                "open_dates": len(slots_by_date),
                "fully_booked_dates": len(fully_booked),
            }
        )
        return MonthAvailabilityResponse(
            available_slots_by_date=slots_by_date,
            fully_booked_dates=fully_booked,
        )
