"""Month availability wire schemas."""

from datetime import date
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class SlotRemaining(BaseModel):
    """Remaining capacity of one start time."""

    time: str = Field(..., description="Start time (HH:MM)")
    remaining: int = Field(..., ge=0, description="Seats still bookable")


class MonthAvailabilityResponse(BaseModel):
    """Availability of one resource over one calendar month."""

    model_config = ConfigDict(populate_by_name=True)

    available_slots_by_date: Dict[date, List[SlotRemaining]] = Field(
        default_factory=dict,
        alias="availableSlotsByDate",
        description="Bookable slots keyed by ISO date",
    )
    fully_booked_dates: List[date] = Field(
        default_factory=list,
        alias="fullyBookedDates",
        description="Run days with every slot sold out",
    )
