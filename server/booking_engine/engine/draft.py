"""Immutable booking draft value."""

from datetime import date
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .pricing import ZERO_BREAKDOWN, PriceBreakdown

MIN_ADULTS = 1
MIN_CHILDREN = 0


class BookingDraft(BaseModel):
    """
    The reservation a customer is composing.

    Every mutation returns a new draft; the party floor and the add-on
    coupling are enforced on construction.
    """

    model_config = ConfigDict(frozen=True)

    draft_id: UUID = Field(default_factory=uuid4)
    selected_date: date
    selected_time: Optional[str] = None
    adults: int = Field(default=MIN_ADULTS, ge=MIN_ADULTS)
    children: int = Field(default=MIN_CHILDREN, ge=MIN_CHILDREN)
    add_on_id: Optional[str] = None
    add_on_time: Optional[str] = None
    breakdown: PriceBreakdown = ZERO_BREAKDOWN

    @model_validator(mode="after")
    def check_add_on_coupling(self) -> "BookingDraft":
        if (self.add_on_id is None) != (self.add_on_time is None):
            raise ValueError("add_on_time must be set exactly when add_on_id is set")
        return self

    @classmethod
    def fresh(cls, today: date) -> "BookingDraft":
        return cls(selected_date=today)

    def replace(self, **changes: Any) -> "BookingDraft":
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return BookingDraft.model_validate(data)

    def with_date(self, day: date) -> "BookingDraft":
        return self.replace(selected_date=day, selected_time=None)

    def with_time(self, start_time: Optional[str]) -> "BookingDraft":
        return self.replace(selected_time=start_time)

    def with_adults(self, adults: int) -> "BookingDraft":
        return self.replace(adults=max(MIN_ADULTS, adults))

    def with_children(self, children: int) -> "BookingDraft":
        return self.replace(children=max(MIN_CHILDREN, children))

    def with_add_on(self, add_on_id: str, add_on_time: str) -> "BookingDraft":
        return self.replace(add_on_id=add_on_id, add_on_time=add_on_time)

    def without_add_on(self) -> "BookingDraft":
        return self.replace(add_on_id=None, add_on_time=None)

    def with_breakdown(self, breakdown: PriceBreakdown) -> "BookingDraft":
        return self.replace(breakdown=breakdown)

    @property
    def party_label(self) -> str:
        """Human readable party summary, e.g. ``2 Adults, 1 Child``."""
        parts = [f"{self.adults} {'Adult' if self.adults == 1 else 'Adults'}"]
        if self.children:
            parts.append(f"{self.children} {'Child' if self.children == 1 else 'Children'}")
        return ", ".join(parts)
