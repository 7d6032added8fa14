"""Resource (tour) read schemas shared by the API and the booking engine."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..engine.calendar import normalize_slot_time


class SlotTemplate(BaseModel):
    """Recurring start time and its seat capacity."""

    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="Start time (HH:MM, 24h)")
    capacity: int = Field(..., ge=0, description="Seats per start time and date")

    @field_validator("time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        return normalize_slot_time(v)


class BookingOption(BaseModel):
    """Fare variant of a resource."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Variant ID")
    option_type: str = Field(..., description="Variant type, e.g. private or shared")
    label: str = Field(..., description="Display label")
    fare: Decimal = Field(..., ge=0, description="Adult fare for this variant")
    list_price: Optional[Decimal] = Field(None, ge=0, description="Undiscounted price")
    duration: Optional[str] = Field(None, description="Human readable duration")


class Resource(BaseModel):
    """Bookable resource as seen by the booking flows."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique resource ID")
    title: str = Field(..., description="Display title")
    slug: str = Field(..., description="URL-friendly slug")
    fare: Decimal = Field(..., ge=0, description="Flat discounted adult fare")
    list_price: Optional[Decimal] = Field(None, ge=0, description="Undiscounted price")
    currency: str = Field("USD", min_length=3, max_length=3, description="ISO 4217 currency code")
    available_days: List[int] = Field(default_factory=list, description="Weekdays the tour runs, 0=Monday")
    slots: List[SlotTemplate] = Field(default_factory=list, description="Start times offered each day")
    booking_options: List[BookingOption] = Field(default_factory=list, description="Fare variants")

    @computed_field
    @property
    def effective_fare(self) -> Decimal:
        """Cheapest variant fare when variants exist, otherwise the flat fare."""
        if self.booking_options:
            return min(option.fare for option in self.booking_options)
        return self.fare

    def option(self, option_id: Optional[str]) -> Optional[BookingOption]:
        if option_id is None:
            return None
        for option in self.booking_options:
            if option.id == option_id:
                return option
        return None

    def fare_for(self, option_id: Optional[str]) -> Decimal:
        """Adult fare for a chosen variant, falling back to the effective fare."""
        option = self.option(option_id)
        return option.fare if option else self.effective_fare

    @classmethod
    def from_model(cls, tour) -> "Resource":
        """Build the schema from a ``Tour`` row with slots and options loaded."""
        return cls(
            id=str(tour.id),
            title=tour.title,
            slug=tour.slug,
            fare=tour.discount_price,
            list_price=tour.original_price,
            currency=tour.currency,
            available_days=list(tour.available_days or []),
            slots=[SlotTemplate(time=slot.start_time, capacity=slot.capacity) for slot in tour.slots],
            booking_options=[
                BookingOption(
                    id=str(option.id),
                    option_type=option.option_type,
                    label=option.label,
                    fare=option.price,
                    list_price=option.original_price,
                    duration=option.duration,
                )
                for option in tour.booking_options
            ],
        )


class ResourceList(BaseModel):
    """Resource listing response."""

    items: List[Resource] = Field(default_factory=list, description="Matching resources")
    count: int = Field(..., ge=0, description="Number of items returned")


class BookingOptionInput(BaseModel):
    """Fare variant supplied when registering a resource; the id is assigned by the store."""

    option_type: str = Field(..., min_length=1, max_length=64, description="Variant type")
    label: str = Field(..., min_length=1, max_length=255, description="Display label")
    fare: Decimal = Field(..., ge=0, description="Adult fare for this variant")
    list_price: Optional[Decimal] = Field(None, ge=0, description="Undiscounted price")
    duration: Optional[str] = Field(None, max_length=64, description="Human readable duration")


class CreateResourceRequest(BaseModel):
    """Request schema for registering a resource."""

    title: str = Field(..., min_length=1, max_length=255, description="Display title")
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$", description="URL-friendly slug")
    fare: Decimal = Field(..., ge=0, description="Flat discounted adult fare")
    list_price: Optional[Decimal] = Field(None, ge=0, description="Undiscounted price")
    currency: str = Field("USD", min_length=3, max_length=3, pattern=r"^[A-Z]{3}$", description="ISO 4217 currency code")
    available_days: List[int] = Field(default_factory=lambda: list(range(7)), description="Weekdays, 0=Monday")
    slots: List[SlotTemplate] = Field(default_factory=list, description="Start times offered each day")
    booking_options: List[BookingOptionInput] = Field(default_factory=list, description="Fare variants")

    @field_validator("available_days")
    @classmethod
    def validate_days(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("available_days must contain weekday numbers 0-6")
        return sorted(set(v))
