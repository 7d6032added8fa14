"""Catalog of optional add-on experiences that can be attached to a booking."""

from decimal import Decimal
from typing import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .calendar import normalize_slot_time


class AddOn(BaseModel):
    """An optional secondary experience priced per adult."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable add-on identifier")
    title: str = Field(..., description="Display title")
    duration: str = Field(..., description="Human readable duration")
    fare: Decimal = Field(..., ge=0, description="Fare per adult")
    available_times: tuple[str, ...] = Field(..., min_length=1, description="Offered start times (HH:MM)")
    languages: tuple[str, ...] = Field(default=(), description="Guide languages")
    description: str = Field(default="", description="Short description")

    @field_validator("available_times")
    @classmethod
    def normalize_times(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(normalize_slot_time(t) for t in v)

    def offers(self, start_time: str) -> bool:
        """Whether the add-on runs at the given start time."""
        try:
            return normalize_slot_time(start_time) in self.available_times
        except ValueError:
            return False


class AddOnCatalog:
    """Read-only id -> add-on lookup table."""

    def __init__(self, add_ons: Iterable[AddOn]):
        self._add_ons: dict[str, AddOn] = {}
        for add_on in add_ons:
            if add_on.id in self._add_ons:
                raise ValueError(f"Duplicate add-on id '{add_on.id}'")
            self._add_ons[add_on.id] = add_on

    def get(self, add_on_id: str | None) -> AddOn | None:
        if add_on_id is None:
            return None
        return self._add_ons.get(add_on_id)

    def require(self, add_on_id: str) -> AddOn:
        """Look up an add-on, raising ``KeyError`` for unknown ids."""
        try:
            return self._add_ons[add_on_id]
        except KeyError:
            raise KeyError(f"Unknown add-on '{add_on_id}'") from None

    def __contains__(self, add_on_id: object) -> bool:
        return add_on_id in self._add_ons

    def __iter__(self) -> Iterator[AddOn]:
        return iter(self._add_ons.values())

    def __len__(self) -> int:
        return len(self._add_ons)


DEFAULT_ADD_ON_CATALOG = AddOnCatalog([
    AddOn(
        id="atv-sunset",
        title="3-Hour ATV Quad Tour Sunset with Transfer",
        duration="3 Hours",
        fare=Decimal("25.00"),
        available_times=("14:00", "15:00"),
        languages=("English", "German"),
        description="A 30 km quad bike ride into the desert to a traditional Bedouin village.",
    ),
    AddOn(
        id="shared-quad",
        title="Shared 2-Hour Quad Bike Tour",
        duration="2 Hours",
        fare=Decimal("22.00"),
        available_times=("10:00", "14:00"),
        languages=("English",),
        description="A shared quad bike adventure through the desert canyons.",
    ),
])
