"""Calendar month arithmetic and slot time parsing."""

import calendar
import re
from datetime import date, datetime, time
from typing import Iterator, NamedTuple

_YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
_TWELVE_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")
_TWENTY_FOUR_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class YearMonth(NamedTuple):
    """A calendar month, rendered on the wire as ``YYYY-MM``."""

    year: int
    month: int

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        """
        Parse a ``YYYY-MM`` string.

        Raises:
            ValueError: If the string is not a valid calendar month
        """
        match = _YEAR_MONTH_PATTERN.match(value or "")
        if not match:
            raise ValueError(f"Invalid month '{value}', expected YYYY-MM")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12 or year < 1:
            raise ValueError(f"Invalid month '{value}', expected YYYY-MM")
        return cls(year, month)

    @classmethod
    def of(cls, day: date) -> "YearMonth":
        return cls(day.year, day.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def days(self) -> Iterator[date]:
        """Iterate over every day of the month."""
        for day_number in range(1, self.last_day.day + 1):
            yield date(self.year, self.month, day_number)

    def contains(self, day: date) -> bool:
        return (day.year, day.month) == (self.year, self.month)

    def next(self) -> "YearMonth":
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def previous(self) -> "YearMonth":
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)


def parse_slot_time(value: str) -> time:
    """
    Parse a slot start time.

    Accepts 24-hour ``HH:MM`` and the 12-hour ``h:mm AM`` form used by older
    catalog data.

    Raises:
        ValueError: If the value is not a recognisable time of day
    """
    text = (value or "").strip()
    match = _TWENTY_FOUR_HOUR_PATTERN.match(text)
    if match:
        return time(int(match.group(1)), int(match.group(2)))

    match = _TWELVE_HOUR_PATTERN.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid time '{value}'")
        hour = hour % 12
        if match.group(3).upper() == "PM":
            hour += 12
        return time(hour, minute)

    raise ValueError(f"Invalid time '{value}', expected HH:MM")


def normalize_slot_time(value: str) -> str:
    """Normalise any accepted time representation to ``HH:MM``."""
    return parse_slot_time(value).strftime("%H:%M")


def has_started(day: date, slot_time: str, now: datetime) -> bool:
    """Whether a slot on ``day`` has already started relative to ``now``."""
    if day != now.date():
        return day < now.date()
    return parse_slot_time(slot_time) <= now.time().replace(second=0, microsecond=0)
