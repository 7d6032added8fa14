"""Self-service booking flow: schedule, party, add-ons, review."""

from datetime import date
from enum import Enum
from typing import Optional

from ..core.observability import get_logger
from ..schemas.resource import Resource
from .addons import DEFAULT_ADD_ON_CATALOG, AddOnCatalog
from .calendar import YearMonth, normalize_slot_time
from .draft import BookingDraft
from .pricing import SELF_SERVICE, PriceBreakdown, compute_price
from .resolver import AvailabilityResolver, MonthAvailability

logger = get_logger(__name__)


class BookingStep(str, Enum):
    """Steps of the self-service booking flow."""
    SCHEDULE = "schedule"
    PARTY = "party"
    ADD_ONS = "add_ons"
    REVIEW = "review"
    CLOSED = "closed"


class ScheduleStage(str, Enum):
    """Sub-stage of the schedule step."""
    CHOOSING_DATE = "choosing_date"
    CHOOSING_TIME = "choosing_time"


_FORWARD = {
    BookingStep.SCHEDULE: BookingStep.PARTY,
    BookingStep.PARTY: BookingStep.ADD_ONS,
    BookingStep.ADD_ONS: BookingStep.REVIEW,
}
_BACKWARD = {target: source for source, target in _FORWARD.items()}


class BookingFlow:
    """
    Drives one customer's reservation for one resource.

    Invalid transitions are no-ops that return False. The draft is replaced
    on every mutation and its price recomputed before the call returns.
    """

    def __init__(
        self,
        resource: Resource,
        resolver: AvailabilityResolver,
        catalog: AddOnCatalog = DEFAULT_ADD_ON_CATALOG,
    ):
        self.resource = resource
        self.resolver = resolver
        self.catalog = catalog
        self.step = BookingStep.CLOSED
        self.stage = ScheduleStage.CHOOSING_DATE
        self.draft: Optional[BookingDraft] = None
        self.view_month: Optional[YearMonth] = None
        # Bumped on open and close; async results from an older generation are ignored
        self.generation = 0

    @property
    def is_open(self) -> bool:
        return self.step is not BookingStep.CLOSED and self.draft is not None

    @property
    def breakdown(self) -> Optional[PriceBreakdown]:
        return self.draft.breakdown if self.draft else None

    def _priced(self, draft: BookingDraft) -> BookingDraft:
        breakdown = compute_price(draft, self.resource.effective_fare, self.catalog, SELF_SERVICE)
        return draft.with_breakdown(breakdown)

    def _commit(self, draft: BookingDraft) -> BookingDraft:
        self.draft = self._priced(draft)
        return self.draft

    async def open(self) -> Optional[MonthAvailability]:
        """
        Start a fresh reservation on today's date and load the current month.

        Raises:
            AvailabilityUnavailableError: If today's month could not be loaded;
            the flow stays open and ``retry_availability`` can be used
        """
        self.generation += 1
        today = self.resolver.today()
        self._commit(BookingDraft.fresh(today))
        self.step = BookingStep.SCHEDULE
        self.stage = ScheduleStage.CHOOSING_DATE
        self.view_month = YearMonth.of(today)
        logger.info(
            "Booking flow opened",
            resource_id=self.resource.id,
            draft_id=str(self.draft.draft_id),
        )
        return await self._load(self.view_month)

    def close(self) -> None:
        if self.step is BookingStep.CLOSED:
            return
        self.generation += 1
        self.step = BookingStep.CLOSED
        self.stage = ScheduleStage.CHOOSING_DATE
        self.draft = None
        logger.info("Booking flow closed", resource_id=self.resource.id)

    async def _load(self, month: YearMonth) -> Optional[MonthAvailability]:
        generation = self.generation
        payload = await self.resolver.load(self.resource.id, month)
        if payload is None or generation != self.generation:
            return None
        self._drop_stale_time()
        return payload

    async def retry_availability(self) -> Optional[MonthAvailability]:
        generation = self.generation
        payload = await self.resolver.retry()
        if payload is None or generation != self.generation:
            return None
        self._drop_stale_time()
        return payload

    def _drop_stale_time(self) -> None:
        """Clear a selected time that is no longer selectable."""
        if not self.is_open or self.draft.selected_time is None:
            return
        if self.resolver.is_time_selectable(self.draft.selected_date, self.draft.selected_time):
            return
        logger.info(
            "Clearing stale time selection",
            resource_id=self.resource.id,
            date=self.draft.selected_date.isoformat(),
            time=self.draft.selected_time,
        )
        self._require_time()

    def _require_time(self) -> None:
        """Drop the selected time and send the customer back to pick another."""
        self._commit(self.draft.with_time(None))
        self.step = BookingStep.SCHEDULE
        self.stage = ScheduleStage.CHOOSING_TIME

    # Schedule

    def is_date_disabled(self, day: date) -> bool:
        return self.resolver.is_date_disabled(day)

    def selectable_times(self) -> list[str]:
        if not self.is_open:
            return []
        return self.resolver.selectable_times(self.draft.selected_date)

    def select_date(self, day: date) -> bool:
        if self.step is not BookingStep.SCHEDULE or self.resolver.is_date_disabled(day):
            return False
        self._commit(self.draft.with_date(day))
        self.stage = ScheduleStage.CHOOSING_TIME
        return True

    def select_time(self, start_time: str) -> bool:
        if self.step is not BookingStep.SCHEDULE:
            return False
        if not self.resolver.is_time_selectable(self.draft.selected_date, start_time):
            return False
        self._commit(self.draft.with_time(normalize_slot_time(start_time)))
        return True

    async def change_month(self, month: YearMonth) -> Optional[MonthAvailability]:
        """Navigate the calendar; always issues a fresh request."""
        if not self.is_open:
            return None
        self.view_month = month
        return await self._load(month)

    async def change_resource(self, resource: Resource) -> Optional[MonthAvailability]:
        """Switch to another resource, dropping every cached month."""
        if not self.is_open:
            self.resource = resource
            return None
        self.resource = resource
        # Times of the previous resource say nothing about this one
        if self.draft.selected_time is not None:
            self._require_time()
        else:
            self._commit(self.draft)
        self.resolver.invalidate()
        return await self._load(self.view_month or YearMonth.of(self.draft.selected_date))

    # Party

    def increment_adults(self) -> Optional[BookingDraft]:
        return self._party(adults=1)

    def decrement_adults(self) -> Optional[BookingDraft]:
        return self._party(adults=-1)

    def increment_children(self) -> Optional[BookingDraft]:
        return self._party(children=1)

    def decrement_children(self) -> Optional[BookingDraft]:
        return self._party(children=-1)

    def _party(self, adults: int = 0, children: int = 0) -> Optional[BookingDraft]:
        """Shift party counts by the given deltas; floors are enforced by the draft."""
        if not self.is_open:
            return None
        draft = self.draft
        if adults:
            draft = draft.with_adults(draft.adults + adults)
        if children:
            draft = draft.with_children(draft.children + children)
        return self._commit(draft)

    # Add-ons

    def select_add_on(self, add_on_id: str, start_time: str) -> bool:
        if not self.is_open:
            return False
        add_on = self.catalog.get(add_on_id)
        if add_on is None or not add_on.offers(start_time):
            return False
        self._commit(self.draft.with_add_on(add_on.id, normalize_slot_time(start_time)))
        return True

    def clear_add_on(self) -> bool:
        if not self.is_open:
            return False
        self._commit(self.draft.without_add_on())
        return True

    # Navigation

    def can_advance(self) -> bool:
        if self.step is BookingStep.SCHEDULE:
            draft = self.draft
            return (
                not self.resolver.is_date_disabled(draft.selected_date)
                and self.resolver.is_time_selectable(draft.selected_date, draft.selected_time)
            )
        return self.step in (BookingStep.PARTY, BookingStep.ADD_ONS)

    def next(self) -> bool:
        """Advance one step when the current step is complete."""
        if self.step not in _FORWARD:
            return False
        if not self.can_advance():
            if self.step is BookingStep.SCHEDULE:
                # The slot may have started while the customer was deciding
                self._drop_stale_time()
            return False
        self.step = _FORWARD[self.step]
        logger.debug("Booking flow advanced", step=self.step.value, resource_id=self.resource.id)
        return True

    def back(self) -> bool:
        if self.step not in _BACKWARD:
            return False
        self.step = _BACKWARD[self.step]
        return True

    def review(self) -> Optional[PriceBreakdown]:
        """Breakdown shown on the review step."""
        if self.step is not BookingStep.REVIEW:
            return None
        return self.draft.breakdown
