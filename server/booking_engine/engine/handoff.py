"""Hand a reviewed booking draft off to the cart and checkout boundaries."""

from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol
from uuid import UUID, uuid5

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import settings
from ..core.observability import get_logger, metrics_collector
from ..schemas.resource import Resource
from .addons import AddOnCatalog
from .draft import BookingDraft
from .errors import ReservationSubmissionError
from .flow import BookingFlow, BookingStep
from .pricing import CHILD_FARE_RATIO

logger = get_logger(__name__)


class HandoffIntent(str, Enum):
    """What the customer asked for on the review step."""
    CART = "cart"
    CHECKOUT = "checkout"


class LineItemKind(str, Enum):
    """Kind of cart line item."""
    RESOURCE = "resource"
    ADD_ON = "add_on"


class CartLineItem(BaseModel):
    """One independent cart entry produced from a draft."""

    model_config = ConfigDict(frozen=True)

    line_id: UUID = Field(..., description="Deterministic per draft and kind")
    kind: LineItemKind
    item_id: str
    title: str
    unit_fare: Decimal
    child_unit_fare: Decimal = Decimal("0")
    quantity: int = Field(..., ge=0)
    child_quantity: int = Field(default=0, ge=0)
    date: str = Field(..., description="ISO date")
    time: str = Field(..., description="Start time (HH:MM)")
    currency: str = "USD"

    @property
    def line_total(self) -> Decimal:
        return self.unit_fare * self.quantity + self.child_unit_fare * self.child_quantity


class CartBoundary(Protocol):
    async def add_line_item(self, item: CartLineItem) -> None:
        ...


class Navigator(Protocol):
    def go_to(self, path: str) -> None:
        ...


class InMemoryCart:
    """Cart boundary that keeps line items in memory, appending each line id once."""

    def __init__(self):
        self.items: list[CartLineItem] = []
        self._line_ids: set[UUID] = set()

    async def add_line_item(self, item: CartLineItem) -> None:
        if item.line_id in self._line_ids:
            logger.debug("Ignoring duplicate line item", line_id=str(item.line_id))
            return
        self._line_ids.add(item.line_id)
        self.items.append(item)


class HandoffResult(BaseModel):
    """Outcome of a successful hand-off."""

    items: list[CartLineItem]
    navigated_to: Optional[str] = None


def line_id_for(draft: BookingDraft, kind: LineItemKind) -> UUID:
    return uuid5(draft.draft_id, kind.value)


def build_line_items(draft: BookingDraft, resource: Resource, catalog: AddOnCatalog) -> list[CartLineItem]:
    """
    Turn a draft into cart line items: the resource itself plus the add-on,
    when one is selected. Add-on items carry adults only.
    """
    fare = resource.effective_fare
    items = [
        CartLineItem(
            line_id=line_id_for(draft, LineItemKind.RESOURCE),
            kind=LineItemKind.RESOURCE,
            item_id=resource.id,
            title=resource.title,
            unit_fare=fare,
            child_unit_fare=fare * CHILD_FARE_RATIO,
            quantity=draft.adults,
            child_quantity=draft.children,
            date=draft.selected_date.isoformat(),
            time=draft.selected_time,
            currency=resource.currency,
        )
    ]

    if draft.add_on_id:
        add_on = catalog.require(draft.add_on_id)
        items.append(
            CartLineItem(
                line_id=line_id_for(draft, LineItemKind.ADD_ON),
                kind=LineItemKind.ADD_ON,
                item_id=add_on.id,
                title=add_on.title,
                unit_fare=add_on.fare,
                quantity=draft.adults,
                date=draft.selected_date.isoformat(),
                time=draft.add_on_time,
                currency=resource.currency,
            )
        )
    return items


class ReservationHandoff:
    """Emits line items for a reviewed flow and routes to checkout on request."""

    def __init__(self, cart: CartBoundary, navigator: Navigator, checkout_path: Optional[str] = None):
        self.cart = cart
        self.navigator = navigator
        self.checkout_path = checkout_path or settings.checkout_path

    async def submit(self, flow: BookingFlow, intent: HandoffIntent) -> Optional[HandoffResult]:
        """
        Submit the flow's draft.

        The flow is closed whatever the outcome. Emission is not transactional:
        a failure after the first item leaves that item in the cart.

        Returns:
            HandoffResult | None: The emitted items, or None when the flow is
            not on the review step or the draft has no start time

        Raises:
            ReservationSubmissionError: If the cart boundary rejected an item
        """
        if flow.step is not BookingStep.REVIEW:
            logger.debug("Hand-off ignored outside review", step=flow.step.value)
            return None

        draft = flow.draft
        if draft.selected_time is None:
            logger.warning("Hand-off declined without a start time", draft_id=str(draft.draft_id))
            return None

        items = build_line_items(draft, flow.resource, flow.catalog)
        emitted: list[CartLineItem] = []
        log = logger.with_context(draft_id=str(draft.draft_id), resource_id=flow.resource.id, intent=intent.value)

        try:
            for item in items:
                await self.cart.add_line_item(item)
                emitted.append(item)
                metrics_collector.record_line_item(item.kind.value)
        except Exception as exc:
            log.error("Cart emission failed", emitted=len(emitted), error=str(exc))
            raise ReservationSubmissionError(emitted, exc) from exc
        finally:
            flow.close()

        navigated_to = None
        if intent is HandoffIntent.CHECKOUT:
            self.navigator.go_to(self.checkout_path)
            navigated_to = self.checkout_path

        log.info("Reservation handed off", items=len(emitted), navigated_to=navigated_to)
        return HandoffResult(items=emitted, navigated_to=navigated_to)
