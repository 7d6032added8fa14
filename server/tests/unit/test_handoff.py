"""Unit tests for the reservation hand-off."""

from datetime import date
from decimal import Decimal

import pytest

from booking_engine.engine.errors import ReservationSubmissionError
from booking_engine.engine.flow import BookingFlow, BookingStep
from booking_engine.engine.handoff import (
    HandoffIntent,
    InMemoryCart,
    LineItemKind,
    ReservationHandoff,
    build_line_items,
    line_id_for,
)
from tests.support import SEPTEMBER

TOMORROW = date(2025, 9, 11)


class RecordingNavigator:
    def __init__(self):
        self.paths = []

    def go_to(self, path: str) -> None:
        self.paths.append(path)


class FlakyCart(InMemoryCart):
    """Cart that rejects every line item after the first ``accept`` ones."""

    def __init__(self, accept: int):
        super().__init__()
        self.accept = accept

    async def add_line_item(self, item):
        if len(self.items) >= self.accept:
            raise ConnectionError("cart service unavailable")
        await super().add_line_item(item)


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def flow(sample_resource, resolver, fetcher, september_payload):
    fetcher.set(sample_resource.id, SEPTEMBER, september_payload)
    return BookingFlow(sample_resource, resolver)


async def _reviewed(flow, add_on=True):
    await flow.open()
    flow.select_date(TOMORROW)
    flow.select_time("14:00")
    flow.increment_adults()
    flow.increment_children()
    if add_on:
        flow.select_add_on("atv-sunset", "15:00")
    flow.next()
    flow.next()
    flow.next()
    assert flow.step is BookingStep.REVIEW
    return flow.draft


@pytest.mark.asyncio
async def test_add_to_cart_emits_resource_line(flow, navigator):
    """Test the cart intent emits one resource line and stays on the page."""
    draft = await _reviewed(flow, add_on=False)
    cart = InMemoryCart()

    result = await ReservationHandoff(cart, navigator).submit(flow, HandoffIntent.CART)

    assert len(result.items) == 1
    item = cart.items[0]
    assert item.kind is LineItemKind.RESOURCE
    assert item.item_id == "luxor-west-bank"
    assert item.unit_fare == Decimal("100.00")
    assert item.child_unit_fare == Decimal("50.00")
    assert (item.quantity, item.child_quantity) == (2, 1)
    assert item.date == "2025-09-11"
    assert item.time == "14:00"
    assert item.line_total == Decimal("250.00")
    assert item.line_id == line_id_for(draft, LineItemKind.RESOURCE)
    assert result.navigated_to is None
    assert navigator.paths == []
    assert flow.step is BookingStep.CLOSED


@pytest.mark.asyncio
async def test_checkout_emits_add_on_and_navigates(flow, navigator):
    """Test checkout emits both lines and routes to the checkout page."""
    await _reviewed(flow)
    cart = InMemoryCart()

    result = await ReservationHandoff(cart, navigator, checkout_path="/pay").submit(flow, HandoffIntent.CHECKOUT)

    assert [item.kind for item in cart.items] == [LineItemKind.RESOURCE, LineItemKind.ADD_ON]
    add_on = cart.items[1]
    assert add_on.item_id == "atv-sunset"
    assert add_on.quantity == 2
    assert add_on.child_quantity == 0
    assert add_on.time == "15:00"
    assert add_on.line_total == Decimal("50.00")
    assert sum(item.line_total for item in result.items) == Decimal("300.00")
    assert result.navigated_to == "/pay"
    assert navigator.paths == ["/pay"]
    assert not flow.is_open


@pytest.mark.asyncio
async def test_submit_outside_review_is_ignored(flow, navigator):
    """Test hand-off does nothing unless the flow is on review."""
    await flow.open()
    cart = InMemoryCart()

    assert await ReservationHandoff(cart, navigator).submit(flow, HandoffIntent.CHECKOUT) is None
    assert cart.items == []
    assert flow.is_open


@pytest.mark.asyncio
async def test_resource_change_on_review_blocks_submission(
    flow, navigator, variant_resource, fetcher, september_payload
):
    """Test a time invalidated on review is never emitted and the flow stays open."""
    await _reviewed(flow)
    fetcher.set(variant_resource.id, SEPTEMBER, september_payload)
    await flow.change_resource(variant_resource)
    cart = InMemoryCart()

    assert await ReservationHandoff(cart, navigator).submit(flow, HandoffIntent.CART) is None
    assert cart.items == []
    assert flow.is_open
    assert flow.step is BookingStep.SCHEDULE


@pytest.mark.asyncio
async def test_draft_without_time_is_declined(flow, navigator):
    """Test a reviewed draft that lost its start time emits nothing."""
    await _reviewed(flow)
    flow.draft = flow.draft.with_time(None)
    cart = InMemoryCart()

    assert await ReservationHandoff(cart, navigator).submit(flow, HandoffIntent.CHECKOUT) is None
    assert cart.items == []
    assert navigator.paths == []
    assert flow.is_open


@pytest.mark.asyncio
async def test_partial_failure_reports_emitted_items(flow, navigator):
    """Test a rejected second line leaves the first in the cart and closes the flow."""
    await _reviewed(flow)
    cart = FlakyCart(accept=1)

    with pytest.raises(ReservationSubmissionError) as exc_info:
        await ReservationHandoff(cart, navigator).submit(flow, HandoffIntent.CHECKOUT)

    assert [item.kind for item in exc_info.value.emitted] == [LineItemKind.RESOURCE]
    assert isinstance(exc_info.value.cause, ConnectionError)
    assert len(cart.items) == 1
    assert navigator.paths == []
    assert flow.step is BookingStep.CLOSED


@pytest.mark.asyncio
async def test_line_ids_make_resubmission_idempotent(flow, sample_resource):
    """Test emitting the same draft twice appends each line once."""
    draft = await _reviewed(flow)
    cart = InMemoryCart()

    for item in build_line_items(draft, sample_resource, flow.catalog):
        await cart.add_line_item(item)
    for item in build_line_items(draft, sample_resource, flow.catalog):
        await cart.add_line_item(item)

    assert len(cart.items) == 2
    assert line_id_for(draft, LineItemKind.RESOURCE) != line_id_for(draft, LineItemKind.ADD_ON)


def test_default_checkout_path_comes_from_settings(navigator):
    """Test the checkout route falls back to configuration."""
    from booking_engine.core.config import settings

    assert ReservationHandoff(InMemoryCart(), navigator).checkout_path == settings.checkout_path
