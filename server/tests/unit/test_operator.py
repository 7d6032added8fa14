"""Unit tests for the operator draft builder."""

from datetime import date
from decimal import Decimal

import pytest

from booking_engine.engine.errors import BookingPersistError, OperatorValidationError
from booking_engine.engine.operator import OperatorDraftBuilder, OperatorStep, search_resources
from booking_engine.models.booking import BookingStatus
from booking_engine.schemas.booking import CreateBookingResponse, PaymentMethod, PaymentStatus
from booking_engine.schemas.resource import BookingOption

BOOKING_DATE = date(2025, 10, 15)


class FakeStore:
    """Booking store double that records requests and can be told to reject them."""

    def __init__(self, reject_with=None):
        self.requests = []
        self.reject_with = reject_with

    async def create_booking(self, request):
        self.requests.append(request)
        if self.reject_with:
            raise self.reject_with
        return CreateBookingResponse(
            id="7d1c7f9e-3b7e-4d6c-9a55-0e4bb1b3b2a1",
            reference="EEO-12345678-AB12CD",
            status=BookingStatus.CONFIRMED,
            total=request.pricing.total,
            currency="USD",
        )


@pytest.fixture
def builder():
    return OperatorDraftBuilder()


@pytest.fixture
def complete_builder(builder, sample_resource):
    builder.select_resource(sample_resource)
    builder.use_new_customer(" Amira ", "Hassan", "amira@example.com", "+20 100 000 0000")
    builder.set_schedule(BOOKING_DATE)
    builder.set_party(adults=2, children=1)
    builder.set_payment(PaymentMethod.CASH, PaymentStatus.PAID)
    return builder


def test_empty_draft_reports_every_missing_piece(builder):
    """Test validation lists resource, customer and date issues in step order."""
    issues = builder.validate()

    assert [issue.code for issue in issues] == ["RESOURCE_REQUIRED", "CUSTOMER_REQUIRED", "DATE_REQUIRED"]
    assert issues[0].message == "Please select a tour"
    assert issues[1].message == "Please fill in customer details"
    assert issues[2].message == "Please select a booking date"


def test_operator_price_includes_fee_and_tax(complete_builder):
    """Test 2 adults and 1 child at 100 cost 270 with fee and tax."""
    breakdown = complete_builder.draft.breakdown

    assert breakdown.subtotal == Decimal("250")
    assert breakdown.service_fee == Decimal("7.50")
    assert breakdown.tax == Decimal("12.50")
    assert breakdown.total == Decimal("270.00")


def test_custom_total_overrides_price(complete_builder):
    """Test a manual total replaces the computed one until cleared."""
    complete_builder.set_custom_total(Decimal("240"))
    assert complete_builder.draft.breakdown.total == Decimal("240")
    assert complete_builder.draft.breakdown.service_fee is None

    request = complete_builder.to_request()
    assert request.pricing.total == Decimal("240.00")
    assert request.pricing.overridden is True
    assert request.pricing.tax is None

    complete_builder.set_custom_total(None)
    assert complete_builder.draft.breakdown.total == Decimal("270.00")
    assert complete_builder.draft.breakdown.overridden is False


def test_single_option_is_chosen_automatically(builder, sample_resource):
    """Test a resource with one variant needs no explicit choice."""
    resource = sample_resource.model_copy(update={
        "booking_options": [BookingOption(id="only", option_type="shared", label="Shared", fare=Decimal("90"))],
    })

    builder.select_resource(resource)

    assert builder.draft.option_id == "only"
    assert builder.draft.fare == Decimal("90")


def test_variant_choice_required_and_priced(builder, variant_resource):
    """Test several variants require a choice whose fare drives the price."""
    builder.select_resource(variant_resource)

    assert "OPTION_REQUIRED" in [issue.code for issue in builder.validate()]
    assert builder.draft.breakdown.subtotal == Decimal("45.00")

    assert not builder.select_option("helicopter")
    assert builder.select_option("private")
    assert builder.draft.fare == Decimal("80.00")
    assert builder.draft.breakdown.subtotal == Decimal("80.00")
    assert "OPTION_REQUIRED" not in [issue.code for issue in builder.validate()]


def test_party_requires_a_paying_guest(complete_builder):
    """Test infants alone do not make a booking and are never priced."""
    complete_builder.set_party(adults=0, children=0, infants=2)
    assert [issue.code for issue in complete_builder.validate()] == ["GUESTS_REQUIRED"]

    complete_builder.set_party(adults=1, children=0, infants=2)
    assert complete_builder.validate() == []
    assert complete_builder.draft.breakdown.subtotal == Decimal("100.00")

    complete_builder.set_party(adults=-3)
    assert complete_builder.draft.adults == 0


def test_invalid_email_blocks_customer_step(builder):
    """Test a malformed email is reported on the customer step."""
    builder.use_new_customer("Amira", "Hassan", "not-an-email")

    codes = {issue.code: issue.step for issue in builder.validate()}
    assert codes["CUSTOMER_INVALID"] is OperatorStep.CUSTOMER


def test_existing_customer_replaces_new_customer(complete_builder):
    """Test choosing an existing customer clears the new customer fields."""
    complete_builder.use_existing_customer("4b0f8a56-0a55-4a8e-9d4c-2b1d7f0e8c11")

    request = complete_builder.to_request()
    assert request.customer.existing_customer_id == "4b0f8a56-0a55-4a8e-9d4c-2b1d7f0e8c11"
    assert request.customer.email is None


def test_navigation_gated_per_step(builder, sample_resource):
    """Test Next only leaves a step once that step is valid."""
    assert not builder.next()

    builder.select_resource(sample_resource)
    assert builder.next()
    assert builder.step is OperatorStep.CUSTOMER
    assert not builder.next()

    builder.use_new_customer("Amira", "Hassan", "amira@example.com")
    assert builder.next()
    builder.set_schedule(BOOKING_DATE, "2:00 PM")
    assert builder.next()
    assert builder.step is OperatorStep.PAYMENT
    assert not builder.next()

    assert builder.back()
    assert builder.step is OperatorStep.SCHEDULE
    assert builder.draft.selected_time == "14:00"


@pytest.mark.asyncio
async def test_submit_jumps_to_first_invalid_step(builder, sample_resource):
    """Test a blocked submit sends nothing and shows the first failing step."""
    builder.select_resource(sample_resource)
    builder.set_schedule(BOOKING_DATE)
    builder.go_to(OperatorStep.PAYMENT)
    store = FakeStore()

    with pytest.raises(OperatorValidationError) as exc_info:
        await builder.submit(store)

    assert builder.step is OperatorStep.CUSTOMER
    assert exc_info.value.step is OperatorStep.CUSTOMER
    assert "Please fill in customer details" in str(exc_info.value)
    assert store.requests == []


@pytest.mark.asyncio
async def test_submit_success_resets_builder(complete_builder):
    """Test a persisted booking returns its reference and starts a new draft."""
    complete_builder.set_notes(special_requests="Vegetarian lunch", internal_notes="Booked by phone")
    store = FakeStore()

    reference = await complete_builder.submit(store)

    assert reference == "EEO-12345678-AB12CD"
    request = store.requests[0]
    assert request.resource_id == "luxor-west-bank"
    assert request.customer.first_name == "Amira"
    assert request.schedule.time == "10:00"
    assert request.schedule.adults == 2
    assert request.pricing.total == Decimal("270.00")
    assert request.pricing.service_fee == Decimal("7.50")
    assert request.payment.method is PaymentMethod.CASH
    assert request.payment.reference is None
    assert request.special_requests == "Vegetarian lunch"
    assert request.hotel_pickup_details is None

    assert complete_builder.step is OperatorStep.RESOURCE
    assert complete_builder.draft.resource is None
    assert complete_builder.submitting is False


@pytest.mark.asyncio
async def test_persist_error_keeps_draft(complete_builder):
    """Test a server rejection surfaces verbatim and leaves the draft intact."""
    complete_builder.go_to(OperatorStep.PAYMENT)
    store = FakeStore(reject_with=BookingPersistError("Tour is not available", status_code=409, code="CONFLICT"))

    with pytest.raises(BookingPersistError) as exc_info:
        await complete_builder.submit(store)

    assert exc_info.value.reason == "Tour is not available"
    assert complete_builder.step is OperatorStep.PAYMENT
    assert complete_builder.draft.resource is not None
    assert complete_builder.draft.adults == 2
    assert complete_builder.submitting is False


def test_search_resources_is_case_insensitive(sample_resource, variant_resource):
    """Test resource search matches title substrings ignoring case."""
    resources = [sample_resource, variant_resource]

    assert search_resources(resources, "luxor") == [sample_resource]
    assert search_resources(resources, "  SAFARI ") == [variant_resource]
    assert search_resources(resources, "") == resources
    assert search_resources(resources, "cairo") == []
