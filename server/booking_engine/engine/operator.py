"""Operator-side manual booking builder."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.observability import get_logger
from ..schemas.booking import (
    CreateBookingRequest,
    CreateBookingResponse,
    CustomerBlock,
    PaymentBlock,
    PaymentMethod,
    PaymentStatus,
    PricingBlock,
    ScheduleBlock,
)
from ..schemas.resource import Resource
from .addons import DEFAULT_ADD_ON_CATALOG, AddOnCatalog
from .calendar import normalize_slot_time
from .errors import BookingPersistError, OperatorValidationError
from .pricing import OPERATOR, ZERO_BREAKDOWN, PriceBreakdown, compute_price

logger = get_logger(__name__)

DEFAULT_OPERATOR_TIME = "10:00"


class OperatorStep(str, Enum):
    """Steps of the manual booking form."""
    RESOURCE = "resource"
    CUSTOMER = "customer"
    SCHEDULE = "schedule"
    PAYMENT = "payment"


_STEPS = list(OperatorStep)


class NewCustomer(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: Optional[str] = None


class ValidationIssue(BaseModel):
    """One reason the operator draft cannot be submitted."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    step: OperatorStep


class OperatorDraft(BaseModel):
    """Everything the operator has entered so far."""

    model_config = ConfigDict(frozen=True)

    resource: Optional[Resource] = None
    option_id: Optional[str] = None
    existing_customer_id: Optional[str] = None
    new_customer: Optional[NewCustomer] = Field(default_factory=NewCustomer)
    selected_date: Optional[date] = None
    selected_time: str = DEFAULT_OPERATOR_TIME
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.EXTERNAL
    payment_status: PaymentStatus = PaymentStatus.PAID
    payment_reference: str = ""
    custom_total: Optional[Decimal] = Field(default=None, ge=0)
    special_requests: str = ""
    hotel_pickup_details: str = ""
    internal_notes: str = ""
    breakdown: PriceBreakdown = ZERO_BREAKDOWN

    @property
    def add_on_id(self) -> Optional[str]:
        # Manual bookings never carry add-ons
        return None

    @property
    def fare(self) -> Decimal:
        if self.resource is None:
            return Decimal("0")
        return self.resource.fare_for(self.option_id)

    @property
    def needs_option_choice(self) -> bool:
        return self.resource is not None and len(self.resource.booking_options) > 1 and self.option_id is None


class BookingStore(Protocol):
    async def create_booking(self, request: CreateBookingRequest) -> CreateBookingResponse:
        ...


def search_resources(resources: Iterable[Resource], query: str) -> list[Resource]:
    """Resources whose title contains ``query``, ignoring case."""
    needle = (query or "").strip().casefold()
    return [resource for resource in resources if needle in resource.title.casefold()]


class OperatorDraftBuilder:
    """
    Step-wise builder for a manual booking.

    The price is recomputed with the operator fee policy after every change.
    A failed submission leaves the draft untouched so the operator can fix it.
    """

    def __init__(self, catalog: AddOnCatalog = DEFAULT_ADD_ON_CATALOG):
        self.catalog = catalog
        self.step = OperatorStep.RESOURCE
        self.draft = OperatorDraft()
        self.submitting = False

    def _commit(self, **changes) -> OperatorDraft:
        draft = OperatorDraft.model_validate({**dict(self.draft), **changes})
        breakdown = compute_price(draft, draft.fare, self.catalog, OPERATOR, override_total=draft.custom_total)
        self.draft = draft.model_copy(update={"breakdown": breakdown})
        return self.draft

    def reset(self) -> None:
        self.step = OperatorStep.RESOURCE
        self.draft = OperatorDraft()

    # Resource step

    def select_resource(self, resource: Resource) -> OperatorDraft:
        """Pick a resource; a lone variant is chosen automatically."""
        option_id = resource.booking_options[0].id if len(resource.booking_options) == 1 else None
        return self._commit(resource=resource, option_id=option_id)

    def select_option(self, option_id: str) -> bool:
        if self.draft.resource is None or self.draft.resource.option(option_id) is None:
            return False
        self._commit(option_id=option_id)
        return True

    # Customer step

    def use_existing_customer(self, customer_id: str) -> OperatorDraft:
        return self._commit(existing_customer_id=customer_id, new_customer=None)

    def use_new_customer(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone: Optional[str] = None,
    ) -> OperatorDraft:
        customer = NewCustomer(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip(),
            phone=(phone or "").strip() or None,
        )
        return self._commit(existing_customer_id=None, new_customer=customer)

    # Schedule step

    def set_schedule(self, day: date, start_time: str = DEFAULT_OPERATOR_TIME) -> OperatorDraft:
        return self._commit(selected_date=day, selected_time=normalize_slot_time(start_time))

    def set_party(self, adults: int, children: int = 0, infants: int = 0) -> OperatorDraft:
        return self._commit(adults=max(0, adults), children=max(0, children), infants=max(0, infants))

    # Payment step

    def set_payment(
        self,
        method: PaymentMethod,
        status: PaymentStatus,
        reference: str = "",
    ) -> OperatorDraft:
        return self._commit(payment_method=method, payment_status=status, payment_reference=reference.strip())

    def set_custom_total(self, total: Optional[Decimal]) -> OperatorDraft:
        """Override the computed total, or pass None to go back to the derived price."""
        return self._commit(custom_total=None if total is None else Decimal(total))

    def set_notes(
        self,
        special_requests: Optional[str] = None,
        hotel_pickup_details: Optional[str] = None,
        internal_notes: Optional[str] = None,
    ) -> OperatorDraft:
        changes = {}
        if special_requests is not None:
            changes["special_requests"] = special_requests
        if hotel_pickup_details is not None:
            changes["hotel_pickup_details"] = hotel_pickup_details
        if internal_notes is not None:
            changes["internal_notes"] = internal_notes
        return self._commit(**changes)

    # Validation and navigation

    def validate(self) -> list[ValidationIssue]:
        """Every reason the draft cannot be submitted, in step order."""
        draft = self.draft
        issues = []
        if draft.resource is None:
            issues.append(ValidationIssue(code="RESOURCE_REQUIRED", message="Please select a tour", step=OperatorStep.RESOURCE))
        elif draft.needs_option_choice:
            issues.append(ValidationIssue(
                code="OPTION_REQUIRED",
                message="Please choose a booking option",
                step=OperatorStep.RESOURCE,
            ))

        customer = draft.new_customer
        if not draft.existing_customer_id and (
            customer is None or not (customer.first_name and customer.last_name and customer.email)
        ):
            issues.append(ValidationIssue(
                code="CUSTOMER_REQUIRED",
                message="Please fill in customer details",
                step=OperatorStep.CUSTOMER,
            ))
        elif not draft.existing_customer_id:
            try:
                CustomerBlock(**customer.model_dump())
            except PydanticValidationError:
                issues.append(ValidationIssue(
                    code="CUSTOMER_INVALID",
                    message="Please enter a valid email address",
                    step=OperatorStep.CUSTOMER,
                ))

        if draft.selected_date is None:
            issues.append(ValidationIssue(code="DATE_REQUIRED", message="Please select a booking date", step=OperatorStep.SCHEDULE))
        if draft.adults + draft.children < 1:
            issues.append(ValidationIssue(code="GUESTS_REQUIRED", message="Please add at least one guest", step=OperatorStep.SCHEDULE))
        return issues

    def can_advance(self) -> bool:
        blocking = [issue for issue in self.validate() if issue.step is self.step]
        return not blocking and self.step is not OperatorStep.PAYMENT

    def next(self) -> bool:
        if not self.can_advance():
            return False
        self.step = _STEPS[_STEPS.index(self.step) + 1]
        return True

    def back(self) -> bool:
        index = _STEPS.index(self.step)
        if index == 0:
            return False
        self.step = _STEPS[index - 1]
        return True

    def go_to(self, step: OperatorStep) -> None:
        self.step = step

    def to_request(self) -> CreateBookingRequest:
        """Build the persistence request from a valid draft."""
        draft = self.draft
        breakdown = draft.breakdown.rounded()
        if draft.existing_customer_id:
            customer = CustomerBlock(existing_customer_id=draft.existing_customer_id)
        else:
            customer = CustomerBlock(
                first_name=draft.new_customer.first_name,
                last_name=draft.new_customer.last_name,
                email=draft.new_customer.email,
                phone=draft.new_customer.phone,
            )
        return CreateBookingRequest(
            resource_id=draft.resource.id,
            customer=customer,
            schedule=ScheduleBlock(
                date=draft.selected_date,
                time=draft.selected_time,
                adults=draft.adults,
                children=draft.children,
                infants=draft.infants,
                booking_option_id=draft.option_id,
            ),
            pricing=PricingBlock(
                base_fare=draft.fare,
                subtotal=draft.breakdown.subtotal,
                service_fee=breakdown.service_fee,
                tax=breakdown.tax,
                total=breakdown.total,
                overridden=breakdown.overridden,
            ),
            payment=PaymentBlock(
                method=draft.payment_method,
                status=draft.payment_status,
                reference=draft.payment_reference or None,
            ),
            special_requests=draft.special_requests or None,
            hotel_pickup_details=draft.hotel_pickup_details or None,
            internal_notes=draft.internal_notes or None,
        )

    async def submit(self, store: BookingStore) -> str:
        """
        Validate and persist the booking.

        Returns:
            str: The booking reference assigned by the store

        Raises:
            OperatorValidationError: If the draft is incomplete; the builder
            moves to the first offending step and nothing is sent
            BookingPersistError: If the store rejected the booking; the draft
            is kept as entered
        """
        issues = self.validate()
        if issues:
            self.step = issues[0].step
            logger.info(
                "Operator booking blocked by validation",
                codes=[issue.code for issue in issues],
                step=self.step.value,
            )
            raise OperatorValidationError(issues, self.step)

        request = self.to_request()
        self.submitting = True
        try:
            response = await store.create_booking(request)
        except BookingPersistError as exc:
            logger.warning("Operator booking rejected", reason=exc.reason, resource_id=request.resource_id)
            raise
        finally:
            self.submitting = False

        logger.info(
            "Operator booking created",
            reference=response.reference,
            resource_id=request.resource_id,
            status=response.status.value,
        )
        self.reset()
        return response.reference
