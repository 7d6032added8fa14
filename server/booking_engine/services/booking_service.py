"""Operator booking service for business logic operations."""

import logging
import secrets
import string
import time
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..engine.addons import DEFAULT_ADD_ON_CATALOG
from ..engine.pricing import OPERATOR, PriceBreakdown, compute_price, round_money
from ..models.booking import Booking, BookingStatus, Customer
from ..models.tour import Tour, TourBookingOption
from ..schemas.booking import CreateBookingRequest, CustomerBlock, PaymentStatus
from .resource_service import ResourceService, parse_resource_id

logger = logging.getLogger(__name__)

REFERENCE_ATTEMPTS = 10
_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


class PriceMismatchError(ValidationError):
    """Exception when the submitted total disagrees with the derived price."""

    def __init__(self, submitted: Decimal, derived: Decimal):
        super().__init__(
            detail=f"Submitted total {submitted:.2f} does not match the calculated total {derived:.2f}",
            code="PRICE_MISMATCH",
        )
        self.problem_details.update({
            "submitted_total": f"{submitted:.2f}",
            "calculated_total": f"{derived:.2f}",
        })


class BookingOptionError(ValidationError):
    """Exception when the fare variant is missing or unknown."""

    def __init__(self, detail: str, code: str):
        super().__init__(detail=detail, code=code)


class _Party(NamedTuple):
    adults: int
    children: int
    add_on_id: Optional[str] = None


class BookingService:
    """Service for operator booking operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.resource_service = ResourceService(db)

    def _generate_reference(self) -> str:
        """Generate a booking reference like ``EEO-12345678-AB12CD``."""
        stamp = str(int(time.time() * 1000))[-8:]
        suffix = ''.join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
        return f"{settings.booking_reference_prefix}-{stamp}-{suffix}"

    async def _unique_reference(self) -> str:
        for _ in range(REFERENCE_ATTEMPTS):
            reference = self._generate_reference()
            existing = await self.db.execute(select(Booking.id).where(Booking.reference == reference))
            if existing.scalar_one_or_none() is None:
                return reference
        raise ConflictError(detail="Could not allocate a unique booking reference")

    def _resolve_option(self, tour: Tour, option_id: Optional[str]) -> Optional[TourBookingOption]:
        """
        Pick the fare variant for the booking.

        Raises:
            BookingOptionError: If the id is unknown, or the resource has
            several variants and none was chosen
        """
        options = list(tour.booking_options)
        if option_id:
            for option in options:
                if str(option.id) == option_id:
                    return option
            raise BookingOptionError(
                detail=f"Booking option '{option_id}' does not belong to this resource",
                code="UNKNOWN_BOOKING_OPTION",
            )
        if len(options) == 1:
            return options[0]
        if len(options) > 1:
            raise BookingOptionError(
                detail="This resource has several booking options; one must be chosen",
                code="BOOKING_OPTION_REQUIRED",
            )
        return None

    async def _resolve_customer(self, block: CustomerBlock) -> Customer:
        """
        Load the existing customer or find-or-create one by email.

        Raises:
            NotFoundError: If an existing customer id is unknown
        """
        if block.existing_customer_id:
            try:
                customer_id = UUID(block.existing_customer_id)
            except ValueError:
                raise NotFoundError(resource_type="customer", resource_id=block.existing_customer_id) from None
            customer = await self.db.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError(resource_type="customer", resource_id=block.existing_customer_id)
            return customer

        email = str(block.email).lower()
        result = await self.db.execute(select(Customer).where(func.lower(Customer.email) == email))
        customer = result.scalar_one_or_none()
        if customer:
            return customer

        customer = Customer(
            first_name=block.first_name,
            last_name=block.last_name,
            email=email,
            phone=block.phone,
        )
        self.db.add(customer)
        await self.db.flush()

        logger.info("Customer created for manual booking", extra={"customer_id": str(customer.id), "email": email})
        return customer

    def derive_price(self, tour: Tour, option: Optional[TourBookingOption], request: CreateBookingRequest) -> PriceBreakdown:
        """Re-derive the operator price with the same calculator the desk uses."""
        fare = option.price if option else tour.discount_price
        party = _Party(adults=request.schedule.adults, children=request.schedule.children)
        override = request.pricing.total if request.pricing.overridden else None
        return compute_price(party, fare, DEFAULT_ADD_ON_CATALOG, OPERATOR, override_total=override)

    async def create_booking(self, request: CreateBookingRequest, actor: str) -> Booking:
        """
        Persist an operator booking.

        Args:
            request: Booking creation request
            actor: Operator recorded as the creator

        Returns:
            Created booking entity

        Raises:
            NotFoundError: If the resource or the existing customer is unknown
            BookingOptionError: If the fare variant is missing or unknown
            PriceMismatchError: If a computed total disagrees with the server's
        """
        tour = await self.resource_service.get_resource(parse_resource_id(request.resource_id))
        try:
            option = self._resolve_option(tour, request.schedule.booking_option_id)
            breakdown = self.derive_price(tour, option, request)

            if not breakdown.overridden:
                derived_total = round_money(breakdown.total)
                submitted_total = round_money(request.pricing.total)
                if derived_total != submitted_total:
                    logger.warning(
                        "Booking rejected - price mismatch",
                        extra={
                            "resource_id": request.resource_id,
                            "submitted_total": str(submitted_total),
                            "calculated_total": str(derived_total),
                            "actor": actor,
                        }
                    )
                    raise PriceMismatchError(submitted_total, derived_total)
        except ValidationError as e:
            metrics_collector.record_booking_rejection(e.problem_details.get("code", "VALIDATION"))
            raise

        customer = await self._resolve_customer(request.customer)
        reference = await self._unique_reference()
        rounded = breakdown.rounded()
        paid = request.payment.status is PaymentStatus.PAID

        booking = Booking(
            reference=reference,
            tour_id=tour.id,
            customer=customer,
            booking_date=request.schedule.date,
            booking_time=request.schedule.time,
            adult_guests=request.schedule.adults,
            child_guests=request.schedule.children,
            infant_guests=request.schedule.infants,
            booking_option_id=str(option.id) if option else None,
            booking_option_label=option.label if option else None,
            base_fare=option.price if option else tour.discount_price,
            subtotal=breakdown.subtotal,
            service_fee=rounded.service_fee,
            tax=rounded.tax,
            total_price=rounded.total,
            price_overridden=breakdown.overridden,
            currency=tour.currency,
            status=(BookingStatus.CONFIRMED if paid else BookingStatus.PENDING).value,
            payment_method=request.payment.method.value,
            payment_status=request.payment.status.value,
            payment_reference=request.payment.reference or f"MANUAL-{int(time.time() * 1000)}",
            special_requests=request.special_requests,
            hotel_pickup_details=request.hotel_pickup_details,
            internal_notes=request.internal_notes,
            created_by=actor,
        )
        self.db.add(booking)
        await self.db.commit()
        await self.db.refresh(booking)

        metrics_collector.record_operator_booking(request.payment.status.value)
        logger.info(
            "Manual booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "reference": reference,
                "resource_id": str(tour.id),
                "customer_id": str(customer.id),
                "guests": booking.guests,
                "total": str(rounded.total),
                "overridden": breakdown.overridden,
                "status": booking.status,
                "actor": actor,
            }
        )
        return booking

    async def get_booking_by_reference(self, reference: str) -> Booking:
        """
        Get a booking by its reference.

        Raises:
            NotFoundError: If no booking carries the reference
        """
        result = await self.db.execute(select(Booking).where(Booking.reference == reference))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError(resource_type="booking", resource_id=reference)
        return booking
