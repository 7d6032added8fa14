"""Operator booking Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from ..engine.calendar import normalize_slot_time
from ..models.booking import BookingStatus

# Alias so fields named `date` do not shadow the type inside class bodies
BookingDate = date


class PaymentMethod(str, Enum):
    """How the operator collected payment."""
    EXTERNAL = "external"
    CASH = "cash"
    BANK = "bank"


class PaymentStatus(str, Enum):
    """Whether payment has been received."""
    PAID = "paid"
    PENDING = "pending"


class CustomerBlock(BaseModel):
    """Either an existing customer id or a new customer identity, never both."""

    existing_customer_id: Optional[str] = Field(None, description="ID of an existing customer")
    first_name: Optional[str] = Field(None, max_length=128, description="First name of a new customer")
    last_name: Optional[str] = Field(None, max_length=128, description="Last name of a new customer")
    email: Optional[EmailStr] = Field(None, description="Email of a new customer")
    phone: Optional[str] = Field(None, max_length=64, description="Phone of a new customer")

    @model_validator(mode="after")
    def check_identity(self) -> "CustomerBlock":
        new_fields = (self.first_name, self.last_name, self.email)
        if self.existing_customer_id:
            if any(new_fields):
                raise ValueError("Provide either existing_customer_id or a new customer, not both")
            return self
        if not all(new_fields):
            raise ValueError("first_name, last_name and email are required for a new customer")
        return self


class ScheduleBlock(BaseModel):
    """When the booking runs and who comes along."""

    date: BookingDate = Field(..., description="Booking date")
    time: str = Field("10:00", description="Start time (HH:MM)")
    adults: int = Field(..., ge=0, description="Adult guests")
    children: int = Field(0, ge=0, description="Child guests")
    infants: int = Field(0, ge=0, description="Infant guests, not priced")
    booking_option_id: Optional[str] = Field(None, description="Chosen fare variant")

    @field_validator("time")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        return normalize_slot_time(v)

    @model_validator(mode="after")
    def check_paying_guest(self) -> "ScheduleBlock":
        if self.adults + self.children < 1:
            raise ValueError("At least one adult or child guest is required")
        return self


class PricingBlock(BaseModel):
    """Price as derived on the operator desk."""

    base_fare: Decimal = Field(..., ge=0, description="Adult fare used for the calculation")
    subtotal: Decimal = Field(..., ge=0, description="Adult and child lines")
    service_fee: Optional[Decimal] = Field(None, ge=0, description="Absent when the total is overridden")
    tax: Optional[Decimal] = Field(None, ge=0, description="Absent when the total is overridden")
    total: Decimal = Field(..., ge=0, description="Amount due")
    overridden: bool = Field(False, description="Whether the total was entered by hand")


class PaymentBlock(BaseModel):
    """Payment bookkeeping for a manual booking."""

    method: PaymentMethod = Field(PaymentMethod.EXTERNAL, description="Payment method")
    status: PaymentStatus = Field(PaymentStatus.PAID, description="Payment status")
    reference: Optional[str] = Field(None, max_length=128, description="External payment reference")


class CreateBookingRequest(BaseModel):
    """Request schema for persisting an operator booking."""

    resource_id: str = Field(..., description="Resource being booked")
    customer: CustomerBlock
    schedule: ScheduleBlock
    pricing: PricingBlock
    payment: PaymentBlock = Field(default_factory=PaymentBlock)
    special_requests: Optional[str] = Field(None, max_length=2000)
    hotel_pickup_details: Optional[str] = Field(None, max_length=2000)
    internal_notes: Optional[str] = Field(None, max_length=2000)


class CreateBookingResponse(BaseModel):
    """Response schema for a persisted operator booking."""

    id: str = Field(..., description="Booking ID")
    reference: str = Field(..., description="Human readable booking reference")
    status: BookingStatus = Field(..., description="Booking status")
    total: Decimal = Field(..., description="Authoritative total")
    currency: str = Field(..., description="ISO 4217 currency code")


class BookingDetail(BaseModel):
    """Full view of a persisted booking."""

    id: str
    reference: str
    resource_id: str
    status: BookingStatus
    customer_email: str
    customer_name: str
    date: BookingDate
    time: str
    adults: int
    children: int
    infants: int
    booking_option_id: Optional[str] = None
    booking_option_label: Optional[str] = None
    base_fare: Decimal
    subtotal: Decimal
    service_fee: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Decimal
    overridden: bool
    currency: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_reference: Optional[str] = None
    special_requests: Optional[str] = None
    hotel_pickup_details: Optional[str] = None
    internal_notes: Optional[str] = None
    created_by: str
    created_at: datetime

    @classmethod
    def from_model(cls, booking) -> "BookingDetail":
        customer = booking.customer
        return cls(
            id=str(booking.id),
            reference=booking.reference,
            resource_id=str(booking.tour_id),
            status=booking.status,
            customer_email=customer.email,
            customer_name=f"{customer.first_name} {customer.last_name}",
            date=booking.booking_date,
            time=booking.booking_time,
            adults=booking.adult_guests,
            children=booking.child_guests,
            infants=booking.infant_guests,
            booking_option_id=booking.booking_option_id,
            booking_option_label=booking.booking_option_label,
            base_fare=booking.base_fare,
            subtotal=booking.subtotal,
            service_fee=booking.service_fee,
            tax=booking.tax,
            total=booking.total_price,
            overridden=booking.price_overridden,
            currency=booking.currency,
            payment_method=booking.payment_method,
            payment_status=booking.payment_status,
            payment_reference=booking.payment_reference,
            special_requests=booking.special_requests,
            hotel_pickup_details=booking.hotel_pickup_details,
            internal_notes=booking.internal_notes,
            created_by=booking.created_by,
            created_at=booking.created_at,
        )
