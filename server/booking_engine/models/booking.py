"""Customer and operator booking model definitions."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .tour import Tour


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    CONFIRMED = "CONFIRMED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


class Customer(Base):
    """Customer identity a booking is attached to."""

    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, email='{self.email}')>"


class Booking(Base):
    """Booking record persisted by the operator flow."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    reference: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)

    tour_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("customers.id"),
        nullable=False,
        index=True
    )

    # Schedule and party
    booking_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    booking_time: Mapped[str] = mapped_column(String(5), nullable=False)
    adult_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    child_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    infant_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Fare variant snapshot
    booking_option_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    booking_option_label: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Pricing; fee and tax are null when the total was overridden by hand
    base_fare: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    service_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    tax: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_overridden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Payment bookkeeping
    status: Mapped[BookingStatus] = mapped_column(String(20), nullable=False, index=True)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(128), nullable=True)

    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    hotel_pickup_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("adult_guests >= 0", name="ck_booking_adults_non_negative"),
        CheckConstraint("child_guests >= 0", name="ck_booking_children_non_negative"),
        CheckConstraint("infant_guests >= 0", name="ck_booking_infants_non_negative"),
        CheckConstraint("adult_guests + child_guests >= 1", name="ck_booking_has_paying_guest"),
        CheckConstraint("total_price >= 0", name="ck_booking_total_non_negative"),
    )

    tour: Mapped["Tour"] = relationship("Tour", back_populates="bookings")
    customer: Mapped["Customer"] = relationship("Customer", back_populates="bookings", lazy="selectin")

    @property
    def guests(self) -> int:
        """Seats taken, infants included."""
        return self.adult_guests + self.child_guests + self.infant_guests

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, reference='{self.reference}', tour_id={self.tour_id}, "
            f"date={self.booking_date}, time='{self.booking_time}', status={self.status})>"
        )
