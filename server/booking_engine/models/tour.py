"""Tour (bookable resource) model definitions."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, Numeric, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking


class Tour(Base):
    """Tour entity: the resource a booking is scheduled against."""

    __tablename__ = "tours"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # Flat discounted adult fare and the optional list price shown struck through
    discount_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    original_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Weekdays the tour runs on, 0=Monday .. 6=Sunday
    available_days: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("discount_price >= 0", name="ck_tour_discount_price_non_negative"),
        CheckConstraint("length(currency) = 3", name="ck_tour_currency_length"),
    )

    slots: Mapped[list["TourSlot"]] = relationship(
        "TourSlot",
        back_populates="tour",
        cascade="all, delete-orphan",
        order_by="TourSlot.start_time",
        lazy="selectin",
    )
    booking_options: Mapped[list["TourBookingOption"]] = relationship(
        "TourBookingOption",
        back_populates="tour",
        cascade="all, delete-orphan",
        order_by="TourBookingOption.position",
        lazy="selectin",
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="tour")

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, title='{self.title}', fare={self.discount_price})>"


class TourSlot(Base):
    """Recurring start time offered on every available day, with its seat capacity."""

    __tablename__ = "tour_slots"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tour_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM, 24h
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_tour_slot_capacity_non_negative"),
    )

    tour: Mapped["Tour"] = relationship("Tour", back_populates="slots")

    def __repr__(self) -> str:
        return f"<TourSlot(tour_id={self.tour_id}, start_time='{self.start_time}', capacity={self.capacity})>"


class TourBookingOption(Base):
    """A fare variant of a tour (e.g. private vs shared)."""

    __tablename__ = "tour_booking_options"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tour_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    option_type: Mapped[str] = mapped_column(String(64), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    original_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(64), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_tour_booking_option_price_non_negative"),
    )

    tour: Mapped["Tour"] = relationship("Tour", back_populates="booking_options")

    def __repr__(self) -> str:
        return f"<TourBookingOption(id={self.id}, label='{self.label}', price={self.price})>"
