"""Models module exporting all database models."""

from .booking import Booking, BookingStatus, Customer
from .tour import Tour, TourBookingOption, TourSlot

__all__ = [
    # Catalog entities
    "Tour",
    "TourSlot",
    "TourBookingOption",

    # Booking entities
    "Customer",
    "Booking",
    "BookingStatus",
]
