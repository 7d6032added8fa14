"""HTTP clients for the booking service."""

from .booking_api import BookingApiClient

__all__ = ["BookingApiClient"]
