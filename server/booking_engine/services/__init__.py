"""Service layer package."""

from .availability_service import AvailabilityService
from .booking_service import BookingService
from .resource_service import ResourceService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "ResourceService",
]
