"""Async HTTP client the booking engine uses to reach the booking service."""

import logging
from typing import Optional

import httpx
from httpx_retries import Retry, RetryTransport

from ..core.config import settings
from ..engine.calendar import YearMonth
from ..engine.errors import AvailabilityUnavailableError, BookingPersistError
from ..engine.resolver import MonthAvailability, SlotAvailability
from ..schemas.availability import MonthAvailabilityResponse
from ..schemas.booking import BookingDetail, CreateBookingRequest, CreateBookingResponse
from ..schemas.resource import Resource, ResourceList

logger = logging.getLogger(__name__)

DEFAULT_PERSIST_FAILURE = "Failed to create booking"


def _problem_detail(response: httpx.Response, fallback: str) -> tuple[str, Optional[str]]:
    """Pull ``detail`` and ``code`` out of a problem details body."""
    try:
        body = response.json()
    except ValueError:
        return fallback, None
    if not isinstance(body, dict):
        return fallback, None
    return body.get("detail") or body.get("title") or fallback, body.get("code")


class BookingApiClient:
    """
    Client for the catalog, availability and operator booking endpoints.

    Reads are retried on gateway errors; booking creation is never retried.
    """

    HEADERS = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        actor: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ):
        retry = Retry(
            total=settings.http_retries if retries is None else retries,
            backoff_factor=0.5,
            status_forcelist=[502, 503, 504],
            allowed_methods=["GET"],
        )
        self.client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            transport=RetryTransport(transport=transport, retry=retry),
            timeout=timeout or settings.http_timeout_seconds,
        )
        self.client.headers.update(self.HEADERS)
        if actor:
            self.client.headers["X-Actor"] = actor

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def get_resource(self, resource_id: str) -> Resource:
        response = await self.client.get(f"/v1/resources/{resource_id}")
        response.raise_for_status()
        return Resource.model_validate(response.json())

    async def list_resources(self, search: Optional[str] = None) -> list[Resource]:
        params = {"search": search} if search else None
        response = await self.client.get("/v1/resources", params=params)
        response.raise_for_status()
        return ResourceList.model_validate(response.json()).items

    async def get_availability(self, resource_id: str, month: YearMonth) -> MonthAvailability:
        """
        Fetch one month of availability.

        Raises:
            AvailabilityUnavailableError: On transport failures and error
            responses, so callers can tell an outage from an empty month
        """
        try:
            response = await self.client.get(
                f"/v1/resources/{resource_id}/availability",
                params={"month": str(month)},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            reason, _ = _problem_detail(e.response, "Availability service unavailable")
            logger.warning(
                "Availability request failed",
                extra={"resource_id": resource_id, "month": str(month), "status_code": e.response.status_code},
            )
            raise AvailabilityUnavailableError(resource_id, str(month), reason) from e
        except httpx.TransportError as e:
            logger.warning(
                "Availability request could not be sent",
                extra={"resource_id": resource_id, "month": str(month), "error": str(e)},
            )
            raise AvailabilityUnavailableError(resource_id, str(month)) from e

        payload = MonthAvailabilityResponse.model_validate(response.json())
        return MonthAvailability(
            slots_by_date={
                day: tuple(SlotAvailability(time=slot.time, remaining=slot.remaining) for slot in slots)
                for day, slots in payload.available_slots_by_date.items()
            },
            fully_booked_dates=frozenset(payload.fully_booked_dates),
        )

    async def create_booking(self, request: CreateBookingRequest) -> CreateBookingResponse:
        """
        Persist an operator booking.

        Raises:
            BookingPersistError: With the server's ``detail`` verbatim when the
            booking is rejected
        """
        try:
            response = await self.client.post("/v1/bookings", json=request.model_dump(mode="json"))
        except httpx.TransportError as e:
            logger.error("Booking request could not be sent", extra={"error": str(e)})
            raise BookingPersistError(DEFAULT_PERSIST_FAILURE) from e

        if response.is_error:
            reason, code = _problem_detail(response, DEFAULT_PERSIST_FAILURE)
            logger.info(
                "Booking rejected by server",
                extra={"status_code": response.status_code, "code": code, "reason": reason},
            )
            raise BookingPersistError(reason, status_code=response.status_code, code=code)

        return CreateBookingResponse.model_validate(response.json())

    async def get_booking(self, reference: str) -> BookingDetail:
        response = await self.client.get(f"/v1/bookings/{reference}")
        response.raise_for_status()
        return BookingDetail.model_validate(response.json())
