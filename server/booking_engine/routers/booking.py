"""Booking router for operator booking operations."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.booking import BookingDetail, CreateBookingRequest, CreateBookingResponse
from ..schemas.common import problem_responses
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/bookings", tags=["bookings"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
ACTOR_DEPENDENCY = Header("system", alias="X-Actor")


def _convert_booking_to_response(booking_model) -> CreateBookingResponse:
    """Convert booking model to creation response schema."""
    return CreateBookingResponse(
        id=str(booking_model.id),
        reference=booking_model.reference,
        status=booking_model.status,
        total=booking_model.total_price,
        currency=booking_model.currency,
    )


@router.post("", response_model=CreateBookingResponse, status_code=201, responses=problem_responses(404, 422))
async def create_booking(
    request: CreateBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    actor: str = ACTOR_DEPENDENCY
) -> JSONResponse:
    """
    Persist a manual booking entered on the operator desk.

    The price is re-derived on the server; a computed total that does not
    match is rejected. A manually overridden total is stored as given.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.create_booking(request, actor)
        response_data = _convert_booking_to_response(booking)

        logger.info(
            "Manual booking persisted",
            extra={
                "booking_id": response_data.id,
                "reference": response_data.reference,
                "resource_id": request.resource_id,
                "actor": actor
            }
        )

        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in manual booking creation",
            extra={
                "resource_id": request.resource_id,
                "actor": actor,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/{reference}", response_model=BookingDetail, responses=problem_responses(404))
async def get_booking(
    reference: str,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a booking by its reference."""
    booking_service = BookingService(db)

    try:
        booking = await booking_service.get_booking_by_reference(reference)
        response_data = BookingDetail.from_model(booking)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking retrieval",
            extra={"reference": reference, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
