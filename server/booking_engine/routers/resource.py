"""Resource router for catalog reads and month availability."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException, ValidationError
from ..engine.calendar import YearMonth
from ..schemas.availability import MonthAvailabilityResponse
from ..schemas.common import problem_responses
from ..schemas.resource import CreateResourceRequest, Resource, ResourceList
from ..services.availability_service import AvailabilityService
from ..services.resource_service import ResourceService, parse_resource_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/resources", tags=["resources"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
SEARCH_QUERY = Query(None, max_length=255, description="Case-insensitive title filter")
MONTH_QUERY = Query(..., description="Calendar month as YYYY-MM")


@router.get("", response_model=ResourceList, responses=problem_responses(422))
async def list_resources(
    search: Optional[str] = SEARCH_QUERY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List bookable resources, optionally filtered by title."""
    resource_service = ResourceService(db)

    try:
        tours = await resource_service.list_resources(search=search)
        response_data = ResourceList(
            items=[Resource.from_model(tour) for tour in tours],
            count=len(tours),
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in resource listing",
            extra={"search": search, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("", response_model=Resource, status_code=201, responses=problem_responses(409, 422))
async def create_resource(
    request: CreateResourceRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Register a resource with its slot templates and fare variants."""
    resource_service = ResourceService(db)

    try:
        tour = await resource_service.create_resource(request)
        response_data = Resource.from_model(tour)
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in resource creation",
            extra={"slug": request.slug, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/{resource_id}", response_model=Resource, responses=problem_responses(404))
async def get_resource(
    resource_id: str,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a resource with its variants and effective fare."""
    resource_service = ResourceService(db)

    try:
        tour = await resource_service.get_resource(parse_resource_id(resource_id))
        response_data = Resource.from_model(tour)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in resource retrieval",
            extra={"resource_id": resource_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get(
    "/{resource_id}/availability",
    response_model=MonthAvailabilityResponse,
    responses=problem_responses(404, 422),
)
async def get_availability(
    resource_id: str,
    month: str = MONTH_QUERY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Get bookable slots and fully booked dates for one calendar month.

    Computed fresh on every request.
    """
    try:
        year_month = YearMonth.parse(month)
    except ValueError as e:
        raise ValidationError(
            detail=str(e),
            errors={"month": month},
            code="INVALID_MONTH",
        ) from e

    availability_service = AvailabilityService(db)

    try:
        availability = await availability_service.get_month_availability(
            parse_resource_id(resource_id), year_month
        )
        return JSONResponse(
            status_code=200,
            content=availability.model_dump(mode="json", by_alias=True)
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in availability query",
            extra={"resource_id": resource_id, "month": month, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
