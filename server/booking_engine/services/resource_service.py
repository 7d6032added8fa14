"""Resource (tour) catalog service."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError
from ..models.tour import Tour, TourBookingOption, TourSlot
from ..schemas.resource import CreateResourceRequest

logger = logging.getLogger(__name__)


def parse_resource_id(resource_id: str) -> UUID:
    """
    Parse a resource id from a path or request body.

    Raises:
        NotFoundError: If the id is not a UUID, since no such resource can exist
    """
    try:
        return UUID(str(resource_id))
    except ValueError:
        raise NotFoundError(resource_type="resource", resource_id=str(resource_id)) from None


class ResourceService:
    """Service for catalog reads and registration."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_resource(self, request: CreateResourceRequest) -> Tour:
        """
        Register a new resource with its slot templates and fare variants.

        Raises:
            ConflictError: If a resource with the same slug already exists
        """
        existing = await self.get_resource_by_slug(request.slug)
        if existing:
            logger.warning(
                "Resource creation failed - slug already exists",
                extra={"slug": request.slug, "existing_resource_id": str(existing.id)}
            )
            raise ConflictError(
                detail=f"Resource with slug '{request.slug}' already exists",
                conflicting_resource={"id": str(existing.id), "slug": existing.slug}
            )

        tour = Tour(
            title=request.title,
            slug=request.slug,
            discount_price=request.fare,
            original_price=request.list_price,
            currency=request.currency,
            available_days=list(request.available_days),
            slots=[TourSlot(start_time=slot.time, capacity=slot.capacity) for slot in request.slots],
            booking_options=[
                TourBookingOption(
                    option_type=option.option_type,
                    label=option.label,
                    price=option.fare,
                    original_price=option.list_price,
                    duration=option.duration,
                    position=position,
                )
                for position, option in enumerate(request.booking_options)
            ],
        )
        self.db.add(tour)
        await self.db.commit()

        logger.info(
            "Resource created successfully",
            extra={"resource_id": str(tour.id), "slug": tour.slug, "fare": str(tour.discount_price)}
        )
        return await self.get_resource(tour.id)

    async def get_resource(self, resource_id: UUID) -> Tour:
        """
        Get a resource by ID with slots and variants loaded.

        Raises:
            NotFoundError: If the resource does not exist
        """
        result = await self.db.execute(
            select(Tour).where(Tour.id == resource_id).execution_options(populate_existing=True)
        )
        tour = result.scalar_one_or_none()
        if not tour:
            raise NotFoundError(resource_type="resource", resource_id=str(resource_id))
        return tour

    async def get_resource_by_slug(self, slug: str) -> Optional[Tour]:
        result = await self.db.execute(select(Tour).where(Tour.slug == slug))
        return result.scalar_one_or_none()

    async def list_resources(self, search: Optional[str] = None, limit: int = 500) -> list[Tour]:
        """List resources ordered by title, optionally filtered by a case-insensitive title match."""
        stmt = select(Tour).order_by(Tour.title).limit(limit)
        if search:
            stmt = stmt.where(func.lower(Tour.title).contains(search.strip().lower()))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
