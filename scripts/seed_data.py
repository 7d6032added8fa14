#!/usr/bin/env python3
"""Create the booking store schema and load sample resources."""

import asyncio
import logging
from decimal import Decimal

from booking_engine.core.database import async_session_factory, close_db, init_db
from booking_engine.schemas.resource import BookingOptionInput, CreateResourceRequest, SlotTemplate
from booking_engine.services.resource_service import ResourceService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_RESOURCES = [
    CreateResourceRequest(
        title="Luxor West Bank Day Tour",
        slug="luxor-west-bank-day-tour",
        fare=Decimal("100.00"),
        list_price=Decimal("130.00"),
        available_days=[0, 2, 4, 5],
        slots=[
            SlotTemplate(time="08:00", capacity=20),
            SlotTemplate(time="14:00", capacity=12),
        ],
    ),
    CreateResourceRequest(
        title="Hurghada Desert Safari",
        slug="hurghada-desert-safari",
        fare=Decimal("45.00"),
        available_days=list(range(7)),
        slots=[
            SlotTemplate(time="10:00", capacity=16),
            SlotTemplate(time="15:00", capacity=16),
        ],
        booking_options=[
            BookingOptionInput(option_type="shared", label="Shared Jeep", fare=Decimal("45.00")),
            BookingOptionInput(
                option_type="private",
                label="Private Jeep",
                fare=Decimal("80.00"),
                list_price=Decimal("95.00"),
                duration="5 Hours",
            ),
        ],
    ),
]


async def create_sample_data() -> None:
    """Register the sample resources, skipping slugs that already exist."""
    async with async_session_factory() as db:
        service = ResourceService(db)
        for request in SAMPLE_RESOURCES:
            if await service.get_resource_by_slug(request.slug):
                logger.info(f"Resource {request.slug} already exists, skipping...")
                continue
            tour = await service.create_resource(request)
            logger.info(f"Created resource {tour.slug} ({tour.id})")


async def main():
    """Main setup function."""
    logger.info("Creating database schema...")
    await init_db()
    try:
        await create_sample_data()
    finally:
        await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: uvicorn booking_engine.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
