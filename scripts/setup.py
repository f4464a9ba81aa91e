#!/usr/bin/env python3
"""Setup script for the trip waiting list API."""

import asyncio
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from tripqueue.core.clock import system_clock
from tripqueue.core.database import async_session_factory, close_db
from tripqueue.models import Trip
from tripqueue.schemas.trip import CreateTripRequest
from tripqueue.services.trip_service import TripService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_TRIPS = [
    # name, days until departure, total rooms, available rooms
    ("Northern Lights Adventure", 45, 12, 0),
    ("Lofoten Islands Explorer", 90, 8, 2),
    ("Patagonia Trek", 180, 10, 10),
]


def setup_database():
    """Bring the database schema up to date."""
    logger.info("Running database migrations...")

    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    command.upgrade(alembic_cfg, "head")

    logger.info("Database migrations completed")


async def create_sample_data():
    """Create a few sample trips, one of them sold out."""
    from datetime import timedelta

    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing_trips = await db.scalar(select(func.count()).select_from(Trip))
        if existing_trips:
            logger.info("Sample data already exists, skipping...")
            return

        trip_service = TripService(db, system_clock)
        today = system_clock.now().date()
        for name, days_ahead, total_rooms, available_rooms in SAMPLE_TRIPS:
            trip = await trip_service.create_trip(
                CreateTripRequest(
                    name=name,
                    start_date=today + timedelta(days=days_ahead),
                    total_rooms=total_rooms,
                    available_rooms=available_rooms,
                )
            )
            logger.info(f"Created trip {trip.name} ({trip.id})")

    await close_db()
    logger.info("Sample data created successfully!")


def main():
    """Main setup function."""
    logger.info("Starting trip waiting list API setup...")

    setup_database()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn tripqueue.main:app --reload")


if __name__ == "__main__":
    main()
