"""Station management service."""

import uuid

import structlog
from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from subway.models.line import LineSection
from subway.models.station import Station
from subway.schemas.stations import CreateStationRequest

logger = structlog.get_logger(__name__)


class StationService:
    """Service for managing stations."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the station service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_station_by_id(self, station_id: uuid.UUID) -> Station:
        """
        Get a station by ID.

        Raises:
            HTTPException: 404 if station not found
        """
        if not (station := await self.db.get(Station, station_id)):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Station '{station_id}' not found.",
            )
        return station

    async def list_stations(self) -> list[Station]:
        """List all stations ordered by name."""
        result = await self.db.execute(select(Station).order_by(Station.name))
        return list(result.scalars().all())

    async def create_station(self, request: CreateStationRequest) -> Station:
        """
        Create a new station.

        Raises:
            HTTPException: 409 if a station with the same name exists
        """
        station = Station(name=request.name)

        try:
            self.db.add(station)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station '{request.name}' already exists.",
            ) from None

        await self.db.refresh(station)
        logger.info("station_created", station_id=str(station.id), name=station.name)
        return station

    async def delete_station(self, station_id: uuid.UUID) -> None:
        """
        Delete a station that no line uses.

        Raises:
            HTTPException: 404 if station not found, 409 if a section still uses it
        """
        station = await self.get_station_by_id(station_id)

        in_use = await self.db.scalar(
            select(func.count(LineSection.id)).where(
                or_(LineSection.up_station_id == station_id, LineSection.down_station_id == station_id)
            )
        )
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Station '{station.name}' is used by {in_use} section(s); remove it from its lines first.",
            )

        await self.db.delete(station)
        await self.db.commit()
        logger.info("station_deleted", station_id=str(station_id))
