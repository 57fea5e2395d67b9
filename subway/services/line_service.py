"""Line management service."""

import uuid

import structlog
from fastapi import HTTPException, status
from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from subway.core.telemetry import service_span
from subway.helpers.section_editor import start_chain
from subway.models.line import Line, LineSection
from subway.schemas.lines import CreateLineRequest, UpdateLineRequest
from subway.services.station_service import StationService

logger = structlog.get_logger(__name__)


def _with_sections(query: Select[tuple[Line]]) -> Select[tuple[Line]]:
    """Eager load sections and their stations (no lazy loads under asyncio)."""
    return query.options(
        selectinload(Line.sections).selectinload(LineSection.up_station),
        selectinload(Line.sections).selectinload(LineSection.down_station),
    ).execution_options(populate_existing=True)


class LineService:
    """Service for managing lines."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the line service.

        Args:
            db: Database session
        """
        self.db = db
        self.station_service = StationService(db)

    async def get_line_by_id(self, line_id: uuid.UUID) -> Line:
        """
        Get a line by ID with sections and stations loaded.

        Args:
            line_id: Line UUID

        Returns:
            Line object

        Raises:
            HTTPException: 404 if line not found
        """
        result = await self.db.execute(_with_sections(select(Line).where(Line.id == line_id)))

        if not (line := result.scalar_one_or_none()):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Line '{line_id}' not found.",
            )

        return line

    async def list_lines(self) -> list[Line]:
        """List all lines with sections loaded, ordered by name."""
        result = await self.db.execute(_with_sections(select(Line).order_by(Line.name)))
        return list(result.scalars().all())

    async def create_line(self, request: CreateLineRequest) -> Line:
        """
        Create a line with its first section.

        Args:
            request: Line creation request

        Returns:
            Created line with sections loaded

        Raises:
            HTTPException: 404 if a station is missing, 409 if the name is taken
            InvalidSectionError: If both stations are the same
            InvalidDistanceError: If the distance is not positive
        """
        up_station = await self.station_service.get_station_by_id(request.up_station_id)
        down_station = await self.station_service.get_station_by_id(request.down_station_id)

        with service_span("line.create", "line-service", line_name=request.name):
            chain = start_chain(up_station.id, down_station.id, request.distance)

        line = Line(
            name=request.name,
            color=request.color,
            sections=[
                LineSection(
                    up_station_id=section.up_station_id,
                    down_station_id=section.down_station_id,
                    distance=section.distance,
                )
                for section in chain
            ],
        )

        try:
            self.db.add(line)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Line '{request.name}' already exists.",
            ) from None

        logger.info(
            "line_created",
            line_id=str(line.id),
            name=line.name,
            up_station=up_station.name,
            down_station=down_station.name,
        )
        return await self.get_line_by_id(line.id)

    async def update_line(self, line_id: uuid.UUID, request: UpdateLineRequest) -> Line:
        """
        Update line metadata.

        Raises:
            HTTPException: 404 if line not found, 409 if the new name is taken
        """
        line = await self.get_line_by_id(line_id)

        # Update only provided fields
        if request.name is not None:
            line.name = request.name
        if request.color is not None:
            line.color = request.color

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Line '{request.name}' already exists.",
            ) from None

        return await self.get_line_by_id(line_id)

    async def delete_line(self, line_id: uuid.UUID) -> None:
        """
        Delete a line (and all its sections via cascade).

        Raises:
            HTTPException: 404 if line not found
        """
        line = await self.get_line_by_id(line_id)

        await self.db.delete(line)
        await self.db.commit()
        logger.info("line_deleted", line_id=str(line_id))
