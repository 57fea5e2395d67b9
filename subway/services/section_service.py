"""Section editing service: adds and removes stations on a line."""

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.telemetry import service_span
from subway.helpers.section_editor import ChainEdit, insert_section, remove_station
from subway.models.line import Line, LineSection
from subway.schemas.lines import SectionRequest
from subway.services.line_service import LineService
from subway.services.station_service import StationService

logger = structlog.get_logger(__name__)


class SectionService:
    """
    Service that persists section chain edits.

    Loads the line's sections, lets the pure section editor decide the new
    chain, then writes only the sections that changed. Editor errors are
    raised before anything is written, so a rejected request leaves the line
    untouched.
    """

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize the section service.

        Args:
            db: Database session
        """
        self.db = db
        self.line_service = LineService(db)
        self.station_service = StationService(db)

    async def add_section(self, line_id: uuid.UUID, request: SectionRequest) -> Line:
        """
        Add a section to a line.

        Args:
            line_id: Line UUID
            request: Section to add

        Returns:
            Updated line with sections loaded

        Raises:
            HTTPException: 404 if the line or a station is missing
            SectionError: If the section cannot be placed on the line
        """
        line = await self.line_service.get_line_by_id(line_id)
        await self.station_service.get_station_by_id(request.up_station_id)
        await self.station_service.get_station_by_id(request.down_station_id)

        with service_span("section.add", "section-service", line_id=str(line_id)) as span:
            edit = insert_section(line.to_chain(), request.up_station_id, request.down_station_id, request.distance)
            span.set_attribute("section.edit_kind", edit.kind.value)

        await self._apply_edit(line, edit)
        logger.info(
            "section_added",
            line_id=str(line_id),
            up_station_id=str(request.up_station_id),
            down_station_id=str(request.down_station_id),
            distance=request.distance,
            edit_kind=edit.kind.value,
            section_count=edit.chain.section_count(),
        )
        return await self.line_service.get_line_by_id(line_id)

    async def remove_section(self, line_id: uuid.UUID, station_id: uuid.UUID) -> Line:
        """
        Remove a station from a line.

        Args:
            line_id: Line UUID
            station_id: Station to remove

        Returns:
            Updated line with sections loaded

        Raises:
            HTTPException: 404 if the line is missing
            SectionError: If the station cannot be removed
        """
        line = await self.line_service.get_line_by_id(line_id)

        with service_span("section.remove", "section-service", line_id=str(line_id)) as span:
            edit = remove_station(line.to_chain(), station_id)
            span.set_attribute("section.edit_kind", edit.kind.value)

        await self._apply_edit(line, edit)
        logger.info(
            "section_removed",
            line_id=str(line_id),
            station_id=str(station_id),
            edit_kind=edit.kind.value,
            section_count=edit.chain.section_count(),
        )
        return await self.line_service.get_line_by_id(line_id)

    async def _apply_edit(self, line: Line, edit: ChainEdit) -> None:
        """
        Write a chain edit in one transaction.

        Removed rows are flushed before new rows are inserted: a split reuses
        the removed section's up or down station, which is unique per line.
        """
        try:
            for removed in edit.removed:
                row = next(row for row in line.sections if row.matches(removed))
                line.sections.remove(row)
            await self.db.flush()

            line.sections.extend(
                LineSection(
                    line_id=line.id,
                    up_station_id=section.up_station_id,
                    down_station_id=section.down_station_id,
                    distance=section.distance,
                )
                for section in edit.added
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
