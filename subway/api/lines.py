"""Lines API endpoints, including section editing."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_db
from subway.helpers.section_chain import BrokenChainError, SectionError
from subway.models.line import Line
from subway.schemas.lines import (
    CreateLineRequest,
    LineListItemResponse,
    LineResponse,
    SectionRequest,
    SectionResponse,
    UpdateLineRequest,
)
from subway.schemas.stations import StationResponse
from subway.services.line_service import LineService
from subway.services.section_service import SectionService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/lines", tags=["lines"])


# ==================== Helper Functions ====================


def build_line_response(line: Line) -> LineResponse:
    """
    Project a line onto its up → down response.

    Args:
        line: Line with sections and their stations loaded

    Returns:
        LineResponse with stations and sections in travel order
    """
    chain = line.to_chain()
    rows = {row.up_station_id: row for row in line.sections}
    ordered_rows = [rows[section.up_station_id] for section in chain.ordered_sections()]

    stations = [ordered_rows[0].up_station, *(row.down_station for row in ordered_rows)]

    return LineResponse(
        id=line.id,
        name=line.name,
        color=line.color,
        stations=[StationResponse.model_validate(station) for station in stations],
        sections=[SectionResponse.model_validate(row) for row in ordered_rows],
        total_distance=chain.total_distance(),
    )


def section_error_to_http(error: SectionError) -> HTTPException:
    """
    Translate a rejected section edit into an HTTP error.

    Request errors map to 400; a stored chain that is already broken is a
    server-side data problem and maps to 500.
    """
    detail = {"code": error.code, "message": error.message}
    if isinstance(error, BrokenChainError):
        logger.error("section_chain_broken", **detail)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# ==================== Line Endpoints ====================


@router.post("", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def create_line(
    request: CreateLineRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Create a line with its first section.

    Raises:
        HTTPException: 400 for an invalid first section, 404 if a station is
            missing, 409 if the name is taken
    """
    try:
        line = await LineService(db).create_line(request)
    except SectionError as e:
        raise section_error_to_http(e) from e
    return build_line_response(line)


@router.get("", response_model=list[LineListItemResponse])
async def list_lines(db: AsyncSession = Depends(get_db)) -> list[LineListItemResponse]:
    """List all lines with section counts."""
    lines = await LineService(db).list_lines()
    return [
        LineListItemResponse(
            id=line.id,
            name=line.name,
            color=line.color,
            section_count=len(line.sections),
        )
        for line in lines
    ]


@router.get("/{line_id}", response_model=LineResponse)
async def get_line(
    line_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Get a line with its stations in up → down order.

    Raises:
        HTTPException: 404 if not found
    """
    line = await LineService(db).get_line_by_id(line_id)
    try:
        return build_line_response(line)
    except SectionError as e:
        raise section_error_to_http(e) from e


@router.patch("/{line_id}", response_model=LineResponse)
async def update_line(
    line_id: UUID,
    request: UpdateLineRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Update a line's name or colour.

    Raises:
        HTTPException: 404 if not found, 409 if the name is taken
    """
    line = await LineService(db).update_line(line_id, request)
    return build_line_response(line)


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line(
    line_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a line and its sections.

    Raises:
        HTTPException: 404 if not found
    """
    await LineService(db).delete_line(line_id)


# ==================== Section Endpoints ====================


@router.post("/{line_id}/sections", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def add_section(
    line_id: UUID,
    request: SectionRequest,
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Add a section to a line.

    The new section either extends the line at a terminus or splits an
    existing section when it joins a station strictly inside the line.

    Raises:
        HTTPException: 400 if the section cannot be placed, 404 if the line
            or a station is missing
    """
    try:
        line = await SectionService(db).add_section(line_id, request)
    except SectionError as e:
        raise section_error_to_http(e) from e
    return build_line_response(line)


@router.delete("/{line_id}/sections", response_model=LineResponse)
async def remove_section(
    line_id: UUID,
    station_id: UUID = Query(..., alias="stationId", description="Station to remove from the line"),
    db: AsyncSession = Depends(get_db),
) -> LineResponse:
    """
    Remove a station from a line.

    Removing a terminus drops its section; removing an interior station
    merges its two sections into one.

    Raises:
        HTTPException: 400 if the station cannot be removed, 404 if the line
            is missing
    """
    try:
        line = await SectionService(db).remove_section(line_id, station_id)
    except SectionError as e:
        raise section_error_to_http(e) from e
    return build_line_response(line)
