"""Pydantic schemas for lines and their sections."""

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from subway.schemas.stations import StationResponse

# ==================== Helper Functions ====================


def _validate_distinct_stations(up_station_id: UUID | None, down_station_id: UUID | None) -> None:
    """
    Validate that a section does not start and end at the same station.

    Args:
        up_station_id: Up station UUID
        down_station_id: Down station UUID

    Raises:
        ValueError: If both ids are provided and equal
    """
    if up_station_id is not None and up_station_id == down_station_id:
        msg = "up_station_id and down_station_id must be different stations"
        raise ValueError(msg)


# ==================== Request Schemas ====================


class SectionRequest(BaseModel):
    """
    Request to add a section to a line.

    Accepts both snake_case and camelCase keys (``upStationId``).
    """

    up_station_id: UUID = Field(
        ...,
        validation_alias=AliasChoices("up_station_id", "upStationId"),
        description="Station the section starts from",
    )
    down_station_id: UUID = Field(
        ...,
        validation_alias=AliasChoices("down_station_id", "downStationId"),
        description="Station the section ends at",
    )
    distance: int = Field(..., gt=0, description="Section length")

    @model_validator(mode="after")
    def validate_stations(self) -> "SectionRequest":
        """Validate endpoints using shared helper."""
        _validate_distinct_stations(self.up_station_id, self.down_station_id)
        return self


class CreateLineRequest(SectionRequest):
    """Request to create a line together with its first section."""

    name: str = Field(..., min_length=1, max_length=255, description="Line name (e.g., '4호선')")
    color: str = Field(..., min_length=1, max_length=50, description="Display colour (e.g., 'bg-blue-600')")


class UpdateLineRequest(BaseModel):
    """Request to update a line's metadata. Sections are edited separately."""

    name: str | None = Field(None, min_length=1, max_length=255)
    color: str | None = Field(None, min_length=1, max_length=50)


# ==================== Response Schemas ====================


class SectionResponse(BaseModel):
    """Response schema for a section with resolved stations."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    up_station: StationResponse
    down_station: StationResponse
    distance: int


class LineResponse(BaseModel):
    """Full response schema for a line in up → down order."""

    id: UUID
    name: str
    color: str
    stations: list[StationResponse] = Field(..., description="Stations from up terminus to down terminus")
    sections: list[SectionResponse] = Field(..., description="Sections from up terminus to down terminus")
    total_distance: int


class LineListItemResponse(BaseModel):
    """Simplified response schema for line listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    section_count: int = Field(..., description="Number of sections on the line")
