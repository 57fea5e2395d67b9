"""Pydantic schemas for stations."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateStationRequest(BaseModel):
    """Request to create a station."""

    name: str = Field(..., min_length=1, max_length=255, description="Station name (e.g., '사당역')")

    @field_validator("name")
    @classmethod
    def strip_name(cls, name: str) -> str:
        """Reject names that are only whitespace."""
        stripped = name.strip()
        if not stripped:
            msg = "Station name must not be blank"
            raise ValueError(msg)
        return stripped


class StationResponse(BaseModel):
    """Response schema for a station."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
