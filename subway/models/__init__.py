"""Database models for the subway line service."""

# Import all models to register them with SQLAlchemy metadata
from subway.models.base import Base, BaseModel
from subway.models.line import Line, LineSection
from subway.models.station import Station

__all__ = [
    # Base
    "Base",
    "BaseModel",
    # Subway models
    "Line",
    "LineSection",
    "Station",
]
