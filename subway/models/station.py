"""Station model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from subway.models.base import BaseModel


class Station(BaseModel):
    """A subway station. Sections refer to stations by id only."""

    __tablename__ = "stations"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation of the station."""
        return f"<Station(id={self.id}, name={self.name})>"
