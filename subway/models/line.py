"""Line and section models."""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from subway.helpers.section_chain import Section, SectionChain
from subway.models.base import BaseModel
from subway.models.station import Station


class Line(BaseModel):
    """A subway line (e.g., Line 4) made of a chain of sections."""

    __tablename__ = "lines"

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    color: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Relationships
    sections: Mapped[list["LineSection"]] = relationship(
        back_populates="line",
        cascade="all, delete-orphan",
    )

    def to_chain(self) -> SectionChain:
        """
        Build the section chain for this line.

        Requires sections to be loaded.

        Raises:
            BrokenChainError: If stored sections do not form a single path
        """
        return SectionChain(section.to_section() for section in self.sections)

    def __repr__(self) -> str:
        """String representation of the line."""
        return f"<Line(id={self.id}, name={self.name}, color={self.color})>"


class LineSection(BaseModel):
    """Stored section: a directed edge between two stations on a line."""

    __tablename__ = "sections"

    line_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    up_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    down_station_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    distance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Relationships
    line: Mapped[Line] = relationship(back_populates="sections")
    up_station: Mapped[Station] = relationship(foreign_keys=[up_station_id])
    down_station: Mapped[Station] = relationship(foreign_keys=[down_station_id])

    # A station leaves and enters a line at most once
    __table_args__ = (
        UniqueConstraint("line_id", "up_station_id", name="uq_section_line_up_station"),
        UniqueConstraint("line_id", "down_station_id", name="uq_section_line_down_station"),
        CheckConstraint("distance > 0", name="ck_section_distance_positive"),
        CheckConstraint("up_station_id <> down_station_id", name="ck_section_distinct_stations"),
        Index("ix_sections_up_station", "up_station_id"),
        Index("ix_sections_down_station", "down_station_id"),
    )

    def to_section(self) -> Section:
        """Convert to the plain section used by the chain helpers."""
        return Section(
            up_station_id=self.up_station_id,
            down_station_id=self.down_station_id,
            distance=self.distance,
        )

    def matches(self, section: Section) -> bool:
        """Check whether this row stores the given section."""
        return (
            self.up_station_id == section.up_station_id
            and self.down_station_id == section.down_station_id
            and self.distance == section.distance
        )

    def __repr__(self) -> str:
        """String representation of the section."""
        return (
            f"<LineSection(id={self.id}, line={self.line_id}, "
            f"up={self.up_station_id}, down={self.down_station_id}, distance={self.distance})>"
        )
