"""
Section chain for a single subway line.

A line is stored as an unordered collection of directed sections
(up station → down station, with a distance). These helpers index that
collection by station so that membership and neighbour lookups are O(1),
and rebuild the up → down order on demand by walking from the up terminus.

The chain is immutable: editing operations in subway.helpers.section_editor
return a new chain instead of mutating an existing one.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

# Station identities only need equality and hashing (UUIDs in the database,
# plain strings in tests).
StationId = Hashable


@dataclass(frozen=True)
class Section:
    """One directed, distance-weighted edge between two stations."""

    up_station_id: StationId
    down_station_id: StationId
    distance: int

    def __repr__(self) -> str:
        """String representation of the section."""
        return f"<Section({self.up_station_id!r} -> {self.down_station_id!r}, distance={self.distance})>"


# Custom domain exceptions


class SectionError(Exception):
    """Base exception for rejected section requests."""

    code: str = "SECTION_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidSectionError(SectionError):
    """Raised when a section's up and down stations are the same station."""

    code = "INVALID_SECTION"

    def __init__(self, station_id: StationId) -> None:
        self.station_id = station_id
        super().__init__(f"Up station and down station must differ (got '{station_id}' for both).")


class DuplicateSectionError(SectionError):
    """Raised when both stations of a new section are already on the line."""

    code = "ALREADY_SECTION"

    def __init__(self, up_station_id: StationId, down_station_id: StationId) -> None:
        self.up_station_id = up_station_id
        self.down_station_id = down_station_id
        super().__init__(
            f"Stations '{up_station_id}' and '{down_station_id}' are both already registered on this line."
        )


class DisconnectedSectionError(SectionError):
    """Raised when neither station of a new section is on the line."""

    code = "CAN_NOT_BE_ADDED_SECTION"

    def __init__(self, up_station_id: StationId, down_station_id: StationId) -> None:
        self.up_station_id = up_station_id
        self.down_station_id = down_station_id
        super().__init__(
            f"Neither '{up_station_id}' nor '{down_station_id}' is registered on this line, "
            "so the section cannot be connected."
        )


class InvalidDistanceError(SectionError):
    """
    Raised when a section distance cannot be accepted.

    Either the distance is not positive, or a station inserted between two
    connected stations would need a distance equal to or longer than the
    section it splits.
    """

    code = "INVALID_DISTANCE"

    def __init__(self, distance: int, existing_distance: int | None = None) -> None:
        self.distance = distance
        self.existing_distance = existing_distance
        if existing_distance is None:
            message = f"Section distance must be positive (got {distance})."
        else:
            message = (
                f"Distance {distance} must be shorter than the existing section distance {existing_distance}."
            )
        super().__init__(message)


class OnlySectionError(SectionError):
    """Raised when removing a station would leave the line with no sections."""

    code = "ONLY_SECTION"

    def __init__(self) -> None:
        super().__init__("A line with a single section cannot have a station removed.")


class StationNotFoundError(SectionError):
    """Raised when removing a station that is not on the line."""

    code = "STATION_NOT_FOUND"

    def __init__(self, station_id: StationId) -> None:
        self.station_id = station_id
        super().__init__(f"Station '{station_id}' is not registered on this line.")


class BrokenChainError(SectionError):
    """Raised when a set of sections does not form a single up → down path."""

    code = "BROKEN_CHAIN"


class SectionChain:
    """
    Ordered, loop-free chain of sections for one line.

    Sections are indexed by up station and by down station. Construction
    validates that the sections form exactly one simple path, so every query
    runs against a valid chain.
    """

    __slots__ = ("_by_down", "_by_up", "_down_terminus", "_up_terminus")

    def __init__(self, sections: Iterable[Section]) -> None:
        """
        Build a chain from sections in any order.

        Args:
            sections: Sections of a single line

        Raises:
            BrokenChainError: If the sections are empty, branch, loop, or
                split into more than one path
        """
        by_up: dict[StationId, Section] = {}
        by_down: dict[StationId, Section] = {}

        for section in sections:
            if section.up_station_id == section.down_station_id:
                msg = f"Section {section!r} starts and ends at the same station."
                raise BrokenChainError(msg)
            if section.up_station_id in by_up:
                msg = f"Station '{section.up_station_id}' is the up station of more than one section."
                raise BrokenChainError(msg)
            if section.down_station_id in by_down:
                msg = f"Station '{section.down_station_id}' is the down station of more than one section."
                raise BrokenChainError(msg)
            by_up[section.up_station_id] = section
            by_down[section.down_station_id] = section

        if not by_up:
            msg = "A line must have at least one section."
            raise BrokenChainError(msg)

        up_termini = [station for station in by_up if station not in by_down]
        if len(up_termini) != 1:
            msg = f"Sections must have exactly one up terminus (found {len(up_termini)})."
            raise BrokenChainError(msg)

        self._by_up = by_up
        self._by_down = by_down
        self._up_terminus = up_termini[0]

        # Walk the path; anything not reached belongs to a detached loop
        walked = 0
        station = self._up_terminus
        while (section := by_up.get(station)) is not None:
            walked += 1
            station = section.down_station_id
        if walked != len(by_up):
            msg = "Sections do not form a single connected path."
            raise BrokenChainError(msg)
        self._down_terminus = station

    @property
    def up_terminus(self) -> StationId:
        """Station with no incoming section."""
        return self._up_terminus

    @property
    def down_terminus(self) -> StationId:
        """Station with no outgoing section."""
        return self._down_terminus

    def contains_station(self, station_id: StationId) -> bool:
        """Check whether the station is the up or down station of any section."""
        return station_id in self._by_up or station_id in self._by_down

    def find_by_up_station(self, station_id: StationId) -> Section | None:
        """Return the section leaving the station, if any."""
        return self._by_up.get(station_id)

    def find_by_down_station(self, station_id: StationId) -> Section | None:
        """Return the section arriving at the station, if any."""
        return self._by_down.get(station_id)

    def ordered_sections(self) -> list[Section]:
        """
        Return sections from the up terminus to the down terminus.

        Examples:
            >>> chain = SectionChain([Section("B", "C", 4), Section("A", "B", 3)])
            >>> [(s.up_station_id, s.down_station_id) for s in chain.ordered_sections()]
            [('A', 'B'), ('B', 'C')]
        """
        ordered = []
        station = self._up_terminus
        while (section := self._by_up.get(station)) is not None:
            ordered.append(section)
            station = section.down_station_id
        return ordered

    def ordered_stations(self) -> list[StationId]:
        """
        Return stations from the up terminus to the down terminus.

        Examples:
            >>> SectionChain([Section("B", "C", 4), Section("A", "B", 3)]).ordered_stations()
            ['A', 'B', 'C']
        """
        return [self._up_terminus, *(section.down_station_id for section in self.ordered_sections())]

    def section_count(self) -> int:
        """Number of sections on the line."""
        return len(self._by_up)

    def total_distance(self) -> int:
        """Sum of all section distances."""
        return sum(section.distance for section in self._by_up.values())

    def __len__(self) -> int:
        return self.section_count()

    def __iter__(self) -> Iterator[Section]:
        return iter(self.ordered_sections())

    def __contains__(self, station_id: Any) -> bool:  # noqa: ANN401  # Matches container protocol
        return self.contains_station(station_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SectionChain):
            return NotImplemented
        return set(self._by_up.values()) == set(other._by_up.values())

    def __hash__(self) -> int:
        return hash(frozenset(self._by_up.values()))

    def __repr__(self) -> str:
        """String representation of the chain."""
        stations = " -> ".join(str(station) for station in self.ordered_stations())
        return f"<SectionChain({stations})>"
