"""
Section editing for a single subway line.

Pure functions that add a station to, or remove a station from, a
SectionChain. Each call validates the request against the current chain,
classifies it once, and dispatches to a small transformation that returns
the sections to add and remove. The input chain is never modified: either a
new valid chain is returned, or a SectionError is raised.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from subway.helpers.section_chain import (
    DisconnectedSectionError,
    DuplicateSectionError,
    InvalidDistanceError,
    InvalidSectionError,
    OnlySectionError,
    Section,
    SectionChain,
    StationId,
    StationNotFoundError,
)


class InsertionKind(str, enum.Enum):
    """Where a new section attaches to the chain."""

    EXTEND_DOWN = "extend_down"
    EXTEND_UP = "extend_up"
    SPLIT_FROM_UP = "split_from_up"
    SPLIT_FROM_DOWN = "split_from_down"


class RemovalKind(str, enum.Enum):
    """Position of the station being removed."""

    UP_TERMINUS = "up_terminus"
    DOWN_TERMINUS = "down_terminus"
    INTERIOR = "interior"


@dataclass(frozen=True)
class ChainEdit:
    """
    Result of a successful edit.

    Attributes:
        chain: Chain after the edit
        kind: How the edit was classified
        added: Sections that exist only in the new chain
        removed: Sections that existed only in the old chain
    """

    chain: SectionChain
    kind: InsertionKind | RemovalKind
    added: tuple[Section, ...]
    removed: tuple[Section, ...]


def _apply(
    chain: SectionChain,
    kind: InsertionKind | RemovalKind,
    added: tuple[Section, ...],
    removed: tuple[Section, ...],
) -> ChainEdit:
    removed_set = set(removed)
    sections = [section for section in chain.ordered_sections() if section not in removed_set]
    sections.extend(added)
    return ChainEdit(chain=SectionChain(sections), kind=kind, added=added, removed=removed)


def _validate_section(up_station_id: StationId, down_station_id: StationId, distance: int) -> None:
    if up_station_id == down_station_id:
        raise InvalidSectionError(up_station_id)
    if distance <= 0:
        raise InvalidDistanceError(distance)


def start_chain(up_station_id: StationId, down_station_id: StationId, distance: int) -> SectionChain:
    """
    Create the chain for a new line from its first section.

    Raises:
        InvalidSectionError: If both stations are the same
        InvalidDistanceError: If the distance is not positive
    """
    _validate_section(up_station_id, down_station_id, distance)
    return SectionChain([Section(up_station_id=up_station_id, down_station_id=down_station_id, distance=distance)])


# ==================== Insertion ====================


def classify_insertion(chain: SectionChain, up_station_id: StationId, down_station_id: StationId) -> InsertionKind:
    """
    Decide where a new section attaches.

    Terminus extension wins over splitting when the matched station is both a
    terminus and an endpoint of an adjacent section.

    Args:
        chain: Current chain
        up_station_id: Up station of the new section
        down_station_id: Down station of the new section

    Returns:
        InsertionKind for the request

    Raises:
        DuplicateSectionError: If both stations are already on the line
        DisconnectedSectionError: If neither station is on the line

    Examples:
        >>> chain = SectionChain([Section("A", "B", 10)])
        >>> classify_insertion(chain, "B", "C")
        <InsertionKind.EXTEND_DOWN: 'extend_down'>
        >>> classify_insertion(chain, "A", "C")
        <InsertionKind.SPLIT_FROM_UP: 'split_from_up'>
    """
    up_exists = chain.contains_station(up_station_id)
    down_exists = chain.contains_station(down_station_id)

    if up_exists and down_exists:
        raise DuplicateSectionError(up_station_id, down_station_id)
    if not up_exists and not down_exists:
        raise DisconnectedSectionError(up_station_id, down_station_id)

    if up_exists:
        if up_station_id == chain.down_terminus:
            return InsertionKind.EXTEND_DOWN
        return InsertionKind.SPLIT_FROM_UP

    if down_station_id == chain.up_terminus:
        return InsertionKind.EXTEND_UP
    return InsertionKind.SPLIT_FROM_DOWN


def _check_split_distance(distance: int, existing: Section) -> None:
    if distance >= existing.distance:
        raise InvalidDistanceError(distance, existing.distance)


def _extend(new_section: Section) -> tuple[tuple[Section, ...], tuple[Section, ...]]:
    return (new_section,), ()


def _split_from_up(chain: SectionChain, new_section: Section) -> tuple[tuple[Section, ...], tuple[Section, ...]]:
    existing = chain.find_by_up_station(new_section.up_station_id)
    # Non-terminal stations always have an outgoing section
    assert existing is not None
    _check_split_distance(new_section.distance, existing)
    remainder = Section(
        up_station_id=new_section.down_station_id,
        down_station_id=existing.down_station_id,
        distance=existing.distance - new_section.distance,
    )
    return (new_section, remainder), (existing,)


def _split_from_down(chain: SectionChain, new_section: Section) -> tuple[tuple[Section, ...], tuple[Section, ...]]:
    existing = chain.find_by_down_station(new_section.down_station_id)
    assert existing is not None
    _check_split_distance(new_section.distance, existing)
    remainder = Section(
        up_station_id=existing.up_station_id,
        down_station_id=new_section.up_station_id,
        distance=existing.distance - new_section.distance,
    )
    return (remainder, new_section), (existing,)


def insert_section(
    chain: SectionChain,
    up_station_id: StationId,
    down_station_id: StationId,
    distance: int,
) -> ChainEdit:
    """
    Add a section to the chain, splitting an existing section if needed.

    Args:
        chain: Current chain (left unchanged)
        up_station_id: Up station of the new section
        down_station_id: Down station of the new section
        distance: Distance of the new section

    Returns:
        ChainEdit with one more section than the input chain

    Raises:
        InvalidSectionError: If both stations are the same
        InvalidDistanceError: If the distance is not positive, or not shorter
            than the section being split
        DuplicateSectionError: If both stations are already on the line
        DisconnectedSectionError: If neither station is on the line

    Examples:
        >>> chain = SectionChain([Section("A", "C", 10)])
        >>> insert_section(chain, "A", "B", 3).chain.ordered_sections()
        [<Section('A' -> 'B', distance=3)>, <Section('B' -> 'C', distance=7)>]
    """
    _validate_section(up_station_id, down_station_id, distance)

    kind = classify_insertion(chain, up_station_id, down_station_id)
    new_section = Section(up_station_id=up_station_id, down_station_id=down_station_id, distance=distance)

    match kind:
        case InsertionKind.EXTEND_DOWN | InsertionKind.EXTEND_UP:
            added, removed = _extend(new_section)
        case InsertionKind.SPLIT_FROM_UP:
            added, removed = _split_from_up(chain, new_section)
        case InsertionKind.SPLIT_FROM_DOWN:
            added, removed = _split_from_down(chain, new_section)

    return _apply(chain, kind, added, removed)


# ==================== Removal ====================


def classify_removal(chain: SectionChain, station_id: StationId) -> RemovalKind:
    """
    Locate a station on the chain.

    Args:
        chain: Current chain
        station_id: Station to remove

    Returns:
        RemovalKind for the station

    Raises:
        StationNotFoundError: If the station is not on the line
    """
    if not chain.contains_station(station_id):
        raise StationNotFoundError(station_id)
    if station_id == chain.up_terminus:
        return RemovalKind.UP_TERMINUS
    if station_id == chain.down_terminus:
        return RemovalKind.DOWN_TERMINUS
    return RemovalKind.INTERIOR


def remove_station(chain: SectionChain, station_id: StationId) -> ChainEdit:
    """
    Remove a station from the chain, merging its two sections if it is interior.

    Args:
        chain: Current chain (left unchanged)
        station_id: Station to remove

    Returns:
        ChainEdit with one fewer section than the input chain

    Raises:
        OnlySectionError: If the chain has a single section
        StationNotFoundError: If the station is not on the line

    Examples:
        >>> chain = SectionChain([Section("A", "B", 3), Section("B", "C", 7)])
        >>> remove_station(chain, "B").chain.ordered_sections()
        [<Section('A' -> 'C', distance=10)>]
    """
    if chain.section_count() == 1:
        raise OnlySectionError

    kind = classify_removal(chain, station_id)
    outgoing = chain.find_by_up_station(station_id)
    incoming = chain.find_by_down_station(station_id)

    match kind:
        case RemovalKind.UP_TERMINUS:
            assert outgoing is not None
            return _apply(chain, kind, (), (outgoing,))
        case RemovalKind.DOWN_TERMINUS:
            assert incoming is not None
            return _apply(chain, kind, (), (incoming,))
        case RemovalKind.INTERIOR:
            assert incoming is not None
            assert outgoing is not None
            merged = Section(
                up_station_id=incoming.up_station_id,
                down_station_id=outgoing.down_station_id,
                distance=incoming.distance + outgoing.distance,
            )
            return _apply(chain, kind, (merged,), (incoming, outgoing))
