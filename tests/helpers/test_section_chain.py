"""Tests for the section chain helpers."""

import pytest
from subway.helpers.section_chain import BrokenChainError, Section, SectionChain


def _chain(*triples: tuple[str, str, int]) -> SectionChain:
    return SectionChain(Section(up, down, distance) for up, down, distance in triples)


class TestSectionChainQueries:
    """Tests for membership and neighbour lookups."""

    def test_termini_are_found_regardless_of_input_order(self) -> None:
        """Test that the up and down terminus are derived from the sections, not their order."""
        chain = _chain(("B", "C", 4), ("C", "D", 5), ("A", "B", 3))

        assert chain.up_terminus == "A"
        assert chain.down_terminus == "D"

    def test_contains_station_checks_both_ends(self) -> None:
        """Test that a station counts as present if it is an up or a down station."""
        chain = _chain(("A", "B", 3), ("B", "C", 4))

        assert chain.contains_station("A")
        assert chain.contains_station("C")
        assert "B" in chain
        assert "Z" not in chain

    def test_find_by_up_and_down_station(self) -> None:
        """Test neighbour lookups return the adjacent section or None at the ends."""
        chain = _chain(("A", "B", 3), ("B", "C", 4))

        assert chain.find_by_up_station("B") == Section("B", "C", 4)
        assert chain.find_by_down_station("B") == Section("A", "B", 3)
        assert chain.find_by_up_station("C") is None
        assert chain.find_by_down_station("A") is None

    def test_ordered_sections_and_stations(self) -> None:
        """Test that the walk yields sections and stations from up to down terminus."""
        chain = _chain(("C", "D", 5), ("A", "B", 3), ("B", "C", 4))

        assert chain.ordered_sections() == [Section("A", "B", 3), Section("B", "C", 4), Section("C", "D", 5)]
        assert chain.ordered_stations() == ["A", "B", "C", "D"]
        assert list(chain) == chain.ordered_sections()

    def test_counts_and_distance(self) -> None:
        """Test section count, len() and total distance."""
        chain = _chain(("A", "B", 3), ("B", "C", 4))

        assert chain.section_count() == 2
        assert len(chain) == 2
        assert chain.total_distance() == 7

    def test_chains_with_the_same_sections_are_equal(self) -> None:
        """Test equality ignores the order sections were supplied in."""
        first = _chain(("A", "B", 3), ("B", "C", 4))
        second = _chain(("B", "C", 4), ("A", "B", 3))

        assert first == second
        assert hash(first) == hash(second)
        assert first != _chain(("A", "B", 3), ("B", "C", 5))

    def test_repr_lists_stations_in_order(self) -> None:
        """Test the repr shows the ordered station path."""
        assert repr(_chain(("B", "C", 4), ("A", "B", 3))) == "<SectionChain(A -> B -> C)>"


class TestSectionChainValidation:
    """Tests that invalid section sets are rejected."""

    def test_empty_chain_is_rejected(self) -> None:
        """Test that a chain needs at least one section."""
        with pytest.raises(BrokenChainError, match="at least one section"):
            SectionChain([])

    def test_self_loop_is_rejected(self) -> None:
        """Test that a section may not start and end at the same station."""
        with pytest.raises(BrokenChainError, match="same station"):
            _chain(("A", "A", 3))

    def test_branch_on_up_station_is_rejected(self) -> None:
        """Test that a station cannot be the up station of two sections."""
        with pytest.raises(BrokenChainError, match="up station of more than one"):
            _chain(("A", "B", 3), ("A", "C", 4))

    def test_branch_on_down_station_is_rejected(self) -> None:
        """Test that a station cannot be the down station of two sections."""
        with pytest.raises(BrokenChainError, match="down station of more than one"):
            _chain(("A", "C", 3), ("B", "C", 4))

    def test_cycle_is_rejected(self) -> None:
        """Test that a closed loop has no up terminus."""
        with pytest.raises(BrokenChainError, match="exactly one up terminus"):
            _chain(("A", "B", 3), ("B", "C", 4), ("C", "A", 5))

    def test_two_separate_paths_are_rejected(self) -> None:
        """Test that disjoint paths produce two up termini."""
        with pytest.raises(BrokenChainError, match=r"found 2"):
            _chain(("A", "B", 3), ("C", "D", 4))

    def test_detached_loop_is_rejected(self) -> None:
        """Test that a path plus a separate loop is not a single chain."""
        with pytest.raises(BrokenChainError, match="single connected path"):
            _chain(("A", "B", 3), ("X", "Y", 1), ("Y", "X", 1))

    def test_broken_chain_error_has_code(self) -> None:
        """Test the machine-readable error code."""
        with pytest.raises(BrokenChainError) as exc_info:
            SectionChain([])

        assert exc_info.value.code == "BROKEN_CHAIN"
