"""Tests for database models."""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from subway.helpers.section_chain import BrokenChainError, Section
from subway.models.line import Line, LineSection

from tests.conftest import Line4, StationFactory


class TestLineModel:
    """Tests for Line and LineSection."""

    async def test_to_chain(self, line_4: Line4) -> None:
        """Test that stored sections convert to a chain of station ids."""
        chain = line_4.line.to_chain()

        assert chain.ordered_stations() == [line_4.danggogae.id, line_4.isu.id]
        assert chain.total_distance() == 10

    async def test_section_matches(self, line_4: Line4) -> None:
        """Test matching a row against a plain section."""
        row = line_4.line.sections[0]

        assert row.matches(Section(line_4.danggogae.id, line_4.isu.id, 10))
        assert not row.matches(Section(line_4.danggogae.id, line_4.isu.id, 9))
        assert row.to_section() == Section(line_4.danggogae.id, line_4.isu.id, 10)

    async def test_broken_stored_chain_is_detected(self, line_4: Line4, make_station: StationFactory) -> None:
        """Test that rows forming two separate paths cannot become a chain."""
        gangnam = await make_station("강남역")
        yeoksam = await make_station("역삼역")
        line = Line(
            name="2호선",
            color="green",
            sections=[
                LineSection(up_station_id=line_4.danggogae.id, down_station_id=line_4.isu.id, distance=1),
                LineSection(up_station_id=gangnam.id, down_station_id=yeoksam.id, distance=1),
            ],
        )

        with pytest.raises(BrokenChainError):
            line.to_chain()

    async def test_distance_must_be_positive(self, db_session: AsyncSession, line_4: Line4) -> None:
        """Test the database rejects a non-positive distance."""
        db_session.add(
            LineSection(
                line_id=line_4.line.id,
                up_station_id=line_4.isu.id,
                down_station_id=line_4.sadang.id,
                distance=0,
            )
        )

        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_station_leaves_line_once(self, db_session: AsyncSession, line_4: Line4) -> None:
        """Test the database rejects a second section from the same up station."""
        db_session.add(
            LineSection(
                line_id=line_4.line.id,
                up_station_id=line_4.danggogae.id,
                down_station_id=line_4.sadang.id,
                distance=3,
            )
        )

        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()
