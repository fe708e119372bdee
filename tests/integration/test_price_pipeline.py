"""Integration tests for the classify → decide → write pipeline.

Runs against a real SQLite database so uniqueness, check constraints and
server timestamps behave like production.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from petrolscan.db.models import FuelPriceRecordModel
from petrolscan.db.store import FuelPriceStore
from petrolscan.models import FuelQuality, FuelType, Location
from petrolscan.pipeline.errors import LookupFailure
from petrolscan.pipeline.price_pipeline import PricePipeline
from petrolscan.pipeline.types import Decision, ObservationStatus


@pytest.fixture
def pipeline(db_session) -> PricePipeline:
    return PricePipeline(FuelPriceStore(db_session))


async def all_rows(session) -> list[FuelPriceRecordModel]:
    result = await session.execute(
        select(FuelPriceRecordModel)
        .order_by(FuelPriceRecordModel.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars())


class TestChangeDetection:
    @pytest.mark.asyncio
    async def test_first_observation_inserts(self, pipeline, db_session, make_observation):
        outcome = await pipeline.process(make_observation(fuel_name="Diesel", price=32.50))

        assert outcome.status == ObservationStatus.INSERTED
        assert outcome.decision == Decision.INSERT

        (row,) = await all_rows(db_session)
        assert row.station_name == "Globus Brno"
        assert row.fuel_type == "DIESEL"
        assert row.fuel_quality == "STANDARD"
        assert row.fuel_price == 32.50
        assert row.timestamp is not None

    @pytest.mark.asyncio
    async def test_repeated_observation_is_skipped(self, pipeline, db_session, make_observation):
        await pipeline.process(make_observation(price=32.50))
        outcome = await pipeline.process(make_observation(price=32.50))

        assert outcome.status == ObservationStatus.UNCHANGED
        assert len(await all_rows(db_session)) == 1
        assert pipeline.get_stats()["unchanged"] == 1

    @pytest.mark.asyncio
    async def test_price_change_updates_in_place(self, pipeline, db_session, make_observation):
        first = await pipeline.process(make_observation(price=32.50))
        second = await pipeline.process(make_observation(price=32.80))

        assert second.status == ObservationStatus.UPDATED
        assert second.record.id == first.record.id
        assert second.record.price == 32.80

        (row,) = await all_rows(db_session)
        assert row.fuel_price == 32.80

    @pytest.mark.asyncio
    async def test_smallest_price_change_updates(self, pipeline, db_session, make_observation):
        await pipeline.process(make_observation(price=34.90))
        outcome = await pipeline.process(make_observation(price=34.91))

        assert outcome.status == ObservationStatus.UPDATED
        (row,) = await all_rows(db_session)
        assert row.fuel_price == 34.91

    @pytest.mark.asyncio
    async def test_location_label_change_updates(self, pipeline, db_session, make_observation, brno_location):
        await pipeline.process(make_observation())
        relabelled = Location(name="Globus Brno - Ivanovice", lat=brno_location.lat, lon=brno_location.lon)

        outcome = await pipeline.process(make_observation(location=relabelled))

        assert outcome.status == ObservationStatus.UPDATED
        (row,) = await all_rows(db_session)
        assert row.station_loc_name == "Globus Brno - Ivanovice"

    @pytest.mark.asyncio
    async def test_rename_within_same_classification_updates(self, pipeline, db_session, make_observation):
        """Test a renamed product with the same type and quality keeps its row."""
        eurooil = dict(station="eurooil", station_name="EuroOil Brno")

        await pipeline.process(make_observation(fuel_name="Diesel", **eurooil))
        outcome = await pipeline.process(make_observation(fuel_name="Nafta", **eurooil))

        assert outcome.status == ObservationStatus.UPDATED
        (row,) = await all_rows(db_session)
        assert row.fuel_name == "Nafta"


class TestIdentity:
    @pytest.mark.asyncio
    async def test_quality_separates_records(self, pipeline, db_session, make_observation):
        await pipeline.process(make_observation(fuel_name="Diesel", price=32.50))
        await pipeline.process(make_observation(fuel_name="Diesel Plus", price=35.90))

        rows = await all_rows(db_session)
        assert [(r.fuel_type, r.fuel_quality, r.fuel_price) for r in rows] == [
            ("DIESEL", "STANDARD", 32.50),
            ("DIESEL", "PREMIUM", 35.90),
        ]

    @pytest.mark.asyncio
    async def test_unspecified_quality_is_its_own_identity(self, pipeline, db_session, make_observation):
        prim = dict(station="prim", station_name="Prim Tábor")

        await pipeline.process(make_observation(fuel_name="Nafta", price=33.10, **prim))
        outcome = await pipeline.process(make_observation(fuel_name="Nafta", price=33.10, **prim))

        assert outcome.status == ObservationStatus.UNCHANGED
        (row,) = await all_rows(db_session)
        assert row.fuel_quality == FuelQuality.UNSPECIFIED.value

    @pytest.mark.asyncio
    async def test_outlets_are_separate_records(self, pipeline, db_session, make_observation):
        await pipeline.process(make_observation())
        await pipeline.process(
            make_observation(
                station_name="Globus Ostrava",
                location=Location(name="Globus Ostrava", lat=49.8, lon=18.2),
            )
        )

        assert len(await all_rows(db_session)) == 2

    @pytest.mark.asyncio
    async def test_unclassified_fuel_is_stored(self, pipeline, db_session, make_observation):
        outcome = await pipeline.process(make_observation(fuel_name="Benzín"))

        assert outcome.status == ObservationStatus.INSERTED
        (row,) = await all_rows(db_session)
        assert row.fuel_type == FuelType.UNCLASSIFIED.value
        assert row.fuel_quality == FuelQuality.UNSPECIFIED.value
        assert pipeline.get_stats()["unclassified"] == 1

    @pytest.mark.asyncio
    async def test_sentinel_location_is_stored(self, pipeline, db_session, make_observation):
        outcome = await pipeline.process(make_observation(location=Location(name="Globus Chomutov")))

        assert outcome.status == ObservationStatus.INSERTED
        (row,) = await all_rows(db_session)
        assert (row.station_loc_lat, row.station_loc_lon) == (0.0, 0.0)
        assert pipeline.get_stats()["sentinel_locations"] == 1


class TestFailureContainment:
    @pytest.mark.asyncio
    async def test_lookup_failure_writes_nothing(self, db_session, make_observation):
        store = FuelPriceStore(db_session)
        store.lookup_existing = AsyncMock(side_effect=LookupFailure("connection lost"))
        store.write_insert = AsyncMock()
        store.write_update = AsyncMock()
        pipeline = PricePipeline(store)

        outcome = await pipeline.process(make_observation())

        assert outcome.failed
        assert "connection lost" in outcome.error
        store.write_insert.assert_not_awaited()
        store.write_update.assert_not_awaited()
        assert pipeline.get_stats()["failed"] == 1
        assert await all_rows(db_session) == []

    @pytest.mark.asyncio
    async def test_rejected_write_does_not_stop_the_batch(self, pipeline, db_session, make_observation):
        outcomes = await pipeline.process_many(
            [
                make_observation(fuel_name="Diesel", price=-1.0),
                make_observation(fuel_name="Natural 95", price=36.90),
            ]
        )

        assert [o.status for o in outcomes] == [ObservationStatus.FAILED, ObservationStatus.INSERTED]
        rows = await all_rows(db_session)
        assert [r.fuel_type for r in rows] == ["PETROL"]
        assert pipeline.get_stats()["failed"] == 1
        assert pipeline.get_stats()["inserted"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, db_session, make_observation):
        store = FuelPriceStore(db_session)
        store.write_insert = AsyncMock(side_effect=RuntimeError("boom"))
        pipeline = PricePipeline(store)

        outcome = await pipeline.process(make_observation())

        assert outcome.failed
        assert outcome.error == "boom"
        assert pipeline.get_stats()["failed"] == 1


class TestStats:
    @pytest.mark.asyncio
    async def test_counts_every_outcome(self, pipeline, make_observation):
        await pipeline.process_many(
            [
                make_observation(price=32.50),
                make_observation(price=32.50),
                make_observation(price=32.80),
                make_observation(fuel_name="AdBlue", price=18.90),
            ]
        )

        stats = pipeline.get_stats()
        assert stats["inserted"] == 2
        assert stats["updated"] == 1
        assert stats["unchanged"] == 1
        assert stats["failed"] == 0

    @pytest.mark.asyncio
    async def test_get_stats_returns_copy(self, pipeline):
        pipeline.get_stats()["inserted"] = 99

        assert pipeline.get_stats()["inserted"] == 0
