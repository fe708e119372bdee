"""Unit tests for run-scoped structured logging."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from petrolscan.core.logging import get_run_logger
from petrolscan.models import StoredRecord
from petrolscan.pipeline.price_pipeline import PricePipeline


def test_run_logger_binds_run_and_station():
    with capture_logs() as logs:
        get_run_logger("3f2a9c01b7de", "globus").info("station_crawl_started")

    assert logs == [
        {
            "run_id": "3f2a9c01b7de",
            "station": "globus",
            "event": "station_crawl_started",
            "log_level": "info",
        }
    ]


def test_run_logger_without_station():
    with capture_logs() as logs:
        get_run_logger("3f2a9c01b7de").info("crawl_started")

    assert "station" not in logs[0]


@pytest.mark.asyncio
async def test_pipeline_logs_classification_gap_with_context(make_observation):
    store = _NoopStore()

    with capture_logs() as logs:
        await PricePipeline(store, logger=get_run_logger("run1", "globus")).process(
            make_observation(fuel_name="Benzín", price=36.5)
        )

    (gap,) = [entry for entry in logs if entry["event"] == "fuel_unclassified"]
    assert gap["log_level"] == "warning"
    assert gap["run_id"] == "run1"
    assert gap["fuel_name"] == "Benzín"
    assert gap["fuel_type"] == "UNCLASSIFIED"
    assert gap["fuel_quality"] is None
    assert gap["price"] == 36.5


class _NoopStore:
    """Store double that has no rows and accepts every insert."""

    async def lookup_existing(self, key):
        return None

    async def write_insert(self, observation):
        return StoredRecord(
            id=1,
            station_name=observation.station_name,
            location_name=observation.location.name,
            lat=observation.location.lat,
            lon=observation.location.lon,
            fuel_type=observation.fuel_type,
            fuel_quality=observation.fuel_quality,
            fuel_name=observation.fuel_name,
            price=observation.price,
        )
