"""Unit tests for INSERT / UPDATE / SKIP change detection."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from petrolscan.models import ClassifiedObservation, FuelQuality, FuelType, StoredRecord
from petrolscan.pipeline.change_detector import ChangeDetector, changed_fields, compare
from petrolscan.pipeline.errors import LookupFailure
from petrolscan.pipeline.types import Decision


@pytest.fixture
def classified(make_observation) -> ClassifiedObservation:
    return ClassifiedObservation.from_observation(
        make_observation(price=32.50), FuelType.DIESEL, FuelQuality.STANDARD
    )


def stored_from(observation: ClassifiedObservation, **overrides) -> StoredRecord:
    values = {
        "id": 7,
        "station_name": observation.station_name,
        "location_name": observation.location.name,
        "lat": observation.location.lat,
        "lon": observation.location.lon,
        "fuel_type": observation.fuel_type,
        "fuel_quality": observation.fuel_quality,
        "fuel_name": observation.fuel_name,
        "price": observation.price,
    }
    values.update(overrides)
    return StoredRecord(**values)


class TestCompare:
    """Test the pure comparison step."""

    def test_no_record_means_insert(self, classified):
        detection = compare(classified, None)

        assert detection.decision == Decision.INSERT
        assert detection.key == classified.identity_key
        assert detection.existing is None

    def test_identical_record_means_skip(self, classified):
        existing = stored_from(classified)

        detection = compare(classified, existing)

        assert detection.decision == Decision.SKIP
        assert detection.existing is existing
        assert detection.changed_fields == ()

    def test_price_change_means_update(self, classified):
        existing = stored_from(classified, price=32.80)

        detection = compare(classified, existing)

        assert detection.decision == Decision.UPDATE
        assert detection.changed_fields == ("price",)
        assert detection.existing.id == 7

    def test_smallest_price_change_is_a_change(self, make_observation):
        observation = ClassifiedObservation.from_observation(
            make_observation(price=34.91), FuelType.DIESEL, FuelQuality.STANDARD
        )

        detection = compare(observation, stored_from(observation, price=34.90))

        assert detection.decision == Decision.UPDATE

    def test_fuel_name_and_location_label_changes(self, classified):
        existing = stored_from(classified, fuel_name="Nafta", location_name="Brno - Hanes")

        detection = compare(classified, existing)

        assert detection.decision == Decision.UPDATE
        assert set(detection.changed_fields) == {"fuel_name", "location_name"}

    def test_record_with_other_quality_is_another_identity(self, classified):
        existing = stored_from(classified, fuel_quality=FuelQuality.UNSPECIFIED)

        assert compare(classified, existing).decision == Decision.INSERT

    def test_changed_fields_helper(self, classified):
        assert changed_fields(classified, stored_from(classified)) == ()
        assert changed_fields(classified, stored_from(classified, price=0.0)) == ("price",)


class TestChangeDetector:
    """Test ChangeDetector with a mocked lookup."""

    @pytest.mark.asyncio
    async def test_lookup_called_with_identity_key(self, classified):
        lookup = AsyncMock(return_value=None)

        detection = await ChangeDetector().decide(classified, lookup)

        lookup.assert_awaited_once_with(classified.identity_key)
        assert detection.decision == Decision.INSERT

    @pytest.mark.asyncio
    async def test_skip_when_stored_record_matches(self, classified):
        lookup = AsyncMock(return_value=stored_from(classified))

        detection = await ChangeDetector().decide(classified, lookup)

        assert detection.decision == Decision.SKIP

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates(self, classified):
        lookup = AsyncMock(side_effect=LookupFailure("connection lost"))

        with pytest.raises(LookupFailure, match="connection lost"):
            await ChangeDetector().decide(classified, lookup)

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error_is_not_treated_as_missing(self, classified):
        """Test a crashing lookup never turns into an INSERT decision."""
        lookup = AsyncMock(side_effect=ConnectionResetError("reset by peer"))

        with pytest.raises(LookupFailure) as exc_info:
            await ChangeDetector().decide(classified, lookup)

        assert exc_info.value.key == classified.identity_key
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
