"""Classify → decide → write pipeline for scraped fuel prices.

One pipeline instance serves one station worker and processes observations
strictly one at a time. Failures are contained per observation: they are
logged with enough context to diagnose and counted, and the next
observation is processed normally.
"""

from __future__ import annotations

import structlog

from petrolscan.classification.classifier import FuelClassifier
from petrolscan.db.store import FuelPriceStore
from petrolscan.models import ClassifiedObservation, FuelQuality, FuelType, Observation
from petrolscan.pipeline.change_detector import ChangeDetector
from petrolscan.pipeline.errors import LookupFailure, PipelineError
from petrolscan.pipeline.record_writer import RecordWriter
from petrolscan.pipeline.types import Decision, ObservationOutcome, ObservationStatus

_STATUS_BY_DECISION = {
    Decision.INSERT: ObservationStatus.INSERTED,
    Decision.UPDATE: ObservationStatus.UPDATED,
    Decision.SKIP: ObservationStatus.UNCHANGED,
}


class PricePipeline:
    """Run observations through classification, change detection and writing."""

    def __init__(
        self,
        store: FuelPriceStore,
        logger: structlog.stdlib.BoundLogger | None = None,
        classifier: FuelClassifier | None = None,
    ):
        """Initialize pipeline.

        Args:
            store: Storage adapter bound to this worker's session
            logger: Run-scoped logger, shared with the detector and writer
            classifier: Fuel classifier (defaults to the built-in rule tables)
        """
        self.store = store
        self.logger = logger or structlog.get_logger(__name__)
        self.classifier = classifier or FuelClassifier()
        self.detector = ChangeDetector(logger=self.logger)
        self.writer = RecordWriter(store, logger=self.logger)
        self.stats = {
            "inserted": 0,
            "updated": 0,
            "unchanged": 0,
            "failed": 0,
            "unclassified": 0,
            "sentinel_locations": 0,
        }

    async def process(self, observation: Observation) -> ObservationOutcome:
        """Process a single observation; never raises."""
        classified = self.classifier.classify_observation(observation)
        context = _log_context(classified)

        if classified.fuel_type == FuelType.UNCLASSIFIED:
            self.stats["unclassified"] += 1
            self.logger.warning("fuel_unclassified", **context)
        if classified.location.is_sentinel:
            self.stats["sentinel_locations"] += 1
            self.logger.warning("location_not_geocoded", **context)

        try:
            detection = await self.detector.decide(classified, self.store.lookup_existing)
            result = await self.writer.apply(detection, classified)
        except LookupFailure as e:
            return self._fail(context, "lookup_failed", e)
        except PipelineError as e:
            return self._fail(context, "write_failed", e)
        except Exception as e:
            self.logger.exception("observation_crashed", **context)
            return self._fail(context, "observation_failed", e, log=False)

        status = _STATUS_BY_DECISION[result.decision]
        self.stats[status.value.lower()] += 1

        if result.decision == Decision.SKIP:
            self.logger.debug("record_unchanged", **context)

        return ObservationOutcome(status=status, decision=result.decision, record=result.record)

    async def process_many(self, observations) -> list[ObservationOutcome]:
        """Process observations sequentially, in order."""
        outcomes = []
        for observation in observations:
            outcomes.append(await self.process(observation))
        return outcomes

    def get_stats(self) -> dict:
        """Get processing statistics."""
        return self.stats.copy()

    def _fail(self, context: dict, event: str, error: Exception, log: bool = True) -> ObservationOutcome:
        self.stats["failed"] += 1
        if log:
            self.logger.error(
                event,
                error=str(error),
                error_type=type(error).__name__,
                retryable=getattr(error, "retryable", False),
                **context,
            )
        return ObservationOutcome(status=ObservationStatus.FAILED, error=str(error))


def _log_context(observation: ClassifiedObservation) -> dict:
    return {
        "station_name": observation.station_name,
        "location": observation.location.name,
        "lat": observation.location.lat,
        "lon": observation.location.lon,
        "fuel_name": observation.fuel_name,
        "fuel_type": observation.fuel_type.value,
        "fuel_quality": observation.fuel_quality.value
        if observation.fuel_quality != FuelQuality.UNSPECIFIED
        else None,
        "price": observation.price,
    }
