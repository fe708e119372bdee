"""Apply change detector decisions to the fuel price store.

INSERT creates the row, UPDATE overwrites the mutable fields, SKIP is a no-op.
An insert that trips the identity uniqueness constraint means another worker
inserted the same key first; the writer looks the row up again and turns the
insert into an update (or a skip when the values already match).
"""

from __future__ import annotations

import structlog

from petrolscan.db.store import FuelPriceStore
from petrolscan.models import ClassifiedObservation
from petrolscan.pipeline.change_detector import compare
from petrolscan.pipeline.errors import LookupFailure, WriteConflict, WriteFailure
from petrolscan.pipeline.types import Decision, Detection, WriteResult


class RecordWriter:
    """Single-write persistence of one classified observation."""

    def __init__(
        self,
        store: FuelPriceStore,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.store = store
        self.logger = logger or structlog.get_logger(__name__)

    async def apply(self, detection: Detection, observation: ClassifiedObservation) -> WriteResult:
        """Persist the observation according to ``detection``.

        Raises:
            WriteFailure: If the write fails, including an unrecoverable conflict
        """
        if detection.decision == Decision.SKIP:
            return WriteResult(decision=Decision.SKIP, written=False, record=detection.existing)

        if detection.decision == Decision.UPDATE:
            if detection.existing is None:
                raise WriteFailure(
                    f"UPDATE without a stored record for {detection.key.describe()}",
                    detection.key,
                )
            record = await self.store.write_update(detection.existing.id, observation)
            self.logger.info(
                "record_updated",
                key=detection.key.describe(),
                changed_fields=list(detection.changed_fields),
                old_price=detection.existing.price,
                new_price=record.price,
            )
            return WriteResult(decision=Decision.UPDATE, written=True, record=record)

        try:
            record = await self.store.write_insert(observation)
        except WriteConflict as conflict:
            return await self._recover_conflict(conflict, observation)

        self.logger.info("record_inserted", key=detection.key.describe(), price=record.price)
        return WriteResult(decision=Decision.INSERT, written=True, record=record)

    async def _recover_conflict(
        self, conflict: WriteConflict, observation: ClassifiedObservation
    ) -> WriteResult:
        """Re-check after a lost insert race and update instead."""
        key = observation.identity_key
        self.logger.warning("insert_conflict", key=key.describe(), error=str(conflict))

        try:
            existing = await self.store.lookup_existing(key)
        except LookupFailure as e:
            raise WriteFailure(f"Conflict recovery lookup failed for {key.describe()}: {e}", key) from e

        if existing is None:
            # The constraint that fired was not the identity one
            raise WriteFailure(f"Insert rejected for {key.describe()}: {conflict}", key) from conflict

        retry = compare(observation, existing)
        if retry.decision == Decision.SKIP:
            return WriteResult(
                decision=Decision.SKIP,
                written=False,
                record=existing,
                recovered_from_conflict=True,
            )

        record = await self.store.write_update(existing.id, observation)
        self.logger.info("record_updated_after_conflict", key=key.describe(), price=record.price)
        return WriteResult(
            decision=Decision.UPDATE,
            written=True,
            record=record,
            recovered_from_conflict=True,
        )
