"""Change detection for classified fuel price observations.

Compares an observation with the record stored under the same identity key:

- No stored record → INSERT
- Stored record with any differing mutable field → UPDATE
- Otherwise → SKIP

Mutable fields are compared with exact equality. Prices are floats and any
bit-level difference counts as a change.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from petrolscan.models import ClassifiedObservation, IdentityKey, StoredRecord
from petrolscan.pipeline.errors import LookupFailure
from petrolscan.pipeline.types import Decision, Detection

Lookup = Callable[[IdentityKey], Awaitable[StoredRecord | None]]

# (observation accessor, stored record attribute)
MUTABLE_FIELDS: dict[str, tuple[Callable[[ClassifiedObservation], object], str]] = {
    "location_name": (lambda obs: obs.location.name, "location_name"),
    "fuel_name": (lambda obs: obs.fuel_name, "fuel_name"),
    "price": (lambda obs: obs.price, "price"),
}


def changed_fields(observation: ClassifiedObservation, existing: StoredRecord) -> tuple[str, ...]:
    """Names of mutable fields whose values differ from the stored record."""
    return tuple(
        field
        for field, (observed, stored_attr) in MUTABLE_FIELDS.items()
        if observed(observation) != getattr(existing, stored_attr)
    )


def compare(observation: ClassifiedObservation, existing: StoredRecord | None) -> Detection:
    """Pure decision given the record already looked up (or None)."""
    key = observation.identity_key

    if existing is None:
        return Detection(decision=Decision.INSERT, key=key)

    if existing.identity_key != key:
        # A row matching on fewer fields (e.g. other quality) is another identity
        return Detection(decision=Decision.INSERT, key=key)

    diff = changed_fields(observation, existing)
    if diff:
        return Detection(decision=Decision.UPDATE, key=key, existing=existing, changed_fields=diff)

    return Detection(decision=Decision.SKIP, key=key, existing=existing)


class ChangeDetector:
    """Decide INSERT / UPDATE / SKIP for an observation against stored state.

    The detector only reads. A failing lookup is surfaced as LookupFailure and
    never downgraded to "not found", so callers cannot insert duplicates
    after a transient store error.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self.logger = logger or structlog.get_logger(__name__)

    async def decide(self, observation: ClassifiedObservation, lookup: Lookup) -> Detection:
        """Look up the stored record for the observation and compare.

        Args:
            observation: Classified observation
            lookup: Async callable returning the record stored under a key, or None

        Returns:
            Detection with the decision, key and (when present) the stored record

        Raises:
            LookupFailure: If the lookup could not be completed
        """
        key = observation.identity_key

        try:
            existing = await lookup(key)
        except LookupFailure:
            raise
        except Exception as e:
            raise LookupFailure(f"Lookup failed for {key.describe()}: {e}", key) from e

        detection = compare(observation, existing)

        self.logger.debug(
            "change_detected",
            decision=detection.decision.value,
            key=key.describe(),
            changed_fields=list(detection.changed_fields),
        )
        return detection
