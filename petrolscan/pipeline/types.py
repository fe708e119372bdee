"""Type definitions for pipeline operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from petrolscan.models import IdentityKey, StoredRecord


class Decision(str, Enum):
    """What the change detector wants done with an observation."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    SKIP = "SKIP"


class ObservationStatus(str, Enum):
    """Final outcome of one observation."""

    INSERTED = "INSERTED"
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"
    FAILED = "FAILED"


class CrawlStatus(str, Enum):
    """Status of one station's crawl."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Detection:
    """Change detector verdict for one classified observation."""

    decision: Decision
    key: IdentityKey
    existing: Optional[StoredRecord] = None
    changed_fields: tuple[str, ...] = ()


@dataclass
class WriteResult:
    """Result of applying a detection to the store."""

    decision: Decision
    written: bool
    record: Optional[StoredRecord] = None
    recovered_from_conflict: bool = False


@dataclass
class ObservationOutcome:
    """What happened to one observation end to end."""

    status: ObservationStatus
    decision: Optional[Decision] = None
    record: Optional[StoredRecord] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == ObservationStatus.FAILED


@dataclass
class CrawlResult:
    """Result of one station crawl."""

    source_name: str
    station: str
    status: CrawlStatus
    records_inserted: int = 0
    records_updated: int = 0
    records_unchanged: int = 0
    records_failed: int = 0
    message: str = ""
    error_details: Optional[dict] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the crawl was successful."""
        return self.status in (CrawlStatus.SUCCESS, CrawlStatus.PARTIAL_SUCCESS)

    @property
    def total_records(self) -> int:
        """Total observations processed."""
        return (
            self.records_inserted
            + self.records_updated
            + self.records_unchanged
            + self.records_failed
        )
