"""Base class for all station crawlers.

A crawler knows how to get fuel prices out of one station brand's website
(or an exported file) and yields them as Observations. It knows nothing about
classification or storage.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from petrolscan.models import Observation, Station


class StationCrawler(ABC):
    """Abstract base class for station crawlers.

    Key principles:
    1. Each crawler handles exactly ONE station brand
    2. Crawlers are stateless between runs and can be retried
    3. Observations are yielded one by one as soon as they are known
    """

    def __init__(self, source_name: str, station: Station | str, config: dict | None = None):
        """Initialize crawler.

        Args:
            source_name: Unique identifier for this source in crawl logs
            station: Station brand the observations belong to
            config: Source-specific settings
        """
        self.source_name = source_name
        self.station = Station(station) if isinstance(station, str) else station
        self.config = config or {}
        self.logger = logging.getLogger(f"{__name__}.{source_name}")

    @abstractmethod
    def fetch_observations(self) -> AsyncIterator[Observation]:
        """Yield observations scraped from this source.

        Raises:
            Exception: Any error during fetch (handled by the supervisor)
        """

    def _get_config_value(self, key: str, default=None, required: bool = False):
        """Get configuration value with validation.

        Raises:
            ValueError: If required key is missing
        """
        value = self.config.get(key, default)

        if required and value is None:
            raise ValueError(
                f"Required config key '{key}' missing for {self.source_name}"
            )

        return value
