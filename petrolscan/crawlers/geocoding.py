"""Forward geocoding of outlet labels via a Nominatim-compatible API.

Geocoding failures are not fatal: the outlet keeps the sentinel (0, 0)
coordinates and a warning is logged.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from petrolscan.config import GeocodingConfig
from petrolscan.models import SENTINEL_COORDINATE, Location

logger = logging.getLogger(__name__)


class Geocoder:
    """Resolve outlet labels such as "Globus Praha Zličín" to coordinates.

    Usage:
        async with Geocoder(config) as geocoder:
            location = await geocoder.locate("Globus Brno")
    """

    def __init__(self, config: GeocodingConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            headers={"User-Agent": config.user_agent},
        )
        self._cache: dict[str, Location] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def locate(self, label: str) -> Location:
        """Return a Location for ``label``; sentinel coordinates on failure."""
        if label in self._cache:
            return self._cache[label]

        location = Location(name=label)
        if not self.config.enabled:
            return location

        try:
            coordinates = await self._search(label)
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(f"Geocoding failed for {label!r}: {e}")
            coordinates = None

        if coordinates is None:
            logger.warning(
                f"No coordinates for {label!r}, using ({SENTINEL_COORDINATE}, {SENTINEL_COORDINATE})"
            )
        else:
            location = Location(name=label, lat=coordinates[0], lon=coordinates[1])

        self._cache[label] = location
        return location

    async def _search(self, label: str) -> tuple[float, float] | None:
        @retry(
            stop=stop_after_attempt(max(1, self.config.retry_attempts)),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
            reraise=True,
        )
        async def _request() -> list[dict]:
            response = await self.client.get(
                self.config.base_url,
                params={
                    "q": label,
                    "format": "json",
                    "limit": 1,
                    "countrycodes": self.config.country_codes,
                },
            )
            response.raise_for_status()
            return response.json()

        results = await _request()
        if not results:
            return None
        return float(results[0]["lat"]), float(results[0]["lon"])
