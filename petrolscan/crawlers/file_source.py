"""CSV/Excel file source for replaying exported fuel price observations.

Expected columns (case-insensitive): station_name, location, fuel_name,
price, and optionally lat, lon. Prices may use a decimal comma and a
currency suffix ("35,90 Kč").
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from petrolscan.crawlers.base import StationCrawler
from petrolscan.crawlers.parsing import parse_price
from petrolscan.crawlers.registry import register_crawler
from petrolscan.models import SENTINEL_COORDINATE, Location, Observation

REQUIRED_COLUMNS = ("station_name", "location", "fuel_name", "price")


@register_crawler("file")
class ObservationFileCrawler(StationCrawler):
    """Yield observations from a CSV or XLSX file.

    Example config:
        {
            "file_path": "exports/globus_2024-05-01.csv"
        }
    """

    async def fetch_observations(self) -> AsyncIterator[Observation]:
        file_path = Path(self._get_config_value("file_path", required=True))

        if not file_path.exists():
            raise FileNotFoundError(f"Observation file not found: {file_path}")

        if file_path.suffix.lower() == ".csv":
            df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
        elif file_path.suffix.lower() in (".xlsx", ".xls"):
            df = pd.read_excel(file_path, dtype=str, keep_default_na=False)
        else:
            raise ValueError(f"Unsupported file format: {file_path.suffix}")

        df.columns = [str(column).strip().lower() for column in df.columns]
        missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            raise ValueError(f"{file_path} is missing columns: {', '.join(missing)}")

        self.logger.info(f"Read {len(df)} rows from {file_path}")

        for idx, row in df.iterrows():
            observation = self._parse_row(row)
            if observation is None:
                self.logger.warning(f"Row {idx} skipped: unparseable observation")
                continue
            yield observation

    def _parse_row(self, row: pd.Series) -> Observation | None:
        price = parse_price(row["price"])
        if price is None:
            return None

        try:
            return Observation(
                station=self.station,
                station_name=row["station_name"],
                location=Location(
                    name=str(row["location"]).strip(),
                    lat=_get_float(row.get("lat")),
                    lon=_get_float(row.get("lon")),
                ),
                fuel_name=row["fuel_name"],
                price=price,
            )
        except ValidationError:
            return None


def _get_float(value) -> float:
    """Coordinate from a cell; blank or invalid cells give the sentinel."""
    if value is None or str(value).strip() == "":
        return SENTINEL_COORDINATE
    try:
        return float(str(value).replace(",", ".").strip())
    except ValueError:
        return SENTINEL_COORDINATE
