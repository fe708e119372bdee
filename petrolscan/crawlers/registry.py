"""Configuration loader for station crawlers.

Loads source configurations from YAML and instantiates the registered
crawler class for each enabled source.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from petrolscan.crawlers.base import StationCrawler

logger = logging.getLogger(__name__)


# Crawler registry (maps type to class)
CRAWLER_REGISTRY: dict[str, type[StationCrawler]] = {}


def register_crawler(crawler_type: str):
    """Decorator to register crawler classes.

    Usage:
        @register_crawler("file")
        class ObservationFileCrawler(StationCrawler):
            ...
    """

    def decorator(cls):
        CRAWLER_REGISTRY[crawler_type] = cls
        return cls

    return decorator


def load_crawler_config(
    config_path: Path, stations: list[str] | None = None
) -> list[StationCrawler]:
    """Load crawler configuration and instantiate crawlers.

    Args:
        config_path: Path to YAML configuration file
        stations: Only keep sources for these stations (all when None)

    Returns:
        List of configured crawler instances

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Crawler config not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if not config or "sources" not in config:
        raise ValueError("Invalid crawler config: missing 'sources' section")

    wanted = {station.lower() for station in stations} if stations else None
    crawlers = []

    for source_config in config["sources"]:
        name = source_config.get("name")

        if not source_config.get("enabled", True):
            logger.info(f"Skipping disabled source: {name}")
            continue

        if wanted is not None and str(source_config.get("station", "")).lower() not in wanted:
            continue

        try:
            crawler = create_crawler(source_config)
        except (KeyError, ValueError) as e:
            logger.error(f"Failed to load source {name}: {e}")
            continue

        crawlers.append(crawler)
        logger.info(f"Loaded crawler: {crawler.source_name} ({source_config['type']})")

    logger.info(f"Loaded {len(crawlers)} crawlers from config")

    return crawlers


def create_crawler(source_config: dict) -> StationCrawler:
    """Create crawler instance from one source entry.

    Raises:
        ValueError: If crawler type or station is unknown
    """
    crawler_type = source_config.get("type")
    source_name = source_config.get("name")

    if not crawler_type:
        raise ValueError(f"Source {source_name} missing 'type' field")

    # Crawler modules register themselves on import
    import petrolscan.crawlers.file_source  # noqa: F401
    import petrolscan.crawlers.globus  # noqa: F401

    crawler_cls = CRAWLER_REGISTRY.get(crawler_type)
    if crawler_cls is None:
        raise ValueError(f"Unknown crawler type: {crawler_type}")

    return crawler_cls(
        source_name or crawler_type,
        source_config["station"],
        source_config.get("config") or {},
    )
