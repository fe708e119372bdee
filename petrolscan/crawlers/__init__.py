"""Station crawlers producing fuel price observations."""

from petrolscan.crawlers.base import StationCrawler
from petrolscan.crawlers.registry import create_crawler, load_crawler_config

__all__ = ["StationCrawler", "create_crawler", "load_crawler_config"]
