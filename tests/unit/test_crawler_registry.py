"""Unit tests for crawler YAML config loading and the crawler registry."""

from __future__ import annotations

from pathlib import Path

import pytest

from petrolscan.crawlers.file_source import ObservationFileCrawler
from petrolscan.crawlers.globus import GlobusCrawler
from petrolscan.crawlers.registry import (
    CRAWLER_REGISTRY,
    create_crawler,
    load_crawler_config,
)
from petrolscan.models import Station

SOURCES_YAML = """
sources:
  - name: globus-web
    station: globus
    type: globus
    enabled: true
    config:
      geocode: false

  - name: ono-export
    station: ono
    type: file
    config:
      file_path: exports/ono.csv

  - name: orlen-export
    station: orlen
    type: file
    enabled: false
    config:
      file_path: exports/orlen.csv

  - name: broken
    station: tesco
    type: file
"""


@pytest.fixture
def sources_file(tmp_path):
    path = tmp_path / "crawlers.yaml"
    path.write_text(SOURCES_YAML, encoding="utf-8")
    return path


class TestLoadCrawlerConfig:
    def test_loads_enabled_sources(self, sources_file):
        crawlers = load_crawler_config(sources_file)

        assert [c.source_name for c in crawlers] == ["globus-web", "ono-export"]
        assert isinstance(crawlers[0], GlobusCrawler)
        assert isinstance(crawlers[1], ObservationFileCrawler)
        assert crawlers[1].station == Station.ONO
        assert crawlers[1].config == {"file_path": "exports/ono.csv"}

    def test_station_filter(self, sources_file):
        crawlers = load_crawler_config(sources_file, stations=["ONO"])

        assert [c.source_name for c in crawlers] == ["ono-export"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_crawler_config(tmp_path / "missing.yaml")

    def test_missing_sources_section(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("stations: []\n", encoding="utf-8")

        with pytest.raises(ValueError, match="sources"):
            load_crawler_config(path)

    def test_bundled_config_loads(self):
        crawlers = load_crawler_config(Path(__file__).parents[2] / "config" / "crawlers.yaml")

        assert [c.source_name for c in crawlers] == ["globus-web"]


class TestCreateCrawler:
    def test_registry_contains_builtin_types(self):
        create_crawler({"name": "x", "station": "globus", "type": "file"})

        assert CRAWLER_REGISTRY["file"] is ObservationFileCrawler
        assert CRAWLER_REGISTRY["globus"] is GlobusCrawler

    def test_missing_type(self):
        with pytest.raises(ValueError, match="missing 'type'"):
            create_crawler({"name": "x", "station": "globus"})

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown crawler type"):
            create_crawler({"name": "x", "station": "globus", "type": "ftp"})

    def test_unknown_station(self):
        with pytest.raises(ValueError):
            create_crawler({"name": "x", "station": "tesco", "type": "file"})

    def test_name_defaults_to_type(self):
        crawler = create_crawler({"station": "makro", "type": "file"})

        assert crawler.source_name == "file"
        assert crawler.station == Station.MAKRO
        assert crawler.config == {}
