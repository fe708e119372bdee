"""Crawl supervisor - runs every station crawler as its own task.

Key features:
- Isolated: each station gets its own task, session, pipeline and logger
- Resilient: a failing station does not stop the others
- Sequential per station: observations go through the pipeline one by one
- Cooperative stop: request_stop() lets in-flight writes finish, then stops
- Auditable: one crawl_run_log row per station and run
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petrolscan.core.logging import get_run_logger
from petrolscan.crawlers.base import StationCrawler
from petrolscan.db.connection import get_session_factory
from petrolscan.db.models import CrawlRunLogModel
from petrolscan.db.store import FuelPriceStore
from petrolscan.pipeline.price_pipeline import PricePipeline
from petrolscan.pipeline.types import CrawlResult, CrawlStatus

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


class CrawlSupervisor:
    """Supervises one crawl run across all configured station crawlers.

    Usage:
        supervisor = CrawlSupervisor(crawlers)
        summary = await supervisor.run()
    """

    def __init__(
        self,
        crawlers: list[StationCrawler],
        session_factory: SessionFactory | None = None,
        max_parallel: int | None = None,
    ):
        """Initialize supervisor.

        Args:
            crawlers: Configured crawler instances, one per station source
            session_factory: Callable creating AsyncSessions (defaults to the app's)
            max_parallel: Upper bound on concurrently running stations
        """
        self.crawlers = crawlers
        self.session_factory = session_factory
        self.max_parallel = max_parallel or max(1, len(crawlers))
        self.run_id = uuid4().hex[:12]
        self.run_timestamp = datetime.now(timezone.utc)
        self._stop = asyncio.Event()

    def request_stop(self) -> None:
        """Ask all station tasks to stop after their current observation."""
        if not self._stop.is_set():
            logger.warning(f"Stop requested for crawl run {self.run_id}")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> dict:
        """Execute the crawl run.

        Returns:
            Summary dict with overall status and per-station results
        """
        logger.info(f"Starting crawl run {self.run_id} with {len(self.crawlers)} sources")

        session_factory = self.session_factory or get_session_factory()
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def _bounded(crawler: StationCrawler) -> CrawlResult:
            async with semaphore:
                return await self._run_station(crawler, session_factory)

        results = await asyncio.gather(*(_bounded(crawler) for crawler in self.crawlers))

        await self._log_results(results, session_factory)

        summary = {
            "run_id": self.run_id,
            "run_timestamp": self.run_timestamp.isoformat(),
            "total_sources": len(self.crawlers),
            "successful_sources": sum(1 for r in results if r.success),
            "failed_sources": sum(1 for r in results if not r.success),
            "overall_success": all(r.success for r in results),
            "stopped": self.stop_requested,
            "results": list(results),
        }

        logger.info(
            f"Crawl run {self.run_id} completed: "
            f"{summary['successful_sources']}/{summary['total_sources']} sources successful"
        )
        return summary

    async def _run_station(
        self, crawler: StationCrawler, session_factory: SessionFactory
    ) -> CrawlResult:
        """Run one crawler and feed its observations through a fresh pipeline."""
        start_time = time.monotonic()
        run_logger = get_run_logger(self.run_id, crawler.station.value).bind(
            source=crawler.source_name
        )
        result = CrawlResult(
            source_name=crawler.source_name,
            station=crawler.station.value,
            status=CrawlStatus.SUCCESS,
        )

        if self.stop_requested:
            result.status = CrawlStatus.CANCELLED
            result.message = "Stopped before start"
            return result

        run_logger.info("station_crawl_started")
        session = session_factory()
        pipeline = PricePipeline(FuelPriceStore(session), logger=run_logger)

        try:
            observations = crawler.fetch_observations()
            try:
                async for observation in observations:
                    await pipeline.process(observation)
                    if self.stop_requested:
                        result.status = CrawlStatus.CANCELLED
                        break
            finally:
                await observations.aclose()
        except Exception as e:
            result.status = CrawlStatus.FAILED
            result.error_details = {
                "error_type": type(e).__name__,
                "error_message": str(e),
            }
            run_logger.error("station_crawl_failed", error=str(e), exc_info=True)
        finally:
            await session.close()

        stats = pipeline.get_stats()
        result.records_inserted = stats["inserted"]
        result.records_updated = stats["updated"]
        result.records_unchanged = stats["unchanged"]
        result.records_failed = stats["failed"]
        result.duration_seconds = time.monotonic() - start_time

        if result.status == CrawlStatus.FAILED and result.total_records > 0:
            result.status = CrawlStatus.PARTIAL_SUCCESS
        elif result.status == CrawlStatus.SUCCESS and result.records_failed > 0:
            result.status = CrawlStatus.PARTIAL_SUCCESS

        result.message = (
            f"Processed {result.total_records} observations: "
            f"{result.records_inserted} new, "
            f"{result.records_updated} updated, "
            f"{result.records_unchanged} unchanged, "
            f"{result.records_failed} failed"
        )
        if result.error_details:
            result.message += f" ({result.error_details['error_message']})"

        run_logger.info(
            "station_crawl_finished",
            status=result.status.value,
            duration_seconds=round(result.duration_seconds, 2),
            unclassified=stats["unclassified"],
            sentinel_locations=stats["sentinel_locations"],
            **{k: stats[k] for k in ("inserted", "updated", "unchanged", "failed")},
        )
        return result

    async def _log_results(
        self, results: list[CrawlResult], session_factory: SessionFactory
    ) -> None:
        """Write one crawl_run_log row per station."""
        session = session_factory()
        try:
            for result in results:
                session.add(
                    CrawlRunLogModel(
                        run_id=self.run_id,
                        run_timestamp=self.run_timestamp,
                        source_name=result.source_name,
                        station=result.station,
                        status=result.status.value,
                        records_inserted=result.records_inserted,
                        records_updated=result.records_updated,
                        records_unchanged=result.records_unchanged,
                        records_failed=result.records_failed,
                        message=result.message,
                        error_details=result.error_details,
                        duration_seconds=result.duration_seconds,
                    )
                )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to write crawl run log for {self.run_id}: {e}")
        finally:
            await session.close()


async def run_crawl(
    crawlers: list[StationCrawler], session_factory: SessionFactory | None = None
) -> dict:
    """Convenience function to run one supervised crawl."""
    supervisor = CrawlSupervisor(crawlers, session_factory=session_factory)
    return await supervisor.run()
