"""Database layer for PetrolScan with async SQLAlchemy."""

from petrolscan.db.connection import get_session, init_db
from petrolscan.db.models import Base, CrawlRunLogModel, FuelPriceRecordModel
from petrolscan.db.store import FuelPriceStore

__all__ = [
    "Base",
    "FuelPriceRecordModel",
    "CrawlRunLogModel",
    "FuelPriceStore",
    "get_session",
    "init_db",
]
