"""Storage adapter for fuel price records.

Wraps an AsyncSession with the three operations the pipeline needs
(lookup, insert, update) and translates SQLAlchemy errors into the pipeline
error taxonomy. Every write commits on its own so a failure on one
observation never rolls back another.
"""

from __future__ import annotations

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from petrolscan.db.models import CrawlRunLogModel, FuelPriceRecordModel
from petrolscan.models import ClassifiedObservation, IdentityKey, StoredRecord
from petrolscan.pipeline.errors import LookupFailure, WriteConflict, WriteFailure


class FuelPriceStore:
    """Read and write fuel price records keyed by identity."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup_existing(self, key: IdentityKey) -> StoredRecord | None:
        """Fetch the record stored under ``key``.

        Quality is matched exactly, UNSPECIFIED included.

        Raises:
            LookupFailure: If the query fails or the key is ambiguous
        """
        stmt = select(FuelPriceRecordModel).where(
            and_(
                FuelPriceRecordModel.station_name == key.station_name,
                FuelPriceRecordModel.station_loc_lat == key.lat,
                FuelPriceRecordModel.station_loc_lon == key.lon,
                FuelPriceRecordModel.fuel_type == key.fuel_type.value,
                FuelPriceRecordModel.fuel_quality == key.fuel_quality.value,
            )
        ).execution_options(populate_existing=True)

        try:
            result = await self.session.execute(stmt)
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise LookupFailure(f"Lookup failed for {key.describe()}: {e}", key) from e

        return row.to_record() if row is not None else None

    async def write_insert(self, observation: ClassifiedObservation) -> StoredRecord:
        """Insert a new record for the observation's identity key.

        Raises:
            WriteConflict: If a row with the same identity key already exists
            WriteFailure: On any other database error
        """
        key = observation.identity_key
        model = FuelPriceRecordModel(
            station_name=observation.station_name,
            station_loc_name=observation.location.name,
            station_loc_lat=observation.location.lat,
            station_loc_lon=observation.location.lon,
            fuel_type=observation.fuel_type.value,
            fuel_quality=observation.fuel_quality.value,
            fuel_name=observation.fuel_name,
            fuel_price=observation.price,
        )

        try:
            self.session.add(model)
            await self.session.commit()
            await self.session.refresh(model)
        except IntegrityError as e:
            await self.session.rollback()
            raise WriteConflict(f"Insert conflict for {key.describe()}: {e.orig}", key) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise WriteFailure(f"Insert failed for {key.describe()}: {e}", key) from e

        return model.to_record()

    async def write_update(self, record_id: int, observation: ClassifiedObservation) -> StoredRecord:
        """Overwrite the mutable fields of record ``record_id`` and touch its timestamp.

        Raises:
            WriteFailure: If the row is gone or the update fails
        """
        key = observation.identity_key
        stmt = (
            update(FuelPriceRecordModel)
            .where(FuelPriceRecordModel.id == record_id)
            .values(
                station_loc_name=observation.location.name,
                fuel_name=observation.fuel_name,
                fuel_price=observation.price,
                timestamp=func.now(),
            )
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                await self.session.rollback()
                raise WriteFailure(f"Record {record_id} vanished before update ({key.describe()})", key)
            await self.session.commit()

            refreshed = await self.session.execute(
                select(FuelPriceRecordModel)
                .where(FuelPriceRecordModel.id == record_id)
                .execution_options(populate_existing=True)
            )
            row = refreshed.scalar_one()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise WriteFailure(f"Update failed for {key.describe()}: {e}", key) from e

        return row.to_record()

    async def list_records(
        self, station_name: str | None = None, limit: int = 50
    ) -> list[StoredRecord]:
        """Most recently written records, newest first."""
        stmt = select(FuelPriceRecordModel).order_by(
            FuelPriceRecordModel.timestamp.desc(), FuelPriceRecordModel.id.desc()
        )
        if station_name:
            stmt = stmt.where(FuelPriceRecordModel.station_name.ilike(f"%{station_name}%"))
        result = await self.session.execute(stmt.limit(limit))
        return [row.to_record() for row in result.scalars()]

    async def count_records(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(FuelPriceRecordModel))
        return int(result.scalar_one())

    async def recent_runs(self, limit: int = 20) -> list[CrawlRunLogModel]:
        stmt = (
            select(CrawlRunLogModel)
            .order_by(CrawlRunLogModel.run_timestamp.desc(), CrawlRunLogModel.source_name)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())
