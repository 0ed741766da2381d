# src/delivery_fee/repository.py
"""
SQLAlchemy-backed reference and weather data access.

Every public method is a coroutine that runs its query in a worker thread on
its own short-lived Session, so independent lookups can be awaited together.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Set, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from .domain import Forecast
from .models import ConditionType, Fee, FeeType, Location, VehicleType, WeatherForecast, WeatherStation
from .rules.forecast_selector import select_forecast

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_forecast(row: WeatherForecast) -> Forecast:
    return Forecast(
        air_temperature=row.air_temperature,
        wind_speed=row.wind_speed,
        phenomenon=row.phenomenon or "",
        observed_at=row.observed_at,
        station_id=row.station_id,
    )


class FeeRepository:
    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with self._sessions() as db:
                return fn(db)

        return await asyncio.to_thread(work)

    # ------------- Identifier lookups -------------

    async def resolve_station_id_by_city(self, city: str) -> Optional[int]:
        return await self._run(
            lambda db: db.execute(select(Location.station_id).where(Location.name == city)).scalars().first()
        )

    async def resolve_vehicle_id_by_name(self, name: str) -> Optional[int]:
        return await self._run(
            lambda db: db.execute(select(VehicleType.id).where(VehicleType.name == name)).scalars().first()
        )

    async def resolve_fee_type_id_by_code(self, code: str) -> Optional[int]:
        return await self._run(
            lambda db: db.execute(select(FeeType.id).where(FeeType.code == code)).scalars().first()
        )

    async def get_base_fee(self, station_id: int, vehicle_id: int, fee_type_id: int) -> Optional[Decimal]:
        def query(db: Session) -> Optional[Decimal]:
            amount = (
                db.execute(
                    select(Fee.amount).where(
                        Fee.station_id == station_id,
                        Fee.vehicle_type_id == vehicle_id,
                        Fee.fee_type_id == fee_type_id,
                    )
                )
                .scalars()
                .first()
            )
            return None if amount is None else Decimal(str(amount))

        return await self._run(query)

    # ------------- Weather -------------

    async def get_forecast(self, station_id: int, target: Optional[datetime], today: date) -> Optional[Forecast]:
        """Today's latest observation, or the one nearest ``target`` on its date."""
        day = target.date() if target is not None else today
        start = datetime.combine(day, time.min)

        def query(db: Session) -> List[Forecast]:
            rows = (
                db.execute(
                    select(WeatherForecast)
                    .where(
                        WeatherForecast.station_id == station_id,
                        WeatherForecast.observed_at >= start,
                        WeatherForecast.observed_at < start + timedelta(days=1),
                    )
                    .order_by(WeatherForecast.observed_at, WeatherForecast.id)
                )
                .scalars()
                .all()
            )
            return [_to_forecast(r) for r in rows]

        observations = await self._run(query)
        return select_forecast(observations, station_id, target, today)

    async def get_condition_vocabulary(self) -> Dict[int, Set[str]]:
        def query(db: Session) -> Dict[int, Set[str]]:
            rows = (
                db.execute(select(ConditionType).options(selectinload(ConditionType.conditions)))
                .scalars()
                .all()
            )
            return {row.grade: {c.name.lower() for c in row.conditions} for row in rows}

        return await self._run(query)

    # ------------- Ingestion support -------------

    async def list_stations(self) -> Dict[str, int]:
        """Map lower-cased station name -> station id."""
        return await self._run(
            lambda db: {
                name.lower(): station_id
                for station_id, name in db.execute(select(WeatherStation.id, WeatherStation.name)).all()
            }
        )

    async def add_forecasts(self, forecasts: Iterable[Forecast]) -> int:
        rows = [
            WeatherForecast(
                station_id=f.station_id,
                air_temperature=f.air_temperature,
                wind_speed=f.wind_speed,
                phenomenon=f.phenomenon,
                observed_at=f.observed_at,
            )
            for f in forecasts
        ]

        def write(db: Session) -> int:
            db.add_all(rows)
            db.commit()
            return len(rows)

        return await self._run(write)
