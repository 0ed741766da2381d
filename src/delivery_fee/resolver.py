# src/delivery_fee/resolver.py
"""
Builds the pricing context for a delivery request.

Cache keys:
  ("rates", city, vehicle)              station/vehicle/fee-type ids + base fee
  ("forecast", station_id, bucket)      selected observation; bucket is the
                                        request time floored to the bucket size,
                                        or ("current", utc date) for untimed requests
  ("vocabulary",) / ("grade", text)     condition keywords and classifications
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Hashable, Optional, Set

from .cache import TTLCache
from .domain import (
    MISSING,
    DeliveryRequest,
    FeeContext,
    Forecast,
    Found,
    Lookup,
    datetime_to_timestamp,
    lookup,
    utcnow,
)
from .rules.conditions import classify_phenomenon
from .settings import settings

logger = logging.getLogger(__name__)

FORECAST_TAG = "forecast"
RATES_TAG = "rates"
CONDITIONS_TAG = "conditions"
CURRENT_BUCKET = "current"


@dataclass(frozen=True)
class _RateLookup:
    station_id: Lookup[int]
    vehicle_id: Lookup[int]
    fee_type_id: Lookup[int]
    base_fee: Lookup[Decimal]

    @property
    def complete(self) -> bool:
        return isinstance(self.base_fee, Found)


class ContextResolver:
    def __init__(
        self,
        repository,
        cache: TTLCache,
        *,
        ttl: Optional[float] = None,
        bucket_seconds: Optional[int] = None,
        base_fee_code: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.cache = cache
        self.ttl = settings.cache_ttl_seconds if ttl is None else ttl
        self.bucket_seconds = max(1, bucket_seconds or settings.forecast_cache_bucket_seconds)
        self.base_fee_code = base_fee_code or settings.base_fee_code
        self._clock = clock

    async def resolve(self, request: DeliveryRequest) -> FeeContext:
        """Never fails for missing data; absent pieces stay MISSING/None."""
        rates = await self.cache.get_or_compute(
            (RATES_TAG, request.city, request.vehicle_type),
            lambda: self._lookup_rates(request.city, request.vehicle_type),
            ttl=self.ttl,
            tags=(RATES_TAG,),
            cache_if=lambda r: r.complete,
        )
        context = FeeContext(
            station_id=rates.station_id,
            vehicle_id=rates.vehicle_id,
            fee_type_id=rates.fee_type_id,
            base_fee=rates.base_fee,
        )
        if not isinstance(rates.station_id, Found):
            return context

        forecast = await self._forecast(rates.station_id.value, request.requested_at)
        if forecast is not None:
            context.observation = forecast
            context.severity_grade = await self._severity(forecast.phenomenon)
        return context

    async def _lookup_rates(self, city: str, vehicle_type: str) -> _RateLookup:
        station_id, vehicle_id, fee_type_id = await asyncio.gather(
            self.repository.resolve_station_id_by_city(city),
            self.repository.resolve_vehicle_id_by_name(vehicle_type),
            self.repository.resolve_fee_type_id_by_code(self.base_fee_code),
        )
        base_fee: Lookup[Decimal] = MISSING
        if station_id is not None and vehicle_id is not None and fee_type_id is not None:
            base_fee = lookup(await self.repository.get_base_fee(station_id, vehicle_id, fee_type_id))
        return _RateLookup(lookup(station_id), lookup(vehicle_id), lookup(fee_type_id), base_fee)

    def _bucket(self, requested_at: Optional[datetime], today: date) -> Hashable:
        if requested_at is None:
            return (CURRENT_BUCKET, today)
        ts = datetime_to_timestamp(requested_at)
        return ts - ts % self.bucket_seconds

    async def _forecast(self, station_id: int, requested_at: Optional[datetime]) -> Optional[Forecast]:
        today = self._clock().date()
        return await self.cache.get_or_compute(
            (FORECAST_TAG, station_id, self._bucket(requested_at, today)),
            lambda: self.repository.get_forecast(station_id, requested_at, today),
            ttl=self.ttl,
            tags=(FORECAST_TAG,),
            cache_if=lambda f: f is not None,
        )

    async def _severity(self, phenomenon: str) -> int:
        text = (phenomenon or "").lower()

        async def classify() -> int:
            vocabulary = await self._vocabulary()
            return classify_phenomenon(text, vocabulary)

        return await self.cache.get_or_compute(
            ("grade", text), classify, ttl=self.ttl, tags=(CONDITIONS_TAG,)
        )

    async def _vocabulary(self) -> Dict[int, Set[str]]:
        return await self.cache.get_or_compute(
            ("vocabulary",),
            self.repository.get_condition_vocabulary,
            ttl=self.ttl,
            tags=(CONDITIONS_TAG,),
        )
