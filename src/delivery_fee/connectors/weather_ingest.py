# src/delivery_fee/connectors/weather_ingest.py
"""
Weather observation ingestion from the Estonian Environment Agency feed.

Feed shape:
    <observations timestamp="1700000000">
      <station>
        <name>Tallinn-Harku</name>
        <phenomenon>Light snow shower</phenomenon>
        <airtemperature>-2.1</airtemperature>
        <windspeed>4.6</windspeed>
        ...
      </station>
    </observations>
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Mapping, Optional

import httpx
from lxml import etree

from ..cache import TTLCache
from ..domain import Forecast, timestamp_to_datetime
from ..resolver import FORECAST_TAG
from ..settings import settings

logger = logging.getLogger(__name__)

UA = "DeliveryFee/1.0 weather-ingest"


class WeatherFetchError(RuntimeError):
    """Raised when the observations feed cannot be retrieved or parsed."""


def _float(station: etree._Element, tag: str) -> float:
    text = (station.findtext(tag) or "").strip()
    if not text:
        return 0.0
    return float(text)


def parse_observations(xml: bytes, stations: Mapping[str, int]) -> List[Forecast]:
    """Map feed stations whose lower-cased name is in ``stations`` to forecasts."""
    try:
        root = etree.fromstring(xml)
    except etree.XMLSyntaxError as exc:
        raise WeatherFetchError(f"observations feed is not valid XML: {exc}") from exc

    try:
        observed_at: datetime = timestamp_to_datetime(int(root.get("timestamp") or 0))
    except ValueError as exc:
        raise WeatherFetchError(f"invalid observations timestamp {root.get('timestamp')!r}") from exc

    forecasts: List[Forecast] = []
    for station in root.iter("station"):
        name = (station.findtext("name") or "").strip().lower()
        station_id = stations.get(name)
        if station_id is None:
            continue
        try:
            forecasts.append(
                Forecast(
                    air_temperature=_float(station, "airtemperature"),
                    wind_speed=_float(station, "windspeed"),
                    phenomenon=(station.findtext("phenomenon") or "").strip().lower(),
                    observed_at=observed_at,
                    station_id=station_id,
                )
            )
        except ValueError:
            logger.warning("Skipping station %s: unparseable reading", name)
    return forecasts


class WeatherIngestJob:
    def __init__(
        self,
        repository,
        cache: TTLCache,
        *,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.repository = repository
        self.cache = cache
        self.url = url or settings.weather_api_url
        self.timeout = timeout or settings.request_timeout
        self._transport = transport

    async def fetch(self) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, headers={"User-Agent": UA}, transport=self._transport
            ) as client:
                r = await client.get(self.url, follow_redirects=True)
                r.raise_for_status()
                return r.content
        except httpx.HTTPStatusError as e:
            raise WeatherFetchError(f"HTTP {e.response.status_code} fetching {self.url}") from e
        except httpx.HTTPError as e:
            raise WeatherFetchError(f"Failed to fetch weather data: {e}") from e

    async def run(self) -> int:
        """Fetch, store and invalidate cached forecasts. Returns rows stored."""
        xml = await self.fetch()
        stations = await self.repository.list_stations()
        forecasts = parse_observations(xml, stations)
        stored = await self.repository.add_forecasts(forecasts)
        self.cache.invalidate_by_tag(FORECAST_TAG)
        logger.info("Stored %d weather observations from %s", stored, self.url)
        return stored
