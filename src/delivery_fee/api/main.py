from __future__ import annotations

import os
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import text

from ..cache import TTLCache
from ..connectors.weather_ingest import WeatherFetchError, WeatherIngestJob
from ..db import SessionLocal, init_db
from ..domain import (
    BadRequest,
    FeeQuote,
    FeeResult,
    Forbidden,
    InternalFailure,
    NotFound,
    timestamp_to_datetime,
)
from ..repository import FeeRepository
from ..resolver import ContextResolver
from ..service import DeliveryFeeService
from ..settings import settings

# ---------------- Logging ----------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("delivery-fee-api")

API_VERSION = "1.0.0"

app = FastAPI(
    title="Delivery Fee API",
    version=API_VERSION,
    description="Delivery fee quotes from regional base rates and current weather.",
)

# ---------- Wiring ----------
cache = TTLCache(settings.cache_ttl_seconds)
repository = FeeRepository(SessionLocal)
service = DeliveryFeeService(ContextResolver(repository, cache))
weather_job = WeatherIngestJob(repository, cache)


def get_service() -> DeliveryFeeService:
    return service


def get_weather_job() -> WeatherIngestJob:
    return weather_job


class DeliveryFeeResponse(BaseModel):
    fee: float = Field(..., examples=[4.5])


_STATUS_BY_OUTCOME = {
    BadRequest: 400,
    NotFound: 404,
    Forbidden: 400,
}


def _to_response(result: FeeResult) -> DeliveryFeeResponse:
    if isinstance(result, FeeQuote):
        return DeliveryFeeResponse(fee=float(result.amount))
    if isinstance(result, InternalFailure):
        raise HTTPException(
            status_code=500,
            detail={"error": result.message, "correlation_id": result.correlation_id},
        )
    raise HTTPException(status_code=_STATUS_BY_OUTCOME[type(result)], detail=result.message)


async def _quote(svc: DeliveryFeeService, city: str, vehicle_type: str, timestamp: Optional[int]) -> DeliveryFeeResponse:
    requested_at = None
    if timestamp is not None:
        try:
            requested_at = timestamp_to_datetime(timestamp)
        except ValueError:
            raise HTTPException(status_code=400, detail="Requested time is an invalid date.")
    return _to_response(await svc.get_delivery_fee(city, vehicle_type, requested_at))


# ----- Startup -----
@app.on_event("startup")
async def _startup():
    try:
        init_db()
        logger.info("Startup complete, DB initialized.")
    except Exception:
        logger.exception("DB init failed during startup; continuing without blocking app.")

    if settings.ingest_on_startup:
        try:
            await weather_job.run()
        except WeatherFetchError:
            logger.exception("Initial weather ingestion failed; continuing without blocking app.")


# ----- Delivery fees -----
@app.get("/delivery/{city}/{vehicle_type}", response_model=DeliveryFeeResponse, tags=["Delivery"])
async def delivery_fee(
    city: str,
    vehicle_type: str,
    timestamp: Optional[int] = Query(None, description="Unix seconds; omit for current weather"),
    svc: DeliveryFeeService = Depends(get_service),
) -> DeliveryFeeResponse:
    return await _quote(svc, city, vehicle_type, timestamp)


@app.get("/delivery", response_model=DeliveryFeeResponse, tags=["Delivery"])
async def delivery_fee_from_query(
    city: str = Query("", description="City name (case-insensitive)"),
    vehicle_type: str = Query("", description="car, scooter or bike (case-insensitive)"),
    timestamp: Optional[int] = Query(None, description="Unix seconds; omit for current weather"),
    svc: DeliveryFeeService = Depends(get_service),
) -> DeliveryFeeResponse:
    return await _quote(svc, city, vehicle_type, timestamp)


# ----- System -----
@app.get("/health", tags=["System"])
def health() -> Dict[str, Any]:
    db_ok = True
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1")).scalar()
    except Exception:
        db_ok = False
    return {
        "ok": True,
        "version": API_VERSION,
        "db_ok": db_ok,
        "cache_stats": cache.stats(),
    }


# ----- Admin -----
@app.post("/admin/weather/refresh", tags=["Admin"])
async def refresh_weather(job: WeatherIngestJob = Depends(get_weather_job)) -> Dict[str, Any]:
    try:
        stored = await job.run()
    except WeatherFetchError as e:
        logger.exception("Weather refresh failed")
        raise HTTPException(status_code=502, detail=str(e))
    return {"message": "Weather data refreshed", "stored": stored}


@app.post("/admin/cache/clear", tags=["Admin"])
def clear_data_cache() -> Dict[str, str]:
    cache.clear()
    return {"message": "Cache cleared successfully"}


@app.get("/admin/cache/stats", tags=["Admin"])
def cache_statistics() -> Dict[str, Any]:
    return cache.stats()


# ----- Dev entrypoint -----
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
