from __future__ import annotations

import os
from collections import Counter
from datetime import datetime
from decimal import Decimal

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_REFERENCE_DATA", "true")

from sqlalchemy.orm import sessionmaker

from delivery_fee.cache import TTLCache
from delivery_fee.db import init_db, make_engine
from delivery_fee.models import WeatherForecast
from delivery_fee.repository import FeeRepository
from delivery_fee.resolver import ContextResolver
from delivery_fee.rules.forecast_selector import select_forecast
from delivery_fee.service import DeliveryFeeService

NOW = datetime(2024, 3, 15, 12, 0, 0)

# Seeded station ids
TALLINN, TARTU, PARNU = 1, 2, 3

VOCABULARY = {3: {"glaze", "hail", "thunder"}, 2: {"snow", "sleet"}, 1: {"rain"}}


class StubRepository:
    """In-memory stand-in for FeeRepository that counts calls."""

    def __init__(self, *, stations=None, vehicles=None, fee_types=None, fees=None, forecasts=None, vocabulary=None):
        self.stations = {"tallinn": TALLINN} if stations is None else stations
        self.vehicles = {"car": 1, "scooter": 2, "bike": 3} if vehicles is None else vehicles
        self.fee_types = {"rbf": 1} if fee_types is None else fee_types
        self.fees = {(TALLINN, 1, 1): Decimal("4.00"), (TALLINN, 2, 1): Decimal("3.50"), (TALLINN, 3, 1): Decimal("3.00")} if fees is None else fees
        self.forecasts = [] if forecasts is None else forecasts
        self.vocabulary = VOCABULARY if vocabulary is None else vocabulary
        self.calls = Counter()

    async def resolve_station_id_by_city(self, city):
        self.calls["station"] += 1
        return self.stations.get(city)

    async def resolve_vehicle_id_by_name(self, name):
        self.calls["vehicle"] += 1
        return self.vehicles.get(name)

    async def resolve_fee_type_id_by_code(self, code):
        self.calls["fee_type"] += 1
        return self.fee_types.get(code)

    async def get_base_fee(self, station_id, vehicle_id, fee_type_id):
        self.calls["base_fee"] += 1
        return self.fees.get((station_id, vehicle_id, fee_type_id))

    async def get_forecast(self, station_id, target, today):
        self.calls["forecast"] += 1
        return select_forecast(self.forecasts, station_id, target, today)

    async def get_condition_vocabulary(self):
        self.calls["vocabulary"] += 1
        return self.vocabulary


def build_service(repository, *, now=NOW, bucket_seconds=1):
    cache = TTLCache(300)
    resolver = ContextResolver(
        repository,
        cache,
        ttl=300,
        bucket_seconds=bucket_seconds,
        base_fee_code="rbf",
        clock=lambda: now,
    )
    return DeliveryFeeService(resolver, clock=lambda: now)


@pytest.fixture
def stub_repository_cls():
    return StubRepository


@pytest.fixture
def service_factory():
    return build_service


@pytest.fixture
def db_engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'fees.db'}")
    init_db(engine, seed=True)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def repository(session_factory):
    return FeeRepository(session_factory)


@pytest.fixture
def add_observation(session_factory):
    def _add(station_id, observed_at, *, temperature=10.0, wind=3.0, phenomenon=""):
        with session_factory() as db:
            db.add(
                WeatherForecast(
                    station_id=station_id,
                    air_temperature=temperature,
                    wind_speed=wind,
                    phenomenon=phenomenon,
                    observed_at=observed_at,
                )
            )
            db.commit()

    return _add
