# src/delivery_fee/rules/fee_engine.py
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from ..domain import FeeContext, Forbidden, Found, VehicleKind
from .conditions import MAX_SEVERITY

logger = logging.getLogger(__name__)

FORBIDDEN = Forbidden()

# Vehicles exposed to air temperature and phenomenon surcharges
TEMPERATURE_SENSITIVE = frozenset({VehicleKind.BIKE.value, VehicleKind.SCOOTER.value})
PHENOMENON_SENSITIVE = TEMPERATURE_SENSITIVE
WIND_SENSITIVE = frozenset({VehicleKind.BIKE.value})

# grade -> surcharge; MAX_SEVERITY refuses service
PHENOMENON_SURCHARGES = {
    2: Decimal("1.0"),
    1: Decimal("0.5"),
    0: Decimal("0"),
}

ZERO = Decimal("0")


def _money(x: Decimal | int | float | str) -> Decimal:
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def air_temperature_surcharge(temperature: float, vehicle_type: str) -> Decimal:
    if vehicle_type not in TEMPERATURE_SENSITIVE:
        return ZERO
    if temperature < -10:
        return Decimal("1.0")
    # exactly -10 falls through both tiers
    if -10 < temperature < 0:
        return Decimal("0.5")
    return ZERO


def wind_speed_surcharge(wind_speed: float, vehicle_type: str) -> Union[Decimal, Forbidden]:
    if vehicle_type not in WIND_SENSITIVE:
        return ZERO
    if wind_speed > 20:
        return FORBIDDEN
    # exactly 20 falls through both tiers
    if 10 < wind_speed < 20:
        return Decimal("0.5")
    return ZERO


def phenomenon_surcharge(severity_grade: int, vehicle_type: str) -> Union[Decimal, Forbidden]:
    if vehicle_type not in PHENOMENON_SENSITIVE:
        return ZERO
    if severity_grade >= MAX_SEVERITY:
        return FORBIDDEN
    return PHENOMENON_SURCHARGES.get(severity_grade, ZERO)


def calculate_fee(context: FeeContext, vehicle_type: str) -> Union[Decimal, Forbidden]:
    """
    Base fee plus weather surcharges for an already validated context.

    Returns Forbidden when wind or phenomenon make the vehicle unsafe.
    """
    if not isinstance(context.base_fee, Found) or context.observation is None:
        raise ValueError("fee context is incomplete; validate it before calculating")

    forecast = context.observation
    wind = wind_speed_surcharge(forecast.wind_speed, vehicle_type)
    if isinstance(wind, Forbidden):
        logger.info("Wind %.1f m/s forbids %s", forecast.wind_speed, vehicle_type)
        return wind

    phenomenon = phenomenon_surcharge(context.severity_grade or 0, vehicle_type)
    if isinstance(phenomenon, Forbidden):
        logger.info("Phenomenon %r forbids %s", forecast.phenomenon, vehicle_type)
        return phenomenon

    temperature = air_temperature_surcharge(forecast.air_temperature, vehicle_type)
    return _money(context.base_fee.value + temperature + wind + phenomenon)
