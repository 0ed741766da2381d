from datetime import datetime
from decimal import Decimal

import pytest

from delivery_fee.domain import FeeContext, Forbidden, Forecast, Found
from delivery_fee.rules.fee_engine import (
    air_temperature_surcharge,
    calculate_fee,
    phenomenon_surcharge,
    wind_speed_surcharge,
)


def _context(*, temperature=10.0, wind=5.0, phenomenon="", grade=0, base="3.00"):
    return FeeContext(
        station_id=Found(1),
        vehicle_id=Found(1),
        fee_type_id=Found(1),
        base_fee=Found(Decimal(base)),
        observation=Forecast(temperature, wind, phenomenon, datetime(2024, 3, 15, 12), 1),
        severity_grade=grade,
    )


@pytest.mark.parametrize(
    "temperature, vehicle, expected",
    [
        (-11.0, "car", Decimal("0")),
        (-11.0, "scooter", Decimal("1.0")),
        (-11.0, "bike", Decimal("1.0")),
        (-5.0, "scooter", Decimal("0.5")),
        (-5.0, "bike", Decimal("0.5")),
        (0.0, "bike", Decimal("0")),
        (5.0, "scooter", Decimal("0")),
        (5.0, "bike", Decimal("0")),
    ],
)
def test_air_temperature_surcharge(temperature, vehicle, expected):
    assert air_temperature_surcharge(temperature, vehicle) == expected


@pytest.mark.parametrize("vehicle", ["bike", "scooter"])
def test_temperature_exactly_minus_ten_has_no_surcharge(vehicle):
    # Neither "< -10" nor "between -10 and 0" covers -10 itself
    assert air_temperature_surcharge(-10.0, vehicle) == Decimal("0")


@pytest.mark.parametrize(
    "wind, vehicle, expected",
    [
        (5.0, "bike", Decimal("0")),
        (10.0, "bike", Decimal("0")),
        (15.0, "bike", Decimal("0.5")),
        (20.0, "bike", Decimal("0")),
        (15.0, "scooter", Decimal("0")),
        (21.0, "scooter", Decimal("0")),
        (21.0, "car", Decimal("0")),
    ],
)
def test_wind_speed_surcharge(wind, vehicle, expected):
    assert wind_speed_surcharge(wind, vehicle) == expected


def test_wind_above_twenty_forbids_bike():
    assert isinstance(wind_speed_surcharge(21.0, "bike"), Forbidden)


@pytest.mark.parametrize(
    "grade, vehicle, expected",
    [
        (0, "bike", Decimal("0")),
        (1, "bike", Decimal("0.5")),
        (2, "scooter", Decimal("1.0")),
        (3, "car", Decimal("0")),
        (2, "car", Decimal("0")),
    ],
)
def test_phenomenon_surcharge(grade, vehicle, expected):
    assert phenomenon_surcharge(grade, vehicle) == expected


@pytest.mark.parametrize("vehicle", ["bike", "scooter"])
@pytest.mark.parametrize("temperature, wind", [(20.0, 0.0), (-20.0, 15.0), (5.0, 10.0)])
def test_grade_three_always_forbidden_for_two_wheelers(vehicle, temperature, wind):
    result = calculate_fee(_context(temperature=temperature, wind=wind, phenomenon="glaze", grade=3), vehicle)
    assert isinstance(result, Forbidden)
    assert result.message == "Usage of selected vehicle type is forbidden."


def test_car_ignores_weather():
    result = calculate_fee(_context(temperature=-25.0, wind=30.0, phenomenon="glaze", grade=3, base="4.00"), "car")
    assert result == Decimal("4.00")


def test_surcharges_add_up():
    # base 3.00 + temp (-5) 0.5 + wind (15) 0.5 + rain 0.5
    result = calculate_fee(_context(temperature=-5.0, wind=15.0, phenomenon="light rain", grade=1), "bike")
    assert result == Decimal("4.50")


def test_scooter_snow_and_frost():
    result = calculate_fee(_context(temperature=-12.0, wind=25.0, phenomenon="snow", grade=2, base="3.50"), "scooter")
    assert result == Decimal("5.50")


def test_calm_weather_fee_equals_base():
    assert calculate_fee(_context(base="2.00"), "bike") == Decimal("2.00")


def test_unknown_vehicle_gets_base_only():
    assert calculate_fee(_context(temperature=-15.0, wind=25.0, grade=2, base="6.00"), "van") == Decimal("6.00")


def test_incomplete_context_is_rejected():
    with pytest.raises(ValueError):
        calculate_fee(FeeContext(), "car")
