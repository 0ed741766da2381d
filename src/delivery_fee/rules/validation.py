"""Request and resolved-context checks for delivery fee quotes."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..domain import (
    EPOCH,
    BadRequest,
    DeliveryRequest,
    FeeContext,
    Found,
    NotFound,
    datetime_to_timestamp,
)

_SENTINELS = (EPOCH, datetime.min)


def validate_request(request: DeliveryRequest, now: datetime) -> Optional[BadRequest]:
    if not request.city:
        return BadRequest("City must not be empty.", field="city")
    if not request.vehicle_type:
        return BadRequest("Vehicle type must not be empty.", field="vehicle_type")
    if request.requested_at is not None:
        if request.requested_at > now:
            return BadRequest("Requested time cannot be in the future.", field="timestamp")
        if request.requested_at in _SENTINELS:
            return BadRequest("Requested time is an invalid date.", field="timestamp")
    return None


def validate_context(context: FeeContext, request: DeliveryRequest) -> Optional[NotFound]:
    """First failing check wins: station, vehicle, fee type, rate, forecast."""
    if not isinstance(context.station_id, Found):
        return NotFound(f"Weather station for city '{request.city}' was not found.", entity="station")
    if not isinstance(context.vehicle_id, Found):
        return NotFound(f"Vehicle type with name '{request.vehicle_type}' was not found.", entity="vehicle")
    if not isinstance(context.fee_type_id, Found):
        return NotFound("Regional base fee type was not found.", entity="fee_type")
    if not isinstance(context.base_fee, Found):
        return NotFound(
            f"Regional base fee for city '{request.city}' and vehicle type '{request.vehicle_type}' was not found.",
            entity="base_fee",
        )
    if context.observation is None:
        station = context.station_id.value
        if request.requested_at is not None:
            timestamp = datetime_to_timestamp(request.requested_at)
            message = f"Weather forecast data from station '{station}' with timestamp '{timestamp}' was not found."
        else:
            message = f"Weather forecast data from station '{station}' was not found."
        return NotFound(message, entity="forecast")
    return None
