"""Value types shared by the fee-resolution pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Generic, Optional, TypeVar, Union

T = TypeVar("T")

EPOCH = datetime(1970, 1, 1)


class VehicleKind(str, Enum):
    """Vehicle names known to the surcharge rules.

    The rate table may list further vehicles; those are quoted at the base
    rate only.
    """

    CAR = "car"
    SCOOTER = "scooter"
    BIKE = "bike"


# -------------------------------
# Found | Missing lookups
# -------------------------------

@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


class Missing:
    _instance: ClassVar[Optional["Missing"]] = None

    def __new__(cls) -> "Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = Missing()

Lookup = Union[Found[T], Missing]


def lookup(value: Optional[T]) -> Lookup[T]:
    return MISSING if value is None else Found(value)


# -------------------------------
# Request / context
# -------------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(moment: datetime) -> datetime:
    """Aware times are converted to UTC; values past either end of the
    datetime range clamp to ``datetime.max`` / ``datetime.min``."""
    if moment.tzinfo is None:
        return moment
    try:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError:
        offset = moment.utcoffset()
        return datetime.max if offset is not None and offset < timedelta(0) else datetime.min


def timestamp_to_datetime(timestamp: int) -> datetime:
    """Convert Unix seconds to a naive UTC datetime.

    Raises ValueError for values outside the representable range.
    """
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"timestamp {timestamp} is out of range") from exc


def datetime_to_timestamp(moment: datetime) -> int:
    return int(moment.replace(tzinfo=timezone.utc).timestamp())


@dataclass(frozen=True)
class DeliveryRequest:
    city: str
    vehicle_type: str
    requested_at: Optional[datetime] = None

    @classmethod
    def create(cls, city: Optional[str], vehicle_type: Optional[str], requested_at: Optional[datetime] = None) -> "DeliveryRequest":
        return cls(
            city=(city or "").strip().lower(),
            vehicle_type=(vehicle_type or "").strip().lower(),
            requested_at=to_naive_utc(requested_at) if requested_at is not None else None,
        )


@dataclass(frozen=True)
class Forecast:
    """A single weather observation for one station."""
    air_temperature: float
    wind_speed: float
    phenomenon: str
    observed_at: datetime
    station_id: int


@dataclass
class FeeContext:
    station_id: Lookup[int] = MISSING
    vehicle_id: Lookup[int] = MISSING
    fee_type_id: Lookup[int] = MISSING
    base_fee: Lookup[Decimal] = MISSING
    observation: Optional[Forecast] = None
    severity_grade: Optional[int] = None  # only set alongside observation


# -------------------------------
# Outcomes
# -------------------------------

@dataclass(frozen=True)
class FeeQuote:
    amount: Decimal
    city: str
    vehicle_type: str
    observed_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeeFailure:
    message: str


@dataclass(frozen=True)
class BadRequest(FeeFailure):
    field: str = ""


@dataclass(frozen=True)
class NotFound(FeeFailure):
    entity: str = ""


@dataclass(frozen=True)
class Forbidden(FeeFailure):
    message: str = "Usage of selected vehicle type is forbidden."


@dataclass(frozen=True)
class InternalFailure(FeeFailure):
    message: str = "An unexpected error occurred."
    correlation_id: str = field(default="")


FeeResult = Union[FeeQuote, BadRequest, NotFound, Forbidden, InternalFailure]
