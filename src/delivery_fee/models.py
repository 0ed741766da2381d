from __future__ import annotations
from typing import Optional
import datetime
from decimal import Decimal

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import String, Numeric, Integer, Float, DateTime, ForeignKey, UniqueConstraint, Index

class Base(DeclarativeBase):
    pass

class WeatherStation(Base):
    __tablename__ = "weather_stations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)  # lower-cased feed name
    wmo_code: Mapped[Optional[int]] = mapped_column(Integer)

    locations: Mapped[list["Location"]] = relationship(back_populates="station", cascade="all, delete-orphan")


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)  # normalized city name
    station_id: Mapped[int] = mapped_column(ForeignKey("weather_stations.id", ondelete="CASCADE"))

    station: Mapped[WeatherStation] = relationship(back_populates="locations")


class VehicleType(Base):
    __tablename__ = "vehicle_types"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(32), unique=True)


class FeeType(Base):
    __tablename__ = "fee_types"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(16), unique=True)
    name: Mapped[str] = mapped_column(String(120))


class Fee(Base):
    __tablename__ = "fees"
    __table_args__ = (UniqueConstraint("station_id", "vehicle_type_id", "fee_type_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    station_id: Mapped[int] = mapped_column(ForeignKey("weather_stations.id", ondelete="CASCADE"))
    vehicle_type_id: Mapped[int] = mapped_column(ForeignKey("vehicle_types.id", ondelete="CASCADE"))
    fee_type_id: Mapped[int] = mapped_column(ForeignKey("fee_types.id", ondelete="CASCADE"))
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))


class ConditionType(Base):
    """Severity grade bucket; grade 3 refuses two-wheeled vehicles."""

    __tablename__ = "condition_types"

    id: Mapped[int] = mapped_column(primary_key=True)
    grade: Mapped[int] = mapped_column(Integer, unique=True)

    conditions: Mapped[list["WeatherCondition"]] = relationship(
        back_populates="condition_type", cascade="all, delete-orphan"
    )


class WeatherCondition(Base):
    __tablename__ = "weather_conditions"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))  # keyword matched as a substring
    condition_type_id: Mapped[int] = mapped_column(ForeignKey("condition_types.id", ondelete="CASCADE"))

    condition_type: Mapped[ConditionType] = relationship(back_populates="conditions")


class WeatherForecast(Base):
    __tablename__ = "weather_forecasts"
    __table_args__ = (Index("ix_weather_forecasts_station_observed", "station_id", "observed_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    station_id: Mapped[int] = mapped_column(ForeignKey("weather_stations.id", ondelete="CASCADE"))
    air_temperature: Mapped[float] = mapped_column(Float)
    wind_speed: Mapped[float] = mapped_column(Float)
    phenomenon: Mapped[str] = mapped_column(String(120), default="")
    observed_at: Mapped[datetime.datetime] = mapped_column(DateTime)  # naive UTC
