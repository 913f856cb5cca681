"""
SimulationConfig: immutable value injected into the estimator and the scheduler
- Built from the stored simulation_config row or from the documented defaults in settings.
"""

from dataclasses import dataclass, asdict

from parcel_tracker.config import settings
from parcel_tracker.exceptions import ConfigurationError


@dataclass(frozen=True)
class SimulationConfig:
    origin_company_name: str
    origin_address: str | None
    origin_city: str
    origin_state: str
    origin_zip: str | None
    origin_lat: float
    origin_lng: float
    min_delivery_days: int
    max_delivery_days: int
    update_start_hour: int
    update_end_hour: int
    skip_weekends: bool = True
    days_per_checkpoint: float = 1.5
    max_checkpoints: int = 12

    def validate(self) -> "SimulationConfig":
        if self.min_delivery_days < 1:
            raise ConfigurationError("min_delivery_days must be at least 1")
        if self.min_delivery_days > self.max_delivery_days:
            raise ConfigurationError(
                f"min_delivery_days ({self.min_delivery_days}) is greater than "
                f"max_delivery_days ({self.max_delivery_days})"
            )
        if not (0 <= self.update_start_hour < self.update_end_hour <= 24):
            raise ConfigurationError(
                f"Invalid business window {self.update_start_hour}h-{self.update_end_hour}h"
            )
        if self.days_per_checkpoint <= 0:
            raise ConfigurationError("days_per_checkpoint must be positive")
        if self.max_checkpoints < 0:
            raise ConfigurationError("max_checkpoints must not be negative")
        return self

    @property
    def window_minutes(self) -> int:
        return (self.update_end_hour - self.update_start_hour) * 60

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def defaults(cls) -> "SimulationConfig":
        """The single documented fallback, taken from settings."""
        return cls(
            origin_company_name=settings.DEFAULT_ORIGIN_COMPANY_NAME,
            origin_address=settings.DEFAULT_ORIGIN_ADDRESS or None,
            origin_city=settings.DEFAULT_ORIGIN_CITY,
            origin_state=settings.DEFAULT_ORIGIN_STATE,
            origin_zip=settings.DEFAULT_ORIGIN_ZIP or None,
            origin_lat=settings.DEFAULT_ORIGIN_LAT,
            origin_lng=settings.DEFAULT_ORIGIN_LNG,
            min_delivery_days=settings.DEFAULT_MIN_DELIVERY_DAYS,
            max_delivery_days=settings.DEFAULT_MAX_DELIVERY_DAYS,
            update_start_hour=settings.DEFAULT_UPDATE_START_HOUR,
            update_end_hour=settings.DEFAULT_UPDATE_END_HOUR,
            skip_weekends=settings.DEFAULT_SKIP_WEEKENDS,
            days_per_checkpoint=settings.DEFAULT_DAYS_PER_CHECKPOINT,
            max_checkpoints=settings.DEFAULT_MAX_CHECKPOINTS,
        )

    @classmethod
    def from_record(cls, record) -> "SimulationConfig":
        return cls(
            origin_company_name=record.origin_company_name,
            origin_address=record.origin_address,
            origin_city=record.origin_city,
            origin_state=record.origin_state,
            origin_zip=record.origin_zip,
            origin_lat=record.origin_lat,
            origin_lng=record.origin_lng,
            min_delivery_days=record.min_delivery_days,
            max_delivery_days=record.max_delivery_days,
            update_start_hour=record.update_start_hour,
            update_end_hour=record.update_end_hour,
            skip_weekends=record.skip_weekends,
            days_per_checkpoint=record.days_per_checkpoint,
            max_checkpoints=record.max_checkpoints,
        )
