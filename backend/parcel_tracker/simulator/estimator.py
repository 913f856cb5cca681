"""
Delivery date estimator
- Transit days are picked in [min_delivery_days, max_delivery_days], biased by distance:
  same-state destinations start at min, the bias grows linearly up to ~3000 km,
  then a +-1 day jitter from the injected random source is applied and clamped.
- Days are counted as calendar days from the creation date. With skip_weekends the
  promised date must be a weekday: a weekend result moves to the closest weekday
  still inside the range (earlier first), or to the following Monday when none is.
- Missing destination -> midpoint of the range, no jitter.
"""

import random
from datetime import date, datetime, timedelta

from parcel_tracker.simulator.business_hours import is_business_day, business_day_on_or_after
from parcel_tracker.simulator.clock import local_now
from parcel_tracker.simulator.config import SimulationConfig
from parcel_tracker.simulator.geo import City, distance_between, find_or_create_city

# Distance at which the bias reaches max_delivery_days
FULL_BIAS_KM = 3000.0


def origin_city(config: SimulationConfig) -> City:
    return City(config.origin_city, config.origin_state.upper(), config.origin_lat, config.origin_lng)


def estimate_transit_days(
    config: SimulationConfig,
    destination_city: str | None,
    destination_state: str | None,
    rng: random.Random | None = None,
    jitter: bool = True,
) -> int:
    config.validate()
    low, high = config.min_delivery_days, config.max_delivery_days

    if not destination_city or not destination_state:
        return (low + high) // 2

    rng = rng or random.Random()
    origin = origin_city(config)
    destination = find_or_create_city(destination_city, destination_state)

    if destination.state == origin.state:
        base = low
    else:
        ratio = min(max(distance_between(origin, destination) / FULL_BIAS_KM, 0.0), 1.0)
        base = low + round((high - low) * ratio)

    if jitter:
        base += rng.randint(-1, 1)
    return min(max(base, low), high)


def _shift_off_weekend(start: date, days: int, config: SimulationConfig) -> date:
    target = start + timedelta(days=days)
    if is_business_day(target, config):
        return target

    # Closest in-range weekday, earlier first
    for step in range(1, config.max_delivery_days - config.min_delivery_days + 1):
        for offset in (days - step, days + step):
            if config.min_delivery_days <= offset <= config.max_delivery_days:
                candidate = start + timedelta(days=offset)
                if is_business_day(candidate, config):
                    return candidate

    return business_day_on_or_after(target, config)


def estimate_delivery_date(
    config: SimulationConfig,
    destination_city: str | None,
    destination_state: str | None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> date:
    """
    Promised delivery day for a delivery created at now (defaults to the local clock).
    Raises ConfigurationError for an invalid day range.
    """
    now = now or local_now()
    days = estimate_transit_days(config, destination_city, destination_state, rng)
    return _shift_off_weekend(now.date(), days, config)
