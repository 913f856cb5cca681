"""
Business window arithmetic
- A business day has the window [update_start_hour, update_end_hour); with skip_weekends,
  Saturday and Sunday have no window.
- snap_to_window never moves a timestamp backwards.
"""

from datetime import date, datetime, time, timedelta

from parcel_tracker.simulator.config import SimulationConfig


def is_business_day(day: date, config: SimulationConfig) -> bool:
    return not (config.skip_weekends and day.weekday() >= 5)


def next_business_day(day: date, config: SimulationConfig) -> date:
    """First business day strictly after day."""
    day += timedelta(days=1)
    while not is_business_day(day, config):
        day += timedelta(days=1)
    return day


def business_day_on_or_after(day: date, config: SimulationConfig) -> date:
    while not is_business_day(day, config):
        day += timedelta(days=1)
    return day


def window_start(day: date, config: SimulationConfig) -> datetime:
    return datetime.combine(day, time()) + timedelta(hours=config.update_start_hour)


def window_end(day: date, config: SimulationConfig) -> datetime:
    return datetime.combine(day, time()) + timedelta(hours=config.update_end_hour)


def in_window(moment: datetime, config: SimulationConfig) -> bool:
    day = moment.date()
    return (
        is_business_day(day, config)
        and window_start(day, config) <= moment < window_end(day, config)
    )


def ceil_to_minute(moment: datetime) -> datetime:
    if moment.second or moment.microsecond:
        return moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
    return moment


def snap_to_window(moment: datetime, config: SimulationConfig) -> datetime:
    """Earliest whole-minute instant >= moment that lies inside a business window."""
    moment = ceil_to_minute(moment)
    day = moment.date()

    if not is_business_day(day, config) or moment >= window_end(day, config):
        return window_start(next_business_day(day, config), config)
    if moment < window_start(day, config):
        return window_start(day, config)
    return moment


def business_days_between(start: date, end: date, config: SimulationConfig) -> list[date]:
    """Business days strictly between start and end."""
    days = []
    day = start + timedelta(days=1)
    while day < end:
        if is_business_day(day, config):
            days.append(day)
        day += timedelta(days=1)
    return days
