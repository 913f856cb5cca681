"""
Delivery event scheduler: synthesizes the future plan of one delivery
- Pure: reads a Delivery snapshot and a SimulationConfig, performs no I/O.
  Callers delete the delivery's unexecuted events before inserting the result.
- Timeline (each timestamp snapped forward into the business window, >= 5 min apart):
    collection        now + 15-45 min
    departure         collection + 1-3 h                         (status in_transit)
    location_update   one per chosen business day before the final day (no status change)
    out_for_delivery  final day, first hour of the window
    delivered         final day, 40%-90% into the window
- Terminal deliveries and deliveries without a usable destination get an empty plan.
"""

import logging
import math
import random
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta

from parcel_tracker.exceptions import InsufficientDataError
from parcel_tracker.models.delivery import DeliveryStatus
from parcel_tracker.simulator.business_hours import (
    business_day_on_or_after,
    business_days_between,
    is_business_day,
    next_business_day,
    snap_to_window,
    window_start,
)
from parcel_tracker.simulator.clock import local_now
from parcel_tracker.simulator.config import SimulationConfig
from parcel_tracker.simulator.estimator import estimate_delivery_date, estimate_transit_days, origin_city
from parcel_tracker.simulator.geo import (
    City,
    distance_between,
    find_or_create_city,
    nearest_city,
    route_waypoints,
)
from parcel_tracker.simulator.status_machine import remaining_stages

logger = logging.getLogger(__name__)

MIN_GAP = timedelta(minutes=5)

# Plan progress: checkpoints are spread linearly between departure and out_for_delivery
PROGRESS_COLLECTED = 10
PROGRESS_DEPARTED = 20
PROGRESS_CHECKPOINT_SPAN = 60
PROGRESS_OUT_FOR_DELIVERY = 90
PROGRESS_DELIVERED = 100


@dataclass
class ScheduledEventDraft:
    delivery_id: int | None
    scheduled_for: datetime
    event_type: str  # "collection", "departure", "location_update", "out_for_delivery", "delivered"
    new_status: DeliveryStatus | None
    location: str
    city: str | None
    state: str | None
    lat: float | None
    lng: float | None
    description: str
    progress_percent: int
    distance_traveled: float

    def to_row(self) -> dict:
        """Column values for a ScheduledEvent row."""
        row = asdict(self)
        row["new_status"] = self.new_status.value if self.new_status else None
        return row


def checkpoint_count(available_days: int, config: SimulationConfig) -> int:
    """Intermediate location updates for a transit with available_days business days in between."""
    if available_days <= 0 or config.max_checkpoints <= 0:
        return 0
    count = round(available_days / config.days_per_checkpoint)
    return min(max(count, 1), config.max_checkpoints, available_days)


def _resolve_route(delivery, config: SimulationConfig) -> tuple[City, City]:
    if delivery.origin_city and delivery.origin_state:
        origin = find_or_create_city(delivery.origin_city, delivery.origin_state)
        if delivery.origin_lat is not None and delivery.origin_lng is not None:
            origin = City(origin.name, origin.state, delivery.origin_lat, delivery.origin_lng, origin.is_hub)
    else:
        origin = origin_city(config)

    if delivery.destination_city and delivery.destination_state:
        destination = find_or_create_city(delivery.destination_city, delivery.destination_state)
        if delivery.destination_lat is not None and delivery.destination_lng is not None:
            destination = City(destination.name, destination.state,
                               delivery.destination_lat, delivery.destination_lng, destination.is_hub)
    elif delivery.destination_lat is not None and delivery.destination_lng is not None:
        near = nearest_city(delivery.destination_lat, delivery.destination_lng)
        destination = City(near.name, near.state, delivery.destination_lat, delivery.destination_lng)
    else:
        raise InsufficientDataError(
            f"Delivery {delivery.id}: destination has neither city/state nor coordinates"
        )

    return origin, destination


class _Timeline:
    """Hands out strictly increasing in-window timestamps."""

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.last: datetime | None = None

    def place(self, desired: datetime) -> datetime:
        if self.last is not None:
            desired = max(desired, self.last + MIN_GAP)
        self.last = snap_to_window(desired, self.config)
        return self.last


def _final_day(delivery, config: SimulationConfig, first_feasible: date, now: datetime,
               rng: random.Random) -> date:
    stored = delivery.estimated_delivery
    if isinstance(stored, datetime):
        stored = stored.date()
    if stored and stored >= first_feasible and is_business_day(stored, config):
        return stored

    fresh = estimate_delivery_date(config, delivery.destination_city, delivery.destination_state, now, rng)
    return max(fresh, first_feasible)


def generate_delivery_events(
    delivery,
    config: SimulationConfig,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[ScheduledEventDraft]:
    """
    Ordered plan carrying delivery from its current status to delivered.
    Raises ConfigurationError for an invalid config; insufficient route data -> [].
    """
    config.validate()
    now = now or local_now()
    rng = rng or random.Random()

    stages = remaining_stages(delivery.status)
    if not stages:
        return []

    try:
        origin, destination = _resolve_route(delivery, config)
    except InsufficientDataError as e:
        logger.warning(f"No event plan generated: {e}")
        return []

    total_km = round(distance_between(origin, destination), 1)
    dest_label = f"{destination.name}/{destination.state}"
    timeline = _Timeline(config)
    events: list[ScheduledEventDraft] = []

    def add(when, event_type, status, location, city, description, progress, distance):
        events.append(ScheduledEventDraft(
            delivery_id=delivery.id,
            scheduled_for=when,
            event_type=event_type,
            new_status=status,
            location=location,
            city=city.name,
            state=city.state,
            lat=city.lat,
            lng=city.lng,
            description=description,
            progress_percent=progress,
            distance_traveled=distance,
        ))

    # ── Early stages: collection and departure from origin ──
    if DeliveryStatus.COLLECTED in stages:
        when = timeline.place(now + timedelta(minutes=rng.randint(15, 45)))
        add(when, "collection", DeliveryStatus.COLLECTED, f"{origin.name}/{origin.state}", origin,
            "Pacote coletado no remetente", PROGRESS_COLLECTED, 0.0)

    if DeliveryStatus.IN_TRANSIT in stages:
        reference = timeline.last or now
        when = timeline.place(reference + timedelta(minutes=rng.randint(60, 180)))
        add(when, "departure", DeliveryStatus.IN_TRANSIT, f"Centro de Distribuição {origin.name}", origin,
            f"Objeto saiu de {origin.name} em transferência para {dest_label}", PROGRESS_DEPARTED, 0.0)

    # ── Final day ──
    if DeliveryStatus.OUT_FOR_DELIVERY not in stages:
        # Already out for delivery: arrives on the current (or next) business day
        final_day = business_day_on_or_after(now.date(), config)
    else:
        first_feasible = next_business_day((timeline.last or now).date(), config)
        final_day = _final_day(delivery, config, first_feasible, now, rng)

    # ── Intermediate checkpoints ──
    if DeliveryStatus.OUT_FOR_DELIVERY in stages:
        start_day = (timeline.last or now).date()
        days = business_days_between(start_day, final_day, config)
        count = checkpoint_count(len(days), config)
        for i, waypoint in enumerate(route_waypoints(origin, destination, count)):
            day = days[i * len(days) // count]
            offset = rng.uniform(0.1, 0.9) * config.window_minutes
            when = timeline.place(window_start(day, config) + timedelta(minutes=offset))
            add(when, "location_update", None, waypoint.label, waypoint.city,
                f"Objeto em trânsito, recebido em {waypoint.city.name}/{waypoint.city.state}",
                PROGRESS_DEPARTED + round(PROGRESS_CHECKPOINT_SPAN * waypoint.progress),
                waypoint.distance_from_origin)

        lead = rng.randint(0, min(60, config.window_minutes // 4))
        when = timeline.place(window_start(final_day, config) + timedelta(minutes=lead))
        add(when, "out_for_delivery", DeliveryStatus.OUT_FOR_DELIVERY, dest_label, destination,
            "Objeto saiu para entrega ao destinatário", PROGRESS_OUT_FOR_DELIVERY, total_km)

        desired = window_start(final_day, config) + timedelta(
            minutes=rng.uniform(0.4, 0.9) * config.window_minutes
        )
    else:
        midday = window_start(final_day, config) + timedelta(minutes=config.window_minutes / 2)
        desired = max(now + timedelta(minutes=30), midday)

    when = timeline.place(desired)
    add(when, "delivered", DeliveryStatus.DELIVERED, dest_label, destination,
        f"Objeto entregue ao destinatário em {dest_label}", PROGRESS_DELIVERED, total_km)

    return events


def route_preview(config: SimulationConfig, destination_city: str, destination_state: str) -> dict:
    """Deterministic route summary for the admin preview: distance, transit days and waypoints."""
    config.validate()
    origin = origin_city(config)
    destination = find_or_create_city(destination_city, destination_state)
    distance = distance_between(origin, destination)

    transit_days = estimate_transit_days(config, destination_city, destination_state, jitter=False)
    # Roughly the business days left between departure and the final day
    business_days = max(math.floor(transit_days * (5 / 7 if config.skip_weekends else 1)) - 2, 0)
    waypoints = route_waypoints(origin, destination, checkpoint_count(business_days, config))

    return {
        "origin": {"city": origin.name, "state": origin.state, "lat": origin.lat, "lng": origin.lng},
        "destination": {
            "city": destination.name, "state": destination.state,
            "lat": destination.lat, "lng": destination.lng,
        },
        "distance_km": round(distance, 1),
        "transit_days": transit_days,
        "waypoints": [
            {
                "label": w.label,
                "city": w.city.name,
                "state": w.city.state,
                "lat": w.city.lat,
                "lng": w.city.lng,
                "distance_from_origin": w.distance_from_origin,
                "progress_percent": PROGRESS_DEPARTED + round(PROGRESS_CHECKPOINT_SPAN * w.progress),
            }
            for w in waypoints
        ],
    }
