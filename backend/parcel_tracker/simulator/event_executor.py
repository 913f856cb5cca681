"""
Scheduled event executor: applies due events to their deliveries
- Events run in scheduled_for order; each one is committed on its own.
- A status-bearing event whose transition is no longer valid (e.g. the delivery was
  manually moved forward) is marked executed without touching the delivery.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parcel_tracker.exceptions import DeliveryNotFoundError, NoPendingEventError
from parcel_tracker.models import Delivery, DeliveryHistory, DeliveryStatus, ScheduledEvent
from parcel_tracker.simulator.clock import local_now
from parcel_tracker.simulator.event_bus import event_bus
from parcel_tracker.simulator.status_machine import is_valid_transition

logger = logging.getLogger(__name__)


def apply_event(db: Session, event: ScheduledEvent, now: datetime) -> bool:
    """
    Apply one event to its delivery (no commit).
    Returns False when the event was skipped.
    """
    event.executed = True
    event.executed_at = now

    delivery = db.get(Delivery, event.delivery_id)
    if delivery is None:
        logger.warning(f"Event {event.id}: delivery {event.delivery_id} no longer exists, skipped")
        return False

    new_status = DeliveryStatus(event.new_status) if event.new_status else None
    if new_status and not is_valid_transition(delivery.status, new_status):
        logger.warning(
            f"Event {event.id}: {delivery.tracking_code} {delivery.status.value} -> "
            f"{new_status.value} not allowed, skipped"
        )
        return False

    previous = delivery.status
    delivery.current_location = f"{event.city}, {event.state}" if event.city else event.location
    delivery.current_lat = event.lat
    delivery.current_lng = event.lng
    if new_status:
        delivery.status = new_status
        delivery.delivered_at = now if new_status == DeliveryStatus.DELIVERED else None

    db.add(DeliveryHistory(
        delivery_id=delivery.id,
        status=delivery.status.value,
        location=event.location,
        city=event.city,
        state=event.state,
        lat=event.lat,
        lng=event.lng,
        description=event.description,
        progress_percent=event.progress_percent,
        created_at=now,
    ))

    if new_status and new_status != previous:
        event_bus.publish("deliveries.status_changed", {
            "delivery_id": delivery.id,
            "tracking_code": delivery.tracking_code,
            "from": previous.value,
            "to": new_status.value,
            "source": "scheduled_event",
        })
    return True


def process_due_events(db: Session, now: datetime | None = None, limit: int = 50) -> dict:
    """Execute every unexecuted event with scheduled_for <= now (oldest first, up to limit)."""
    now = now or local_now()
    events = (
        db.query(ScheduledEvent)
        .filter(ScheduledEvent.executed.is_(False), ScheduledEvent.scheduled_for <= now)
        .order_by(ScheduledEvent.scheduled_for.asc(), ScheduledEvent.id.asc())
        .limit(limit)
        .all()
    )

    processed, skipped = 0, 0
    errors: list[dict] = []
    for event in events:
        event_id = event.id
        try:
            if apply_event(db, event, now):
                processed += 1
            else:
                skipped += 1
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Event {event_id} failed: {e}")
            errors.append({"event_id": event_id, "error": str(e)})

    if events:
        logger.info(f"Processed {processed} scheduled events ({skipped} skipped, {len(errors)} failed)")

    return {
        "processed": processed,
        "skipped": skipped,
        "total": len(events),
        "errors": errors,
    }


def execute_next_event(db: Session, delivery_id: int, now: datetime | None = None) -> ScheduledEvent:
    """
    Run the earliest pending event of one delivery immediately (admin "advance status").
    Raises DeliveryNotFoundError / NoPendingEventError.
    """
    now = now or local_now()
    if db.get(Delivery, delivery_id) is None:
        raise DeliveryNotFoundError(f"Entrega {delivery_id} não encontrada")

    event = (
        db.query(ScheduledEvent)
        .filter(ScheduledEvent.delivery_id == delivery_id, ScheduledEvent.executed.is_(False))
        .order_by(ScheduledEvent.scheduled_for.asc(), ScheduledEvent.id.asc())
        .first()
    )
    if event is None:
        raise NoPendingEventError("Nenhum evento pendente para esta entrega")

    apply_event(db, event, now)
    db.commit()
    db.refresh(event)
    return event
