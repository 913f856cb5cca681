import random
from datetime import datetime

import pytest

from parcel_tracker.exceptions import DeliveryNotFoundError, NoPendingEventError
from parcel_tracker.models import DeliveryHistory, DeliveryStatus, ScheduledEvent
from parcel_tracker.schemas.deliveries import DeliveryCreate, StatusUpdateRequest
from parcel_tracker.services.deliveries import create_delivery, pending_events, update_status
from parcel_tracker.simulator.event_bus import event_bus
from parcel_tracker.simulator.event_executor import execute_next_event, process_due_events

CREATED_AT = datetime(2024, 1, 1, 10, 0)
FAR_FUTURE = datetime(2030, 1, 1, 0, 0)


@pytest.fixture
def delivery(db, config):
    payload = DeliveryCreate(
        recipient_name="Bruno Lima",
        destination_address="Av. Afonso Pena, 1500",
        destination_city="Belo Horizonte",
        destination_state="MG",
    )
    created, _ = create_delivery(db, payload, config, now=CREATED_AT, rng=random.Random(42))
    return created


def test_processes_only_due_events(db, delivery):
    plan = pending_events(db, delivery.id)
    cutoff = plan[1].scheduled_for

    result = process_due_events(db, now=cutoff)

    assert result["processed"] == 2
    assert result["errors"] == []
    db.refresh(delivery)
    assert delivery.status == DeliveryStatus.IN_TRANSIT
    assert len(pending_events(db, delivery.id)) == len(plan) - 2

    executed = db.query(ScheduledEvent).filter_by(delivery_id=delivery.id, executed=True).all()
    assert all(e.executed_at == cutoff for e in executed)
    changes = event_bus.memory.get_recent("deliveries.status_changed", 10)
    assert [c["data"]["to"] for c in changes] == ["collected", "in_transit"]


def test_full_plan_ends_delivered(db, delivery):
    total = len(pending_events(db, delivery.id))

    result = process_due_events(db, now=FAR_FUTURE, limit=100)

    assert result["processed"] == total
    db.refresh(delivery)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.delivered_at == FAR_FUTURE
    assert delivery.current_location == "Belo Horizonte, MG"

    history = (
        db.query(DeliveryHistory)
        .filter_by(delivery_id=delivery.id)
        .order_by(DeliveryHistory.created_at, DeliveryHistory.id)
        .all()
    )
    # Creation entry plus one per event
    assert len(history) == total + 1
    assert history[0].status == "pending"
    assert history[-1].status == "delivered"
    assert history[-1].progress_percent == 100


def test_limit_is_respected(db, delivery):
    result = process_due_events(db, now=FAR_FUTURE, limit=1)
    assert result["total"] == 1
    assert result["processed"] == 1


def test_backwards_events_are_skipped(db, delivery):
    # Status moved forward without a plan rebuild
    delivery.status = DeliveryStatus.OUT_FOR_DELIVERY
    db.commit()

    result = process_due_events(db, now=FAR_FUTURE, limit=100)

    # collection and departure would move the delivery backwards
    assert result["skipped"] == 2
    db.refresh(delivery)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert pending_events(db, delivery.id) == []


def test_nothing_due(db, delivery):
    result = process_due_events(db, now=CREATED_AT)
    assert result == {"processed": 0, "skipped": 0, "total": 0, "errors": []}


def test_execute_next_event(db, delivery):
    event = execute_next_event(db, delivery.id, now=CREATED_AT)

    assert event.executed
    assert event.new_status == "collected"
    db.refresh(delivery)
    assert delivery.status == DeliveryStatus.COLLECTED


def test_execute_next_event_errors(db, delivery):
    with pytest.raises(DeliveryNotFoundError):
        execute_next_event(db, 999)

    update_status(db, delivery.id, StatusUpdateRequest(status="returned"), now=CREATED_AT)
    with pytest.raises(NoPendingEventError):
        execute_next_event(db, delivery.id)
