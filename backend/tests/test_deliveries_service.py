import random
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from parcel_tracker.exceptions import ConfigurationError, DeliveryNotFoundError, InvalidStatusTransitionError
from parcel_tracker.models import ActivityLog, Delivery, DeliveryHistory, DeliveryStatus, ScheduledEvent
from parcel_tracker.schemas.deliveries import DeliveryCreate, DeliveryUpdate, StatusUpdateRequest
from parcel_tracker.services.deliveries import (
    bulk_update_status,
    create_delivery,
    duplicate_delivery,
    pending_events,
    regenerate_history,
    replace_event_plan,
    update_delivery,
    update_status,
)
from parcel_tracker.services.simulation_config import load_simulation_config, save_simulation_config
from parcel_tracker.simulator.data_generator import is_tracking_code
from parcel_tracker.simulator.event_bus import event_bus
from parcel_tracker.simulator.event_executor import process_due_events

CREATED_AT = datetime(2024, 1, 1, 10, 0)


def _create(db, config, seed=0, **fields):
    payload = DeliveryCreate(**{
        "recipient_name": "Ana Souza",
        "destination_address": "Rua das Laranjeiras, 120",
        "destination_city": "Rio de Janeiro",
        "destination_state": "RJ",
        **fields,
    })
    return create_delivery(db, payload, config, now=CREATED_AT, rng=random.Random(seed))


def test_create_delivery_builds_plan(db, config):
    delivery, events = _create(db, config)

    assert is_tracking_code(delivery.tracking_code)
    assert delivery.status == DeliveryStatus.PENDING
    assert delivery.current_location == "São Paulo, SP"
    assert delivery.sender_name == "Cargo Flash"
    assert events > 0

    plan = pending_events(db, delivery.id)
    assert len(plan) == events
    assert plan[-1].new_status == "delivered"
    assert plan[-1].scheduled_for.date() == delivery.estimated_delivery

    history = db.query(DeliveryHistory).filter_by(delivery_id=delivery.id).all()
    assert len(history) == 1
    assert history[0].status == "pending"
    assert history[0].description == "Objeto postado - Aguardando coleta"

    assert db.query(ActivityLog).filter_by(action="create_delivery").count() == 1
    assert event_bus.memory.get_recent("deliveries.created")[-1]["data"]["delivery_id"] == delivery.id


def test_create_without_destination_still_succeeds(db, config):
    delivery, events = _create(db, config, destination_city=None, destination_state=None)
    assert events == 0
    assert db.get(Delivery, delivery.id) is not None
    assert pending_events(db, delivery.id) == []


def test_create_without_simulation(db, config):
    delivery, events = _create(db, config, auto_simulate=False)
    assert events == 0
    assert delivery.estimated_delivery is not None


def test_origin_city_and_state_are_taken_together(db, config):
    lone_state, _ = _create(db, config, origin_state="RJ", destination_city="Recife", destination_state="PE")
    assert (lone_state.origin_city, lone_state.origin_state) == ("São Paulo", "SP")
    assert (lone_state.origin_lat, lone_state.origin_lng) == (config.origin_lat, config.origin_lng)

    paired, _ = _create(db, config, seed=1, origin_city="Rio de Janeiro", origin_state="rj",
                        destination_city="Recife", destination_state="PE")
    assert (paired.origin_city, paired.origin_state) == ("Rio de Janeiro", "RJ")
    assert paired.current_location == "Rio de Janeiro, RJ"
    assert round(paired.origin_lat) == -23 and paired.origin_lat != config.origin_lat
    assert pending_events(db, paired.id)[0].city == "Rio de Janeiro"


def test_tracking_codes_are_unique(db, config):
    codes = {_create(db, config, seed=s)[0].tracking_code for s in range(5)}
    assert len(codes) == 5


def test_update_status_to_terminal_cancels_plan(db, config):
    delivery, events = _create(db, config)

    updated, cancelled = update_status(db, delivery.id, StatusUpdateRequest(status="failed"), now=CREATED_AT)

    assert updated.status == DeliveryStatus.FAILED
    assert cancelled == events
    assert pending_events(db, delivery.id) == []
    assert updated.delivered_at is None


def test_update_status_delivered_sets_delivered_at(db, config):
    delivery, _ = _create(db, config)
    updated, _ = update_status(db, delivery.id, StatusUpdateRequest(status="delivered", city="Rio de Janeiro",
                                                                    state="rj"), now=CREATED_AT)
    assert updated.delivered_at == CREATED_AT
    assert updated.current_location == "Rio de Janeiro, RJ"


def test_update_status_forward_rebuilds_plan(db, config):
    delivery, _ = _create(db, config)
    _, cancelled = update_status(db, delivery.id, StatusUpdateRequest(status="in_transit"), config=config,
                                 now=CREATED_AT, rng=random.Random(1))
    assert cancelled == 0

    plan = pending_events(db, delivery.id)
    assert [e.new_status for e in plan if e.new_status] == ["out_for_delivery", "delivered"]
    assert all(e.event_type not in ("collection", "departure") for e in plan)
    assert plan[-1].scheduled_for.date() == db.get(Delivery, delivery.id).estimated_delivery


def test_update_status_same_status_keeps_plan(db, config):
    delivery, _ = _create(db, config)
    update_status(db, delivery.id, StatusUpdateRequest(status="in_transit"), config=config, now=CREATED_AT)
    before = [e.id for e in pending_events(db, delivery.id)]

    update_status(db, delivery.id, StatusUpdateRequest(status="in_transit", location="Posto fiscal"),
                  config=config, now=CREATED_AT)

    assert [e.id for e in pending_events(db, delivery.id)] == before


def test_manual_out_for_delivery_finishes_at_destination(db, config):
    delivery, _ = _create(db, config, destination_city="Recife", destination_state="PE")
    update_status(db, delivery.id, StatusUpdateRequest(status="out_for_delivery", location="Recife, PE"),
                  config=config, now=CREATED_AT, rng=random.Random(0))

    result = process_due_events(db, now=CREATED_AT + timedelta(days=6))

    assert result["skipped"] == 0
    assert result["processed"] == 1
    db.refresh(delivery)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.current_location == "Recife, PE"
    history = db.query(DeliveryHistory).filter_by(delivery_id=delivery.id).all()
    assert {h.city for h in history if h.status in ("out_for_delivery", "delivered") and h.city} == {"Recife"}


def test_update_status_rejects_backwards(db, config):
    delivery, _ = _create(db, config)
    update_status(db, delivery.id, StatusUpdateRequest(status="delivered"), now=CREATED_AT)
    with pytest.raises(InvalidStatusTransitionError):
        update_status(db, delivery.id, StatusUpdateRequest(status="in_transit"), now=CREATED_AT)


def test_update_status_unknown_delivery(db):
    with pytest.raises(DeliveryNotFoundError):
        update_status(db, 999, StatusUpdateRequest(status="collected"))


def test_replace_event_plan_is_idempotent(db, config):
    delivery, _ = _create(db, config)

    # One executed event must survive regeneration
    first = pending_events(db, delivery.id)[0]
    first.executed = True
    db.commit()

    for seed in range(3):
        drafts = replace_event_plan(db, delivery.id, config, now=CREATED_AT, rng=random.Random(seed))
        db.commit()
        assert len(pending_events(db, delivery.id)) == len(drafts)

    executed = db.query(ScheduledEvent).filter_by(delivery_id=delivery.id, executed=True).count()
    assert executed == 1


def test_replace_event_plan_clears_plan_when_empty(db, config):
    delivery, events = _create(db, config)
    assert events > 0
    delivery.destination_city = None
    delivery.destination_state = None
    db.commit()

    assert replace_event_plan(db, delivery.id, config, now=CREATED_AT) == []
    db.commit()
    assert pending_events(db, delivery.id) == []


def test_regenerate_history_aggregates_errors(db, config):
    ok, _ = _create(db, config, seed=1)
    done, _ = _create(db, config, seed=2)
    no_dest, _ = _create(db, config, seed=3, destination_city=None, destination_state=None)
    update_status(db, done.id, StatusUpdateRequest(status="delivered"), now=CREATED_AT)

    result = regenerate_history(db, config, ids=[ok.id, done.id, no_dest.id, 999], now=CREATED_AT,
                                rng=random.Random(0))

    assert result["regenerated"] == 1
    assert result["events"] == len(pending_events(db, ok.id))
    assert result["failed"] == 3
    assert {e["delivery_id"] for e in result["errors"]} == {done.id, no_dest.id, 999}
    assert result["success"] is True


def test_regenerate_all_active_skips_terminal(db, config):
    active, _ = _create(db, config, seed=1)
    done, _ = _create(db, config, seed=2)
    update_status(db, done.id, StatusUpdateRequest(status="returned"), now=CREATED_AT)

    result = regenerate_history(db, config, all_active=True, now=CREATED_AT)

    assert result["regenerated"] == 1
    assert result["failed"] == 0
    assert pending_events(db, done.id) == []
    assert db.query(ActivityLog).filter_by(action="regenerate_history").count() == 1


def test_regenerate_rejects_invalid_config(db, config):
    with pytest.raises(ConfigurationError):
        regenerate_history(db, replace(config, min_delivery_days=10, max_delivery_days=2), all_active=True)


def test_simulation_config_defaults_and_save(db, config):
    loaded = load_simulation_config(db)
    assert loaded.min_delivery_days == 15
    assert loaded.max_delivery_days == 19
    assert loaded.origin_city == "São Paulo"

    saved = save_simulation_config(db, {**config.to_dict(), "min_delivery_days": 3, "max_delivery_days": 5})
    assert load_simulation_config(db) == saved

    with pytest.raises(ConfigurationError):
        save_simulation_config(db, {**config.to_dict(), "min_delivery_days": 9, "max_delivery_days": 5})


def test_regenerate_logs_selector(db, config):
    _create(db, config)

    regenerate_history(db, config, all_active=True, now=CREATED_AT)
    regenerate_history(db, config, now=CREATED_AT)

    logged = [a.details["ids"] for a in db.query(ActivityLog).filter_by(action="regenerate_history")
              .order_by(ActivityLog.id)]
    assert logged == ["all_active", None]


# ── Bulk status ──

def test_bulk_status_terminal(db, config):
    active, events = _create(db, config, seed=1)
    done, _ = _create(db, config, seed=2)
    update_status(db, done.id, StatusUpdateRequest(status="delivered"), now=CREATED_AT)

    result = bulk_update_status(db, [active.id, done.id, 999], StatusUpdateRequest(status="returned"),
                                config=config, now=CREATED_AT)

    assert result["updated"] == 1
    assert result["failed"] == 2
    assert result["cancelled_events"] == events
    assert {e["delivery_id"] for e in result["errors"]} == {done.id, 999}
    assert [d.id for d in result["deliveries"]] == [active.id]
    assert pending_events(db, active.id) == []

    latest = (
        db.query(DeliveryHistory)
        .filter_by(delivery_id=active.id)
        .order_by(DeliveryHistory.id.desc())
        .first()
    )
    assert latest.status == "returned"
    assert latest.description == "Status atualizado em lote para Devolvido"
    assert db.query(ActivityLog).filter_by(action="bulk_status_update").count() == 1
    assert db.get(Delivery, done.id).status == DeliveryStatus.DELIVERED


def test_bulk_status_forward_rebuilds_plans(db, config):
    first, _ = _create(db, config, seed=1)
    second, _ = _create(db, config, seed=2, destination_city="Curitiba", destination_state="PR")

    result = bulk_update_status(db, [first.id, second.id, first.id], StatusUpdateRequest(status="in_transit"),
                                config=config, now=CREATED_AT, rng=random.Random(0))

    assert result["updated"] == 2
    assert result["failed"] == 0
    for delivery in (first, second):
        plan = pending_events(db, delivery.id)
        assert [e.new_status for e in plan if e.new_status] == ["out_for_delivery", "delivered"]


# ── Edit / duplicate ──

def test_update_delivery_destination_rebuilds_plan(db, config):
    delivery, _ = _create(db, config, destination_lat=-22.9, destination_lng=-43.2)

    updated, events = update_delivery(
        db, delivery.id,
        DeliveryUpdate(destination_city="Manaus", destination_state="am", destination_address="Av. Djalma Batista, 1"),
        config=config, now=CREATED_AT, rng=random.Random(0),
    )

    assert events > 0
    assert updated.destination_state == "AM"
    assert updated.destination_lat is None
    plan = pending_events(db, delivery.id)
    assert len(plan) == events
    assert plan[-1].city == "Manaus"
    assert plan[-1].scheduled_for.date() == updated.estimated_delivery
    assert db.query(ActivityLog).filter_by(action="update_delivery").count() == 1


def test_update_delivery_contact_keeps_plan(db, config):
    delivery, _ = _create(db, config)
    before = [e.id for e in pending_events(db, delivery.id)]

    updated, events = update_delivery(db, delivery.id, DeliveryUpdate(recipient_phone="21911112222",
                                                                       recipient_name=None),
                                      config=config, now=CREATED_AT)

    assert events == 0
    assert updated.recipient_phone == "21911112222"
    assert updated.recipient_name == "Ana Souza"
    assert [e.id for e in pending_events(db, delivery.id)] == before


def test_update_delivery_terminal_keeps_empty_plan(db, config):
    delivery, _ = _create(db, config)
    update_status(db, delivery.id, StatusUpdateRequest(status="failed"), now=CREATED_AT)

    _, events = update_delivery(db, delivery.id, DeliveryUpdate(destination_city="Recife", destination_state="PE"),
                                config=config, now=CREATED_AT)

    assert events == 0
    assert pending_events(db, delivery.id) == []


def test_update_unknown_delivery(db, config):
    with pytest.raises(DeliveryNotFoundError):
        update_delivery(db, 999, DeliveryUpdate(recipient_phone="1"), config=config)


def test_duplicate_delivery(db, config):
    original, _ = _create(db, config, origin_city="Curitiba", origin_state="PR", recipient_phone="21999990000")
    update_status(db, original.id, StatusUpdateRequest(status="delivered"), now=CREATED_AT)

    copy, events = duplicate_delivery(db, original.id, config=config, now=CREATED_AT, rng=random.Random(9))

    assert copy.id != original.id
    assert copy.tracking_code != original.tracking_code
    assert copy.status == DeliveryStatus.PENDING
    assert copy.delivered_at is None
    assert (copy.origin_city, copy.origin_state) == ("Curitiba", "PR")
    assert (copy.destination_city, copy.recipient_phone) == ("Rio de Janeiro", "21999990000")
    assert events == len(pending_events(db, copy.id)) > 0

    log = db.query(ActivityLog).filter_by(action="duplicate_delivery").one()
    assert log.details["original_tracking"] == original.tracking_code
