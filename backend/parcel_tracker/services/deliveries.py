"""
Delivery workflows
- create_delivery: tracking code, estimate, first history entry, event plan
- update_status: validated manual transition; terminal statuses void the remaining plan,
  other status changes rebuild it
- bulk_update_status: update_status over many deliveries
- update_delivery / duplicate_delivery: edits and copies
- replace_event_plan: delete unexecuted, generate, insert under a row lock, one transaction
- regenerate_history: batch replace_event_plan with per-item error reporting
"""

import logging
import random
from datetime import datetime
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parcel_tracker.exceptions import DeliveryNotFoundError, InvalidStatusTransitionError, PersistenceError
from parcel_tracker.models import Delivery, DeliveryHistory, DeliveryStatus, ScheduledEvent
from parcel_tracker.schemas.deliveries import DeliveryCreate, DeliveryUpdate, StatusUpdateRequest
from parcel_tracker.services.activity import log_activity
from parcel_tracker.services.simulation_config import load_simulation_config
from parcel_tracker.simulator.clock import local_now
from parcel_tracker.simulator.config import SimulationConfig
from parcel_tracker.simulator.data_generator import generate_tracking_code, normalize_tracking_code
from parcel_tracker.simulator.estimator import estimate_delivery_date
from parcel_tracker.simulator.event_bus import event_bus
from parcel_tracker.simulator.geo import find_or_create_city
from parcel_tracker.simulator.scheduler import ScheduledEventDraft, generate_delivery_events
from parcel_tracker.simulator.status_machine import (
    STATUS_LABELS,
    TERMINAL_STATUSES,
    is_terminal,
    status_progress,
    validate_transition,
)

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


# ── Lookups ──

def get_delivery(db: Session, delivery_id: int) -> Delivery:
    delivery = db.get(Delivery, delivery_id)
    if delivery is None:
        raise DeliveryNotFoundError(f"Entrega {delivery_id} não encontrada")
    return delivery


def get_delivery_by_code(db: Session, code: str) -> Delivery:
    code = normalize_tracking_code(code)
    delivery = db.query(Delivery).filter(Delivery.tracking_code == code).first()
    if delivery is None:
        raise DeliveryNotFoundError(f"Código de rastreio {code} não encontrado")
    return delivery


def pending_events(db: Session, delivery_id: int) -> list[ScheduledEvent]:
    return (
        db.query(ScheduledEvent)
        .filter(ScheduledEvent.delivery_id == delivery_id, ScheduledEvent.executed.is_(False))
        .order_by(ScheduledEvent.scheduled_for.asc())
        .all()
    )


def _unique_tracking_code(db: Session, rng: random.Random) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_tracking_code(rng)
        if not db.query(Delivery.id).filter(Delivery.tracking_code == code).first():
            return code
    raise PersistenceError("Não foi possível gerar um código de rastreio único")


def _commit(db: Session, action: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{action} failed: {e}")
        raise PersistenceError(f"Erro ao salvar ({action})") from e


# ── Event plan ──

def cancel_pending_events(db: Session, delivery_id: int) -> int:
    """Delete the delivery's unexecuted events (no commit)."""
    return (
        db.query(ScheduledEvent)
        .filter(ScheduledEvent.delivery_id == delivery_id, ScheduledEvent.executed.is_(False))
        .delete(synchronize_session=False)
    )


def replace_event_plan(
    db: Session,
    delivery_id: int,
    config: SimulationConfig,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[ScheduledEventDraft]:
    """
    Delete the delivery's unexecuted events, generate a fresh plan and insert it (no commit).
    The delivery row is locked (SELECT ... FOR UPDATE where the backend supports it)
    so concurrent replacements of the same delivery serialize on the caller's transaction.
    An empty plan leaves the delivery with no pending events.
    """
    delivery = (
        db.query(Delivery)
        .filter(Delivery.id == delivery_id)
        .with_for_update()
        .one_or_none()
    )
    if delivery is None:
        raise DeliveryNotFoundError(f"Entrega {delivery_id} não encontrada")

    cancel_pending_events(db, delivery.id)
    drafts = generate_delivery_events(delivery, config, now=now, rng=rng)
    if not drafts:
        return []

    db.add_all(ScheduledEvent(**draft.to_row()) for draft in drafts)

    last = drafts[-1]
    if last.new_status == DeliveryStatus.DELIVERED:
        delivery.estimated_delivery = last.scheduled_for.date()
    return drafts


# ── Create ──

def create_delivery(
    db: Session,
    payload: DeliveryCreate,
    config: SimulationConfig,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> tuple[Delivery, int]:
    """Returns the new delivery and the number of scheduled events generated."""
    config.validate()
    now = now or local_now()
    rng = rng or random.Random()

    # Origin city and state come as a pair: both from the payload, else both from the config
    if payload.origin_city and payload.origin_state:
        origin_city, origin_state = payload.origin_city, payload.origin_state
    else:
        origin_city, origin_state = config.origin_city, config.origin_state
    if (origin_city, origin_state) != (config.origin_city, config.origin_state):
        place = find_or_create_city(origin_city, origin_state)
        origin_lat, origin_lng = place.lat, place.lng
    else:
        origin_lat, origin_lng = config.origin_lat, config.origin_lng
    sender = payload.sender_name or config.origin_company_name

    estimated = payload.estimated_delivery or estimate_delivery_date(
        replace(config, origin_city=origin_city, origin_state=origin_state,
                origin_lat=origin_lat, origin_lng=origin_lng),
        payload.destination_city, payload.destination_state, now=now, rng=rng,
    )

    delivery = Delivery(
        tracking_code=_unique_tracking_code(db, rng),
        status=DeliveryStatus.PENDING,
        current_location=f"{origin_city}, {origin_state}",
        current_lat=origin_lat,
        current_lng=origin_lng,
        sender_name=sender,
        sender_email=payload.sender_email,
        sender_phone=payload.sender_phone,
        origin_address=payload.origin_address or config.origin_address,
        origin_city=origin_city,
        origin_state=origin_state,
        origin_zip=payload.origin_zip or config.origin_zip,
        origin_lat=origin_lat,
        origin_lng=origin_lng,
        recipient_name=payload.recipient_name,
        recipient_email=payload.recipient_email,
        recipient_phone=payload.recipient_phone,
        destination_address=payload.destination_address,
        destination_city=payload.destination_city,
        destination_state=payload.destination_state,
        destination_zip=payload.destination_zip,
        destination_lat=payload.destination_lat,
        destination_lng=payload.destination_lng,
        package_description=payload.package_description,
        package_weight=payload.package_weight,
        estimated_delivery=estimated,
        created_at=now,
        updated_at=now,
    )
    db.add(delivery)
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Erro ao criar entrega: {e}") from e

    db.add(DeliveryHistory(
        delivery_id=delivery.id,
        status=DeliveryStatus.PENDING.value,
        location=sender,
        city=origin_city,
        state=origin_state,
        lat=origin_lat,
        lng=origin_lng,
        description="Objeto postado - Aguardando coleta",
        progress_percent=0,
        created_at=now,
    ))

    events = []
    if payload.auto_simulate:
        events = replace_event_plan(db, delivery.id, config, now=now, rng=rng)
        if not events:
            logger.warning(f"{delivery.tracking_code}: no event plan generated, delivery created without simulation")

    log_activity(db, "create_delivery", "delivery", delivery.id, {
        "tracking_code": delivery.tracking_code,
        "destination": f"{delivery.destination_city or '?'}/{delivery.destination_state or '?'}",
        "events_generated": len(events),
    })
    _commit(db, "create_delivery")
    db.refresh(delivery)

    event_bus.publish("deliveries.created", {
        "delivery_id": delivery.id,
        "tracking_code": delivery.tracking_code,
        "estimated_delivery": delivery.estimated_delivery.isoformat() if delivery.estimated_delivery else None,
        "events_generated": len(events),
    })
    logger.info(f"Delivery {delivery.tracking_code} created with {len(events)} scheduled events")
    return delivery, len(events)


# ── Status update ──

def update_status(
    db: Session,
    delivery_id: int,
    payload: StatusUpdateRequest,
    config: SimulationConfig | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> tuple[Delivery, int]:
    """
    Manual status change. Returns the delivery and the number of cancelled events.
    A terminal status deletes the remaining plan; a move to another non-terminal
    status rebuilds the plan from the new status.
    Raises DeliveryNotFoundError / InvalidStatusTransitionError.
    """
    now = now or local_now()
    delivery = get_delivery(db, delivery_id)
    new_status = payload.status
    validate_transition(delivery.status, new_status)

    previous = delivery.status
    delivery.status = new_status
    delivery.delivered_at = now if new_status == DeliveryStatus.DELIVERED else None
    if payload.location or payload.city:
        delivery.current_location = payload.location or f"{payload.city}, {payload.state or ''}".rstrip(", ")
    delivery.updated_at = now

    db.add(DeliveryHistory(
        delivery_id=delivery.id,
        status=new_status.value,
        location=payload.location or delivery.current_location,
        city=payload.city,
        state=payload.state,
        description=payload.description or f"Status atualizado: {STATUS_LABELS[new_status]}",
        progress_percent=status_progress(new_status),
        created_at=now,
    ))

    cancelled, replanned = 0, 0
    if is_terminal(new_status):
        cancelled = cancel_pending_events(db, delivery.id)
        if cancelled:
            logger.info(f"{delivery.tracking_code}: {cancelled} scheduled events cancelled ({new_status.value})")
    elif new_status != previous:
        db.flush()
        config = config or load_simulation_config(db)
        replanned = len(replace_event_plan(db, delivery.id, config, now=now, rng=rng))
        logger.info(f"{delivery.tracking_code}: plan rebuilt from {new_status.value} ({replanned} events)")

    log_activity(db, "update_status", "delivery", delivery.id, {
        "tracking_code": delivery.tracking_code,
        "from": previous.value,
        "to": new_status.value,
        "cancelled_events": cancelled,
        "events_generated": replanned,
    })
    _commit(db, "update_status")
    db.refresh(delivery)

    event_bus.publish("deliveries.status_changed", {
        "delivery_id": delivery.id,
        "tracking_code": delivery.tracking_code,
        "from": previous.value,
        "to": new_status.value,
        "source": "manual",
    })
    return delivery, cancelled


# ── Bulk status ──

def bulk_update_status(
    db: Session,
    ids: list[int],
    payload: StatusUpdateRequest,
    config: SimulationConfig | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> dict:
    """
    Apply the same manual status change to many deliveries through update_status,
    one transaction per delivery. Per-item failures are collected.
    """
    now = now or local_now()
    config = (config or load_simulation_config(db)).validate()
    if payload.description is None:
        payload = payload.model_copy(update={
            "description": f"Status atualizado em lote para {STATUS_LABELS[payload.status]}",
        })

    updated: list[Delivery] = []
    cancelled_total = 0
    errors = []
    for delivery_id in dict.fromkeys(ids):
        try:
            delivery, cancelled = update_status(db, delivery_id, payload, config=config, now=now, rng=rng)
        except (DeliveryNotFoundError, InvalidStatusTransitionError, PersistenceError) as e:
            db.rollback()
            errors.append({"delivery_id": delivery_id, "error": str(e)})
            continue
        updated.append(delivery)
        cancelled_total += cancelled

    log_activity(db, "bulk_status_update", "delivery", None, {
        "count": len(ids),
        "new_status": payload.status.value,
        "success": len(updated),
        "failed": len(errors),
    })
    _commit(db, "bulk_status_update")

    message = f"{len(updated)} entregas atualizadas"
    if errors:
        message += f", {len(errors)} falharam"
    logger.info(f"Bulk status {payload.status.value}: {len(updated)} updated, {len(errors)} failed")
    return {
        "message": message,
        "deliveries": updated,
        "updated": len(updated),
        "failed": len(errors),
        "cancelled_events": cancelled_total,
        "errors": errors,
    }


# ── Edit / duplicate ──

# Fields whose change invalidates the pending plan
PLAN_FIELDS = {"destination_city", "destination_state", "destination_lat", "destination_lng", "estimated_delivery"}
NOT_NULL_FIELDS = {"recipient_name", "destination_address"}


def update_delivery(
    db: Session,
    delivery_id: int,
    payload: DeliveryUpdate,
    config: SimulationConfig | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> tuple[Delivery, int]:
    """
    Edit recipient, destination and package fields (status goes through update_status).
    Returns the delivery and the number of events in the rebuilt plan, 0 when the plan was kept.
    A destination or estimate change rebuilds the plan of an active delivery that has one.
    """
    now = now or local_now()
    delivery = get_delivery(db, delivery_id)

    changes = {
        field: value for field, value in payload.model_dump(exclude_unset=True).items()
        if not (value is None and field in NOT_NULL_FIELDS) and getattr(delivery, field) != value
    }
    if not changes:
        return delivery, 0

    # A new destination city drops coordinates that belonged to the old one
    if {"destination_city", "destination_state"} & changes.keys():
        for field in ("destination_lat", "destination_lng"):
            if field not in payload.model_fields_set and getattr(delivery, field) is not None:
                changes[field] = None

    for field, value in changes.items():
        setattr(delivery, field, value)
    delivery.updated_at = now

    replanned = 0
    if PLAN_FIELDS & changes.keys() and not is_terminal(delivery.status) and pending_events(db, delivery.id):
        db.flush()
        config = config or load_simulation_config(db)
        replanned = len(replace_event_plan(db, delivery.id, config.validate(), now=now, rng=rng))

    log_activity(db, "update_delivery", "delivery", delivery.id, {
        "tracking_code": delivery.tracking_code,
        "changes": sorted(changes),
        "events_generated": replanned,
    })
    _commit(db, "update_delivery")
    db.refresh(delivery)
    return delivery, replanned


def duplicate_delivery(
    db: Session,
    delivery_id: int,
    config: SimulationConfig | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> tuple[Delivery, int]:
    """Copy sender, recipient, route and package into a new pending delivery with its own plan."""
    original = get_delivery(db, delivery_id)
    payload = DeliveryCreate(
        recipient_name=original.recipient_name,
        recipient_email=original.recipient_email,
        recipient_phone=original.recipient_phone,
        destination_address=original.destination_address,
        destination_city=original.destination_city,
        destination_state=original.destination_state,
        destination_zip=original.destination_zip,
        destination_lat=original.destination_lat,
        destination_lng=original.destination_lng,
        sender_name=original.sender_name,
        sender_email=original.sender_email,
        sender_phone=original.sender_phone,
        origin_address=original.origin_address,
        origin_city=original.origin_city,
        origin_state=original.origin_state,
        origin_zip=original.origin_zip,
        package_description=original.package_description,
        package_weight=original.package_weight,
    )
    copy, events = create_delivery(db, payload, config or load_simulation_config(db), now=now, rng=rng)

    log_activity(db, "duplicate_delivery", "delivery", copy.id, {
        "original_id": original.id,
        "original_tracking": original.tracking_code,
        "new_tracking": copy.tracking_code,
    })
    _commit(db, "duplicate_delivery")
    return copy, events


# ── Regenerate ──

def regenerate_history(
    db: Session,
    config: SimulationConfig,
    ids: list[int] | None = None,
    all_active: bool = False,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> dict:
    """
    Replace the event plan of the selected deliveries, one transaction per delivery.
    ids takes precedence; all_active selects every non-terminal delivery.
    Failures are collected per item, the batch always runs to the end.
    """
    config.validate()
    now = now or local_now()
    rng = rng or random.Random()

    if ids:
        deliveries = db.query(Delivery).filter(Delivery.id.in_(ids)).order_by(Delivery.id).all()
        found = {d.id for d in deliveries}
        errors = [
            {"delivery_id": i, "tracking_code": None, "error": "Entrega não encontrada"}
            for i in ids if i not in found
        ]
    elif all_active:
        deliveries = (
            db.query(Delivery)
            .filter(Delivery.status.notin_(list(TERMINAL_STATUSES)))
            .order_by(Delivery.id)
            .all()
        )
        errors = []
    else:
        deliveries, errors = [], []

    regenerated, events_count = 0, 0
    targets = [(d.id, d.tracking_code, d.status) for d in deliveries]
    for delivery_id, code, status in targets:
        if is_terminal(status):
            errors.append({"delivery_id": delivery_id, "tracking_code": code,
                           "error": f"Status final ({status.value}), nenhum evento gerado"})
            continue
        try:
            drafts = replace_event_plan(db, delivery_id, config, now=now, rng=rng)
            db.commit()
            if not drafts:
                errors.append({"delivery_id": delivery_id, "tracking_code": code,
                               "error": "Nenhum evento gerado"})
                continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Regenerate failed for {code}: {e}")
            errors.append({"delivery_id": delivery_id, "tracking_code": code, "error": str(e)})
            continue

        regenerated += 1
        events_count += len(drafts)
        event_bus.publish("deliveries.plan_regenerated", {
            "delivery_id": delivery_id,
            "tracking_code": code,
            "events": len(drafts),
        })

    log_activity(db, "regenerate_history", "delivery", None, {
        "count": regenerated,
        "events_generated": events_count,
        "ids": ids if ids else ("all_active" if all_active else None),
    })
    _commit(db, "regenerate_history")

    if events_count > 0:
        message = f"Histórico regenerado para {regenerated} entrega(s). {events_count} eventos criados."
    elif errors:
        message = f"Falha ao gerar eventos: {errors[0]['error']}"
    else:
        message = "Nenhum evento gerado"

    logger.info(f"Regenerate history: {regenerated} regenerated, {len(errors)} failed, {events_count} events")
    return {
        "success": events_count > 0 or not errors,
        "message": message,
        "regenerated": regenerated,
        "events": events_count,
        "failed": len(errors),
        "errors": errors,
    }
