"""
Deliveries API: list, create, edit, duplicate, detail, history, scheduled events,
status changes (single and bulk), regeneration
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from parcel_tracker.database import get_db
from parcel_tracker.models import Delivery, DeliveryHistory, DeliveryStatus, ScheduledEvent
from parcel_tracker.schemas.deliveries import (
    AdvanceStatusResponse,
    BulkStatusRequest,
    BulkStatusResponse,
    DeliveryCreate,
    DeliveryCreateResponse,
    DeliveryDetailResponse,
    DeliveryListResponse,
    DeliveryResponse,
    DeliveryUpdate,
    DeliveryUpdateResponse,
    HistoryResponse,
    RegenerateRequest,
    RegenerateResponse,
    ScheduledEventResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from parcel_tracker.services import deliveries as delivery_service
from parcel_tracker.services.notifications import build_notification, dispatch_notification, should_notify
from parcel_tracker.services.simulation_config import load_simulation_config
from parcel_tracker.simulator.event_executor import execute_next_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/deliveries", tags=["deliveries"])


@router.get("", response_model=DeliveryListResponse)
def list_deliveries(
    status: DeliveryStatus | None = Query(None, description="Status filter"),
    search: str | None = Query(None, description="Tracking code, recipient or destination city"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(Delivery)

    if status:
        query = query.filter(Delivery.status == status)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Delivery.tracking_code.ilike(pattern),
            Delivery.recipient_name.ilike(pattern),
            Delivery.destination_city.ilike(pattern),
        ))

    total = query.count()
    deliveries = query.order_by(desc(Delivery.created_at), desc(Delivery.id)).offset(offset).limit(limit).all()

    return DeliveryListResponse(
        total=total,
        deliveries=[DeliveryResponse.model_validate(d) for d in deliveries],
    )


@router.post("", response_model=DeliveryCreateResponse, status_code=201)
def create_delivery(
    payload: DeliveryCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    config = load_simulation_config(db)
    delivery, events = delivery_service.create_delivery(db, payload, config)

    if should_notify(delivery, delivery.status):
        background_tasks.add_task(dispatch_notification, build_notification(delivery, delivery.status))

    return DeliveryCreateResponse(
        delivery=DeliveryResponse.model_validate(delivery),
        events_generated=events,
    )


@router.post("/regenerate-history", response_model=RegenerateResponse)
def regenerate_history(req: RegenerateRequest, db: Session = Depends(get_db)):
    """Regenerate the event plan of the given deliveries, or of every active one with all=true."""
    if not req.ids and not req.all:
        raise HTTPException(status_code=400, detail="Especifique IDs ou all=true")

    config = load_simulation_config(db)
    result = delivery_service.regenerate_history(db, config, ids=req.ids, all_active=req.all)
    return RegenerateResponse(**result)


@router.post("/bulk-status", response_model=BulkStatusResponse)
def bulk_status(
    req: BulkStatusRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Same manual status change for many deliveries; per-item failures are reported, not raised."""
    payload = StatusUpdateRequest(status=req.status, location=req.location, description=req.description,
                                  notify=req.notify)
    result = delivery_service.bulk_update_status(db, req.ids, payload)

    updated = result.pop("deliveries")
    notify = [d for d in updated if should_notify(d, req.status)] if req.notify else []
    for delivery in notify:
        background_tasks.add_task(dispatch_notification, build_notification(delivery, req.status, req.location))

    return BulkStatusResponse(notifications_queued=len(notify), **result)


@router.get("/{delivery_id}", response_model=DeliveryDetailResponse)
def get_delivery(delivery_id: int, db: Session = Depends(get_db)):
    delivery = delivery_service.get_delivery(db, delivery_id)
    detail = DeliveryDetailResponse.model_validate(delivery)
    detail.pending_events = len(delivery_service.pending_events(db, delivery_id))
    return detail


@router.put("/{delivery_id}", response_model=DeliveryUpdateResponse)
def update_delivery(delivery_id: int, req: DeliveryUpdate, db: Session = Depends(get_db)):
    delivery, events = delivery_service.update_delivery(db, delivery_id, req)
    return DeliveryUpdateResponse(delivery=DeliveryResponse.model_validate(delivery), events_generated=events)


@router.post("/{delivery_id}/duplicate", response_model=DeliveryCreateResponse, status_code=201)
def duplicate_delivery(delivery_id: int, db: Session = Depends(get_db)):
    """New pending delivery with the same sender, recipient, route and package."""
    delivery, events = delivery_service.duplicate_delivery(db, delivery_id)
    return DeliveryCreateResponse(delivery=DeliveryResponse.model_validate(delivery), events_generated=events)


@router.get("/{delivery_id}/history", response_model=list[HistoryResponse])
def get_history(delivery_id: int, db: Session = Depends(get_db)):
    delivery_service.get_delivery(db, delivery_id)
    rows = (
        db.query(DeliveryHistory)
        .filter(DeliveryHistory.delivery_id == delivery_id)
        .order_by(DeliveryHistory.created_at.asc(), DeliveryHistory.id.asc())
        .all()
    )
    return [HistoryResponse.model_validate(h) for h in rows]


@router.get("/{delivery_id}/events", response_model=list[ScheduledEventResponse])
def get_events(
    delivery_id: int,
    pending_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    delivery_service.get_delivery(db, delivery_id)
    query = db.query(ScheduledEvent).filter(ScheduledEvent.delivery_id == delivery_id)
    if pending_only:
        query = query.filter(ScheduledEvent.executed.is_(False))
    rows = query.order_by(ScheduledEvent.scheduled_for.asc()).all()
    return [ScheduledEventResponse.model_validate(e) for e in rows]


@router.post("/{delivery_id}/status", response_model=StatusUpdateResponse)
def update_status(
    delivery_id: int,
    req: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    delivery, cancelled = delivery_service.update_status(db, delivery_id, req)

    # Fire-and-forget: runs after the response, failures are only logged
    queued = req.notify and should_notify(delivery, req.status)
    if queued:
        background_tasks.add_task(dispatch_notification, build_notification(delivery, req.status, req.location))

    return StatusUpdateResponse(
        delivery=DeliveryResponse.model_validate(delivery),
        cancelled_events=cancelled,
        notification_queued=queued,
    )


@router.post("/{delivery_id}/advance-status", response_model=AdvanceStatusResponse)
def advance_status(delivery_id: int, db: Session = Depends(get_db)):
    """Execute the next pending scheduled event of the delivery right away."""
    event = execute_next_event(db, delivery_id)
    delivery = delivery_service.get_delivery(db, delivery_id)
    db.refresh(delivery)
    return AdvanceStatusResponse(
        delivery=DeliveryResponse.model_validate(delivery),
        event=ScheduledEventResponse.model_validate(event),
    )
