"""
Public tracking API: lookup by tracking code
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from parcel_tracker.database import get_db
from parcel_tracker.schemas.deliveries import HistoryResponse
from parcel_tracker.schemas.tracking import TrackingResponse
from parcel_tracker.services.deliveries import get_delivery_by_code
from parcel_tracker.simulator.data_generator import normalize_tracking_code
from parcel_tracker.simulator.status_machine import STATUS_LABELS, status_progress

router = APIRouter(prefix="/api/tracking", tags=["tracking"])

MIN_CODE_LENGTH = 8


@router.get("/{code}", response_model=TrackingResponse)
def track(code: str, db: Session = Depends(get_db)):
    code = normalize_tracking_code(code)
    if len(code) < MIN_CODE_LENGTH:
        raise HTTPException(status_code=400, detail="Código de rastreio inválido")

    delivery = get_delivery_by_code(db, code)

    # Newest first on the public page
    history = sorted(delivery.history, key=lambda h: (h.created_at, h.id), reverse=True)
    progress = history[0].progress_percent if history and history[0].progress_percent is not None \
        else status_progress(delivery.status)

    return TrackingResponse(
        tracking_code=delivery.tracking_code,
        status=delivery.status,
        status_label=STATUS_LABELS[delivery.status],
        progress_percent=progress,
        current_location=delivery.current_location,
        origin_city=delivery.origin_city,
        origin_state=delivery.origin_state,
        destination_city=delivery.destination_city,
        destination_state=delivery.destination_state,
        recipient_name=delivery.recipient_name.split()[0] if delivery.recipient_name else "",
        estimated_delivery=delivery.estimated_delivery,
        delivered_at=delivery.delivered_at,
        created_at=delivery.created_at,
        history=[HistoryResponse.model_validate(h) for h in history],
    )
