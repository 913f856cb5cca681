"""
Dashboard API: delivery and scheduled event summary
"""

from datetime import datetime, time

from fastapi import APIRouter, Depends
from sqlalchemy import func, desc
from sqlalchemy.orm import Session

from parcel_tracker.database import get_db
from parcel_tracker.models import Delivery, DeliveryStatus, ScheduledEvent
from parcel_tracker.schemas.dashboard import DashboardOverview, DeliveriesSummary, EventsSummary
from parcel_tracker.schemas.deliveries import DeliveryResponse
from parcel_tracker.simulator.clock import local_now
from parcel_tracker.simulator.simulation_manager import simulation_manager

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/overview", response_model=DashboardOverview)
def get_overview(db: Session = Depends(get_db)):
    now = local_now()

    # --- Deliveries ---
    total = db.query(func.count(Delivery.id)).scalar() or 0

    status_counts = (
        db.query(Delivery.status, func.count(Delivery.id))
        .group_by(Delivery.status)
        .all()
    )
    by_status = {s.value: 0 for s in DeliveryStatus}
    by_status.update({status.value: count for status, count in status_counts})

    created_today = (
        db.query(func.count(Delivery.id))
        .filter(Delivery.created_at >= datetime.combine(now.date(), time()))
        .scalar() or 0
    )
    delivery_rate = round(by_status[DeliveryStatus.DELIVERED.value] / total * 100, 1) if total else 0.0

    # --- Scheduled events ---
    pending = (
        db.query(func.count(ScheduledEvent.id))
        .filter(ScheduledEvent.executed.is_(False))
        .scalar() or 0
    )
    overdue = (
        db.query(func.count(ScheduledEvent.id))
        .filter(ScheduledEvent.executed.is_(False), ScheduledEvent.scheduled_for <= now)
        .scalar() or 0
    )

    recent = db.query(Delivery).order_by(desc(Delivery.created_at), desc(Delivery.id)).limit(10).all()

    return DashboardOverview(
        deliveries=DeliveriesSummary(
            total=total,
            by_status=by_status,
            created_today=created_today,
            delivery_rate=delivery_rate,
        ),
        events=EventsSummary(pending=pending, overdue=overdue),
        executor_running=simulation_manager.is_running,
        recent_deliveries=[DeliveryResponse.model_validate(d) for d in recent],
    )
