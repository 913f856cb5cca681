"""
Dashboard Pydantic schemas
"""

from pydantic import BaseModel

from parcel_tracker.schemas.deliveries import DeliveryResponse


class DeliveriesSummary(BaseModel):
    total: int
    by_status: dict[str, int]
    created_today: int
    delivery_rate: float  # delivered / total, percent


class EventsSummary(BaseModel):
    pending: int
    overdue: int  # unexecuted with scheduled_for already passed


class DashboardOverview(BaseModel):
    deliveries: DeliveriesSummary
    events: EventsSummary
    executor_running: bool
    recent_deliveries: list[DeliveryResponse]
