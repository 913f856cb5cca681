"""
Public tracking page schema
"""

from datetime import date, datetime
from pydantic import BaseModel

from parcel_tracker.models.delivery import DeliveryStatus
from parcel_tracker.schemas.deliveries import HistoryResponse


class TrackingResponse(BaseModel):
    tracking_code: str
    status: DeliveryStatus
    status_label: str
    progress_percent: int
    current_location: str | None = None
    origin_city: str | None = None
    origin_state: str | None = None
    destination_city: str | None = None
    destination_state: str | None = None
    recipient_name: str
    estimated_delivery: date | None = None
    delivered_at: datetime | None = None
    created_at: datetime
    history: list[HistoryResponse]
