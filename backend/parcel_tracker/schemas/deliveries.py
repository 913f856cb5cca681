"""
Delivery Pydantic schemas: create, status update, regeneration, responses
"""

from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

from parcel_tracker.models.delivery import DeliveryStatus


def _upper_state(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().upper()
    if len(value) != 2:
        raise ValueError("state must be a 2-letter UF code")
    return value


class DeliveryCreate(BaseModel):
    recipient_name: str = Field(min_length=1, max_length=120)
    recipient_email: str | None = None
    recipient_phone: str | None = None
    destination_address: str = Field(min_length=1, max_length=200)
    destination_city: str | None = None
    destination_state: str | None = None
    destination_zip: str | None = None
    destination_lat: float | None = None
    destination_lng: float | None = None

    # Sender/origin; missing fields come from the simulation config
    sender_name: str | None = None
    sender_email: str | None = None
    sender_phone: str | None = None
    origin_address: str | None = None
    origin_city: str | None = None
    origin_state: str | None = None
    origin_zip: str | None = None

    package_description: str | None = None
    package_weight: float | None = Field(None, ge=0)
    estimated_delivery: date | None = None
    auto_simulate: bool = True

    @field_validator("destination_state", "origin_state")
    @classmethod
    def check_state(cls, v):
        return _upper_state(v)


class DeliveryUpdate(BaseModel):
    """Editable fields; only the ones sent are changed"""
    recipient_name: str | None = Field(None, min_length=1, max_length=120)
    recipient_email: str | None = None
    recipient_phone: str | None = None
    destination_address: str | None = Field(None, min_length=1, max_length=200)
    destination_city: str | None = None
    destination_state: str | None = None
    destination_zip: str | None = None
    destination_lat: float | None = None
    destination_lng: float | None = None
    sender_name: str | None = None
    sender_email: str | None = None
    sender_phone: str | None = None
    package_description: str | None = None
    package_weight: float | None = Field(None, ge=0)
    estimated_delivery: date | None = None

    @field_validator("destination_state")
    @classmethod
    def check_state(cls, v):
        return _upper_state(v)


class DeliveryResponse(BaseModel):
    id: int
    tracking_code: str
    status: DeliveryStatus
    current_location: str | None = None
    current_lat: float | None = None
    current_lng: float | None = None
    sender_name: str | None = None
    origin_city: str | None = None
    origin_state: str | None = None
    recipient_name: str
    recipient_email: str | None = None
    recipient_phone: str | None = None
    destination_address: str
    destination_city: str | None = None
    destination_state: str | None = None
    destination_zip: str | None = None
    package_description: str | None = None
    package_weight: float | None = None
    estimated_delivery: date | None = None
    delivered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class DeliveryListResponse(BaseModel):
    total: int
    deliveries: list[DeliveryResponse]


class HistoryResponse(BaseModel):
    id: int
    delivery_id: int
    status: str
    location: str | None = None
    city: str | None = None
    state: str | None = None
    lat: float | None = None
    lng: float | None = None
    description: str | None = None
    progress_percent: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScheduledEventResponse(BaseModel):
    id: int
    delivery_id: int
    scheduled_for: datetime
    event_type: str
    new_status: str | None = None
    location: str | None = None
    city: str | None = None
    state: str | None = None
    description: str | None = None
    progress_percent: int | None = None
    distance_traveled: float | None = None
    executed: bool
    executed_at: datetime | None = None

    model_config = {"from_attributes": True}


class DeliveryDetailResponse(DeliveryResponse):
    history: list[HistoryResponse] = []
    pending_events: int = 0


class DeliveryCreateResponse(BaseModel):
    delivery: DeliveryResponse
    events_generated: int


class StatusUpdateRequest(BaseModel):
    status: DeliveryStatus
    location: str | None = None
    city: str | None = None
    state: str | None = None
    description: str | None = None
    notify: bool = True

    @field_validator("state")
    @classmethod
    def check_state(cls, v):
        return _upper_state(v)


class StatusUpdateResponse(BaseModel):
    delivery: DeliveryResponse
    cancelled_events: int
    notification_queued: bool


class DeliveryUpdateResponse(BaseModel):
    delivery: DeliveryResponse
    events_generated: int


class BulkStatusRequest(BaseModel):
    ids: list[int] = Field(min_length=1)
    status: DeliveryStatus
    location: str | None = None
    description: str | None = None
    notify: bool = True


class BulkStatusError(BaseModel):
    delivery_id: int
    error: str


class BulkStatusResponse(BaseModel):
    message: str
    updated: int
    failed: int
    cancelled_events: int
    notifications_queued: int
    errors: list[BulkStatusError] = []


class AdvanceStatusResponse(BaseModel):
    delivery: DeliveryResponse
    event: ScheduledEventResponse


class RegenerateRequest(BaseModel):
    ids: list[int] | None = None
    all: bool = False


class RegenerateError(BaseModel):
    delivery_id: int
    tracking_code: str | None = None
    error: str


class RegenerateResponse(BaseModel):
    success: bool
    message: str
    regenerated: int
    events: int
    failed: int
    errors: list[RegenerateError] = []
