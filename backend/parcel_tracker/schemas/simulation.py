"""
Simulation Pydantic schemas: config, route preview, executor runs
"""

from pydantic import BaseModel, Field


class SimulationConfigSchema(BaseModel):
    origin_company_name: str = Field(min_length=1, max_length=120)
    origin_address: str | None = None
    origin_city: str = Field(min_length=1, max_length=100)
    origin_state: str = Field(min_length=2, max_length=2)
    origin_zip: str | None = None
    origin_lat: float = Field(ge=-90, le=90)
    origin_lng: float = Field(ge=-180, le=180)
    min_delivery_days: int = Field(ge=1, le=90)
    max_delivery_days: int = Field(ge=1, le=90)
    update_start_hour: int = Field(ge=0, le=23)
    update_end_hour: int = Field(ge=1, le=24)
    skip_weekends: bool = True
    days_per_checkpoint: float = Field(1.5, gt=0)
    max_checkpoints: int = Field(12, ge=0, le=50)

    model_config = {"from_attributes": True}


class SimulationConfigResponse(SimulationConfigSchema):
    is_default: bool = False


class RoutePoint(BaseModel):
    city: str
    state: str
    lat: float
    lng: float


class RouteWaypoint(RoutePoint):
    label: str
    distance_from_origin: float
    progress_percent: int


class RoutePreviewResponse(BaseModel):
    origin: RoutePoint
    destination: RoutePoint
    distance_km: float
    transit_days: int
    waypoints: list[RouteWaypoint]


class ProcessEventsError(BaseModel):
    event_id: int
    error: str


class ProcessEventsResponse(BaseModel):
    message: str
    processed: int
    skipped: int
    total: int
    errors: list[ProcessEventsError] = []


class ExecutorStatusResponse(BaseModel):
    running: bool
    interval_seconds: float
    batch_size: int
    last_result: ProcessEventsResponse | None = None
