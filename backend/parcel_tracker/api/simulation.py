"""
Simulation API: config, route preview, manual executor run
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from parcel_tracker.config import settings
from parcel_tracker.database import get_db
from parcel_tracker.schemas.simulation import (
    ExecutorStatusResponse,
    ProcessEventsResponse,
    RoutePreviewResponse,
    SimulationConfigResponse,
    SimulationConfigSchema,
)
from parcel_tracker.services.simulation_config import (
    get_config_record,
    load_simulation_config,
    save_simulation_config,
)
from parcel_tracker.simulator.event_executor import process_due_events
from parcel_tracker.simulator.scheduler import route_preview
from parcel_tracker.simulator.simulation_manager import simulation_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/simulation", tags=["simulation"])


@router.get("/config", response_model=SimulationConfigResponse)
def get_config(db: Session = Depends(get_db)):
    config = load_simulation_config(db)
    return SimulationConfigResponse(**config.to_dict(), is_default=get_config_record(db) is None)


@router.put("/config", response_model=SimulationConfigResponse)
def update_config(req: SimulationConfigSchema, db: Session = Depends(get_db)):
    """Replace the simulation config; new plans use it, existing plans are kept until regenerated."""
    values = req.model_dump()
    values["origin_state"] = values["origin_state"].upper()
    config = save_simulation_config(db, values)
    return SimulationConfigResponse(**config.to_dict(), is_default=False)


@router.get("/route-preview", response_model=RoutePreviewResponse)
def preview_route(
    city: str = Query(..., min_length=1, description="Destination city"),
    state: str = Query(..., min_length=2, max_length=2, description="Destination UF"),
    db: Session = Depends(get_db),
):
    config = load_simulation_config(db)
    return RoutePreviewResponse(**route_preview(config, city, state.upper()))


@router.post("/process-events", response_model=ProcessEventsResponse)
def process_events(
    limit: int = Query(settings.EXECUTOR_BATCH_SIZE, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Run the scheduled event executor once (cron / admin trigger)."""
    result = process_due_events(db, limit=limit)
    message = f"Processados {result['processed']} eventos" if result["total"] else "Nenhum evento pendente"
    return ProcessEventsResponse(message=message, **result)


@router.get("/executor", response_model=ExecutorStatusResponse)
def executor_status():
    status = simulation_manager.get_status()
    last = status["last_result"]
    if last is not None:
        status["last_result"] = ProcessEventsResponse(message=f"Processados {last['processed']} eventos", **last)
    return ExecutorStatusResponse(**status)
