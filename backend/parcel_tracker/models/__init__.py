"""
SQLAlchemy ORM models
- Every model is imported here so it registers on Base.metadata.
"""

from parcel_tracker.models.delivery import Delivery, DeliveryStatus
from parcel_tracker.models.delivery_history import DeliveryHistory
from parcel_tracker.models.scheduled_event import ScheduledEvent
from parcel_tracker.models.simulation_config import SimulationConfigRecord
from parcel_tracker.models.activity_log import ActivityLog

__all__ = [
    "Delivery",
    "DeliveryStatus",
    "DeliveryHistory",
    "ScheduledEvent",
    "SimulationConfigRecord",
    "ActivityLog",
]
