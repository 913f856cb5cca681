"""
scheduled_events table: future status transitions planned by the scheduler
- Unexecuted rows of one delivery form its single active plan.
- The executor flips executed/executed_at; regeneration deletes unexecuted rows.
"""

from sqlalchemy import Column, Integer, String, Float, Text, Boolean, DateTime, ForeignKey

from parcel_tracker.database import Base
from parcel_tracker.simulator.clock import local_now


class ScheduledEvent(Base):
    __tablename__ = "scheduled_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    delivery_id = Column(Integer, ForeignKey("deliveries.id"), nullable=False, index=True)
    scheduled_for = Column(DateTime, nullable=False, index=True)
    event_type = Column(String(30), nullable=False)  # "collection", "departure", "location_update" ...
    new_status = Column(String(20), nullable=True)  # None -> location only
    location = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(2), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    progress_percent = Column(Integer, nullable=True)
    distance_traveled = Column(Float, nullable=True)  # km from origin
    executed = Column(Boolean, default=False, nullable=False, index=True)
    executed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=local_now, nullable=False)
