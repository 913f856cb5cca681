"""
activity_logs table: admin and integration actions (create, status update, regenerate ...)
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON

from parcel_tracker.database import Base
from parcel_tracker.simulator.clock import local_now


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(50), nullable=False)  # "create_delivery", "update_status", "regenerate_history" ...
    resource_type = Column(String(30), nullable=True)
    resource_id = Column(String(36), nullable=True)
    details = Column(JSON)
    created_at = Column(DateTime, default=local_now)
