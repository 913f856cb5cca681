"""
simulation_config table: tenant-wide singleton driving the scheduler
- Missing row -> documented defaults from settings (services.simulation_config).
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime

from parcel_tracker.database import Base
from parcel_tracker.simulator.clock import local_now


class SimulationConfigRecord(Base):
    __tablename__ = "simulation_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    origin_company_name = Column(String(120), nullable=False)
    origin_address = Column(String(200), nullable=True)
    origin_city = Column(String(100), nullable=False)
    origin_state = Column(String(2), nullable=False)
    origin_zip = Column(String(10), nullable=True)
    origin_lat = Column(Float, nullable=False)
    origin_lng = Column(Float, nullable=False)
    min_delivery_days = Column(Integer, nullable=False)
    max_delivery_days = Column(Integer, nullable=False)
    update_start_hour = Column(Integer, nullable=False)
    update_end_hour = Column(Integer, nullable=False)
    skip_weekends = Column(Boolean, nullable=False, default=True)
    days_per_checkpoint = Column(Float, nullable=False, default=1.5)
    max_checkpoints = Column(Integer, nullable=False, default=12)
    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)
