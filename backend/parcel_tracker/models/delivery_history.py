"""
delivery_history table: append-only audit trail of status/location changes
- First row is always written at delivery creation.
"""

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from parcel_tracker.database import Base
from parcel_tracker.simulator.clock import local_now


class DeliveryHistory(Base):
    __tablename__ = "delivery_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    delivery_id = Column(Integer, ForeignKey("deliveries.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    location = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(2), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    progress_percent = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=local_now, nullable=False)

    delivery = relationship("Delivery", back_populates="history")
