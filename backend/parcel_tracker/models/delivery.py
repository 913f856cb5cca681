"""
deliveries table: a shipped parcel and its current tracking state
"""

import enum

from sqlalchemy import Column, Integer, String, Float, Text, Enum, Date, DateTime
from sqlalchemy.orm import relationship

from parcel_tracker.database import Base
from parcel_tracker.simulator.clock import local_now


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    COLLECTED = "collected"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    FAILED = "failed"
    RETURNED = "returned"


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tracking_code = Column(String(20), unique=True, nullable=False, index=True)  # "CF123456789BR"
    status = Column(
        Enum(DeliveryStatus, values_callable=lambda e: [m.value for m in e]),
        default=DeliveryStatus.PENDING,
        nullable=False,
    )
    current_location = Column(String(200), nullable=True)
    current_lat = Column(Float, nullable=True)
    current_lng = Column(Float, nullable=True)

    # Sender / origin
    sender_name = Column(String(120), nullable=True)
    sender_email = Column(String(120), nullable=True)
    sender_phone = Column(String(30), nullable=True)
    origin_address = Column(String(200), nullable=True)
    origin_city = Column(String(100), nullable=True)
    origin_state = Column(String(2), nullable=True)
    origin_zip = Column(String(10), nullable=True)
    origin_lat = Column(Float, nullable=True)
    origin_lng = Column(Float, nullable=True)

    # Recipient / destination
    recipient_name = Column(String(120), nullable=False)
    recipient_email = Column(String(120), nullable=True)
    recipient_phone = Column(String(30), nullable=True)
    destination_address = Column(String(200), nullable=False)
    destination_city = Column(String(100), nullable=True)
    destination_state = Column(String(2), nullable=True)
    destination_zip = Column(String(10), nullable=True)
    destination_lat = Column(Float, nullable=True)
    destination_lng = Column(Float, nullable=True)

    # Package
    package_description = Column(Text, nullable=True)
    package_weight = Column(Float, nullable=True)

    estimated_delivery = Column(Date, nullable=True)
    delivered_at = Column(DateTime, nullable=True)  # set iff status == delivered
    created_at = Column(DateTime, default=local_now, nullable=False)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    history = relationship(
        "DeliveryHistory",
        back_populates="delivery",
        order_by="DeliveryHistory.created_at",
        lazy="selectin",
    )
