"""Weekly availability rules and one-off blocks"""

import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID

from shop_reservations.database import Base
from shop_reservations.services.time_slots import utcnow


class AvailabilityRule(Base):
    """Recurring weekly window, shop-level when resource_id is null"""
    __tablename__ = "reservation_availability"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False, index=True)
    resource_id = Column(UUID(as_uuid=True), ForeignKey("reservation_resources.id"), index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM shop-local
    end_time = Column(String(5), nullable=False)

    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ReservationBlock(Base):
    """Explicit unavailability window (holiday, vacation, break)"""
    __tablename__ = "reservation_blocks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False, index=True)
    resource_id = Column(UUID(as_uuid=True), ForeignKey("reservation_resources.id"), index=True)

    # Absolute, naive UTC
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)

    reason = Column(String(255))
    block_type = Column(String(20), default="custom")  # holiday, vacation, break, custom

    created_at = Column(DateTime, default=utcnow)
