"""Shop (tenant) model"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from shop_reservations.database import Base
from shop_reservations.services.time_slots import utcnow


class Shop(Base):
    """Shop tenant owning services, resources and reservations"""
    __tablename__ = "shops"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)

    # Reservations
    reservations_enabled = Column(Boolean, default=False)
    reservation_settings = Column(JSON, default=dict)  # partial ReservationSettings, merged over defaults

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    services = relationship("ReservationService", back_populates="shop")
    resources = relationship("ReservationResource", back_populates="shop")
    reservations = relationship("Reservation", back_populates="shop")
    users = relationship("User", back_populates="shop")
