"""App user (end customer) model"""

import uuid
from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from shop_reservations.database import Base
from shop_reservations.services.time_slots import utcnow


class AppUser(Base):
    """End customer using the mobile app"""
    __tablename__ = "app_users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(255))
    last_name = Column(String(255))
    email = Column(String(255), unique=True)
    phone_number = Column(String(50))

    # Reservation policy
    reservation_no_show_count = Column(Integer, default=0, nullable=False)
    reservation_blocked_until = Column(DateTime)

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    reservations = relationship("Reservation", back_populates="app_user")
