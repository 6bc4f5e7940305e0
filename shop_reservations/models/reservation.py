"""Reservation model"""

import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from shop_reservations.database import Base
from shop_reservations.services.time_slots import utcnow


class Reservation(Base):
    """A booked window for one service, optionally on one resource"""
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_shop_window", "shop_id", "start_time", "end_time"),
        Index("ix_reservations_resource_window", "resource_id", "start_time", "end_time"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False)
    service_id = Column(UUID(as_uuid=True), ForeignKey("reservation_services.id"), nullable=False)
    resource_id = Column(UUID(as_uuid=True), ForeignKey("reservation_resources.id"))

    # Customer: app user xor guest identity
    app_user_id = Column(UUID(as_uuid=True), ForeignKey("app_users.id"))
    guest_name = Column(String(255))
    guest_phone = Column(String(50))
    guest_email = Column(String(255))

    # Window, naive UTC. end_time is computed once when the window is set.
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    party_size = Column(Integer, default=1, nullable=False)
    price = Column(Numeric(10, 2))  # snapshot at booking time

    # Status
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, cancelled, completed, no_show
    confirmation_mode = Column(String(10))  # snapshot of the shop setting

    # Audit
    confirmed_at = Column(DateTime)
    confirmed_by = Column(String(64))
    cancelled_at = Column(DateTime)
    cancelled_by = Column(String(64))
    cancellation_reason = Column(Text)
    no_show_marked_at = Column(DateTime)
    no_show_marked_by = Column(String(64))

    # Notes
    customer_notes = Column(Text)
    internal_notes = Column(Text)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="reservations")
    service = relationship("ReservationService")
    resource = relationship("ReservationResource")
    app_user = relationship("AppUser", back_populates="reservations")
