"""Bookable services, resources and the links between them"""

import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Text, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from shop_reservations.database import Base
from shop_reservations.services.time_slots import utcnow


class ReservationService(Base):
    """A bookable offering of one shop"""
    __tablename__ = "reservation_services"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(20), default="service")  # service, table, slot

    # Null duration falls back to the shop's slot_duration_minutes
    duration_minutes = Column(Integer)
    price = Column(Numeric(10, 2))

    # Concurrent party size when no resource is required
    capacity = Column(Integer, default=1)
    requires_resource = Column(Boolean, default=True)

    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="services")
    resource_links = relationship(
        "ResourceServiceLink", back_populates="service", cascade="all, delete-orphan"
    )


class ReservationResource(Base):
    """Staff member, table or room"""
    __tablename__ = "reservation_resources"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="staff")  # staff, table, room, other
    image_url = Column(String(500))
    description = Column(Text)
    specialties = Column(JSON, default=list)

    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="resources")
    service_links = relationship(
        "ResourceServiceLink", back_populates="resource", cascade="all, delete-orphan"
    )
    availability = relationship("AvailabilityRule", viewonly=True)


class ResourceServiceLink(Base):
    """Which resources can provide which services, with per-link overrides"""
    __tablename__ = "reservation_resource_services"
    __table_args__ = (
        UniqueConstraint("resource_id", "service_id", name="uq_resource_service"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    resource_id = Column(UUID(as_uuid=True), ForeignKey("reservation_resources.id"), nullable=False, index=True)
    service_id = Column(UUID(as_uuid=True), ForeignKey("reservation_services.id"), nullable=False, index=True)

    price_override = Column(Numeric(10, 2))
    duration_override = Column(Integer)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    resource = relationship("ReservationResource", back_populates="service_links")
    service = relationship("ReservationService", back_populates="resource_links")
