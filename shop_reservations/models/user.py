"""User model for dashboard authentication"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import enum

from shop_reservations.database import Base
from shop_reservations.services.time_slots import utcnow


class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    SUPER_ADMIN = "super_admin"
    SHOP_OWNER = "shop_owner"


class User(Base):
    """Dashboard users (platform admins and shop owners)"""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"))

    # Authentication
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    full_name = Column(String(255))

    # Role
    role = Column(Enum(UserRole), default=UserRole.SHOP_OWNER)

    # Status
    is_active = Column(Boolean, default=True)

    # Timestamps
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="users")
