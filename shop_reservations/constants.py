"""Reservation domain enums and default settings"""

import enum


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Statuses that occupy a time window
ACTIVE_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value)


class ServiceType(str, enum.Enum):
    SERVICE = "service"
    TABLE = "table"
    SLOT = "slot"


class ResourceType(str, enum.Enum):
    STAFF = "staff"
    TABLE = "table"
    ROOM = "room"
    OTHER = "other"


class ConfirmationMode(str, enum.Enum):
    AUTO = "auto"
    MANUAL = "manual"


class BlockType(str, enum.Enum):
    HOLIDAY = "holiday"
    VACATION = "vacation"
    BREAK = "break"
    CUSTOM = "custom"


# Day of week (0 = Sunday, 6 = Saturday)
class DayOfWeek(int, enum.Enum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


DEFAULT_RESERVATION_SETTINGS = {
    "confirmation_mode": ConfirmationMode.AUTO.value,
    "cancellation_hours": 24,
    "max_advance_days": 30,
    "min_advance_hours": 1,
    "allow_any_staff": True,
    "slot_duration_minutes": 30,
}
