"""Per-shop reservation settings"""

from typing import Optional
from pydantic import BaseModel, Field

from shop_reservations.constants import ConfirmationMode


class ReservationSettings(BaseModel):
    """Effective reservation settings of a shop, defaults filled in"""
    confirmation_mode: ConfirmationMode = ConfirmationMode.AUTO
    cancellation_hours: int = Field(24, ge=0, le=168)
    max_advance_days: int = Field(30, ge=1, le=365)
    min_advance_hours: int = Field(1, ge=0, le=72)
    allow_any_staff: bool = True
    slot_duration_minutes: int = Field(30, ge=5, le=120)


class ReservationSettingsUpdate(BaseModel):
    """Partial settings update, validated before it is stored"""
    confirmation_mode: Optional[ConfirmationMode] = None
    cancellation_hours: Optional[int] = Field(None, ge=0, le=168)
    max_advance_days: Optional[int] = Field(None, ge=1, le=365)
    min_advance_hours: Optional[int] = Field(None, ge=0, le=72)
    allow_any_staff: Optional[bool] = None
    slot_duration_minutes: Optional[int] = Field(None, ge=5, le=120)


class ToggleReservationsRequest(BaseModel):
    enabled: bool


class PublicShopInfo(BaseModel):
    """Customer-facing booking policy of a shop"""
    shop_id: str
    shop_name: str
    reservations_enabled: bool
    max_advance_days: int
    min_advance_hours: int
    cancellation_hours: int
