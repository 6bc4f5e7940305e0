"""Reservation schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, model_validator

from shop_reservations.schemas.catalog import ServiceResponse, ResourceResponse


class ReservationCreate(BaseModel):
    """Create reservation request"""
    service_id: UUID
    resource_id: Optional[UUID] = None
    start_time: datetime
    party_size: int = Field(1, ge=1, le=50)
    customer_notes: Optional[str] = Field(None, max_length=500)

    # Shop admins booking on behalf of someone
    app_user_id: Optional[UUID] = None
    guest_name: Optional[str] = Field(None, min_length=1, max_length=255)
    guest_phone: Optional[str] = Field(None, min_length=5, max_length=50)
    guest_email: Optional[str] = Field(None, max_length=255)


class GuestReservationCreate(ReservationCreate):
    """Create reservation request from an unauthenticated guest"""
    guest_name: str = Field(..., min_length=1, max_length=255)

    @model_validator(mode="after")
    def require_contact(self):
        if not (self.guest_phone or self.guest_email):
            raise ValueError("Either phone or email is required for guest reservations")
        return self


class ReservationUpdate(BaseModel):
    """Update reservation request (shop admin)"""
    resource_id: Optional[UUID] = None
    start_time: Optional[datetime] = None
    party_size: Optional[int] = Field(None, ge=1, le=50)
    customer_notes: Optional[str] = Field(None, max_length=500)
    internal_notes: Optional[str] = Field(None, max_length=1000)


class CancelReservationRequest(BaseModel):
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class GuestCancelRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_contact(self):
        if not (self.email or self.phone):
            raise ValueError("Either email or phone is required to cancel")
        return self


class ReservationResponse(BaseModel):
    """Reservation response"""
    id: UUID
    shop_id: UUID
    service_id: UUID
    resource_id: Optional[UUID]
    app_user_id: Optional[UUID]
    guest_name: Optional[str]
    guest_phone: Optional[str]
    guest_email: Optional[str]
    start_time: datetime
    end_time: datetime
    party_size: int
    price: Optional[Decimal]
    status: str
    confirmation_mode: Optional[str]
    confirmed_at: Optional[datetime]
    confirmed_by: Optional[str]
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[str]
    cancellation_reason: Optional[str]
    no_show_marked_at: Optional[datetime]
    no_show_marked_by: Optional[str]
    customer_notes: Optional[str]
    internal_notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class AppUserBrief(BaseModel):
    id: UUID
    first_name: Optional[str]
    last_name: Optional[str]
    email: Optional[str]
    phone_number: Optional[str]

    class Config:
        from_attributes = True


class ReservationWithDetails(ReservationResponse):
    service: Optional[ServiceResponse] = None
    resource: Optional[ResourceResponse] = None
    app_user: Optional[AppUserBrief] = None


class ReservationListResponse(BaseModel):
    """Paginated reservation list"""
    items: List[ReservationWithDetails]
    total: int
    limit: int
    offset: int


class ReservationCreatedResponse(BaseModel):
    data: ReservationResponse
    message: str
