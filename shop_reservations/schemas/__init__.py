"""Pydantic schemas for request/response validation"""

from shop_reservations.schemas.auth import Token, LoginRequest, UserResponse
from shop_reservations.schemas.settings import (
    ReservationSettings,
    ReservationSettingsUpdate,
    ToggleReservationsRequest,
    PublicShopInfo,
)
from shop_reservations.schemas.schedule import (
    AvailabilityRuleInput,
    SetAvailabilityRequest,
    AvailabilityRuleResponse,
    BlockCreate,
    BlockResponse,
)
from shop_reservations.schemas.catalog import (
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    ServiceWithResources,
    ResourceCreate,
    ResourceUpdate,
    ResourceResponse,
    ResourceWithPricing,
    ResourceWithServices,
    ResourceServiceInput,
    SetResourceServicesRequest,
    ResourceServiceResponse,
    DeleteResult,
)
from shop_reservations.schemas.reservation import (
    ReservationCreate,
    GuestReservationCreate,
    ReservationUpdate,
    CancelReservationRequest,
    GuestCancelRequest,
    ReservationResponse,
    ReservationWithDetails,
    ReservationListResponse,
    ReservationCreatedResponse,
)
from shop_reservations.schemas.availability import TimeSlot, DayAvailability

__all__ = [
    "Token",
    "LoginRequest",
    "UserResponse",
    "ReservationSettings",
    "ReservationSettingsUpdate",
    "ToggleReservationsRequest",
    "PublicShopInfo",
    "AvailabilityRuleInput",
    "SetAvailabilityRequest",
    "AvailabilityRuleResponse",
    "BlockCreate",
    "BlockResponse",
    "ServiceCreate",
    "ServiceUpdate",
    "ServiceResponse",
    "ServiceWithResources",
    "ResourceCreate",
    "ResourceUpdate",
    "ResourceResponse",
    "ResourceWithPricing",
    "ResourceWithServices",
    "ResourceServiceInput",
    "SetResourceServicesRequest",
    "ResourceServiceResponse",
    "DeleteResult",
    "ReservationCreate",
    "GuestReservationCreate",
    "ReservationUpdate",
    "CancelReservationRequest",
    "GuestCancelRequest",
    "ReservationResponse",
    "ReservationWithDetails",
    "ReservationListResponse",
    "ReservationCreatedResponse",
    "TimeSlot",
    "DayAvailability",
]
