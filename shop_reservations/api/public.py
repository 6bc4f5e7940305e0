"""Public booking endpoints for guests, no authentication"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shop_reservations.actors import Guest
from shop_reservations.database import get_db
from shop_reservations.errors import NotFoundError
from shop_reservations.schemas.availability import TimeSlot, DayAvailability
from shop_reservations.schemas.catalog import ServiceResponse, ServiceWithResources, ResourceResponse
from shop_reservations.schemas.reservation import (
    GuestReservationCreate,
    GuestCancelRequest,
    ReservationResponse,
    ReservationCreatedResponse,
)
from shop_reservations.schemas.settings import PublicShopInfo
from shop_reservations.services.availability_service import AvailabilityService
from shop_reservations.services.catalog_service import CatalogService
from shop_reservations.services.reservation_service import ReservationService
from shop_reservations.services.settings_service import SettingsService

router = APIRouter()


async def require_enabled_shop(shop_id: UUID, db: AsyncSession = Depends(get_db)) -> UUID:
    """Every public endpoint 404s while the shop has reservations off"""
    if not await SettingsService(db).is_reservations_enabled(shop_id):
        raise NotFoundError("Reservations not enabled for this shop")
    return shop_id


@router.get("/info", response_model=PublicShopInfo)
async def get_info(
    shop_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await SettingsService(db).get_public_info(shop_id)


@router.get("/services", response_model=List[ServiceResponse])
async def list_services(
    shop_id: UUID = Depends(require_enabled_shop),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).list_services(shop_id, active_only=True)


@router.get("/services/{service_id}", response_model=ServiceWithResources)
async def get_service(
    service_id: UUID,
    shop_id: UUID = Depends(require_enabled_shop),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).get_service(service_id, shop_id)
    if not service.is_active:
        raise NotFoundError("Service not found")
    service.resources = [r for r in service.resources if r.is_active]
    return service


@router.get("/resources", response_model=List[ResourceResponse])
async def list_resources(
    service_id: Optional[UUID] = None,
    shop_id: UUID = Depends(require_enabled_shop),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).list_resources(shop_id, active_only=True, service_id=service_id)


@router.get("/availability", response_model=List[DayAvailability])
async def get_availability(
    service_id: UUID,
    date_from: date,
    date_to: date,
    resource_id: Optional[UUID] = None,
    shop_id: UUID = Depends(require_enabled_shop),
    db: AsyncSession = Depends(get_db),
):
    return await AvailabilityService(db).get_availability(shop_id, service_id, date_from, date_to, resource_id)


@router.get("/next-slot", response_model=Optional[TimeSlot])
async def get_next_slot(
    service_id: UUID,
    resource_id: Optional[UUID] = None,
    shop_id: UUID = Depends(require_enabled_shop),
    db: AsyncSession = Depends(get_db),
):
    return await AvailabilityService(db).get_next_available_slot(shop_id, service_id, resource_id)


@router.post("", response_model=ReservationCreatedResponse, status_code=201)
async def create_guest_reservation(
    shop_id: UUID,
    reservation_data: GuestReservationCreate,
    db: AsyncSession = Depends(get_db),
):
    guest = Guest(
        name=reservation_data.guest_name,
        phone=reservation_data.guest_phone,
        email=reservation_data.guest_email,
    )
    reservation = await ReservationService(db).create_reservation(shop_id, reservation_data, guest)
    message = (
        "Reservation confirmed"
        if reservation.status == "confirmed"
        else "Reservation received, awaiting confirmation"
    )
    return ReservationCreatedResponse(data=reservation, message=message)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_guest_reservation(
    shop_id: UUID,
    reservation_id: UUID,
    email: Optional[str] = Query(None),
    phone: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Guests look up a booking by quoting the email or phone they used"""
    reservation = await ReservationService(db).get_reservation(reservation_id, shop_id)
    guest = Guest(phone=phone, email=email)
    if reservation.app_user_id is not None or not guest.matches(reservation.guest_phone, reservation.guest_email):
        raise NotFoundError("Reservation not found")
    return reservation


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_guest_reservation(
    shop_id: UUID,
    reservation_id: UUID,
    request: GuestCancelRequest,
    db: AsyncSession = Depends(get_db),
):
    guest = Guest(phone=request.phone, email=request.email)
    return await ReservationService(db).cancel_reservation(
        reservation_id, guest, reason=request.reason, shop_id=shop_id
    )
