"""Reservation endpoints for authenticated app users"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shop_reservations.actors import Customer
from shop_reservations.api.auth import require_customer
from shop_reservations.database import get_db
from shop_reservations.errors import NotFoundError
from shop_reservations.schemas.reservation import (
    ReservationCreate,
    CancelReservationRequest,
    ReservationWithDetails,
    ReservationListResponse,
    ReservationCreatedResponse,
)
from shop_reservations.services.reservation_service import ReservationService

router = APIRouter()


@router.get("", response_model=ReservationListResponse)
async def list_my_reservations(
    upcoming_only: bool = False,
    status: Optional[str] = Query(None, description="Comma separated statuses"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    customer: Customer = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
    items, total = await ReservationService(db).list_user_reservations(
        customer.app_user_id,
        status=statuses,
        upcoming_only=upcoming_only,
        limit=limit,
        offset=offset,
    )
    return ReservationListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/{reservation_id}", response_model=ReservationWithDetails)
async def get_my_reservation(
    reservation_id: UUID,
    customer: Customer = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    reservation = await ReservationService(db).get_reservation(reservation_id)
    if reservation.app_user_id != customer.app_user_id:
        raise NotFoundError("Reservation not found")
    return reservation


@router.post("/shops/{shop_id}", response_model=ReservationCreatedResponse, status_code=201)
async def create_reservation(
    shop_id: UUID,
    reservation_data: ReservationCreate,
    customer: Customer = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    reservation = await ReservationService(db).create_reservation(shop_id, reservation_data, customer)
    message = (
        "Reservation confirmed"
        if reservation.status == "confirmed"
        else "Reservation received, awaiting confirmation"
    )
    return ReservationCreatedResponse(data=reservation, message=message)


@router.post("/{reservation_id}/cancel", response_model=ReservationWithDetails)
async def cancel_my_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    customer: Customer = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).cancel_reservation(
        reservation_id, customer, reason=request.cancellation_reason
    )
