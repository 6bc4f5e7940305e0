"""Shop-admin reservation endpoints, scoped to the caller's shop"""

from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shop_reservations.actors import ShopOwner
from shop_reservations.api.auth import require_shop_owner
from shop_reservations.database import get_db
from shop_reservations.schemas.catalog import (
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    ServiceWithResources,
    ResourceCreate,
    ResourceUpdate,
    ResourceResponse,
    ResourceWithServices,
    SetResourceServicesRequest,
    ResourceServiceResponse,
    DeleteResult,
)
from shop_reservations.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    CancelReservationRequest,
    ReservationWithDetails,
    ReservationListResponse,
    ReservationCreatedResponse,
)
from shop_reservations.schemas.schedule import (
    SetAvailabilityRequest,
    AvailabilityRuleResponse,
    BlockCreate,
    BlockResponse,
)
from shop_reservations.schemas.settings import (
    ReservationSettings,
    ReservationSettingsUpdate,
    ToggleReservationsRequest,
)
from shop_reservations.services.catalog_service import CatalogService
from shop_reservations.services.reservation_service import ReservationService
from shop_reservations.services.schedule_service import ScheduleService, ANY_SCOPE
from shop_reservations.services.settings_service import SettingsService

router = APIRouter()


# ============================================
# Settings
# ============================================

@router.get("/settings", response_model=ReservationSettings)
async def get_settings(
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await SettingsService(db).get_shop_settings(owner.shop_id)


@router.patch("/settings", response_model=ReservationSettings)
async def update_settings(
    updates: ReservationSettingsUpdate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await SettingsService(db).update_shop_settings(owner.shop_id, updates)


@router.post("/toggle")
async def toggle_reservations(
    request: ToggleReservationsRequest,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    """Turn customer bookings on or off"""
    enabled = await SettingsService(db).set_reservations_enabled(owner.shop_id, request.enabled)
    return {"reservations_enabled": enabled}


# ============================================
# Services
# ============================================

@router.get("/services", response_model=List[ServiceResponse])
async def list_services(
    active_only: bool = False,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).list_services(owner.shop_id, active_only=active_only)


@router.post("/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    service_data: ServiceCreate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).create_service(owner.shop_id, service_data)


@router.get("/services/{service_id}", response_model=ServiceWithResources)
async def get_service(
    service_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).get_service(service_id, owner.shop_id)


@router.patch("/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: UUID,
    service_data: ServiceUpdate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).update_service(service_id, owner.shop_id, service_data)


@router.delete("/services/{service_id}", response_model=DeleteResult)
async def delete_service(
    service_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    """Soft-deletes when reservations reference the service"""
    strategy = await CatalogService(db).delete_service(service_id, owner.shop_id)
    return DeleteResult(strategy=strategy)


# ============================================
# Resources
# ============================================

@router.get("/resources", response_model=List[ResourceResponse])
async def list_resources(
    active_only: bool = False,
    type: Optional[str] = None,
    service_id: Optional[UUID] = None,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).list_resources(
        owner.shop_id, active_only=active_only, type=type, service_id=service_id
    )


@router.post("/resources", response_model=ResourceResponse, status_code=201)
async def create_resource(
    resource_data: ResourceCreate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).create_resource(owner.shop_id, resource_data)


@router.get("/resources/{resource_id}", response_model=ResourceWithServices)
async def get_resource(
    resource_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).get_resource(resource_id, owner.shop_id)


@router.patch("/resources/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: UUID,
    resource_data: ResourceUpdate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).update_resource(resource_id, owner.shop_id, resource_data)


@router.delete("/resources/{resource_id}", response_model=DeleteResult)
async def delete_resource(
    resource_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    strategy = await CatalogService(db).delete_resource(resource_id, owner.shop_id)
    return DeleteResult(strategy=strategy)


@router.put("/resources/{resource_id}/services", response_model=List[ResourceServiceResponse])
async def set_resource_services(
    resource_id: UUID,
    request: SetResourceServicesRequest,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    """Replace the services a resource provides"""
    return await CatalogService(db).set_resource_services(resource_id, owner.shop_id, request.services)


# ============================================
# Availability & Blocks
# ============================================

@router.get("/availability", response_model=List[AvailabilityRuleResponse])
async def get_availability_schedule(
    resource_id: Optional[UUID] = None,
    shop_only: bool = False,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    """Weekly rules: one resource, shop-level only, or everything"""
    scope = resource_id if resource_id else (None if shop_only else ANY_SCOPE)
    return await ScheduleService(db).get_availability_schedule(owner.shop_id, scope)


@router.put("/availability", response_model=List[AvailabilityRuleResponse])
async def set_availability(
    request: SetAvailabilityRequest,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService(db).set_availability(owner.shop_id, request.resource_id, request.availability)


@router.get("/blocks", response_model=List[BlockResponse])
async def list_blocks(
    resource_id: Optional[UUID] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService(db).list_blocks(
        owner.shop_id,
        resource_id if resource_id else ANY_SCOPE,
        from_date=from_date,
        to_date=to_date,
    )


@router.post("/blocks", response_model=BlockResponse, status_code=201)
async def create_block(
    block_data: BlockCreate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService(db).create_block(owner.shop_id, block_data)


@router.delete("/blocks/{block_id}")
async def delete_block(
    block_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    await ScheduleService(db).delete_block(block_id, owner.shop_id)
    return {"success": True}


# ============================================
# Reservations
# ============================================

@router.get("", response_model=ReservationListResponse)
async def list_reservations(
    status: Optional[str] = Query(None, description="Comma separated statuses"),
    resource_id: Optional[UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
    items, total = await ReservationService(db).list_reservations(
        owner.shop_id,
        status=statuses,
        resource_id=resource_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return ReservationListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post("", response_model=ReservationCreatedResponse, status_code=201)
async def create_reservation(
    reservation_data: ReservationCreate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    """Book on behalf of an app user or a walk-in guest"""
    reservation = await ReservationService(db).create_reservation(owner.shop_id, reservation_data, owner)
    return ReservationCreatedResponse(data=reservation, message="Reservation created")


@router.get("/stats", response_model=Dict[str, int])
async def get_stats(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).get_reservation_stats(owner.shop_id, date_from, date_to)


@router.get("/{reservation_id}", response_model=ReservationWithDetails)
async def get_reservation(
    reservation_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).get_reservation(reservation_id, owner.shop_id)


@router.patch("/{reservation_id}", response_model=ReservationWithDetails)
async def update_reservation(
    reservation_id: UUID,
    reservation_data: ReservationUpdate,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).update_reservation(reservation_id, owner.shop_id, reservation_data)


@router.post("/{reservation_id}/confirm", response_model=ReservationWithDetails)
async def confirm_reservation(
    reservation_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).confirm_reservation(reservation_id, owner.shop_id, owner)


@router.post("/{reservation_id}/cancel", response_model=ReservationWithDetails)
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).cancel_reservation(
        reservation_id, owner, reason=request.cancellation_reason, shop_id=owner.shop_id
    )


@router.post("/{reservation_id}/complete", response_model=ReservationWithDetails)
async def complete_reservation(
    reservation_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).complete_reservation(reservation_id, owner.shop_id, owner)


@router.post("/{reservation_id}/no-show", response_model=ReservationWithDetails)
async def mark_no_show(
    reservation_id: UUID,
    owner: ShopOwner = Depends(require_shop_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ReservationService(db).mark_no_show(reservation_id, owner.shop_id, owner)
