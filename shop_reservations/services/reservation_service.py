"""Reservation lifecycle: create, reschedule and status transitions"""

from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from shop_reservations.actors import Actor, ShopOwner, Customer, Guest, is_shop_admin, actor_label
from shop_reservations.constants import ACTIVE_STATUSES, ConfirmationMode, ReservationStatus
from shop_reservations.errors import (
    NotFoundError,
    ValidationError,
    ConflictError,
    InvalidStateError,
    translate_store_errors,
)
from shop_reservations.models.app_user import AppUser
from shop_reservations.models.catalog import ReservationService as ServiceModel, ReservationResource, ResourceServiceLink
from shop_reservations.models.reservation import Reservation
from shop_reservations.models.shop import Shop
from shop_reservations.schemas.reservation import ReservationCreate, ReservationUpdate
from shop_reservations.schemas.settings import ReservationSettings
from shop_reservations.services.availability_service import effective_duration
from shop_reservations.services.settings_service import merge_settings
from shop_reservations.services.time_slots import utcnow, add_hours, add_minutes, to_utc_naive, local_day_bounds

logger = structlog.get_logger()

# Exclusion constraint created by the initial migration
OVERLAP_CONSTRAINT = "excl_reservations_resource_overlap"
SLOT_TAKEN = "This time slot is no longer available"

STATUS_KEYS = [s.value for s in ReservationStatus]


def _range_bound(value: Union[date, datetime], upper: bool) -> datetime:
    if isinstance(value, datetime):
        return to_utc_naive(value)
    return local_day_bounds(value)[1 if upper else 0]


class ReservationService:
    """Reservation lifecycle for one request. Every call names its actor explicitly."""

    def __init__(self, db: AsyncSession, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or utcnow

    # ============================================
    # Create
    # ============================================

    @translate_store_errors
    async def create_reservation(self, shop_id: UUID, data: ReservationCreate, actor: Actor) -> Reservation:
        """Validate, conflict-check and insert a reservation.

        The resource rows are locked for the rest of the transaction so two
        concurrent bookings of the same resource are serialised; the
        exclusion constraint on ``reservations`` backs this up.
        """
        shop = await self._get_shop(shop_id)
        settings = merge_settings(shop.reservation_settings)
        now = self.clock()

        if isinstance(actor, ShopOwner) and actor.shop_id != shop_id:
            raise NotFoundError("Shop not found")
        if not is_shop_admin(actor) and not shop.reservations_enabled:
            raise NotFoundError("Reservations not enabled for this shop")

        identity = await self._resolve_identity(data, actor, now)

        result = await self.db.execute(
            select(ServiceModel).where(
                ServiceModel.id == data.service_id,
                ServiceModel.shop_id == shop_id,
                ServiceModel.is_active == True,
            )
        )
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError("Service not found")

        if data.resource_id:
            links = [await self._get_link(shop_id, data.resource_id, service.id)]
        elif service.requires_resource:
            if not settings.allow_any_staff:
                raise ValidationError("A resource must be selected for this service")
            links = await self._get_links(shop_id, service.id)
            if not links:
                raise ValidationError("No resource can provide this service")
        else:
            links = []

        start = to_utc_naive(data.start_time)
        self._check_booking_window(start, now, settings)

        if links:
            await self._lock_resources([link.resource_id for link in links])
            link, end = await self._first_free(shop_id, service, links, start, settings)
            if link is None:
                logger.warning(
                    "Reservation conflict rejected",
                    shop_id=str(shop_id),
                    service_id=str(service.id),
                    resource_id=str(data.resource_id) if data.resource_id else None,
                    start_time=start.isoformat(),
                )
                raise ConflictError(SLOT_TAKEN)
        else:
            link = None
            end = add_minutes(start, effective_duration(service, None, settings))

        if link is not None and link.price_override is not None:
            price = link.price_override
        else:
            price = service.price

        confirmed = settings.confirmation_mode == ConfirmationMode.AUTO.value
        reservation = Reservation(
            shop_id=shop_id,
            service_id=service.id,
            resource_id=link.resource_id if link else None,
            start_time=start,
            end_time=end,
            party_size=data.party_size,
            price=price,
            status=ReservationStatus.CONFIRMED.value if confirmed else ReservationStatus.PENDING.value,
            confirmation_mode=ConfirmationMode(settings.confirmation_mode).value,
            confirmed_at=now if confirmed else None,
            customer_notes=data.customer_notes,
            **identity,
        )
        self.db.add(reservation)
        await self._commit_window()

        logger.info(
            "Reservation created",
            shop_id=str(shop_id),
            reservation_id=str(reservation.id),
            resource_id=str(reservation.resource_id) if reservation.resource_id else None,
            status=reservation.status,
            actor=actor_label(actor),
        )
        return await self._load(reservation.id)

    async def _resolve_identity(self, data: ReservationCreate, actor: Actor, now: datetime) -> dict:
        """Customer columns for the new row: an app user or a guest, never both"""
        if isinstance(actor, Customer):
            user = await self._get_app_user(actor.app_user_id)
            if user.reservation_blocked_until and user.reservation_blocked_until > now:
                raise ValidationError(
                    f"Reservations are blocked until {user.reservation_blocked_until.isoformat()}"
                )
            return {"app_user_id": user.id}

        if isinstance(actor, Guest):
            if not actor.name or not actor.has_contact():
                raise ValidationError("Guest reservations require a name and a phone or email")
            return {"guest_name": actor.name, "guest_phone": actor.phone, "guest_email": actor.email}

        # Shop staff booking on behalf of someone
        if data.app_user_id:
            user = await self._get_app_user(data.app_user_id)
            return {"app_user_id": user.id}
        if not data.guest_name:
            raise ValidationError("Reservation needs an app user or a guest name")
        return {"guest_name": data.guest_name, "guest_phone": data.guest_phone, "guest_email": data.guest_email}

    def _check_booking_window(self, start: datetime, now: datetime, settings: ReservationSettings) -> None:
        if start < add_hours(now, settings.min_advance_hours):
            raise ValidationError(
                f"Reservations must be made at least {settings.min_advance_hours} hours in advance"
            )
        if start > add_hours(now, settings.max_advance_days * 24):
            raise ValidationError(
                f"Reservations can only be made up to {settings.max_advance_days} days in advance"
            )

    async def _first_free(
        self,
        shop_id: UUID,
        service: ServiceModel,
        links: Sequence[ResourceServiceLink],
        start: datetime,
        settings: ReservationSettings,
        exclude_id: Optional[UUID] = None,
    ) -> Tuple[Optional[ResourceServiceLink], Optional[datetime]]:
        """First link, in order, whose resource is free for the window it needs"""
        for link in links:
            end = add_minutes(start, effective_duration(service, link, settings))
            if not await self._has_conflict(shop_id, link.resource_id, start, end, exclude_id):
                return link, end
        return None, None

    # ============================================
    # Conflict check
    # ============================================

    @translate_store_errors
    async def check_conflict(
        self,
        shop_id: UUID,
        resource_id: Optional[UUID],
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        """True when an active reservation on the resource strictly overlaps [start, end).

        Reservations without a resource are never checked against each other;
        capacity is only enforced when slots are generated.
        """
        return await self._has_conflict(shop_id, resource_id, to_utc_naive(start), to_utc_naive(end), exclude_id)

    async def _has_conflict(
        self,
        shop_id: UUID,
        resource_id: Optional[UUID],
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        if resource_id is None:
            return False

        query = select(Reservation.id).where(
            Reservation.shop_id == shop_id,
            Reservation.resource_id == resource_id,
            Reservation.status.in_(ACTIVE_STATUSES),
            Reservation.start_time < end,
            Reservation.end_time > start,
        )
        if exclude_id:
            query = query.where(Reservation.id != exclude_id)

        result = await self.db.execute(query.limit(1))
        return result.first() is not None

    # ============================================
    # Reads
    # ============================================

    @translate_store_errors
    async def get_reservation(self, reservation_id: UUID, shop_id: Optional[UUID] = None) -> Reservation:
        return await self._load(reservation_id, shop_id)

    @translate_store_errors
    async def list_reservations(
        self,
        shop_id: UUID,
        status: Optional[Sequence[str]] = None,
        resource_id: Optional[UUID] = None,
        date_from: Optional[Union[date, datetime]] = None,
        date_to: Optional[Union[date, datetime]] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Reservation], int]:
        """Page of reservations ordered by start time, plus the exact total"""
        conditions = [Reservation.shop_id == shop_id]
        if status:
            conditions.append(Reservation.status.in_(list(status)))
        if resource_id:
            conditions.append(Reservation.resource_id == resource_id)
        if date_from is not None:
            conditions.append(Reservation.start_time >= _range_bound(date_from, upper=False))
        if isinstance(date_to, datetime):
            conditions.append(Reservation.start_time <= to_utc_naive(date_to))
        elif date_to is not None:
            conditions.append(Reservation.start_time < _range_bound(date_to, upper=True))

        return await self._page(conditions, limit, offset)

    @translate_store_errors
    async def list_user_reservations(
        self,
        app_user_id: UUID,
        status: Optional[Sequence[str]] = None,
        upcoming_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Reservation], int]:
        conditions = [Reservation.app_user_id == app_user_id]
        if status:
            conditions.append(Reservation.status.in_(list(status)))
        if upcoming_only:
            conditions.append(Reservation.start_time >= self.clock())
            conditions.append(Reservation.status.in_(ACTIVE_STATUSES))

        return await self._page(conditions, limit, offset)

    async def _page(self, conditions, limit: int, offset: int) -> Tuple[List[Reservation], int]:
        count_result = await self.db.execute(
            select(func.count()).select_from(Reservation).where(*conditions)
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(Reservation)
            .where(*conditions)
            .options(
                selectinload(Reservation.service),
                selectinload(Reservation.resource),
                selectinload(Reservation.app_user),
            )
            .order_by(Reservation.start_time.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ============================================
    # Modify
    # ============================================

    @translate_store_errors
    async def update_reservation(
        self, reservation_id: UUID, shop_id: UUID, data: ReservationUpdate
    ) -> Reservation:
        """Reschedule, reassign or annotate. Status only moves through the transitions."""
        reservation = await self._load(reservation_id, shop_id)
        updates = data.model_dump(exclude_unset=True)

        moves_window = (
            ("start_time" in updates and updates["start_time"] is not None)
            or ("resource_id" in updates and updates["resource_id"] != reservation.resource_id)
        )

        if moves_window:
            if reservation.status not in ACTIVE_STATUSES:
                raise InvalidStateError(f"Cannot reschedule a {reservation.status} reservation")

            service = reservation.service
            settings = merge_settings((await self._get_shop(shop_id)).reservation_settings)
            start = to_utc_naive(updates.get("start_time") or reservation.start_time)
            resource_id = updates.get("resource_id", reservation.resource_id)

            if resource_id is None:
                if service.requires_resource:
                    raise ValidationError("A resource must be selected for this service")
                end = add_minutes(start, effective_duration(service, None, settings))
            else:
                link = await self._get_link(shop_id, resource_id, service.id)
                await self._lock_resources([resource_id])
                end = add_minutes(start, effective_duration(service, link, settings))
                if await self._has_conflict(shop_id, resource_id, start, end, exclude_id=reservation.id):
                    logger.warning(
                        "Reservation conflict rejected",
                        shop_id=str(shop_id),
                        reservation_id=str(reservation.id),
                        resource_id=str(resource_id),
                        start_time=start.isoformat(),
                    )
                    raise ConflictError(SLOT_TAKEN)

            reservation.start_time = start
            reservation.end_time = end
            reservation.resource_id = resource_id

        for field in ("party_size", "customer_notes", "internal_notes"):
            if field in updates and updates[field] is not None:
                setattr(reservation, field, updates[field])

        await self._commit_window()
        logger.info("Reservation updated", shop_id=str(shop_id), reservation_id=str(reservation_id))
        return await self._load(reservation_id, shop_id)

    # ============================================
    # Transitions
    # ============================================

    @translate_store_errors
    async def confirm_reservation(self, reservation_id: UUID, shop_id: UUID, actor: Actor) -> Reservation:
        """pending -> confirmed. Any other status leaves the row untouched."""
        await self._transition(
            reservation_id,
            shop_id,
            from_statuses=[ReservationStatus.PENDING.value],
            values={
                "status": ReservationStatus.CONFIRMED.value,
                "confirmed_at": self.clock(),
                "confirmed_by": actor_label(actor),
            },
            missing="Reservation not found or not pending",
        )
        logger.info("Reservation confirmed", shop_id=str(shop_id), reservation_id=str(reservation_id))
        return await self._load(reservation_id, shop_id)

    @translate_store_errors
    async def complete_reservation(self, reservation_id: UUID, shop_id: UUID, actor: Actor) -> Reservation:
        """confirmed -> completed. Any other status leaves the row untouched."""
        await self._transition(
            reservation_id,
            shop_id,
            from_statuses=[ReservationStatus.CONFIRMED.value],
            values={"status": ReservationStatus.COMPLETED.value},
            missing="Reservation not found or not confirmed",
        )
        logger.info(
            "Reservation completed",
            shop_id=str(shop_id),
            reservation_id=str(reservation_id),
            actor=actor_label(actor),
        )
        return await self._load(reservation_id, shop_id)

    @translate_store_errors
    async def cancel_reservation(
        self,
        reservation_id: UUID,
        actor: Actor,
        reason: Optional[str] = None,
        shop_id: Optional[UUID] = None,
    ) -> Reservation:
        """Cancel on behalf of ``actor``.

        Customers may only cancel their own reservations and guests only the
        guest reservations whose email or phone they can quote. Anyone but
        shop staff is held to the cancellation deadline.
        """
        if isinstance(actor, ShopOwner):
            shop_id = actor.shop_id

        reservation = await self._load(reservation_id, shop_id)

        if isinstance(actor, Customer) and reservation.app_user_id != actor.app_user_id:
            raise NotFoundError("Reservation not found")
        if isinstance(actor, Guest) and (
            reservation.app_user_id is not None
            or not actor.matches(reservation.guest_phone, reservation.guest_email)
        ):
            raise NotFoundError("Reservation not found")

        if reservation.status == ReservationStatus.CANCELLED.value:
            raise InvalidStateError("Reservation is already cancelled")
        if reservation.status == ReservationStatus.COMPLETED.value:
            raise InvalidStateError("Cannot cancel a completed reservation")
        if reservation.status == ReservationStatus.NO_SHOW.value:
            raise InvalidStateError("Cannot cancel a reservation marked as no-show")

        now = self.clock()
        if not is_shop_admin(actor):
            settings = merge_settings((await self._get_shop(reservation.shop_id)).reservation_settings)
            if reservation.start_time < add_hours(now, settings.cancellation_hours):
                raise ValidationError(
                    f"Cancellations must be made at least {settings.cancellation_hours} hours before the reservation"
                )

        await self._transition(
            reservation.id,
            reservation.shop_id,
            from_statuses=list(ACTIVE_STATUSES),
            values={
                "status": ReservationStatus.CANCELLED.value,
                "cancelled_at": now,
                "cancelled_by": actor_label(actor),
                "cancellation_reason": reason,
            },
            missing="Reservation not found",
            conflict=InvalidStateError("Reservation status changed, cannot cancel"),
        )
        logger.info(
            "Reservation cancelled",
            shop_id=str(reservation.shop_id),
            reservation_id=str(reservation.id),
            actor=actor_label(actor),
        )
        return await self._load(reservation.id)

    @translate_store_errors
    async def mark_no_show(self, reservation_id: UUID, shop_id: UUID, actor: Actor) -> Reservation:
        """pending/confirmed -> no_show, bumping the app user's no-show counter.

        The counter is incremented in SQL in the same transaction, and only
        when the status change applied.
        """
        reservation = await self._load(reservation_id, shop_id)

        await self._transition(
            reservation.id,
            shop_id,
            from_statuses=list(ACTIVE_STATUSES),
            values={
                "status": ReservationStatus.NO_SHOW.value,
                "no_show_marked_at": self.clock(),
                "no_show_marked_by": actor_label(actor),
            },
            missing="Reservation not found",
            conflict=InvalidStateError(f"Cannot mark a {reservation.status} reservation as no-show"),
            commit=False,
        )

        if reservation.app_user_id:
            await self.db.execute(
                update(AppUser)
                .where(AppUser.id == reservation.app_user_id)
                .values(reservation_no_show_count=func.coalesce(AppUser.reservation_no_show_count, 0) + 1)
                .execution_options(synchronize_session=False)
            )
        await self.db.commit()

        logger.info(
            "Reservation marked no-show",
            shop_id=str(shop_id),
            reservation_id=str(reservation_id),
            app_user_id=str(reservation.app_user_id) if reservation.app_user_id else None,
        )
        return await self._load(reservation_id, shop_id)

    # ============================================
    # Stats
    # ============================================

    @translate_store_errors
    async def get_reservation_stats(
        self,
        shop_id: UUID,
        date_from: Optional[Union[date, datetime]] = None,
        date_to: Optional[Union[date, datetime]] = None,
    ) -> Dict[str, int]:
        """Counts per status over the filtered rows, always with every key and ``total``"""
        query = (
            select(Reservation.status, func.count(Reservation.id))
            .where(Reservation.shop_id == shop_id)
            .group_by(Reservation.status)
        )
        if date_from is not None:
            query = query.where(Reservation.start_time >= _range_bound(date_from, upper=False))
        if date_to is not None:
            query = query.where(Reservation.start_time < _range_bound(date_to, upper=True))

        result = await self.db.execute(query)

        stats = {key: 0 for key in STATUS_KEYS}
        stats["total"] = 0
        for status, count in result.all():
            stats[status] = stats.get(status, 0) + count
            stats["total"] += count
        return stats

    # ============================================
    # Helpers
    # ============================================

    async def _get_shop(self, shop_id: UUID) -> Shop:
        result = await self.db.execute(select(Shop).where(Shop.id == shop_id))
        shop = result.scalar_one_or_none()
        if not shop:
            raise NotFoundError("Shop not found")
        return shop

    async def _get_app_user(self, app_user_id: UUID) -> AppUser:
        result = await self.db.execute(select(AppUser).where(AppUser.id == app_user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError("App user not found")
        return user

    async def _get_link(self, shop_id: UUID, resource_id: UUID, service_id: UUID) -> ResourceServiceLink:
        """Active link between an active resource of the shop and the service"""
        result = await self.db.execute(
            select(ResourceServiceLink)
            .join(ReservationResource, ResourceServiceLink.resource_id == ReservationResource.id)
            .where(
                ResourceServiceLink.resource_id == resource_id,
                ResourceServiceLink.service_id == service_id,
                ResourceServiceLink.is_active == True,
                ReservationResource.shop_id == shop_id,
                ReservationResource.is_active == True,
            )
        )
        link = result.scalar_one_or_none()
        if not link:
            raise ValidationError("Resource cannot provide this service")
        return link

    async def _get_links(self, shop_id: UUID, service_id: UUID) -> List[ResourceServiceLink]:
        result = await self.db.execute(
            select(ResourceServiceLink)
            .join(ReservationResource, ResourceServiceLink.resource_id == ReservationResource.id)
            .where(
                ResourceServiceLink.service_id == service_id,
                ResourceServiceLink.is_active == True,
                ReservationResource.shop_id == shop_id,
                ReservationResource.is_active == True,
            )
            .order_by(ReservationResource.sort_order, ReservationResource.name)
        )
        return list(result.scalars().all())

    async def _lock_resources(self, resource_ids: Sequence[UUID]) -> None:
        # Stable lock order so concurrent bookings cannot deadlock
        await self.db.execute(
            select(ReservationResource.id)
            .where(ReservationResource.id.in_(list(resource_ids)))
            .order_by(ReservationResource.id)
            .with_for_update()
        )

    async def _commit_window(self) -> None:
        """Commit a new or moved window; the overlap constraint surfaces as a conflict"""
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if OVERLAP_CONSTRAINT in str(exc.orig):
                logger.warning("Reservation overlap rejected by store")
                raise ConflictError(SLOT_TAKEN) from exc
            raise

    async def _transition(
        self,
        reservation_id: UUID,
        shop_id: Optional[UUID],
        from_statuses: List[str],
        values: dict,
        missing: str,
        conflict: Optional[Exception] = None,
        commit: bool = True,
    ) -> None:
        """Status-guarded UPDATE; raises when no row matched the guard"""
        query = update(Reservation).where(
            Reservation.id == reservation_id,
            Reservation.status.in_(from_statuses),
        )
        if shop_id:
            query = query.where(Reservation.shop_id == shop_id)

        result = await self.db.execute(
            query.values(**values, updated_at=utcnow()).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise conflict or NotFoundError(missing)
        if commit:
            await self.db.commit()

    async def _load(self, reservation_id: UUID, shop_id: Optional[UUID] = None) -> Reservation:
        query = (
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .options(
                selectinload(Reservation.service),
                selectinload(Reservation.resource),
                selectinload(Reservation.app_user),
            )
            .execution_options(populate_existing=True)
        )
        if shop_id:
            query = query.where(Reservation.shop_id == shop_id)

        result = await self.db.execute(query)
        reservation = result.scalar_one_or_none()
        if not reservation:
            raise NotFoundError("Reservation not found")
        return reservation
