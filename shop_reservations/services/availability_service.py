"""Slot availability computed from schedules, blocks and existing reservations"""

from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from shop_reservations.constants import ACTIVE_STATUSES
from shop_reservations.errors import NotFoundError, ValidationError, translate_store_errors
from shop_reservations.models.catalog import ReservationService, ReservationResource, ResourceServiceLink
from shop_reservations.models.reservation import Reservation
from shop_reservations.models.schedule import AvailabilityRule, ReservationBlock
from shop_reservations.schemas.availability import TimeSlot, DayAvailability
from shop_reservations.schemas.settings import ReservationSettings
from shop_reservations.services.settings_service import SettingsService
from shop_reservations.services.time_slots import (
    utcnow,
    add_hours,
    combine_date_and_time,
    do_times_overlap,
    generate_time_slots,
    get_date_range,
    get_day_of_week,
    local_day_bounds,
    local_today,
)

logger = structlog.get_logger()


def effective_duration(
    service: ReservationService,
    link: Optional[ResourceServiceLink],
    settings: ReservationSettings,
) -> int:
    """Link override, then service default, then the shop's slot length"""
    if link is not None and link.duration_override:
        return link.duration_override
    return service.duration_minutes or settings.slot_duration_minutes


class _DayContext:
    """Rows preloaded once for a whole date range"""

    def __init__(
        self,
        rules: Sequence[AvailabilityRule],
        blocks: Sequence[ReservationBlock],
        reservations: Sequence[Reservation],
    ):
        self.blocks = blocks
        self.reservations = reservations
        self.rules_by_day: Dict[int, List[AvailabilityRule]] = {}
        for rule in rules:
            self.rules_by_day.setdefault(rule.day_of_week, []).append(rule)

    def effective_rules(self, day_of_week: int, resource_id: Optional[UUID]) -> List[AvailabilityRule]:
        """Resource rules when the resource has any for the day, else shop rules. Never both."""
        day_rules = self.rules_by_day.get(day_of_week, [])
        if resource_id is not None:
            own = [r for r in day_rules if r.resource_id == resource_id]
            if own:
                return own
        return [r for r in day_rules if r.resource_id is None]

    def is_blocked(self, start: datetime, end: datetime, resource_id: Optional[UUID]) -> bool:
        for block in self.blocks:
            # Shop blocks apply everywhere, resource blocks only to their resource
            if block.resource_id is not None and block.resource_id != resource_id:
                continue
            if do_times_overlap(start, end, block.start_datetime, block.end_datetime):
                return True
        return False


class AvailabilityService:
    """Computes bookable slots per shop-local calendar day"""

    def __init__(self, db: AsyncSession, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or utcnow

    @translate_store_errors
    async def get_availability(
        self,
        shop_id: UUID,
        service_id: UUID,
        date_from: date,
        date_to: date,
        resource_id: Optional[UUID] = None,
    ) -> List[DayAvailability]:
        """One entry per day in [date_from, date_to], slots ascending by start"""
        if date_from > date_to:
            raise ValidationError("date_from must not be after date_to")

        settings = await SettingsService(self.db).get_shop_settings(shop_id)
        days = await self._compute(shop_id, service_id, date_from, date_to, resource_id, settings)

        logger.info(
            "Availability computed",
            shop_id=str(shop_id),
            service_id=str(service_id),
            resource_id=str(resource_id) if resource_id else None,
            day_count=len(days),
            slot_count=sum(len(d.slots) for d in days),
        )
        return days

    @translate_store_errors
    async def get_next_available_slot(
        self,
        shop_id: UUID,
        service_id: UUID,
        resource_id: Optional[UUID] = None,
    ) -> Optional[TimeSlot]:
        """First available slot within max_advance_days, scanning a day at a time"""
        settings = await SettingsService(self.db).get_shop_settings(shop_id)
        now = self.clock()
        horizon = add_hours(now, settings.max_advance_days * 24)

        for day in get_date_range(local_today(now), local_today(horizon)):
            days = await self._compute(shop_id, service_id, day, day, resource_id, settings)
            for slot in days[0].slots:
                if slot.start_time > horizon:
                    break
                if slot.available:
                    return slot

        logger.info("No available slot in booking window", shop_id=str(shop_id), service_id=str(service_id))
        return None

    async def _compute(
        self,
        shop_id: UUID,
        service_id: UUID,
        date_from: date,
        date_to: date,
        resource_id: Optional[UUID],
        settings: ReservationSettings,
    ) -> List[DayAvailability]:
        service = await self._get_active_service(shop_id, service_id)

        candidates: List[Tuple[ResourceServiceLink, ReservationResource]] = []
        if service.requires_resource:
            candidates = await self._get_candidates(shop_id, service_id, resource_id)

        range_start = local_day_bounds(date_from)[0]
        range_end = local_day_bounds(date_to)[1]
        context = _DayContext(
            rules=await self._load_rules(shop_id),
            blocks=await self._load_blocks(shop_id, range_start, range_end),
            reservations=await self._load_reservations(shop_id, range_start, range_end),
        )

        earliest = add_hours(self.clock(), settings.min_advance_hours)
        step = settings.slot_duration_minutes

        result = []
        for day in get_date_range(date_from, date_to):
            # No usable linked resource means the shop-level grid
            if candidates:
                slots = []
                for link, resource in candidates:
                    slots.extend(self._resource_slots(
                        day, context, resource, effective_duration(service, link, settings), step, earliest
                    ))
            else:
                slots = self._shop_slots(
                    day, context, service, effective_duration(service, None, settings), step, earliest
                )

            slots.sort(key=lambda s: (s.start_time, s.resource_name or ""))
            result.append(DayAvailability(date=day, slots=slots))

        return result

    def _resource_slots(
        self,
        day: date,
        context: _DayContext,
        resource: ReservationResource,
        duration: int,
        step: int,
        earliest: datetime,
    ) -> List[TimeSlot]:
        slots = []
        for rule in context.effective_rules(get_day_of_week(day), resource.id):
            for window in generate_time_slots(rule.start_time, rule.end_time, step, duration):
                start = combine_date_and_time(day, window.start)
                end = combine_date_and_time(day, window.end)

                if start < earliest:
                    continue
                if context.is_blocked(start, end, resource.id):
                    continue

                booked = any(
                    r.resource_id == resource.id and do_times_overlap(start, end, r.start_time, r.end_time)
                    for r in context.reservations
                )
                slots.append(TimeSlot(
                    start_time=start,
                    end_time=end,
                    available=not booked,
                    resource_id=resource.id,
                    resource_name=resource.name,
                ))
        return slots

    def _shop_slots(
        self,
        day: date,
        context: _DayContext,
        service: ReservationService,
        duration: int,
        step: int,
        earliest: datetime,
    ) -> List[TimeSlot]:
        capacity = service.capacity or 1
        slots = []
        for rule in context.effective_rules(get_day_of_week(day), None):
            for window in generate_time_slots(rule.start_time, rule.end_time, step, duration):
                start = combine_date_and_time(day, window.start)
                end = combine_date_and_time(day, window.end)

                if start < earliest:
                    continue
                if context.is_blocked(start, end, None):
                    continue

                booked = sum(
                    r.party_size or 1
                    for r in context.reservations
                    if do_times_overlap(start, end, r.start_time, r.end_time)
                )
                slots.append(TimeSlot(start_time=start, end_time=end, available=booked < capacity))
        return slots

    async def _get_active_service(self, shop_id: UUID, service_id: UUID) -> ReservationService:
        result = await self.db.execute(
            select(ReservationService).where(
                ReservationService.id == service_id,
                ReservationService.shop_id == shop_id,
                ReservationService.is_active == True,
            )
        )
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError("Service not found or inactive")
        return service

    async def _get_candidates(
        self, shop_id: UUID, service_id: UUID, resource_id: Optional[UUID]
    ) -> List[Tuple[ResourceServiceLink, ReservationResource]]:
        query = (
            select(ResourceServiceLink, ReservationResource)
            .join(ReservationResource, ResourceServiceLink.resource_id == ReservationResource.id)
            .where(
                ResourceServiceLink.service_id == service_id,
                ResourceServiceLink.is_active == True,
                ReservationResource.shop_id == shop_id,
                ReservationResource.is_active == True,
            )
            .order_by(ReservationResource.sort_order, ReservationResource.name)
        )
        if resource_id:
            query = query.where(ResourceServiceLink.resource_id == resource_id)

        result = await self.db.execute(query)
        return [tuple(row) for row in result.all()]

    async def _load_rules(self, shop_id: UUID) -> List[AvailabilityRule]:
        result = await self.db.execute(
            select(AvailabilityRule)
            .where(AvailabilityRule.shop_id == shop_id, AvailabilityRule.is_active == True)
            .order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time)
        )
        return list(result.scalars().all())

    async def _load_blocks(self, shop_id: UUID, start: datetime, end: datetime) -> List[ReservationBlock]:
        result = await self.db.execute(
            select(ReservationBlock).where(
                ReservationBlock.shop_id == shop_id,
                ReservationBlock.start_datetime < end,
                ReservationBlock.end_datetime > start,
            )
        )
        return list(result.scalars().all())

    async def _load_reservations(self, shop_id: UUID, start: datetime, end: datetime) -> List[Reservation]:
        result = await self.db.execute(
            select(Reservation).where(
                Reservation.shop_id == shop_id,
                Reservation.status.in_(ACTIVE_STATUSES),
                Reservation.start_time < end,
                Reservation.end_time > start,
            )
        )
        return list(result.scalars().all())
