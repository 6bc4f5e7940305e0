"""Weekly availability rules and blocks"""

from datetime import date, datetime
from typing import List, Optional, Sequence, Union
from uuid import UUID

from pydantic import ValidationError as SchemaError
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from shop_reservations.errors import NotFoundError, ValidationError, translate_store_errors
from shop_reservations.models.catalog import ReservationResource
from shop_reservations.models.schedule import AvailabilityRule, ReservationBlock
from shop_reservations.schemas.schedule import AvailabilityRuleInput, BlockCreate
from shop_reservations.services.time_slots import time_to_minutes, to_utc_naive, local_day_bounds

logger = structlog.get_logger()

# Passed as resource_id to mean "every scope"; None means shop-level only
ANY_SCOPE = object()


def _scope_filter(column, resource_id):
    if resource_id is None:
        return column.is_(None)
    return column == resource_id


def _as_rule(rule: Union[AvailabilityRuleInput, dict]) -> AvailabilityRuleInput:
    if isinstance(rule, AvailabilityRuleInput):
        parsed = rule
    else:
        try:
            parsed = AvailabilityRuleInput.model_validate(rule)
        except SchemaError as exc:
            raise ValidationError(f"Invalid availability rule: {exc.errors()[0]['msg']}") from exc

    if time_to_minutes(parsed.start_time) >= time_to_minutes(parsed.end_time):
        raise ValidationError(
            f"Availability start_time {parsed.start_time} must be before end_time {parsed.end_time}"
        )
    return parsed


def _range_start(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return to_utc_naive(value)
    return local_day_bounds(value)[0]


def _range_end(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return to_utc_naive(value)
    return local_day_bounds(value)[1]


class ScheduleService:
    """CRUD for availability rules and blocks, scoped by shop and optionally resource"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_resource(self, shop_id: UUID, resource_id: UUID) -> None:
        result = await self.db.execute(
            select(ReservationResource.id).where(
                ReservationResource.id == resource_id,
                ReservationResource.shop_id == shop_id,
            )
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Resource not found")

    @translate_store_errors
    async def set_availability(
        self,
        shop_id: UUID,
        resource_id: Optional[UUID],
        rules: Sequence[Union[AvailabilityRuleInput, dict]],
    ) -> List[AvailabilityRule]:
        """Replace every rule of the scope with ``rules`` in one transaction"""
        if not rules:
            raise ValidationError("At least one availability rule is required")

        parsed = [_as_rule(rule) for rule in rules]

        if resource_id is not None:
            await self._ensure_resource(shop_id, resource_id)

        await self.db.execute(
            delete(AvailabilityRule).where(
                AvailabilityRule.shop_id == shop_id,
                _scope_filter(AvailabilityRule.resource_id, resource_id),
            )
        )

        rows = [
            AvailabilityRule(
                shop_id=shop_id,
                resource_id=resource_id,
                day_of_week=rule.day_of_week,
                start_time=rule.start_time,
                end_time=rule.end_time,
                is_active=True,
            )
            for rule in parsed
        ]
        self.db.add_all(rows)
        await self.db.commit()

        logger.info(
            "Availability replaced",
            shop_id=str(shop_id),
            resource_id=str(resource_id) if resource_id else None,
            rule_count=len(rows),
        )
        return sorted(rows, key=lambda r: (r.day_of_week, r.start_time))

    @translate_store_errors
    async def get_availability_schedule(
        self, shop_id: UUID, resource_id=ANY_SCOPE
    ) -> List[AvailabilityRule]:
        """Active rules ordered by day then start time"""
        query = (
            select(AvailabilityRule)
            .where(AvailabilityRule.shop_id == shop_id, AvailabilityRule.is_active == True)
            .order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time)
        )
        if resource_id is not ANY_SCOPE:
            query = query.where(_scope_filter(AvailabilityRule.resource_id, resource_id))

        result = await self.db.execute(query)
        return list(result.scalars().all())

    @translate_store_errors
    async def create_block(self, shop_id: UUID, data: BlockCreate) -> ReservationBlock:
        start = to_utc_naive(data.start_datetime)
        end = to_utc_naive(data.end_datetime)
        if start >= end:
            raise ValidationError("Block start_datetime must be before end_datetime")

        if data.resource_id is not None:
            await self._ensure_resource(shop_id, data.resource_id)

        block = ReservationBlock(
            shop_id=shop_id,
            resource_id=data.resource_id,
            start_datetime=start,
            end_datetime=end,
            reason=data.reason,
            block_type=data.block_type.value,
        )
        self.db.add(block)
        await self.db.commit()
        await self.db.refresh(block)

        logger.info("Block created", shop_id=str(shop_id), block_id=str(block.id), block_type=block.block_type)
        return block

    @translate_store_errors
    async def list_blocks(
        self,
        shop_id: UUID,
        resource_id=ANY_SCOPE,
        from_date: Optional[Union[date, datetime]] = None,
        to_date: Optional[Union[date, datetime]] = None,
    ) -> List[ReservationBlock]:
        """Blocks overlapping [from_date, to_date]; dates cover whole shop-local days"""
        query = (
            select(ReservationBlock)
            .where(ReservationBlock.shop_id == shop_id)
            .order_by(ReservationBlock.start_datetime.asc())
        )
        if resource_id is not ANY_SCOPE:
            query = query.where(_scope_filter(ReservationBlock.resource_id, resource_id))
        if from_date is not None:
            query = query.where(ReservationBlock.end_datetime >= _range_start(from_date))
        if isinstance(to_date, datetime):
            query = query.where(ReservationBlock.start_datetime <= _range_end(to_date))
        elif to_date is not None:
            # Next local midnight belongs to the following day
            query = query.where(ReservationBlock.start_datetime < _range_end(to_date))

        result = await self.db.execute(query)
        return list(result.scalars().all())

    @translate_store_errors
    async def delete_block(self, block_id: UUID, shop_id: UUID) -> None:
        result = await self.db.execute(
            delete(ReservationBlock).where(
                ReservationBlock.id == block_id,
                ReservationBlock.shop_id == shop_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError("Block not found")
        await self.db.commit()
        logger.info("Block deleted", shop_id=str(shop_id), block_id=str(block_id))
