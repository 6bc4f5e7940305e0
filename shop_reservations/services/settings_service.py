"""Per-shop reservation settings"""

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import ValidationError as SchemaError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from shop_reservations.constants import DEFAULT_RESERVATION_SETTINGS
from shop_reservations.errors import NotFoundError, translate_store_errors
from shop_reservations.models.shop import Shop
from shop_reservations.schemas.settings import (
    ReservationSettings,
    ReservationSettingsUpdate,
    PublicShopInfo,
)

logger = structlog.get_logger()


def merge_settings(stored: Optional[Dict[str, Any]]) -> ReservationSettings:
    """Overlay stored values on the defaults.

    Unknown keys are ignored and a stored value that fails validation keeps
    the default for that key.
    """
    merged = dict(DEFAULT_RESERVATION_SETTINGS)
    for key, value in (stored or {}).items():
        if key not in ReservationSettings.model_fields:
            continue
        try:
            ReservationSettings(**{**merged, key: value})
        except SchemaError:
            logger.warning("Ignoring invalid stored reservation setting", key=key, value=value)
            continue
        merged[key] = value
    return ReservationSettings(**merged)


class SettingsService:
    """Reads and writes the reservation settings blob on the shop row"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_shop(self, shop_id: UUID) -> Shop:
        result = await self.db.execute(select(Shop).where(Shop.id == shop_id))
        shop = result.scalar_one_or_none()
        if not shop:
            raise NotFoundError("Shop not found")
        return shop

    @translate_store_errors
    async def get_shop_settings(self, shop_id: UUID) -> ReservationSettings:
        shop = await self._get_shop(shop_id)
        return merge_settings(shop.reservation_settings)

    @translate_store_errors
    async def update_shop_settings(
        self, shop_id: UUID, updates: ReservationSettingsUpdate
    ) -> ReservationSettings:
        """Merge a validated partial update into the stored settings"""
        shop = await self._get_shop(shop_id)
        current = merge_settings(shop.reservation_settings)
        new_settings = current.model_copy(update=updates.model_dump(exclude_unset=True, exclude_none=True))
        # Re-validate the merged result as a whole
        new_settings = ReservationSettings(**new_settings.model_dump())

        shop.reservation_settings = new_settings.model_dump(mode="json")
        await self.db.commit()

        logger.info("Reservation settings updated", shop_id=str(shop_id))
        return new_settings

    @translate_store_errors
    async def is_reservations_enabled(self, shop_id: UUID) -> bool:
        shop = await self._get_shop(shop_id)
        return bool(shop.reservations_enabled)

    @translate_store_errors
    async def set_reservations_enabled(self, shop_id: UUID, enabled: bool) -> bool:
        shop = await self._get_shop(shop_id)
        shop.reservations_enabled = enabled
        await self.db.commit()

        logger.info("Reservations toggled", shop_id=str(shop_id), enabled=enabled)
        return enabled

    @translate_store_errors
    async def get_public_info(self, shop_id: UUID) -> PublicShopInfo:
        """Booking policy shown to customers; hidden while reservations are off"""
        shop = await self._get_shop(shop_id)
        if not shop.reservations_enabled:
            raise NotFoundError("Reservations not enabled for this shop")

        settings = merge_settings(shop.reservation_settings)
        return PublicShopInfo(
            shop_id=str(shop.id),
            shop_name=shop.name,
            reservations_enabled=True,
            max_advance_days=settings.max_advance_days,
            min_advance_hours=settings.min_advance_hours,
            cancellation_hours=settings.cancellation_hours,
        )
