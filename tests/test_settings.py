"""Tests for per-shop reservation settings"""

from uuid import uuid4

import pytest
from pydantic import ValidationError as SchemaError

from shop_reservations.constants import ConfirmationMode
from shop_reservations.errors import NotFoundError
from shop_reservations.schemas.settings import ReservationSettingsUpdate
from shop_reservations.services.settings_service import SettingsService, merge_settings


def test_merge_settings_fills_defaults():
    settings = merge_settings(None)

    assert settings.confirmation_mode == ConfirmationMode.AUTO
    assert settings.cancellation_hours == 24
    assert settings.max_advance_days == 30
    assert settings.min_advance_hours == 1
    assert settings.allow_any_staff is True
    assert settings.slot_duration_minutes == 30


def test_merge_settings_skips_invalid_and_unknown_keys():
    settings = merge_settings({
        "cancellation_hours": 999,
        "max_advance_days": 10,
        "legacy_flag": True,
    })

    assert settings.cancellation_hours == 24
    assert settings.max_advance_days == 10
    assert not hasattr(settings, "legacy_flag")


def test_update_schema_enforces_bounds():
    with pytest.raises(SchemaError):
        ReservationSettingsUpdate(slot_duration_minutes=3)
    with pytest.raises(SchemaError):
        ReservationSettingsUpdate(max_advance_days=400)


@pytest.mark.asyncio
async def test_update_merges_and_persists(test_db, shop):
    service = SettingsService(test_db)

    updated = await service.update_shop_settings(
        shop.id, ReservationSettingsUpdate(confirmation_mode="manual", cancellation_hours=12)
    )

    assert updated.confirmation_mode == ConfirmationMode.MANUAL
    assert updated.cancellation_hours == 12
    assert updated.max_advance_days == 30

    reloaded = await service.get_shop_settings(shop.id)
    assert reloaded == updated
    assert shop.reservation_settings["confirmation_mode"] == "manual"


@pytest.mark.asyncio
async def test_toggle_and_public_info(test_db, shop):
    service = SettingsService(test_db)

    info = await service.get_public_info(shop.id)
    assert info.shop_name == "Test Barbershop"
    assert info.cancellation_hours == 24

    assert await service.set_reservations_enabled(shop.id, False) is False
    assert await service.is_reservations_enabled(shop.id) is False

    with pytest.raises(NotFoundError, match="not enabled"):
        await service.get_public_info(shop.id)


@pytest.mark.asyncio
async def test_unknown_shop(test_db):
    with pytest.raises(NotFoundError):
        await SettingsService(test_db).get_shop_settings(uuid4())
