"""Tests for the reservation lifecycle"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import NOW, MONDAY, local
from shop_reservations.actors import ShopOwner, Customer, Guest
from shop_reservations.errors import NotFoundError, ValidationError, ConflictError, InvalidStateError, StoreError
from shop_reservations.models import ReservationResource
from shop_reservations.schemas.catalog import ResourceServiceInput
from shop_reservations.schemas.reservation import ReservationCreate, ReservationUpdate
from shop_reservations.schemas.settings import ReservationSettingsUpdate
from shop_reservations.services.catalog_service import CatalogService
from shop_reservations.services.reservation_service import ReservationService
from shop_reservations.services.settings_service import SettingsService


@pytest.fixture
def reservations(test_db, clock):
    return ReservationService(test_db, clock=clock)


@pytest.fixture
def customer(app_user):
    return Customer(app_user_id=app_user.id)


@pytest.fixture
def guest():
    return Guest(name="Marko", email="Marko@Example.com")


def booking(service, start, **kwargs):
    return ReservationCreate(service_id=service.id, start_time=start, **kwargs)


# ============================================
# Create
# ============================================


@pytest.mark.asyncio
async def test_booking_window_is_enforced(reservations, shop, haircut, barbers, customer):
    ana, _ = barbers

    with pytest.raises(ValidationError, match="at least 1 hours"):
        await reservations.create_reservation(
            shop.id, booking(haircut, NOW + timedelta(minutes=30), resource_id=ana.id), customer
        )
    with pytest.raises(ValidationError, match="up to 30 days"):
        await reservations.create_reservation(
            shop.id, booking(haircut, NOW + timedelta(days=31), resource_id=ana.id), customer
        )


@pytest.mark.asyncio
async def test_second_booking_of_same_window_conflicts(reservations, shop, haircut, barbers, customer, guest):
    ana, _ = barbers
    start = local(MONDAY, "09:00")

    first = await reservations.create_reservation(shop.id, booking(haircut, start, resource_id=ana.id), customer)

    assert first.status == "confirmed"
    assert first.confirmed_at == NOW
    assert first.end_time == start + timedelta(minutes=60)
    assert first.price == Decimal("20.00")
    assert first.service.name == "Haircut"
    assert first.resource.name == "Ana"

    with pytest.raises(ConflictError, match="no longer available"):
        await reservations.create_reservation(
            shop.id, booking(haircut, start + timedelta(minutes=30), resource_id=ana.id), guest
        )


@pytest.mark.asyncio
async def test_touching_windows_do_not_conflict(reservations, shop, haircut, barbers, admin):
    ana, _ = barbers

    await reservations.create_reservation(
        shop.id, booking(haircut, local(MONDAY, "09:00"), resource_id=ana.id, guest_name="First"), admin
    )
    second = await reservations.create_reservation(
        shop.id, booking(haircut, local(MONDAY, "10:00"), resource_id=ana.id, guest_name="Second"), admin
    )

    assert second.start_time == local(MONDAY, "10:00")
    assert not await reservations.check_conflict(shop.id, ana.id, local(MONDAY, "08:00"), local(MONDAY, "09:00"))
    assert await reservations.check_conflict(shop.id, ana.id, local(MONDAY, "09:59"), local(MONDAY, "10:01"))
    assert not await reservations.check_conflict(shop.id, None, local(MONDAY, "09:00"), local(MONDAY, "10:00"))


@pytest.mark.asyncio
async def test_any_staff_assigns_first_free_resource(reservations, shop, haircut, barbers, admin):
    start = local(MONDAY, "09:00")

    first = await reservations.create_reservation(shop.id, booking(haircut, start, guest_name="One"), admin)
    second = await reservations.create_reservation(shop.id, booking(haircut, start, guest_name="Two"), admin)

    assert first.resource.name == "Ana"
    assert second.resource.name == "Bojan"

    with pytest.raises(ConflictError):
        await reservations.create_reservation(shop.id, booking(haircut, start, guest_name="Three"), admin)


@pytest.mark.asyncio
async def test_resource_required_when_any_staff_is_off(test_db, reservations, shop, haircut, barbers, customer):
    await SettingsService(test_db).update_shop_settings(shop.id, ReservationSettingsUpdate(allow_any_staff=False))

    with pytest.raises(ValidationError, match="resource must be selected"):
        await reservations.create_reservation(shop.id, booking(haircut, local(MONDAY, "09:00")), customer)


@pytest.mark.asyncio
async def test_resource_must_provide_service(test_db, reservations, shop, haircut, barbers, customer):
    cleo = ReservationResource(id=uuid4(), shop_id=shop.id, name="Cleo", type="staff")
    test_db.add(cleo)
    await test_db.commit()

    with pytest.raises(ValidationError, match="cannot provide"):
        await reservations.create_reservation(
            shop.id, booking(haircut, local(MONDAY, "09:00"), resource_id=cleo.id), customer
        )

    # The link is checked before the booking window
    with pytest.raises(ValidationError, match="cannot provide"):
        await reservations.create_reservation(
            shop.id, booking(haircut, NOW + timedelta(minutes=30), resource_id=cleo.id), customer
        )


@pytest.mark.asyncio
async def test_link_overrides_snapshot_price_and_duration(test_db, reservations, shop, haircut, barbers, customer):
    ana, _ = barbers
    await CatalogService(test_db).set_resource_services(ana.id, shop.id, [
        ResourceServiceInput(service_id=haircut.id, price_override=Decimal("25.00"), duration_override=45),
    ])

    reservation = await reservations.create_reservation(
        shop.id, booking(haircut, local(MONDAY, "09:00"), resource_id=ana.id), customer
    )

    assert reservation.price == Decimal("25.00")
    assert reservation.end_time == local(MONDAY, "09:45")

    # Later price changes leave the snapshot alone
    haircut.price = Decimal("30.00")
    await test_db.commit()
    assert (await reservations.get_reservation(reservation.id)).price == Decimal("25.00")


@pytest.mark.asyncio
async def test_shop_level_service_is_not_conflict_checked(reservations, shop, shared_table, customer, guest):
    start = local(MONDAY, "09:00")

    first = await reservations.create_reservation(shop.id, booking(shared_table, start, party_size=3), customer)
    second = await reservations.create_reservation(shop.id, booking(shared_table, start, party_size=3), guest)

    assert first.resource_id is None
    assert second.resource_id is None
    assert second.end_time == start + timedelta(minutes=60)


def failing_commit(constraint):
    async def commit():
        raise IntegrityError(
            "INSERT INTO reservations ...", {}, Exception(f'violates exclusion constraint "{constraint}"')
        )
    return commit


def rollback_spy(test_db):
    calls = []
    rollback = test_db.rollback

    async def spy():
        calls.append(True)
        await rollback()
    return calls, spy


@pytest.mark.asyncio
async def test_overlap_constraint_surfaces_as_conflict(monkeypatch, test_db, reservations, shop, shared_table, admin):
    shop_id, service_id = shop.id, shared_table.id
    rollbacks, spy = rollback_spy(test_db)
    monkeypatch.setattr(test_db, "commit", failing_commit("excl_reservations_resource_overlap"))
    monkeypatch.setattr(test_db, "rollback", spy)

    with pytest.raises(ConflictError, match="no longer available"):
        await reservations.create_reservation(
            shop_id,
            ReservationCreate(service_id=service_id, start_time=local(MONDAY, "09:00"), guest_name="Walk-in"),
            admin,
        )

    assert rollbacks


@pytest.mark.asyncio
async def test_other_integrity_errors_are_store_errors(monkeypatch, test_db, reservations, shop, shared_table, admin):
    shop_id, service_id = shop.id, shared_table.id
    rollbacks, spy = rollback_spy(test_db)
    monkeypatch.setattr(test_db, "commit", failing_commit("reservations_pkey"))
    monkeypatch.setattr(test_db, "rollback", spy)

    with pytest.raises(StoreError):
        await reservations.create_reservation(
            shop_id,
            ReservationCreate(service_id=service_id, start_time=local(MONDAY, "09:00"), guest_name="Walk-in"),
            admin,
        )

    assert rollbacks


@pytest.mark.asyncio
async def test_identity_columns(reservations, shop, shared_table, customer, guest, app_user, admin):
    start = local(MONDAY, "09:00")

    mine = await reservations.create_reservation(shop.id, booking(shared_table, start), customer)
    theirs = await reservations.create_reservation(shop.id, booking(shared_table, start), guest)
    on_behalf = await reservations.create_reservation(
        shop.id, booking(shared_table, start, app_user_id=app_user.id), admin
    )

    assert mine.app_user_id == app_user.id and mine.guest_name is None
    assert theirs.app_user_id is None
    assert (theirs.guest_name, theirs.guest_email) == ("Marko", "Marko@Example.com")
    assert on_behalf.app_user_id == app_user.id


@pytest.mark.asyncio
async def test_guest_needs_contact(reservations, shop, shared_table):
    with pytest.raises(ValidationError, match="phone or email"):
        await reservations.create_reservation(
            shop.id, booking(shared_table, local(MONDAY, "09:00")), Guest(name="Nobody")
        )


@pytest.mark.asyncio
async def test_staff_booking_needs_a_customer(reservations, shop, shared_table, admin):
    with pytest.raises(ValidationError):
        await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), admin)


@pytest.mark.asyncio
async def test_blocked_customer_is_refused(test_db, reservations, shop, shared_table, app_user, customer):
    app_user.reservation_blocked_until = NOW + timedelta(days=14)
    await test_db.commit()

    with pytest.raises(ValidationError, match="blocked until"):
        await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), customer)


@pytest.mark.asyncio
async def test_disabled_shop_refuses_customers_but_not_staff(test_db, reservations, shop, shared_table, guest, admin):
    shop.reservations_enabled = False
    await test_db.commit()

    with pytest.raises(NotFoundError, match="not enabled"):
        await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), guest)

    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00"), guest_name="Phone booking"), admin
    )
    assert reservation.guest_name == "Phone booking"


@pytest.mark.asyncio
async def test_owner_cannot_book_for_another_shop(reservations, shop, other_shop, shared_table):
    outsider = ShopOwner(shop_id=other_shop.id, user_id=uuid4())

    with pytest.raises(NotFoundError):
        await reservations.create_reservation(
            shop.id, booking(shared_table, local(MONDAY, "09:00"), guest_name="Walk-in"), outsider
        )


@pytest.mark.asyncio
async def test_inactive_service_cannot_be_booked(test_db, reservations, shop, shared_table, customer):
    shared_table.is_active = False
    await test_db.commit()

    with pytest.raises(NotFoundError, match="Service"):
        await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), customer)


# ============================================
# Transitions
# ============================================


@pytest.mark.asyncio
async def test_manual_confirmation(test_db, reservations, shop, haircut, barbers, customer, admin):
    ana, _ = barbers
    await SettingsService(test_db).update_shop_settings(
        shop.id, ReservationSettingsUpdate(confirmation_mode="manual")
    )

    pending = await reservations.create_reservation(
        shop.id, booking(haircut, local(MONDAY, "09:00"), resource_id=ana.id), customer
    )
    assert pending.status == "pending"
    assert pending.confirmation_mode == "manual"
    assert pending.confirmed_at is None

    confirmed = await reservations.confirm_reservation(pending.id, shop.id, admin)
    assert confirmed.status == "confirmed"
    assert confirmed.confirmed_at == NOW
    assert confirmed.confirmed_by == str(admin.user_id)

    with pytest.raises(NotFoundError, match="not pending"):
        await reservations.confirm_reservation(pending.id, shop.id, admin)
    assert (await reservations.get_reservation(pending.id)).confirmed_by == str(admin.user_id)


@pytest.mark.asyncio
async def test_transitions_are_scoped_to_shop(reservations, shop, other_shop, shared_table, customer, admin):
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), customer
    )

    with pytest.raises(NotFoundError):
        await reservations.complete_reservation(reservation.id, other_shop.id, admin)
    with pytest.raises(NotFoundError):
        await reservations.get_reservation(reservation.id, other_shop.id)


@pytest.mark.asyncio
async def test_complete_only_from_confirmed(test_db, reservations, shop, shared_table, customer, admin):
    await SettingsService(test_db).update_shop_settings(
        shop.id, ReservationSettingsUpdate(confirmation_mode="manual")
    )
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), customer
    )

    with pytest.raises(NotFoundError, match="not confirmed"):
        await reservations.complete_reservation(reservation.id, shop.id, admin)

    await reservations.confirm_reservation(reservation.id, shop.id, admin)
    completed = await reservations.complete_reservation(reservation.id, shop.id, admin)
    assert completed.status == "completed"

    with pytest.raises(InvalidStateError):
        await reservations.cancel_reservation(reservation.id, admin, shop_id=shop.id)


@pytest.mark.asyncio
async def test_customer_cancellation_deadline(test_db, shop, shared_table, customer, admin):
    start = local(MONDAY, "09:00")
    reservation = await ReservationService(test_db, clock=lambda: NOW).create_reservation(
        shop.id, booking(shared_table, start), customer
    )
    two_hours_before = ReservationService(test_db, clock=lambda: start - timedelta(hours=2))

    with pytest.raises(ValidationError, match="at least 24 hours"):
        await two_hours_before.cancel_reservation(reservation.id, customer)

    # Staff are not held to the deadline
    cancelled = await two_hours_before.cancel_reservation(reservation.id, admin, reason="Sick")
    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "Sick"
    assert cancelled.cancelled_by == str(admin.user_id)

    with pytest.raises(InvalidStateError, match="already cancelled"):
        await two_hours_before.cancel_reservation(reservation.id, admin)


@pytest.mark.asyncio
async def test_customer_cancels_own_reservation_only(test_db, reservations, shop, shared_table, customer, guest):
    mine = await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), customer)
    theirs = await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "10:00")), guest)

    with pytest.raises(NotFoundError):
        await reservations.cancel_reservation(theirs.id, customer)

    cancelled = await reservations.cancel_reservation(mine.id, customer, reason="Changed plans")
    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == str(customer.app_user_id)


@pytest.mark.asyncio
async def test_guest_cancels_by_contact(reservations, shop, other_shop, shared_table, guest):
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), guest
    )

    with pytest.raises(NotFoundError):
        await reservations.cancel_reservation(reservation.id, Guest(email="someone@else.com"), shop_id=shop.id)
    with pytest.raises(NotFoundError):
        await reservations.cancel_reservation(reservation.id, Guest(email="marko@example.com"), shop_id=other_shop.id)

    cancelled = await reservations.cancel_reservation(
        reservation.id, Guest(email="marko@example.com"), shop_id=shop.id
    )
    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == "guest"


@pytest.mark.asyncio
async def test_cancelled_window_can_be_rebooked(reservations, shop, haircut, barbers, customer, guest):
    ana, _ = barbers
    start = local(MONDAY, "09:00")
    first = await reservations.create_reservation(shop.id, booking(haircut, start, resource_id=ana.id), customer)

    await reservations.cancel_reservation(first.id, customer)
    again = await reservations.create_reservation(shop.id, booking(haircut, start, resource_id=ana.id), guest)

    assert again.status == "confirmed"


@pytest.mark.asyncio
async def test_no_show_counts_once(test_db, reservations, shop, shared_table, app_user, customer, admin):
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), customer
    )

    marked = await reservations.mark_no_show(reservation.id, shop.id, admin)
    assert marked.status == "no_show"
    assert marked.no_show_marked_at == NOW

    with pytest.raises(InvalidStateError):
        await reservations.mark_no_show(reservation.id, shop.id, admin)
    with pytest.raises(InvalidStateError):
        await reservations.cancel_reservation(reservation.id, admin, shop_id=shop.id)

    await test_db.refresh(app_user)
    assert app_user.reservation_no_show_count == 1


@pytest.mark.asyncio
async def test_guest_no_show_has_no_counter(reservations, shop, shared_table, guest, admin):
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), guest
    )

    marked = await reservations.mark_no_show(reservation.id, shop.id, admin)

    assert marked.status == "no_show"
    assert marked.app_user_id is None


# ============================================
# Update
# ============================================


@pytest.mark.asyncio
async def test_reschedule_checks_conflicts_and_recomputes_end(
    test_db, reservations, shop, haircut, barbers, admin
):
    ana, bojan = barbers
    await CatalogService(test_db).set_resource_services(bojan.id, shop.id, [
        ResourceServiceInput(service_id=haircut.id, duration_override=90),
    ])
    first = await reservations.create_reservation(
        shop.id, booking(haircut, local(MONDAY, "09:00"), resource_id=ana.id, guest_name="First"), admin
    )
    second = await reservations.create_reservation(
        shop.id, booking(haircut, local(MONDAY, "10:00"), resource_id=ana.id, guest_name="Second"), admin
    )

    with pytest.raises(ConflictError):
        await reservations.update_reservation(second.id, shop.id, ReservationUpdate(start_time=local(MONDAY, "09:30")))

    # Its own window never conflicts with itself
    nudged = await reservations.update_reservation(
        first.id, shop.id, ReservationUpdate(start_time=local(MONDAY, "08:30"))
    )
    assert nudged.end_time == local(MONDAY, "09:30")

    moved = await reservations.update_reservation(
        second.id, shop.id, ReservationUpdate(start_time=local(MONDAY, "09:30"), resource_id=bojan.id)
    )
    assert moved.resource_id == bojan.id
    assert moved.end_time == local(MONDAY, "11:00")


@pytest.mark.asyncio
async def test_update_notes_and_party_size(reservations, shop, shared_table, customer):
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), customer
    )

    updated = await reservations.update_reservation(
        reservation.id, shop.id, ReservationUpdate(party_size=3, internal_notes="Window seat")
    )

    assert updated.party_size == 3
    assert updated.internal_notes == "Window seat"
    assert updated.start_time == local(MONDAY, "09:00")


@pytest.mark.asyncio
async def test_cannot_reschedule_inactive_reservation(reservations, shop, shared_table, customer):
    reservation = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "09:00")), customer
    )
    await reservations.cancel_reservation(reservation.id, customer)

    with pytest.raises(InvalidStateError):
        await reservations.update_reservation(
            reservation.id, shop.id, ReservationUpdate(start_time=local(MONDAY, "10:00"))
        )


# ============================================
# Listing and stats
# ============================================


@pytest.mark.asyncio
async def test_list_reservations_pages_and_filters(reservations, shop, shared_table, customer, admin):
    ids = []
    for day_offset in range(3):
        reservation = await reservations.create_reservation(
            shop.id, booking(shared_table, local(MONDAY + timedelta(days=day_offset), "09:00")), customer
        )
        ids.append(reservation.id)
    await reservations.cancel_reservation(ids[2], admin, shop_id=shop.id)

    page, total = await reservations.list_reservations(shop.id, limit=2)
    assert total == 3
    assert [r.id for r in page] == ids[:2]

    page, total = await reservations.list_reservations(shop.id, limit=2, offset=2)
    assert [r.id for r in page] == ids[2:]

    cancelled, total = await reservations.list_reservations(shop.id, status=["cancelled"])
    assert total == 1 and cancelled[0].id == ids[2]

    first_day, total = await reservations.list_reservations(shop.id, date_from=MONDAY, date_to=MONDAY)
    assert [r.id for r in first_day] == ids[:1]


@pytest.mark.asyncio
async def test_list_user_reservations(reservations, shop, shared_table, app_user, customer, guest):
    mine = await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), customer)
    await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), guest)
    cancelled = await reservations.create_reservation(
        shop.id, booking(shared_table, local(MONDAY, "10:00")), customer
    )
    await reservations.cancel_reservation(cancelled.id, customer)

    _, total = await reservations.list_user_reservations(app_user.id)
    upcoming, _ = await reservations.list_user_reservations(app_user.id, upcoming_only=True)

    assert total == 2
    assert [r.id for r in upcoming] == [mine.id]


@pytest.mark.asyncio
async def test_stats_report_every_status(reservations, shop, shared_table, customer, admin):
    kept = await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "09:00")), customer)
    dropped = await reservations.create_reservation(shop.id, booking(shared_table, local(MONDAY, "10:00")), customer)
    await reservations.cancel_reservation(dropped.id, admin, shop_id=shop.id)

    stats = await reservations.get_reservation_stats(shop.id)

    assert stats == {
        "pending": 0,
        "confirmed": 1,
        "cancelled": 1,
        "completed": 0,
        "no_show": 0,
        "total": 2,
    }
    assert kept.status == "confirmed"

    next_week = await reservations.get_reservation_stats(shop.id, date_from=MONDAY + timedelta(days=1))
    assert next_week["total"] == 0
