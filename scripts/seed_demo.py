#!/usr/bin/env python3
"""
Seed script to create a demo barbershop with services, staff and schedules
"""

import asyncio
import uuid
from decimal import Decimal

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def seed_demo_data():
    """Seed demo data for development"""
    from shop_reservations.database import SessionLocal, engine, Base
    from shop_reservations.models import (
        Shop,
        User,
        AppUser,
        ReservationService,
        ReservationResource,
        ResourceServiceLink,
        AvailabilityRule,
    )
    from shop_reservations.models.user import UserRole

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo shop already exists
        from sqlalchemy import select
        result = await db.execute(
            select(Shop).where(Shop.name == "Brivnica Luka")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo shop...")

        shop = Shop(
            id=uuid.uuid4(),
            name="Brivnica Luka",
            reservations_enabled=True,
            reservation_settings={
                "confirmation_mode": "auto",
                "cancellation_hours": 12,
                "max_advance_days": 30,
                "min_advance_hours": 1,
                "allow_any_staff": True,
                "slot_duration_minutes": 15,
            },
        )
        db.add(shop)
        await db.flush()

        print(f"Created shop: {shop.name} (ID: {shop.id})")

        # Create super admin user
        admin_user = User(
            id=uuid.uuid4(),
            email="admin@shop-reservations.dev",
            hashed_password=pwd_context.hash("admin123"),
            full_name="System Admin",
            role=UserRole.SUPER_ADMIN,
            is_active=True,
        )
        db.add(admin_user)

        # Create shop owner user
        owner = User(
            id=uuid.uuid4(),
            shop_id=shop.id,
            email="luka@brivnica-luka.si",
            hashed_password=pwd_context.hash("luka123"),
            full_name="Luka Novak",
            role=UserRole.SHOP_OWNER,
            is_active=True,
        )
        db.add(owner)

        customer = AppUser(
            first_name="Ana",
            last_name="Kranjc",
            email="ana@example.com",
            phone_number="+38640123456",
        )
        db.add(customer)

        print("Creating services and staff...")

        services = [
            {"name": "Haircut", "duration_minutes": 30, "price": Decimal("18.00")},
            {"name": "Beard trim", "duration_minutes": 15, "price": Decimal("10.00")},
            {"name": "Haircut & beard", "duration_minutes": 45, "price": Decimal("25.00")},
        ]
        service_rows = []
        for index, service_data in enumerate(services):
            service = ReservationService(shop_id=shop.id, sort_order=index, **service_data)
            db.add(service)
            service_rows.append(service)

        # Walk-in style slot without a barber, four chairs
        waiting_chairs = ReservationService(
            shop_id=shop.id,
            name="Express wash",
            type="slot",
            duration_minutes=15,
            price=Decimal("6.00"),
            capacity=4,
            requires_resource=False,
            sort_order=len(services),
        )
        db.add(waiting_chairs)

        staff = [
            {"name": "Luka", "specialties": ["fades", "classic cuts"]},
            {"name": "Maja", "specialties": ["beards", "long hair"]},
        ]
        staff_rows = []
        for index, staff_data in enumerate(staff):
            resource = ReservationResource(shop_id=shop.id, type="staff", sort_order=index, **staff_data)
            db.add(resource)
            staff_rows.append(resource)
        await db.flush()

        for resource in staff_rows:
            for service in service_rows:
                db.add(ResourceServiceLink(resource_id=resource.id, service_id=service.id))

        # Senior barber charges more for the combo
        combo_link = await db.execute(
            select(ResourceServiceLink).where(
                ResourceServiceLink.resource_id == staff_rows[0].id,
                ResourceServiceLink.service_id == service_rows[2].id,
            )
        )
        link = combo_link.scalar_one_or_none()
        if link:
            link.price_override = Decimal("28.00")

        print("Creating schedules...")

        # Shop hours: Tue-Fri 08:00-19:00, Sat 08:00-13:00
        for day in (2, 3, 4, 5):
            db.add(AvailabilityRule(shop_id=shop.id, day_of_week=day, start_time="08:00", end_time="19:00"))
        db.add(AvailabilityRule(shop_id=shop.id, day_of_week=6, start_time="08:00", end_time="13:00"))

        # Maja works split shifts on Wednesday
        db.add(AvailabilityRule(
            shop_id=shop.id, resource_id=staff_rows[1].id, day_of_week=3, start_time="08:00", end_time="12:00"
        ))
        db.add(AvailabilityRule(
            shop_id=shop.id, resource_id=staff_rows[1].id, day_of_week=3, start_time="14:00", end_time="19:00"
        ))

        await db.commit()

        print(f"""
Demo data created successfully!

Shop: Brivnica Luka
  ID: {shop.id}

Users:
  Super Admin:
    Email: admin@shop-reservations.dev
    Password: admin123

  Shop Owner:
    Email: luka@brivnica-luka.si
    Password: luka123

Services: {len(services) + 1}, staff: {len(staff)}
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
