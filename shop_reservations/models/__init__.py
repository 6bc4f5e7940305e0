"""Database models"""

from shop_reservations.models.shop import Shop
from shop_reservations.models.app_user import AppUser
from shop_reservations.models.user import User
from shop_reservations.models.catalog import ReservationService, ReservationResource, ResourceServiceLink
from shop_reservations.models.schedule import AvailabilityRule, ReservationBlock
from shop_reservations.models.reservation import Reservation

__all__ = [
    "Shop",
    "AppUser",
    "User",
    "ReservationService",
    "ReservationResource",
    "ResourceServiceLink",
    "AvailabilityRule",
    "ReservationBlock",
    "Reservation",
]
