"""Caller identities passed explicitly into the reservation lifecycle"""

from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID


@dataclass(frozen=True)
class Admin:
    """Platform administrator, unrestricted"""
    user_id: UUID


@dataclass(frozen=True)
class ShopOwner:
    """Shop administrator scoped to one shop"""
    shop_id: UUID
    user_id: UUID


@dataclass(frozen=True)
class Customer:
    """Authenticated app user"""
    app_user_id: UUID


@dataclass(frozen=True)
class Guest:
    """Unauthenticated booker identified by contact details"""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    def has_contact(self) -> bool:
        return bool(self.phone or self.email)

    def matches(self, phone: Optional[str], email: Optional[str]) -> bool:
        """True when either contact detail matches (email case-insensitive)"""
        email_match = bool(self.email and email and self.email.lower() == email.lower())
        phone_match = bool(self.phone and phone and self.phone == phone)
        return email_match or phone_match


Actor = Union[Admin, ShopOwner, Customer, Guest]


def is_shop_admin(actor: Actor) -> bool:
    """Admins and shop owners bypass customer-facing policy checks"""
    return isinstance(actor, (Admin, ShopOwner))


def actor_label(actor: Actor) -> str:
    """Value stamped into confirmed_by / cancelled_by audit fields"""
    if isinstance(actor, (Admin, ShopOwner)):
        return str(actor.user_id)
    if isinstance(actor, Customer):
        return str(actor.app_user_id)
    return "guest"
