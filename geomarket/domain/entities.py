"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Store``: enforces valid approval transitions
  (PENDING -> ACCEPTED | DECLINED, ACCEPTED -> DECLINED,
  DECLINED -> PENDING | ACCEPTED).
- ``Product.discount_price`` derives the offer price from the percentage.
- Locations are parsed once into a ``Location`` when the entity is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .codec import GeoPoint, Location, Unparseable
from .enums import STORE_TRANSITIONS, StoreStatus, UserType


class InvalidStateTransition(Exception):
    """Raised when a store status change violates the state machine."""


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Store:
    id: Optional[int] = None
    owner_id: int = 0
    name: str = ""
    address: str = ""
    description: str = ""
    location: Location = field(default_factory=Unparseable)
    status: StoreStatus = StoreStatus.PENDING

    @property
    def point(self) -> Optional[GeoPoint]:
        return self.location.point

    @property
    def is_visible(self) -> bool:
        """Only accepted stores are shown to clients."""
        return self.status == StoreStatus.ACCEPTED

    def transition_to(self, new_status: StoreStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = STORE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status


@dataclass
class User:
    id: Optional[int] = None
    name: str = ""
    email: str = ""
    type: UserType = UserType.CLIENT
    address: str = ""
    location: Location = field(default_factory=Unparseable)
    radius_km: float = 5.0

    @property
    def point(self) -> Optional[GeoPoint]:
        return self.location.point

    @property
    def sees_all_stores(self) -> bool:
        """Admins review every store regardless of distance."""
        return self.type == UserType.ADMIN


@dataclass
class Product:
    id: Optional[int] = None
    store_id: int = 0
    name: str = ""
    price: float = 0.0
    discount: float = 0.0  # percentage
    description: str = ""
    image: str = ""

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError("price must be >= 0")
        if not 0 <= self.discount < 100:
            raise ValueError("discount must be in [0, 100)")

    @property
    def has_discount(self) -> bool:
        return self.discount > 0

    @property
    def discount_price(self) -> Optional[float]:
        if not self.has_discount:
            return None
        return round(self.price * (1 - self.discount / 100), 2)
