"""
Offer digests
=============

For every client, list the discounted products of accepted stores that lie
within that client's own radius of interest, nearest store first.  The
result is what the offers campaign hands to the external dispatcher.

Clients without a decodable home location get no digest; clients with
nothing nearby are skipped as well.

Complexity: O(U x S) distance computations for U clients and S stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .entities import Product, Store, User
from .enums import UserType
from .radius import round_km, sort_by_distance, within_radius


@dataclass(frozen=True)
class StoreOffers:
    store: Store
    distance_km: float
    products: list[Product] = field(default_factory=list)


@dataclass(frozen=True)
class OfferDigest:
    user: User
    offers: list[StoreOffers]

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user.id,
            "email": self.user.email,
            "name": self.user.name,
            "stores": [
                {
                    "store_id": o.store.id,
                    "name": o.store.name,
                    "distance_km": round_km(o.distance_km),
                    "products": [
                        {
                            "product_id": p.id,
                            "name": p.name,
                            "price": p.price,
                            "discount": p.discount,
                            "discount_price": p.discount_price,
                        }
                        for p in o.products
                    ],
                }
                for o in self.offers
            ],
        }


def build_digests(
    users: Iterable[User],
    stores: Sequence[Store],
    products_by_store: Mapping[int, list[Product]],
) -> list[OfferDigest]:
    visible = [s for s in stores if s.is_visible and products_by_store.get(s.id)]
    digests: list[OfferDigest] = []
    for user in users:
        if user.type != UserType.CLIENT or user.point is None:
            continue
        matches = sort_by_distance(within_radius(user.point, user.radius_km, visible))
        offers = [
            StoreOffers(
                store=m.entity,
                distance_km=m.distance_km,
                products=[p for p in products_by_store[m.entity.id] if p.has_discount],
            )
            for m in matches
        ]
        offers = [o for o in offers if o.products]
        if offers:
            digests.append(OfferDigest(user=user, offers=offers))
    return digests
