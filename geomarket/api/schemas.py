"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from geomarket.config import settings
from geomarket.domain.codec import encode
from geomarket.domain.entities import Product, Store, User
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.domain.radius import round_km


# ── Requests ──────────────────────────────────────────────────────────


class LocatedRequest(BaseModel):
    """A position given as lat/lng, as a WKT / WKB-hex string, or via ``address``."""

    address: Optional[str] = Field(None, max_length=255)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    coordinates: Optional[str] = Field(
        None,
        max_length=64,
        description="POINT(<lng> <lat>) or a 42-char WKB hex point.",
    )

    @model_validator(mode="after")
    def _lat_lng_together(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be given together")
        return self

    @property
    def has_location(self) -> bool:
        return self.lat is not None or bool(self.coordinates) or bool(self.address)


class UserCreateRequest(LocatedRequest):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    type: UserType = UserType.CLIENT
    radius_km: Optional[float] = Field(None, ge=0, le=settings.max_radius_km)


class UserUpdateRequest(LocatedRequest):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[str] = Field(
        None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$"
    )
    radius_km: Optional[float] = Field(None, ge=0, le=settings.max_radius_km)


class StoreCreateRequest(LocatedRequest):
    owner_id: int
    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field("", max_length=2000)


class StoreUpdateRequest(LocatedRequest):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)


class ProductCreateRequest(BaseModel):
    store_id: int
    name: str = Field(..., min_length=1, max_length=120)
    price: float = Field(..., ge=0)
    discount: float = Field(0.0, ge=0, lt=100, description="Percentage off.")
    description: str = Field("", max_length=2000)
    image: str = Field("", max_length=500)


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    price: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0, lt=100)
    description: Optional[str] = Field(None, max_length=2000)
    image: Optional[str] = Field(None, max_length=500)


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    type: UserType
    address: str = ""
    coordinates: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius_km: float

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        point = user.point
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            type=user.type,
            address=user.address,
            coordinates=encode(point) if point else None,
            lat=point.lat if point else None,
            lng=point.lng if point else None,
            radius_km=user.radius_km,
        )


class StoreResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    address: str = ""
    description: str = ""
    coordinates: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    status: StoreStatus
    distance_km: Optional[float] = None

    @classmethod
    def from_entity(
        cls, store: Store, distance_km: Optional[float] = None
    ) -> "StoreResponse":
        point = store.point
        return cls(
            id=store.id,
            owner_id=store.owner_id,
            name=store.name,
            address=store.address,
            description=store.description,
            coordinates=encode(point) if point else None,
            lat=point.lat if point else None,
            lng=point.lng if point else None,
            status=store.status,
            distance_km=round_km(distance_km) if distance_km is not None else None,
        )


class ProductResponse(BaseModel):
    id: int
    store_id: int
    name: str
    price: float
    discount: float
    has_discount: bool
    discount_price: Optional[float] = None
    description: str = ""
    image: str = ""

    @classmethod
    def from_entity(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.id,
            store_id=product.store_id,
            name=product.name,
            price=product.price,
            discount=product.discount,
            has_discount=product.has_discount,
            discount_price=product.discount_price,
            description=product.description,
            image=product.image,
        )


class NearbyStoresResponse(BaseModel):
    radius_km: Optional[float] = None
    bypass_filter: bool = False
    stores: list[StoreResponse] = []


class CampaignResponse(BaseModel):
    started: bool
    clients: int = 0
    digests: int = 0


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
