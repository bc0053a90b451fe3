"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Locations cross this boundary exactly once:
``to_entity`` parses the stored geometry into a tagged ``Location`` and
``set_location`` writes a ``GeoPoint`` back as a PostGIS point.

``model``, ``to_geometry`` and ``raw_location`` are class attributes so a
subclass can run the same queries against plain-column models.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .geometry import geometry_to_raw, point_to_geometry
from .models import ProductModel, StoreModel, UserModel
from geomarket.domain.codec import GeoPoint, parse_location
from geomarket.domain.entities import Product, Store, User
from geomarket.domain.enums import StoreStatus, UserType


class _LocatedRepository:
    model: Any = None
    to_geometry = staticmethod(point_to_geometry)
    raw_location = staticmethod(geometry_to_raw)

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, row_id: int) -> Optional[Any]:
        return await self.session.get(self.model, row_id)

    async def delete(self, row: Any) -> None:
        await self.session.delete(row)
        await self.session.flush()

    def set_location(self, row: Any, point: Optional[GeoPoint]) -> None:
        row.coordinates = self.to_geometry(point)


class UserRepository(_LocatedRepository):
    model = UserModel

    async def create(
        self,
        *,
        name: str,
        email: str,
        type: UserType = UserType.CLIENT,
        address: str = "",
        point: Optional[GeoPoint] = None,
        radius_km: float = 5.0,
    ) -> UserModel:
        user = self.model(
            name=name,
            email=email,
            type=type,
            address=address,
            coordinates=self.to_geometry(point),
            radius_km=radius_km,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(self.model).where(self.model.email == email)
        )
        return result.scalar_one_or_none()

    async def list_all(self, type: Optional[UserType] = None) -> list[UserModel]:
        query = select(self.model).order_by(self.model.id)
        if type is not None:
            query = query.where(self.model.type == type)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    def to_entity(self, row: UserModel) -> User:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            type=UserType(row.type),
            address=row.address or "",
            location=parse_location(self.raw_location(row.coordinates)),
            radius_km=row.radius_km,
        )


class StoreRepository(_LocatedRepository):
    model = StoreModel

    async def create(
        self,
        *,
        owner_id: int,
        name: str,
        address: str = "",
        description: str = "",
        point: Optional[GeoPoint] = None,
        status: StoreStatus = StoreStatus.PENDING,
    ) -> StoreModel:
        store = self.model(
            owner_id=owner_id,
            name=name,
            address=address,
            description=description,
            coordinates=self.to_geometry(point),
            status=status,
        )
        self.session.add(store)
        await self.session.flush()
        return store

    async def list_all(
        self, status: Optional[StoreStatus] = None
    ) -> list[StoreModel]:
        query = select(self.model).order_by(self.model.id)
        if status is not None:
            query = query.where(self.model.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_owner(self, owner_id: int) -> list[StoreModel]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.owner_id == owner_id)
            .order_by(self.model.id)
        )
        return list(result.scalars().all())

    def to_entity(self, row: StoreModel) -> Store:
        return Store(
            id=row.id,
            owner_id=row.owner_id,
            name=row.name,
            address=row.address or "",
            description=row.description or "",
            location=parse_location(self.raw_location(row.coordinates)),
            status=StoreStatus(row.status),
        )


class ProductRepository:
    model: Any = ProductModel

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        store_id: int,
        name: str,
        price: float,
        discount: float = 0.0,
        description: str = "",
        image: str = "",
    ) -> ProductModel:
        product = self.model(
            store_id=store_id,
            name=name,
            price=price,
            discount=discount,
            description=description,
            image=image,
        )
        self.session.add(product)
        await self.session.flush()
        return product

    async def get_by_id(self, product_id: int) -> Optional[ProductModel]:
        return await self.session.get(self.model, product_id)

    async def delete(self, row: ProductModel) -> None:
        await self.session.delete(row)
        await self.session.flush()

    async def list_by_store(self, store_id: int) -> list[ProductModel]:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.store_id == store_id)
            .order_by(self.model.id)
        )
        return list(result.scalars().all())

    async def list_discounted(self, store_ids: Iterable[int]) -> list[ProductModel]:
        ids = list(store_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(self.model)
            .where(self.model.store_id.in_(ids), self.model.discount > 0)
            .order_by(self.model.store_id, self.model.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def to_entity(row: ProductModel) -> Product:
        return Product(
            id=row.id,
            store_id=row.store_id,
            name=row.name,
            price=row.price,
            discount=row.discount or 0.0,
            description=row.description or "",
            image=row.image or "",
        )
