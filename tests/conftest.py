"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  PostGIS Geometry columns are replaced by
plain String columns holding the raw WKT or WKB-hex text, which is exactly
what the codec consumes.
"""

import struct
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from geomarket.domain.codec import GeoPoint, encode
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.infrastructure.repositories import (
    ProductRepository,
    StoreRepository,
    UserRepository,
)


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
TestSessionFactory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


class TestBase(DeclarativeBase):
    pass


# Mirror the production models but without PostGIS Geometry columns
# (SQLite doesn't support them).

class TestUserModel(TestBase):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    type = Column(Enum(UserType), default=UserType.CLIENT, nullable=False)
    address = Column(String(255), default="")
    coordinates = Column(String, nullable=True)  # stub for Geometry
    radius_km = Column(Float, default=5.0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class TestStoreModel(TestBase):
    __tablename__ = "stores"
    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(120), nullable=False)
    address = Column(String(255), default="")
    description = Column(Text, default="")
    coordinates = Column(String, nullable=True)  # stub for Geometry
    status = Column(Enum(StoreStatus), default=StoreStatus.PENDING, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())


class TestProductModel(TestBase):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False)
    name = Column(String(120), nullable=False)
    price = Column(Float, nullable=False)
    discount = Column(Float, default=0.0, nullable=False)
    description = Column(Text, default="")
    image = Column(String(500), default="")
    created_at = Column(DateTime, server_default=func.now())


# ── Repositories over the test models ─────────────────────────────────


def _to_text(point: Optional[GeoPoint]) -> Optional[str]:
    return encode(point) if point is not None else None


def _raw(value):
    return value


class TestUserRepository(UserRepository):
    model = TestUserModel
    to_geometry = staticmethod(_to_text)
    raw_location = staticmethod(_raw)


class TestStoreRepository(StoreRepository):
    model = TestStoreModel
    to_geometry = staticmethod(_to_text)
    raw_location = staticmethod(_raw)


class TestProductRepository(ProductRepository):
    model = TestProductModel


# ── Helpers ───────────────────────────────────────────────────────────


def wkb_hex(lat: float, lng: float, upper: bool = False) -> str:
    """Little-endian 2D point: order flag 1, geometry type 1, then lng, lat."""
    raw = struct.pack("<BIdd", 1, 1, lng, lat).hex()
    return raw.upper() if upper else raw


# Buenos Aires and nearby
BUENOS_AIRES = GeoPoint(lat=-34.6037, lng=-58.3816)
CORDOBA = GeoPoint(lat=-31.4201, lng=-64.1888)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_tables() -> AsyncGenerator[None, None]:
    """Create tables for one test, then drop everything."""
    async with test_engine.begin() as conn:
        await conn.run_sync(TestBase.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(TestBase.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session(db_tables) -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session


@pytest.fixture
def wkb():
    return wkb_hex
