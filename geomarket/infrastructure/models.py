"""
SQLAlchemy ORM models  (maps to PostgreSQL + PostGIS).

Tables
------
* ``users``     -- clients, store owners and admins with a home location
* ``stores``    -- owner-managed stores awaiting / holding admin approval
* ``products``  -- items sold by a store, optionally discounted

Indexes
-------
* **GIST** on the geometry columns (``users.coordinates``,
  ``stores.coordinates``) for spatial look-ups.
* **B-Tree** on ``stores.status``, ``stores.owner_id`` and
  ``products.store_id`` for the admin review and listing queries.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from geoalchemy2 import Geometry

from .database import Base
from geomarket.domain.enums import StoreStatus, UserType


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    type = Column(Enum(UserType), default=UserType.CLIENT, nullable=False)
    address = Column(String(255), default="")
    coordinates = Column(
        Geometry("POINT", srid=4326, spatial_index=False), nullable=True
    )
    radius_km = Column(Float, default=5.0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_users_coordinates", "coordinates", postgresql_using="gist"),
        Index("idx_users_type", "type"),
    )


class StoreModel(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(120), nullable=False)
    address = Column(String(255), default="")
    description = Column(Text, default="")
    coordinates = Column(
        Geometry("POINT", srid=4326, spatial_index=False), nullable=True
    )
    status = Column(Enum(StoreStatus), default=StoreStatus.PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_stores_coordinates", "coordinates", postgresql_using="gist"),
        Index("idx_stores_status", "status"),
        Index("idx_stores_owner", "owner_id"),
    )


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(
        Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String(120), nullable=False)
    price = Column(Float, nullable=False)
    discount = Column(Float, default=0.0, nullable=False)  # percentage
    description = Column(Text, default="")
    image = Column(String(500), default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_products_store", "store_id"),)
