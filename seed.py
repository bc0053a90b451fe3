"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 3 owners, 4 clients (around Buenos Aires, one in Córdoba)
  - 6 stores (mix of ACCEPTED, PENDING, DECLINED)
  - a handful of products, some discounted
"""

import asyncio

from sqlalchemy import text

from geomarket.domain.codec import GeoPoint
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.infrastructure.database import async_session_factory, engine
from geomarket.infrastructure.repositories import (
    ProductRepository,
    StoreRepository,
    UserRepository,
)

USERS = [
    {"name": "Admin Usuario", "email": "admin@marketplace.com", "type": UserType.ADMIN,
     "point": GeoPoint(-34.6037, -58.3816), "radius_km": 10, "address": "Buenos Aires, Argentina"},
    {"name": "María García", "email": "maria@email.com", "type": UserType.OWNER,
     "point": GeoPoint(-34.6087, -58.3756), "radius_km": 5, "address": "Palermo, Buenos Aires"},
    {"name": "Ana López", "email": "ana@email.com", "type": UserType.OWNER,
     "point": GeoPoint(-34.5998, -58.3732), "radius_km": 5, "address": "Villa Crespo, Buenos Aires"},
    {"name": "Pablo Ruiz", "email": "pablo@email.com", "type": UserType.OWNER,
     "point": GeoPoint(-31.4201, -64.1888), "radius_km": 5, "address": "Córdoba, Argentina"},
    {"name": "Juan Pérez", "email": "juan@email.com", "type": UserType.CLIENT,
     "point": GeoPoint(-34.6118, -58.3960), "radius_km": 7, "address": "Recoleta, Buenos Aires"},
    {"name": "Lucía Fernández", "email": "lucia@email.com", "type": UserType.CLIENT,
     "point": GeoPoint(-34.5875, -58.4200), "radius_km": 3, "address": "Palermo Soho, Buenos Aires"},
    {"name": "Diego Romero", "email": "diego@email.com", "type": UserType.CLIENT,
     "point": GeoPoint(-32.9442, -60.6505), "radius_km": 10, "address": "Rosario, Santa Fe"},
    {"name": "Sofía Acosta", "email": "sofia@email.com", "type": UserType.CLIENT,
     "point": GeoPoint(-31.4135, -64.1811), "radius_km": 15, "address": "Nueva Córdoba, Córdoba"},
]

# owner index into USERS.  Approval is given in the shapes older exports
# used (`approved`, `state`, `status`) and migrated with from_legacy.
STORES = [
    {"owner": 1, "name": "Electrónica Premium", "point": GeoPoint(-34.6087, -58.3756),
     "address": "Av. Santa Fe 2450, Palermo", "approved": True,
     "description": "Tienda especializada en electrónicos y gadgets"},
    {"owner": 2, "name": "Moda & Style", "point": GeoPoint(-34.6118, -58.3960),
     "address": "Av. Corrientes 1500, Centro", "status": "accepted", "state": "accepted", "approved": True,
     "description": "Ropa y accesorios de moda"},
    {"owner": 2, "name": "Librería del Centro", "point": GeoPoint(-34.6035, -58.3810),
     "address": "Florida 340, Centro", "approved": False,
     "description": "Libros nuevos y usados"},
    {"owner": 1, "name": "Casa & Deco", "point": GeoPoint(-34.5800, -58.4300),
     "address": "Av. Córdoba 5800, Palermo", "status": "cancelled", "state": "declined", "approved": False,
     "description": "Decoración para el hogar"},
    {"owner": 3, "name": "Almacén Serrano", "point": GeoPoint(-31.4167, -64.1833),
     "address": "Deán Funes 200, Córdoba", "state": "accepted",
     "description": "Productos regionales"},
    {"owner": 3, "name": "Bici Córdoba", "point": GeoPoint(-31.4250, -64.1900),
     "address": "Bv. San Juan 900, Córdoba", "state": "pending",
     "description": "Bicicletas y repuestos"},
]

# store index into STORES
PRODUCTS = [
    {"store": 0, "name": "Auriculares inalámbricos", "price": 45000.0, "discount": 15},
    {"store": 0, "name": "Cargador USB-C", "price": 12000.0, "discount": 0},
    {"store": 1, "name": "Campera de jean", "price": 68000.0, "discount": 25},
    {"store": 1, "name": "Remera básica", "price": 15000.0, "discount": 0},
    {"store": 2, "name": "Rayuela", "price": 22000.0, "discount": 10},
    {"store": 4, "name": "Alfajores x12", "price": 9000.0, "discount": 20},
    {"store": 4, "name": "Salame de Colonia Caroya", "price": 14000.0, "discount": 0},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        user_repo = UserRepository(session)
        store_repo = StoreRepository(session)
        product_repo = ProductRepository(session)

        users = [await user_repo.create(**u) for u in USERS]
        print(f"  Created {len(users)} users")

        stores = []
        for s in STORES:
            stores.append(
                await store_repo.create(
                    owner_id=users[s["owner"]].id,
                    name=s["name"],
                    address=s["address"],
                    description=s["description"],
                    point=s["point"],
                    status=StoreStatus.from_legacy(s),
                )
            )
        print(f"  Created {len(stores)} stores")

        for p in PRODUCTS:
            await product_repo.create(
                store_id=stores[p["store"]].id,
                name=p["name"],
                price=p["price"],
                discount=p["discount"],
            )
        print(f"  Created {len(PRODUCTS)} products")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
