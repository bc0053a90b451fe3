"""
Integration tests for the REST API endpoints.

Uses an in-memory SQLite database with test models that replace PostGIS
Geometry columns with plain String columns.  Repositories are overridden
so the routes use test-friendly models, and the geocoder is replaced by a
fake that knows one address.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from geomarket.domain.codec import GeoPoint, encode
from geomarket.domain.enums import StoreStatus, UserType
from geomarket.infrastructure.geocoding import GeocodingError
from geomarket.infrastructure.offers import OffersDispatcher
from tests.conftest import (
    BUENOS_AIRES,
    CORDOBA,
    TestBase,
    TestProductModel,
    TestProductRepository,
    TestSessionFactory,
    TestStoreModel,
    TestStoreRepository,
    TestUserModel,
    TestUserRepository,
    test_engine,
    wkb_hex,
)

RECOLETA = GeoPoint(-34.6118, -58.3960)
PALERMO = GeoPoint(-34.6087, -58.3756)


class _FakeGeocoder:
    async def geocode(self, address: str) -> GeoPoint:
        if "buenos aires" in address.lower():
            return BUENOS_AIRES
        raise GeocodingError(f"Address not found: {address}")

    async def reverse(self, point: GeoPoint) -> str:
        return f"Near {point.lat}, {point.lng}"


async def _seed() -> None:
    async with TestSessionFactory() as session:
        session.add_all([
            TestUserModel(id=1, name="Admin", email="admin@email.com",
                          type=UserType.ADMIN, coordinates=encode(BUENOS_AIRES),
                          radius_km=5.0),
            TestUserModel(id=2, name="Owner", email="owner@email.com",
                          type=UserType.OWNER, coordinates=encode(BUENOS_AIRES),
                          radius_km=5.0),
            TestUserModel(id=3, name="Client", email="client@email.com",
                          type=UserType.CLIENT, coordinates=encode(RECOLETA),
                          radius_km=5.0),
            TestUserModel(id=4, name="Lost", email="lost@email.com",
                          type=UserType.CLIENT, coordinates="POINT(a b)",
                          radius_km=5.0),
        ])
        await session.flush()
        session.add_all([
            TestStoreModel(id=1, owner_id=2, name="Centro",
                           coordinates=encode(BUENOS_AIRES),
                           status=StoreStatus.ACCEPTED),
            # Stored the way PostGIS hands back a geometry column
            TestStoreModel(id=2, owner_id=2, name="Palermo",
                           coordinates=wkb_hex(PALERMO.lat, PALERMO.lng),
                           status=StoreStatus.ACCEPTED),
            TestStoreModel(id=3, owner_id=2, name="Cordoba",
                           coordinates=encode(CORDOBA),
                           status=StoreStatus.ACCEPTED),
            TestStoreModel(id=4, owner_id=2, name="Recoleta",
                           coordinates=encode(RECOLETA),
                           status=StoreStatus.PENDING),
            TestStoreModel(id=5, owner_id=2, name="Broken",
                           coordinates="not a location",
                           status=StoreStatus.ACCEPTED),
        ])
        await session.flush()
        session.add_all([
            TestProductModel(id=1, store_id=1, name="Jeans", price=80.0, discount=25.0),
            TestProductModel(id=2, store_id=1, name="Shirt", price=50.0, discount=0.0),
        ])
        await session.commit()


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client():
    """AsyncClient backed by SQLite + test models."""
    async with test_engine.begin() as conn:
        await conn.run_sync(TestBase.metadata.create_all)
    await _seed()

    with (
        patch("geomarket.workers.campaign.start_offers_loop", new_callable=AsyncMock),
        patch("geomarket.workers.campaign.stop_offers_loop", new_callable=AsyncMock),
        patch("geomarket.workers.campaign.async_session_factory", TestSessionFactory),
        patch("geomarket.workers.campaign.UserRepository", TestUserRepository),
        patch("geomarket.workers.campaign.StoreRepository", TestStoreRepository),
        patch("geomarket.workers.campaign.ProductRepository", TestProductRepository),
        patch(
            "geomarket.workers.campaign.get_dispatcher",
            lambda: OffersDispatcher(None),
        ),
        patch("geomarket.api.routes.users.UserRepository", TestUserRepository),
        patch("geomarket.api.routes.users.StoreRepository", TestStoreRepository),
        patch("geomarket.api.routes.stores.UserRepository", TestUserRepository),
        patch("geomarket.api.routes.stores.StoreRepository", TestStoreRepository),
        patch("geomarket.api.routes.stores.ProductRepository", TestProductRepository),
        patch("geomarket.api.routes.products.StoreRepository", TestStoreRepository),
        patch("geomarket.api.routes.products.ProductRepository", TestProductRepository),
        patch("geomarket.api.routes.admin.StoreRepository", TestStoreRepository),
    ):
        # DB session dependency
        async def _test_db():
            async with TestSessionFactory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        from geomarket.api.app import create_app
        from geomarket.api.dependencies import geocoder_dependency, get_db

        app = create_app()
        app.dependency_overrides[get_db] = _test_db
        app.dependency_overrides[geocoder_dependency] = _FakeGeocoder

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    async with test_engine.begin() as conn:
        await conn.run_sync(TestBase.metadata.drop_all)


@pytest.fixture
def lock_free():
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.eval = AsyncMock(return_value=1)
    with patch("geomarket.workers.campaign.get_redis", AsyncMock(return_value=redis)):
        yield redis


# ── Health ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── Users ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_user_with_lat_lng(client: AsyncClient):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Ana", "email": "ana@email.com", "lat": -34.6, "lng": -58.4},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["type"] == "client"
    assert data["radius_km"] == 5.0
    assert data["coordinates"] == "POINT(-58.4 -34.6)"
    assert data["address"] == "Near -34.6, -58.4"


@pytest.mark.asyncio
async def test_create_user_from_wkb_hex_coordinates(client: AsyncClient):
    resp = await client.post(
        "/api/v1/users",
        json={
            "name": "Beto",
            "email": "beto@email.com",
            "coordinates": wkb_hex(CORDOBA.lat, CORDOBA.lng, upper=True),
            "radius_km": 12,
        },
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["lat"] == pytest.approx(CORDOBA.lat)
    assert data["lng"] == pytest.approx(CORDOBA.lng)
    assert data["radius_km"] == 12


@pytest.mark.asyncio
async def test_create_user_geocodes_address(client: AsyncClient):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Caro", "email": "caro@email.com", "address": "Buenos Aires"},
    )
    assert resp.status_code == 201
    assert resp.json()["address"] == "Buenos Aires"
    assert resp.json()["lat"] == BUENOS_AIRES.lat


@pytest.mark.asyncio
async def test_create_user_unknown_address_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Dani", "email": "dani@email.com", "address": "Atlantis"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_user_unreadable_coordinates_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Eli", "email": "eli@email.com", "coordinates": "POINT(1)"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_user_duplicate_email(client: AsyncClient):
    resp = await client.post(
        "/api/v1/users",
        json={"name": "Again", "email": "client@email.com", "lat": 0, "lng": 0},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_list_users_by_type(client: AsyncClient):
    resp = await client.get("/api/v1/users", params={"type": "client"})
    assert resp.status_code == 200
    assert [u["id"] for u in resp.json()] == [3, 4]


@pytest.mark.asyncio
async def test_update_user_radius(client: AsyncClient):
    resp = await client.put("/api/v1/users/3", json={"radius_km": 1.7})
    assert resp.status_code == 200
    assert resp.json()["radius_km"] == 1.7

    nearby = await client.get("/api/v1/users/3/stores")
    assert [s["name"] for s in nearby.json()["stores"]] == ["Centro"]


@pytest.mark.asyncio
async def test_update_user_email(client: AsyncClient):
    resp = await client.put("/api/v1/users/3", json={"email": "juan@email.com"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "juan@email.com"

    resp = await client.get("/api/v1/users/3")
    assert resp.json()["email"] == "juan@email.com"


@pytest.mark.asyncio
async def test_update_user_email_taken(client: AsyncClient):
    resp = await client.put("/api/v1/users/3", json={"email": "owner@email.com"})
    assert resp.status_code == 409

    resp = await client.get("/api/v1/users/3")
    assert resp.json()["email"] == "client@email.com"


@pytest.mark.asyncio
async def test_update_user_same_email_is_kept(client: AsyncClient):
    resp = await client.put(
        "/api/v1/users/3", json={"email": "client@email.com", "name": "Juan"}
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Juan"


@pytest.mark.asyncio
async def test_get_user_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/users/9999")
    assert resp.status_code == 404


# ── Nearby stores ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_client_sees_accepted_stores_in_radius(client: AsyncClient):
    resp = await client.get("/api/v1/users/3/stores")
    assert resp.status_code == 200
    data = resp.json()
    assert data["bypass_filter"] is False
    assert [s["name"] for s in data["stores"]] == ["Centro", "Palermo"]
    assert data["stores"][0]["distance_km"] == pytest.approx(1.6, abs=0.01)


@pytest.mark.asyncio
async def test_admin_bypasses_radius(client: AsyncClient):
    resp = await client.get("/api/v1/users/1/stores")
    data = resp.json()
    assert data["bypass_filter"] is True
    names = [s["name"] for s in data["stores"]]
    assert names == ["Centro", "Palermo", "Cordoba", "Broken"]
    assert data["stores"][0]["distance_km"] == 0.0
    assert data["stores"][-1]["distance_km"] is None


@pytest.mark.asyncio
async def test_user_without_location_cannot_query(client: AsyncClient):
    resp = await client.get("/api/v1/users/4/stores")
    assert resp.status_code == 422


# ── Stores ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_store_radius_query(client: AsyncClient):
    resp = await client.get(
        "/api/v1/stores",
        params={"lat": RECOLETA.lat, "lng": RECOLETA.lng, "radius_km": 5},
    )
    assert resp.status_code == 200
    stores = resp.json()
    assert [s["id"] for s in stores] == [1, 2]
    # The WKB-hex row comes back decoded
    assert stores[1]["lat"] == pytest.approx(PALERMO.lat)
    assert stores[1]["coordinates"].startswith("POINT(")


@pytest.mark.asyncio
async def test_store_radius_query_needs_both_coordinates(client: AsyncClient):
    resp = await client.get("/api/v1/stores", params={"lat": -34.6})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_stores_by_status(client: AsyncClient):
    resp = await client.get("/api/v1/stores", params={"status": "pending"})
    assert [s["name"] for s in resp.json()] == ["Recoleta"]


@pytest.mark.asyncio
async def test_create_store_starts_pending(client: AsyncClient):
    resp = await client.post(
        "/api/v1/stores",
        json={"owner_id": 2, "name": "Nueva", "lat": -34.6, "lng": -58.4},
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_client_cannot_own_store(client: AsyncClient):
    resp = await client.post(
        "/api/v1/stores",
        json={"owner_id": 3, "name": "Nope", "lat": -34.6, "lng": -58.4},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_delete_store_removes_products(client: AsyncClient):
    resp = await client.delete("/api/v1/stores/1")
    assert resp.status_code == 204
    assert (await client.get("/api/v1/stores/1")).status_code == 404
    assert (await client.get("/api/v1/products/1")).status_code == 404


# ── Products ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_store_products_with_discount_price(client: AsyncClient):
    resp = await client.get("/api/v1/stores/1/products")
    assert resp.status_code == 200
    jeans, shirt = resp.json()
    assert jeans["discount_price"] == 60.0
    assert shirt["has_discount"] is False
    assert shirt["discount_price"] is None


@pytest.mark.asyncio
async def test_create_and_update_product(client: AsyncClient):
    resp = await client.post(
        "/api/v1/products",
        json={"store_id": 2, "name": "Mate", "price": 30.0, "discount": 10},
    )
    assert resp.status_code == 201
    product_id = resp.json()["id"]
    assert resp.json()["discount_price"] == 27.0

    resp = await client.put(f"/api/v1/products/{product_id}", json={"discount": 50})
    assert resp.json()["discount_price"] == 15.0


@pytest.mark.asyncio
async def test_full_discount_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/v1/products",
        json={"store_id": 2, "name": "Free", "price": 30.0, "discount": 100},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_product_for_missing_store(client: AsyncClient):
    resp = await client.post(
        "/api/v1/products",
        json={"store_id": 999, "name": "Ghost", "price": 1.0},
    )
    assert resp.status_code == 404


# ── Admin ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_pending_stores(client: AsyncClient):
    resp = await client.get("/api/v1/admin/stores/pending")
    assert [s["id"] for s in resp.json()] == [4]


@pytest.mark.asyncio
async def test_review_lists_every_store_by_distance(client: AsyncClient):
    resp = await client.get(
        "/api/v1/admin/stores/review",
        params={"lat": RECOLETA.lat, "lng": RECOLETA.lng},
    )
    names = [s["name"] for s in resp.json()]
    assert names == ["Recoleta", "Centro", "Palermo", "Cordoba", "Broken"]


@pytest.mark.asyncio
async def test_approve_then_approve_again_conflicts(client: AsyncClient):
    resp = await client.patch("/api/v1/admin/stores/4/approve")
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepted"

    resp = await client.patch("/api/v1/admin/stores/4/approve")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_declined_store_leaves_radius_results(client: AsyncClient):
    resp = await client.patch("/api/v1/admin/stores/1/decline")
    assert resp.json()["status"] == "declined"

    nearby = await client.get("/api/v1/users/3/stores")
    assert [s["name"] for s in nearby.json()["stores"]] == ["Palermo"]


@pytest.mark.asyncio
async def test_decline_missing_store(client: AsyncClient):
    resp = await client.patch("/api/v1/admin/stores/999/decline")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_send_offers(client: AsyncClient, lock_free):
    resp = await client.post("/api/v1/admin/send-offers")
    assert resp.status_code == 202
    data = resp.json()
    assert data["started"] is True
    assert data["clients"] == 2
    # Only the Recoleta client has a discounted product nearby
    assert data["digests"] == 1
    lock_free.eval.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_offers_while_running(client: AsyncClient, lock_free):
    lock_free.set = AsyncMock(return_value=None)
    resp = await client.post("/api/v1/admin/send-offers")
    assert resp.status_code == 409
