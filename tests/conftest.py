import asyncio
import os

# Settings are read once at import time; point them at throwaway values
# before anything under storefront is imported.
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("ADMIN_PASSWORD", None)
os.environ.pop("OWNER_WHATSAPP_NUMBER", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from storefront.core.config import get_settings
from storefront.database import Base, get_db
from storefront.main import app
from storefront.schemas import (
    AddonCreate,
    AddonGroupCreate,
    AddonGroupSchema,
    AddonSchema,
    ProductCreate,
    ProductSchema,
    VariantCreate,
    VariantSchema,
)
from storefront.services.catalog import CatalogService
from storefront.services.messaging import MockMessagingService, get_messaging_service

TEST_ADMIN_PASSWORD = "testpassword123"
TEST_OWNER_NUMBER = "+92 315 2967579"


# =============================================================================
# IN-MEMORY CATALOG OBJECTS
# =============================================================================

def make_group(group_id, type="topping", min_select=0, max_select=1, is_required=False, addons=()):
    return AddonGroupSchema(
        id=group_id,
        name=group_id.title(),
        type=type,
        min_select=min_select,
        max_select=max_select,
        is_required=is_required,
        addons=[
            AddonSchema(id=addon_id, group_id=group_id, name=addon_id.title(), price=price)
            for addon_id, price in addons
        ],
    )


@pytest.fixture
def toppings():
    """Required group: pick 1 or 2."""
    return make_group(
        "toppings",
        min_select=1,
        max_select=2,
        is_required=True,
        addons=[("cheese", 150), ("olives", 100), ("peppers", 120)],
    )


@pytest.fixture
def sides():
    return make_group("sides", type="side", max_select=1, addons=[("fries", 300)])


@pytest.fixture
def drinks():
    return make_group("drinks", type="drink", max_select=1, addons=[("cola", 250), ("water", 100)])


@pytest.fixture
def pizza(toppings, drinks):
    return ProductSchema(
        id="pizza",
        name="Margherita",
        variants=[
            VariantSchema(id="medium", product_id="pizza", size="Medium", crust="Thin", price=1200),
            VariantSchema(id="large", product_id="pizza", size="Large", crust="Thick", price=1600),
        ],
        addon_groups=[toppings, drinks],
    )


@pytest.fixture
def garlic_bread():
    return ProductSchema(
        id="bread",
        name="Garlic Bread",
        variants=[VariantSchema(id="regular", product_id="bread", size="Regular", price=800)],
    )


# =============================================================================
# DATABASE & API CLIENT
# =============================================================================

@pytest.fixture
def session_maker(tmp_path):
    """Async session factory on a fresh SQLite file per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        poolclass=NullPool,
    )

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def messaging():
    return MockMessagingService()


@pytest.fixture
def settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "admin_password", TEST_ADMIN_PASSWORD)
    monkeypatch.setattr(settings, "owner_whatsapp_number", TEST_OWNER_NUMBER)
    return settings


@pytest.fixture
def client(session_maker, messaging, settings):
    """TestClient wired to the per-test database and the mock messaging channel."""

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_messaging_service] = lambda: messaging

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    response = client.post("/admin/login", json={"password": TEST_ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def seeded(session_maker):
    """
    Seed a small menu through the catalog service.

    Returns the ids of everything created.
    """

    async def seed():
        async with session_maker() as db:
            catalog = CatalogService(db)
            pizzas = await catalog.create_category("Pizzas")
            sides = await catalog.create_category("Sides")

            margherita = await catalog.create_product(
                ProductCreate(name="Margherita", category_id=pizzas.id, price=1200)
            )
            large = await catalog.create_variant(
                VariantCreate(product_id=margherita.id, size="Large", crust="Thick", price=1600)
            )
            bread = await catalog.create_product(
                ProductCreate(name="Garlic Bread", category_id=sides.id, price=800)
            )

            toppings = await catalog.create_addon_group(
                AddonGroupCreate(name="Toppings", type="topping", min_select=1, max_select=2, is_required=True)
            )
            cheese = await catalog.create_addon(AddonCreate(group_id=toppings.id, name="Extra Cheese", price=150))
            olives = await catalog.create_addon(AddonCreate(group_id=toppings.id, name="Olives", price=100))
            drinks = await catalog.create_addon_group(
                AddonGroupCreate(name="Drinks", type="drink", min_select=0, max_select=1)
            )
            cola = await catalog.create_addon(AddonCreate(group_id=drinks.id, name="Cola", price=250))

            await catalog.set_product_addon_group(margherita.id, toppings.id, True)
            await catalog.set_product_addon_group(margherita.id, drinks.id, True)

            return {
                "pizzas": pizzas.id,
                "sides": sides.id,
                "margherita": margherita.id,
                "large": large.id,
                "bread": bread.id,
                "toppings": toppings.id,
                "cheese": cheese.id,
                "olives": olives.id,
                "drinks": drinks.id,
                "cola": cola.id,
            }

    return asyncio.run(seed())
