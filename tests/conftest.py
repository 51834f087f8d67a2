"""Shared fixtures for catalog tests."""

import pytest

from storefront.catalog.records import ImageAsset, Product
from storefront.catalog.service import CatalogService
from storefront.catalog.store import InMemoryProductStore
from storefront.infrastructure.config import Settings

from tests.factories import BOOKS, GAMES, MUSIC, make_product


@pytest.fixture
def catalog_products() -> list[Product]:
    """Eight products across three categories."""
    return [
        make_product("p01", "Python Cookbook", "39.50", BOOKS.id, sold=12, day=3),
        make_product("p02", "Learning SQL", "29.00", BOOKS.id, sold=4, shipping=False, day=1),
        make_product("p03", "Chess Set", "55.00", GAMES.id, sold=30, day=7),
        make_product("p04", "Puzzle Box", "12.00", GAMES.id, sold=1, shipping=False, day=2),
        make_product("p05", "Jazz Vinyl", "24.99", MUSIC.id, sold=8, day=5),
        make_product(
            "p06",
            "Fluent Python",
            "49.00",
            BOOKS.id,
            sold=20,
            day=6,
            image=ImageAsset(data=b"\x89PNG-cover", content_type="image/png"),
        ),
        make_product("p07", "Card Game", "8.50", GAMES.id, sold=15, day=4),
        make_product("p08", "Python Pocket Guide", "15.00", BOOKS.id, sold=2, day=8),
    ]


@pytest.fixture
def store(catalog_products: list[Product]) -> InMemoryProductStore:
    """In-memory store seeded with the test catalog."""
    return InMemoryProductStore(products=catalog_products, categories=[BOOKS, GAMES, MUSIC])


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the stock guard on."""
    return Settings(inventory_allow_negative_stock=False)


@pytest.fixture
def service(store: InMemoryProductStore, test_settings: Settings) -> CatalogService:
    """Catalog service over the in-memory store."""
    return CatalogService(store, test_settings)
