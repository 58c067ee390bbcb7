"""Shared fixtures: a small catalog, in-memory slots and a cart bound to them."""
import copy
import pytest

from storefront.core.config import Settings
from storefront.domain.repositories.kv_backend import InMemoryBackend
from storefront.domain.services.cart_store import CartStore
from storefront.domain.services.catalog_store import CatalogStore
from storefront.domain.services.search_index import SearchIndex


PRODUCTS = [
    {
        "id": "p1",
        "name": "Wireless Mouse",
        "description": "Compact pointer for any notebook or desktop",
        "category": "Electronics",
        "price": "25.00",
        "in_stock": True,
        "featured": False,
        "tags": ["computer", "accessory"],
        "images": ["img/p1.jpg"],
        "created_at": "2024-01-10T10:00:00Z",
    },
    {
        "id": "p2",
        "name": "Ceramic Mug",
        "description": "Holds hot coffee or tea",
        "category": "Kitchen",
        "price": "12.50",
        "in_stock": True,
        "featured": True,
        "tags": ["drinkware"],
        "images": ["img/p2.jpg"],
        "created_at": "2024-03-01T09:00:00Z",
    },
    {
        "id": "p3",
        "name": "Desk Lamp",
        "description": "Wireless charging base and warm light",
        "category": "Home",
        "price": "40",
        "in_stock": False,
        "featured": True,
        "tags": ["lighting"],
        "images": ["img/p3.jpg"],
        "created_at": "2023-11-20T08:00:00Z",
        "updated_at": "2024-05-02T08:00:00Z",
    },
    {
        "id": "p4",
        "name": "Notebook",
        "description": "Dotted paper, hardcover",
        "category": "Stationery",
        "price": "8.99",
        "in_stock": True,
        "featured": False,
        "tags": ["paper", "journal"],
        "images": ["img/p4.jpg"],
        "created_at": "2024-02-14T12:00:00Z",
    },
    {
        "id": "p5",
        "name": "Headphones",
        "description": "Over-ear with noise cancelling",
        "category": "Electronics",
        "price": "99.00",
        "in_stock": True,
        "featured": False,
        "tags": ["audio", "music"],
        "images": ["img/p5.jpg"],
        "created_at": "2024-04-01T00:00:00Z",
    },
]

# the two-product catalog used in the worked examples
SIMPLE_PRODUCTS = [
    {"id": "a", "price": 10, "featured": False, "in_stock": True},
    {"id": "b", "price": 5, "featured": True, "in_stock": True},
]


def ids(products):
    return [p.id for p in products]


@pytest.fixture
def products():
    return copy.deepcopy(PRODUCTS)


@pytest.fixture
def settings():
    return Settings(
        ADMIN_PASSWORD="s3cret",
        ADMIN_TOKEN_SECRET="test-signing-key",
        WHATSAPP_PHONE="15550001111",
        search_debounce_ms=20,
        CATALOG_SOURCE="",
    )


@pytest.fixture
def catalog(products):
    store = CatalogStore()
    store.load(products)
    return store


@pytest.fixture
def index(catalog):
    idx = SearchIndex()
    idx.build(catalog.get_all())
    return idx


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def simple_catalog():
    store = CatalogStore()
    store.load(copy.deepcopy(SIMPLE_PRODUCTS))
    return store


@pytest.fixture
async def cart(simple_catalog, backend):
    return await CartStore.open(simple_catalog, backend, storage_key="cart", max_quantity=99)
