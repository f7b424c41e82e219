"""Pytest fixtures: an in-memory MongoDB per test and services bound to it."""

import os

os.environ.setdefault("ADMIN_TOKEN_SECRET", "test-secret")
os.environ.setdefault("SEED_DEMO_DATA", "false")

import mongomock
import pytest
from fastapi.testclient import TestClient

from admin import AdminService
from blog import BlogService
from cart import CartService
from catalog import ProductCatalog
from config import get_settings
from database import ensure_indexes, get_db
from orders import OrderService


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    database = client["grainly_test"]
    ensure_indexes(database)
    yield database
    client.close()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def catalog(db):
    return ProductCatalog(db)


@pytest.fixture
def carts(db, catalog):
    return CartService(db, catalog)


@pytest.fixture
def orders(db, catalog, settings):
    return OrderService(db, catalog, settings)


@pytest.fixture
def admins(db, settings):
    return AdminService(db, settings)


@pytest.fixture
def blogs(db):
    return BlogService(db)


@pytest.fixture
def make_product(catalog):
    """Factory creating a product and returning its id."""
    counter = {"n": 0}

    def _make(price=400, discount_price=None, **overrides):
        counter["n"] += 1
        data = {
            "itemName": f"Cream of Rice {counter['n']}",
            "flavour": f"Flavour {counter['n']}",
            "description": "Warm cream of rice",
            "shortDescription": "Cream of rice",
            "price": price,
            "discountPrice": discount_price,
            "stock": 10,
            "category": "Classic",
            "images": [f"https://img.example.org/{counter['n']}.jpg"],
        }
        data.update(overrides)
        return catalog.create(data)["id"]

    return _make


@pytest.fixture
def shipping_address():
    return {
        "fullName": "Asha Rao",
        "email": "asha@grainly.com",
        "phone": "9876543210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "zipCode": "560001",
    }


@pytest.fixture
def super_admin(admins):
    admins.create_admin({
        "username": "root",
        "email": "root@grainly.com",
        "password": "secret123",
        "name": "Root Admin",
        "role": "super-admin",
    })
    return admins.login("root", "secret123")


@pytest.fixture
def client(db):
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(super_admin):
    return {"Authorization": f"Bearer {super_admin['token']}"}
