import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
import notifications

ADMIN_USERNAME = "owner"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    """Fresh in-memory database for every test."""
    test_db = mongomock.MongoClient()["bakery_test"]
    monkeypatch.setattr(database, "db", test_db)
    database.ensure_indexes()
    yield test_db


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    sent = []
    monkeypatch.setattr(notifications, "send_order_emails", lambda order: sent.append(order))
    return sent


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def admin_client(client):
    resp = client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def order_form():
    return {
        "customer_name": "Asha Verma",
        "customer_email": "Asha@Example.com",
        "customer_phone": "9876543210",
        "delivery_date": "2024-06-20",
        "delivery_time": "17:00",
        "delivery_type": "pickup",
    }
