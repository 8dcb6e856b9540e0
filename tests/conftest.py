import os
from datetime import datetime

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("CAMPUS_TIMEZONE", "Asia/Dhaka")
# distinct from every point the tests report
os.environ["FALLBACK_LATITUDE"] = "23.8103"
os.environ["FALLBACK_LONGITUDE"] = "90.4125"

import mongomock
import pytest
from fastapi.testclient import TestClient

from main import app
from app.database import ensure_indexes, get_db
from app.utils.auth_token import create_access_token
from app.utils.password_hashing import hash_password

ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]

# Sunday 2026-10-18, 10:00 in Dhaka (UTC+6)
NOW = datetime(2026, 10, 18, 4, 0, 0)


@pytest.fixture
def db():
    """Fresh in-memory database with the production indexes."""
    database = mongomock.MongoClient()["campusTransitTest"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(role="DRIVER", email=None, name="Test User", password=None):
        user = {
            "name": name,
            "email": email or f"{role.lower()}-{db['users'].count_documents({})}@campus.edu",
            "password": hash_password(password) if password else "!",
            "role": role,
            "created_at": NOW,
            "updated_at": NOW,
        }
        db["users"].insert_one(user)
        return user
    return _make


@pytest.fixture
def make_vehicle(db):
    def _make(registration=None, driver=None, is_active=True, bus_name="Campus Express"):
        vehicle = {
            "registration_number": registration or f"DHA-{db['vehicles'].count_documents({}) + 1000}",
            "bus_name": bus_name,
            "type": "BUS",
            "capacity": 40,
            "driver_id": driver["_id"] if driver else None,
            "is_active": is_active,
            "created_at": NOW,
            "updated_at": NOW,
        }
        db["vehicles"].insert_one(vehicle)
        return vehicle
    return _make


@pytest.fixture
def make_route(db):
    def _make(name=None):
        route = {
            "name": name or f"Route {db['routes'].count_documents({}) + 1}",
            "stops": [],
            "is_active": True,
            "created_at": NOW,
            "updated_at": NOW,
        }
        db["routes"].insert_one(route)
        return route
    return _make


@pytest.fixture
def make_schedule(db, make_route):
    def _make(vehicle, departure_time="08:00", days=None, route=None, is_active=True):
        schedule = {
            "route_id": (route or make_route())["_id"],
            "vehicle_id": vehicle["_id"],
            "departure_time": departure_time,
            "days_of_week": ALL_DAYS if days is None else days,
            "is_active": is_active,
            "created_at": NOW,
            "updated_at": NOW,
        }
        db["schedules"].insert_one(schedule)
        return schedule
    return _make


def auth_headers(user) -> dict:
    token = create_access_token({
        "user_id": str(user["_id"]),
        "email": user["email"],
        "role": user["role"],
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user("ADMIN", email="admin@campus.edu", name="Admin")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def headers_for():
    return auth_headers
