"""
Shared pytest fixtures: an in-memory Mongo database and an app client bound to it.
"""
from typing import Generator

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_access_token, hash_password
from database import get_db, now
from main import app


@pytest.fixture
def test_db():
    """Fresh mongomock database for every test"""
    return mongomock.MongoClient().db


@pytest.fixture
def client(test_db) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db] = lambda: test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def insert_user(db, email="admin@x.com", password="secret123", name="Shop Admin", role="admin", active=True):
    stamp = now()
    res = db["user"].insert_one({
        "name": name,
        "email": email,
        "password_hash": hash_password(password),
        "role": role,
        "active": active,
        "last_login": None,
        "created_at": stamp,
        "updated_at": stamp,
    })
    return db["user"].find_one({"_id": res.inserted_id})


def bearer(user) -> dict:
    token = create_access_token({
        "id": str(user["_id"]),
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(test_db):
    return insert_user(test_db)


@pytest.fixture
def super_admin_user(test_db):
    return insert_user(test_db, email="root@x.com", name="Root", role="superadmin")


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def super_headers(super_admin_user):
    return bearer(super_admin_user)
