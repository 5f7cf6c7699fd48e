import logging
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

import config
import database
import main
from main import app


class FlakyClient:
    """Stands in for MongoClient; fails `failures` times before answering ping."""

    def __init__(self, failures):
        self.failures = failures
        self.attempts = 0
        self.closed = 0
        self.admin = self

    def __call__(self, url, **kwargs):
        return self

    def command(self, name):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ServerSelectionTimeoutError("no servers")
        return {"ok": 1}

    def get_default_database(self, default=None):
        return mongomock.MongoClient().get_database(default)

    def close(self):
        self.closed += 1


@pytest.fixture
def no_sleep(monkeypatch):
    sleeps = []
    database.close()
    monkeypatch.setattr(database.time, "sleep", sleeps.append)
    yield sleeps
    database.close()


def test_root_does_not_need_database():
    database.db = None

    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "API is running..."}


def test_routes_report_missing_database():
    database.db = None

    response = TestClient(app).get("/api/categories")

    assert response.status_code == 500
    assert response.json()["detail"] == "Database not available"


def test_missing_url_is_fatal(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", None)

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        database.connect()


def test_connect_retries_then_succeeds(no_sleep):
    flaky = FlakyClient(failures=2)

    db = database.connect("mongodb://db:27017", name="shop", retries=3, delay=5, client_factory=flaky)

    assert db.name == "shop"
    assert database.db is db
    assert flaky.attempts == 3
    assert no_sleep == [5, 5]
    assert flaky.closed == 2


def test_connect_gives_up_after_retries(no_sleep):
    flaky = FlakyClient(failures=10)

    with pytest.raises(ServerSelectionTimeoutError):
        database.connect("mongodb://db:27017", retries=3, delay=1, client_factory=flaky)

    assert flaky.attempts == 3
    assert no_sleep == [1, 1]
    assert flaky.closed == 3
    assert database.db is None


def test_unexpected_errors_become_500(client, monkeypatch):
    def boom(db):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(main.categories, "list_categories", boom)
    monkeypatch.setattr(config, "APP_ENV", "production")

    response = TestClient(app, raise_server_exceptions=False).get("/api/categories")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error"}


def test_unhandled_async_error_schedules_exit():
    loop = MagicMock()

    main.handle_unhandled_exception(loop, {"message": "Task exception was never retrieved", "exception": ValueError("x")})

    loop.call_later.assert_called_once_with(main.EXIT_GRACE_SECONDS, main._exit_process)


def test_unexpected_errors_are_logged_with_arguments(client, monkeypatch, caplog):
    def boom(db):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(main.categories, "list_categories", boom)

    with caplog.at_level(logging.ERROR, logger="main"):
        TestClient(app, raise_server_exceptions=False).get("/api/categories")

    record = next(r for r in caplog.records if r.name == "main")
    assert record.msg == "Unhandled exception on %s %s: %s"
    assert record.getMessage() == "Unhandled exception on GET /api/categories: kaboom"
