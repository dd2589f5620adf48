"""Shared fixtures: every test gets its own sqlite file and admin passphrase."""
import pytest
from fastapi.testclient import TestClient

from pieparty import config, db
from pieparty.main import app

ADMIN_PASSWORD = "crust-and-crumb"


@pytest.fixture()
def store(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DB_PATH", str(tmp_path / "test.sqlite"))
    monkeypatch.setattr(config, "ADMIN_PASSPHRASE", ADMIN_PASSWORD)
    db.init_db()
    return db


@pytest.fixture()
def client(store):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin():
    return {"admin_password": ADMIN_PASSWORD}


@pytest.fixture()
def open_submissions(store):
    store.set_settings(submissions_open=True)
