import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

_tmpdir = tempfile.mkdtemp(prefix="cafepos-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmpdir, "pos.db")
os.environ["POS_TIMEZONE"] = "UTC"
os.environ["FIRESTORE_ENABLED"] = "0"
os.environ.pop("RECEIPT_FUNCTION_URL", None)
os.environ.pop("DAILY_SUMMARY_FUNCTION_URL", None)

import google.auth
import google.auth.exceptions
import pytest
from sqlalchemy import select

from app import app as flask_app
from models import Base, MenuItem, User
from seed import seed_database
from sql_db import SessionLocal, engine

# a fixed business day for recorder/dashboard tests
DAY = datetime(2024, 1, 31, 10, 0, tzinfo=timezone.utc)


def menu_item(item_id, name, price):
    """Stand-in for a catalog row when the builder is tested on its own."""
    return SimpleNamespace(id=item_id, name=name, price=Decimal(price))


@pytest.fixture(autouse=True)
def _fresh_db():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture(autouse=True)
def _no_google_credentials(monkeypatch):
    """
    Keep Secret Manager lookups offline: without env vars get_secret()
    must see no credentials instead of probing the metadata server.
    """

    def _no_creds(*args, **kwargs):
        raise google.auth.exceptions.DefaultCredentialsError("no credentials in tests")

    monkeypatch.setattr(google.auth, "default", _no_creds)


@pytest.fixture()
def s():
    with SessionLocal() as session:
        yield session


@pytest.fixture()
def seeded(s):
    seed_database(s)
    users = {u.username: u.id for u in s.scalars(select(User))}
    menu = {m.name: m.id for m in s.scalars(select(MenuItem))}
    return SimpleNamespace(users=users, menu=menu)


@pytest.fixture()
def cashier_id(seeded):
    return seeded.users["cashier"]


def login(client, username, password):
    return client.post("/login", json={"username": username, "password": password})


@pytest.fixture()
def client():
    flask_app.config["TESTING"] = True
    return flask_app.test_client()


@pytest.fixture()
def cashier_client(seeded):
    c = flask_app.test_client()
    assert login(c, "cashier", "cashier123").status_code == 200
    return c


@pytest.fixture()
def admin_client(seeded):
    c = flask_app.test_client()
    assert login(c, "admin", "admin123").status_code == 200
    return c
