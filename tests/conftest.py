# tests/conftest.py
import pytest

from freelancer.app import create_app
from freelancer.config import TestingConfig
from freelancer.database import db


class FakeClock:
    """Stands in for time.time so throttle windows can be stepped over"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def app():
    # fresh in-memory database per test
    app = create_app(TestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def auth_manager(app_ctx):
    return app_ctx.extensions['auth_manager']


@pytest.fixture()
def clock(app):
    fake = FakeClock()
    app.extensions['login_throttle'].clock = fake
    return fake


@pytest.fixture()
def register(client):
    def _register(email="alice@example.com", password="P@ssw0rd!"):
        r = client.post("/register", json={"email": email, "password": password})
        assert r.status_code == 201, r.get_json()
        return r.get_json()
    return _register


@pytest.fixture()
def login(client):
    def _login(email="alice@example.com", password="P@ssw0rd!", token=None, ip=None):
        body = {"email": email, "password": password}
        if token is not None:
            body["token"] = token
        headers = {"X-Forwarded-For": ip} if ip else {}
        return client.post("/login", json=body, headers=headers)
    return _login


@pytest.fixture()
def auth_headers(register, login):
    """Register + log in a user, return headers carrying its bearer token"""
    def _auth_headers(email="alice@example.com", password="P@ssw0rd!"):
        register(email, password)
        r = login(email, password)
        assert r.status_code == 200, r.get_json()
        return {"Authorization": f"Bearer {r.get_json()['token']}"}
    return _auth_headers
