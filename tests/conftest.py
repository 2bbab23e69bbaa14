import pytest

from xfin.app import create_app


def make_app(tmp_path, **overrides):
    config = {
        "TESTING": True,
        "DATABASE": str(tmp_path / "xfin-test.db"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
        "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
        "RATELIMIT_ENABLED": False,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture
def app(tmp_path):
    return make_app(tmp_path)


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="ana@example.com", password="secret123", name="Ana"):
    resp = client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def session(client):
    """Registered user's tokens."""
    return register(client)


@pytest.fixture
def auth(session):
    return bearer(session["access_token"])


@pytest.fixture
def onboarded(client, auth):
    resp = client.post("/api/v1/onboarding/initial-balance", json={"initial_balance": 1000}, headers=auth)
    assert resp.status_code == 200
    return auth


def category_id(client, headers, name, cat_type):
    resp = client.get(f"/api/v1/categories?type={cat_type}", headers=headers)
    for category in resp.get_json():
        if category["name"] == name:
            return category["id"]
    raise AssertionError(f"category {name} not found")
