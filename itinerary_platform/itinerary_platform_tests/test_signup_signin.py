import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from itinerary_platform.itinerary_platform.gateway_service.auth import CredentialService, pwd_context
from itinerary_platform.itinerary_platform.gateway_service.config import Settings
from itinerary_platform.itinerary_platform.gateway_service.errors import ConfigError, ConnectError, StoreIOError
from itinerary_platform.itinerary_platform.gateway_service.main import create_app
from itinerary_platform.itinerary_platform.gateway_service.models import User
from itinerary_platform.itinerary_platform.gateway_service.store import CredentialStore


def users_named(client, username):
    with Session(bind=client.app.state.db.engine) as db:
        return db.query(User).filter(User.username == username).all()


def test_signup_and_signin(client):
    signup = client.post("/signup", json={"username": "alice", "password": "wonderland"})
    assert signup.status_code == 200
    assert signup.json() == {"message": "user created"}

    signin = client.post("/signin", json={"username": "alice", "password": "wonderland"})
    assert signin.status_code == 200
    assert signin.json() == {"message": "login success"}


def test_wrong_password_and_unknown_user_get_same_response(client):
    client.post("/signup", json={"username": "alice", "password": "wonderland"})

    wrong_password = client.post("/signin", json={"username": "alice", "password": "wrong"})
    unknown_user = client.post("/signin", json={"username": "bob", "password": "x"})

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == {"error": "invalid username or password"}
    assert unknown_user.json() == wrong_password.json()


def test_password_is_stored_hashed(client):
    client.post("/signup", json={"username": "alice", "password": "wonderland"})

    rows = users_named(client, "alice")
    assert len(rows) == 1
    assert rows[0].password_hash != "wonderland"
    assert pwd_context.verify("wonderland", rows[0].password_hash)


def test_duplicate_signup(client):
    first = client.post("/signup", json={"username": "alice", "password": "wonderland"})
    second = client.post("/signup", json={"username": "alice", "password": "looking-glass"})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {"error": "username already exists"}
    assert len(users_named(client, "alice")) == 1


@pytest.mark.parametrize("path", ["/signup", "/signin"])
@pytest.mark.parametrize("body", [
    {"username": "", "password": "wonderland"},
    {"username": "alice", "password": ""},
    {"username": "alice"},
    {},
    {"username": None, "password": "wonderland"},
    {"username": "alice", "password": None},
])
def test_missing_credentials(client, path, body):
    response = client.post(path, json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "username and password required"}


@pytest.mark.parametrize("path", ["/signup", "/signin"])
def test_malformed_body(client, path):
    not_json = client.post(path, content=b"username=alice", headers={"Content-Type": "application/json"})
    wrong_types = client.post(path, json={"username": ["alice"], "password": 1})

    assert not_json.status_code == 400
    assert not_json.json() == {"error": "invalid request body"}
    assert wrong_types.status_code == 400
    assert wrong_types.json() == {"error": "invalid request body"}


def test_store_failure_does_not_leak_backend_detail(client):
    store = MagicMock(spec=CredentialStore)
    store.insert_user.side_effect = StoreIOError('relation "users" does not exist')
    store.fetch_password_hash.side_effect = StoreIOError('relation "users" does not exist')
    client.app.state.credential_service = CredentialService(store)

    signup = client.post("/signup", json={"username": "alice", "password": "wonderland"})
    signin = client.post("/signin", json={"username": "alice", "password": "wonderland"})

    assert signup.status_code == 500
    assert signup.json() == {"error": "failed to save user"}
    assert signin.status_code == 500
    assert signin.json() == {"error": "internal server error"}


def test_startup_fails_without_database_config():
    settings = Settings(
        DB_USER="",
        DB_PASS="",
        DB_NAME="",
        INSTANCE_CONNECTION_NAME="",
        DB_HOST="",
        DATABASE_URL="",
    )
    app = create_app(settings)

    with pytest.raises(ConfigError):
        with TestClient(app):
            pass


def test_startup_fails_when_database_unreachable(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'missing-dir' / 'gateway.db'}",
        DB_CONNECT_ATTEMPTS=2,
        DB_CONNECT_RETRY_DELAY=0,
    )
    app = create_app(settings)

    with pytest.raises(ConnectError):
        with TestClient(app):
            pass
