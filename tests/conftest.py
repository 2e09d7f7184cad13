import os
import re

import pytest
from fastapi.testclient import TestClient

from backend.core.config import Settings
from backend.core.exceptions import AuthenticationError, StorageError
from backend.core.security import hash_password
from backend.db.base import Base
from backend.main import create_app
from backend.models.role import Role
from backend.models.user import AccountState, User
from backend.services.identity_service import FederatedIdentity
from backend.services.storage_service import StoredImage
from backend.services.token_service import TokenService

OTP_RE = re.compile(r">(\d{6})<")
PASSWORD = "Secret123"


class FakeEmailService:
    """Captures outgoing emails instead of talking to SMTP."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to: str, subject: str, html: str) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True

    def last_code(self, to: str) -> str:
        for mail in reversed(self.sent):
            if mail["to"] == to:
                return OTP_RE.search(mail["html"]).group(1)
        raise AssertionError(f"no email sent to {to}")


class FakeAvatarStorage:
    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_upload = False
        self.fail_delete = False
        self._counter = 0

    def upload_image(self, path: str, folder: str, content_type: str) -> StoredImage:
        self.uploads.append({"path": path, "existed": os.path.exists(path), "folder": folder})
        if self.fail_upload:
            raise StorageError("something went wrong on the website's server")
        self._counter += 1
        key = f"{folder}/avatar-{self._counter}"
        return StoredImage(url=f"http://storage.test/{key}", storage_id=key)

    def delete_image(self, storage_id: str) -> None:
        if self.fail_delete:
            raise StorageError("something went wrong on the website's server")
        self.deleted.append(storage_id)


class FakeIdentityProvider:
    def __init__(self):
        self.identities = {}

    def verify(self, id_token: str) -> FederatedIdentity:
        if id_token not in self.identities:
            raise AuthenticationError("Invalid Google Token")
        return self.identities[id_token]


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        DEBUG=False,
        AUTO_CREATE_TABLES=False,
        RATE_LIMIT_ENABLED=False,
        PASSWORD_HASH_ROUNDS=4,
        OTP_HASH_ROUNDS=4,
        MAX_UPLOAD_SIZE_MB=1,
        GOOGLE_CLIENT_ID="test-client",
    )


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def avatar_storage():
    return FakeAvatarStorage()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def app(settings, email_service, avatar_storage, identity_provider):
    app = create_app(
        settings,
        email_service=email_service,
        avatar_storage=avatar_storage,
        identity_provider=identity_provider,
    )
    Base.metadata.create_all(app.state.engine)
    yield app
    Base.metadata.drop_all(app.state.engine)
    app.state.engine.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def tokens(settings):
    return TokenService(settings)


@pytest.fixture
def make_user(db):
    """Insert a user straight into the database."""
    counter = {"n": 0}

    def _make(
        email=None,
        role=Role.USER,
        state=AccountState.ACTIVE,
        password=PASSWORD,
    ) -> User:
        counter["n"] += 1
        user = User(
            first_name="Test",
            last_name=f"User{counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            hashed_password=hash_password(password, rounds=4),
            role=role,
            account_state=state,
            otp_attempts=0,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def signup(client, email_service):
    """Register through the API and return the OTP that was emailed."""

    def _signup(email="alice@example.com", password=PASSWORD, **extra):
        body = {
            "first_name": "Alice",
            "last_name": "Smith",
            "email": email,
            "password": password,
        }
        body.update(extra)
        resp = client.post("/api/auth/signup", json=body)
        assert resp.status_code == 201, resp.text
        return email_service.last_code(email)

    return _signup


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _login


@pytest.fixture
def active_account(signup, client, login):
    """A confirmed user created through the API; returns its login payload."""

    def _create(email="alice@example.com", password=PASSWORD):
        code = signup(email=email, password=password)
        resp = client.post("/api/auth/verify-email", json={"email": email, "code": code})
        assert resp.status_code == 200, resp.text
        return login(email, password)

    return _create


@pytest.fixture
def auth_header():
    def _header(access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}"}

    return _header
