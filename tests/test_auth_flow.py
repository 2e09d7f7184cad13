"""Integration tests for the authentication protocol.

Covers signup, email confirmation, login, refresh rotation, password reset,
logout and Google sign-in through the HTTP API.
"""

from datetime import timedelta

from backend.db.base import utcnow
from backend.models.refresh_token import RefreshToken
from backend.models.role import Role
from backend.models.user import AccountState, User
from backend.services.identity_service import FederatedIdentity

from conftest import PASSWORD


def _user(db, email):
    db.expire_all()
    return db.query(User).filter(User.email == email).first()


class TestSignup:
    def test_signup_creates_unconfirmed_user_and_sends_code(self, client, db, email_service):
        resp = client.post(
            "/api/auth/signup",
            json={
                "first_name": "Alice",
                "last_name": "Smith",
                "email": "alice@example.com",
                "password": PASSWORD,
            },
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["user"]["full_name"] == "Alice Smith"
        assert body["user"]["role"] == "user"

        user = _user(db, "alice@example.com")
        assert user.account_state == AccountState.PENDING_CONFIRMATION
        assert user.hashed_password != PASSWORD
        assert user.otp_attempts == 0
        assert len(email_service.sent) == 1
        assert email_service.sent[0]["subject"] == "Saraha App - Verify your email"

    def test_duplicate_email_conflicts(self, client, signup):
        signup()
        resp = client.post(
            "/api/auth/signup",
            json={"first_name": "Al", "last_name": "Sm", "email": "alice@example.com", "password": PASSWORD},
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "Email already exists"

    def test_email_failure_rolls_back_user(self, client, db, email_service):
        email_service.fail = True
        resp = client.post(
            "/api/auth/signup",
            json={"first_name": "Al", "last_name": "Sm", "email": "bob@example.com", "password": PASSWORD},
        )
        assert resp.status_code == 500
        assert resp.json()["message"] == "Failed to send verification email."
        assert _user(db, "bob@example.com") is None

    def test_weak_password_is_rejected(self, client):
        resp = client.post(
            "/api/auth/signup",
            json={"first_name": "Al", "last_name": "Sm", "email": "bob@example.com", "password": "ab!"},
        )
        assert resp.status_code == 400
        assert "password" in resp.json()["message"]


class TestEmailConfirmation:
    def test_confirm_once_then_already_confirmed(self, client, db, signup):
        code = signup()
        resp = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": code})
        assert resp.status_code == 200
        assert _user(db, "alice@example.com").account_state == AccountState.ACTIVE

        again = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": code})
        assert again.status_code == 400
        assert again.json()["message"] == "Email is already confirmed"

    def test_wrong_code_counts_attempts_then_locks(self, client, db, signup):
        code = signup()
        wrong = "000000" if code != "000000" else "111111"

        for remaining in (2, 1, 0):
            resp = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": wrong})
            assert resp.status_code == 400
            assert resp.json()["message"] == f"Invalid code. {remaining} attempts left."

        # Even the right code is refused after three failures
        resp = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": code})
        assert resp.status_code == 429
        assert _user(db, "alice@example.com").otp_attempts == 3

    def test_expired_code(self, client, db, signup):
        code = signup()
        user = _user(db, "alice@example.com")
        user.otp_expires_at = utcnow() - timedelta(seconds=1)
        db.commit()

        resp = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": code})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Code expired. Please request a new one."

    def test_unknown_email(self, client):
        resp = client.post("/api/auth/verify-email", json={"email": "ghost@example.com", "code": "123456"})
        assert resp.status_code == 404

    def test_resend_resets_attempts_and_issues_new_code(self, client, db, signup, email_service):
        signup()
        client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": "000000"})

        resp = client.post("/api/auth/resend-code", json={"email": "alice@example.com"})
        assert resp.status_code == 200
        assert _user(db, "alice@example.com").otp_attempts == 0

        new_code = email_service.last_code("alice@example.com")
        resp = client.post("/api/auth/verify-email", json={"email": "alice@example.com", "code": new_code})
        assert resp.status_code == 200

    def test_resend_for_confirmed_user_fails(self, client, active_account):
        active_account()
        resp = client.post("/api/auth/resend-code", json={"email": "alice@example.com"})
        assert resp.status_code == 400


class TestLogin:
    def test_login_returns_token_pair(self, active_account):
        body = active_account()
        assert body["access_token"]
        assert body["refresh_token"]
        assert body["user"]["email"] == "alice@example.com"
        assert body["token_type"] == "bearer"

    def test_unconfirmed_and_wrong_password_look_the_same(self, client, signup, active_account):
        signup(email="pending@example.com")
        active_account()

        pending = client.post("/api/auth/login", json={"email": "pending@example.com", "password": PASSWORD})
        wrong = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong123"})
        missing = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})

        assert pending.status_code == wrong.status_code == missing.status_code == 401
        assert pending.json() == wrong.json() == missing.json()

    def test_self_frozen_account_is_restored_on_login(self, client, db, active_account, auth_header, login):
        tokens = active_account()
        resp = client.patch("/api/users/freeze-account", headers=auth_header(tokens["access_token"]))
        assert resp.json()["message"] == "Account deactivated successfully"

        login("alice@example.com")
        user = _user(db, "alice@example.com")
        assert user.account_state == AccountState.ACTIVE
        assert user.restored_by == user.id

    def test_banned_account_cannot_login(self, client, db, active_account, make_user):
        active_account()
        admin = make_user(role=Role.ADMIN)
        user = _user(db, "alice@example.com")
        user.transition_to(AccountState.BANNED)
        user.deleted_by = admin.id
        db.commit()

        resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        assert resp.status_code == 403
        assert resp.json()["message"] == "Your account has been banned by admin."


class TestRefresh:
    def test_refresh_is_single_use(self, client, active_account):
        tokens = active_account()

        first = client.post("/api/auth/refresh-token", json={"token": tokens["refresh_token"]})
        assert first.status_code == 200
        assert first.json()["refresh_token"] != tokens["refresh_token"]

        second = client.post("/api/auth/refresh-token", json={"token": tokens["refresh_token"]})
        assert second.status_code == 401
        assert second.json()["message"] == "Refresh token is not valid or reused!"

    def test_rotated_token_keeps_working(self, client, active_account):
        tokens = active_account()
        rotated = client.post("/api/auth/refresh-token", json={"token": tokens["refresh_token"]}).json()
        again = client.post("/api/auth/refresh-token", json={"token": rotated["refresh_token"]})
        assert again.status_code == 200

    def test_logout_all_kills_every_refresh_token(self, client, active_account, login, auth_header):
        first = active_account()
        second = login("alice@example.com")

        resp = client.post("/api/auth/logout-all", headers=auth_header(first["access_token"]))
        assert resp.status_code == 200

        for raw in (first["refresh_token"], second["refresh_token"]):
            resp = client.post("/api/auth/refresh-token", json={"token": raw})
            assert resp.status_code == 401

    def test_logout_single_session(self, client, db, active_account, login, auth_header):
        first = active_account()
        second = login("alice@example.com")

        resp = client.post(
            "/api/auth/logout",
            json={"token": first["refresh_token"]},
            headers=auth_header(first["access_token"]),
        )
        assert resp.status_code == 200
        assert client.post("/api/auth/refresh-token", json={"token": first["refresh_token"]}).status_code == 401
        assert client.post("/api/auth/refresh-token", json={"token": second["refresh_token"]}).status_code == 200

        # Logging out an already revoked token is not an error
        again = client.post(
            "/api/auth/logout",
            json={"token": first["refresh_token"]},
            headers=auth_header(first["access_token"]),
        )
        assert again.status_code == 200

    def test_refresh_for_banned_user_is_forbidden(self, client, db, active_account):
        tokens = active_account()
        user = _user(db, "alice@example.com")
        user.transition_to(AccountState.BANNED)
        db.commit()

        resp = client.post("/api/auth/refresh-token", json={"token": tokens["refresh_token"]})
        assert resp.status_code == 403

    def test_tampered_refresh_token(self, client, active_account):
        tokens = active_account()
        resp = client.post("/api/auth/refresh-token", json={"token": tokens["refresh_token"][:-3] + "abc"})
        assert resp.status_code == 401


class TestPasswordReset:
    def _request_code(self, client, email_service, email="alice@example.com"):
        resp = client.post("/api/auth/forgot-password", json={"email": email})
        assert resp.status_code == 200
        return email_service.last_code(email)

    def test_reset_replaces_password_and_revokes_sessions(self, client, db, active_account, email_service, login):
        tokens = active_account()
        code = self._request_code(client, email_service)

        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "alice@example.com", "code": code, "new_password": "NewPass99", "confirm_password": "NewPass99"},
        )
        assert resp.status_code == 200

        assert client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}).status_code == 401
        login("alice@example.com", "NewPass99")
        assert client.post("/api/auth/refresh-token", json={"token": tokens["refresh_token"]}).status_code == 401

        user = _user(db, "alice@example.com")
        assert user.password_reset_code_hash is None
        assert user.password_reset_expires_at is None

    def test_wrong_reset_code(self, client, active_account, email_service):
        active_account()
        code = self._request_code(client, email_service)
        wrong = "000000" if code != "000000" else "111111"

        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "alice@example.com", "code": wrong, "new_password": "NewPass99", "confirm_password": "NewPass99"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid code"

    def test_reset_locks_after_three_wrong_codes(self, client, db, active_account, email_service):
        active_account()
        code = self._request_code(client, email_service)
        wrong = "000000" if code != "000000" else "111111"

        def attempt(value):
            return client.post(
                "/api/auth/reset-password",
                json={"email": "alice@example.com", "code": value, "new_password": "NewPass99", "confirm_password": "NewPass99"},
            )

        for _ in range(3):
            assert attempt(wrong).status_code == 400

        locked = attempt(code)
        assert locked.status_code == 429
        assert locked.json()["message"] == "Too many failed attempts. Please request a new code."
        assert _user(db, "alice@example.com").password_reset_attempts == 3

        # A fresh code clears the counter
        new_code = self._request_code(client, email_service)
        assert attempt(new_code).status_code == 200

    def test_expired_reset_code(self, client, db, active_account, email_service):
        active_account()
        code = self._request_code(client, email_service)
        user = _user(db, "alice@example.com")
        user.password_reset_expires_at = utcnow() - timedelta(seconds=1)
        db.commit()

        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "alice@example.com", "code": code, "new_password": "NewPass99", "confirm_password": "NewPass99"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Code expired or invalid"

    def test_confirmation_mismatch_is_a_validation_error(self, client):
        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "alice@example.com", "code": "123456", "new_password": "NewPass99", "confirm_password": "Other99"},
        )
        assert resp.status_code == 400
        assert "Confirm password does not match" in resp.json()["message"]

    def test_forgot_password_unknown_email(self, client):
        resp = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert resp.status_code == 404

    def test_forgot_password_email_failure_clears_code(self, client, db, active_account, email_service):
        active_account()
        email_service.fail = True
        resp = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
        assert resp.status_code == 500
        assert _user(db, "alice@example.com").password_reset_code_hash is None


class TestGoogleLogin:
    def test_first_login_creates_confirmed_user(self, client, db, identity_provider):
        identity_provider.identities["good-token"] = FederatedIdentity(
            email="gina@example.com",
            subject_id="google-123",
            name="Gina Lopez",
            given_name="Gina",
            family_name="Lopez",
            picture="http://img.test/gina.png",
        )
        resp = client.post("/api/auth/google", json={"id_token": "good-token"})
        assert resp.status_code == 200
        assert resp.json()["access_token"]

        user = _user(db, "gina@example.com")
        assert user.account_state == AccountState.ACTIVE
        assert user.google_id == "google-123"
        assert user.avatar_url == "http://img.test/gina.png"

        # Password login stays impossible for the placeholder password
        assert client.post("/api/auth/login", json={"email": "gina@example.com", "password": PASSWORD}).status_code == 401

    def test_existing_pending_user_is_linked_and_confirmed(self, client, db, signup, identity_provider):
        signup()
        identity_provider.identities["tok"] = FederatedIdentity(email="alice@example.com", subject_id="g-1")

        resp = client.post("/api/auth/google", json={"id_token": "tok"})
        assert resp.status_code == 200
        user = _user(db, "alice@example.com")
        assert user.google_id == "g-1"
        assert user.is_confirmed

    def test_invalid_google_token(self, client):
        resp = client.post("/api/auth/google", json={"id_token": "bogus"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid Google Token"


def test_refresh_sessions_are_persisted_per_login(db, active_account, login):
    active_account()
    login("alice@example.com")
    db.expire_all()
    assert db.query(RefreshToken).count() == 2
