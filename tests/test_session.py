"""
Tests for scope resolution and the demo credential store.
"""

import asyncio
import base64
import json

import pytest

from rent_ledger.errors import ScopeRequiredError
from rent_ledger.models import Identity
from rent_ledger.session import (
    AuthenticationError,
    CredentialStore,
    decode_jwt_payload,
    resolve_scope,
)


def make_google_token(payload):
    """Unsigned JWT-shaped token carrying the given payload."""
    def encode(part):
        return base64.urlsafe_b64encode(json.dumps(part).encode()).decode().rstrip("=")
    return f"{encode({'alg': 'none'})}.{encode(payload)}.signature"


class TestResolveScope:
    """Tests for identity -> scope key."""

    def test_prefix_plus_id(self, alice):
        assert resolve_scope(alice, "myt_rentals_v1_") == "myt_rentals_v1_user-alice"

    def test_distinct_identities_distinct_scopes(self, alice, bob):
        assert resolve_scope(alice, "p_") != resolve_scope(bob, "p_")

    def test_no_identity(self):
        with pytest.raises(ScopeRequiredError):
            resolve_scope(None, "p_")

    def test_blank_identity_id(self):
        with pytest.raises(ScopeRequiredError):
            resolve_scope(Identity(id="", name="X", email="x@example.com"), "p_")


class TestCredentialStore:
    """Tests for demo login and signup."""

    @pytest.fixture
    def users(self, tmp_path, settings):
        return CredentialStore(path=tmp_path / "users.json", settings=settings)

    def test_signup_then_login(self, users, tmp_path, settings):
        created = asyncio.run(users.signup("Alice", "alice@example.com", "s3cret"))
        assert users.current_identity == created

        reloaded = CredentialStore(path=tmp_path / "users.json", settings=settings)
        identity = asyncio.run(reloaded.login("alice@example.com", "s3cret"))
        assert identity.id == created.id

    def test_passwords_not_stored_in_clear(self, users, tmp_path):
        asyncio.run(users.signup("Alice", "alice@example.com", "s3cret"))
        assert "s3cret" not in (tmp_path / "users.json").read_text(encoding="utf-8")

    def test_duplicate_signup_rejected(self, users):
        asyncio.run(users.signup("Alice", "alice@example.com", "s3cret"))
        with pytest.raises(AuthenticationError, match="already exists"):
            asyncio.run(users.signup("Other", "alice@example.com", "x"))

    def test_wrong_password(self, users):
        asyncio.run(users.signup("Alice", "alice@example.com", "s3cret"))
        users.logout()
        with pytest.raises(AuthenticationError, match="Invalid email/mobile or password"):
            asyncio.run(users.login("alice@example.com", "nope"))
        assert users.current_identity is None

    def test_google_login_creates_then_reuses_user(self, users):
        token = make_google_token({
            "email": "g@example.com", "name": "Gee", "picture": "https://img/1",
        })
        first = asyncio.run(users.login_with_google(token))
        assert first.picture == "https://img/1"

        newer = make_google_token({"email": "g@example.com", "picture": "https://img/2"})
        second = asyncio.run(users.login_with_google(newer))
        assert second.id == first.id
        assert second.picture == "https://img/2"

    def test_google_user_cannot_password_login(self, users):
        asyncio.run(users.login_with_google(make_google_token({"email": "g@example.com"})))
        with pytest.raises(AuthenticationError):
            asyncio.run(users.login("g@example.com", ""))

    @pytest.mark.parametrize("token", ["garbage", "a.!!!.c", make_google_token({"name": "no email"})])
    def test_bad_google_credential(self, users, token):
        with pytest.raises(AuthenticationError, match="Invalid Google credential"):
            asyncio.run(users.login_with_google(token))

    def test_decode_jwt_payload(self):
        assert decode_jwt_payload(make_google_token({"email": "a@b"})) == {"email": "a@b"}
        assert decode_jwt_payload("only-one-part") is None
