"""
Demo Credential Store

The authentication collaborator the ledger is opened from. It is a demo
store: users live in a local JSON file, passwords are kept as sha256
digests and Google credentials are decoded without verifying the
signature. Only its contract matters to the ledger: a successful login
yields an Identity.

login/signup are async and sleep for a configurable latency to stand in
for a network round-trip. The ledger is never touched while they run.
"""

import asyncio
import base64
import binascii
import hashlib
import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from rent_ledger.config import LedgerSettings, get_settings
from rent_ledger.models.ledger import new_id
from rent_ledger.models.identity import Identity


class AuthenticationError(Exception):
    """Login or signup was refused."""
    pass


class StoredUser(BaseModel):
    """A user row in the demo user database."""

    id: str = Field(default_factory=new_id)
    name: str
    email: str
    picture: Optional[str] = None
    # Empty for users who only ever signed in with Google
    password_hash: str = ""

    def to_identity(self) -> Identity:
        return Identity(id=self.id, name=self.name, email=self.email, picture=self.picture)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def decode_jwt_payload(token: str) -> Optional[dict]:
    """Decode the payload segment of a JWT. Returns None if malformed."""
    try:
        segment = token.split(".")[1]
        padded = segment + "=" * (-len(segment) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded).decode("utf-8"))
    except (IndexError, ValueError, binascii.Error, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


class CredentialStore:
    """
    Demo user database plus the current session.

    Pass path=None to keep users in memory only.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._path = Path(path) if path else None
        self._users: list[StoredUser] = self._load_users()
        self._current: Optional[Identity] = None
        self._logger = structlog.get_logger("rent_ledger.auth")

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    def _load_users(self) -> list[StoredUser]:
        if self._path is None or not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return [StoredUser(**row) for row in data]
        except (OSError, ValueError, TypeError) as e:
            structlog.get_logger("rent_ledger.auth").warning(
                "user_db_unreadable", path=str(self._path), error=str(e),
            )
            return []

    def _save_users(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps([user.model_dump() for user in self._users], indent=2),
            encoding="utf-8",
        )

    def _find(self, email: str) -> Optional[StoredUser]:
        return next((user for user in self._users if user.email == email), None)

    async def _simulate_latency(self) -> None:
        if self._settings.auth_latency_seconds:
            await asyncio.sleep(self._settings.auth_latency_seconds)

    async def login(self, identifier: str, password: str) -> Identity:
        """
        Log in with an email or mobile number and a password.

        Raises:
            AuthenticationError: If the credentials don't match
        """
        await self._simulate_latency()
        user = self._find(identifier)
        if user is None or not user.password_hash or user.password_hash != hash_password(password):
            self._logger.info("login_failed", identifier=identifier)
            raise AuthenticationError("Invalid email/mobile or password")
        self._current = user.to_identity()
        self._logger.info("login_succeeded", user_id=user.id)
        return self._current

    async def signup(self, name: str, identifier: str, password: str) -> Identity:
        """
        Create a user and log them in.

        Raises:
            AuthenticationError: If the identifier is taken
        """
        await self._simulate_latency()
        if self._find(identifier) is not None:
            raise AuthenticationError("User with this email or mobile already exists")
        user = StoredUser(name=name, email=identifier, password_hash=hash_password(password))
        self._users.append(user)
        self._save_users()
        self._current = user.to_identity()
        self._logger.info("signup_succeeded", user_id=user.id)
        return self._current

    async def login_with_google(self, credential: str) -> Identity:
        """
        Log in with a Google ID token, creating the user on first use.

        Raises:
            AuthenticationError: If the token can't be decoded
        """
        payload = decode_jwt_payload(credential)
        if not payload or not payload.get("email"):
            raise AuthenticationError("Invalid Google credential")

        user = self._find(payload["email"])
        if user is None:
            user = StoredUser(
                name=payload.get("name") or payload["email"],
                email=payload["email"],
                picture=payload.get("picture"),
            )
            self._users.append(user)
            self._save_users()
        elif payload.get("picture") and user.picture != payload["picture"]:
            user.picture = payload["picture"]
            self._save_users()

        self._current = user.to_identity()
        self._logger.info("google_login_succeeded", user_id=user.id)
        return self._current

    def logout(self) -> None:
        self._current = None
