"""Session package: identity to ledger-scope mapping and demo authentication."""

from rent_ledger.session.auth import (
    AuthenticationError,
    CredentialStore,
    decode_jwt_payload,
)
from rent_ledger.session.scope import resolve_scope

__all__ = [
    "AuthenticationError",
    "CredentialStore",
    "decode_jwt_payload",
    "resolve_scope",
]
