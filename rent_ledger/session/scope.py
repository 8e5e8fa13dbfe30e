"""
Scope Resolver

Maps an authenticated identity to the key of its private ledger
namespace. Every store operation takes this key, so two identities can
never see or change each other's properties, tenants or transactions.
There is deliberately no cross-scope read.
"""

from typing import Optional

from rent_ledger.config import get_settings
from rent_ledger.errors import ScopeRequiredError
from rent_ledger.models.identity import Identity


def resolve_scope(identity: Optional[Identity], prefix: Optional[str] = None) -> str:
    """
    Return the storage key for an identity's ledger.

    Raises:
        ScopeRequiredError: If there is no authenticated identity
    """
    if identity is None or not identity.id:
        raise ScopeRequiredError(
            "A ledger cannot be opened without an authenticated identity"
        )
    if prefix is None:
        prefix = get_settings().ledger.scope_key_prefix
    return f"{prefix}{identity.id}"
