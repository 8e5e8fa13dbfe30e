"""
Rent Ledger

Bookkeeping for residential and commercial rentals: properties, tenants
and an append-only ledger of rent charges, payments and deductions.

DESIGN PRINCIPLES:
1. A balance is always the fold of the tenant's events
2. Reject bad input before anything is recorded
3. No silent corrections
4. Every command is auditable
5. Storage layer is swappable, and scoped per identity
"""

__version__ = "1.0.0"
__author__ = "Rent Ledger Team"
