"""
Ledger Exceptions

Validation failures are raised BEFORE any state changes, so a caller that
catches LedgerValidationError can show the issues and keep the form open.
"""

from pydantic import ValidationError

from rent_ledger.models.reports import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerValidationError(LedgerError):
    """Operator input was rejected. Nothing was recorded."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        messages = "; ".join(issue.message for issue in issues)
        super().__init__(f"Validation failed: {messages}")

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "LedgerValidationError":
        """Translate a pydantic ValidationError into ledger issues."""
        return cls([
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]) or "record",
                issue_type=err["type"],
                message=err["msg"],
            )
            for err in exc.errors()
        ])

    def to_dicts(self) -> list[dict]:
        return [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in self.issues
        ]


class NotFoundError(LedgerValidationError):
    """A referenced tenant or property does not exist in this scope."""

    def __init__(self, field: str, entity: str, entity_id: str):
        super().__init__([
            ValidationIssue(
                field=field,
                issue_type="not_found",
                message=f"{entity} not found: {entity_id}",
                suggested_fix=f"Select an existing {entity.lower()}",
            )
        ])


class ScopeRequiredError(LedgerError):
    """
    A ledger was requested without an authenticated identity.

    This is a programming error, never a runtime condition shown to users.
    """
    pass


class BalanceDivergenceError(LedgerError):
    """A cached tenant balance no longer matches the fold of its events."""

    def __init__(self, mismatches: dict):
        self.mismatches = mismatches
        super().__init__(
            f"Balance cache diverged from event log for {len(mismatches)} tenant(s)"
        )
