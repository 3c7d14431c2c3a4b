"""Error taxonomy for the loan plan core.

Every error carries the name of the offending field (when there is one) so
that the HTTP layer and the CLI can point the caller at what to fix.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PlanError(Exception):
    """Base exception for all loan plan errors."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def __str__(self) -> str:
        if self.field:
            return f"{self.message} (field: {self.field})"
        return self.message


class MissingRequiredField(PlanError):
    """Raised when a required input is absent or empty."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required field '{field}'", field=field)


class InvalidAmount(PlanError):
    """Raised when the principal is not a finite number."""

    def __init__(self, value: Any, field: str = "monto") -> None:
        super().__init__(f"Invalid amount: {value!r}", field=field, details={"value": value})


class InvalidTerms(PlanError):
    """Raised for a bad installment count, rate or date."""

    def __init__(self, field: str, reason: str, value: Any = None) -> None:
        super().__init__(f"Invalid {field}: {reason}", field=field, details={"value": value})


class NotFound(PlanError):
    """Raised when a plan id is unknown."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Plan '{plan_id}' not found", field="id", details={"id": plan_id})
        self.plan_id = plan_id


class StorageError(PlanError):
    """Raised when the backing snapshot cannot be read or decoded."""
