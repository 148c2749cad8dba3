# app/core/exceptions.py
"""
Error taxonomy for the ledger engine.

Every error is an ``HTTPException`` so routers can let it propagate untouched,
while services stay usable (and testable) without a request in flight. The
``code`` attribute is a stable machine-readable tag that callers can branch on;
``detail`` carries the user-facing message.
"""

from typing import Optional

from fastapi import HTTPException
from starlette import status


class LedgerError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ledger_error"

    def __init__(self, message: str, extra: Optional[dict] = None):
        self.message = message
        self.extra = extra or {}
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": message, **self.extra},
        )

    def __str__(self):
        return self.message


class LedgerValidationError(LedgerError):
    """Bad input: non-positive amount, missing field, future-dated pledge."""

    code = "validation_error"


class BusinessRuleError(LedgerError):
    """Input is well formed but violates a ledger rule (overshoot, full entry, ...)."""

    code = "business_rule"


class InsufficientAdvanceBalanceError(BusinessRuleError):
    code = "insufficient_advance_balance"


class ConcurrencyConflictError(LedgerError):
    """The entry changed underneath us between validation and write. Retry."""

    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_update"


class RecordNotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class PermissionDeniedError(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class MissingActorError(LedgerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
