"""Domain errors raised by the island engine.

Every error carries a stable ``code`` (reported to the caller verbatim) and the
HTTP status the routers map it to.  All of them subclass ValueError so callers
that only care about "the request was rejected" can keep catching ValueError.

  ValidationError         rejected before any read of mutable state
  PreconditionError       rejected after a read, before any write
  InsufficientFundsError  rejected before any debit
  ConflictError           optimistic-concurrency retries exhausted; retry later
  FatalInconsistencyError a compensating reversal failed; needs reconciliation
"""

from __future__ import annotations

from typing import Any


class IslandEngineError(ValueError):
    status_code: int = 400
    default_code: str = "IslandEngineError"

    def __init__(self, code: str | None = None, message: str | None = None, **details: Any):
        self.code = code or self.default_code
        self.details = details
        super().__init__(message or self.code)

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"error": self.code, "message": str(self)}
        if self.details:
            detail.update(self.details)
        return detail


class ValidationError(IslandEngineError):
    default_code = "ValidationError"


class PreconditionError(IslandEngineError):
    default_code = "PreconditionFailed"


class IslandNotFoundError(PreconditionError):
    status_code = 404
    default_code = "IslandNotFound"


class NotOwnerError(PreconditionError):
    status_code = 403
    default_code = "NotOwner"


class NationMismatchError(PreconditionError):
    status_code = 403
    default_code = "NationMismatch"


class InsufficientFundsError(IslandEngineError):
    default_code = "InsufficientFunds"


class ConflictError(IslandEngineError):
    status_code = 409
    default_code = "TransactionConflict"


class FatalInconsistencyError(IslandEngineError):
    status_code = 500
    default_code = "FatalInconsistency"
