"""
Error taxonomy of the panel services.

Every failure raised by a service is a CoreError tagged with an ErrorKind.
Callers decide what to show by switching on `kind`:

- VALIDATION: caller input broke a declared contract; `user_message` is safe
  to show verbatim
- NOT_FOUND: an identity lookup found nothing
- STORE_UNAVAILABLE: the database could not be reached or the query failed
- RECONCILIATION: restoring state after a primary failure failed too. Never
  raised on its own: attached to the primary error as `reconciliation`.

The subclasses only preset `kind` so services can raise them tersely.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import ValidationError as PydanticValidationError


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    RECONCILIATION = "RECONCILIATION"


class CoreError(Exception):
    """
    Tagged service error.

    Args:
        kind: What went wrong, drives presentation
        message: Internal detail, for logs only
        user_message: Text that may be shown to the caller (VALIDATION only)
    """

    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, message: str, user_message: Optional[str] = None, kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        self.user_message = user_message
        self.reconciliation: Optional[CoreError] = None
        super().__init__(message)


class ValidationError(CoreError):
    """Input violates a declared contract. The message is shown to the caller."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message, user_message=message)


class NotFoundError(CoreError):
    kind = ErrorKind.NOT_FOUND


class StoreUnavailableError(CoreError):
    kind = ErrorKind.STORE_UNAVAILABLE


class ReconciliationError(CoreError):
    kind = ErrorKind.RECONCILIATION


def validation_error_from_pydantic(exc: PydanticValidationError, prefix: str) -> ValidationError:
    """
    Flatten a pydantic ValidationError into one readable ValidationError.

    Example:
        "invalid filters: limit: Input should be greater than or equal to 1"
    """
    details = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        details.append(f"{location}: {err['msg']}" if location else err["msg"])
    return ValidationError(f"{prefix}: {'; '.join(details)}")
