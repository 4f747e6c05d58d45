"""
Common schemas shared across subsystems.

**Domain Coverage**:
- Currency code validation (ISO 4217 style codes plus crypto tickers like XBT)
- PNResult: the {success, messages, body} envelope every panel action returns

**Design Notes**:
- The envelope carries no transport detail (no HTTP status); `error_kind`
  lets the presentation layer pick one.
"""
# Postpones evaluation of type hints to improve imports and performance. Also avoid circular import issues.
from __future__ import annotations

import re
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from backend.app.errors import ErrorKind

# Three to five upper-case letters: EUR, USD, XBT, USDT
_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3,5}$")


def validate_currency_code(code: str) -> str:
    """
    Normalize and validate a currency code.

    Args:
        code: Currency code in any case, surrounding spaces allowed

    Returns:
        Upper-case code

    Raises:
        ValueError: If the code is not 3-5 letters
    """
    if not isinstance(code, str):
        raise ValueError(f"Currency code must be a string, got {type(code).__name__}")
    normalized = code.strip().upper()
    if not _CURRENCY_CODE_RE.match(normalized):
        raise ValueError(f"Invalid currency code: {code!r}")
    return normalized


# =============================================================================
# RESULT ENVELOPE
# =============================================================================

class PNSeverity(str, Enum):
    INFO = "INFO"
    ERROR = "ERROR"


class PNMessage(BaseModel):
    """Human-readable message attached to a panel result."""
    model_config = ConfigDict(frozen=True)

    severity: PNSeverity
    text: str

    @classmethod
    def info(cls, text: str) -> PNMessage:
        return cls(severity=PNSeverity.INFO, text=text)

    @classmethod
    def error(cls, text: str) -> PNMessage:
        return cls(severity=PNSeverity.ERROR, text=text)


TBody = TypeVar('TBody')


class PNResult(BaseModel, Generic[TBody]):
    """
    Outcome of a panel action.

    Standard fields:
    - success: False on every failure path
    - messages: INFO and/or ERROR messages; a failure has at least one ERROR
    - body: the payload (None on failure)
    - error_kind: set on failure only, so the caller can map it to a transport status
    """
    success: bool
    messages: List[PNMessage] = Field(default_factory=list)
    body: Optional[TBody] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def errors(self) -> List[str]:
        """Texts of the ERROR messages."""
        return [m.text for m in self.messages if m.severity == PNSeverity.ERROR]
