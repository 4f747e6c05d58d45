"""
Account schemas for CoinPanel.

**Naming Convention**:
- AC prefix: Account-related schemas

**Design Notes**:
- ACSettings is an immutable value. A patch never edits it: `apply()` builds
  and validates a brand new value, so a half-applied settings object cannot
  exist.
- Settings keys are a closed set (extra="forbid"), unknown keys are
  rejected instead of being stored blindly.
- No read model carries the credential; ACRegistered exposes the freshly
  generated token exactly once.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from backend.app.db.models import Account
from backend.app.schemas.balances import BLBalanceItem
from backend.app.schemas.common import validate_currency_code
from backend.app.schemas.transactions import TXReadItem

# Profile keys an account creation/update may carry
ACCOUNT_PROFILE_KEYS = ("domain", "email_account_contact", "email_customer_contact", "name")

_URL_PATTERN = r"^https?://\S+$"


# =============================================================================
# SETTINGS
# =============================================================================

class ACSettings(BaseModel):
    """
    Per-account panel configuration.

    - callback_url: notified by the processor when a payment changes status
    - return_url: where customers land after paying
    - default_currency: currency preselected for new payment requests
    - payment_expiry_minutes: lifetime of a PENDING payment request
    - send_receipts: e-mail a receipt to the customer contact on PAID
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    callback_url: Optional[str] = Field(default=None, pattern=_URL_PATTERN, max_length=2048)
    return_url: Optional[str] = Field(default=None, pattern=_URL_PATTERN, max_length=2048)
    default_currency: str = Field(default="XBT")
    payment_expiry_minutes: int = Field(default=15, ge=1, le=1440)
    send_receipts: bool = Field(default=True)

    @field_validator('default_currency', mode='before')
    @classmethod
    def _validate_currency(cls, v):
        return validate_currency_code(v)

    @classmethod
    def from_json(cls, raw: str) -> ACSettings:
        return cls.model_validate_json(raw)

    def to_json(self) -> str:
        return self.model_dump_json()

    def apply(self, patch: Mapping[str, Any]) -> ACSettings:
        """
        Return a new settings value with every key of `patch` applied.

        Raises:
            pydantic.ValidationError: unknown key or invalid value
        """
        return ACSettings.model_validate({**self.model_dump(), **dict(patch)})


# =============================================================================
# ACCOUNT CREATE / UPDATE
# =============================================================================

class ACCreateItem(BaseModel):
    """Profile fields accepted when an account is created."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    domain: Optional[str] = Field(default=None, min_length=1, max_length=253)
    email_account_contact: Optional[EmailStr] = None
    email_customer_contact: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class ACUpdateItem(ACCreateItem):
    """Profile fields of a PATCH on the account; at least one is required."""

    @model_validator(mode='after')
    def _not_empty(self) -> ACUpdateItem:
        if not self.model_fields_set:
            raise ValueError("Nothing to update")
        return self


# =============================================================================
# ACCOUNT READ
# =============================================================================

class ACReadItem(BaseModel):
    """Account as shown to its holder. Never includes the credential."""

    id: str
    domain: Optional[str] = None
    email_account_contact: Optional[str] = None
    email_customer_contact: Optional[str] = None
    name: Optional[str] = None
    settings: ACSettings

    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_model(cls, account: Account) -> ACReadItem:
        return cls(
            id=account.id,
            domain=account.domain,
            email_account_contact=account.email_account_contact,
            email_customer_contact=account.email_customer_contact,
            name=account.name,
            settings=ACSettings.from_json(account.settings),
            created_at=account.created_at,
            updated_at=account.updated_at,
            )


class ACRegistered(ACReadItem):
    """Result of a registration: the account plus its one-time auth token."""

    auth_token: str


# =============================================================================
# HOME
# =============================================================================

class ACHome(BaseModel):
    """
    Everything the panel home page shows: the account, its settings, its
    latest valid transactions and its balance in the home currency.
    """

    account_id: str
    account_name: str
    settings: ACSettings
    transactions: List[TXReadItem]
    balance: BLBalanceItem

    @classmethod
    def build(
            cls,
            account: Account,
            transactions: List[TXReadItem],
            balance: BLBalanceItem,
            ) -> ACHome:
        return cls(
            account_id=account.id,
            account_name=account.name or "unnamed",
            settings=ACSettings.from_json(account.settings),
            transactions=transactions,
            balance=balance,
            )
