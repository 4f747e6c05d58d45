"""
Transaction schemas for CoinPanel.

**Naming Convention**:
- TX prefix: Transaction-related schemas
- Item suffix: Single item in a list (e.g., TXReadItem)

**Design Notes**:
- TXQueryParams ignores unknown keys: callers pass their raw query mapping
  and only recognized filters are applied. `account_id` is deliberately not
  a field, the service always scopes by the authenticated account.
- Defaults of TXQueryParams are the store defaults used when a key is absent.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.app.db.models import Transaction, TransactionStatus, TransactionType
from backend.app.utils.datetime_utils import as_utc

TXOrderBy = Literal["timestamp", "id", "amount", "order_id"]
TXOrder = Literal["asc", "desc"]


# =============================================================================
# TRANSACTION QUERY
# =============================================================================

class TXQueryParams(BaseModel):
    """
    Filters, pagination and ordering for transaction listings.

    Bounds:
    - before / after are exclusive bounds on `timestamp`
    - only_valid=True hides soft-invalidated transactions
    """
    model_config = ConfigDict(extra="ignore")

    type: Optional[TransactionType] = Field(default=None, description="Filter by type")
    status: Optional[TransactionStatus] = Field(default=None, description="Filter by status")

    before: Optional[datetime] = Field(default=None, description="Only transactions strictly before")
    after: Optional[datetime] = Field(default=None, description="Only transactions strictly after")

    only_valid: bool = Field(default=True, description="Exclude invalidated transactions")

    order_by: TXOrderBy = Field(default="timestamp", description="Sort column")
    order: TXOrder = Field(default="desc", description="Sort direction")

    limit: int = Field(default=100, ge=1, le=1000, description="Max results")
    offset: int = Field(default=0, ge=0, description="Offset for pagination")

    @field_validator('type', 'status', 'order', 'order_by', mode='before')
    @classmethod
    def _normalize_case(cls, v, info):
        if isinstance(v, str):
            v = v.strip()
            return v.lower() if info.field_name in ("order", "order_by") else v.upper()
        return v

    @field_validator('before', 'after')
    @classmethod
    def _to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None

    @model_validator(mode='after')
    def _check_range(self) -> TXQueryParams:
        if self.before is not None and self.after is not None and self.after >= self.before:
            raise ValueError("'after' must be earlier than 'before'")
        return self


# =============================================================================
# TRANSACTION READ
# =============================================================================

class TXReadItem(BaseModel):
    """Transaction as returned to the panel."""
    model_config = ConfigDict(extra="forbid")

    id: int
    account_id: str
    order_id: str

    type: TransactionType
    status: TransactionStatus
    valid: bool

    currency: str
    amount: int
    description: Optional[str] = None

    timestamp: datetime
    created_at: datetime

    @classmethod
    def from_db_model(cls, tx: Transaction) -> TXReadItem:
        return cls(
            id=tx.id,
            account_id=tx.account_id,
            order_id=tx.order_id,
            type=tx.type,
            status=tx.status,
            valid=tx.valid,
            currency=tx.currency,
            amount=tx.amount,
            description=tx.description,
            timestamp=tx.timestamp,
            created_at=tx.created_at,
            )
