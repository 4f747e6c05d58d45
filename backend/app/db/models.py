"""
Database models for CoinPanel.

All models use SQLModel (SQLAlchemy 2.x) with the following conventions:
- Monetary values are integers in the currency's smallest unit (satoshi, cent)
- Timestamps in UTC (created_at, updated_at, timestamp)
- JSON documents (account settings) stored as TEXT
- Foreign keys enforced with PRAGMA foreign_keys=ON
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    Index,
    Text,
    UniqueConstraint,
    )
from sqlmodel import Field, SQLModel

from backend.app.utils.datetime_utils import utcnow


# ============================================================================
# ENUMS
# ============================================================================

class TransactionType(str, Enum):
    """
    Financial movement types recorded by the payment processor.

    - PAYMENT: A customer pays an order of the account holder
      Effect: coins are credited to the account once the payment is PAID
    - REFUND: Money returned to the customer of a previous PAYMENT
      Effect: coins leave the account
    - DEPOSIT: The account holder funds the account directly
    - WITHDRAWAL: The account holder moves coins out of the panel

    Impact:
    - Only used as a filter (`type`) by the query engine; the core never
      derives balances from transactions (balances come from coins).
    """
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class TransactionStatus(str, Enum):
    """
    Lifecycle state of a transaction.

    - PENDING: Created, waiting for the customer to pay
    - PAID: Settled
    - EXPIRED: Payment window elapsed without payment
    - CANCELLED: Withdrawn by the account holder or the processor
    """
    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


def new_account_id() -> str:
    """Opaque account identifier."""
    return uuid4().hex


# ============================================================================
# MODELS
# ============================================================================

class Account(SQLModel, table=True):
    """
    Account holder of the panel.

    Notes:
    - id is opaque and never changes after creation
    - auth_token_digest (SHA-256, unique) finds the account of a presented token
    - auth_token_hash is the bcrypt hash of the credential generated at
      registration; neither value is ever copied into read models
    - settings holds the JSON of an ACSettings value and is only ever
      replaced as a whole (see SettingsService)
    """
    __tablename__ = "accounts"

    id: str = Field(default_factory=new_account_id, primary_key=True)

    domain: Optional[str] = Field(default=None, index=True)
    email_account_contact: Optional[str] = Field(default=None)
    email_customer_contact: Optional[str] = Field(default=None)
    name: Optional[str] = Field(default=None)

    auth_token_digest: str = Field(nullable=False, unique=True, index=True)
    auth_token_hash: str = Field(nullable=False)
    settings: str = Field(sa_column=Column(Text, nullable=False))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Transaction(SQLModel, table=True):
    """
    Financial movement of one account.

    Written by the external payment processor, read-only for the panel.

    - order_id: identifier of the order on the merchant side, unique per account
    - valid: False for soft-invalidated records (duplicates, processor
      corrections). Hidden from filtered listings by default, still
      reachable by identity.
    - timestamp: when the movement happened, used by before/after filters
    """
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("account_id", "order_id", name="uq_transactions_account_order"),
        Index("idx_transactions_account_timestamp", "account_id", "timestamp", "id"),
        )

    id: Optional[int] = Field(default=None, primary_key=True)

    account_id: str = Field(foreign_key="accounts.id", nullable=False, index=True)
    order_id: str = Field(nullable=False)
    type: TransactionType = Field(nullable=False)
    status: TransactionStatus = Field(default=TransactionStatus.PENDING, nullable=False)
    valid: bool = Field(default=True, nullable=False)

    currency: str = Field(nullable=False)
    amount: int = Field(sa_column=Column(BigInteger, nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text))

    timestamp: datetime = Field(default_factory=utcnow, nullable=False)
    created_at: datetime = Field(default_factory=utcnow)


class Coin(SQLModel, table=True):
    """
    Discrete, indivisible unit of value owned by one account.

    There is no balance column anywhere: the balance of an account in a
    currency is the sum of the values of the coins it owns in that currency.
    Coins are minted and transferred by the issuance service; the panel only
    reads them.
    """
    __tablename__ = "coins"
    __table_args__ = (
        Index("idx_coins_account_currency", "account_id", "currency"),
        CheckConstraint("value > 0", name="ck_coins_value_positive"),
        )

    id: Optional[int] = Field(default=None, primary_key=True)

    account_id: str = Field(foreign_key="accounts.id", nullable=False)
    currency: str = Field(nullable=False)
    value: int = Field(sa_column=Column(BigInteger, nullable=False))

    created_at: datetime = Field(default_factory=utcnow)
