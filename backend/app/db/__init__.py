"""
Database module exports.
"""
from backend.app.db.base import (
    SQLModel,
    # Enums
    TransactionType,
    TransactionStatus,
    # Models
    Account,
    Transaction,
    Coin,
    )
from backend.app.db.session import get_async_engine, get_session, init_db

__all__ = [
    "SQLModel",
    "get_async_engine",
    "get_session",
    "init_db",
    # Enums
    "TransactionType",
    "TransactionStatus",
    # Models
    "Account",
    "Transaction",
    "Coin",
    ]
