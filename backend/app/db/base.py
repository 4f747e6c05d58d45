"""
Database base module.
SQLModel base classes and metadata.
Import all models here so SQLModel.metadata knows every table.
"""
from sqlmodel import SQLModel

from backend.app.db.models import (
    # Enums
    TransactionType,
    TransactionStatus,
    # Models
    Account,
    Transaction,
    Coin,
    )

__all__ = [
    "SQLModel",
    # Enums
    "TransactionType",
    "TransactionStatus",
    # Models
    "Account",
    "Transaction",
    "Coin",
    ]
