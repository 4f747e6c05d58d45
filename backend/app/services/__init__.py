"""
Services package.
Business logic of the panel.

Service Layer:
- TransactionService: filtered listings and identity lookups of transactions
- BalanceService: per-currency balances aggregated from coins
- SettingsService: copy-on-write settings updates with reconciliation
- AccountService: registration validation, account profile
- panel_actions: PNResult-returning entry points for the panel front-end
"""
from backend.app.errors import (
    ErrorKind,
    CoreError,
    ValidationError,
    NotFoundError,
    StoreUnavailableError,
    ReconciliationError,
    )
from backend.app.services.transaction_service import TransactionService
from backend.app.services.balance_service import BalanceService
from backend.app.services.account_service import AccountService
from backend.app.services.settings_service import SettingsService

__all__ = [
    "ErrorKind",
    "CoreError",
    "ValidationError",
    "NotFoundError",
    "StoreUnavailableError",
    "ReconciliationError",
    "TransactionService",
    "BalanceService",
    "AccountService",
    "SettingsService",
    ]
