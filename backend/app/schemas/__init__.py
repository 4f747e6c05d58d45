"""
Pydantic schemas for CoinPanel.

Used by services and panel actions to validate data structures and
standardize data exchange between components.

**Organization by Domain**:
- common.py: Shared schemas (currency code validation, PNResult envelope)
- transactions.py: Transaction query/read schemas (TX prefix)
- accounts.py: Account, settings and home page schemas (AC prefix)
- balances.py: Coin balance summaries (BL prefix)

**Naming Conventions**:
- TX prefix: Transactions
- AC prefix: Accounts
- BL prefix: Balances
- PN prefix: Panel result envelope
"""
from backend.app.schemas.common import (
    PNSeverity,
    PNMessage,
    PNResult,
    validate_currency_code,
    )
from backend.app.schemas.transactions import TXQueryParams, TXReadItem
from backend.app.schemas.accounts import (
    ACCOUNT_PROFILE_KEYS,
    ACSettings,
    ACCreateItem,
    ACUpdateItem,
    ACReadItem,
    ACRegistered,
    ACHome,
    )
from backend.app.schemas.balances import BLBalanceItem

__all__ = [
    # Common
    "PNSeverity",
    "PNMessage",
    "PNResult",
    "validate_currency_code",
    # Transactions
    "TXQueryParams",
    "TXReadItem",
    # Accounts
    "ACCOUNT_PROFILE_KEYS",
    "ACSettings",
    "ACCreateItem",
    "ACUpdateItem",
    "ACReadItem",
    "ACRegistered",
    "ACHome",
    # Balances
    "BLBalanceItem",
    ]
