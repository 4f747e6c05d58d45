"""
Panel Actions

Entry points called by the panel front-end once the caller is authenticated.
Each action runs one service operation and wraps the outcome in a PNResult:

- success: body + INFO message
- CoreError: switch on `kind`. VALIDATION shows its own message; every other
  kind shows the action's generic message and only the log gets the detail.
- anything else: handled like a store failure

Actions never raise.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Mapping, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

import structlog

from backend.app.config import RegistrationConfig
from backend.app.schemas.accounts import ACHome, ACReadItem, ACRegistered, ACSettings
from backend.app.schemas.balances import BLBalanceItem
from backend.app.schemas.common import PNMessage, PNResult
from backend.app.schemas.transactions import TXReadItem
from backend.app.services.account_service import AccountService, load_account
from backend.app.services.balance_service import BalanceService
from backend.app.errors import CoreError, ErrorKind
from backend.app.services.settings_service import SettingsService
from backend.app.services.transaction_service import TransactionService

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Kinds whose user_message may be shown as is
SURFACED_KINDS = frozenset({ErrorKind.VALIDATION})

RECONCILIATION_MESSAGE = "unable to restore account's settings"

# Currency whose balance the home page shows
HOME_CURRENCY = "XBT"


def _failure(action: str, generic_message: str, error: Exception) -> PNResult:
    if isinstance(error, CoreError):
        kind = error.kind
        if kind in SURFACED_KINDS and error.user_message:
            messages = [PNMessage.error(error.user_message)]
            logger.info("Panel action rejected", action=action, kind=kind.value, reason=error.message)
        else:
            messages = [PNMessage.error(generic_message)]
            logger.error("Panel action failed", action=action, kind=kind.value, error=error.message)

        if error.reconciliation is not None:
            messages.append(PNMessage.error(RECONCILIATION_MESSAGE))
            logger.error("Panel action left unreconciled state", action=action, error=error.reconciliation.message)
    else:
        kind = ErrorKind.STORE_UNAVAILABLE
        messages = [PNMessage.error(generic_message)]
        logger.exception("Panel action crashed", action=action, error=repr(error))

    return PNResult(success=False, messages=messages, error_kind=kind)


async def _run(
    action: str,
    generic_message: str,
    operation: Callable[[], Awaitable[T]],
    info: Callable[[T], str],
    ) -> PNResult:
    try:
        body = await operation()
    except Exception as e:
        return _failure(action, generic_message, e)
    return PNResult(success=True, messages=[PNMessage.info(info(body))], body=body)


# =============================================================================
# TRANSACTIONS
# =============================================================================

async def get_transactions(
    session: AsyncSession,
    account_id: str,
    filters: Optional[Mapping[str, Any]] = None,
    ) -> PNResult[List[TXReadItem]]:
    service = TransactionService(session)
    return await _run(
        "get_transactions",
        "unable to retrieve transactions",
        lambda: service.find_by_filter(account_id, filters),
        lambda txs: f"{len(txs)} transaction(s) found",
        )


async def get_transaction_by_id(session: AsyncSession, account_id: str, transaction_id: int) -> PNResult[TXReadItem]:
    service = TransactionService(session)
    return await _run(
        "get_transaction_by_id",
        "unable to retrieve transaction",
        lambda: service.find_by_id(account_id, transaction_id),
        lambda tx: f"transaction {tx.id} found",
        )


async def get_transaction_by_order_id(session: AsyncSession, account_id: str, order_id: str) -> PNResult[TXReadItem]:
    service = TransactionService(session)
    return await _run(
        "get_transaction_by_order_id",
        "unable to retrieve transaction",
        lambda: service.find_by_order_id(account_id, order_id),
        lambda tx: f"transaction {tx.id} found for order {tx.order_id}",
        )


# =============================================================================
# BALANCES
# =============================================================================

async def get_account_balance(
    session: AsyncSession,
    account_id: str,
    currency: Optional[str] = None,
    ) -> PNResult[List[BLBalanceItem]]:
    service = BalanceService(session)
    return await _run(
        "get_account_balance",
        "unable to retrieve balances",
        lambda: service.get_balances(account_id, currency),
        lambda balances: f"{len(balances)} balance(s) computed",
        )


# =============================================================================
# ACCOUNTS
# =============================================================================

async def register_account(
    session: AsyncSession,
    raw_input: Mapping[str, Any],
    registration_config: Optional[RegistrationConfig] = None,
    ) -> PNResult[ACRegistered]:
    async def operation() -> ACRegistered:
        # Built inside so a bad configuration is reported like any other failure
        return await AccountService(session, registration_config).register(raw_input)

    return await _run(
        "register_account",
        "unable to create account",
        operation,
        lambda account: "account created, keep your auth token: it will not be shown again",
        )


async def get_account(session: AsyncSession, account_id: str) -> PNResult[ACReadItem]:
    service = AccountService(session)
    return await _run(
        "get_account",
        "unable to retrieve account",
        lambda: service.get_account(account_id),
        lambda account: "account found",
        )


async def patch_account(session: AsyncSession, account_id: str, patch: Mapping[str, Any]) -> PNResult[ACReadItem]:
    service = AccountService(session)
    return await _run(
        "patch_account",
        "unable to update account",
        lambda: service.update_account(account_id, patch),
        lambda account: "account updated",
        )


async def get_account_settings(session: AsyncSession, account_id: str) -> PNResult[ACSettings]:
    service = SettingsService(session)
    return await _run(
        "get_account_settings",
        "unable to retrieve account's settings",
        lambda: service.get_settings(account_id),
        lambda settings: "settings found",
        )


async def patch_account_settings(
    session: AsyncSession,
    account_id: str,
    patch: Mapping[str, Any],
    ) -> PNResult[ACSettings]:
    service = SettingsService(session)

    async def operation() -> ACSettings:
        account = await load_account(session, account_id)
        return await service.patch_settings(account, patch)

    return await _run(
        "patch_account_settings",
        "unable to update account's settings",
        operation,
        lambda settings: "settings updated",
        )


# =============================================================================
# HOME
# =============================================================================

async def get_home(session: AsyncSession, account_id: str) -> PNResult[ACHome]:
    """Collect the home page: profile, settings, latest transactions and home currency balance."""
    async def operation() -> ACHome:
        account = await load_account(session, account_id)
        transactions = await TransactionService(session).find_by_filter(account_id)
        balances = await BalanceService(session).get_balances(account_id, HOME_CURRENCY)
        return ACHome.build(account, transactions, balances[0])

    return await _run(
        "get_home",
        "unable to display home",
        operation,
        lambda home: f"{len(home.transactions)} transaction(s), {home.balance.value} {home.balance.currency}",
        )
