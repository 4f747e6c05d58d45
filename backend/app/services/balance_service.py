"""
Balance Service for CoinPanel.

Balances are never stored: they are the SUM/COUNT of the coins an account
owns, grouped by currency. The reduction runs in SQL, so the result does
not depend on the order in which coins are stored or returned.

A store failure is raised as StoreUnavailableError. A zero balance always
means "no coins", never "could not check".
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import structlog

from backend.app.db.models import Coin
from backend.app.schemas.balances import BLBalanceItem
from backend.app.schemas.common import validate_currency_code
from backend.app.errors import StoreUnavailableError, ValidationError

logger = structlog.get_logger(__name__)


class BalanceService:
    """
    Aggregates coin records into per-currency balances.

    Read-only: coins are minted and transferred by the issuance service.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_balances(self, account_id: str, currency: Optional[str] = None) -> List[BLBalanceItem]:
        """
        Get the account's balances.

        Args:
            account_id: Authenticated account
            currency: Restrict to this currency. When the account holds no coin
                in it the result is one explicit zero row.

        Returns:
            One BLBalanceItem per currency, ordered by currency code

        Raises:
            ValidationError: malformed currency code
            StoreUnavailableError: the coin store could not be queried
        """
        if currency is not None:
            try:
                currency = validate_currency_code(currency)
            except ValueError as e:
                raise ValidationError(str(e)) from e

        stmt = (
            select(Coin.currency, func.sum(Coin.value), func.count(Coin.id))
            .where(Coin.account_id == account_id)
            .group_by(Coin.currency)
            .order_by(Coin.currency)
        )
        if currency is not None:
            stmt = stmt.where(Coin.currency == currency)

        try:
            result = await self.session.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Coin aggregation failed", account_id=account_id, currency=currency, error=str(e))
            raise StoreUnavailableError(f"Coin aggregation failed: {e}") from e

        balances = [
            BLBalanceItem(currency=code, value=int(total or 0), number_of_coins=count)
            for code, total, count in rows
            ]

        if currency is not None and not balances:
            balances = [BLBalanceItem(currency=currency, value=0, number_of_coins=0)]

        logger.debug("Balances computed", account_id=account_id, currencies=[b.currency for b in balances])
        return balances
