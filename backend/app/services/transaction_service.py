"""
Transaction Service for CoinPanel.

Read side of the transaction log:
- find_by_filter: filtered, paginated, ordered listing. An empty list is a
  valid answer.
- find_by_id / find_by_order_id: identity lookups. Nothing found is an error.

Design Notes:
- Every query is scoped to the authenticated account id given by the
  caller; filters can never widen it.
- Identity lookups reuse the listing query with only_valid=False and
  limit=1, so an invalidated transaction is still reachable by identity.
- All methods are async for non-blocking I/O
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

import structlog

from backend.app.db.models import Transaction
from backend.app.schemas.transactions import TXQueryParams, TXReadItem
from backend.app.errors import (
    NotFoundError,
    StoreUnavailableError,
    validation_error_from_pydantic,
    )

logger = structlog.get_logger(__name__)

# order_by value -> column
TX_ORDER_COLUMNS = {
    "timestamp": Transaction.timestamp,
    "id": Transaction.id,
    "amount": Transaction.amount,
    "order_id": Transaction.order_id,
    }


class TransactionService:
    """
    Query engine over the transactions table.

    All methods are async and expect an AsyncSession.
    The service never writes; transactions are created by the payment processor.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_filter(self, account_id: str, filters: Optional[Mapping[str, Any]] = None) -> List[TXReadItem]:
        """
        List the account's transactions matching `filters`.

        Args:
            account_id: Authenticated account; overrides any account_id in filters
            filters: Raw mapping of optional keys (type, status, offset, limit,
                before, after, order, order_by, only_valid). Unknown keys are ignored.

        Returns:
            Matching transactions, possibly empty

        Raises:
            ValidationError: a recognized filter has an invalid value
            StoreUnavailableError: the query failed
        """
        params = self._parse_filters(filters)
        return await self._query(account_id, params)

    async def find_by_id(self, account_id: str, transaction_id: int) -> TXReadItem:
        """
        Get one transaction of the account by its id.

        Raises:
            NotFoundError: no such transaction for this account
            StoreUnavailableError: the query failed
        """
        rows = await self._query(
            account_id,
            TXQueryParams(only_valid=False, limit=1),
            Transaction.id == transaction_id,
            )
        if not rows:
            raise NotFoundError(f"Transaction {transaction_id} not found for account {account_id}")
        return rows[0]

    async def find_by_order_id(self, account_id: str, order_id: str) -> TXReadItem:
        """
        Get one transaction of the account by its external order identifier.

        Raises:
            NotFoundError: no transaction with this order id for this account
            StoreUnavailableError: the query failed
        """
        rows = await self._query(
            account_id,
            TXQueryParams(only_valid=False, limit=1),
            Transaction.order_id == order_id,
            )
        if not rows:
            raise NotFoundError(f"Order {order_id!r} not found for account {account_id}")
        return rows[0]

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _parse_filters(filters: Optional[Mapping[str, Any]]) -> TXQueryParams:
        try:
            return TXQueryParams.model_validate(dict(filters or {}))
        except PydanticValidationError as e:
            raise validation_error_from_pydantic(e, "invalid filters") from e

    async def _query(
        self,
        account_id: str,
        params: TXQueryParams,
        *conditions: ColumnElement[bool],
        ) -> List[TXReadItem]:
        stmt = select(Transaction).where(Transaction.account_id == account_id)

        for condition in conditions:
            stmt = stmt.where(condition)

        if params.type is not None:
            stmt = stmt.where(Transaction.type == params.type)

        if params.status is not None:
            stmt = stmt.where(Transaction.status == params.status)

        if params.only_valid:
            stmt = stmt.where(Transaction.valid.is_(True))

        if params.before is not None:
            stmt = stmt.where(Transaction.timestamp < params.before)

        if params.after is not None:
            stmt = stmt.where(Transaction.timestamp > params.after)

        # Tie-break on id in the same direction for consistent pagination
        order_column = TX_ORDER_COLUMNS[params.order_by]
        if params.order == "asc":
            stmt = stmt.order_by(order_column.asc(), Transaction.id.asc())
        else:
            stmt = stmt.order_by(order_column.desc(), Transaction.id.desc())
        stmt = stmt.offset(params.offset).limit(params.limit)

        try:
            result = await self.session.execute(stmt)
            txs = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Transaction query failed", account_id=account_id, error=str(e))
            raise StoreUnavailableError(f"Transaction query failed: {e}") from e

        logger.debug("Transactions queried", account_id=account_id, count=len(txs))
        return [TXReadItem.from_db_model(tx) for tx in txs]
