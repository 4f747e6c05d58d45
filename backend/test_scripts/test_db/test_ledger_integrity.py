"""
Ledger Integrity Tests

Tests the constraints the database enforces on its own:
- order_id is unique per account (not globally)
- coin values are strictly positive
- transactions and coins must belong to an existing account
- an auth token digest identifies at most one account
"""
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Setup test database BEFORE importing app modules
from backend.test_scripts.test_db_config import setup_test_database, create_test_database

setup_test_database()

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import Account, Coin, Transaction, TransactionType
from backend.test_scripts.test_utils import add_account, add_coins, add_transaction


# ============================================================================
# FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = await create_test_database()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


# ============================================================================
# SCHEMA
# ============================================================================

@pytest.mark.asyncio
async def test_schema_has_ledger_tables(engine):
    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    assert {"accounts", "transactions", "coins"} <= set(tables)


# ============================================================================
# CONSTRAINTS
# ============================================================================

class TestAccountConstraints:

    @pytest.mark.asyncio
    async def test_auth_token_digest_is_unique(self, session):
        await add_account(session, auth_token_digest="same-digest")

        with pytest.raises(IntegrityError):
            await add_account(session, name="Copy Shop", auth_token_digest="same-digest")
        await session.rollback()


class TestTransactionConstraints:

    @pytest.mark.asyncio
    async def test_duplicate_order_id_on_same_account(self, session):
        account = await add_account(session)
        await add_transaction(session, account, "ord-1")

        with pytest.raises(IntegrityError):
            await add_transaction(session, account, "ord-1", tx_type=TransactionType.REFUND)
        await session.rollback()

    @pytest.mark.asyncio
    async def test_transaction_requires_existing_account(self, session):
        session.add(Transaction(
            account_id="missing-account",
            order_id="ord-1",
            type=TransactionType.PAYMENT,
            currency="XBT",
            amount=1,
            ))

        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()


class TestCoinConstraints:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -100])
    async def test_coin_value_must_be_positive(self, session, value):
        account = await add_account(session)

        with pytest.raises(IntegrityError, match="ck_coins_value_positive|CHECK constraint"):
            await add_coins(session, account, [("XBT", value)])
        await session.rollback()

    @pytest.mark.asyncio
    async def test_coin_requires_existing_account(self, session):
        session.add(Coin(account_id="missing-account", currency="XBT", value=1))

        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()

    @pytest.mark.asyncio
    async def test_account_with_coins_cannot_be_deleted(self, session):
        account = await add_account(session)
        await add_coins(session, account, [("XBT", 1)])

        await session.delete(await session.get(Account, account.id))
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()
