"""
Tests for SettingsService.

Copy-on-write patching: a successful patch replaces the settings as a
whole, a failed one leaves the previous settings in place both in the
database and on the in-memory account. When restoring fails too, the
primary error carries a reconciliation error.

Reference: backend/app/services/settings_service.py
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

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import Account
from backend.app.errors import (
    ErrorKind,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
    )
from backend.app.schemas.accounts import ACSettings
from backend.app.services.settings_service import SettingsService
from backend.test_scripts.test_utils import add_account, store_error


# ============================================================================
# PYTEST FIXTURES
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


@pytest_asyncio.fixture
async def account(session):
    return await add_account(session)


async def stored_settings(engine, account_id: str) -> ACSettings:
    """Settings as committed, read through an independent session."""
    async with AsyncSession(engine) as other:
        row = await other.get(Account, account_id)
        return ACSettings.from_json(row.settings)


def failing_commit(session, monkeypatch):
    async def broken_commit():
        raise store_error("COMMIT")

    monkeypatch.setattr(session, "commit", broken_commit)


def failing_reload(session, monkeypatch):
    """Plain lookups still work, the reload done by reconciliation fails."""
    original_get = session.get

    async def flaky_get(*args, **kwargs):
        if kwargs.get("populate_existing"):
            raise store_error("SELECT accounts")
        return await original_get(*args, **kwargs)

    monkeypatch.setattr(session, "get", flaky_get)


# ============================================================================
# GET SETTINGS
# ============================================================================

class TestGetSettings:

    @pytest.mark.asyncio
    async def test_new_account_has_defaults(self, session, account):
        settings = await SettingsService(session).get_settings(account.id)

        assert settings == ACSettings()
        assert settings.default_currency == "XBT"
        assert settings.payment_expiry_minutes == 15

    @pytest.mark.asyncio
    async def test_unknown_account_is_not_found(self, session):
        with pytest.raises(NotFoundError):
            await SettingsService(session).get_settings("no-such-account")


# ============================================================================
# SUCCESSFUL PATCH
# ============================================================================

class TestPatchSettings:

    @pytest.mark.asyncio
    async def test_patch_is_persisted(self, engine, session, account):
        service = SettingsService(session)

        updated = await service.patch_settings(account, {
            "payment_expiry_minutes": 30,
            "callback_url": "https://shop.test-panel.io/hook",
            })

        assert updated.payment_expiry_minutes == 30
        assert updated.callback_url == "https://shop.test-panel.io/hook"
        assert await stored_settings(engine, account.id) == updated
        assert ACSettings.from_json(account.settings) == updated

    @pytest.mark.asyncio
    async def test_untouched_keys_are_kept(self, session, account):
        service = SettingsService(session)
        await service.patch_settings(account, {"default_currency": "eur"})

        updated = await service.patch_settings(account, {"send_receipts": False})

        assert updated.default_currency == "EUR"
        assert updated.send_receipts is False

    @pytest.mark.asyncio
    async def test_previous_value_is_not_mutated(self, session, account):
        service = SettingsService(session)
        before = await service.get_settings(account.id)

        await service.patch_settings(account, {"payment_expiry_minutes": 60})

        assert before.payment_expiry_minutes == 15

    @pytest.mark.asyncio
    async def test_empty_patch_keeps_settings(self, engine, session, account):
        updated = await SettingsService(session).patch_settings(account, {})

        assert updated == ACSettings()
        assert await stored_settings(engine, account.id) == ACSettings()


# ============================================================================
# REJECTED PATCH
# ============================================================================

class TestRejectedPatch:

    @pytest.mark.asyncio
    async def test_unknown_key_is_rejected(self, engine, session, account):
        service = SettingsService(session)

        with pytest.raises(ValidationError) as exc_info:
            await service.patch_settings(account, {"payment_expiry_minutes": 30, "theme": "dark"})

        assert "theme" in exc_info.value.user_message
        assert exc_info.value.reconciliation is None
        assert await stored_settings(engine, account.id) == ACSettings()
        assert ACSettings.from_json(account.settings) == ACSettings()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("patch", [
        {"payment_expiry_minutes": 0},
        {"payment_expiry_minutes": "soon"},
        {"callback_url": "ftp://shop.test-panel.io/hook"},
        {"default_currency": "bitcoin"},
        ])
    async def test_invalid_value_is_rejected(self, engine, session, account, patch):
        service = SettingsService(session)

        with pytest.raises(ValidationError) as exc_info:
            await service.patch_settings(account, patch)

        assert exc_info.value.user_message.startswith("invalid settings: ")
        assert await stored_settings(engine, account.id) == ACSettings()


# ============================================================================
# STORE FAILURE & RECONCILIATION
# ============================================================================

class TestReconciliation:

    @pytest.mark.asyncio
    async def test_commit_failure_restores_previous_settings(self, engine, session, account, monkeypatch):
        service = SettingsService(session)
        await service.patch_settings(account, {"payment_expiry_minutes": 45})
        failing_commit(session, monkeypatch)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.patch_settings(account, {"payment_expiry_minutes": 90})

        assert exc_info.value.kind == ErrorKind.STORE_UNAVAILABLE
        assert exc_info.value.reconciliation is None
        assert ACSettings.from_json(account.settings).payment_expiry_minutes == 45
        assert (await stored_settings(engine, account.id)).payment_expiry_minutes == 45

    @pytest.mark.asyncio
    async def test_reload_failure_is_attached_to_primary_error(self, engine, session, account, monkeypatch):
        service = SettingsService(session)
        await service.patch_settings(account, {"payment_expiry_minutes": 45})
        account_id = account.id
        failing_commit(session, monkeypatch)
        failing_reload(session, monkeypatch)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.patch_settings(account, {"payment_expiry_minutes": 90})

        reconciliation = exc_info.value.reconciliation
        assert reconciliation is not None
        assert reconciliation.kind == ErrorKind.RECONCILIATION
        assert (await stored_settings(engine, account_id)).payment_expiry_minutes == 45

    @pytest.mark.asyncio
    async def test_reload_failure_leaves_account_readable_and_unpatched(self, session, account, monkeypatch):
        service = SettingsService(session)
        await service.patch_settings(account, {"payment_expiry_minutes": 45})
        account_id = account.id
        updated_at = account.updated_at
        failing_commit(session, monkeypatch)
        failing_reload(session, monkeypatch)

        with pytest.raises(StoreUnavailableError):
            await service.patch_settings(account, {"payment_expiry_minutes": 90})

        assert account.id == account_id
        assert account.updated_at == updated_at
        assert ACSettings.from_json(account.settings).payment_expiry_minutes == 45

    @pytest.mark.asyncio
    async def test_validation_error_stays_primary_when_reload_fails(self, session, account, monkeypatch):
        failing_reload(session, monkeypatch)

        with pytest.raises(ValidationError) as exc_info:
            await SettingsService(session).patch_settings(account, {"theme": "dark"})

        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.reconciliation.kind == ErrorKind.RECONCILIATION
