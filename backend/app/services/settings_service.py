"""
Settings Service

Copy-on-write updates of account settings.

Algorithm of patch_settings():
1. Parse the committed settings into an immutable ACSettings value
2. Build a new, validated value with the patch applied (the old one is untouched)
3. Store the new JSON on the account and commit
4. On any failure in 2-3: roll back and reload the account row from the
   database so the in-memory account drops the uncommitted change. If the
   reload fails too, the pre-patch column values are restored on the
   instance and a ReconciliationError is attached to the primary error,
   which is still the one raised.

Readers therefore see either the previous settings or the complete new
ones. There is no version check: two concurrent patches of the same
account are last-write-wins.
"""
from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

import structlog

from backend.app.db.models import Account
from backend.app.schemas.accounts import ACSettings
from backend.app.services.account_service import load_account
from backend.app.errors import (
    CoreError,
    NotFoundError,
    ReconciliationError,
    StoreUnavailableError,
    validation_error_from_pydantic,
    )
from backend.app.utils.datetime_utils import utcnow

logger = structlog.get_logger(__name__)


class SettingsService:
    """
    Reads and patches the settings of an account.

    All methods are async and expect an AsyncSession.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_settings(self, account_id: str) -> ACSettings:
        """
        Get the committed settings of an account.

        Raises:
            NotFoundError: no account with this id
            StoreUnavailableError: the lookup failed
        """
        account = await load_account(self.session, account_id)
        return ACSettings.from_json(account.settings)

    async def patch_settings(self, account: Account, patch: Mapping[str, Any]) -> ACSettings:
        """
        Apply `patch` to the account's settings and persist the result.

        Args:
            account: Account loaded in this service's session
            patch: Settings keys and their new values

        Returns:
            The new settings

        Raises:
            ValidationError: unknown settings key or invalid value
            StoreUnavailableError: the new settings could not be saved
        """
        # Read before any failure can expire the instance
        account_id = account.id
        committed = {attr.key: getattr(account, attr.key) for attr in inspect(Account).column_attrs}
        current = ACSettings.from_json(account.settings)

        try:
            updated = current.apply(patch)
            account.settings = updated.to_json()
            account.updated_at = utcnow()
            self.session.add(account)
            await self.session.commit()
        except Exception as e:
            error = self._as_core_error(e, account_id)
            await self._reconcile(account, account_id, error, committed)
            if error is e:
                raise
            raise error from e

        logger.info("Account settings updated", account_id=account_id, keys=sorted(patch))
        return updated

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _as_core_error(exc: Exception, account_id: str) -> CoreError:
        if isinstance(exc, CoreError):
            return exc
        if isinstance(exc, PydanticValidationError):
            return validation_error_from_pydantic(exc, "invalid settings")
        if isinstance(exc, SQLAlchemyError):
            return StoreUnavailableError(f"Saving settings of account {account_id} failed: {exc}")
        return CoreError(f"Unexpected failure patching settings of account {account_id}: {exc!r}")

    async def _reconcile(
            self,
            account: Account,
            account_id: str,
            error: CoreError,
            committed: dict[str, Any],
            ) -> None:
        """
        Drop the uncommitted patch by reloading the account from the database.

        When the reload fails, the column values read before the patch are
        put back on the instance so it stays readable and unchanged.
        """
        try:
            await self.session.rollback()
            if account in self.session:
                # rollback() keeps unflushed changes when no transaction was begun
                self.session.expire(account)
            stored = await self.session.get(Account, account_id, populate_existing=True)
            if stored is None:
                raise NotFoundError(f"Account {account_id} disappeared")
            if stored is not account:
                account.settings = stored.settings
                account.updated_at = stored.updated_at
        except (SQLAlchemyError, CoreError) as e:
            logger.error(
                "Settings reconciliation failed",
                account_id=account_id,
                primary_error=error.message,
                error=str(e),
                )
            for key, value in committed.items():
                set_committed_value(account, key, value)
            error.reconciliation = ReconciliationError(f"Reloading account {account_id} failed: {e}")
            return

        logger.warning("Settings patch discarded", account_id=account_id, error=error.message)
