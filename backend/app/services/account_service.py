"""
Account Service

Registration and profile management of panel accounts.

Registration rules (see RegistrationConfig):
- a key outside the allow-list rejects the whole request, naming the key(s)
- all missing required keys are reported together in one rejection
- only the profile keys are kept; other allowed keys (form noise) are dropped
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import structlog

from backend.app.config import RegistrationConfig
from backend.app.db.models import Account
from backend.app.schemas.accounts import (
    ACCOUNT_PROFILE_KEYS,
    ACCreateItem,
    ACReadItem,
    ACRegistered,
    ACSettings,
    ACUpdateItem,
    )
from backend.app.services.auth_service import (
    auth_token_digest,
    generate_auth_token,
    hash_auth_token,
    verify_auth_token,
    )
from backend.app.errors import (
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
    validation_error_from_pydantic,
    )
from backend.app.utils.datetime_utils import utcnow

logger = structlog.get_logger(__name__)


async def load_account(session: AsyncSession, account_id: str) -> Account:
    """
    Get an account row by id.

    Raises:
        NotFoundError: no account with this id
        StoreUnavailableError: the lookup failed
    """
    try:
        account = await session.get(Account, account_id)
    except SQLAlchemyError as e:
        logger.error("Account lookup failed", account_id=account_id, error=str(e))
        raise StoreUnavailableError(f"Account lookup failed: {e}") from e
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


async def load_account_by_token(session: AsyncSession, auth_token: Optional[str]) -> Account:
    """
    Get the account a presented auth token belongs to.

    The account is found by the token's SHA-256 digest, then the token is
    checked against the stored bcrypt hash.

    Raises:
        ValidationError: no token given
        NotFoundError: the token matches no account
        StoreUnavailableError: the lookup failed
    """
    if _is_missing(auth_token):
        raise ValidationError("no auth token provided")

    stmt = select(Account).where(Account.auth_token_digest == auth_token_digest(auth_token))
    try:
        account = (await session.execute(stmt)).scalars().first()
    except SQLAlchemyError as e:
        logger.error("Account lookup by token failed", error=str(e))
        raise StoreUnavailableError(f"Account lookup by token failed: {e}") from e

    if account is None or not verify_auth_token(auth_token, account.auth_token_hash):
        logger.warning("Unknown auth token presented")
        raise NotFoundError("No account matches the presented auth token")
    return account


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class AccountService:
    """
    Service for registering and reading accounts.

    All methods are async and expect an AsyncSession.
    Writes are committed by the service.
    """

    def __init__(self, session: AsyncSession, registration_config: Optional[RegistrationConfig] = None):
        self.session = session
        self.registration_config = registration_config or RegistrationConfig.from_settings()

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def validate_registration(self, raw_input: Mapping[str, Any]) -> ACCreateItem:
        """
        Check keys of a registration request and project the profile fields.

        Raises:
            ValidationError: unknown key(s), missing required key(s) or an invalid value
        """
        config = self.registration_config

        unknown = sorted((key for key in raw_input if key not in config.allowed_keys), key=str)
        if unknown:
            raise ValidationError(f"unknown key: {', '.join(map(str, unknown))}")

        missing: List[str] = [key for key in config.required_keys if _is_missing(raw_input.get(key))]
        if missing:
            raise ValidationError(f"missing required keys: {', '.join(missing)}")

        payload = {key: raw_input[key] for key in ACCOUNT_PROFILE_KEYS if key in raw_input}
        try:
            return ACCreateItem.model_validate(payload)
        except PydanticValidationError as e:
            raise validation_error_from_pydantic(e, "invalid account data") from e

    async def register(self, raw_input: Mapping[str, Any]) -> ACRegistered:
        """
        Validate a registration request and create the account.

        The account starts with default settings and a freshly generated
        auth token, returned here and never again.

        Raises:
            ValidationError: see validate_registration
            StoreUnavailableError: the account could not be saved
        """
        item = self.validate_registration(raw_input)

        auth_token = generate_auth_token()
        account = Account(
            **item.model_dump(exclude_none=True),
            auth_token_digest=auth_token_digest(auth_token),
            auth_token_hash=hash_auth_token(auth_token),
            settings=ACSettings().to_json(),
            )

        try:
            self.session.add(account)
            await self.session.commit()
            await self.session.refresh(account)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Account creation failed", domain=item.domain, error=str(e))
            raise StoreUnavailableError(f"Account creation failed: {e}") from e

        logger.info("Account registered", account_id=account.id, domain=account.domain)
        return ACRegistered(**ACReadItem.from_db_model(account).model_dump(), auth_token=auth_token)

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def get_account(self, account_id: str) -> ACReadItem:
        """Get the account's profile, without its credential."""
        return ACReadItem.from_db_model(await load_account(self.session, account_id))

    async def update_account(self, account_id: str, patch: Mapping[str, Any]) -> ACReadItem:
        """
        Change profile fields of the account.

        Only profile keys can be patched; id, credential and settings cannot.

        Raises:
            ValidationError: unknown key, nothing to update or an invalid value
            NotFoundError: no account with this id
            StoreUnavailableError: the update could not be saved
        """
        unknown = sorted((key for key in patch if key not in ACCOUNT_PROFILE_KEYS), key=str)
        if unknown:
            raise ValidationError(f"unknown key: {', '.join(map(str, unknown))}")
        try:
            item = ACUpdateItem.model_validate(dict(patch))
        except PydanticValidationError as e:
            raise validation_error_from_pydantic(e, "invalid account data") from e

        account = await load_account(self.session, account_id)
        for key, value in item.model_dump(exclude_unset=True).items():
            setattr(account, key, value)
        account.updated_at = utcnow()

        try:
            self.session.add(account)
            await self.session.commit()
            await self.session.refresh(account)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Account update failed", account_id=account_id, error=str(e))
            raise StoreUnavailableError(f"Account update failed: {e}") from e

        logger.info("Account updated", account_id=account_id, keys=sorted(item.model_fields_set))
        return ACReadItem.from_db_model(account)
