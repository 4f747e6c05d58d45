"""
Application configuration module.
Loads environment variables and provides application-wide settings.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, FrozenSet

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Get project root (two levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Global flag to indicate test mode (set via COINPANEL_TEST_MODE env var)
_test_mode = os.environ.get("COINPANEL_TEST_MODE", "").lower() in ("1", "true", "yes")


def set_test_mode(enabled: bool = True):
    """
    Enable/disable test mode globally.
    When enabled, DATABASE_URL will automatically use TEST_DATABASE_URL.

    Args:
        enabled: True to enable test mode, False to disable
    """
    global _test_mode
    _test_mode = enabled
    os.environ["COINPANEL_TEST_MODE"] = "1" if enabled else "0"


def is_test_mode() -> bool:
    """Check if test mode is enabled."""
    return _test_mode


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env file.
    (Note: Environment variables take precedence over .env file)
    """
    # Database
    DATABASE_URL: str = "sqlite:///./backend/data/sqlite/panel.db"
    TEST_DATABASE_URL: str = "sqlite:///./backend/data/sqlite/test_panel.db"

    PROJECT_NAME: str = "CoinPanel"
    VERSION: str = "0.1.0"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Registration form: every key outside this list is rejected.
    # "submit" and "_csrf" are posted by the panel form and dropped silently.
    REGISTRATION_ALLOWED_KEYS: list[str] = [
        "domain",
        "email_account_contact",
        "email_customer_contact",
        "name",
        "submit",
        "_csrf",
        ]
    REGISTRATION_REQUIRED_KEYS: list[str] = ["domain", "email_account_contact"]

    model_config = ConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        case_sensitive=True,
        env_file_encoding='utf-8'
        )


def get_settings() -> Settings:
    """
    Get settings instance.

    In test mode, DATABASE_URL is automatically overridden with TEST_DATABASE_URL.

    Returns:
        Settings: Application settings
    """
    settings = Settings()

    # Override DATABASE_URL if in test mode
    if is_test_mode():
        settings.DATABASE_URL = settings.TEST_DATABASE_URL

    return settings


@dataclass(frozen=True)
class RegistrationConfig:
    """
    Key rules applied by the registration validator.

    Passed explicitly to AccountService so tests can inject their own lists.
    """
    allowed_keys: FrozenSet[str]
    required_keys: Tuple[str, ...]

    def __post_init__(self):
        not_allowed = [k for k in self.required_keys if k not in self.allowed_keys]
        if not_allowed:
            raise ValueError(f"Required keys must be allowed too: {', '.join(not_allowed)}")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RegistrationConfig":
        settings = settings or get_settings()
        return cls(
            allowed_keys=frozenset(settings.REGISTRATION_ALLOWED_KEYS),
            required_keys=tuple(settings.REGISTRATION_REQUIRED_KEYS),
            )
