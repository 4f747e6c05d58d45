"""
Authentication credential helpers.

The panel credential is a random auth token generated once at registration.
The plain token is handed to the account holder a single time. Two values
derived from it are stored:
- auth_token_digest: SHA-256 hex digest, indexed, used to find the account
  a presented token belongs to
- auth_token_hash: bcrypt hash, checked with verify_auth_token() once the
  account is found
"""
import hashlib
import secrets

import bcrypt
import structlog

logger = structlog.get_logger(__name__)

# Using bcrypt with cost factor 12 (good balance of security and speed)
BCRYPT_ROUNDS = 12

AUTH_TOKEN_BYTES = 32  # 256 bits of entropy


def generate_auth_token() -> str:
    """Create a new URL-safe auth token."""
    return secrets.token_urlsafe(AUTH_TOKEN_BYTES)


def hash_auth_token(token: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """
    Hash an auth token using bcrypt.

    Args:
        token: Plain auth token
        rounds: bcrypt cost factor

    Returns:
        Hashed token string
    """
    # bcrypt has a 72-byte limit; generated tokens are 43 chars
    token_bytes = token.encode('utf-8')[:72]
    return bcrypt.hashpw(token_bytes, bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def verify_auth_token(plain_token: str, token_hash: str) -> bool:
    """
    Verify an auth token against its stored hash.

    Returns:
        True if the token matches, False otherwise (including malformed hashes)
    """
    try:
        return bcrypt.checkpw(plain_token.encode('utf-8')[:72], token_hash.encode('utf-8'))
    except ValueError as e:
        logger.warning("Auth token verification failed", error=str(e))
        return False


def auth_token_digest(token: str) -> str:
    """SHA-256 hex digest of an auth token, the lookup key of its account."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()
