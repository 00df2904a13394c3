"""Password hashing and session token minting for broker clients."""

import logging
import secrets

import bcrypt

from mqauth.core.exceptions import HashingError

logger = logging.getLogger(__name__)

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# 16 random bytes -> 128-bit token, rendered as 32 hex chars.
SESSION_TOKEN_BYTES = 16


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors.
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except (ValueError, TypeError) as e:
        logger.error("Cannot create password hash", extra={"rounds": rounds, "reason": str(e)})
        raise HashingError("Cannot create password hash") from e


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def rehash_if_changed(
    previous_hash: str, incoming: str, rounds: int = BCRYPT_ROUNDS
) -> str:
    """
    Return the hash to store when a whole user record is replaced.

    Whole-record updates carry the password field along; when it is still the
    stored hash it must be kept as is, otherwise the hash itself would be hashed
    and the original password would stop verifying.
    """
    if incoming == previous_hash:
        return previous_hash
    return hash_password(incoming, rounds=rounds)


def new_session_token() -> str:
    """Mint an opaque, unpredictable session token."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)
