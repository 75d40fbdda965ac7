"""
Password hashing utilities using bcrypt.

Hashes use the versioned $2b$ format with a fixed cost factor. Verification
never raises: anything that is not a well-formed bcrypt hash simply fails.
"""

import bcrypt

from shared.config.constants import Limits
from shared.config.logging import get_logger

logger = get_logger(__name__)

BCRYPT_ROUNDS = 12
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
# bcrypt only looks at the first 72 bytes of input
BCRYPT_MAX_BYTES = 72


class PasswordTooShortError(ValueError):
    """Plaintext is shorter than the minimum password length."""


class PasswordTooLongError(ValueError):
    """Plaintext exceeds what bcrypt can hash without truncation."""


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash.

    Returns:
        Hashed password string (includes salt and algorithm info).

    Raises:
        PasswordTooShortError: fewer than Limits.MIN_PASSWORD_LENGTH characters.
        PasswordTooLongError: more than 72 bytes once UTF-8 encoded.

    Example:
        hashed = hash_password("mypassword123")
        # Returns something like: $2b$12$...
    """
    if len(password) < Limits.MIN_PASSWORD_LENGTH:
        raise PasswordTooShortError(
            f"password must be at least {Limits.MIN_PASSWORD_LENGTH} characters"
        )
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise PasswordTooLongError(f"password must be at most {BCRYPT_MAX_BYTES} bytes")

    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Verify a password against its hash.

    Returns False for a wrong password, an empty or non-bcrypt hash, and a
    corrupted hash alike.
    """
    if not hashed_password or not hashed_password.startswith(BCRYPT_PREFIXES):
        if hashed_password:
            logger.warning("SECURITY: non-bcrypt password hash rejected")
        return False

    encoded = plain_password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False

    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError:
        # Invalid salt or truncated hash
        logger.warning("SECURITY: malformed bcrypt hash rejected")
        return False


def needs_rehash(hashed_password: str) -> bool:
    """
    Check if a password hash should be replaced after a successful login.

    True for non-bcrypt hashes and for bcrypt hashes made with a different
    cost factor than BCRYPT_ROUNDS.
    """
    if not hashed_password.startswith(BCRYPT_PREFIXES):
        return True

    # Format: $2b$<cost>$<22 char salt><31 char hash>
    parts = hashed_password.split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return True
    return int(parts[2]) != BCRYPT_ROUNDS
