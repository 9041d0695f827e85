"""bcrypt password hashing for managers and stores."""

import bcrypt

from .errors import InvalidCredentialsError, PasswordPolicyError

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, min_length: int = 0) -> str:
    """
    Hash a password with a freshly generated salt.

    Args:
        password: Raw password.
        min_length: Minimum length in bytes (0 disables the check).

    Raises:
        PasswordPolicyError: If the password is too short or over 72 bytes.
    """
    raw = password.encode("utf-8")
    if len(raw) < min_length:
        raise PasswordPolicyError(f"must be at least {min_length} characters long")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise PasswordPolicyError(
            f"bcrypt only processes the first {MAX_PASSWORD_BYTES} bytes, "
            f"current password has {len(raw)} bytes"
        )
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode("ascii")


def check_password(password: str, hashed: str) -> None:
    """
    Raises:
        InvalidCredentialsError: If the password doesn't match the hash.
    """
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES or not hashed:
        raise InvalidCredentialsError()
    try:
        ok = bcrypt.checkpw(raw, hashed.encode("ascii"))
    except ValueError:
        # malformed stored hash
        raise InvalidCredentialsError() from None
    if not ok:
        raise InvalidCredentialsError()
