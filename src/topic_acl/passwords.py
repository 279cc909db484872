"""Password hashing and confirmation helpers backed by bcrypt."""

import hmac
import re

import bcrypt

from topic_acl.exceptions import InvalidArgumentError

DEFAULT_BCRYPT_COST = 10
MIN_BCRYPT_COST = 4
MAX_BCRYPT_COST = 31
MAX_PASSWORD_BYTES = 72

BCRYPT_HASH_REGEX = re.compile(r"^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$")


def _encode(password: str) -> bytes:
    if not password:
        raise InvalidArgumentError("password cannot be empty")
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise InvalidArgumentError(
            f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes"
        )
    return encoded


def validate_cost(cost: int) -> int:
    if not MIN_BCRYPT_COST <= cost <= MAX_BCRYPT_COST:
        raise InvalidArgumentError(
            f"bcrypt cost must be between {MIN_BCRYPT_COST} and {MAX_BCRYPT_COST}"
        )
    return cost


def hash_password(password: str, cost: int = DEFAULT_BCRYPT_COST) -> str:
    """Hash password with bcrypt using the given cost factor."""
    salt = bcrypt.gensalt(rounds=validate_cost(cost))
    return bcrypt.hashpw(_encode(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except (InvalidArgumentError, ValueError):
        return False


def validate_hash(password_hash: str) -> str:
    """Check that a caller-supplied value looks like a bcrypt hash."""
    if not BCRYPT_HASH_REGEX.match(password_hash or ""):
        raise InvalidArgumentError("password hash must be a bcrypt hash")
    return password_hash


def confirm_password(password: str, confirmation: str) -> str:
    """Return password if both entries match, comparing in constant time."""
    if not password:
        raise InvalidArgumentError("password cannot be empty")
    if not hmac.compare_digest(password.encode("utf-8"), confirmation.encode("utf-8")):
        raise InvalidArgumentError("passwords do not match")
    return password
