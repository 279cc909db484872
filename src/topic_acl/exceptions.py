"""
Access-control exceptions for topic-acl.
"""

from typing import Optional


class AccessControlError(Exception):
    """Base exception for access-control errors."""

    pass


class NotFoundError(AccessControlError):
    """Raised when a user or grant does not exist."""

    pass


class AlreadyExistsError(AccessControlError):
    """Raised when creating an entity that already exists."""

    pass


class InvalidArgumentError(AccessControlError, ValueError):
    """Raised for malformed or disallowed arguments."""

    pass


class StorageIOError(AccessControlError):
    """Raised when the backing store cannot be read or written."""

    pass


class ConfigError(AccessControlError):
    """Raised when bootstrap parameters are missing or invalid."""

    pass


class UserNotFoundError(NotFoundError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"user {username} does not exist")


class UserExistsError(AlreadyExistsError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"user {username} already exists")


class TierExistsError(AlreadyExistsError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"tier {code} already exists")


class ReservedNameError(InvalidArgumentError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"username {username!r} is reserved")


class InvalidUsernameError(InvalidArgumentError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"invalid username {username!r}")


class InvalidRoleError(InvalidArgumentError):
    def __init__(self, role: object):
        self.role = role
        super().__init__(f"role must be either 'user' or 'admin', got {role!r}")


class InvalidPatternError(InvalidArgumentError):
    def __init__(self, pattern: str, reason: Optional[str] = None):
        self.pattern = pattern
        self.reason = reason

        message = f"invalid topic pattern {pattern!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidPermissionError(InvalidArgumentError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(
            "permission must be one of: read-write, read-only, write-only, "
            f"or deny (or the aliases: read, ro, write, wo, none), got {value!r}"
        )


class InvalidTierCodeError(InvalidArgumentError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"invalid tier code {code!r}")


class UnknownTierError(InvalidArgumentError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"tier {code} does not exist")


class ProvisionedChangeError(InvalidArgumentError):
    """Raised when trying to edit a user or grant owned by the server config."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"cannot change or delete provisioned {what}")
