"""Exceptions raised by the account provisioning workflow."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for recoverable account workflow failures."""


class AccountValidationError(AccountError):
    """Candidate account failed one or more field checks."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("account failed validation")
        self.errors = dict(errors)


class EmailConflictError(AccountValidationError):
    """Another account already owns the requested email address."""

    def __init__(self, message: str = "a user with this email address already exists") -> None:
        super().__init__({"email": message})


class DuplicateEmailError(AccountError):
    """The store rejected an insert on the unique email constraint."""


class AccountNotFoundError(AccountError):
    """No account matched the lookup."""


class StorageError(AccountError):
    """The backing store failed or did not answer in time."""


class InvariantViolation(RuntimeError):
    """Internal contract breach; never reported to clients as a user error."""
