"""Field checks applied to accounts before they are persisted."""

from __future__ import annotations

import re

from .account import Account
from .errors import InvariantViolation

EMAIL_RX = re.compile(
    r"[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*"
)

MAX_NAME_BYTES = 500
MIN_PASSWORD_BYTES = 8
MAX_PASSWORD_BYTES = 72


class Validator:
    """Collects the first failure message reported for each field."""

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        self.errors.setdefault(key, message)

    def check(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_error(key, message)


def _byte_length(value: str) -> int:
    return len(value.encode("utf-8"))


def validate_email(v: Validator, email: str) -> None:
    v.check(email != "", "email", "must be provided")
    v.check(EMAIL_RX.fullmatch(email) is not None, "email", "must be a valid address")


def validate_password_plaintext(v: Validator, password: str) -> None:
    v.check(password != "", "password", "must be provided")
    v.check(_byte_length(password) >= MIN_PASSWORD_BYTES, "password", "must be at least 8 bytes long")
    v.check(_byte_length(password) <= MAX_PASSWORD_BYTES, "password", "must not be more than 72 bytes long")


def validate_account(v: Validator, account: Account) -> None:
    """Record every field problem on ``v``.

    Raises
    ------
    InvariantViolation
        If the account's password was never hashed.
    """
    v.check(account.name != "", "name", "must be provided")
    v.check(_byte_length(account.name) <= MAX_NAME_BYTES, "name", "must not be more than 500 bytes long")

    validate_email(v, account.email)

    if account.password.plaintext is not None:
        validate_password_plaintext(v, account.password.plaintext)

    if account.password.hash is None:
        raise InvariantViolation("missing password hash for account")
