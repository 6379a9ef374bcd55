"""Account service orchestrating hashing, validation, persistence and welcome mail."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol, Tuple

from .account import Account
from .contracts import RegisterAccountInput
from .errors import AccountValidationError, DuplicateEmailError, EmailConflictError
from .validation import Validator, validate_account
from ..background import BackgroundRunner
from ..mail.mailer import MailDeliveryError
from ..security.passwords import DEFAULT_COST

logger = logging.getLogger(__name__)

WELCOME_TEMPLATE = "user_welcome"


class AccountStore(Protocol):
    def insert(self, account: Account) -> Tuple[int, datetime, int]: ...

    def get_by_email(self, email: str) -> Account: ...


class MailSender(Protocol):
    def send(self, recipient: str, template: str, data: dict[str, Any]) -> None: ...


class AccountService:
    """Registration workflow backed by Postgres storage."""

    def __init__(
        self,
        repository: AccountStore,
        runner: BackgroundRunner,
        mailer: MailSender,
        password_cost: int = DEFAULT_COST,
    ) -> None:
        """Store dependencies used to orchestrate registration."""
        self._repository = repository
        self._runner = runner
        self._mailer = mailer
        self._password_cost = password_cost

    def register_account(self, payload: RegisterAccountInput) -> Account:
        """Create an account and queue its welcome email.

        Raises
        ------
        AccountValidationError
            If a field is invalid; ``EmailConflictError`` if the email is taken.
        StorageError
            If the store fails.
        PasswordEncodingError
            If the password could not be hashed.
        """
        account = Account(name=payload.name, email=payload.email, activated=False)
        account.password.set(payload.password, self._password_cost)

        v = Validator()
        validate_account(v, account)
        if not v.valid():
            raise AccountValidationError(v.errors)

        account.password.discard_plaintext()

        try:
            account.id, account.created_at, account.version = self._repository.insert(account)
        except DuplicateEmailError as exc:
            raise EmailConflictError() from exc

        logger.info("registered account %s", account.id)
        self._runner.run(
            self._send_welcome,
            account.email,
            {"id": account.id, "name": account.name, "email": account.email},
            name=f"welcome-email:{account.id}",
        )
        return account

    def get_account_by_email(self, email: str) -> Account:
        """Look up an account by email, raising ``AccountNotFoundError`` when absent."""
        return self._repository.get_by_email(email)

    def _send_welcome(self, recipient: str, data: dict[str, Any]) -> None:
        try:
            self._mailer.send(recipient, WELCOME_TEMPLATE, data)
        except MailDeliveryError:
            logger.exception("welcome email for account %s was not delivered", data.get("id"))
