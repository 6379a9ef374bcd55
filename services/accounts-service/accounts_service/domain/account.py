from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..security import passwords


@dataclass(slots=True)
class Password:
    """Credential in construction: a bcrypt hash plus, until discarded, its plaintext."""

    plaintext: str | None = field(default=None, repr=False)
    hash: bytes | None = field(default=None, repr=False)

    def set(self, plaintext: str, cost: int = passwords.DEFAULT_COST) -> None:
        self.hash = passwords.derive(plaintext, cost)
        self.plaintext = plaintext

    def matches(self, candidate: str) -> bool:
        if self.hash is None:
            return False
        return passwords.matches(self.hash, candidate)

    def discard_plaintext(self) -> None:
        self.plaintext = None


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user."""

    name: str
    email: str
    password: Password = field(default_factory=Password)
    activated: bool = False
    version: int = 1
    id: int | None = None
    created_at: datetime | None = None
