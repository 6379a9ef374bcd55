"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class RegisterAccountInput:
    """Raw registration fields as decoded from the request body."""

    name: str
    email: str
    password: str = field(repr=False)
