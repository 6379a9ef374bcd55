"""bcrypt helpers for deriving and checking password hashes."""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_COST = 12
MIN_COST = 4
MAX_COST = 31

# bcrypt ignores everything past the first 72 bytes of input.
MAX_PASSWORD_BYTES = 72


class PasswordEncodingError(Exception):
    """Raised when bcrypt fails for reasons unrelated to the password itself."""


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:MAX_PASSWORD_BYTES]


def derive(plaintext: str, cost: int = DEFAULT_COST) -> bytes:
    """Return a salted bcrypt hash of ``plaintext``.

    Parameters
    ----------
    plaintext:
        Password supplied by the user. Input beyond 72 bytes is not significant.
    cost:
        bcrypt work factor (log2 of the round count).

    Raises
    ------
    PasswordEncodingError
        If salt generation or hashing fails.
    ValueError
        If ``cost`` is outside the range bcrypt supports.
    """
    if not MIN_COST <= cost <= MAX_COST:
        raise ValueError(f"bcrypt cost must be between {MIN_COST} and {MAX_COST}, got {cost}")
    try:
        return bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=cost))
    except Exception as exc:
        raise PasswordEncodingError("failed to derive password hash") from exc


def matches(hashed: bytes, candidate: str) -> bool:
    """Return ``True`` when ``candidate`` hashes to ``hashed``.

    A stored hash that bcrypt cannot parse counts as a mismatch; it is logged
    so a corrupt record is still visible to operators.
    """
    try:
        return bcrypt.checkpw(_encode(candidate), hashed)
    except ValueError:
        logger.warning("stored password hash is malformed; treating as mismatch")
        return False
    except Exception as exc:
        raise PasswordEncodingError("failed to verify password hash") from exc
