"""Tests for bcrypt password hashing helpers."""

from __future__ import annotations

import logging
from unittest import mock

import pytest

from accounts_service.domain.account import Password
from accounts_service.security import passwords

COST = 4


def test_derived_hash_matches_its_plaintext():
    hashed = passwords.derive("correct horse battery", COST)
    assert passwords.matches(hashed, "correct horse battery")


def test_derived_hash_rejects_other_plaintext():
    hashed = passwords.derive("correct horse battery", COST)
    assert not passwords.matches(hashed, "correct horse battery staple")
    assert not passwords.matches(hashed, "")


def test_derive_uses_a_fresh_salt_each_call():
    first = passwords.derive("same-password", COST)
    second = passwords.derive("same-password", COST)
    assert first != second
    assert passwords.matches(first, "same-password")
    assert passwords.matches(second, "same-password")


def test_default_cost_is_twelve_rounds():
    assert passwords.DEFAULT_COST == 12
    hashed = passwords.derive("longenough1")
    assert hashed.startswith(b"$2b$12$")


def test_cost_is_tunable():
    assert passwords.derive("longenough1", 5).startswith(b"$2b$05$")


def test_cost_outside_bcrypt_range_is_rejected():
    with pytest.raises(ValueError):
        passwords.derive("longenough1", 3)


def test_overlong_plaintext_still_hashes():
    plaintext = "x" * 100
    hashed = passwords.derive(plaintext, COST)
    assert passwords.matches(hashed, plaintext)


def test_malformed_hash_is_a_mismatch(caplog):
    with caplog.at_level(logging.WARNING):
        assert passwords.matches(b"not-a-bcrypt-hash", "longenough1") is False
    assert "malformed" in caplog.text


def test_internal_failure_is_surfaced():
    with mock.patch.object(passwords.bcrypt, "gensalt", side_effect=OSError("no entropy")):
        with pytest.raises(passwords.PasswordEncodingError):
            passwords.derive("longenough1", COST)


def test_password_value_object_keeps_plaintext_until_discarded():
    password = Password()
    assert not password.matches("longenough1")

    password.set("longenough1", COST)
    assert password.plaintext == "longenough1"
    assert password.matches("longenough1")

    password.discard_plaintext()
    assert password.plaintext is None
    assert password.matches("longenough1")
    assert "longenough1" not in repr(password)
