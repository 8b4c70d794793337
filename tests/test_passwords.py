from __future__ import annotations

import pytest

from account_service.domain.account import Account
from account_service.errors import MalformedInput
from account_service.security.passwords import PasswordCredential


@pytest.fixture()
def credentials() -> PasswordCredential:
    return PasswordCredential(work_factor=4)


def test_hash_is_salted_and_one_way(credentials):
    first = credentials.hash("hunter2")
    second = credentials.hash("hunter2")

    assert first != second
    assert "hunter2" not in first
    assert first.startswith("$2b$04$")
    assert credentials.verify("hunter2", first)
    assert not credentials.verify("hunter3", first)


def test_explicit_work_factor_overrides_default(credentials):
    assert credentials.hash("pw", work_factor=5).startswith("$2b$05$")


def test_reset_replaces_credential(credentials):
    account = Account(user_id=1, name="Neo", email="neo@x.com", credential=credentials.hash("old"))

    credentials.reset(account, "new")

    assert credentials.verify("new", account.credential)
    assert not credentials.verify("old", account.credential)


def test_over_long_password_rejected(credentials):
    with pytest.raises(MalformedInput):
        credentials.hash("x" * 73)


def test_verify_tolerates_garbage_credential(credentials):
    assert not credentials.verify("pw", "not-a-bcrypt-hash")


def test_reset_uses_precomputed_credential(credentials):
    account = Account(user_id=1, name="Neo", email="neo@x.com", credential=credentials.hash("old"))
    precomputed = credentials.hash("new")

    credentials.reset(account, "new", credential=precomputed)

    assert account.credential == precomputed
