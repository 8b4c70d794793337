"""Tests for signed create and reset links."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from account_service.domain.account import Account
from account_service.errors import MalformedInput
from account_service.security.tokens import (
    CreateToken,
    ResetToken,
    TokenVerifier,
    decode_token,
    encode_token,
    format_expiry,
    parse_expiry,
)

T0 = datetime(2026, 10, 17, 12, 0, 0, 123456, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_account(user_id: int, email: str = "neo@example.com") -> Account:
    return Account(user_id=user_id, name="Neo", email=email, credential="x")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def verifier(clock) -> TokenVerifier:
    return TokenVerifier(b"my super secret key", clock=clock)


def test_reset_token_valid_until_expiry(verifier, clock):
    account = make_account(1)
    reset = verifier.issue_reset(account)

    assert reset.user_id == 1
    assert reset.expires == T0 + timedelta(hours=3)
    assert verifier.verify_reset(account, reset)

    clock.now = T0 + timedelta(hours=2, minutes=59)
    assert verifier.verify_reset(account, reset)

    clock.now = T0 + timedelta(hours=3, minutes=1)
    assert not verifier.verify_reset(account, reset)


def test_reset_token_rejected_when_expiry_equals_now(verifier, clock):
    account = make_account(1)
    reset = verifier.issue_reset(account)

    clock.now = reset.expires
    assert not verifier.verify_reset(account, reset)


def test_reset_token_not_transferable_between_accounts(verifier):
    alice = make_account(7, "alice@example.com")
    bob = make_account(8, "bob@example.com")
    reset = verifier.issue_reset(alice)

    assert not verifier.verify_reset(bob, reset)
    # same bytes relabelled with bob's id
    forged = ResetToken(user_id=bob.user_id, expires=reset.expires, token=reset.token)
    assert not verifier.verify_reset(bob, forged)


def test_extending_expiry_invalidates_reset_token(verifier):
    account = make_account(1)
    reset = verifier.issue_reset(account)
    extended = ResetToken(
        user_id=reset.user_id,
        expires=reset.expires + timedelta(days=30),
        token=reset.token,
    )
    assert not verifier.verify_reset(account, extended)


def test_reset_token_from_other_secret_rejected(clock):
    account = make_account(1)
    reset = TokenVerifier(b"old secret", clock=clock).issue_reset(account)
    assert not TokenVerifier(b"new secret", clock=clock).verify_reset(account, reset)


def test_create_token_bound_to_email(verifier):
    link = verifier.issue_create("a@x.com")

    assert verifier.verify_create("a@x.com", link.token)
    assert not verifier.verify_create("b@x.com", link.token)
    assert not verifier.verify_create("A@x.com", link.token)
    assert not verifier.verify_create("a@x.com", link.token[:-1])


def test_create_token_survives_transport(verifier):
    link = verifier.issue_create("a+tag@x.com")
    params = link.to_params()

    received = CreateToken.from_transport(params["email"], params["token"])
    assert received == link
    assert verifier.verify_create(received.email, received.token)


def test_reset_token_survives_transport(verifier):
    account = make_account(18446744073709551615)
    reset = verifier.issue_reset(account)
    params = reset.to_params()

    received = ResetToken.from_transport(int(params["user_id"]), params["expires"], params["token"])
    assert received == reset
    assert verifier.verify_reset(account, received)


def test_equivalent_expiry_offset_still_verifies(verifier):
    account = make_account(3)
    reset = verifier.issue_reset(account)
    shifted = reset.expires.astimezone(timezone(timedelta(hours=2))).isoformat()

    received = ResetToken.from_transport(3, shifted, encode_token(reset.token))
    assert verifier.verify_reset(account, received)


def test_token_encoding_round_trip(verifier):
    raw = verifier.issue_create("a@x.com").token
    assert decode_token(encode_token(raw)) == raw


@pytest.mark.parametrize("value", ["not base64!", "abc", "é"])
def test_decode_token_rejects_garbage(value):
    with pytest.raises(MalformedInput):
        decode_token(value)


@pytest.mark.parametrize(
    "value",
    [
        "tomorrow",
        "",
        "2026-10-17T12:00:00",
        "9999-12-31T23:59:59-01:00",
        "0001-01-01T00:00:00+01:00",
    ],
)
def test_parse_expiry_rejects_bad_timestamps(value):
    with pytest.raises(MalformedInput):
        parse_expiry(value)


def test_expiry_format_is_utc_with_microseconds():
    assert format_expiry(T0) == "2026-10-17T12:00:00.123456+00:00"
    assert parse_expiry("2026-10-17T14:00:00.123456+02:00") == T0


def test_empty_secret_refused():
    with pytest.raises(ValueError):
        TokenVerifier(b"")
