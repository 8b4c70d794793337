"""Utilities for issuing and validating signed action links.

Two capabilities are supported:

* create tokens authorise opening an account for exactly one email address and
  never expire;
* reset tokens authorise replacing one account's password until their expiry.

Each token is ``HMAC-SHA3-256(secret, payload)`` over a fixed byte encoding of
the payload. Reset payloads are encoded as::

    b"<decimal user id>|<expiry as ISO-8601, UTC, microsecond precision>"

so a client editing the transported expiry invalidates the signature. Rotating
the secret invalidates every outstanding token.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
from base64 import b64decode, b64encode
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from ..domain.account import Account
from ..errors import MalformedInput

Clock = Callable[[], datetime]

DEFAULT_RESET_TTL = timedelta(hours=3)
_FIELD_SEPARATOR = b"|"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def encode_token(raw: bytes) -> str:
    """Return the transport (base64) form of raw MAC bytes."""
    return b64encode(raw).decode("ascii")


def decode_token(value: str) -> bytes:
    """Decode a transported token.

    Raises:
        MalformedInput: ``value`` is not strict base64.
    """
    try:
        return b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise MalformedInput("invalid token encoding") from exc


def format_expiry(expires: datetime) -> str:
    return expires.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_expiry(value: str) -> datetime:
    """Parse a transported expiry into an aware UTC datetime.

    Raises:
        MalformedInput: The value is not ISO-8601 or carries no UTC offset.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise MalformedInput("invalid expiry timestamp") from exc
    if parsed.tzinfo is None:
        raise MalformedInput("expiry timestamp must carry a UTC offset")
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        raise MalformedInput("expiry timestamp out of range") from exc


@dataclass(frozen=True, slots=True)
class CreateToken:
    """Signed capability to create the account for ``email``."""

    email: str
    token: bytes

    @classmethod
    def from_transport(cls, email: str, token: str) -> "CreateToken":
        return cls(email=email, token=decode_token(token))

    def to_params(self) -> dict[str, str]:
        return {"email": self.email, "token": encode_token(self.token)}


@dataclass(frozen=True, slots=True)
class ResetToken:
    """Signed capability to reset the password of ``user_id`` until ``expires``."""

    user_id: int
    expires: datetime
    token: bytes

    @classmethod
    def from_transport(cls, user_id: int, expires: str, token: str) -> "ResetToken":
        return cls(user_id=user_id, expires=parse_expiry(expires), token=decode_token(token))

    def to_params(self) -> dict[str, str]:
        return {
            "user_id": str(self.user_id),
            "expires": format_expiry(self.expires),
            "token": encode_token(self.token),
        }


class TokenVerifier:
    """Issue and check HMAC capability tokens with one process-wide secret."""

    def __init__(
        self,
        secret: bytes,
        *,
        reset_ttl: timedelta = DEFAULT_RESET_TTL,
        clock: Clock = utc_now,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._reset_ttl = reset_ttl
        self._clock = clock

    def _mac(self, *fields: bytes) -> bytes:
        return hmac.new(self._secret, _FIELD_SEPARATOR.join(fields), hashlib.sha3_256).digest()

    def _create_mac(self, email: str) -> bytes:
        return self._mac(email.encode("utf-8"))

    def _reset_mac(self, user_id: int, expires: datetime) -> bytes:
        return self._mac(str(user_id).encode("ascii"), format_expiry(expires).encode("ascii"))

    def issue_create(self, email: str) -> CreateToken:
        return CreateToken(email=email, token=self._create_mac(email))

    def verify_create(self, candidate_email: str, token: bytes) -> bool:
        """Return ``True`` iff ``token`` was issued for ``candidate_email``."""
        return hmac.compare_digest(self._create_mac(candidate_email), token)

    def issue_reset(self, account: Account) -> ResetToken:
        expires = self._clock() + self._reset_ttl
        return ResetToken(
            user_id=account.user_id,
            expires=expires,
            token=self._reset_mac(account.user_id, expires),
        )

    def verify_reset(self, account: Account, reset_token: ResetToken) -> bool:
        """Check a reset token against the account it is being applied to.

        The MAC is recomputed from ``account.user_id``, the identifier the
        server resolved, never from the id echoed inside ``reset_token``.
        A token whose expiry equals the current instant is already expired.
        """
        if self._clock() >= reset_token.expires:
            return False
        expected = self._reset_mac(account.user_id, reset_token.expires)
        return hmac.compare_digest(expected, reset_token.token)
