"""Password hashing backed by bcrypt."""

from __future__ import annotations

import logging

import bcrypt

from ..domain.account import Account
from ..errors import MalformedInput

logger = logging.getLogger(__name__)

DEFAULT_WORK_FACTOR = 4
# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class PasswordCredential:
    """One-way credential hashing with a tunable bcrypt cost.

    The default work factor is deliberately low for local development and
    must be raised for any real deployment.
    """

    def __init__(self, work_factor: int = DEFAULT_WORK_FACTOR) -> None:
        self._work_factor = work_factor

    def hash(self, plaintext: str, work_factor: int | None = None) -> str:
        """Return a salted bcrypt hash for ``plaintext``.

        Raises:
            MalformedInput: The password exceeds bcrypt's 72 byte input limit.
        """
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise MalformedInput("password too long")
        rounds = work_factor if work_factor is not None else self._work_factor
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(encoded, salt).decode("ascii")

    def verify(self, plaintext: str, credential: str) -> bool:
        """Return ``True`` when ``plaintext`` matches the stored credential."""
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, credential.encode("ascii"))
        except ValueError:
            logger.warning("stored credential is not a valid bcrypt hash")
            return False

    def reset(self, account: Account, new_plaintext: str, *, credential: str | None = None) -> None:
        """Replace the account's stored credential with a hash of ``new_plaintext``.

        Pass ``credential`` when the hash was already computed for
        ``new_plaintext``, so a caller holding the store lock does no hashing.
        """
        account.credential = credential if credential is not None else self.hash(new_plaintext)
