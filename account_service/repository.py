"""In-memory account directory guarded by a single lock."""

from __future__ import annotations

import dataclasses
import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from .domain.account import Account
from .errors import DuplicateEmail, IdentifierCollision

logger = logging.getLogger(__name__)


class UserStore:
    """Thread-safe mapping of user identifier to :class:`Account`.

    Every operation holds the one store lock for its whole duration, so
    mutations are linearizable and the email uniqueness check cannot race an
    insert. Callers must not do slow work (hashing, I/O) while inside a
    :meth:`get` or :meth:`get_mut` block.
    """

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    @contextmanager
    def get(self, user_id: int) -> Iterator[Account | None]:
        """Yield a snapshot of the account (or ``None``) while holding the lock."""
        with self._lock:
            account = self._accounts.get(user_id)
            yield dataclasses.replace(account) if account is not None else None

    @contextmanager
    def get_mut(self, user_id: int) -> Iterator[Account | None]:
        """Yield the live account record (or ``None``) while holding the lock."""
        with self._lock:
            yield self._accounts.get(user_id)

    def add(self, account: Account) -> None:
        """Insert ``account`` unless its email or identifier is already taken.

        Raises:
            DuplicateEmail: Another account has exactly the same email.
            IdentifierCollision: The identifier is already assigned.
        """
        with self._lock:
            if any(existing.email == account.email for existing in self._accounts.values()):
                raise DuplicateEmail(account.email)
            if account.user_id in self._accounts:
                raise IdentifierCollision(account.user_id)
            self._accounts[account.user_id] = account
            total = len(self._accounts)
        logger.info("account %s added (%d accounts)", account.user_id, total)

    def list(self) -> list[Account]:
        """Return snapshots of every account ordered by identifier."""
        with self._lock:
            return [
                dataclasses.replace(self._accounts[user_id])
                for user_id in sorted(self._accounts)
            ]
