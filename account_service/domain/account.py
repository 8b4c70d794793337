from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import IncompleteAccount

if TYPE_CHECKING:
    from ..security.passwords import PasswordCredential
    from .identity import IdentityGenerator


@dataclass(slots=True)
class Account:
    """Directory entry for a single user.

    ``user_id`` is assigned once by :class:`AccountBuilder`; ``credential`` is
    the only field rewritten afterwards, by a password reset.
    """

    user_id: int
    name: str
    email: str
    credential: str


class AccountBuilder:
    """Collects the requested fields for a new account before it is stored."""

    def __init__(self) -> None:
        self.requested_name: str | None = None
        self.requested_email: str | None = None
        self.requested_password: str | None = None

    def with_name(self, name: str) -> "AccountBuilder":
        self.requested_name = name
        return self

    def with_email(self, email: str) -> "AccountBuilder":
        self.requested_email = email
        return self

    def with_password(self, password: str) -> "AccountBuilder":
        self.requested_password = password
        return self

    def build(self, identity: IdentityGenerator, credentials: PasswordCredential) -> Account:
        """Hash the password and draw an identifier for the pending account.

        Hashing is the slow step, so this runs before the caller touches the
        store lock.
        """
        missing = [
            field
            for field, value in (
                ("name", self.requested_name),
                ("email", self.requested_email),
                ("password", self.requested_password),
            )
            if value is None
        ]
        if missing:
            raise IncompleteAccount(missing)
        return Account(
            user_id=identity.next_id(),
            name=self.requested_name,
            email=self.requested_email,
            credential=credentials.hash(self.requested_password),
        )
