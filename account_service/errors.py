"""Error taxonomy shared by the store, the token verifier and the HTTP edge."""

from __future__ import annotations


class AccountServiceError(ValueError):
    """Base class for failures the boundary layer maps to caller-visible outcomes."""


class DuplicateEmail(AccountServiceError):
    """Another account already uses the requested email address."""

    def __init__(self, email: str) -> None:
        super().__init__("email already registered")
        self.email = email


class AccountNotFound(AccountServiceError):
    """No account exists for the requested identifier."""

    def __init__(self, user_id: int) -> None:
        super().__init__("account not found")
        self.user_id = user_id


class MalformedInput(AccountServiceError):
    """External input could not be decoded or parsed."""


class IncompleteAccount(AccountServiceError):
    """The account builder is missing a required field."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"missing account fields: {', '.join(missing)}")
        self.missing = missing


class IdentifierCollision(AccountServiceError):
    """The store already holds an account with the drawn identifier."""

    def __init__(self, user_id: int) -> None:
        super().__init__("identifier already assigned")
        self.user_id = user_id
