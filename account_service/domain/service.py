"""Account service orchestrating the directory, credentials, and signed links."""

from __future__ import annotations

import dataclasses
import logging
import secrets
from datetime import timedelta

from prometheus_client import Counter

from .account import Account, AccountBuilder
from .identity import IdentityGenerator
from ..config import Settings
from ..errors import AccountNotFound, IdentifierCollision, MalformedInput
from ..repository import UserStore
from ..security.passwords import PasswordCredential
from ..security.tokens import CreateToken, ResetToken, TokenVerifier

logger = logging.getLogger(__name__)

TOKENS_ISSUED = Counter(
    "account_tokens_issued_total",
    "Capability tokens minted, by action.",
    ["action"],
)
TOKEN_VERIFICATIONS = Counter(
    "account_token_verifications_total",
    "Capability token checks, by action and result.",
    ["action", "result"],
)

MAX_ID_ATTEMPTS = 3

DEMO_NAMES = ("Eric", "Linus", "Michelle", "Rogan", "Lily")
DEMO_EMAIL_DOMAIN = "spookysoftware.dev"


def _record_verification(action: str, ok: bool) -> bool:
    TOKEN_VERIFICATIONS.labels(action=action, result="accepted" if ok else "denied").inc()
    return ok


class AccountService:
    """Account workflows over an in-memory :class:`UserStore`.

    One instance is built at process start and shared by every request; it is
    the only holder of the token secret and the store.
    """

    def __init__(
        self,
        store: UserStore,
        tokens: TokenVerifier,
        credentials: PasswordCredential,
        identity: IdentityGenerator | None = None,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._credentials = credentials
        self._identity = identity or IdentityGenerator()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccountService":
        """Build the service, seeding demo accounts when configured."""
        if settings.token_secret:
            secret = settings.token_secret.encode("utf-8")
        else:
            logger.warning("TOKEN_SECRET not set; links will not survive a restart")
            secret = secrets.token_bytes(32)
        service = cls(
            UserStore(),
            TokenVerifier(secret, reset_ttl=timedelta(seconds=settings.reset_token_ttl_seconds)),
            PasswordCredential(settings.bcrypt_work_factor),
        )
        if settings.seed_demo_accounts:
            service.seed_demo_accounts()
        return service

    @property
    def store(self) -> UserStore:
        return self._store

    @property
    def tokens(self) -> TokenVerifier:
        return self._tokens

    @property
    def credentials(self) -> PasswordCredential:
        return self._credentials

    def list_accounts(self) -> list[Account]:
        return self._store.list()

    def get_account(self, user_id: int) -> Account:
        """Return a snapshot of the account or raise :class:`AccountNotFound`."""
        with self._store.get(user_id) as account:
            if account is None:
                raise AccountNotFound(user_id)
            return account

    def request_signup(self, email: str) -> CreateToken:
        """Mint the create link for ``email``."""
        TOKENS_ISSUED.labels(action="create").inc()
        logger.info("create link issued")
        return self._tokens.issue_create(email)

    def create_account(self, link: CreateToken, name: str, password: str) -> Account | None:
        """Create an account for the email carried by a verified create link.

        Returns ``None`` when the link does not verify. The email always comes
        from ``link``; the client never resubmits it separately.

        Raises:
            DuplicateEmail: The email is already registered.
            MalformedInput: The password cannot be hashed.
        """
        if not _record_verification("create", self._tokens.verify_create(link.email, link.token)):
            logger.info("create link rejected")
            return None

        pending = (
            AccountBuilder()
            .with_email(link.email)
            .with_name(name)
            .with_password(password)
            .build(self._identity, self._credentials)
        )
        return self._insert(pending)

    def create_account_from_params(self, email: str, token: str, name: str, password: str) -> Account | None:
        """Like :meth:`create_account` but for raw link parameters.

        An undecodable token counts as a failed verification.
        """
        try:
            link = CreateToken.from_transport(email, token)
        except MalformedInput:
            _record_verification("create", False)
            logger.info("create link rejected: undecodable token")
            return None
        return self.create_account(link, name, password)

    def _insert(self, pending: Account) -> Account:
        attempt = 1
        while True:
            try:
                self._store.add(pending)
            except IdentifierCollision:
                if attempt >= MAX_ID_ATTEMPTS:
                    raise
                logger.warning("identifier collision on attempt %d, redrawing", attempt)
                pending.user_id = self._identity.next_id()
                attempt += 1
            else:
                return dataclasses.replace(pending)

    def issue_reset_link(self, user_id: int) -> ResetToken:
        """Mint a reset link for an existing account."""
        with self._store.get(user_id) as account:
            if account is None:
                raise AccountNotFound(user_id)
            reset = self._tokens.issue_reset(account)
        TOKENS_ISSUED.labels(action="reset").inc()
        logger.info("reset link issued for account %s", user_id)
        return reset

    def reset_password(self, reset: ResetToken, new_password: str) -> bool:
        """Replace the password of ``reset.user_id`` if the link verifies.

        The new password is hashed before the store lock is taken; only the
        verification and the assignment run under it.

        Raises:
            AccountNotFound: No account has the link's identifier.
            MalformedInput: The new password cannot be hashed.
        """
        credential = self._credentials.hash(new_password)
        with self._store.get_mut(reset.user_id) as account:
            if account is None:
                raise AccountNotFound(reset.user_id)
            valid = _record_verification("reset", self._tokens.verify_reset(account, reset))
            if valid:
                self._credentials.reset(account, new_password, credential=credential)
        if valid:
            logger.info("password reset for account %s", reset.user_id)
        else:
            logger.info("reset link rejected for account %s", reset.user_id)
        return valid

    def reset_password_from_params(self, user_id: int, expires: str, token: str, new_password: str) -> bool:
        """Like :meth:`reset_password` but for raw link parameters.

        An undecodable token or expiry counts as a failed verification; an
        unknown account still raises :class:`AccountNotFound`.
        """
        try:
            reset = ResetToken.from_transport(user_id, expires, token)
        except MalformedInput:
            self.get_account(user_id)
            _record_verification("reset", False)
            logger.info("reset link rejected for account %s: malformed parameters", user_id)
            return False
        return self.reset_password(reset, new_password)

    def seed_demo_accounts(self) -> None:
        """Populate the directory with a handful of demo users.

        Each gets a random email and password; ``Neo`` is pinned to
        identifier 1 so a reset link can be requested without listing first.
        """
        mailboxes = secrets.SystemRandom().sample(range(2**16), len(DEMO_NAMES) + 1)
        user_ids = [self._identity.next_id() for _ in DEMO_NAMES] + [1]
        for name, user_id, mailbox in zip((*DEMO_NAMES, "Neo"), user_ids, mailboxes):
            self._insert(
                Account(
                    user_id=user_id,
                    name=name,
                    email=f"user-{mailbox}@{DEMO_EMAIL_DOMAIN}",
                    credential=self._credentials.hash(str(secrets.randbits(64))),
                )
            )
        logger.info("seeded %d demo accounts", len(user_ids))
