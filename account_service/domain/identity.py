"""Random identifier assignment for new accounts."""

from __future__ import annotations

import secrets

ID_BITS = 64


class IdentityGenerator:
    """Draw account identifiers uniformly from the unsigned 64-bit range."""

    def next_id(self) -> int:
        # uniqueness is enforced by the store, not here
        return secrets.randbits(ID_BITS)
