"""OAuth session state.

plotted is a single-operator tool: one ``Session`` exists per running server
and is shared by every request it handles. Nothing guards it against
concurrent writers; re-authenticating simply replaces the token. Supporting
several users would mean keying sessions by a cookie-borne identifier.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass


@dataclass
class Session:
    """Bearer token and pending authorization nonce for the operator."""

    access_token: str | None = None
    pending_state: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def new_state(self) -> str:
        """Issue a fresh authorization nonce, replacing any pending one.

        Returns:
            The new nonce.
        """
        self.pending_state = str(uuid.uuid4())
        return self.pending_state

    def consume_state(self, state: str | None) -> bool:
        """Check ``state`` against the pending nonce and discard the nonce.

        The nonce is cleared only on a match, so a forged callback cannot
        invalidate a legitimate authorization still in flight.

        Args:
            state: Value echoed back by the provider.

        Returns:
            True if ``state`` matched the pending nonce.
        """
        if not state or self.pending_state is None or state != self.pending_state:
            return False
        self.pending_state = None
        return True
