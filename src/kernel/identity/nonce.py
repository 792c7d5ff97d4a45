"""
Action nonces.

A nonce binds a request to one action and one user for a limited time. The
lifetime is split into two ticks; a nonce minted in the current or the
previous tick verifies, so a nonce lives between half and a full lifetime.
"""

import hashlib
import hmac
import time
import uuid
from typing import Callable, Optional

from src.config import get_settings

NONCE_LENGTH = 10


class NonceManager:
    """Create and verify HMAC nonces for (action, user) pairs."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        lifetime_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = get_settings()
        self.secret_key = (secret_key or settings.secret_key).encode("utf-8")
        self.lifetime_seconds = lifetime_seconds or settings.nonce_lifetime_seconds
        self._clock = clock

    def tick(self) -> int:
        return int(self._clock() // (self.lifetime_seconds / 2))

    def _digest(self, tick: int, action: str, user_id: Optional[uuid.UUID]) -> str:
        message = f"{tick}|{action}|{user_id or 0}".encode("utf-8")
        return hmac.new(self.secret_key, message, hashlib.sha256).hexdigest()[-NONCE_LENGTH:]

    def create(self, action: str, user_id: Optional[uuid.UUID]) -> str:
        """Create a nonce for the given action and user."""
        return self._digest(self.tick(), action, user_id)

    def verify(self, nonce: Optional[str], action: str, user_id: Optional[uuid.UUID]) -> bool:
        """
        Check a nonce against the action and user it was issued for.

        Returns False for empty or mismatched nonces; never raises.
        """
        if not nonce:
            return False
        tick = self.tick()
        for candidate in (tick, tick - 1):
            if hmac.compare_digest(self._digest(candidate, action, user_id), nonce):
                return True
        return False


def update_action(stylesheet: str) -> str:
    """Nonce action for staging values into a transaction."""
    return f"update-customize_{stylesheet}"


def save_action(stylesheet: str) -> str:
    """Nonce action for publishing a transaction."""
    return f"save-customize_{stylesheet}"
