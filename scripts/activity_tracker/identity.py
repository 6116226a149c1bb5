"""
Actor identity tracking.

Keeps the last-known authenticated user id, fed by an identity provider's
sign-in/sign-out notifications. Reads are synchronous; last write wins and
there is no ordering guarantee relative to in-flight record() calls.
"""

import sys
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol


User = Optional[Mapping[str, Any]]


class IdentityProvider(Protocol):
    """Authentication backend supplying the current user."""

    def get_current_user(self) -> Awaitable[User]:
        ...

    def on_auth_state_change(self, callback: Callable[[User], None]) -> Callable[[], None]:
        """Register callback; returns an unsubscribe handle."""
        ...


def _user_id(user: User) -> Optional[str]:
    if not user:
        return None
    user_id = user.get("id")
    return str(user_id) if user_id else None


class IdentityResolver:
    """Observable cell holding the current actor id."""

    def __init__(self, provider: Optional[IdentityProvider] = None):
        self.provider = provider
        self._user_id: Optional[str] = None
        self._version = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    def current_user_id(self) -> Optional[str]:
        """Last-known user id, or None if no actor is signed in."""
        return self._user_id

    def set_user(self, user: User):
        """Overwrite the actor immediately (auth-change callback)."""
        self._user_id = _user_id(user)
        self._version += 1

    async def start(self):
        """
        Subscribe to auth changes and resolve the initial user.

        Fetch failures are reported and leave the actor unknown until a
        later notification arrives.
        """
        if self.provider is None or self._unsubscribe is not None:
            return

        self._unsubscribe = self.provider.on_auth_state_change(self.set_user)

        version = self._version
        try:
            user = await self.provider.get_current_user()
        except Exception as e:
            print(f"Warning: Failed to resolve current user: {e}", file=sys.stderr)
            return

        # A notification that landed during the fetch is newer
        if self._version == version:
            self.set_user(user)

    def stop(self):
        """Unsubscribe from the identity provider."""
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            unsubscribe()
