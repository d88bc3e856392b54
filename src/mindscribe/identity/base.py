"""Base class for identity providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from mindscribe.identity.models import UserIdentity

logger = logging.getLogger(__name__)

AuthStateCallback = Callable[[UserIdentity | None], None]

_UNSET = object()


class IdentityProvider(ABC):
    """Sign-up, sign-in and account management.

    Subclasses call ``_notify_auth_state()`` after anything that may change
    the signed-in user; listeners only hear about real transitions.
    """

    def __init__(self) -> None:
        self._listeners: list[AuthStateCallback] = []
        self._last_uid: object = _UNSET

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> UserIdentity:
        """Create an account and sign it in."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> UserIdentity:
        """Sign in with email and password."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Sign out the current user."""

    @abstractmethod
    def current_user(self) -> UserIdentity | None:
        """Return the signed-in user, if any."""

    @abstractmethod
    async def send_password_reset(self, email: str) -> None:
        """Start a password reset for ``email``."""

    @abstractmethod
    async def reauthenticate(self, password: str) -> None:
        """Confirm the current user's password before a sensitive change."""

    @abstractmethod
    async def change_password(self, new_password: str) -> None:
        """Replace the current user's password."""

    @abstractmethod
    async def delete_account(self) -> None:
        """Delete the current user's account and sign out."""

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it.

        The callback is invoked once right away with the current user, then
        once per sign-in/sign-out transition.
        """
        self._listeners.append(callback)
        callback(self.current_user())

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _sync_auth_state(self) -> None:
        """Record the current user as the baseline without notifying."""
        user = self.current_user()
        self._last_uid = user.uid if user else None

    def _notify_auth_state(self) -> None:
        user = self.current_user()
        uid = user.uid if user else None
        if uid == self._last_uid:
            return
        self._last_uid = uid
        logger.debug("Auth state changed: %s", uid or "signed out")
        for callback in list(self._listeners):
            callback(user)
