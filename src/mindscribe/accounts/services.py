"""Account flows: registration, sign-in, password management, deletion.

Input is validated before the identity provider is called; provider
failures surface as AuthError and are turned into user-facing text by
describe_auth_error().
"""

from __future__ import annotations

import logging

from mindscribe.backend import Backend
from mindscribe.identity.models import UserIdentity
from mindscribe.profiles.services import ProfileService
from mindscribe.shared.errors import AuthError, ValidationError
from mindscribe.shared.validation import check_new_password, require_email, require_fields
from mindscribe.store.scoped import OwnerScopedStore

logger = logging.getLogger(__name__)

AUTH_ERROR_MESSAGES: dict[str, str] = {
    "invalid-credentials": "Invalid email or password. Please check your credentials.",
    "user-not-found": "Invalid email or password. Please check your credentials.",
    "wrong-password": "Current password is incorrect.",
    "email-already-in-use": "This email address is already registered.",
    "weak-password": (
        "Password is too weak. Please choose a stronger password (at least 6 characters)."
    ),
    "invalid-email": "Please enter a valid email address.",
    "network-request-failed": "Network error. Please check your internet connection.",
    "too-many-requests": "Too many failed attempts. Please try again later.",
    "operation-not-allowed": (
        "Email/password authentication is not enabled. Please contact support."
    ),
    "requires-recent-login": "Please confirm your current password and try again.",
    "no-current-user": "You are not signed in. Please sign in first.",
}


def describe_auth_error(error: AuthError) -> str:
    """Map an AuthError to the message shown to the user."""
    return AUTH_ERROR_MESSAGES.get(error.code, f"Authentication error: {error.message}")


class AccountService:
    """Account operations on top of a Backend."""

    def __init__(self, backend: Backend) -> None:
        self.backend = backend
        self.identity = backend.identity

    def profiles_for(self, user: UserIdentity) -> ProfileService:
        return ProfileService(
            OwnerScopedStore(self.backend.store, user.uid),
            self.backend.objects,
            self.backend.config.profile,
        )

    def _require_user(self) -> UserIdentity:
        user = self.identity.current_user()
        if user is None:
            raise AuthError("no-current-user", "No user is signed in")
        return user

    async def register(
        self,
        full_name: str,
        nick_name: str,
        email: str,
        city: str,
        password: str,
        confirm: str,
    ) -> UserIdentity:
        """Create an account and its profile; the new user is signed in."""
        require_fields(
            full_name=full_name,
            nick_name=nick_name,
            email=email,
            city=city,
            password=password,
            confirm=confirm,
        )
        email = require_email(email)
        check_new_password(password, confirm, self.backend.config.auth.min_password_length)

        user = await self.identity.sign_up(email, password)
        await self.profiles_for(user).create(user, full_name.strip(), nick_name.strip(), city.strip())
        logger.info("Registered %s", user.uid)
        return user

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        require_fields(email=email, password=password)
        email = require_email(email)
        user = await self.identity.sign_in(email, password)
        await self.profiles_for(user).record_login(user)
        return user

    async def sign_out(self) -> None:
        await self.identity.sign_out()

    async def send_password_reset(self, email: str) -> None:
        email = require_email(email)
        await self.identity.send_password_reset(email)

    async def change_password(self, current: str, new: str, confirm: str) -> None:
        """Reauthenticate with ``current`` and replace the password."""
        require_fields(current=current, new=new, confirm=confirm)
        if new != confirm:
            raise ValidationError("New passwords do not match")
        check_new_password(new, confirm, self.backend.config.auth.min_password_length)
        self._require_user()
        await self.identity.reauthenticate(current)
        await self.identity.change_password(new)

    async def delete_account(self, password: str) -> int:
        """Delete all posts, the profile and the identity.

        Returns the number of documents deleted.
        """
        if not password:
            raise ValidationError("Please enter your password")
        user = self._require_user()
        await self.identity.reauthenticate(password)
        deleted = await self.profiles_for(user).delete_all(user)
        await self.identity.delete_account()
        logger.info("Account %s deleted", user.uid)
        return deleted
