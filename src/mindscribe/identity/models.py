"""Identity domain models."""

from __future__ import annotations

from pydantic import BaseModel


class UserIdentity(BaseModel):
    """The authenticated user as seen by the rest of the application."""

    uid: str
    email: str
    display_name: str = ""
    email_verified: bool = False

    @property
    def name(self) -> str:
        """Display name, falling back to the local part of the email."""
        return self.display_name or self.email.split("@")[0]
