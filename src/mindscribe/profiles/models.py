"""User profile model."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from mindscribe.posts.models import PostStats


class UserProfile(BaseModel):
    """Profile document stored at ``users/{uid}``.

    ``stats`` is a cache recomputed from the post collections; it is never
    incremented on its own.
    """

    uid: str
    email: str
    display_name: str = ""
    full_name: str = ""
    nick_name: str = ""
    bio: str = ""
    website: str = ""
    location: str = ""
    city: str = ""
    avatar_url: str = ""
    role: str = "user"
    status: str = "active"
    profile_complete: bool = False
    email_verified: bool = False
    created_at: datetime | None = None
    last_login: datetime | None = None
    last_updated: datetime | None = None
    stats: PostStats = Field(default_factory=PostStats)

    @property
    def initials(self) -> str:
        parts = self.display_name.split()
        if not parts:
            return "U"
        return "".join(p[0] for p in parts).upper()

    def account_age_days(self, now: datetime) -> int | None:
        """Whole days since registration, rounded up; None if unknown."""
        if self.created_at is None:
            return None
        return math.ceil(abs(now - self.created_at) / timedelta(days=1))

    def to_document(self) -> dict[str, object]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, uid: str, data: dict[str, object]) -> UserProfile:
        return cls.model_validate({**data, "uid": uid})
