"""Profile service: profile document, avatar upload and cached counters."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import PurePath

from mindscribe.config import ProfileConfig
from mindscribe.identity.models import UserIdentity
from mindscribe.objects.base import ObjectStore
from mindscribe.posts.lifecycle import PostLifecycleManager
from mindscribe.posts.models import PostStats, PostStatus
from mindscribe.profiles.models import UserProfile
from mindscribe.shared.errors import ValidationError
from mindscribe.store.base import DocumentStore, join_path
from mindscribe.store.scoped import user_root

logger = logging.getLogger(__name__)


def _timestamp(moment: datetime) -> str:
    return moment.isoformat()


class ProfileService:
    """Reads and writes ``users/{uid}`` profile documents."""

    def __init__(
        self,
        store: DocumentStore,
        objects: ObjectStore,
        config: ProfileConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.objects = objects
        self.config = config or ProfileConfig()
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def create(
        self,
        identity: UserIdentity,
        full_name: str,
        nick_name: str,
        city: str,
    ) -> UserProfile:
        """Write the profile created at registration."""
        now = self._clock()
        first_name = full_name.split()[0] if full_name.split() else ""
        profile = UserProfile(
            uid=identity.uid,
            email=identity.email,
            full_name=full_name,
            nick_name=nick_name,
            display_name=nick_name or first_name,
            city=city,
            location=city,
            profile_complete=True,
            email_verified=identity.email_verified,
            created_at=now,
            last_login=now,
            last_updated=now,
        )
        await self.store.set(user_root(identity.uid), profile.to_document())
        logger.info("Profile created for %s", identity.uid)
        return profile

    async def load(self, identity: UserIdentity) -> UserProfile:
        """Return the profile, creating a default one when missing."""
        doc = await self.store.get(user_root(identity.uid))
        if doc is not None:
            return UserProfile.from_document(identity.uid, doc.data)

        now = self._clock()
        profile = UserProfile(
            uid=identity.uid,
            email=identity.email,
            display_name=identity.name,
            email_verified=identity.email_verified,
            created_at=now,
            last_updated=now,
        )
        await self.store.set(user_root(identity.uid), profile.to_document())
        logger.info("Default profile created for %s", identity.uid)
        return profile

    async def update(
        self,
        identity: UserIdentity,
        display_name: str,
        bio: str = "",
        website: str = "",
        location: str = "",
    ) -> UserProfile:
        display_name = display_name.strip()
        if not display_name:
            raise ValidationError("Display name is required")
        if len(display_name) > self.config.max_display_name:
            raise ValidationError(
                f"Display name must be less than {self.config.max_display_name} characters"
            )

        await self.load(identity)
        await self.store.update(
            user_root(identity.uid),
            {
                "display_name": display_name,
                "bio": bio.strip(),
                "website": website.strip(),
                "location": location.strip(),
                "last_updated": _timestamp(self._clock()),
            },
        )
        return await self.load(identity)

    async def record_login(self, identity: UserIdentity) -> None:
        await self.load(identity)
        await self.store.set(
            user_root(identity.uid),
            {"last_login": _timestamp(self._clock())},
            merge=True,
        )

    async def upload_avatar(
        self,
        identity: UserIdentity,
        filename: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """Upload an avatar image and store its URL on the profile."""
        if not content_type.startswith("image/"):
            raise ValidationError("Please select an image file")
        if len(data) > self.config.max_avatar_bytes:
            limit_mb = self.config.max_avatar_bytes // (1024 * 1024)
            raise ValidationError(f"Image size must be less than {limit_mb}MB")
        name = PurePath(filename).name
        if not name or name in (".", ".."):
            raise ValidationError("Invalid file name")

        await self.load(identity)
        url = await self.objects.upload(f"avatars/{identity.uid}/{name}", data, content_type)
        await self.store.update(
            user_root(identity.uid),
            {"avatar_url": url, "last_updated": _timestamp(self._clock())},
        )
        logger.info("Avatar updated for %s", identity.uid)
        return url

    async def refresh_stats(
        self,
        identity: UserIdentity,
        manager: PostLifecycleManager,
    ) -> PostStats:
        """Recompute the cached post counters from the post collections."""
        await self.load(identity)
        stats = await manager.stats()
        await self.store.set(
            user_root(identity.uid),
            {"stats": stats.model_dump()},
            merge=True,
        )
        return stats

    async def delete_all(self, identity: UserIdentity) -> int:
        """Delete every post and the profile in one batch; return the count."""
        batch = self.store.batch()
        for status in (PostStatus.DRAFT, PostStatus.PUBLISHED):
            collection = join_path(user_root(identity.uid), status.collection)
            for doc in await self.store.query(collection):
                batch.delete(doc.path)
        batch.delete(user_root(identity.uid))
        await batch.commit()
        logger.info("Deleted %d document(s) for %s", len(batch), identity.uid)
        return len(batch)
