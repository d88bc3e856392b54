"""Post lifecycle manager: the draft/published state machine.

Posts of one owner live under ``users/{uid}/drafts/{id}`` or
``users/{uid}/published/{id}``.  Publishing a draft writes the published
record and deletes the draft in a single batch, so readers see the post in
exactly one collection at every point.

Store failures (StoreUnavailable, PermissionDenied) propagate unchanged;
nothing here retries.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from mindscribe.config import EditorConfig
from mindscribe.identity.models import UserIdentity
from mindscribe.posts.models import (
    Post,
    PostFilter,
    PostStats,
    PostStatus,
    count_words,
    make_excerpt,
    one_month_before,
    read_time,
)
from mindscribe.shared.errors import EmptyDraft, IncompletePost, NotFound
from mindscribe.store.base import DocumentStore, Where, join_path
from mindscribe.store.scoped import user_root

logger = logging.getLogger(__name__)

RECENT_DRAFT_WINDOW = timedelta(days=7)

# Alias to avoid shadowing by PostLifecycleManager.list
_list = list


def require_publishable(title: str, content: str) -> None:
    """Raise IncompletePost unless both title and content have text."""
    if not title.strip():
        raise IncompletePost("a title")
    if not content.strip():
        raise IncompletePost("content")


class PostLifecycleManager:
    """Create, edit, publish, delete and list the posts of one owner."""

    def __init__(
        self,
        store: DocumentStore,
        owner: UserIdentity,
        config: EditorConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.owner = owner
        self._config = config or EditorConfig()
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    # ── Private helpers ──────────────────────────────────────────

    def _collection(self, status: PostStatus) -> str:
        return join_path(user_root(self.owner.uid), status.collection)

    def _path(self, status: PostStatus, post_id: str) -> str:
        return join_path(self._collection(status), post_id)

    def _content_fields(self, title: str, content: str) -> dict[str, object]:
        return {
            "title": title,
            "content": content,
            "excerpt": make_excerpt(content, self._config.excerpt_length),
            "word_count": count_words(content),
            "read_time": read_time(content, self._config.words_per_minute),
        }

    def _new_post(self, post_id: str, title: str, content: str, status: PostStatus) -> Post:
        now = self._clock()
        return Post(
            id=post_id,
            status=status,
            owner_id=self.owner.uid,
            owner_email=self.owner.email,
            owner_display_name=self.owner.name,
            created_at=now,
            updated_at=now,
            published_at=now if status is PostStatus.PUBLISHED else None,
            last_updated=now if status is PostStatus.PUBLISHED else None,
            **self._content_fields(title, content),
        )

    async def _load(self, status: PostStatus, post_id: str) -> Post | None:
        doc = await self.store.get(self._path(status, post_id))
        if doc is None:
            return None
        return Post.from_document(doc.id, doc.data)

    # ── Write operations ─────────────────────────────────────────

    async def create_draft(self, title: str, content: str) -> str:
        """Persist a new draft and return its identifier.

        Raises EmptyDraft when both title and content are blank.
        """
        title, content = title.strip(), content.strip()
        if not title and not content:
            raise EmptyDraft()

        post = self._new_post(self.store.new_id(), title, content, PostStatus.DRAFT)
        await self.store.set(self._path(PostStatus.DRAFT, post.id), post.to_document())
        logger.info("Draft created: %s", post.id)
        return post.id

    async def update_draft(self, post_id: str, title: str, content: str) -> None:
        """Replace the text of an existing draft and refresh ``updated_at``.

        Raises NotFound if the draft does not exist.
        """
        draft = await self._load(PostStatus.DRAFT, post_id)
        if draft is None:
            raise NotFound(self._path(PostStatus.DRAFT, post_id))

        updated = draft.model_copy(
            update={
                **self._content_fields(title.strip(), content.strip()),
                "updated_at": self._clock(),
            }
        )
        await self.store.update(self._path(PostStatus.DRAFT, post_id), updated.to_document())
        logger.info("Draft updated: %s", post_id)

    async def publish(
        self,
        post_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> None:
        """Publish a draft, or update a published post in place.

        ``title`` and ``content`` default to the stored text.  Raises
        IncompletePost before any write if either would be empty, and
        NotFound if the post is in neither collection.
        """
        draft = await self._load(PostStatus.DRAFT, post_id)
        if draft is not None:
            title = draft.title if title is None else title.strip()
            content = draft.content if content is None else content.strip()
            require_publishable(title, content)

            now = self._clock()
            published = draft.model_copy(
                update={
                    **self._content_fields(title, content),
                    "status": PostStatus.PUBLISHED,
                    "updated_at": now,
                    "published_at": now,
                    "last_updated": now,
                }
            )
            batch = self.store.batch()
            batch.set(self._path(PostStatus.PUBLISHED, post_id), published.to_document())
            batch.delete(self._path(PostStatus.DRAFT, post_id))
            await batch.commit()
            logger.info("Draft published: %s", post_id)
            return

        current = await self._load(PostStatus.PUBLISHED, post_id)
        if current is None:
            raise NotFound(post_id)

        title = current.title if title is None else title.strip()
        content = current.content if content is None else content.strip()
        require_publishable(title, content)

        updated = current.model_copy(
            update={**self._content_fields(title, content), "last_updated": self._clock()}
        )
        await self.store.update(self._path(PostStatus.PUBLISHED, post_id), updated.to_document())
        logger.info("Published post updated: %s", post_id)

    async def publish_new(self, title: str, content: str) -> str:
        """Publish a post that was never saved as a draft; return its id."""
        title, content = title.strip(), content.strip()
        require_publishable(title, content)

        post = self._new_post(self.store.new_id(), title, content, PostStatus.PUBLISHED)
        await self.store.set(self._path(PostStatus.PUBLISHED, post.id), post.to_document())
        logger.info("New post published: %s", post.id)
        return post.id

    async def delete(self, post_id: str, status: PostStatus) -> None:
        """Hard-delete a post from the named collection.

        Raises NotFound if it is not there; the other collection is never
        touched.
        """
        path = self._path(status, post_id)
        if await self.store.get(path) is None:
            raise NotFound(path)
        await self.store.delete(path)
        logger.info("Deleted %s %s", status.value, post_id)

    # ── Read operations ──────────────────────────────────────────

    async def find(self, post_id: str) -> Post | None:
        """Return the post from drafts, else published, else None."""
        for status in (PostStatus.DRAFT, PostStatus.PUBLISHED):
            post = await self._load(status, post_id)
            if post is not None:
                return post
        return None

    async def get(self, post_id: str) -> Post:
        """Load a post for editing; raises NotFound if absent."""
        post = await self.find(post_id)
        if post is None:
            raise NotFound(post_id)
        return post

    async def list(
        self,
        filter: PostFilter = PostFilter.ALL,
        limit: int | None = None,
        search: str | None = None,
    ) -> _list[Post]:
        """Return posts newest first.

        Published posts order by ``published_at``, drafts by ``updated_at``;
        ties break on the identifier.  ``search`` keeps posts whose title
        contains it, ignoring case, and applies before ``limit``.
        """
        owned = Where(field="owner_id", op="==", value=self.owner.uid)
        posts: _list[Post] = []
        for status in filter.statuses:
            order_field = "published_at" if status is PostStatus.PUBLISHED else "updated_at"
            docs = await self.store.query(
                self._collection(status),
                where=[owned],
                order_by=order_field,
                descending=True,
            )
            posts.extend(Post.from_document(doc.id, doc.data) for doc in docs)

        if search:
            needle = search.lower()
            posts = [p for p in posts if needle in p.title.lower()]
        posts.sort(key=lambda p: (p.sort_timestamp, p.id), reverse=True)
        if limit is not None:
            posts = posts[:limit]
        return posts

    async def stats(self) -> PostStats:
        """Summarize a fresh listing against the manager's clock."""
        posts = await self.list(PostFilter.ALL)
        now = self._clock()
        week_ago = now - RECENT_DRAFT_WINDOW
        month_ago = one_month_before(now)

        drafts = [p for p in posts if p.status is PostStatus.DRAFT]
        published = [p for p in posts if p.status is PostStatus.PUBLISHED]
        total_words = sum(p.word_count for p in drafts)
        return PostStats(
            drafts_count=len(drafts),
            published_count=len(published),
            posts_count=len(posts),
            recent_drafts=sum(1 for p in drafts if p.updated_at > week_ago),
            average_draft_words=math.floor(total_words / len(drafts) + 0.5) if drafts else 0,
            published_this_month=sum(
                1 for p in published if p.published_at is not None and p.published_at > month_ago
            ),
        )
