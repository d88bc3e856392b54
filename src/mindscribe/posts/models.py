"""Post domain models: pure Pydantic v2 data types.

A post is either a draft or published.  Each state has its own per-owner
collection and a post lives in exactly one of them.
"""

from __future__ import annotations

import calendar
import math
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

EXCERPT_LENGTH = 150
WORDS_PER_MINUTE = 200
TRUNCATION_MARKER = "..."


class PostStatus(StrEnum):
    """Lifecycle status of a post; also the name of its collection."""

    DRAFT = "draft"
    PUBLISHED = "published"

    @property
    def collection(self) -> str:
        return "drafts" if self is PostStatus.DRAFT else "published"


class PostFilter(StrEnum):
    """Which collections a listing reads."""

    ALL = "all"
    DRAFT = "draft"
    PUBLISHED = "published"

    @property
    def statuses(self) -> tuple[PostStatus, ...]:
        if self is PostFilter.DRAFT:
            return (PostStatus.DRAFT,)
        if self is PostFilter.PUBLISHED:
            return (PostStatus.PUBLISHED,)
        return (PostStatus.DRAFT, PostStatus.PUBLISHED)


def make_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    """Return the first ``length`` characters, marked when truncated."""
    if len(content) <= length:
        return content
    return content[:length] + TRUNCATION_MARKER


def count_words(content: str) -> int:
    return len(content.split())


def read_time(content: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Estimated reading time in whole minutes, never below one."""
    return max(1, math.ceil(count_words(content) / words_per_minute))


def one_month_before(moment: datetime) -> datetime:
    """The same wall-clock time one calendar month earlier.

    The day is clamped to the length of the earlier month, so 31 March maps
    to the last day of February.
    """
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class PostStats(BaseModel):
    """Counters derived from a listing of one owner's posts.

    ``recent_drafts`` counts drafts updated in the last seven days,
    ``published_this_month`` posts published within one calendar month.
    """

    drafts_count: int = 0
    published_count: int = 0
    posts_count: int = 0
    recent_drafts: int = 0
    average_draft_words: int = 0
    published_this_month: int = 0


class Post(BaseModel):
    """A single authored work, as stored in its collection."""

    id: str
    title: str = ""
    content: str = ""
    excerpt: str = ""
    word_count: int = 0
    read_time: int = 1
    status: PostStatus = PostStatus.DRAFT
    owner_id: str
    owner_email: str = ""
    owner_display_name: str = ""
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None
    last_updated: datetime | None = None

    @property
    def sort_timestamp(self) -> datetime:
        """The timestamp a listing orders this post by."""
        if self.status is PostStatus.PUBLISHED and self.published_at is not None:
            return self.published_at
        return self.updated_at or self.created_at

    @property
    def can_publish(self) -> bool:
        return bool(self.title.strip() and self.content.strip())

    def to_document(self) -> dict[str, object]:
        """Field map stored in the document store; the id is the document key."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, post_id: str, data: dict[str, object]) -> Post:
        return cls.model_validate({**data, "id": post_id})
