"""Posts: models, the draft/publish lifecycle manager and the editor."""

from mindscribe.posts.editor import Editor
from mindscribe.posts.lifecycle import PostLifecycleManager
from mindscribe.posts.models import Post, PostFilter, PostStats, PostStatus

__all__ = [
    "Editor",
    "Post",
    "PostFilter",
    "PostLifecycleManager",
    "PostStats",
    "PostStatus",
]
