"""Command registry mapping UI events to typed calls into the managers."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Any

from mindscribe.posts.editor import Editor
from mindscribe.posts.models import Post, PostFilter, PostStats, PostStatus
from mindscribe.profiles.models import UserProfile
from mindscribe.shared.errors import UnknownCommand

if TYPE_CHECKING:
    from mindscribe.session import Session

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


class CommandRegistry:
    """Named async handlers, dispatched with keyword arguments."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def add(self, name: str, handler: Handler) -> None:
        if name in self._handlers:
            raise ValueError(f"Command already registered: {name}")
        self._handlers[name] = handler

    def register(self, name: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add(name, handler)
            return handler

        return decorator

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    async def dispatch(self, name: str, **kwargs: Any) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownCommand(name)
        logger.debug("Dispatching %s", name)
        return await handler(**kwargs)


def build_registry(session: Session) -> CommandRegistry:
    """Register every post and profile command against ``session``."""
    registry = CommandRegistry()

    @contextlib.asynccontextmanager
    async def _editing(post_id: str | None) -> AsyncIterator[Editor]:
        editor = await session.editor(post_id)
        try:
            yield editor
        finally:
            if editor.post_id is None:
                await session.release(editor)

    def _apply_text(editor: Editor, title: str | None, content: str | None) -> None:
        editor.set_text(
            editor.title if title is None else title,
            editor.content if content is None else content,
        )

    @registry.register("draft.save")
    async def save_draft(
        title: str | None = None,
        content: str | None = None,
        post_id: str | None = None,
    ) -> str | None:
        async with _editing(post_id) as editor:
            _apply_text(editor, title, content)
            return await editor.save_draft()

    @registry.register("post.publish")
    async def publish(
        post_id: str | None = None,
        title: str | None = None,
        content: str | None = None,
    ) -> str | None:
        async with _editing(post_id) as editor:
            _apply_text(editor, title, content)
            return await editor.publish()

    @registry.register("post.preview")
    async def preview(post_id: str) -> str:
        editor = await session.editor(post_id)
        return editor.preview(author=session.user.name)

    @registry.register("post.delete")
    async def delete(post_id: str, status: PostStatus | str) -> None:
        await session.release_post(post_id)
        await session.posts.delete(post_id, PostStatus(status))

    @registry.register("post.list")
    async def list_posts(
        filter: PostFilter | str = PostFilter.ALL,
        limit: int | None = None,
        search: str | None = None,
    ) -> list[Post]:
        return await session.posts.list(PostFilter(filter), limit=limit, search=search)

    @registry.register("post.show")
    async def show(post_id: str) -> Post:
        return await session.posts.get(post_id)

    @registry.register("post.stats")
    async def stats() -> PostStats:
        return await session.profiles.refresh_stats(session.user, session.posts)

    @registry.register("profile.show")
    async def profile_show() -> UserProfile:
        await session.profiles.refresh_stats(session.user, session.posts)
        return await session.profiles.load(session.user)

    @registry.register("profile.update")
    async def profile_update(
        display_name: str,
        bio: str = "",
        website: str = "",
        location: str = "",
    ) -> UserProfile:
        return await session.profiles.update(
            session.user, display_name, bio=bio, website=website, location=location
        )

    @registry.register("profile.avatar")
    async def profile_avatar(filename: str, data: bytes, content_type: str) -> str:
        return await session.profiles.upload_avatar(session.user, filename, data, content_type)

    return registry
