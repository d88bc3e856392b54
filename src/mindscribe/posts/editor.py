"""Editing session over a single post.

Tracks the post being edited, saves it as a draft (creating it on the first
save), publishes it, and runs the periodic autosave.  At most one write is in
flight per editor: a save requested while another is outstanding is skipped.
"""

from __future__ import annotations

import asyncio
import contextlib
import html
import logging
import re
from datetime import UTC, datetime

from mindscribe.config import EditorConfig
from mindscribe.posts.lifecycle import PostLifecycleManager, require_publishable
from mindscribe.posts.models import Post, PostStatus, count_words, read_time
from mindscribe.shared.errors import EmptyDraft, MindScribeError

logger = logging.getLogger(__name__)

_MARKDOWN_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"`(.*?)`"), r"<code>\1</code>"),
    (re.compile(r"\[(.*?)\]\((.*?)\)"), r'<a href="\2" target="_blank">\1</a>'),
]


def render_markdown(text: str) -> str:
    """Render the small Markdown subset the editor toolbar produces."""
    rendered = html.escape(text, quote=False)
    for pattern, replacement in _MARKDOWN_RULES:
        rendered = pattern.sub(replacement, rendered)
    return rendered.replace("\n", "<br>")


class Editor:
    """The state behind one open editor."""

    def __init__(self, manager: PostLifecycleManager, config: EditorConfig | None = None) -> None:
        self.manager = manager
        self.config = config or EditorConfig()
        self.post_id: str | None = None
        self.status: PostStatus = PostStatus.DRAFT
        self.title = ""
        self.content = ""
        self._saving = False
        self._autosave_task: asyncio.Task[None] | None = None

    # ── Text state ───────────────────────────────────────────────

    def set_text(self, title: str, content: str) -> None:
        self.title = title
        self.content = content

    @property
    def saving(self) -> bool:
        return self._saving

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    @property
    def char_count(self) -> int:
        return len(self.content)

    @property
    def can_publish(self) -> bool:
        return bool(self.title.strip() and self.content.strip())

    @property
    def is_empty(self) -> bool:
        return not self.title.strip() and not self.content.strip()

    # ── Lifecycle operations ─────────────────────────────────────

    async def load(self, post_id: str) -> Post:
        """Open an existing draft or published post for editing."""
        post = await self.manager.get(post_id)
        self.post_id = post.id
        self.status = post.status
        self.set_text(post.title, post.content)
        logger.info("Loaded %s %s for editing", post.status.value, post.id)
        return post

    async def save_draft(self) -> str | None:
        """Save the current text; return the post id, or None if skipped.

        A published post is updated in place rather than moved back to
        drafts.
        """
        if self._saving:
            logger.debug("Save already in progress, skipping")
            return None
        if self.is_empty:
            raise EmptyDraft()

        self._saving = True
        try:
            if self.post_id is None:
                self.post_id = await self.manager.create_draft(self.title, self.content)
            elif self.status is PostStatus.PUBLISHED:
                await self.manager.publish(self.post_id, self.title, self.content)
            else:
                await self.manager.update_draft(self.post_id, self.title, self.content)
        finally:
            self._saving = False
        return self.post_id

    async def publish(self) -> str | None:
        """Publish the current text; return the post id, or None if skipped."""
        if self._saving:
            logger.debug("Save already in progress, skipping publish")
            return None
        require_publishable(self.title, self.content)

        self._saving = True
        try:
            if self.post_id is None:
                self.post_id = await self.manager.publish_new(self.title, self.content)
            else:
                await self.manager.publish(self.post_id, self.title, self.content)
            self.status = PostStatus.PUBLISHED
        finally:
            self._saving = False
        return self.post_id

    # ── Autosave ─────────────────────────────────────────────────

    async def autosave(self) -> bool:
        """Run one autosave tick; return True if a write happened.

        Failures are logged and left for the next tick.
        """
        if self._saving or self.is_empty or self.status is PostStatus.PUBLISHED:
            return False
        try:
            return await self.save_draft() is not None
        except MindScribeError as exc:
            logger.warning("Autosave failed, retrying on next tick: %s", exc)
            return False

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.autosave()

    def start_autosave(self, interval: float | None = None) -> asyncio.Task[None]:
        """Start the periodic autosave task on the running loop."""
        if self._autosave_task is not None and not self._autosave_task.done():
            return self._autosave_task
        period = self.config.autosave_interval if interval is None else interval
        self._autosave_task = asyncio.create_task(self._autosave_loop(period))
        return self._autosave_task

    def cancel_autosave(self) -> asyncio.Task[None] | None:
        """Request cancellation of the autosave task without waiting."""
        task, self._autosave_task = self._autosave_task, None
        if task is not None:
            task.cancel()
        return task

    async def stop(self) -> None:
        """Cancel the autosave task and wait for it to finish."""
        task = self.cancel_autosave()
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ── Preview ──────────────────────────────────────────────────

    def preview(self, author: str, now: datetime | None = None) -> str:
        """Render the current text as an HTML article."""
        now = now or datetime.now(tz=UTC)
        title = html.escape(self.title.strip() or "Untitled Post")
        body = render_markdown(self.content.strip())
        if not body:
            body = '<p class="no-content">No content yet...</p>'
        minutes = read_time(self.content, self.config.words_per_minute)
        return (
            '<article class="preview-article">\n'
            '  <header class="preview-header">\n'
            f"    <h1>{title}</h1>\n"
            '    <div class="preview-meta">'
            f"<span>By {html.escape(author)}</span> • "
            f"<span>{now.date().isoformat()}</span> • "
            f"<span>{self.word_count} words</span> • "
            f"<span>{minutes} min read</span></div>\n"
            "  </header>\n"
            f'  <div class="preview-body">{body}</div>\n'
            "</article>\n"
        )
