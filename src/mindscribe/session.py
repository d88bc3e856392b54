"""Signed-in session: the context every page-level action runs in.

A session is created once the identity provider reports a signed-in user,
is active until close() or until that user signs out, and is unusable
afterwards.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from types import TracebackType
from typing import Any

from mindscribe.backend import Backend
from mindscribe.commands import CommandRegistry, build_registry
from mindscribe.config import MindScribeConfig
from mindscribe.identity.models import UserIdentity
from mindscribe.posts.editor import Editor
from mindscribe.posts.lifecycle import PostLifecycleManager
from mindscribe.profiles.services import ProfileService
from mindscribe.shared.errors import AuthError, SessionClosed
from mindscribe.store.scoped import OwnerScopedStore

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    INIT = "init"
    ACTIVE = "active"
    CLOSED = "closed"


class Session:
    """Per-user context holding the managers and the command registry."""

    def __init__(self, backend: Backend) -> None:
        self.backend = backend
        self.state = SessionState.INIT
        self._user: UserIdentity | None = None
        self._posts: PostLifecycleManager | None = None
        self._profiles: ProfileService | None = None
        self._commands: CommandRegistry | None = None
        self._editors: dict[str, Editor] = {}
        self._unsaved: list[Editor] = []
        self._unsubscribe: Any = None

    @property
    def config(self) -> MindScribeConfig:
        return self.backend.config

    def _require_active(self) -> None:
        if self.state is not SessionState.ACTIVE:
            raise SessionClosed(f"Session is {self.state.value}")

    @property
    def user(self) -> UserIdentity:
        self._require_active()
        assert self._user is not None
        return self._user

    @property
    def posts(self) -> PostLifecycleManager:
        self._require_active()
        assert self._posts is not None
        return self._posts

    @property
    def profiles(self) -> ProfileService:
        self._require_active()
        assert self._profiles is not None
        return self._profiles

    @property
    def commands(self) -> CommandRegistry:
        self._require_active()
        assert self._commands is not None
        return self._commands

    async def start(self) -> Session:
        """Bind the session to the signed-in user."""
        if self.state is SessionState.ACTIVE:
            return self
        if self.state is SessionState.CLOSED:
            raise SessionClosed("Session already closed")

        user = self.backend.identity.current_user()
        if user is None:
            raise AuthError("no-current-user", "No user is signed in")

        store = OwnerScopedStore(self.backend.store, user.uid)
        self._user = user
        self._posts = PostLifecycleManager(store, user, self.config.editor)
        self._profiles = ProfileService(store, self.backend.objects, self.config.profile)
        self._commands = build_registry(self)
        self.state = SessionState.ACTIVE
        self._unsubscribe = self.backend.identity.on_auth_state_change(self._on_auth_state)
        logger.info("Session started for %s", user.uid)
        return self

    def _on_auth_state(self, user: UserIdentity | None) -> None:
        if self.state is not SessionState.ACTIVE or self._user is None:
            return
        if user is None or user.uid != self._user.uid:
            logger.info("Auth state changed, closing session for %s", self._user.uid)
            self._teardown()

    def _teardown(self) -> None:
        self.state = SessionState.CLOSED
        for editor in self._open_editors():
            editor.cancel_autosave()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _open_editors(self) -> list[Editor]:
        return [*self._editors.values(), *self._unsaved]

    def _adopt_saved(self) -> None:
        """Key editors whose first save created a post by that post's id."""
        for editor in list(self._unsaved):
            if editor.post_id is not None:
                self._unsaved.remove(editor)
                self._editors.setdefault(editor.post_id, editor)

    async def editor(self, post_id: str | None = None) -> Editor:
        """Return the session's editor for ``post_id``, or a new one.

        There is at most one editor per post, so every save of that post
        goes through the same single-flight guard.  Without ``post_id`` a
        fresh editor is opened for a new post.  All editors stop with the
        session.
        """
        self._require_active()
        self._adopt_saved()
        if post_id is None:
            editor = Editor(self.posts, self.config.editor)
            self._unsaved.append(editor)
            return editor

        cached = self._editors.get(post_id)
        if cached is not None:
            return cached
        editor = Editor(self.posts, self.config.editor)
        await editor.load(post_id)
        return self._editors.setdefault(post_id, editor)

    async def release(self, editor: Editor) -> None:
        """Stop ``editor`` and forget it."""
        await editor.stop()
        if editor in self._unsaved:
            self._unsaved.remove(editor)
        if editor.post_id is not None and self._editors.get(editor.post_id) is editor:
            del self._editors[editor.post_id]

    async def release_post(self, post_id: str) -> None:
        """Stop and forget the editor for ``post_id``, if one is open."""
        self._adopt_saved()
        editor = self._editors.pop(post_id, None)
        if editor is not None:
            await editor.stop()

    async def dispatch(self, name: str, **kwargs: Any) -> Any:
        return await self.commands.dispatch(name, **kwargs)

    async def close(self) -> None:
        for editor in self._open_editors():
            await editor.stop()
        self._editors.clear()
        self._unsaved.clear()
        if self.state is not SessionState.CLOSED:
            self._teardown()

    async def __aenter__(self) -> Session:
        return await self.start()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
