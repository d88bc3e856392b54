"""Tests for the command registry and the session commands."""

import asyncio
import dataclasses

import pytest
from mindscribe.accounts.services import AccountService
from mindscribe.commands import CommandRegistry
from mindscribe.posts.models import PostStatus
from mindscribe.session import Session
from mindscribe.shared.errors import EmptyDraft, NotFound, UnknownCommand
from mindscribe.store.base import WriteOp
from mindscribe.store.memory import InMemoryDocumentStore


class TrackingStore(InMemoryDocumentStore):
    """Memory store counting overlapping commits; ``gate`` holds them open."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()
        self.inflight = 0
        self.max_inflight = 0
        self.commits = 0

    async def commit_ops(self, ops: list[WriteOp]) -> None:
        self.inflight += 1
        self.max_inflight = max(self.max_inflight, self.inflight)
        try:
            await self.gate.wait()
            await super().commit_ops(ops)
            self.commits += 1
        finally:
            self.inflight -= 1


def _register(backend) -> None:
    asyncio.run(
        AccountService(backend).register(
            "Ada Lovelace", "Ada", "ada@example.com", "London", "secret1", "secret1"
        )
    )


class TestCommandRegistry:
    def test_register_and_dispatch(self):
        registry = CommandRegistry()

        @registry.register("echo")
        async def echo(value: str) -> str:
            return value

        assert "echo" in registry
        assert registry.names() == ["echo"]
        assert asyncio.run(registry.dispatch("echo", value="hi")) == "hi"

    def test_duplicate_rejected(self):
        registry = CommandRegistry()

        async def handler() -> None:
            return None

        registry.add("x", handler)
        with pytest.raises(ValueError, match="already registered"):
            registry.add("x", handler)

    def test_unknown_command(self):
        with pytest.raises(UnknownCommand, match="nope"):
            asyncio.run(CommandRegistry().dispatch("nope"))


@pytest.fixture
def signed_in(backend):
    _register(backend)
    return backend


@pytest.fixture
def tracked(backend):
    store = TrackingStore()
    backend = dataclasses.replace(backend, store=store)
    _register(backend)
    return backend, store


class TestSessionCommands:
    def test_registered_names(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                return session.commands.names()

        assert asyncio.run(scenario()) == [
            "draft.save",
            "post.delete",
            "post.list",
            "post.preview",
            "post.publish",
            "post.show",
            "post.stats",
            "profile.avatar",
            "profile.show",
            "profile.update",
        ]

    def test_draft_round_trip(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                post_id = await session.dispatch("draft.save", title="Hello", content="World")
                await session.dispatch("draft.save", post_id=post_id, content="World!")
                post = await session.dispatch("post.show", post_id=post_id)
                assert post.title == "Hello"
                assert post.content == "World!"

                assert await session.dispatch("post.publish", post_id=post_id) == post_id
                published = await session.dispatch("post.list", filter="published")
                assert [p.id for p in published] == [post_id]

                stats = await session.dispatch("post.stats")
                assert stats.published_count == 1

                await session.dispatch("post.delete", post_id=post_id, status="published")
                assert await session.dispatch("post.list") == []

        asyncio.run(scenario())

    def test_errors_propagate(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                with pytest.raises(EmptyDraft):
                    await session.dispatch("draft.save", title="", content="")
                with pytest.raises(NotFound):
                    await session.dispatch("post.delete", post_id="x", status=PostStatus.DRAFT)

        asyncio.run(scenario())

    def test_preview_and_profile(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                post_id = await session.dispatch("draft.save", title="Hi", content="**there**")
                html = await session.dispatch("post.preview", post_id=post_id)
                assert "<strong>there</strong>" in html
                assert "By ada" in html

                updated = await session.dispatch(
                    "profile.update", display_name="Countess", bio="Numbers"
                )
                assert updated.bio == "Numbers"
                profile = await session.dispatch("profile.show")
                assert profile.display_name == "Countess"
                assert profile.stats.drafts_count == 1

        asyncio.run(scenario())


class TestSessionEditors:
    def test_dispatch_and_autosave_share_single_flight(self, tracked):
        backend, store = tracked

        async def scenario():
            async with Session(backend) as session:
                post_id = await session.dispatch("draft.save", title="Hello", content="v1")
                editor = await session.editor(post_id)
                store.commits = 0
                store.max_inflight = 0
                store.gate.clear()

                save = asyncio.create_task(
                    session.dispatch("draft.save", post_id=post_id, content="v2")
                )
                while store.inflight == 0:
                    await asyncio.sleep(0)
                assert editor.saving
                assert await editor.autosave() is False

                store.gate.set()
                assert await save == post_id
                post = await session.dispatch("post.show", post_id=post_id)
                return post

        post = asyncio.run(scenario())
        assert store.max_inflight == 1
        assert store.commits == 1
        assert post.content == "v2"

    def test_overlapping_dispatches_skip_instead_of_racing(self, tracked):
        backend, store = tracked

        async def scenario():
            async with Session(backend) as session:
                post_id = await session.dispatch("draft.save", title="Hello", content="v1")
                store.max_inflight = 0
                store.gate.clear()

                first = asyncio.create_task(
                    session.dispatch("draft.save", post_id=post_id, content="v2")
                )
                while store.inflight == 0:
                    await asyncio.sleep(0)
                second = await session.dispatch("draft.save", post_id=post_id, content="v3")

                store.gate.set()
                return await first, second

        first, second = asyncio.run(scenario())
        assert first is not None
        assert second is None
        assert store.max_inflight == 1

    def test_one_editor_per_post(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                post_id = await session.dispatch("draft.save", title="Hello", content="v0")
                editor = await session.editor(post_id)
                for i in range(1, 5):
                    await session.dispatch("draft.save", post_id=post_id, content=f"v{i}")
                await session.dispatch("post.preview", post_id=post_id)

                assert await session.editor(post_id) is editor
                assert editor.content == "v4"
                assert list(session._editors) == [post_id]
                assert session._unsaved == []

        asyncio.run(scenario())

    def test_failed_new_post_editor_is_dropped(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                for _ in range(3):
                    with pytest.raises(EmptyDraft):
                        await session.dispatch("draft.save", title=" ", content="")
                assert session._unsaved == []
                assert session._editors == {}

        asyncio.run(scenario())

    def test_delete_stops_the_post_editor(self, signed_in):
        async def scenario():
            async with Session(signed_in) as session:
                post_id = await session.dispatch("draft.save", title="Hello", content="v1")
                task = (await session.editor(post_id)).start_autosave(interval=60)
                await session.dispatch("post.delete", post_id=post_id, status="draft")
                assert task.cancelled()
                assert post_id not in session._editors

        asyncio.run(scenario())

    def test_close_stops_registry_editors(self, signed_in):
        async def scenario():
            session = await Session(signed_in).start()
            post_id = await session.dispatch("draft.save", title="Hello", content="v1")
            task = (await session.editor(post_id)).start_autosave(interval=60)
            await session.close()
            assert task.cancelled()
            assert session._editors == {}

        asyncio.run(scenario())
