"""CLI interface for MindScribe."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from mindscribe.accounts.services import AccountService, describe_auth_error
from mindscribe.backend import Backend, open_backend
from mindscribe.config import MindScribeConfig, load_config, merge_cli_overrides
from mindscribe.posts.models import Post, PostFilter, PostStatus
from mindscribe.session import Session
from mindscribe.shared.errors import (
    AuthError,
    MindScribeError,
    NotFound,
    PermissionDenied,
    StoreUnavailable,
)

app = typer.Typer(
    name="mindscribe",
    help="Write drafts, publish posts and manage your MindScribe profile.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

GENERIC_STORE_ERROR = "Something went wrong while talking to the store. Please try again."


@dataclass
class CliState:
    config: MindScribeConfig


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from mindscribe import __version__

        console.print(f"mindscribe {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def error_message(exc: MindScribeError) -> str:
    """User-facing text for a failed operation."""
    if isinstance(exc, AuthError):
        return describe_auth_error(exc)
    if isinstance(exc, (StoreUnavailable, PermissionDenied)):
        return GENERIC_STORE_ERROR
    if isinstance(exc, NotFound):
        return "Post not found."
    return str(exc)


def _fail(exc: MindScribeError) -> typer.Exit:
    logging.getLogger(__name__).debug("Command failed", exc_info=True)
    console.print(f"[red]Error:[/red] {error_message(exc)}")
    return typer.Exit(1)


def _run(action: Awaitable[T]) -> T:
    """Run a coroutine, turning MindScribe errors into exit code 1."""
    try:
        return asyncio.run(action)
    except MindScribeError as exc:
        raise _fail(exc) from exc


def _backend(ctx: typer.Context) -> Backend:
    state: CliState = ctx.obj
    try:
        return open_backend(state.config)
    except MindScribeError as exc:
        raise _fail(exc) from exc


async def _in_session(backend: Backend, action: Callable[[Session], Awaitable[T]]) -> T:
    async with Session(backend) as session:
        return await action(session)


def _dispatch(ctx: typer.Context, name: str, **kwargs: Any) -> Any:
    backend = _backend(ctx)
    return _run(_in_session(backend, lambda s: s.dispatch(name, **kwargs)))


def _read_content(content: str | None, file: Path | None) -> str | None:
    if file is None:
        return content
    try:
        return file.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(f"[red]Error:[/red] Cannot read {file}: {exc}")
        raise typer.Exit(1) from exc


def _format_date(post: Post) -> str:
    return post.sort_timestamp.strftime("%B %d, %Y")


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", help="Path to a .mindscribe.toml file."),
    ] = None,
    data_dir: Annotated[
        Optional[Path],
        typer.Option("--data-dir", help="Directory holding accounts, posts and avatars."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
) -> None:
    """MindScribe - a small writing tool with drafts and publishing."""
    config = load_config(config_path)
    config = merge_cli_overrides(
        config,
        data_dir=str(data_dir) if data_dir else None,
        log_level="DEBUG" if verbose else None,
    )
    configure_logging(config.logging.level)
    ctx.obj = CliState(config=config)


# ── Accounts ─────────────────────────────────────────────────────


@app.command()
def signup(
    ctx: typer.Context,
    full_name: Annotated[str, typer.Option("--full-name", prompt=True)],
    nick_name: Annotated[str, typer.Option("--nick-name", prompt=True)],
    email: Annotated[str, typer.Option("--email", prompt=True)],
    city: Annotated[str, typer.Option("--city", prompt=True)],
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True)],
    confirm: Annotated[
        str, typer.Option("--confirm", prompt="Confirm password", hide_input=True)
    ],
) -> None:
    """Create an account and sign in."""
    accounts = AccountService(_backend(ctx))
    user = _run(accounts.register(full_name, nick_name, email, city, password, confirm))
    console.print(f"[green]Welcome to MindScribe, {user.email}![/green]")


@app.command()
def signin(
    ctx: typer.Context,
    email: Annotated[str, typer.Option("--email", prompt=True)],
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True)],
) -> None:
    """Sign in with email and password."""
    accounts = AccountService(_backend(ctx))
    user = _run(accounts.sign_in(email, password))
    console.print(f"[green]Welcome back, {user.name}![/green]")


@app.command()
def signout(ctx: typer.Context) -> None:
    """Sign out."""
    accounts = AccountService(_backend(ctx))
    _run(accounts.sign_out())
    console.print("Signed out.")


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the signed-in user."""
    user = _backend(ctx).identity.current_user()
    if user is None:
        console.print("[yellow]Not signed in.[/yellow]")
        raise typer.Exit(1)
    console.print(f"{user.name} <{user.email}>")


@app.command("reset-password")
def reset_password(
    ctx: typer.Context,
    email: Annotated[str, typer.Option("--email", prompt=True)],
) -> None:
    """Request a password reset email."""
    accounts = AccountService(_backend(ctx))
    _run(accounts.send_password_reset(email))
    console.print("[green]Password reset email sent! Check your inbox.[/green]")


@app.command()
def password(
    ctx: typer.Context,
    current: Annotated[
        str, typer.Option("--current", prompt="Current password", hide_input=True)
    ],
    new: Annotated[str, typer.Option("--new", prompt="New password", hide_input=True)],
    confirm: Annotated[
        str, typer.Option("--confirm", prompt="Confirm new password", hide_input=True)
    ],
) -> None:
    """Change your password."""
    accounts = AccountService(_backend(ctx))
    _run(accounts.change_password(current, new, confirm))
    console.print("[green]Password changed successfully![/green]")


@app.command("delete-account")
def delete_account(
    ctx: typer.Context,
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True)],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
) -> None:
    """Delete your account, profile and every post."""
    if not yes and not typer.confirm("Delete your account and all posts? This cannot be undone."):
        raise typer.Exit(0)
    accounts = AccountService(_backend(ctx))
    deleted = _run(accounts.delete_account(password))
    console.print(f"Account deleted ({deleted} document(s) removed).")


# ── Posts ────────────────────────────────────────────────────────


@app.command()
def save(
    ctx: typer.Context,
    post_id: Annotated[Optional[str], typer.Option("--id", help="Draft to update.")] = None,
    title: Annotated[Optional[str], typer.Option("--title", "-t")] = None,
    content: Annotated[Optional[str], typer.Option("--content", "-c")] = None,
    file: Annotated[
        Optional[Path], typer.Option("--file", "-f", help="Read content from a file.")
    ] = None,
) -> None:
    """Save a draft (creates one when --id is omitted)."""
    content = _read_content(content, file)
    saved_id = _dispatch(ctx, "draft.save", post_id=post_id, title=title, content=content)
    console.print(f"[green]Draft saved successfully![/green] id={saved_id}")


@app.command()
def publish(
    ctx: typer.Context,
    post_id: Annotated[Optional[str], typer.Option("--id", help="Post to publish.")] = None,
    title: Annotated[Optional[str], typer.Option("--title", "-t")] = None,
    content: Annotated[Optional[str], typer.Option("--content", "-c")] = None,
    file: Annotated[
        Optional[Path], typer.Option("--file", "-f", help="Read content from a file.")
    ] = None,
) -> None:
    """Publish a draft, update a published post, or publish new text."""
    content = _read_content(content, file)
    published_id = _dispatch(
        ctx, "post.publish", post_id=post_id, title=title, content=content
    )
    console.print(f"[green]Post published successfully![/green] id={published_id}")


@app.command()
def show(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post identifier.")],
    preview: Annotated[bool, typer.Option("--preview", help="Render as HTML.")] = False,
) -> None:
    """Show one post."""
    if preview:
        rendered = _dispatch(ctx, "post.preview", post_id=post_id)
        console.print(rendered, markup=False, soft_wrap=True)
        return
    post: Post = _dispatch(ctx, "post.show", post_id=post_id)
    console.print(f"[bold]{escape(post.title or 'Untitled')}[/bold]  ({post.status.value})")
    console.print(
        f"{_format_date(post)} • {post.word_count} words • {post.read_time} min read"
    )
    console.print()
    console.print(post.content, markup=False, soft_wrap=True)


@app.command("list")
def list_posts(
    ctx: typer.Context,
    filter: Annotated[
        PostFilter, typer.Option("--filter", help="all, draft or published.")
    ] = PostFilter.ALL,
    limit: Annotated[Optional[int], typer.Option("--limit", min=1)] = None,
    search: Annotated[
        Optional[str], typer.Option("--search", "-s", help="Only titles containing this text.")
    ] = None,
) -> None:
    """List your posts, newest first."""
    posts: list[Post] = _dispatch(ctx, "post.list", filter=filter, limit=limit, search=search)
    if not posts and search:
        console.print(f"[yellow]No posts match[/yellow] {escape(search)}")
        return
    if not posts:
        console.print("[yellow]No posts yet.[/yellow] Create your first one with 'mindscribe save'.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Date")
    table.add_column("Words", justify="right")
    table.add_column("Excerpt")
    for post in posts:
        status = "[green]Published[/green]" if post.status is PostStatus.PUBLISHED else "Draft"
        table.add_row(
            post.id,
            post.title or "Untitled",
            status,
            _format_date(post),
            str(post.word_count),
            post.excerpt or "No excerpt available",
        )
    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    post_id: Annotated[str, typer.Argument(help="Post identifier.")],
    status: Annotated[
        PostStatus, typer.Option("--status", help="Collection holding the post.")
    ] = PostStatus.DRAFT,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
) -> None:
    """Delete a draft or a published post."""
    if not yes and not typer.confirm(f"Delete this {status.value}? This cannot be undone."):
        raise typer.Exit(0)
    _dispatch(ctx, "post.delete", post_id=post_id, status=status)
    console.print(f"[green]{status.value.capitalize()} deleted successfully[/green]")


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show post counters and account age."""
    p = _dispatch(ctx, "profile.show")
    result = p.stats
    console.print(f"Total posts: {result.posts_count}")
    console.print(f"Published:   {result.published_count}")
    console.print(f"Drafts:      {result.drafts_count}")
    console.print(f"Drafts updated this week:  {result.recent_drafts}")
    console.print(f"Average words per draft:   {result.average_draft_words}")
    console.print(f"Published this month:      {result.published_this_month}")
    age = p.account_age_days(datetime.now(tz=UTC))
    if age is not None:
        console.print(f"Account age: {age} days")


# ── Profile ──────────────────────────────────────────────────────


@app.command()
def profile(ctx: typer.Context) -> None:
    """Show your profile."""
    p = _dispatch(ctx, "profile.show")
    console.print(f"[bold]{escape(p.display_name or p.email)}[/bold] ({p.initials})")
    console.print(f"Email:    {p.email}")
    console.print(f"Bio:      {p.bio or 'No bio yet'}")
    if p.website:
        console.print(f"Website:  {p.website}")
    if p.location:
        console.print(f"Location: {p.location}")
    if p.avatar_url:
        console.print(f"Avatar:   {p.avatar_url}")
    if p.created_at:
        console.print(f"Member since {p.created_at.date().isoformat()}")
        console.print(f"Account age: {p.account_age_days(datetime.now(tz=UTC))} days")
    console.print(
        f"Posts: {p.stats.posts_count} "
        f"(published {p.stats.published_count}, drafts {p.stats.drafts_count})"
    )


@app.command("profile-update")
def profile_update(
    ctx: typer.Context,
    display_name: Annotated[str, typer.Option("--display-name", prompt=True)],
    bio: Annotated[str, typer.Option("--bio")] = "",
    website: Annotated[str, typer.Option("--website")] = "",
    location: Annotated[str, typer.Option("--location")] = "",
) -> None:
    """Update your profile."""
    _dispatch(
        ctx,
        "profile.update",
        display_name=display_name,
        bio=bio,
        website=website,
        location=location,
    )
    console.print("[green]Profile updated successfully![/green]")


@app.command()
def avatar(
    ctx: typer.Context,
    image: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True)],
    content_type: Annotated[
        Optional[str], typer.Option("--content-type", help="Override the detected type.")
    ] = None,
) -> None:
    """Upload a profile picture."""
    detected = content_type or mimetypes.guess_type(image.name)[0] or "application/octet-stream"
    url = _dispatch(
        ctx,
        "profile.avatar",
        filename=image.name,
        data=image.read_bytes(),
        content_type=detected,
    )
    console.print(f"[green]Avatar updated successfully![/green] {url}")
