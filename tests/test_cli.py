"""End-to-end tests for the MindScribe CLI."""

import re
from pathlib import Path

import pytest
from mindscribe import config as config_module
from mindscribe.cli import GENERIC_STORE_ERROR, app
from mindscribe.store import json_store as json_store_module
from mindscribe.store.json_store import STORE_FILENAME
from typer.testing import CliRunner

ID_RE = re.compile(r"id=([0-9a-f]{32})")


@pytest.fixture
def runner(tmp_path: Path, monkeypatch) -> CliRunner:
    """CLI runner writing into a throwaway data directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "GLOBAL_CONFIG_PATH", tmp_path / "missing.toml")
    monkeypatch.delenv("MINDSCRIBE_LOG_LEVEL", raising=False)
    monkeypatch.setenv("MINDSCRIBE_DATA_DIR", str(tmp_path / "data"))
    return CliRunner()


def _signup(runner: CliRunner, email: str = "ada@example.com"):
    return runner.invoke(
        app,
        [
            "signup",
            "--full-name", "Ada Lovelace",
            "--nick-name", "Ada",
            "--email", email,
            "--city", "London",
            "--password", "secret1",
            "--confirm", "secret1",
        ],
    )


def _saved_id(output: str) -> str:
    match = ID_RE.search(output)
    assert match is not None, output
    return match.group(1)


class TestBasics:
    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "publish" in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "mindscribe 0.1.0" in result.output


class TestAccounts:
    def test_signup_and_whoami(self, runner: CliRunner):
        result = _signup(runner)
        assert result.exit_code == 0, result.output
        assert "Welcome to MindScribe, ada@example.com!" in result.output

        result = runner.invoke(app, ["whoami"])
        assert result.exit_code == 0
        assert "ada@example.com" in result.output

    def test_whoami_signed_out(self, runner: CliRunner):
        result = runner.invoke(app, ["whoami"])
        assert result.exit_code == 1
        assert "Not signed in." in result.output

    def test_signout_then_signin(self, runner: CliRunner):
        _signup(runner)
        assert runner.invoke(app, ["signout"]).exit_code == 0

        bad = runner.invoke(app, ["signin", "--email", "ada@example.com", "--password", "nope1"])
        assert bad.exit_code == 1
        assert "Invalid email or password. Please check your credentials." in bad.output

        good = runner.invoke(
            app, ["signin", "--email", "ada@example.com", "--password", "secret1"]
        )
        assert good.exit_code == 0
        assert "Welcome back, ada!" in good.output

    def test_signup_validation_error(self, runner: CliRunner):
        result = runner.invoke(
            app,
            [
                "signup",
                "--full-name", "Ada",
                "--nick-name", "Ada",
                "--email", "ada@example.com",
                "--city", "London",
                "--password", "secret1",
                "--confirm", "secret2",
            ],
        )
        assert result.exit_code == 1
        assert "Passwords do not match" in result.output

    def test_reset_password(self, runner: CliRunner):
        _signup(runner)
        result = runner.invoke(app, ["reset-password", "--email", "ada@example.com"])
        assert result.exit_code == 0
        assert "Password reset email sent!" in result.output

    def test_change_password(self, runner: CliRunner):
        _signup(runner)
        result = runner.invoke(
            app,
            ["password", "--current", "secret1", "--new", "secret2", "--confirm", "secret2"],
        )
        assert result.exit_code == 0, result.output
        runner.invoke(app, ["signout"])
        result = runner.invoke(
            app, ["signin", "--email", "ada@example.com", "--password", "secret2"]
        )
        assert result.exit_code == 0

    def test_delete_account(self, runner: CliRunner):
        _signup(runner)
        runner.invoke(app, ["save", "--title", "Hello", "--content", "World"])
        result = runner.invoke(app, ["delete-account", "--password", "secret1", "--yes"])
        assert result.exit_code == 0, result.output
        assert "2 document(s) removed" in result.output
        assert runner.invoke(app, ["whoami"]).exit_code == 1


class TestPosts:
    def test_requires_sign_in(self, runner: CliRunner):
        result = runner.invoke(app, ["save", "--title", "Hello", "--content", "World"])
        assert result.exit_code == 1
        assert "You are not signed in." in result.output

    def test_draft_publish_flow(self, runner: CliRunner):
        _signup(runner)

        result = runner.invoke(app, ["save", "--title", "Hello", "--content", "World"])
        assert result.exit_code == 0, result.output
        assert "Draft saved successfully!" in result.output
        post_id = _saved_id(result.output)

        result = runner.invoke(app, ["list", "--filter", "draft"])
        assert "Hello" in result.output

        result = runner.invoke(app, ["publish", "--id", post_id])
        assert result.exit_code == 0, result.output
        assert _saved_id(result.output) == post_id

        result = runner.invoke(app, ["list", "--filter", "draft"])
        assert "No posts yet." in result.output
        result = runner.invoke(app, ["list", "--filter", "published"])
        assert "Hello" in result.output

        result = runner.invoke(app, ["stats"])
        assert "Total posts: 1" in result.output
        assert "Published:   1" in result.output
        assert "Drafts:      0" in result.output

        result = runner.invoke(app, ["show", post_id])
        assert result.exit_code == 0
        assert "Hello" in result.output
        assert "(published)" in result.output

        result = runner.invoke(app, ["delete", post_id, "--status", "published", "--yes"])
        assert result.exit_code == 0
        assert "Published deleted successfully" in result.output

    def test_publish_incomplete(self, runner: CliRunner):
        _signup(runner)
        result = runner.invoke(app, ["publish", "--title", "Only a title"])
        assert result.exit_code == 1
        assert "Please add content before publishing" in result.output

    def test_save_empty(self, runner: CliRunner):
        _signup(runner)
        result = runner.invoke(app, ["save", "--title", " "])
        assert result.exit_code == 1
        assert "Cannot save empty draft" in result.output

    def test_save_from_file_and_preview(self, runner: CliRunner, tmp_path: Path):
        _signup(runner)
        body = tmp_path / "body.md"
        body.write_text("Some **bold** words")

        result = runner.invoke(app, ["save", "--title", "From file", "--file", str(body)])
        post_id = _saved_id(result.output)

        result = runner.invoke(app, ["show", post_id, "--preview"])
        assert result.exit_code == 0
        assert "<strong>bold</strong>" in result.output

    def test_delete_missing(self, runner: CliRunner):
        _signup(runner)
        result = runner.invoke(app, ["delete", "0" * 32, "--yes"])
        assert result.exit_code == 1
        assert "Post not found." in result.output

    def test_delete_declined(self, runner: CliRunner):
        _signup(runner)
        post_id = _saved_id(runner.invoke(app, ["save", "--title", "Keep"]).output)
        result = runner.invoke(app, ["delete", post_id], input="n\n")
        assert result.exit_code == 0
        assert "Keep" in runner.invoke(app, ["list"]).output


class TestProfile:
    def test_update_and_show(self, runner: CliRunner):
        _signup(runner)
        result = runner.invoke(
            app,
            ["profile-update", "--display-name", "Ada L", "--bio", "Mathematician"],
        )
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["profile"])
        assert result.exit_code == 0
        assert "Ada L (AL)" in result.output
        assert "Mathematician" in result.output

    def test_avatar(self, runner: CliRunner, tmp_path: Path):
        _signup(runner)
        image = tmp_path / "me.png"
        image.write_bytes(b"\x89PNG\r\n")
        result = runner.invoke(app, ["avatar", str(image)])
        assert result.exit_code == 0, result.output
        assert "Avatar updated successfully!" in result.output
        assert (tmp_path / "data" / "objects" / "avatars").is_dir()

    def test_avatar_rejects_non_image(self, runner: CliRunner, tmp_path: Path):
        _signup(runner)
        notes = tmp_path / "notes.txt"
        notes.write_text("hi")
        result = runner.invoke(app, ["avatar", str(notes)])
        assert result.exit_code == 1
        assert "Please select an image file" in result.output


class TestListSearch:
    def test_filters_titles_ignoring_case(self, runner: CliRunner):
        _signup(runner)
        runner.invoke(app, ["save", "--title", "Hello World", "--content", "one"])
        runner.invoke(app, ["save", "--title", "Other notes", "--content", "two"])

        result = runner.invoke(app, ["list", "--search", "hello"])
        assert result.exit_code == 0, result.output
        assert "Hello World" in result.output
        assert "Other notes" not in result.output

    def test_no_match(self, runner: CliRunner):
        _signup(runner)
        runner.invoke(app, ["save", "--title", "Hello", "--content", "one"])
        result = runner.invoke(app, ["list", "--search", "zzz"])
        assert result.exit_code == 0
        assert "No posts match zzz" in result.output


class TestStats:
    def test_shows_activity_counters(self, runner: CliRunner):
        _signup(runner)
        runner.invoke(app, ["save", "--title", "One", "--content", "a b c d"])
        runner.invoke(app, ["save", "--title", "Two", "--content", "a b"])
        runner.invoke(app, ["publish", "--title", "Three", "--content", "done"])

        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0, result.output
        assert "Total posts: 3" in result.output
        assert "Drafts updated this week:  2" in result.output
        assert "Average words per draft:   3" in result.output
        assert "Published this month:      1" in result.output
        assert "Account age: 1 days" in result.output


class TestStoreFailures:
    def test_write_failure_shows_retry_message(self, runner: CliRunner, monkeypatch):
        _signup(runner)

        def refuse(path, text):
            raise OSError("disk full")

        monkeypatch.setattr(json_store_module, "atomic_write", refuse)
        result = runner.invoke(app, ["save", "--title", "Hello", "--content", "World"])
        assert result.exit_code == 1
        assert GENERIC_STORE_ERROR in result.output
        assert "disk full" not in result.output

    def test_unreadable_store_shows_retry_message(self, runner: CliRunner, tmp_path: Path):
        _signup(runner)
        store_file = tmp_path / "data" / STORE_FILENAME
        store_file.unlink()
        store_file.mkdir()

        result = runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert GENERIC_STORE_ERROR in result.output
