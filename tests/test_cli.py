"""Unit tests for CLI commands."""

import json

import pytest
import typer
from typer.testing import CliRunner

from blogdb.cli import app
from blogdb.config import settings

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    """Point the CLI at a fresh SQLite file with quiet logging."""
    db_path = tmp_path / "cli.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{db_path}")
    monkeypatch.setattr(settings, "log_level", "ERROR")
    monkeypatch.setattr(settings, "log_json", False)
    monkeypatch.setattr(settings, "log_to_file", False)
    return db_path


@pytest.fixture
def seeded(cli_db):
    """Initialized database with one author, one reader, one tag and one post."""
    for args in (
        ["init"],
        ["users", "add", "Ada", "ada@example.com", "--uid", "ada"],
        ["users", "add", "Bob", "bob@example.com", "--uid", "bob"],
        ["tags", "add", "python", "--uid", "t-python"],
        [
            "posts", "create",
            "--author", "ada",
            "--title", "Hello Python",
            "--content", "First post",
            "--tag", "t-python",
            "--publish",
        ],
    ):
        result = runner.invoke(app, args)
        assert result.exit_code == 0, result.stdout

    listing = runner.invoke(app, ["posts", "list", "--json"])
    return json.loads(listing.stdout)[0]["uid"]


class TestCLICommands:
    """Tests for CLI commands."""

    def test_cli_app_exists(self):
        """Test CLI app is defined."""
        assert isinstance(app, typer.Typer)

    def test_init_command(self, cli_db):
        """Test init creates the database file."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Database ready" in result.stdout
        assert cli_db.exists()

    def test_init_existing_database(self, cli_db):
        """Test a second init leaves the database alone."""
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Database already exists" in result.stdout

    def test_init_force_recreates(self, seeded):
        """Test init --force wipes existing rows."""
        result = runner.invoke(app, ["init", "--force"])
        assert result.exit_code == 0

        listing = runner.invoke(app, ["posts", "list", "--json"])
        assert json.loads(listing.stdout) == []

    def test_status_command(self, seeded):
        """Test status prints per-table row counts."""
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Database Statistics" in result.stdout
        assert "posts_tags" in result.stdout

    def test_metrics_command(self, seeded):
        """Test metrics prints Prometheus exposition text."""
        result = runner.invoke(app, ["metrics"])

        assert result.exit_code == 0
        assert "# TYPE blogdb_operations_total counter" in result.stdout


class TestPostCommands:
    """Tests for the posts sub-commands."""

    def test_list_json(self, seeded):
        """Test --json prints machine-readable posts."""
        result = runner.invoke(app, ["posts", "list", "--json"])

        posts = json.loads(result.stdout)
        assert result.exit_code == 0
        assert posts[0]["uid"] == seeded
        assert posts[0]["tags"] == ["t-python"]
        assert posts[0]["author"]["name"] == "Ada"

    def test_list_table(self, seeded):
        """Test the default output is a table."""
        result = runner.invoke(app, ["posts", "list", "--search", "hello"])

        assert result.exit_code == 0
        assert "Hello Python" in result.stdout

    def test_list_empty(self, seeded):
        """Test an empty page is reported."""
        result = runner.invoke(app, ["posts", "list", "--page", "5"])

        assert result.exit_code == 0
        assert "No posts found" in result.stdout

    def test_show(self, seeded):
        """Test show prints the post body."""
        result = runner.invoke(app, ["posts", "show", seeded])

        assert result.exit_code == 0
        assert "First post" in result.stdout

    def test_show_missing_post(self, seeded):
        """Test show exits with an error for unknown posts."""
        result = runner.invoke(app, ["posts", "show", "missing"])

        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_tag_replaces_set(self, seeded):
        """Test posts tag replaces the tags and prints the result."""
        runner.invoke(app, ["tags", "add", "sql", "--uid", "t-sql"])

        result = runner.invoke(app, ["posts", "tag", seeded, "t-sql"])

        assert result.exit_code == 0
        assert "t-sql" in result.stdout
        listing = runner.invoke(app, ["posts", "list", "--json"])
        assert json.loads(listing.stdout)[0]["tags"] == ["t-sql"]

    def test_create_for_unknown_author(self, seeded):
        """Test creating a post for a missing user fails."""
        result = runner.invoke(
            app,
            ["posts", "create", "--author", "ghost", "--title", "T", "--content", "C"],
        )

        assert result.exit_code == 1


class TestEngagementCommands:
    """Tests for clap and bookmark commands."""

    def test_clap(self, seeded):
        """Test clap reports the user's count and the post total."""
        runner.invoke(app, ["clap", "bob", seeded, "-n", "3"])
        result = runner.invoke(app, ["clap", "bob", seeded, "--increment", "2"])

        assert result.exit_code == 0
        assert "5 claps" in result.stdout

    def test_clap_rejects_zero(self, seeded):
        """Test a non-positive increment is refused."""
        result = runner.invoke(app, ["clap", "bob", seeded, "-n", "0"])

        assert result.exit_code == 1

    def test_bookmark_cycle(self, seeded):
        """Test bookmark, duplicate bookmark and removal outcomes."""
        assert "bookmarked" in runner.invoke(app, ["bookmark", "bob", seeded]).stdout
        assert "already bookmarked" in runner.invoke(app, ["bookmark", "bob", seeded]).stdout
        assert "removed" in runner.invoke(app, ["bookmark", "bob", seeded, "--remove"]).stdout
        assert "was not bookmarked" in runner.invoke(app, ["bookmark", "bob", seeded, "-r"]).stdout


class TestTagAndUserCommands:
    """Tests for tags and users sub-commands."""

    def test_tags_list(self, seeded):
        """Test tags list shows created tags."""
        result = runner.invoke(app, ["tags", "list"])

        assert result.exit_code == 0
        assert "python" in result.stdout

    def test_duplicate_tag_rejected(self, seeded):
        """Test a duplicate tag name exits with an error."""
        result = runner.invoke(app, ["tags", "add", "python"])

        assert result.exit_code == 1

    def test_duplicate_user_email_rejected(self, seeded):
        """Test a duplicate email exits with an error."""
        result = runner.invoke(app, ["users", "add", "Other", "ada@example.com"])

        assert result.exit_code == 1
