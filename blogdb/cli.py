"""Command-line interface for BlogDB.

This module provides a Typer-based CLI over :class:`blogdb.engine.PostEngine`
for local administration, seeding and inspection.

Commands:
- init: Create the database schema
- status: Show configuration and row counts
- metrics: Print Prometheus metrics
- clap: Add claps of a user to a post
- bookmark: Bookmark (or un-bookmark) a post
- posts list/show/create/tag: Query and author posts
- tags list/add: Manage tags
- users add: Seed a user account

Example:
    $ blogdb init
    $ blogdb users add "Ada" ada@example.com --uid ada
    $ blogdb posts create --author ada --title "Hello" --content "..." --publish
    $ blogdb posts list --search hello
"""

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.engine import make_url

from blogdb.config import settings
from blogdb.database import DatabaseManager
from blogdb.engine import PostEngine
from blogdb.errors import BlogDBError
from blogdb.logging import setup_logging
from blogdb.metrics import generate_metrics_output
from blogdb.models import Actor, PostListItem, PostStatus

# Initialize CLI app
app = typer.Typer(
    name="blogdb",
    help="Post query, tagging and engagement engine for a blogging platform",
    add_completion=False,
)
posts_app = typer.Typer(help="Query and author posts", add_completion=False)
tags_app = typer.Typer(help="Manage tags", add_completion=False)
users_app = typer.Typer(help="Seed user accounts", add_completion=False)
app.add_typer(posts_app, name="posts")
app.add_typer(tags_app, name="tags")
app.add_typer(users_app, name="users")

console = Console()


# =============================================================================
# Helper Functions
# =============================================================================


def configure_logging(verbose: bool = False) -> None:
    """Send logs to stderr, at DEBUG when verbose."""
    setup_logging(
        stream=sys.stderr,
        level="DEBUG" if verbose else settings.log_level,
        json_logs=settings.log_json,
        log_file=settings.log_file,
        colorize=not settings.log_json,
    )


def open_engine() -> PostEngine:
    """Create an engine on the configured database."""
    return PostEngine(DatabaseManager())


def fail(message: object) -> None:
    """Print an error and exit with status 1."""
    console.print(f"\n❌ [bold red]{message}[/bold red]")
    raise typer.Exit(code=1)


def render_posts(posts: list[PostListItem], title: str) -> None:
    table = Table(title=title)
    table.add_column("UID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Author", style="magenta")
    table.add_column("Claps", justify="right", style="green")
    table.add_column("Tags", style="yellow")
    table.add_column("Created", justify="right")

    for post in posts:
        table.add_row(
            post.uid,
            post.title,
            post.author.name,
            f"{post.clap_count:,}",
            ", ".join(post.tags),
            str(post.created_at),
        )

    console.print(table)


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Drop and recreate all tables (destroys data)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Initialize the database schema.

    Examples:
        # Create tables and indexes
        $ blogdb init

        # Recreate an existing database from scratch
        $ blogdb init --force
    """
    configure_logging(verbose)

    console.print("🏗️  [bold cyan]BlogDB Initialization[/bold cyan]\n")

    db = DatabaseManager()
    database = make_url(db.database_url).database
    if db.is_sqlite and not db.is_memory and database and Path(database).exists() and not force:
        console.print(
            f"⚠️  Database already exists at {database}\n"
            "Use --force to recreate it."
        )
        return

    try:
        db.initialize()
        if force:
            db.drop_schema()
            db.create_schema()
        console.print(f"✅ Database ready at [yellow]{db.database_url}[/yellow]")

        console.print("\n📋 Configuration:")
        console.print(f"  • Environment: {settings.environment}")
        console.print(f"  • Unknown tag policy: {settings.unknown_tag_policy}")
        console.print(f"  • Page size: {settings.default_page_size} (max {settings.max_page_limit})")
    except Exception as e:
        fail(f"Initialization failed: {e}")
    finally:
        db.close()


@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Show configuration and database statistics."""
    configure_logging(verbose)

    console.print("📊 [bold cyan]BlogDB Status[/bold cyan]\n")
    console.print(f"📍 Database: [yellow]{settings.sqlalchemy_url}[/yellow]")
    console.print(f"🌍 Environment: [yellow]{settings.environment}[/yellow]")
    console.print(f"🏷️  Unknown tags: [yellow]{settings.unknown_tag_policy}[/yellow]\n")

    engine = open_engine()
    try:
        stats = engine.get_statistics()
    except BlogDBError as e:
        fail(e)
    else:
        stats_table = Table(title="Database Statistics")
        stats_table.add_column("Table", style="cyan")
        stats_table.add_column("Rows", justify="right", style="green")
        for table_name, count in stats.items():
            stats_table.add_row(table_name, f"{count:,}")
        console.print(stats_table)
    finally:
        engine.close()


@app.command()
def metrics() -> None:
    """Print engine metrics in Prometheus exposition format."""
    typer.echo(generate_metrics_output().decode("utf-8"))


@app.command()
def clap(
    user_uid: str = typer.Argument(..., help="Clapping user"),
    post_uid: str = typer.Argument(..., help="Post to clap"),
    increment: int = typer.Option(1, "--increment", "-n", help="Number of claps to add"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Add claps of a user to a post.

    Examples:
        $ blogdb clap ada 3f2c... --increment 5
    """
    configure_logging(verbose)

    engine = open_engine()
    try:
        result = engine.add_clap(user_uid, post_uid, increment)
        console.print(
            f"👏 [bold green]{result.user_uid} has {result.clap_count} claps on "
            f"{result.post_uid} (post total {result.post_total})[/bold green]"
        )
    except BlogDBError as e:
        fail(e)
    finally:
        engine.close()


@app.command()
def bookmark(
    user_uid: str = typer.Argument(..., help="Bookmarking user"),
    post_uid: str = typer.Argument(..., help="Post to bookmark"),
    remove: bool = typer.Option(False, "--remove", "-r", help="Remove the bookmark instead"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Bookmark a post, or remove a bookmark with --remove."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        if remove:
            result = engine.remove_bookmark(user_uid, post_uid)
            outcome = "removed" if result.changed else "was not bookmarked"
        else:
            result = engine.add_bookmark(user_uid, post_uid)
            outcome = "bookmarked" if result.changed else "already bookmarked"
        console.print(f"🔖 [bold green]{post_uid} {outcome}[/bold green]")
    except BlogDBError as e:
        fail(e)
    finally:
        engine.close()


# =============================================================================
# Posts
# =============================================================================


@posts_app.command("list")
def posts_list(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Title/content substring"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Tag uid"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author uid"),
    page: int = typer.Option(1, "--page", "-p", help="1-based page number"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Posts per page"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """List published posts, newest first.

    Examples:
        $ blogdb posts list --search python --page 2
        $ blogdb posts list --tag t-python --json
    """
    configure_logging(verbose)

    engine = open_engine()
    try:
        posts = engine.list_posts(search=search, tag=tag, page=page, limit=limit, author_uid=author)
    except BlogDBError as e:
        fail(e)
    else:
        if as_json:
            typer.echo(json.dumps([post.model_dump(mode="json") for post in posts], indent=2))
        elif posts:
            render_posts(posts, title=f"Posts (page {page})")
        else:
            console.print("No posts found")
    finally:
        engine.close()


@posts_app.command("show")
def posts_show(
    post_uid: str = typer.Argument(..., help="Post uid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Show one published post with author, tags and claps."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        post = engine.get_post(post_uid)
    except BlogDBError as e:
        fail(e)
    else:
        table = Table(title=post.title, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("UID", post.uid)
        table.add_row("Author", f"{post.author.name} ({post.author.uid})")
        table.add_row("Status", str(post.status))
        table.add_row("Claps", f"{post.clap_count:,}")
        table.add_row("Tags", ", ".join(post.tags) or "-")
        table.add_row("Created", str(post.created_at))
        table.add_row("Updated", str(post.updated_at))
        console.print(table)
        console.print(post.content)
    finally:
        engine.close()


@posts_app.command("create")
def posts_create(
    author: str = typer.Option(..., "--author", "-a", help="Author uid"),
    title: str = typer.Option(..., "--title", help="Post title"),
    content: str = typer.Option(..., "--content", help="Post body"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag uid (repeatable)"),
    publish: bool = typer.Option(False, "--publish", help="Publish instead of saving a draft"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Create a post as the given author."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        post = engine.create_post(
            Actor(user_id=author),
            {
                "title": title,
                "content": content,
                "status": PostStatus.PUBLISHED if publish else PostStatus.DRAFT,
                "tags": tags or [],
            },
        )
        console.print(f"✅ [bold green]Created {post.status} post {post.uid}[/bold green]")
    except BlogDBError as e:
        fail(e)
    finally:
        engine.close()


@posts_app.command("tag")
def posts_tag(
    post_uid: str = typer.Argument(..., help="Post uid"),
    tags: Optional[list[str]] = typer.Argument(None, help="Tag uids; none clears the tags"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Replace the tag set of a post."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        result = engine.set_post_tags(post_uid, tags or [])
        console.print(f"🏷️  [bold green]{post_uid}: {', '.join(result) or 'no tags'}[/bold green]")
    except BlogDBError as e:
        fail(e)
    finally:
        engine.close()


# =============================================================================
# Tags & Users
# =============================================================================


@tags_app.command("list")
def tags_list(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """List all tags by name."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        tags = engine.list_tags()
    except BlogDBError as e:
        fail(e)
    else:
        table = Table(title="Tags")
        table.add_column("UID", style="dim")
        table.add_column("Name", style="cyan")
        for tag in tags:
            table.add_row(tag.uid, tag.name)
        console.print(table)
    finally:
        engine.close()


@tags_app.command("add")
def tags_add(
    name: str = typer.Argument(..., help="Unique tag name"),
    uid: Optional[str] = typer.Option(None, "--uid", help="Explicit tag uid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Create a tag."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        tag = engine.create_tag(name, uid=uid)
        console.print(f"🏷️  [bold green]Created tag {tag.name} ({tag.uid})[/bold green]")
    except BlogDBError as e:
        fail(e)
    finally:
        engine.close()


@users_app.command("add")
def users_add(
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Unique email"),
    uid: Optional[str] = typer.Option(None, "--uid", help="Explicit user uid"),
    admin: bool = typer.Option(False, "--admin", help="Grant moderation rights"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Create a user account (for seeding; normally done by the auth service)."""
    configure_logging(verbose)

    engine = open_engine()
    try:
        user = engine.create_user(name, email, uid=uid, is_admin=admin)
        console.print(f"👤 [bold green]Created user {user.name} ({user.uid})[/bold green]")
    except BlogDBError as e:
        fail(e)
    finally:
        engine.close()


if __name__ == "__main__":
    app()
