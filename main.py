"""
Tribune Graph — admin console

Thin command-line front end over the repositories, for setting up a
database and looking at what the graph holds:
  1. Schema setup (uniqueness constraints, listing indexes)
  2. Post listings (by status, by search, by actor)
  3. Single post and its comment threads
  4. Like toggling

Usage:
    python main.py setup
    python main.py posts --status published --skip 0 --limit 10
    python main.py search --value tribe
    python main.py show --post <post_id>
    python main.py mine --actor <actor_id>
    python main.py comments --post <post_id>
    python main.py like --post <post_id> --actor <subscriber_id>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from comments import Neo4jCommentRepository
from config import DEFAULT_PAGE_LIMIT, LOG_LEVEL, ConnectionConfig
from graph_store import GraphStore
from likes import LikeToggle
from posts import Neo4jPostRepository
from repositories import CommentRepository, PostRepository
from schema import Outcome, PostRecord, Result

# ─── Setup ────────────────────────────────────────────────────────────

console = Console()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)],
)
logger = logging.getLogger("tribune")


def _date(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _report_miss(result: Result) -> bool:
    """Print why a call produced nothing. True when there is nothing to show."""
    if result.error:
        console.print(f"[red]{result.error}[/red]")
        return True
    if result.outcome is Outcome.FORBIDDEN:
        console.print("[red]Not allowed for this actor.[/red]")
        return True
    if result.outcome is Outcome.NOT_FOUND:
        console.print("[yellow]Nothing matched.[/yellow]")
        return True
    return False


def _posts_table(title: str, posts: list[PostRecord]) -> Table:
    table = Table(title=title)
    table.add_column("Id", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Author", style="green")
    table.add_column("Editors")
    table.add_column("Likes", justify="right")
    table.add_column("Comments", justify="right")
    table.add_column("Created")

    for post in posts:
        table.add_row(
            post.id,
            post.title,
            post.author.id if post.author else "—",
            ", ".join(e.id for e in post.sub_authors) or "—",
            str(len(post.likes)),
            str(post.comments),
            _date(post.creation_date),
        )
    return table


# ─── Commands ─────────────────────────────────────────────────────────

async def cmd_setup(store: GraphStore, args: argparse.Namespace):
    """Create constraints and indexes."""
    await store.setup_indexes()
    console.print(Panel("Constraints and indexes are in place.", title="🛠️ Setup"))


async def cmd_posts(store: GraphStore, args: argparse.Namespace):
    """List one page of posts."""
    repo: PostRepository = Neo4jPostRepository(store)
    status = args.status == "published"
    result = await repo.get_all_posts(args.skip, args.limit, status)
    if _report_miss(result):
        return

    page = result.data
    console.print(_posts_table(f"{args.status.title()} posts ({page.total})", page.items))
    if page.has_next:
        console.print(f"[dim]More available: --skip {page.skip}[/dim]")


async def cmd_search(store: GraphStore, args: argparse.Namespace):
    """Search published posts by title."""
    repo: PostRepository = Neo4jPostRepository(store)
    result = await repo.get_searched_posts(args.value)
    if _report_miss(result):
        return
    if not result.data:
        console.print("[yellow]No published post matches.[/yellow]")
        return
    console.print(_posts_table(f"Titles containing '{args.value}'", result.data))


async def cmd_mine(store: GraphStore, args: argparse.Namespace):
    """List the posts an actor published, validated or proposed."""
    repo: PostRepository = Neo4jPostRepository(store)
    result = await repo.get_my_posts(args.actor)
    if _report_miss(result):
        return
    console.print(_posts_table(f"Posts of '{args.actor}'", result.data))


async def cmd_show(store: GraphStore, args: argparse.Namespace):
    """Show a single post."""
    repo: PostRepository = Neo4jPostRepository(store)
    result = await repo.get_post(args.post)
    if _report_miss(result):
        return

    post = result.data
    lines = [
        f"Title:     {post.title}",
        f"Published: {post.published}",
        f"Region:    {post.region or '—'}",
        f"Tribe:     {post.tribe or '—'}",
        f"Created:   {_date(post.creation_date)}",
        f"Modified:  {_date(post.modification_date)}",
        f"Files:     {', '.join(post.files_list) or '—'}",
    ]
    if post.published:
        lines.append(f"Likes:     {len(post.likes)}")
        lines.append(f"Comments:  {post.comments}")
    lines.append("")
    lines.append(post.content)
    console.print(Panel("\n".join(lines), title=f"📰 {post.id}"))


async def cmd_comments(store: GraphStore, args: argparse.Namespace):
    """Print the comment threads of a post."""
    repo: CommentRepository = Neo4jCommentRepository(store)
    result = await repo.get_all_comments(args.post)
    if _report_miss(result):
        return

    tree = Tree(f"💬 Post {args.post}")
    for thread in result.data:
        author = thread.author.id if thread.author else "?"
        node = tree.add(f"[cyan]{author}[/cyan]: {thread.content}"
                        + (" [dim](edited)[/dim]" if thread.edited else ""))
        for response in thread.responses:
            responder = response.author.id if response.author else "?"
            node.add(f"[green]{responder}[/green]: {response.content}")
    console.print(tree)


async def cmd_like(store: GraphStore, args: argparse.Namespace):
    """Like or unlike a post on behalf of a Subscriber."""
    toggle = LikeToggle(store)
    result = await toggle.toggle(args.post, args.actor)
    if _report_miss(result):
        return
    verb = "liked" if result.data.liked else "unliked"
    console.print(f"[green]Post {args.post} {verb} by {args.actor}[/green]")


# ─── CLI ──────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tribune",
        description="Tribune Graph — posts, comments and likes on Neo4j",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # setup
    subparsers.add_parser("setup", help="Create constraints and indexes")

    # posts
    p_posts = subparsers.add_parser("posts", help="List a page of posts")
    p_posts.add_argument(
        "--status", default="published", choices=["published", "proposed"]
    )
    p_posts.add_argument("--skip", type=int, default=0)
    p_posts.add_argument("--limit", type=int, default=DEFAULT_PAGE_LIMIT)

    # search
    p_search = subparsers.add_parser("search", help="Search published posts by title")
    p_search.add_argument("--value", default="", help="Substring of the title")

    # show
    p_show = subparsers.add_parser("show", help="Show one post")
    p_show.add_argument("--post", required=True, help="Post id")

    # mine
    p_mine = subparsers.add_parser("mine", help="List the posts of an actor")
    p_mine.add_argument("--actor", required=True, help="Actor id")

    # comments
    p_comments = subparsers.add_parser("comments", help="Show the comments of a post")
    p_comments.add_argument("--post", required=True, help="Post id")

    # like
    p_like = subparsers.add_parser("like", help="Toggle a like")
    p_like.add_argument("--post", required=True, help="Post id")
    p_like.add_argument("--actor", required=True, help="Subscriber id")

    return parser


COMMANDS = {
    "setup": cmd_setup,
    "posts": cmd_posts,
    "search": cmd_search,
    "show": cmd_show,
    "mine": cmd_mine,
    "comments": cmd_comments,
    "like": cmd_like,
}


async def run(args: argparse.Namespace):
    store = GraphStore(ConnectionConfig.from_env())
    try:
        await COMMANDS[args.command](store, args)
    finally:
        await store.close()


def main():
    parser = build_parser()
    args = parser.parse_args()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
