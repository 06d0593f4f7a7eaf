"""Rich-based terminal view of feeds and posts.

Titles, links and descriptions come from remote feeds and are never
interpreted as rich markup.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from feedloop.models import Post
from feedloop.state import FEED_ADDED, POSTS_ADDED, AppState, StateEvent


def render_feeds(state: AppState) -> Table:
    table = Table(title="Feeds")
    table.add_column("ID", width=6)
    table.add_column("Title", max_width=40)
    table.add_column("Link", max_width=50)
    table.add_column("Posts", width=6, justify="right")

    for feed in state.feeds:
        table.add_row(feed.id, Text(feed.title), Text(feed.link), str(len(state.posts_for_feed(feed.id))))
    return table


def render_posts(state: AppState, limit: int = 20) -> Table:
    table = Table(title="Posts")
    table.add_column("ID", width=6)
    table.add_column("Title", max_width=60)
    table.add_column("Published", width=20)

    for post in state.posts[:limit]:
        style = "dim" if post.id in state.viewed_post_ids else "bold"
        published = post.pub_date.strftime("%Y-%m-%d %H:%M") if post.pub_date else "—"
        table.add_row(post.id, Text(post.title or post.link, style=style), published)
    return table


def render_post(post: Post) -> Panel:
    body = Text(post.description or "(no description)")
    body.append("\n\n")
    body.append(post.link, style="underline")
    return Panel(body, title=Text(post.title or post.link), border_style="cyan")


class StatePrinter:
    """State observer that prints feeds and posts as they arrive."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def __call__(self, event: StateEvent):
        if event.kind == FEED_ADDED and event.feed:
            self.console.print(
                f"[green]+ Feed[/green] {escape(event.feed.title)} [dim]({len(event.posts)} posts)[/dim]"
            )
        elif event.kind == POSTS_ADDED:
            source = escape(event.feed.title) if event.feed else "?"
            for post in event.posts:
                self.console.print(f"[cyan]* {source}:[/cyan] {escape(post.title)} [dim]{escape(post.link)}[/dim]")
