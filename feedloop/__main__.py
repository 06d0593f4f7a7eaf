"""CLI entry point: python -m feedloop [command]"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

console = Console()

ERROR_TEXT = {
    "duplicate_or_invalid_url": "link is invalid or already added",
    "not_a_feed": "resource does not contain a valid RSS feed",
    "network_error": "network error",
    "unknown": "unknown error",
}


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_checked_settings():
    from feedloop.config import load_settings

    settings = load_settings()
    setup_logging(settings.log_level)

    errors = settings.validate()
    if errors:
        for err in errors:
            console.print(f"[red]Config error: {escape(err)}[/red]")
        console.print("\n[dim]Check your environment or .env file.[/dim]")
        sys.exit(1)
    return settings


def _report_failure(url: str, result):
    console.print(f"[red]{escape(url)}: {ERROR_TEXT[result.error.value]}[/red] [dim]({escape(result.message)})[/dim]")


async def _watch(settings, urls: list[str], stop: asyncio.Event | None = None):
    from feedloop.dashboard.terminal import StatePrinter, render_feeds, render_posts
    from feedloop.service import Aggregator

    aggregator = Aggregator(settings)
    try:
        for url in urls:
            result = await aggregator.submit(url)
            if result.ok:
                console.print(f"[green]Added[/green] {escape(result.feed.title)}")
            else:
                _report_failure(url, result)

        if not aggregator.state.feeds:
            console.print("[yellow]No feeds to watch[/yellow]")
            return

        console.print(render_feeds(aggregator.state))
        console.print(render_posts(aggregator.state))
        aggregator.state.subscribe(StatePrinter(console))

        # Graceful shutdown
        if stop is None:
            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop.set)

        aggregator.scheduler.start()
        console.print(f"\n[cyan]Watching {len(aggregator.state.feeds)} feeds (Ctrl+C to stop)[/cyan]")
        await stop.wait()
        console.print("\n[yellow]Shutting down gracefully...[/yellow]")
    finally:
        await aggregator.aclose()


def cmd_watch(args):
    """Subscribe to feeds and poll them until interrupted."""
    settings = _load_checked_settings()
    if args.interval is not None:
        settings.poll_interval_seconds = args.interval

    urls = list(dict.fromkeys([*settings.feeds, *args.urls]))
    if not urls:
        console.print("[red]No feed URLs given (pass URLs or set FEEDLOOP_FEEDS)[/red]")
        sys.exit(1)

    console.print("\n[bold cyan]FEEDLOOP[/bold cyan] - RSS reader")
    console.print("━" * 50)
    asyncio.run(_watch(settings, urls))


async def _show(settings, url: str, limit: int, open_post: str | None = None) -> bool:
    from feedloop.dashboard.terminal import render_post, render_posts
    from feedloop.service import Aggregator

    aggregator = Aggregator(settings)
    try:
        result = await aggregator.submit(url)
        if not result.ok:
            _report_failure(url, result)
            return False
        console.print(f"[bold]{escape(result.feed.title)}[/bold]")
        if result.feed.description:
            console.print(f"[dim]{escape(result.feed.description)}[/dim]")

        if open_post:
            post = aggregator.state.view_post(open_post)
            if post is None:
                console.print(f"[red]No post with ID {escape(open_post)}[/red]")
                return False
            console.print(render_post(post))

        console.print(render_posts(aggregator.state, limit=limit))
        return True
    finally:
        await aggregator.aclose()


def cmd_show(args):
    """Fetch one feed and print its posts."""
    settings = _load_checked_settings()
    if not asyncio.run(_show(settings, args.url, args.limit, open_post=args.open)):
        sys.exit(1)


def cmd_config(args):
    """Print the effective configuration."""
    from feedloop.config import load_settings

    settings = load_settings()
    table = Table(title="Settings")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("POLL_INTERVAL_SECONDS", str(settings.poll_interval_seconds))
    table.add_row("PROXY_URL", escape(settings.proxy_url) or "[dim](direct)[/dim]")
    table.add_row("REQUEST_TIMEOUT_SECONDS", str(settings.request_timeout_seconds))
    table.add_row("USER_AGENT", escape(settings.user_agent))
    table.add_row("LOG_LEVEL", settings.log_level)
    table.add_row("FEEDLOOP_FEEDS", escape(", ".join(settings.feeds)) or "[dim](none)[/dim]")
    console.print(table)

    errors = settings.validate()
    for err in errors:
        console.print(f"[red]Config error: {escape(err)}[/red]")
    if errors:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        prog="feedloop",
        description="feedloop - RSS/Atom reader that polls feeds for new posts",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # watch
    watch_parser = subparsers.add_parser("watch", help="Subscribe to feeds and poll for new posts")
    watch_parser.add_argument("urls", nargs="*", help="Feed URLs (added to FEEDLOOP_FEEDS)")
    watch_parser.add_argument("--interval", type=float, help="Seconds between poll cycles (default: from config)")
    watch_parser.set_defaults(func=cmd_watch)

    # show
    show_parser = subparsers.add_parser("show", help="Fetch a feed once and print its posts")
    show_parser.add_argument("url", help="Feed URL")
    show_parser.add_argument("--limit", type=int, default=20, help="Max posts to show (default: 20)")
    show_parser.add_argument("--open", type=str, metavar="POST_ID", help="Show the full post and mark it read")
    show_parser.set_defaults(func=cmd_show)

    # config
    config_parser = subparsers.add_parser("config", help="Show effective configuration")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
