import argparse
import asyncio
from datetime import UTC, datetime

from bs4 import BeautifulSoup
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from hn_forest.client import HNClient
from hn_forest.config import (
    get_api_base,
    get_front_page_size,
    get_max_concurrency,
    get_request_timeout,
    save_config,
)
from hn_forest.constants import DELETED_PLACEHOLDER, INDENT_WIDTH, STORY_FEEDS
from hn_forest.fetching import get_comment_thread, get_front_page
from hn_forest.logging_config import configure_logging
from hn_forest.models import Item
from hn_forest.timefmt import format_age

console = Console()


def html_to_text(html: str) -> str:
    """Strip HN comment markup down to plain text, keeping paragraph breaks."""
    soup = BeautifulSoup(html, "html.parser")
    for p in soup.find_all("p"):
        p.insert_before("\n\n")
    return soup.get_text().strip()


def age_of(item: Item, now: datetime) -> str:
    ts = item.timestamp
    return format_age(ts, now) if ts else ""


def render_story(item: Item, rank: int, now: datetime) -> None:
    title = escape(item.title or "Untitled")
    console.print(f"[dim]{rank:3d}.[/dim] [bold]{title}[/bold]")
    console.print(
        f"     [dim]{item.score or 0} points by {escape(item.author or '?')} "
        f"{age_of(item, now)} | {item.comment_count} comments[/dim]"
    )
    console.print(f"     [dim cyan]{escape(item.link)}[/]  [dim]id={item.id}[/]")


def render_comment(item: Item, now: datetime) -> None:
    pad = " " * (item.depth * INDENT_WIDTH)
    age = age_of(item, now)
    if item.deleted_or_missing:
        console.print(f"{pad}[dim]{escape(DELETED_PLACEHOLDER)} {age}[/dim]")
        console.print(f"{pad}[dim]{escape(DELETED_PLACEHOLDER)}[/dim]\n")
        return
    console.print(f"{pad}[bold]{escape(item.author or '')}[/bold] [dim]{age}[/dim]")
    for line in html_to_text(item.text or "").splitlines():
        console.print(f"{pad}{escape(line)}")
    console.print("")


async def show_front_page(args) -> int:
    now = datetime.now(UTC)
    size = args.size if args.size is not None else get_front_page_size()
    async with HNClient(base_url=get_api_base(), timeout=get_request_timeout()) as client:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task(f"[cyan]Fetching {args.feed}...", total=None)
            result = await get_front_page(
                client,
                size=size,
                feed=args.feed,
                max_concurrency=args.concurrency,
                progress_callback=lambda done, issued: progress.update(
                    task, completed=done, total=issued
                ),
            )

    if not result.ok:
        console.print(f"[red]Failed to fetch {args.feed}.[/]")
        return 1
    for rank, story in enumerate(result.items, start=1):
        render_story(story, rank, now)
    return 0


async def show_thread(args) -> int:
    now = datetime.now(UTC)
    async with HNClient(base_url=get_api_base(), timeout=get_request_timeout()) as client:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task(
                f"[cyan]Fetching comments for {args.story_id}...", total=None
            )
            result = await get_comment_thread(
                client,
                args.story_id,
                max_concurrency=args.concurrency,
                progress_callback=lambda done, issued: progress.update(
                    task, completed=done, total=issued
                ),
            )

    if not result.ok or result.story is None:
        console.print(f"[red]Failed to fetch story {args.story_id}.[/]")
        return 1
    story = result.story
    console.print(f"[bold green]{escape(story.title or 'Untitled')}[/]")
    console.print(
        f"[dim]{story.score or 0} points by {escape(story.author or '?')} "
        f"{age_of(story, now)} | {len(result.comments)} comments shown[/dim]\n"
    )
    for comment in result.comments:
        render_comment(comment, now)
    return 0


def non_negative_int(value: str) -> int:
    try:
        out = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if out < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {out}")
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Hacker News forest reader")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    parser.add_argument(
        "--concurrency",
        type=non_negative_int,
        default=None,
        help="Max simultaneous item requests (default: from config, 0 = unbounded)",
    )
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Persist --concurrency to the config file",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    front = sub.add_parser("front", help="Show a story feed")
    front.add_argument(
        "--size",
        type=non_negative_int,
        default=None,
        help="Number of stories to show (default: from config, 100)",
    )
    front.add_argument(
        "--feed", choices=STORY_FEEDS, default="topstories", help="Feed to show"
    )

    thread = sub.add_parser("thread", help="Show a story's comment thread")
    thread.add_argument("story_id", type=int, help="HN story ID")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.concurrency is None:
        args.concurrency = get_max_concurrency()
    elif args.save_config:
        save_config("max_concurrency", args.concurrency)

    if args.command == "front":
        return asyncio.run(show_front_page(args))
    return asyncio.run(show_thread(args))


if __name__ == "__main__":
    raise SystemExit(main())
