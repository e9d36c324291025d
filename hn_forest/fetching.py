from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional, Sequence

from hn_forest.client import HNClient
from hn_forest.constants import (
    DEFAULT_FEED,
    EXTERNAL_REQUEST_SEMAPHORE,
    FRONT_PAGE_SIZE,
)
from hn_forest.logging_config import get_logger
from hn_forest.models import FeedResult, Item, ItemDecodeError, ThreadResult
from hn_forest.tree import flatten

logger = get_logger(__name__)

FetchItem = Callable[[int], Awaitable[Any]]
ProgressCallback = Callable[[int, int], None]


class ForestResolver:
    """
    Resolves item IDs into trees of Items by fanning out one fetch per ID.

    `fetch_item` returns the decoded JSON for one ID (None when absent) and
    may raise; any failure drops that one item. At most `max_concurrency`
    fetches are in flight at once; pass None or 0 for no bound.

    The `issued`/`completed`/`failed` counters are cumulative over the life
    of the resolver.
    """

    def __init__(
        self,
        fetch_item: FetchItem,
        max_concurrency: Optional[int] = EXTERNAL_REQUEST_SEMAPHORE,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self._fetch_item = fetch_item
        self._sem: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(max_concurrency) if max_concurrency else None
        )
        self._progress_callback = progress_callback
        self.issued = 0
        self.completed = 0
        self.failed = 0

    async def _fetch_payload(self, item_id: int) -> Any:
        if self._sem is None:
            return await self._fetch_item(item_id)
        async with self._sem:
            return await self._fetch_item(item_id)

    def _report_progress(self) -> None:
        if not self._progress_callback:
            return
        try:
            self._progress_callback(self.completed, self.issued)
        except Exception as e:
            logger.warning("progress_callback_failed", error=str(e))

    async def _fetch_one(self, item_id: int) -> Optional[Item]:
        self.issued += 1
        item: Optional[Item] = None
        try:
            payload = await self._fetch_payload(item_id)
            if payload is None:
                raise ItemDecodeError("item not found")
            item = Item.from_payload(payload)
        except Exception as e:
            self.failed += 1
            logger.debug("item_fetch_failed", item_id=item_id, error=str(e))
        self.completed += 1
        self._report_progress()
        return item

    async def resolve_level(self, ids: Sequence[int]) -> list[Item]:
        """
        Fetch every ID concurrently and return the successes in input order.

        Completion order never leaks into the result: gather() hands results
        back by position, and failed IDs are simply left out.
        """
        if not ids:
            return []
        results = await asyncio.gather(*(self._fetch_one(i) for i in ids))
        items = [item for item in results if item is not None]
        logger.debug("level_resolved", requested=len(ids), resolved=len(items))
        return items

    async def resolve_forest(self, ids: Sequence[int], depth: int = 0) -> list[Item]:
        """
        Resolve `ids` and, recursively, every descendant.

        Returns only once every subtree under every input ID has settled.
        Sibling subtrees resolve concurrently. Each returned Item carries
        `depth` and its resolved `children`.
        """
        if not ids:
            return []
        items = await self.resolve_level(ids)
        subtrees = await asyncio.gather(
            *(self.resolve_forest(item.child_ids, depth + 1) for item in items)
        )
        return [
            replace(item, depth=depth, children=tuple(children))
            for item, children in zip(items, subtrees)
        ]


def _resolver_for(
    client: HNClient,
    max_concurrency: Optional[int],
    progress_callback: Optional[ProgressCallback],
) -> ForestResolver:
    return ForestResolver(
        client.fetch_item,
        max_concurrency=max_concurrency,
        progress_callback=progress_callback,
    )


async def resolve_comments(
    client: HNClient,
    ids: Sequence[int],
    max_concurrency: Optional[int] = EXTERNAL_REQUEST_SEMAPHORE,
    progress_callback: Optional[ProgressCallback] = None,
) -> list[Item]:
    """Resolve a comment-thread root ID list and return it flattened."""
    resolver = _resolver_for(client, max_concurrency, progress_callback)
    return flatten(await resolver.resolve_forest(ids))


async def get_front_page(
    client: HNClient,
    size: int = FRONT_PAGE_SIZE,
    feed: str = DEFAULT_FEED,
    max_concurrency: Optional[int] = EXTERNAL_REQUEST_SEMAPHORE,
    progress_callback: Optional[ProgressCallback] = None,
) -> FeedResult:
    """Fetch the first `size` stories of a feed, in feed order (no comments)."""
    ok, ids = await client.fetch_story_ids(feed, limit=size)
    if not ok:
        logger.warning("feed_unavailable", feed=feed)
        return FeedResult(ok=False)
    resolver = _resolver_for(client, max_concurrency, progress_callback)
    stories = await resolver.resolve_level(ids)
    logger.info("feed_resolved", feed=feed, requested=len(ids), resolved=len(stories))
    return FeedResult(ok=True, items=stories)


async def get_comment_thread(
    client: HNClient,
    story_id: int,
    max_concurrency: Optional[int] = EXTERNAL_REQUEST_SEMAPHORE,
    progress_callback: Optional[ProgressCallback] = None,
) -> ThreadResult:
    """
    Fetch a story and its full comment forest.

    Top-level comments are depth 0. `ok` is False only when the story itself
    cannot be fetched.
    """
    resolver = _resolver_for(client, max_concurrency, progress_callback)
    found = await resolver.resolve_level([story_id])
    if not found:
        logger.warning("story_unavailable", story_id=story_id)
        return ThreadResult(ok=False)
    story = found[0]
    forest = await resolver.resolve_forest(story.child_ids)
    comments = flatten(forest)
    logger.info(
        "thread_resolved",
        story_id=story_id,
        comments=len(comments),
        failed=resolver.failed,
    )
    return ThreadResult(ok=True, story=story, forest=forest, comments=comments)
