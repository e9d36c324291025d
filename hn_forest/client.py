from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from hn_forest.constants import (
    DEFAULT_FEED,
    HN_API_BASE,
    HTTP_CONNECT_TIMEOUT,
    HTTP_TIMEOUT,
    STORY_FEEDS,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


class HNClient:
    """
    Thin async client for the Hacker News Firebase API.

    Construct one per session and pass it to the resolver; it owns a single
    httpx connection pool.
    """

    def __init__(
        self,
        base_url: str = HN_API_BASE,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url: str = base_url.rstrip("/")
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=self.base_url,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(timeout, connect=min(HTTP_CONNECT_TIMEOUT, timeout)),
            transport=transport,
        )

    async def fetch_item(self, item_id: int) -> Optional[Any]:
        """
        Fetch one item as decoded JSON.

        Returns None for a non-200 response or a `null` body (unknown ID).
        Transport errors and undecodable bodies propagate to the caller.
        """
        resp: httpx.Response = await self.client.get(f"/item/{item_id}.json")
        if resp.status_code != 200:
            logger.debug(f"Item {item_id} returned HTTP {resp.status_code}")
            return None
        return resp.json()

    async def fetch_story_ids(
        self, feed: str = DEFAULT_FEED, limit: Optional[int] = None
    ) -> tuple[bool, list[int]]:
        """Fetch a story ID list (e.g. the front page), truncated to `limit`."""
        if feed not in STORY_FEEDS:
            raise ValueError(f"Unknown feed {feed!r}; expected one of {STORY_FEEDS}")
        try:
            resp: httpx.Response = await self.client.get(f"/{feed}.json")
            if resp.status_code != 200:
                logger.warning(f"Feed {feed} returned HTTP {resp.status_code}")
                return False, []
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch feed {feed}: {e}")
            return False, []

        if not isinstance(data, list):
            logger.warning(f"Feed {feed} returned {type(data).__name__}, expected list")
            return False, []
        ids: list[int] = []
        for sid in data:
            if isinstance(sid, int) and not isinstance(sid, bool):
                ids.append(sid)
            elif isinstance(sid, str) and sid.isdigit():
                ids.append(int(sid))
        if limit is not None:
            ids = ids[: max(limit, 0)]
        return True, ids

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> HNClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
