import asyncio
import random

import httpx
import pytest


def comment(item_id, kids=(), by="alice", text=None, time=1_600_000_000, **extra):
    payload = {
        "id": item_id,
        "type": "comment",
        "by": by,
        "text": text if text is not None else f"comment {item_id}",
        "time": time,
    }
    if kids:
        payload["kids"] = list(kids)
    payload.update(extra)
    return payload


def story(item_id, kids=(), title=None, **extra):
    payload = {
        "id": item_id,
        "type": "story",
        "by": "bob",
        "title": title or f"story {item_id}",
        "time": 1_600_000_000,
        "score": 42,
        "url": f"https://example.com/{item_id}",
    }
    if kids:
        payload["kids"] = list(kids)
        payload["descendants"] = len(kids)
    payload.update(extra)
    return payload


class FakeItemSource:
    """
    In-memory stand-in for HNClient.fetch_item.

    IDs in `missing` return None, IDs in `raising` raise a transport error,
    anything not in `payloads` returns None. `delays` overrides the random
    jitter per ID.
    """

    def __init__(self, payloads, missing=(), raising=(), jitter=0.0, delays=None, seed=0):
        self.payloads = dict(payloads)
        self.missing = set(missing)
        self.raising = set(raising)
        self.jitter = jitter
        self.delays = delays or {}
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._rng = random.Random(seed)

    async def __call__(self, item_id):
        self.calls.append(item_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(item_id, self._rng.random() * self.jitter)
            await asyncio.sleep(delay)
            if item_id in self.raising:
                raise httpx.ConnectError(f"connection refused for {item_id}")
            if item_id in self.missing:
                return None
            return self.payloads.get(item_id)
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_source():
    def _make(payloads, **kwargs):
        return FakeItemSource(payloads, **kwargs)

    return _make
