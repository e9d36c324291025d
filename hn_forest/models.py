"""Typed data models for resolved HN items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional, TypedDict

from hn_forest.constants import HN_ITEM_URL


class ItemDecodeError(ValueError):
    """Raised when an item payload does not have the expected shape."""


class ItemPayload(TypedDict, total=False):
    """Raw item object as returned by the Firebase API."""

    id: int
    type: str
    by: str
    title: str
    text: str
    time: int
    deleted: bool
    dead: bool
    kids: list[int]
    score: int
    url: str
    descendants: int


class ItemDict(TypedDict):
    """Serialized Item payload, children included."""

    id: int
    kind: Optional[str]
    author: Optional[str]
    title: Optional[str]
    text: Optional[str]
    time: Optional[int]
    deleted: bool
    dead: bool
    score: Optional[int]
    url: Optional[str]
    child_ids: list[int]
    children: list["ItemDict"]
    depth: int


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _optional_int(value: Any) -> Optional[int]:
    # bool is an int subclass; never accept it as a number
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


@dataclass(frozen=True)
class Item:
    """
    A resolved Hacker News item (story or comment).

    Instances are immutable. The resolver produces the final node with
    `dataclasses.replace`, setting `depth` and `children` exactly once.
    """

    id: int
    kind: Optional[str] = None
    author: Optional[str] = None
    title: Optional[str] = None
    text: Optional[str] = None
    time: Optional[int] = None
    deleted: bool = False
    dead: bool = False
    score: Optional[int] = None
    url: Optional[str] = None
    child_ids: tuple[int, ...] = ()
    children: tuple[Item, ...] = ()
    depth: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> Item:
        """
        Build an Item from a decoded JSON object.

        Optional fields with the wrong type are treated as absent. A payload
        that is not an object, or has no integer `id`, raises ItemDecodeError.
        """
        if not isinstance(payload, dict):
            raise ItemDecodeError(f"expected object, got {type(payload).__name__}")
        item_id = _optional_int(payload.get("id"))
        if item_id is None:
            raise ItemDecodeError("item payload has no integer id")

        kids = payload.get("kids") or []
        if not isinstance(kids, list):
            kids = []

        return cls(
            id=item_id,
            kind=_optional_str(payload.get("type")),
            author=_optional_str(payload.get("by")),
            title=_optional_str(payload.get("title")),
            text=_optional_str(payload.get("text")),
            time=_optional_int(payload.get("time")),
            deleted=payload.get("deleted") is True,
            dead=payload.get("dead") is True,
            score=_optional_int(payload.get("score")),
            url=_optional_str(payload.get("url")),
            child_ids=tuple(k for k in kids if _optional_int(k) is not None),
        )

    @property
    def body_or_title(self) -> Optional[str]:
        """Comment text, or story title when the item has no text."""
        return self.text if self.text is not None else self.title

    @property
    def timestamp(self) -> Optional[datetime]:
        if self.time is None:
            return None
        return datetime.fromtimestamp(self.time, tz=UTC)

    @property
    def deleted_or_missing(self) -> bool:
        if self.deleted or self.dead:
            return True
        return self.author is None and self.body_or_title is None

    @property
    def comment_count(self) -> int:
        return len(self.child_ids)

    @property
    def missing_children(self) -> int:
        """Number of child IDs that did not resolve (only meaningful once resolved)."""
        return len(self.child_ids) - len(self.children)

    @property
    def link(self) -> str:
        """Article URL, falling back to the HN discussion page."""
        return self.url or HN_ITEM_URL.format(id=self.id)

    def to_dict(self) -> ItemDict:
        """Serialize, children included."""
        return {
            "id": self.id,
            "kind": self.kind,
            "author": self.author,
            "title": self.title,
            "text": self.text,
            "time": self.time,
            "deleted": self.deleted,
            "dead": self.dead,
            "score": self.score,
            "url": self.url,
            "child_ids": list(self.child_ids),
            "children": [c.to_dict() for c in self.children],
            "depth": self.depth,
        }


@dataclass
class FeedResult:
    """Resolved story feed. `ok` is False when the ID list itself was unobtainable."""

    ok: bool
    items: list[Item] = field(default_factory=list)


@dataclass
class ThreadResult:
    """A story plus its comment forest, both as a tree and flattened for display."""

    ok: bool
    story: Optional[Item] = None
    forest: list[Item] = field(default_factory=list)
    comments: list[Item] = field(default_factory=list)
