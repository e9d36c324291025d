from __future__ import annotations

from typing import Iterable, Iterator

from hn_forest.models import Item


def iter_flat(forest: Iterable[Item]) -> Iterator[Item]:
    """Yield items in pre-order: each item, then its subtree."""
    for item in forest:
        yield item
        yield from iter_flat(item.children)


def flatten(forest: Iterable[Item]) -> list[Item]:
    """
    Linearize a resolved forest for row-by-row display.

    The result length equals the total node count and `depth` on each item is
    the only indentation signal. The forest is not modified.
    """
    return list(iter_flat(forest))


def count_nodes(forest: Iterable[Item]) -> int:
    return sum(1 + count_nodes(item.children) for item in forest)
