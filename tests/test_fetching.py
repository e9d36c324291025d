import asyncio

import pytest

from conftest import comment
from hn_forest.fetching import ForestResolver
from hn_forest.tree import flatten


class TestResolveLevel:
    """Fan-out/fan-in over a single ID list."""

    @pytest.mark.asyncio
    async def test_preserves_input_order_despite_completion_order(self, make_source):
        ids = [5, 4, 3, 2, 1]
        # First ID finishes last, last ID finishes first
        delays = {i: 0.001 * (len(ids) - n) for n, i in enumerate(ids)}
        source = make_source({i: comment(i) for i in ids}, delays=delays)

        items = await ForestResolver(source).resolve_level(ids)

        assert [item.id for item in items] == ids

    @pytest.mark.asyncio
    async def test_failed_fetch_is_dropped_and_order_kept(self, make_source):
        source = make_source(
            {i: comment(i) for i in (1, 2, 3, 4)}, raising={2}, jitter=0.002
        )
        resolver = ForestResolver(source)

        items = await resolver.resolve_level([1, 2, 3, 4])

        assert [item.id for item in items] == [1, 3, 4]
        assert resolver.failed == 1

    @pytest.mark.asyncio
    async def test_null_and_malformed_payloads_are_dropped(self, make_source):
        payloads = {
            1: comment(1),
            2: ["not", "an", "object"],
            3: {"by": "no-id"},
            4: comment(4),
        }
        source = make_source(payloads, missing={5})

        items = await ForestResolver(source).resolve_level([1, 2, 3, 4, 5])

        assert [item.id for item in items] == [1, 4]

    @pytest.mark.asyncio
    async def test_arbitrary_exception_does_not_fail_batch(self):
        async def flaky(item_id):
            if item_id == 2:
                raise KeyError("kids")
            return comment(item_id)

        items = await ForestResolver(flaky).resolve_level([1, 2, 3])

        assert [item.id for item in items] == [1, 3]

    @pytest.mark.asyncio
    async def test_all_failures_yield_empty_list(self, make_source):
        source = make_source({}, raising={1, 2})
        assert await ForestResolver(source).resolve_level([1, 2]) == []

    @pytest.mark.asyncio
    async def test_empty_input_issues_no_fetch(self, make_source):
        source = make_source({})
        assert await ForestResolver(source).resolve_level([]) == []
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, make_source):
        ids = list(range(1, 41))
        source = make_source({i: comment(i) for i in ids}, jitter=0.002)

        items = await ForestResolver(source, max_concurrency=3).resolve_level(ids)

        assert len(items) == 40
        assert 1 < source.max_in_flight <= 3

    @pytest.mark.asyncio
    async def test_unbounded_when_concurrency_disabled(self, make_source):
        ids = list(range(1, 21))
        source = make_source({i: comment(i) for i in ids}, delays={i: 0.01 for i in ids})

        await ForestResolver(source, max_concurrency=None).resolve_level(ids)

        assert source.max_in_flight == 20

    @pytest.mark.asyncio
    async def test_progress_callback_counts_every_fetch(self, make_source):
        seen = []
        source = make_source({1: comment(1), 2: comment(2)}, raising={3})
        resolver = ForestResolver(
            source, progress_callback=lambda done, issued: seen.append((done, issued))
        )

        await resolver.resolve_level([1, 2, 3])

        assert len(seen) == 3
        assert seen[-1] == (3, 3)
        assert resolver.issued == resolver.completed == 3

    @pytest.mark.asyncio
    async def test_raising_progress_callback_does_not_fail_batch(self, make_source):
        def callback(done, issued):
            if done == 2:
                raise RuntimeError("display closed")

        source = make_source({i: comment(i) for i in (1, 2, 3)})
        resolver = ForestResolver(source, progress_callback=callback)

        items = await resolver.resolve_level([1, 2, 3])

        assert [item.id for item in items] == [1, 2, 3]
        assert resolver.completed == 3
        assert resolver.failed == 0


class TestResolveForest:
    """Recursive resolution of child IDs."""

    @pytest.mark.asyncio
    async def test_leaf_issues_no_child_fetch(self, make_source):
        source = make_source({1: comment(1)})

        forest = await ForestResolver(source).resolve_forest([1])

        assert forest[0].children == ()
        assert source.calls == [1]

    @pytest.mark.asyncio
    async def test_grandchild_depth(self, make_source):
        source = make_source(
            {1: comment(1, kids=[2]), 2: comment(2, kids=[3]), 3: comment(3)}
        )

        forest = await ForestResolver(source).resolve_forest([1])

        root = forest[0]
        child = root.children[0]
        grandchild = child.children[0]
        assert (root.depth, child.depth, grandchild.depth) == (0, 1, 2)

    @pytest.mark.asyncio
    async def test_start_depth_is_respected(self, make_source):
        source = make_source({1: comment(1, kids=[2]), 2: comment(2)})

        forest = await ForestResolver(source).resolve_forest([1], depth=3)

        assert forest[0].depth == 3
        assert forest[0].children[0].depth == 4

    @pytest.mark.asyncio
    async def test_children_follow_kids_order_not_completion(self, make_source):
        payloads = {
            1: comment(1, kids=[10, 11, 12]),
            10: comment(10),
            11: comment(11),
            12: comment(12),
        }
        source = make_source(payloads, delays={10: 0.03, 11: 0.02, 12: 0.0})

        forest = await ForestResolver(source).resolve_forest([1])

        assert [c.id for c in forest[0].children] == [10, 11, 12]

    @pytest.mark.asyncio
    async def test_deep_failure_only_removes_that_node(self, make_source):
        payloads = {
            1: comment(1, kids=[2, 3]),
            2: comment(2, kids=[4, 5]),
            3: comment(3, kids=[6]),
            4: comment(4),
            5: comment(5),
            6: comment(6),
        }
        source = make_source(payloads, raising={4}, jitter=0.002)

        forest = await ForestResolver(source).resolve_forest([1])

        flat = flatten(forest)
        assert [i.id for i in flat] == [1, 2, 5, 3, 6]
        two = forest[0].children[0]
        assert two.child_ids == (4, 5)
        assert two.missing_children == 1

    @pytest.mark.asyncio
    async def test_failed_subtree_root_drops_whole_subtree(self, make_source):
        payloads = {1: comment(1, kids=[2]), 2: comment(2, kids=[3]), 3: comment(3)}
        source = make_source(payloads, missing={2})

        forest = await ForestResolver(source).resolve_forest([1])

        assert forest[0].children == ()
        assert 3 not in source.calls

    @pytest.mark.asyncio
    async def test_deleted_items_are_kept(self, make_source):
        payloads = {
            1: comment(1, kids=[2, 3]),
            2: {"id": 2, "deleted": True, "time": 1_600_000_000},
            3: comment(3),
        }
        source = make_source(payloads)

        forest = await ForestResolver(source).resolve_forest([1])

        kids = forest[0].children
        assert [k.id for k in kids] == [2, 3]
        assert kids[0].deleted_or_missing
        assert not kids[1].deleted_or_missing

    @pytest.mark.asyncio
    async def test_returns_only_after_whole_tree_settles(self, make_source):
        payloads = {
            1: comment(1, kids=[2]),
            2: comment(2, kids=[3]),
            3: comment(3),
        }
        source = make_source(payloads, delays={3: 0.02})

        forest = await ForestResolver(source).resolve_forest([1])

        assert source.in_flight == 0
        assert forest[0].children[0].children[0].id == 3

    @pytest.mark.asyncio
    async def test_bounded_deep_tree_does_not_deadlock(self, make_source):
        # A chain deeper than the semaphore bound plus a wide fan at the bottom
        payloads = {i: comment(i, kids=[i + 1]) for i in range(1, 10)}
        payloads[10] = comment(10, kids=list(range(100, 130)))
        payloads.update({i: comment(i) for i in range(100, 130)})
        source = make_source(payloads, jitter=0.001)

        forest = await asyncio.wait_for(
            ForestResolver(source, max_concurrency=2).resolve_forest([1]), timeout=5
        )

        assert len(flatten(forest)) == 40
        assert source.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_empty_root_list(self, make_source):
        source = make_source({})
        assert await ForestResolver(source).resolve_forest([]) == []
        assert source.calls == []
