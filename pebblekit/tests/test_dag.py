"""
Tests for CheckpointDAG.

Critical tests:
1. Index and parent invariants on insert
2. Path-counted weights under insert and remove
3. nearest_ancestor (linear and branch-aware, tombstones skipped)
4. Subsumption, required checkpoint count and eviction order
"""

import pytest

from pebblekit.core import CheckpointDAG, Color, NotFound


def chain(*indices):
    dag = CheckpointDAG()
    previous = None
    for index in indices:
        dag.insert(index, () if previous is None else (previous,), payload={"i": index})
        previous = index
    return dag


def diamond():
    """0 -> 1, 0 -> 2, (1, 2) -> 3"""
    dag = CheckpointDAG()
    dag.insert(0)
    dag.insert(1, (0,))
    dag.insert(2, (0,))
    dag.insert(3, (1, 2))
    return dag


def test_insert_builds_links():
    dag = chain(0, 2, 5)

    assert dag.indices() == [0, 2, 5]
    assert dag.root == 0
    assert dag.latest == 5
    assert dag.node(2).parents == (0,)
    assert dag.node(2).children == {5}
    assert dag.node(5).is_leaf
    assert dag.node(0).color is Color.RED


def test_insert_rejects_invariant_violations():
    dag = chain(0, 3)

    # index reuse
    with pytest.raises(ValueError):
        dag.insert(3, (0,))
    # index below high water
    with pytest.raises(ValueError):
        dag.insert(2, (0,))
    # missing parent
    with pytest.raises(ValueError):
        dag.insert(4, (1,))
    # second root
    with pytest.raises(ValueError):
        dag.insert(4, ())


def test_removed_index_is_never_reused():
    dag = chain(0, 1, 2)
    dag.remove(2)

    with pytest.raises(ValueError):
        dag.insert(2, (1,))


def test_chain_weights_are_one():
    """In a chain every node has exactly one leaf below it."""
    dag = chain(0, 1, 2, 3)

    assert [dag.node(i).weight for i in dag.indices()] == [1, 1, 1, 1]


def test_tree_weight_counts_leaves():
    dag = CheckpointDAG()
    dag.insert(0)
    dag.insert(1, (0,))
    dag.insert(2, (1,))
    dag.insert(3, (1,))
    dag.insert(4, (0,))

    assert dag.node(1).weight == 2
    assert dag.node(0).weight == 3


def test_dag_weight_is_path_counted():
    """A leaf reachable along two paths counts twice."""
    dag = diamond()
    assert dag.node(0).weight == 2

    dag.insert(4, (3,))
    assert dag.node(0).weight == 2

    dag.insert(5, (3,))
    assert dag.node(3).weight == 2
    assert dag.node(1).weight == 2
    assert dag.node(2).weight == 2
    assert dag.node(0).weight == 4


def test_remove_reattaches_children():
    dag = diamond()
    dag.remove(2)

    assert 2 not in dag
    assert dag.node(3).parents == (0, 1)
    assert dag.node(0).children == {1, 3}
    assert dag.node(0).weight == 2


def test_remove_chain_link_updates_weights():
    dag = CheckpointDAG()
    dag.insert(0)
    dag.insert(1, (0,))
    dag.insert(2, (1,))
    dag.insert(3, (1,))

    dag.remove(1)

    assert dag.node(2).parents == (0,)
    assert dag.node(3).parents == (0,)
    assert dag.node(0).weight == 2


def test_remove_root_with_children_fails():
    dag = chain(0, 1)

    with pytest.raises(ValueError):
        dag.remove(0)


def test_mark_blue_releases_payload():
    dag = chain(0, 1)
    dag.mark_blue(0, "ns/0000000000.rec")

    node = dag.node(0)
    assert node.is_blue
    assert node.payload is None
    assert node.storage_key == "ns/0000000000.rec"
    assert dag.red_count() == 1
    assert dag.blue_count() == 1


def test_mark_red_restores_payload():
    dag = chain(0, 1)
    dag.mark_blue(0, "ns/0000000000.rec")

    node = dag.mark_red(0, {"i": 0})

    assert node.is_red
    assert node.payload == {"i": 0}
    assert node.storage_key is None
    assert dag.red_count() == 2
    assert dag.blue_count() == 0


def test_mark_red_rejects_red_and_lost_nodes():
    dag = chain(0, 1, 2)
    dag.mark_unusable(1)

    with pytest.raises(ValueError):
        dag.mark_red(2, {"i": 2})
    with pytest.raises(ValueError):
        dag.mark_red(1, {"i": 1})


def test_nearest_ancestor_linear():
    dag = chain(0, 4, 8)

    assert dag.nearest_ancestor(6).index == 4
    assert dag.nearest_ancestor(8).index == 8
    assert dag.nearest_ancestor(100).index == 8
    assert dag.nearest_ancestor(0).index == 0


def test_nearest_ancestor_below_coverage():
    dag = chain(5, 9)

    with pytest.raises(NotFound) as exc:
        dag.nearest_ancestor(3)

    assert exc.value.target_index == 3
    assert exc.value.nearest_index == 5


def test_nearest_ancestor_skips_unusable():
    dag = chain(0, 4, 8)
    dag.mark_unusable(4)

    assert dag.nearest_ancestor(6).index == 0
    assert dag.unusable_count() == 1
    assert dag.red_count() == 2
    assert dag.blue_count() == 0


def test_nearest_ancestor_follows_branch():
    """With a head, only that head's history is eligible."""
    dag = CheckpointDAG()
    dag.insert(0)
    dag.insert(3, (0,))
    dag.insert(5, (0,))  # branch off 0
    dag.insert(7, (5,))

    # linear lookup would return 5
    assert dag.nearest_ancestor(6).index == 5
    # 3's line of history does not contain 5
    assert dag.nearest_ancestor(6, head=3).index == 3
    assert dag.nearest_ancestor(6, head=7).index == 5


def test_nearest_ancestor_unknown_head():
    dag = chain(0, 1)

    with pytest.raises(NotFound):
        dag.nearest_ancestor(1, head=42)


def test_ancestors_and_descendants():
    dag = diamond()

    assert dag.ancestors(3) == {0, 1, 2}
    assert dag.descendants(0) == {1, 2, 3}
    assert dag.descendants(3) == set()


def test_is_subsumed():
    dag = chain(0, 1, 2, 3)

    assert dag.is_subsumed(1, budget=2, head=3)
    assert not dag.is_subsumed(1, budget=1, head=3)
    # root and head never qualify
    assert not dag.is_subsumed(0, budget=10, head=3)
    assert not dag.is_subsumed(3, budget=10, head=3)


def test_merge_points_are_not_subsumed():
    dag = diamond()
    dag.insert(4, (3,))

    assert not dag.is_subsumed(3, budget=10, head=4)


def test_required_checkpoints_chain():
    """Root and leaf, plus interior points every budget events."""
    dag = chain(*range(10))

    assert dag.required_checkpoints(3) == 4
    assert dag.required_checkpoints(9) == 2


def test_max_gap():
    dag = chain(0, 4, 5)

    assert dag.max_gap() == 4


def test_covering_span():
    assert CheckpointDAG().covering_span() is None

    dag = chain(0, 4, 8)
    assert dag.covering_span() == (0, 8)

    dag.mark_unusable(8)
    assert dag.covering_span() == (0, 4)


def test_evictable_waits_for_parents():
    """0 -> 1 -> 2 and 0 -> 3 -> 4 (head)."""
    dag = CheckpointDAG()
    dag.insert(0)
    dag.insert(1, (0,))
    dag.insert(2, (1,))
    dag.insert(3, (0,))
    dag.insert(4, (3,))

    assert [n.index for n in dag.evictable(head=4)] == [0]

    dag.mark_blue(0, "k0")
    assert [n.index for n in dag.evictable(head=4)] == [1, 3]

    dag.mark_unusable(1)
    assert [n.index for n in dag.evictable(head=4)] == [2, 3]


def test_evictable_merge_needs_every_parent_stored():
    dag = diamond()
    dag.mark_blue(0, "k0")
    dag.mark_blue(1, "k1")

    assert [n.index for n in dag.evictable(head=None)] == [2]

    dag.mark_blue(2, "k2")
    assert [n.index for n in dag.evictable(head=None)] == [3]
