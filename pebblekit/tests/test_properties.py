"""
Property tests: bounds hold for every workload shape.

For any budget coefficient, strategy and event count:
- red checkpoints never exceed the budget after a pass
- any resolvable target replays at most budget events
- the decision log is a legal pebbling
- a restart recovers every stored checkpoint
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from pebblekit.manager import PebbleConfig, PebbleManager
from pebblekit.serializers import JsonSerializer
from pebblekit.storage import MemoryStorage
from pebblekit.verify import PebbleGame
from pebblekit.workload import CounterApp, expected_state, run_branching, run_chain

workloads = st.fixed_dictionaries(
    {
        "strategy": st.sampled_from(["tree", "dag"]),
        "coefficient": st.floats(min_value=0.25, max_value=4.0),
        "events": st.integers(min_value=1, max_value=250),
        "merge_every": st.sampled_from([0, 3, 11]),
        "seed": st.integers(min_value=0, max_value=1000),
    }
)


def run(workload):
    app = CounterApp()
    manager = PebbleManager(
        app,
        JsonSerializer(),
        MemoryStorage(),
        config=PebbleConfig(
            strategy=workload["strategy"],
            budget_coefficient=workload["coefficient"],
            record_decisions=True,
        ),
    )
    if workload["merge_every"]:
        run_branching(
            manager, app, workload["events"], merge_every=workload["merge_every"], seed=workload["seed"]
        )
    else:
        run_chain(manager, app, workload["events"])
    return manager


@settings(max_examples=40, deadline=None)
@given(workloads)
def test_red_within_budget(workload):
    manager = run(workload)

    assert manager.dag.red_count() <= manager.current_budget
    assert PebbleGame().replay(manager.decisions).legal


@settings(max_examples=40, deadline=None)
@given(workloads, st.data())
def test_resolve_gap_within_budget(workload, data):
    manager = run(workload)
    target = data.draw(st.integers(min_value=0, max_value=manager.total_events))

    resolved = manager.resolve(target)

    assert 0 <= resolved.gap <= manager.current_budget
    assert resolved.anchor_index + resolved.gap == target
    assert resolved.snapshot == expected_state(resolved.anchor_index)


@settings(max_examples=25, deadline=None)
@given(st.integers(min_value=1, max_value=120), st.floats(min_value=0.25, max_value=4.0))
def test_mint_every_event_keeps_latest_red(events, coefficient):
    """With a mint per event and a tree strategy, the newest checkpoints stay red."""
    app = CounterApp()
    manager = PebbleManager(
        app,
        JsonSerializer(),
        MemoryStorage(),
        config=PebbleConfig(mint_interval=1, budget_coefficient=coefficient),
    )
    run_chain(manager, app, events)

    red = [n.index for n in manager.dag.red_nodes()]
    budget = manager.current_budget

    assert red == list(range(events - len(red) + 1, events + 1))
    assert len(red) == min(budget, events + 1)


@settings(max_examples=25, deadline=None)
@given(workloads)
def test_restart_recovers_every_stored_checkpoint(workload):
    manager = run(workload)
    stored = [n.index for n in manager.dag.blue_nodes()]

    restarted = PebbleManager(
        CounterApp(),
        JsonSerializer(),
        manager.storage,
        config=PebbleConfig(strategy=workload["strategy"]),
    )

    assert restarted.recovery_report.recovered == stored
    for index in stored:
        assert restarted.resolve(index).snapshot == expected_state(index)
