"""
Tests for the diagnostic pebble game.
"""

from pebblekit.core.decisions import Action, Decision
from pebblekit.verify import PebbleGame


def mint(index, *parents):
    return Decision(Action.MINT, index, index, parents=tuple(parents))


def passed(budget, red, t=0):
    return Decision(Action.PASS, -1, t, budget=budget, red_count=red)


def test_legal_chain():
    decisions = [
        mint(0),
        passed(1, 1),
        mint(1, 0),
        Decision(Action.EVICT, 0, 1),
        passed(1, 1),
        Decision(Action.LOAD, 0, 1),
    ]

    report = PebbleGame().replay(decisions)

    assert report.legal, report.violations
    assert report.writes == 1
    assert report.reads == 1
    assert report.max_red == 2


def test_mint_without_pebbled_dependency():
    report = PebbleGame().replay([mint(0), mint(2, 1)])

    assert not report.legal
    assert "carry no pebble" in report.violations[0]


def test_evict_requires_red():
    report = PebbleGame().replay(
        [mint(0), Decision(Action.EVICT, 0, 0), Decision(Action.EVICT, 0, 0)]
    )

    assert len(report.violations) == 1
    assert "red pebble" in report.violations[0]


def test_load_requires_blue():
    report = PebbleGame().replay([mint(0), Decision(Action.LOAD, 0, 0)])

    assert not report.legal


def test_pass_over_budget():
    report = PebbleGame().replay([mint(0), mint(1, 0), passed(1, 2)])

    assert not report.legal
    assert "exceed budget" in report.violations[0]


def test_pass_with_wrong_logged_count():
    report = PebbleGame().replay([mint(0), passed(5, 3)])

    assert not report.legal


def test_discard_relinks_dependents():
    game = PebbleGame()
    report = game.replay([mint(0), mint(1, 0), mint(2, 1), Decision(Action.DISCARD, 1, 2)])

    assert report.legal
    assert 1 not in game.pebbles
    assert game.deps[2] == (0,)


def test_lost_node_remains_a_dependency():
    game = PebbleGame()
    report = game.replay(
        [
            Decision(Action.RECOVER, 0, 3),
            Decision(Action.RECOVER, 3, 3, parents=(0,)),
            Decision(Action.LOSE, 3, 3),
            mint(4, 3),
        ]
    )

    assert report.legal, report.violations
    assert game.red_count() == 1
