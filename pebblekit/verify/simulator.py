"""
Diagnostic red/blue pebble game.

Replays a manager's decision log against the pebbling rules and reports
every illegal step. Depends only on the decision log, never on a live
manager, so logs can be checked offline (see `pebble simulate`).

Rules:
- MINT places a red pebble; every dependency must carry a pebble
- EVICT turns a red pebble blue (one write)
- DISCARD removes a red pebble; its dependents inherit its dependencies
- LOAD reads a blue pebble (one read); the pebble stays blue
- LOSE removes a pebble whose payload was lost; the node stays a valid
  dependency
- RECOVER places a blue pebble
- PASS: the red count must not exceed the logged budget
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set, Tuple

from ..core.decisions import Action, Decision

RED = "red"
BLUE = "blue"


@dataclass
class SimulationReport:
    legal: bool = True
    violations: List[str] = field(default_factory=list)
    max_red: int = 0
    writes: int = 0
    reads: int = 0

    def to_dict(self) -> dict:
        return {
            "legal": self.legal,
            "violations": list(self.violations),
            "max_red": self.max_red,
            "writes": self.writes,
            "reads": self.reads,
        }


class PebbleGame:
    """
    Pebble state over checkpoint indices.

    Example:
        report = PebbleGame().replay(manager.decisions)
        assert report.legal, report.violations
    """

    def __init__(self) -> None:
        self.pebbles: Dict[int, str] = {}
        self.deps: Dict[int, Tuple[int, ...]] = {}
        self.lost: Set[int] = set()

    def red_count(self) -> int:
        return sum(1 for color in self.pebbles.values() if color == RED)

    def replay(self, decisions: Iterable[Decision]) -> SimulationReport:
        report = SimulationReport()
        for step, decision in enumerate(decisions):
            problem = self._apply(decision, report)
            if problem:
                report.violations.append(
                    f"step {step} ({decision.action.value} {decision.index} "
                    f"at T={decision.total_events}): {problem}"
                )
            report.max_red = max(report.max_red, self.red_count())
        report.legal = not report.violations
        return report

    def _apply(self, decision: Decision, report: SimulationReport) -> str:
        action = decision.action
        index = decision.index

        if action is Action.MINT:
            if index in self.pebbles or index in self.lost:
                return "index already pebbled"
            # lost nodes keep their edges as tombstones
            missing = [d for d in decision.parents if d not in self.pebbles and d not in self.lost]
            if missing:
                return f"dependencies {missing} carry no pebble"
            self.pebbles[index] = RED
            self.deps[index] = tuple(decision.parents)
            return ""

        if action is Action.RECOVER:
            if index in self.pebbles:
                return "index already pebbled"
            self.pebbles[index] = BLUE
            self.deps[index] = tuple(decision.parents)
            return ""

        if action is Action.EVICT:
            if self.pebbles.get(index) != RED:
                return "evict requires a red pebble"
            self.pebbles[index] = BLUE
            report.writes += 1
            return ""

        if action is Action.DISCARD:
            if self.pebbles.get(index) != RED:
                return "discard requires a red pebble"
            self._discard(index)
            return ""

        if action is Action.LOAD:
            if self.pebbles.get(index) != BLUE:
                return "load requires a blue pebble"
            report.reads += 1
            return ""

        if action is Action.LOSE:
            if index not in self.pebbles:
                return "lose requires a pebble"
            del self.pebbles[index]
            self.lost.add(index)
            return ""

        if action is Action.PASS:
            red = self.red_count()
            if red > decision.budget:
                return f"{red} red pebbles exceed budget {decision.budget}"
            if decision.red_count != red:
                return f"logged red count {decision.red_count} differs from {red}"
            return ""

        return f"unknown action {action!r}"

    def _discard(self, index: int) -> None:
        inherited = self.deps.pop(index, ())
        del self.pebbles[index]
        for node, deps in self.deps.items():
            if index in deps:
                self.deps[node] = tuple(sorted((set(deps) - {index}) | set(inherited)))
