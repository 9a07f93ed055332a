"""
Simulate command: run a synthetic workload and check it with the pebble game
"""

from typing import Optional

import typer
from rich.table import Table

from pebblekit.core.budget import BudgetCadence
from pebblekit.manager import PebbleConfig, PebbleManager, StrategyKind
from pebblekit.serializers import JsonSerializer
from pebblekit.storage import MemoryStorage
from pebblekit.verify import PebbleGame
from pebblekit.workload import CounterApp, run_branching, run_chain

from cli.options import JsonOption, console, emit_json


def simulate_command(
    events: int = typer.Option(1000, "--events", "-e", min=1, help="Number of events"),
    strategy: StrategyKind = typer.Option(StrategyKind.TREE, "--strategy", "-s"),
    coefficient: float = typer.Option(1.0, "--coefficient", "-c", help="Budget coefficient c"),
    cadence: BudgetCadence = typer.Option(BudgetCadence.EVENT, "--cadence"),
    mint_interval: Optional[int] = typer.Option(
        None, "--mint-interval", "-m", help="Fixed mint spacing (default: adaptive)"
    ),
    merge_every: int = typer.Option(
        0, "--merge-every", help="Force a branch/merge point every N events (0 = chain)"
    ),
    io_ratio: float = typer.Option(3.0, "--io-ratio", help="DAG strategy I/O credit ratio"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for branch targets"),
    json_output: bool = JsonOption,
):
    """
    Drive a counter workload through an in-memory manager, then replay the
    decision log in the pebble game.

    Exit code 1 when the game finds an illegal step or a bound is violated.

    Examples:
        pebble simulate --events 10000
        pebble simulate --strategy dag --merge-every 7 --seed 1 --json
    """
    config = PebbleConfig(
        strategy=strategy,
        budget_coefficient=coefficient,
        budget_cadence=cadence,
        mint_interval=mint_interval,
        io_ratio=io_ratio,
        record_decisions=True,
    )
    app = CounterApp()
    storage = MemoryStorage()
    manager = PebbleManager(app, JsonSerializer(), storage, config=config)

    if merge_every > 0:
        run_branching(manager, app, events, merge_every=merge_every, seed=seed)
    else:
        run_chain(manager, app, events)

    stats = manager.stats()
    validation = stats.validate()
    report = PebbleGame().replay(manager.decisions)
    ok = report.legal and validation.red_within_budget

    if json_output:
        emit_json(
            {
                "success": ok,
                "strategy": manager.strategy.describe(),
                "stats": stats.to_dict(),
                "validation": {
                    "red_within_budget": validation.red_within_budget,
                    "gap_within_budget": validation.gap_within_budget,
                    "max_gap": validation.max_gap,
                    "space_ratio": validation.space_ratio,
                },
                "game": report.to_dict(),
            }
        )
    else:
        table = Table(title=f"{strategy.value} strategy, T={stats.total_events}")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Red checkpoints", str(stats.red_count))
        table.add_row("Blue checkpoints", str(stats.blue_count))
        table.add_row("Budget", str(stats.current_budget))
        table.add_row("Max gap", str(stats.max_gap))
        table.add_row("Writes", str(stats.writes))
        table.add_row("Discarded", str(stats.discarded))
        if validation.space_ratio is not None:
            table.add_row("Red / sqrt(T)", f"{validation.space_ratio:.3f}")
        table.add_row("Peak red (game)", str(report.max_red))
        console.print(table)

        if report.legal:
            console.print("[green]✓ Decision log is a legal pebbling[/green]")
        else:
            console.print(f"[red]✗ {len(report.violations)} illegal step(s)[/red]")
            for violation in report.violations[:20]:
                console.print(f"  {violation}")

    if not ok:
        raise typer.Exit(1)
