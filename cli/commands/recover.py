"""
Recover command: dry-run warm recovery over a stored namespace
"""

from typing import Optional

import typer
from rich.table import Table

from pebblekit.core.errors import Inconsistent, StorageFailure
from pebblekit.manager import OrphanPolicy, warm_recover

from cli.options import (
    BucketOption,
    DirOption,
    EndpointOption,
    JsonOption,
    KeyOption,
    NamespaceOption,
    PrefixOption,
    console,
    emit_json,
    fail,
    load_verifier,
    open_storage,
)


def recover_command(
    directory: Optional[str] = DirOption,
    bucket: Optional[str] = BucketOption,
    prefix: str = PrefixOption,
    endpoint: Optional[str] = EndpointOption,
    namespace: str = NamespaceOption,
    orphan_policy: OrphanPolicy = typer.Option(
        OrphanPolicy.DROP_SUBTREE, "--orphan-policy", help="Handling of records with missing parents"
    ),
    abort_on_inconsistent: bool = typer.Option(
        False, "--abort-on-inconsistent", help="Fail instead of dropping inconsistent records"
    ),
    headers_only: bool = typer.Option(
        False, "--headers-only", help="Skip payload checksum verification"
    ),
    key_path: Optional[str] = KeyOption,
    json_output: bool = JsonOption,
):
    """
    Rebuild the checkpoint DAG from storage and report what a manager
    would recover. Nothing is written.

    Exit code 1 on partial loss, 2 on failure.

    Examples:
        pebble recover --dir ./ckpt
        pebble recover --dir ./ckpt --orphan-policy promote_to_root --json
    """
    try:
        storage = open_storage(directory, bucket, prefix, endpoint)
        verifier = load_verifier(key_path)
        dag, report = warm_recover(
            storage,
            namespace=namespace,
            orphan_policy=orphan_policy,
            abort_on_inconsistent=abort_on_inconsistent,
            verify_payloads=not headers_only,
            verifier=verifier,
        )
    except (StorageFailure, Inconsistent, OSError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        data = report.to_dict()
        data["root"] = dag.root
        data["latest"] = dag.latest
        data["max_gap"] = dag.max_gap()
        data["covering_span"] = dag.covering_span()
        emit_json(data)
    else:
        table = Table(show_header=False, box=None)
        table.add_row("[bold]Namespace[/bold]", namespace)
        table.add_row("[bold]Orphan policy[/bold]", orphan_policy.value)
        table.add_row("[bold]Recovered[/bold]", str(len(report.recovered)))
        table.add_row("[bold]Promoted[/bold]", str(len(report.promoted)))
        table.add_row("[bold]Dropped[/bold]", str(len(report.dropped)))
        table.add_row("[bold]Root[/bold]", str(dag.root))
        table.add_row("[bold]Latest[/bold]", str(dag.latest))
        table.add_row("[bold]Max gap[/bold]", str(dag.max_gap()))
        span = dag.covering_span()
        table.add_row("[bold]Covers[/bold]", f"{span[0]}..{span[1]}" if span else "nothing")
        console.print(table)

        if report.dropped:
            dropped = Table(title="Dropped records")
            dropped.add_column("Key", style="dim")
            dropped.add_column("Reason", style="red")
            for d in report.dropped:
                dropped.add_row(d.key, d.reason)
            console.print(dropped)

    if report.partial_loss:
        raise typer.Exit(1)
