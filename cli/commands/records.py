"""
Record commands: list, verify
"""

from typing import Optional

import typer
from rich.table import Table

from pebblekit.core.errors import IntegrityError, StorageFailure
from pebblekit.storage import decode_record

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

app = typer.Typer()


@app.command("list")
def list_records(
    directory: Optional[str] = DirOption,
    bucket: Optional[str] = BucketOption,
    prefix: str = PrefixOption,
    endpoint: Optional[str] = EndpointOption,
    namespace: str = NamespaceOption,
    json_output: bool = JsonOption,
):
    """
    List stored checkpoint records (headers only).

    Examples:
        pebble records list --dir ./ckpt
        pebble records list --s3-bucket my-bucket --namespace orders --json
    """
    try:
        storage = open_storage(directory, bucket, prefix, endpoint)
        listings = list(storage.list(namespace))
    except StorageFailure as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(
            [
                {
                    "key": entry.key,
                    "index": entry.meta.index if entry.meta else None,
                    "parents": list(entry.meta.parents) if entry.meta else None,
                    "size": entry.meta.size if entry.meta else None,
                    "signed": bool(entry.meta and entry.meta.signature),
                    "error": entry.error,
                }
                for entry in listings
            ]
        )
        return

    if not listings:
        console.print(f"[yellow]No records under namespace {namespace!r}[/yellow]")
        return

    table = Table(title=f"Records in {namespace}")
    table.add_column("Index", justify="right", style="cyan")
    table.add_column("Parents")
    table.add_column("Size", justify="right")
    table.add_column("Signed")
    table.add_column("Key", style="dim")

    for entry in listings:
        if entry.meta is None:
            table.add_row("?", "-", "-", "-", f"{entry.key} [red]({entry.error})[/red]")
            continue
        meta = entry.meta
        table.add_row(
            str(meta.index),
            ", ".join(str(p) for p in meta.parents) or "root",
            str(meta.size),
            "yes" if meta.signature else "no",
            meta.key,
        )

    console.print(table)


@app.command()
def verify(
    directory: Optional[str] = DirOption,
    bucket: Optional[str] = BucketOption,
    prefix: str = PrefixOption,
    endpoint: Optional[str] = EndpointOption,
    namespace: str = NamespaceOption,
    key_path: Optional[str] = KeyOption,
    json_output: bool = JsonOption,
):
    """
    Read every record and check size, checksum and (with --key) signature.

    Exit code 1 when any record fails.

    Examples:
        pebble records verify --dir ./ckpt
        pebble records verify --dir ./ckpt --key verifying_key.pem
    """
    try:
        storage = open_storage(directory, bucket, prefix, endpoint)
        verifier = load_verifier(key_path)
        listings = list(storage.list(namespace))
    except (StorageFailure, OSError, ValueError) as e:
        fail(str(e), json_output)

    results = []
    for entry in listings:
        error = entry.error
        if error is None:
            try:
                decode_record(storage.read(entry.key), entry.key, verifier)
            except (StorageFailure, IntegrityError) as e:
                error = str(e)
        results.append({"key": entry.key, "ok": error is None, "error": error})

    failed = [r for r in results if not r["ok"]]

    if json_output:
        emit_json(
            {
                "success": not failed,
                "namespace": namespace,
                "checked": len(results),
                "failed": len(failed),
                "records": results,
            }
        )
    else:
        for r in results:
            if r["ok"]:
                console.print(f"[green]✓[/green] {r['key']}")
            else:
                console.print(f"[red]✗[/red] {r['key']}: {r['error']}")
        summary = f"{len(results) - len(failed)}/{len(results)} records valid"
        if failed:
            console.print(f"[red]{summary}[/red]")
        else:
            console.print(f"[green]{summary}[/green]")

    if failed:
        raise typer.Exit(1)
