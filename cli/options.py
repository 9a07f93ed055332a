"""
Shared storage options for commands that read a record namespace.
"""

import json
from typing import Any, Optional

import typer
from rich.console import Console

from pebblekit.storage import FileStorage, S3Storage, StorageBackend, VerifyingKey

console = Console()

DirOption = typer.Option(None, "--dir", "-d", help="Directory of a FileStorage backend")
BucketOption = typer.Option(None, "--s3-bucket", help="S3 bucket of an S3Storage backend")
PrefixOption = typer.Option("checkpoints", "--s3-prefix", help="Key prefix inside the bucket")
EndpointOption = typer.Option(
    None, "--s3-endpoint", envvar="PEBBLE_S3_ENDPOINT", help="S3 endpoint URL (MinIO, localstack)"
)
NamespaceOption = typer.Option("pebble", "--namespace", "-n", help="Record namespace")
KeyOption = typer.Option(None, "--key", "-k", help="Ed25519 public key PEM to verify signatures")
JsonOption = typer.Option(False, "--json", help="Output as JSON")


def open_storage(
    directory: Optional[str],
    bucket: Optional[str],
    prefix: str,
    endpoint: Optional[str],
) -> StorageBackend:
    if directory and bucket:
        raise typer.BadParameter("use either --dir or --s3-bucket, not both")
    if directory:
        return FileStorage(directory)
    if bucket:
        return S3Storage(bucket, prefix=prefix, endpoint_url=endpoint)
    raise typer.BadParameter("one of --dir or --s3-bucket is required")


def load_verifier(key_path: Optional[str]) -> Optional[VerifyingKey]:
    return VerifyingKey.load_from_file(key_path) if key_path else None


def fail(message: str, json_output: bool, code: int = 2) -> None:
    """Print an error the way the output mode expects and exit."""
    if json_output:
        print(json.dumps({"success": False, "error": message}))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)


def emit_json(data: Any) -> None:
    print(json.dumps(data, indent=2))
