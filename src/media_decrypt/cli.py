"""
Media Decrypt CLI - Command-line interface.

Serve the HTTP API, decode single media files and maintain the artifact
store from the terminal.
"""

import base64
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from media_decrypt.artifacts import ArtifactStore, RetentionSweeper
from media_decrypt.core.config import ServiceConfig
from media_decrypt.core.exceptions import MediaDecryptError
from media_decrypt.crypto import (
    decode_media_key,
    decrypt_media,
    encrypt_media,
    expand_media_key,
    resolve_media_type,
)
from media_decrypt.fetch import MediaFetcher
from media_decrypt.mime import extension_from_mime

app = typer.Typer(
    name="media-decrypt",
    help="Media Decrypt - decrypt end-to-end encrypted chat media",
    no_args_is_help=True,
)
console = Console()


def _load_config() -> ServiceConfig:
    try:
        return ServiceConfig.from_env()
    except MediaDecryptError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _read_source(source: str, config: ServiceConfig) -> bytes:
    if source.startswith(("http://", "https://")):
        with MediaFetcher(config.fetch) as fetcher:
            return fetcher.fetch(source)

    path = Path(source)
    if not path.is_file():
        console.print(f"[red]No such file: {source}[/red]")
        raise typer.Exit(1)
    return path.read_bytes()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port (default: $PORT or 8889)"),
):
    """Run the HTTP API."""
    import uvicorn

    from media_decrypt.api import create_app

    config = _load_config()
    updates = {}
    if host is not None:
        updates["host"] = host
    if port is not None:
        updates["port"] = port
    if updates:
        config = config.model_copy(update=updates)

    console.print(f"[bold blue]Media Decrypt API[/bold blue] on {config.host}:{config.port}")
    console.print(f"Artifacts: {config.storage.storage_dir}")
    uvicorn.run(create_app(config), host=config.host, port=config.port)


@app.command()
def decode(
    source: str = typer.Argument(..., help="URL or local path of the encrypted media"),
    media_key: str = typer.Argument(..., help="Base64 media key"),
    type_hint: Optional[str] = typer.Option(
        None, "--type", "-t", help="Type tag or message type (e.g. imageMessage)"
    ),
    mimetype: Optional[str] = typer.Option(None, "--mimetype", "-m", help="MIME hint"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write plaintext here"),
    as_base64: bool = typer.Option(False, "--base64", help="Print plaintext as base64"),
    verify: bool = typer.Option(
        False, "--verify", help="Re-encrypt the plaintext and compare with the input"
    ),
):
    """Decrypt a single media file."""
    config = _load_config()

    try:
        raw_key = decode_media_key(media_key)
        media_type = resolve_media_type(type_hint, mimetype)
        key = expand_media_key(raw_key, media_type)
        blob = _read_source(source, config)
        plaintext = decrypt_media(blob, key)
    except MediaDecryptError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if verify and encrypt_media(plaintext, key) != blob:
        console.print("[red]Self-check failed: re-encrypted output differs from input[/red]")
        raise typer.Exit(1)

    if as_base64:
        typer.echo(base64.b64encode(plaintext).decode("ascii"))
        return

    output_path = output or Path(f"decoded_media{extension_from_mime(mimetype)}")
    output_path.write_bytes(plaintext)
    console.print(
        f"[green]Decrypted {media_type.name.lower()} media:[/green] "
        f"{output_path} ({len(plaintext):,} bytes)"
    )


@app.command()
def sweep():
    """Delete artifacts older than the retention threshold once."""
    config = _load_config()
    store = ArtifactStore(config.storage)
    sweeper = RetentionSweeper(store, config.retention)

    if not sweeper.enabled:
        console.print("[yellow]Retention disabled (RETENTION_HOURS <= 0)[/yellow]")
        store.close()
        return

    try:
        result = sweeper.sweep_once()
    finally:
        store.close()

    table = Table(title=f"Retention Sweep (>{config.retention.retention_hours}h)")
    table.add_column("Scanned", style="cyan")
    table.add_column("Deleted", style="green")
    table.add_column("Reclaimed")
    table.add_column("Skipped")
    table.add_column("Freed")
    table.add_column("Errors", style="red")
    table.add_row(
        str(result.scanned_count),
        str(result.deleted_count),
        str(result.reclaimed_count),
        str(result.skipped_count),
        f"{result.freed_bytes:,} bytes",
        str(len(result.errors)),
    )
    console.print(table)

    for error in result.errors:
        console.print(f"[red]{error}[/red]")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def stats():
    """Show artifact store statistics."""
    config = _load_config()
    store = ArtifactStore(config.storage)
    try:
        store_stats = store.get_storage_stats()
    finally:
        store.close()

    table = Table(title="Artifact Store")
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Active artifacts", str(store_stats.get("total_count", 0)))
    table.add_row("One-time", str(store_stats.get("one_time_count", 0)))
    table.add_row("Persistent", str(store_stats.get("persistent_count", 0)))
    table.add_row("Total size", f"{store_stats.get('total_size_bytes', 0):,} bytes")
    table.add_row("Oldest", str(store_stats.get("oldest_created_at") or "-"))
    table.add_row("Location", str(store_stats.get("storage_path", config.storage.storage_dir)))
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from media_decrypt.version import __version__

    console.print(f"Media Decrypt v{__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
