"""hugeupload CLI - Main commands."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

from ..core.config import DEFAULT_CHUNK_SIZE, DEFAULT_RETRIES, DEFAULT_DELAY_BEFORE_RETRY

app = typer.Typer(
    name="hugeupload",
    help="Resumable chunked uploads",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated 'Name: value' options."""
    headers = {}
    for value in values or []:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {value!r}")
        headers[name.strip()] = content.strip()
    return headers


def parse_fields(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated 'key=value' options."""
    fields = {}
    for value in values or []:
        key, sep, content = value.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Field must look like 'key=value', got {value!r}")
        fields[key.strip()] = content
    return fields


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    endpoint: str = typer.Option(..., "--endpoint", "-e", envvar="HUGEUPLOAD_ENDPOINT", help="Upload API base URL"),
    chunk_size: int = typer.Option(DEFAULT_CHUNK_SIZE, "--chunk-size", "-c", help="Chunk size in bytes"),
    retries: int = typer.Option(DEFAULT_RETRIES, "--retries", "-r", help="Retries per chunk"),
    delay: float = typer.Option(DEFAULT_DELAY_BEFORE_RETRY, "--delay", "-d", help="Seconds between retries"),
    header: Optional[List[str]] = typer.Option(None, "--header", "-H", help="Extra header 'Name: value'"),
    field: Optional[List[str]] = typer.Option(None, "--field", "-f", help="Extra init field 'key=value'"),
    token: Optional[str] = typer.Option(None, "--token", envvar="HUGEUPLOAD_TOKEN", help="Bearer token"),
    digest: Optional[str] = typer.Option(None, "--md5", help="Precomputed MD5 of the file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Upload a file to a chunked upload endpoint."""
    from hugeupload import HugeUploadClient, HugeUploadError, RetryNotice, setup_logging

    if verbose:
        logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
        setup_logging(logging.DEBUG)

    headers = parse_headers(header)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    body = parse_fields(field)

    async def do_upload():
        async with HugeUploadClient(
            endpoint,
            headers=headers,
            chunk_size=chunk_size,
            retries=retries,
            delay_before_retry=delay
        ) as client:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                digest_task = progress.add_task("Hashing", total=1.0, visible=digest is None)
                upload_task = progress.add_task(f"Uploading {file_path.name}", total=100)

                def on_retry(notice: RetryNotice):
                    progress.console.print(f"[yellow]{notice.message}[/yellow]")

                return await client.upload(
                    file_path,
                    digest=digest,
                    body=body,
                    on_progress=lambda percent: progress.update(upload_task, completed=percent),
                    on_retry=on_retry,
                    digest_progress=lambda fraction: progress.update(digest_task, completed=fraction)
                )

    try:
        result = run_async(do_upload())
    except HugeUploadError as e:
        console.print(f"[red]Upload failed: {e}[/red]")
        raise typer.Exit(1)

    console.print("[green]Upload completed[/green]")
    console.print_json(json.dumps(result))


@app.command()
def digest(
    file_path: Path = typer.Argument(..., help="File to hash", exists=True, dir_okay=False),
):
    """Print the MD5 digest used by the upload endpoint."""
    from hugeupload import HugeUploadError, LocalFileHandle, compute_digest

    async def do_digest():
        async with LocalFileHandle(file_path) as handle:
            return await compute_digest(handle)

    try:
        console.print(run_async(do_digest()))
    except HugeUploadError as e:
        console.print(f"[red]Cannot hash {file_path}: {e}[/red]")
        raise typer.Exit(1)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
