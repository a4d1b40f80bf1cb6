"""B2 CLI - Main commands."""
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import aiohttp
import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TransferSpeedColumn
)
from rich.table import Table

from .. import setup_logging
from ..client import DEFAULT_SESSION_NAME, B2Client, default_config_dir
from ..core.exceptions import B2Exception, DirectoryNotAllowed
from ..core.upload import UploadProgress

app = typer.Typer(
    name="b2",
    help="Backblaze B2 cloud storage CLI",
    add_completion=False
)
console = Console()
err_console = Console(stderr=True)

_state = {'config': None}


def get_session_path() -> Path:
    """Session file: --config if given, else <config dir>/config.session."""
    if _state['config']:
        return Path(_state['config']).expanduser()
    return default_config_dir() / f"{DEFAULT_SESSION_NAME}.session"


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def format_size(size: int) -> str:
    """Decimal size, e.g. 1.5MB."""
    value = float(size)
    for unit in ('B', 'kB', 'MB', 'GB', 'TB'):
        if value < 1000 or unit == 'TB':
            if unit == 'B':
                return f"{int(value)}B"
            return f"{value:.1f}{unit}"
        value /= 1000
    return f"{size}B"


async def _with_client(action):
    """
    Run `action(b2)` inside a client bound to the session file.

    The session is saved on the way out even when the action fails.
    Service, network and local file errors are reported on one line
    and exit with status 1.
    """
    async with B2Client(get_session_path()) as b2:
        try:
            return await action(b2)
        except B2Exception as e:
            _fail(str(e))
        except asyncio.TimeoutError:
            _fail("Request timed out")
        except aiohttp.ClientError as e:
            _fail(f"Network error: {e or type(e).__name__}")
        except OSError as e:
            _fail(str(e))


def _fail(message: str):
    err_console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def _transfer_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=err_console
    )


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show progress logs"),
    debug: bool = typer.Option(False, "--debug", help="Show request-level logs"),
    config: Optional[Path] = typer.Option(None, "--config", help="Session file to use"),
):
    """Backblaze B2 cloud storage CLI."""
    _state['config'] = config

    if debug or verbose:
        level = logging.DEBUG if debug else logging.INFO
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )
        setup_logging(level)


@app.command()
def authorise(
    key_id: Optional[str] = typer.Option(None, "--key-id", help="Application key ID"),
    key: Optional[str] = typer.Option(None, "--key", help="Application key"),
):
    """Authorise an application key and save it."""
    async def do_authorise(b2: B2Client):
        result = await b2.authorize(key_id, key)
        console.print(f"[green]Authorised account {result.account_id}[/green]")
        console.print(f"Session saved to: {get_session_path()}")

    run_async(_with_client(do_authorise))


app.command("authorize", hidden=True, help="Alias of authorise.")(authorise)


@app.command("list-buckets")
def list_buckets():
    """List buckets."""
    async def do_list(b2: B2Client):
        for bucket in await b2.list_buckets():
            console.print(escape(bucket.bucket_name))

    run_async(_with_client(do_list))


@app.command()
def ls(
    bucket: str = typer.Argument(..., help="Bucket name"),
    prefix: Optional[str] = typer.Argument(None, help="Only names starting with this prefix"),
    long: bool = typer.Option(False, "-l", "--long", help="Long format with details"),
    tree: bool = typer.Option(False, "--tree", help="Show names as a directory tree"),
):
    """List files in a bucket."""
    async def list_files(b2: B2Client):
        files = await b2.ls(bucket, prefix)

        if tree:
            from .tree import build_tree
            console.print(build_tree(bucket, files))
        elif long:
            table = Table()
            table.add_column("Size", justify="right", style="green")
            table.add_column("Date Uploaded", justify="right", style="blue")
            table.add_column("Name", style="yellow")

            for file in files:
                uploaded = file.upload_timestamp.strftime("%d %b %Y") if file.upload_timestamp else "-"
                table.add_row(format_size(file.content_length), uploaded, escape(file.file_name))

            console.print(table)
        else:
            for file in files:
                console.print(escape(file.file_name))

    run_async(_with_client(list_files))


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file or directory", exists=True),
    bucket: str = typer.Argument(..., help="Bucket name"),
    dest: Optional[str] = typer.Argument(None, help="Destination name in the bucket"),
    parts: bool = typer.Option(False, "--parts", "-p", help="Upload with the large-file API"),
    content_type: Optional[str] = typer.Option(None, "--content-type", "-c", help="MIME type"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Upload directories recursively"),
):
    """Upload a file (or a directory with -r) to a bucket."""
    if file_path.is_dir() and not recursive:
        _fail(str(DirectoryNotAllowed(file_path)))

    async def do_upload(b2: B2Client):
        with _transfer_progress() as progress:
            task = progress.add_task(f"Uploading {file_path.name}", total=None)

            def on_progress(p: UploadProgress):
                progress.update(task, completed=p.uploaded_bytes, total=p.total_bytes)

            if file_path.is_dir():
                results = []
                async for result in b2.upload_directory(
                    file_path,
                    bucket,
                    dest,
                    parts=parts,
                    content_type=content_type,
                    progress_callback=on_progress
                ):
                    progress.console.print(escape(result.file_name))
                    results.append(result)
            else:
                results = [await b2.upload(
                    file_path,
                    bucket,
                    dest,
                    parts=parts,
                    content_type=content_type,
                    progress_callback=on_progress
                )]

        for result in results:
            console.print(
                f"[green]Uploaded {format_size(result.file_size)} to {escape(result.file_name)}![/green]"
            )

    run_async(_with_client(do_upload))


@app.command()
def download(
    bucket: str = typer.Argument(..., help="Bucket name"),
    remote_name: str = typer.Argument(..., help="File name in the bucket"),
    output: Optional[Path] = typer.Option(None, "--output", "-O", help="Output file path"),
):
    """Download a file from a bucket."""
    async def do_download(b2: B2Client):
        with _transfer_progress() as progress:
            task = progress.add_task(f"Downloading {remote_name}", total=None)

            def on_progress(downloaded: int, total: int):
                progress.update(task, completed=downloaded, total=total or None)

            path = await b2.download(bucket, remote_name, output, progress_callback=on_progress)

        console.print(
            f"[green]Downloaded {format_size(path.stat().st_size)} to {escape(str(path))}![/green]"
        )

    run_async(_with_client(do_download))


@app.command()
def cat(
    bucket: str = typer.Argument(..., help="Bucket name"),
    remote_name: str = typer.Argument(..., help="File name in the bucket"),
    force: bool = typer.Option(False, "--force", "-f", help="Print binary content without asking"),
):
    """Print a file's content."""
    async def do_cat(b2: B2Client) -> bytes:
        return await b2.read(bucket, remote_name)

    data = run_async(_with_client(do_cat))

    try:
        typer.echo(data.decode('utf-8'))
        return
    except UnicodeDecodeError:
        pass

    show = force or not sys.stdout.isatty()
    if not show:
        show = typer.confirm(
            "This file is not in a plaintext format. Are you sure you want to print?",
            default=False,
            err=True
        )

    if show:
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
    else:
        typer.echo("Exiting.", err=True)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
