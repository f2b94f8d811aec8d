#!/usr/bin/env python3
"""
filedrop CLI

Command-line interface for point-to-point file uploads.

Usage:
    filedrop server                      # Accept uploads into server-storage/
    filedrop client FILENAME             # Upload client-storage/FILENAME
    filedrop --host 10.0.0.5 --port 9000 client car.jpg
    filedrop init-config config.json     # Write a config file with defaults

Options (--host, --port, ...) go before the mode.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import (
    Progress, BarColumn, DownloadColumn, TextColumn, TransferSpeedColumn,
)
from rich.markup import escape
from rich.panel import Panel
from rich.logging import RichHandler

from filedrop.config import Config, load_config
from filedrop.errors import TransferError
from filedrop.file import UploadStorage
from filedrop.transfer import TransferServer, TransferProgress, send_file

console = Console()
logger = logging.getLogger('filedrop.cli')


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging with rich output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='JSON config file')
@click.option('--host', default=None, help='Host to bind to / connect to [default: 127.0.0.1]')
@click.option('--port', type=click.IntRange(0, 65535), default=None,
              help='Port to accept connections on [default: 8080]')
@click.pass_context
def cli(ctx, verbose, config_path, host, port):
    """filedrop - upload a file to a server over TCP."""
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port

    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.pass_context
def server(ctx):
    """Accept uploads until interrupted."""
    config: Config = ctx.obj['config']
    storage = UploadStorage(config.storage_dir)
    transfer_server = TransferServer(
        storage,
        config.endpoint,
        chunk_size=config.chunk_size,
        timeout=config.timeout,
        max_filename_length=config.max_filename_length,
        progress_callback=_milestone_logger(),
    )

    async def run():
        await transfer_server.start()

        console.print(Panel.fit(
            f"[bold green]Server Started[/bold green]\n\n"
            f"Address: [yellow]{config.endpoint}[/yellow]\n"
            f"Storage: [blue]{config.storage_dir}[/blue] "
            f"([yellow]{len(storage.list_files())}[/yellow] files)",
            title="filedrop"
        ))
        console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

        try:
            await transfer_server.serve_forever()
        finally:
            await transfer_server.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
    except TransferError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    stats = transfer_server.get_stats()
    console.print(f"[green]Server stopped[/green] "
                  f"({stats['files_received']} files, {format_size(stats['bytes_received'])})")


@cli.command()
@click.argument('filename')
@click.pass_context
def client(ctx, filename):
    """Upload FILENAME from the client storage directory."""
    config: Config = ctx.obj['config']
    local_path = config.source_dir / filename

    async def run():
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.2f}%"),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"Sending {local_path.name}", total=None)

            def update_progress(p: TransferProgress):
                progress.update(task, total=p.total_bytes, completed=p.transferred_bytes)

            return await send_file(
                local_path,
                config.endpoint,
                chunk_size=config.chunk_size,
                timeout=config.timeout,
                progress_callback=update_progress,
            )

    try:
        sent = asyncio.run(run())
    except FileNotFoundError:
        console.print(f"[red]✗ File not found: {local_path}[/red]")
        sys.exit(1)
    except (TransferError, OSError) as e:
        console.print(f"[red]✗ Transfer failed: {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ Sent {local_path.name} ({format_size(sent)}) to {config.endpoint}[/green]")


@cli.command('init-config')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path),
                default=Path('config.json'))
@click.pass_context
def init_config(ctx, path):
    """Write the effective configuration to PATH."""
    config: Config = ctx.obj['config']
    config.save(path)
    console.print(f"[green]✓ Wrote {path}[/green]")


def _milestone_logger(step: float = 25.0):
    """Progress callback that logs each transfer at every `step` percent."""

    def log_progress(p: TransferProgress):
        milestone = int(p.progress_percent // step)
        if p.logged_milestone != milestone:
            p.logged_milestone = milestone
            logger.info(f"{p.filename}: {p.progress_percent:.2f}% "
                        f"({p.transferred_bytes:,}/{p.total_bytes:,} bytes)")

    return log_progress


def format_size(bytes_count: int) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} PB"


if __name__ == '__main__':
    cli()
