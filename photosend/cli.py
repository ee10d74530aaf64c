#!/usr/bin/env python3
"""
photosend CLI

Command-line interface for sending photos to a TCP endpoint.

Usage:
    photosend send FILE...       # Send photos, one connection each
    photosend receive            # Receive photos and save them
    photosend config             # Show effective configuration
"""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.panel import Panel
from rich.logging import RichHandler
from rich.markup import escape

from .config import Config, load_config, EXAMPLE_CONFIG
from .sender import PhotoSender
from .transfer import PhotoReceiver

console = Console()


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
@click.pass_context
def cli(ctx, verbose, config_path):
    """photosend - stream photos to a host over raw TCP."""
    config = load_config(config_path)
    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--host', default=None, help='Destination host')
@click.option('--port', type=click.IntRange(1, 65535), default=None, help='Destination TCP port')
@click.option('--chunk-size', type=click.IntRange(min=1), default=None, help='Bytes per write')
@click.pass_context
def send(ctx, files, host, port, chunk_size):
    """Send photos, one connection per file."""
    config: Config = ctx.obj['config']
    if chunk_size:
        config.chunk_size = chunk_size

    async def run():
        sender = PhotoSender(config)
        if host or port:
            sender.set_endpoint(host=host, port=port)

        # Each file counts as one completed capture
        transfers = [sender.photo_saved(Path(f)) for f in files]

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(
                f"Sending {len(transfers)} photo(s) to {sender.endpoint}...",
                total=None
            )
            await sender.stop()

        return sender, transfers

    sender, transfers = asyncio.run(run())

    table = Table(title=f"Transfers to {sender.endpoint}")
    table.add_column("Photo", style="cyan")
    table.add_column("Sent", justify="right", style="yellow")
    table.add_column("Status")

    for t in transfers:
        status = "[green]sent[/green]" if t.succeeded else f"[red]failed: {escape(str(t.error))}[/red]"
        table.add_row(escape(t.name), format_size(t.bytes_sent), status)

    console.print(table)


@cli.command()
@click.option('--host', default=None, help='Interface to listen on')
@click.option('--port', type=click.IntRange(0, 65535), default=None, help='TCP port to listen on')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False, path_type=Path),
              default=None, help='Where to save received photos')
@click.pass_context
def receive(ctx, host, port, output_dir):
    """Receive photos and save each one as a file."""
    config: Config = ctx.obj['config']
    receiver = PhotoReceiver(
        host=host or config.listen_host,
        port=port if port is not None else config.listen_port,
        output_dir=output_dir or config.output_dir,
    )

    async def run():
        await receiver.start()
        try:
            console.print(Panel.fit(
                f"[bold green]Receiver Started[/bold green]\n\n"
                f"Listening: [yellow]{receiver.host}:{receiver.address[1]}[/yellow]\n"
                f"Saving to: [blue]{receiver.output_dir}[/blue]",
                title="photosend"
            ))
            console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")
            await receiver.serve_forever()
        finally:
            await receiver.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")

    console.print(f"[green]Received {receiver.photos_received} photo(s), "
                  f"{format_size(receiver.bytes_received)}[/green]")


@cli.command('config')
@click.option('--example', is_flag=True, help='Print an example config file')
@click.pass_context
def show_config(ctx, example):
    """Show effective configuration."""
    if example:
        click.echo(EXAMPLE_CONFIG.strip())
        return

    config: Config = ctx.obj['config']

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="yellow")

    for key, value in config.to_dict().items():
        table.add_row(key, str(value))

    console.print(table)


def format_size(bytes_count: float) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} PB"


if __name__ == '__main__':
    cli()
