#!/usr/bin/env python3
"""
Chat Deleter - command line runner
"""

import sys
import signal
import asyncio
import argparse
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from chat_deleter.config import configure_logging, interval_warnings, load_settings
from chat_deleter.discord_service import DeleterService
from chat_deleter.reporting import format_channel_type, format_log_line
from chat_deleter.settings_store import AppSettingsStore, ShelveStore


console = Console()

LEVEL_STYLES = {
    'DEBUG': 'dim',
    'INFO': 'cyan',
    'WARN': 'yellow',
    'ERROR': 'red',
}


class RichStatusReporter:
    """Renders status updates on a rich progress bar and log entries on the console"""

    def __init__(self, progress: Progress):
        self.progress = progress
        self.task = progress.add_task("Idle. Ready to begin.", total=100)

    async def update_status(self, message: str, progress: Optional[float] = None, eta: Optional[str] = None) -> None:
        description = f"{message} [dim]({eta})[/dim]" if eta else message
        if progress is None:
            self.progress.update(self.task, description=description)
        else:
            self.progress.update(self.task, description=description, completed=max(0.0, min(100.0, progress)))

    async def add_log_entry(self, message: str, level: str = 'INFO', details: Any = None) -> None:
        style = LEVEL_STYLES.get(level, 'white')
        self.progress.console.print(f"[{style}]{format_log_line(message, level, details)}[/{style}]", markup=True)


def _build_service(settings, reporter=None) -> DeleterService:
    store = AppSettingsStore(ShelveStore(settings.store_path))
    return DeleterService.from_settings(settings, store, reporter)


def _print_stats(service: DeleterService) -> None:
    """Print cumulative statistics table"""
    stats = service.get_stats()

    table = Table(title="Deletion Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Channel Type", style="cyan", width=25)
    table.add_column("Deleted", justify="right", style="green", width=10)

    for channel_type, count in stats.deleted_by_channel_type.items():
        table.add_row(format_channel_type(channel_type), f"{count:,}")
    table.add_row("[bold]Total[/bold]", f"[bold]{stats.total_deleted:,}[/bold]")

    console.print(table)


def run_command(args, settings) -> int:
    service = _build_service(settings)

    if args.interval is not None:
        for warning in interval_warnings(args.interval):
            console.print(f"[yellow]{warning}[/yellow]")
        interval = service.set_interval(args.interval)
        console.print(f"Using interval of {interval}ms")

    if args.file:
        path = Path(args.file)
        if not path.exists():
            console.print(f"[red]Error: {path} not found[/red]")
            return 1
        result = service.import_payload(path.read_text(encoding='utf-8'))
    else:
        result = service.load_stored_payload()

    if not result.ok:
        console.print(f"[red]{result.error}[/red]")
        return 1
    if result.is_empty:
        console.print("[yellow]JSON data is empty. Nothing to do.[/yellow]")
        return 1

    summary = service.summarize(result.channels)
    for line in summary["lines"]:
        console.print(line)
    console.print(f"Estimated time: {summary['eta']}")

    interrupted = False

    def _handle_interrupt(signum, frame):
        """Handle Ctrl+C gracefully"""
        nonlocal interrupted
        if not interrupted:
            console.print("\n[yellow]Interrupt received. Stopping after the current message...[/yellow]")
            interrupted = True
            service.stop_deletion()
        else:
            console.print("\n[red]Force quit requested. Exiting immediately.[/red]")
            sys.exit(1)

    signal.signal(signal.SIGINT, _handle_interrupt)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console
    ) as progress:
        service.set_reporter(RichStatusReporter(progress))
        outcome = asyncio.run(service.start_deletion(result.channels))

    console.print(f"\n[bold green]Run {outcome.status}[/bold green]")
    console.print(
        f"  Deleted: {outcome.completed} | Already gone: {outcome.already_gone} | "
        f"Not deletable: {outcome.denied} | Failed: {outcome.failed} | Skipped: {outcome.skipped}"
    )
    _print_stats(service)
    return 0


def stats_command(args, settings) -> int:
    _print_stats(_build_service(settings))
    return 0


def clear_command(args, settings) -> int:
    if not args.yes:
        console.print("Are you sure you want to clear all message data and statistics? [y/N]")
        if input().strip().lower() not in {'y', 'yes'}:
            return 1
    _build_service(settings).clear_all_data()
    console.print("[green]All message data and statistics have been cleared[/green]")
    return 0


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Bulk delete exported chat messages, resumable across runs')
    subparsers = parser.add_subparsers(dest='command', required=True)

    run_parser = subparsers.add_parser('run', help='Delete the messages of an exported channel map')
    run_parser.add_argument('file', nargs='?', help='Channel map JSON file (default: payload left by the last run)')
    run_parser.add_argument('--interval', type=str, help='Delay between deletions in ms (750-600000, default 1500)')
    run_parser.set_defaults(handler=run_command)

    stats_parser = subparsers.add_parser('stats', help='Show cumulative deletion statistics')
    stats_parser.set_defaults(handler=stats_command)

    clear_parser = subparsers.add_parser('clear', help='Clear all message data and statistics')
    clear_parser.add_argument('--yes', action='store_true', help='Do not ask for confirmation')
    clear_parser.set_defaults(handler=clear_command)

    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings.log_level)

    return args.handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
